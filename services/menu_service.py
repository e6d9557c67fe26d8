"""
Menu Service — admin management of categories and menu items.

MenuRepository wraps /admin/menu/*; MenuManager keeps a MenuViewState in
step with the server through the synchronizer (toggle/update replace by id,
create appends, delete removes after confirmation).
"""
import logging
from typing import Optional

from api_client import ApiClient
from domain.constants import ADMIN_CATEGORIES, ADMIN_MENU_ITEMS
from domain.responses import parse_model, parse_models
from models import Category, MenuItem
from services.view_state import MenuViewState, ViewStateSynchronizer

logger = logging.getLogger(__name__)


class MenuRepository:
    def __init__(self, client: ApiClient):
        self._client = client

    # ── Categories ──────────────────────────────────────────────────

    async def list_categories(self) -> list[Category]:
        return parse_models(Category, await self._client.get(ADMIN_CATEGORIES))

    async def create_category(self, data: dict) -> Category:
        return parse_model(Category, await self._client.post(ADMIN_CATEGORIES, json=data))

    async def update_category(self, category_id: int, data: dict) -> Category:
        return parse_model(Category, await self._client.put(f"{ADMIN_CATEGORIES}/{category_id}", json=data))

    async def delete_category(self, category_id: int) -> None:
        await self._client.delete(f"{ADMIN_CATEGORIES}/{category_id}")

    async def toggle_category(self, category_id: int) -> Category:
        return parse_model(Category, await self._client.put(f"{ADMIN_CATEGORIES}/{category_id}/toggle"))

    # ── Items ───────────────────────────────────────────────────────

    async def list_items(self) -> list[MenuItem]:
        return parse_models(MenuItem, await self._client.get(ADMIN_MENU_ITEMS))

    async def create_item(self, data: dict) -> MenuItem:
        return parse_model(MenuItem, await self._client.post(ADMIN_MENU_ITEMS, json=data))

    async def update_item(self, item_id: int, data: dict) -> MenuItem:
        return parse_model(MenuItem, await self._client.put(f"{ADMIN_MENU_ITEMS}/{item_id}", json=data))

    async def delete_item(self, item_id: int) -> None:
        await self._client.delete(f"{ADMIN_MENU_ITEMS}/{item_id}")

    async def toggle_item(self, item_id: int) -> MenuItem:
        return parse_model(MenuItem, await self._client.put(f"{ADMIN_MENU_ITEMS}/{item_id}/toggle"))


class MenuManager:
    """Admin menu screens' state and actions."""

    def __init__(self, repository: MenuRepository, view_state: MenuViewState):
        self.repository = repository
        self.view_state = view_state
        self._sync = ViewStateSynchronizer(view_state)

    @property
    def categories(self) -> list[Category]:
        return self.view_state.get_list("categories")

    @property
    def items(self) -> list[MenuItem]:
        return self.view_state.get_list("items")

    async def refresh(self) -> None:
        categories = await self._sync.load(self.repository.list_categories)
        items = await self._sync.load(self.repository.list_items)
        self.view_state.set_list("categories", categories)
        self.view_state.set_list("items", items)

    def _find(self, name: str, entity_id: int):
        return next((e for e in self.view_state.get_list(name) if e.id == entity_id), None)

    def _flipped(self, name: str, entity_id: int, field: str):
        existing = self._find(name, entity_id)
        if existing is None:
            return None
        return existing.model_copy(update={field: not getattr(existing, field)})

    async def toggle_category(self, category_id: int) -> Category:
        return await self._sync.replace(
            lambda: self.repository.toggle_category(category_id),
            provisional=self._flipped("categories", category_id, "is_active"),
        )

    async def toggle_item(self, item_id: int) -> MenuItem:
        return await self._sync.replace(
            lambda: self.repository.toggle_item(item_id),
            provisional=self._flipped("items", item_id, "is_available"),
        )

    def pending_category(self, category_id: int) -> Optional[Category]:
        """Provisional (unconfirmed) copy of a category being toggled."""
        return self._sync.provisional(Category, category_id)

    def pending_item(self, item_id: int) -> Optional[MenuItem]:
        return self._sync.provisional(MenuItem, item_id)

    async def create_category(self, data: dict) -> Category:
        return await self._sync.append(lambda: self.repository.create_category(data), "categories")

    async def update_category(self, category_id: int, data: dict) -> Category:
        return await self._sync.replace(lambda: self.repository.update_category(category_id, data))

    async def delete_category(self, category_id: int) -> None:
        await self._sync.remove(lambda: self.repository.delete_category(category_id), category_id, "categories")
        logger.info(f"Category {category_id} deleted")

    async def create_item(self, data: dict) -> MenuItem:
        return await self._sync.append(lambda: self.repository.create_item(data), "items")

    async def update_item(self, item_id: int, data: dict) -> MenuItem:
        return await self._sync.replace(lambda: self.repository.update_item(item_id, data))

    async def delete_item(self, item_id: int) -> None:
        await self._sync.remove(lambda: self.repository.delete_item(item_id), item_id, "items")
        logger.info(f"Menu item {item_id} deleted")
