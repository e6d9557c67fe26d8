"""
View-State — in-memory lists and detail slots the screens render from.

Replaces the apps' Redux/Zustand stores with explicit containers that are
passed to whoever needs them. Entities are matched by numeric `id`.

ViewStateSynchronizer runs every mutating call as a two-phase update:
    1. optional provisional copy, kept OUT of the lists (readable only via
       provisional(type, id); categories and items share id values)
    2. request
    3. success → the server's entity replaces every copy by id
       failure → provisional copy dropped, lists untouched, error re-raised

An entity that is not in a list is a silent no-op for that list.
"""
import logging
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from models import Category, MenuItem, Order

logger = logging.getLogger(__name__)

E = TypeVar("E")


class ViewState(Generic[E]):
    """Named entity lists and single-entity slots."""

    LISTS: tuple[str, ...] = ()
    SLOTS: tuple[str, ...] = ()

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        """Drop everything (logout)."""
        self._lists: dict[str, list[E]] = {name: [] for name in self.LISTS}
        self._slots: dict[str, Optional[E]] = {name: None for name in self.SLOTS}
        self.is_loading: bool = False
        self.error: Optional[str] = None

    # ── Reads (copies; callers cannot mutate state through them) ──

    def get_list(self, name: str) -> list[E]:
        return list(self._lists[name])

    def get_slot(self, name: str) -> Optional[E]:
        return self._slots[name]

    def find(self, entity_id: int) -> Optional[E]:
        for entity in self._slots.values():
            if entity is not None and entity.id == entity_id:
                return entity
        for entities in self._lists.values():
            for entity in entities:
                if entity.id == entity_id:
                    return entity
        return None

    def snapshot(self) -> dict[str, Any]:
        return {
            "lists": {name: list(items) for name, items in self._lists.items()},
            "slots": dict(self._slots),
        }

    # ── Writes ─────────────────────────────────────────────────────

    def set_list(self, name: str, entities: list[E]) -> None:
        self._lists[name] = list(entities)

    def set_slot(self, name: str, entity: Optional[E]) -> None:
        self._slots[name] = entity

    def replace(self, entity: E) -> int:
        """Replace every copy of entity (by id). Returns how many were replaced."""
        replaced = 0
        for name, entities in self._lists.items():
            for index, existing in enumerate(entities):
                if existing.id == entity.id:
                    entities[index] = entity
                    replaced += 1
        for name, existing in self._slots.items():
            if existing is not None and existing.id == entity.id:
                self._slots[name] = entity
                replaced += 1
        return replaced

    def remove(self, entity_id: int) -> int:
        """Drop entity_id from every list and slot. Returns how many were removed."""
        removed = 0
        for name, entities in self._lists.items():
            kept = [e for e in entities if e.id != entity_id]
            removed += len(entities) - len(kept)
            self._lists[name] = kept
        for name, existing in self._slots.items():
            if existing is not None and existing.id == entity_id:
                self._slots[name] = None
                removed += 1
        return removed

    def append(self, name: str, entity: E) -> None:
        self._lists[name].append(entity)


class OrderViewState(ViewState[Order]):
    """
    Lists:
        available — READY orders offered to delivery partners
        mine      — the partner's own orders
        admin     — the admin order board
    Slots:
        assigned  — the order the partner is currently delivering
        current   — the order open on a detail screen
    """

    LISTS = ("available", "mine", "admin")
    SLOTS = ("assigned", "current")

    @property
    def assigned_order(self) -> Optional[Order]:
        return self.get_slot("assigned")

    def accept_order(self, order: Order) -> None:
        """Partner took the order: it leaves 'available' and becomes assigned."""
        self._lists["available"] = [o for o in self._lists["available"] if o.id != order.id]
        self.replace(order)
        if not any(o.id == order.id for o in self._lists["mine"]):
            self._lists["mine"].insert(0, order)
        self._slots["assigned"] = order


class MenuViewState(ViewState[Any]):
    """Lists: categories, items. Categories and items have separate id spaces."""

    LISTS = ("categories", "items")

    def list_for(self, entity: Any) -> str:
        if isinstance(entity, Category):
            return "categories"
        if isinstance(entity, MenuItem):
            return "items"
        raise TypeError(f"Not a menu entity: {type(entity).__name__}")

    def replace(self, entity: Any) -> int:
        name = self.list_for(entity)
        entities = self._lists[name]
        for index, existing in enumerate(entities):
            if existing.id == entity.id:
                entities[index] = entity
                return 1
        return 0

    def remove_from(self, name: str, entity_id: int) -> int:
        entities = self._lists[name]
        kept = [e for e in entities if e.id != entity_id]
        self._lists[name] = kept
        return len(entities) - len(kept)


class ViewStateSynchronizer(Generic[E]):
    """Runs mutations against a ViewState with confirm-or-discard semantics."""

    def __init__(self, state: ViewState):
        self.state = state
        # {(entity type, id): pending copy}
        self._provisional: dict[tuple[type, int], E] = {}

    def provisional(self, entity_type: type, entity_id: int) -> Optional[E]:
        """The pending, unconfirmed version of an entity, if any."""
        return self._provisional.get((entity_type, entity_id))

    async def _run(self, request: Callable[[], Awaitable[Any]], provisional: Optional[E]) -> Any:
        key = (type(provisional), provisional.id) if provisional is not None else None
        if key is not None:
            self._provisional[key] = provisional
        self.state.is_loading = True
        try:
            result = await request()
        except Exception as e:
            self.state.error = getattr(e, "message", None) or str(e)
            raise
        else:
            self.state.error = None
            return result
        finally:
            self.state.is_loading = False
            if key is not None:
                self._provisional.pop(key, None)

    async def load(self, request: Callable[[], Awaitable[Any]]) -> Any:
        """Read-only call with loading/error bookkeeping; entities untouched."""
        return await self._run(request, None)

    async def replace(self, request: Callable[[], Awaitable[E]], provisional: Optional[E] = None) -> E:
        """Mutation whose response is the updated entity (accept, toggle, ...)."""
        entity = await self._run(request, provisional)
        if self.state.replace(entity) == 0:
            logger.debug(f"{type(entity).__name__} {entity.id} not in view state; nothing to replace")
        return entity

    async def append(self, request: Callable[[], Awaitable[E]], list_name: str) -> E:
        """Mutation that creates an entity (create category / item)."""
        entity = await self._run(request, None)
        self.state.append(list_name, entity)
        return entity

    async def remove(
        self,
        request: Callable[[], Awaitable[Any]],
        entity_id: int,
        list_name: Optional[str] = None,
    ) -> None:
        """Mutation that deletes an entity; removed only after the server confirms."""
        await self._run(request, None)
        if list_name is not None and isinstance(self.state, MenuViewState):
            removed = self.state.remove_from(list_name, entity_id)
        else:
            removed = self.state.remove(entity_id)
        if removed == 0:
            logger.debug(f"Entity {entity_id} not in view state; nothing to remove")
