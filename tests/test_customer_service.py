"""
Tests for the customer side: cart, saved addresses, delivery area, reviews.
"""
import os, sys
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from decimal import Decimal

import pytest

from domain.constants import STORAGE_CART_ITEMS
from domain.enums import OrderStatus
from domain.errors import ValidationError
from models import MenuItem, SavedAddress
from services.customer_service import AddressBook, Cart, RestaurantConfig, ReviewService, is_within_delivery_area
from services.order_repository import CustomerOrderRepository

PANEER = MenuItem(id=1, name="Paneer Tikka", price=Decimal("250.00"))
NAAN = MenuItem(id=2, name="Butter Naan", price=Decimal("40.00"))
LASSI = MenuItem(id=3, name="Lassi", price=Decimal("60.50"))


@pytest.fixture
async def cart(storage) -> Cart:
    cart = Cart(storage)
    await cart.load()
    return cart


class TestCart:

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_total(self, cart):
        await cart.add(PANEER, 2)
        await cart.add(NAAN, 3)
        assert cart.total == Decimal("620.00")
        assert cart.item_count == 5

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_add_then_remove_restores_total(self, cart):
        await cart.add(PANEER, 1)
        await cart.add(NAAN, 2)
        before = cart.total
        await cart.add(LASSI, 3)
        await cart.remove(LASSI.id)
        assert cart.total == before

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_same_item_same_instructions_merges(self, cart):
        await cart.add(PANEER, 1, "extra spicy")
        await cart.add(PANEER, 2, "extra spicy")
        await cart.add(PANEER, 1)
        assert [(l.quantity, l.special_instructions) for l in cart.lines] == [(3, "extra spicy"), (1, "")]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_remove_single_line_by_instructions(self, cart):
        await cart.add(PANEER, 1, "extra spicy")
        await cart.add(PANEER, 1)
        await cart.remove(PANEER.id, "extra spicy")
        assert [l.special_instructions for l in cart.lines] == [""]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_update_quantity_zero_removes(self, cart):
        await cart.add(NAAN, 2)
        await cart.update_quantity(NAAN.id, 5)
        assert cart.lines[0].quantity == 5
        await cart.update_quantity(NAAN.id, 0)
        assert cart.is_empty()

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_update_instructions(self, cart):
        await cart.add(NAAN, 1)
        await cart.update_instructions(NAAN.id, "well done")
        assert cart.lines[0].special_instructions == "well done"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_invalid_additions(self, cart):
        with pytest.raises(ValidationError):
            await cart.add(PANEER, 0)
        with pytest.raises(ValidationError):
            await cart.add(MenuItem(id=9, name="Sold out", price="10", isAvailable=False))

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_persists_across_restart(self, cart, storage):
        await cart.add(LASSI, 2, "less sugar")
        reopened = Cart(storage)
        lines = await reopened.load()
        assert len(lines) == 1
        assert lines[0].unit_price == Decimal("60.50")
        assert lines[0].special_instructions == "less sugar"
        assert reopened.total == Decimal("121.00")

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_unreadable_lines_dropped_on_load(self, storage):
        await storage.set_json(STORAGE_CART_ITEMS, [{"menuItemId": 1, "price": "10", "quantity": 0}, {"junk": 1}])
        cart = Cart(storage)
        assert await cart.load() == []

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_clear(self, cart, storage):
        await cart.add(NAAN, 1)
        await cart.clear()
        assert cart.is_empty()
        assert await storage.get_json(STORAGE_CART_ITEMS) is None

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_checkout_minimum(self, cart):
        await cart.add(NAAN, 1)
        with pytest.raises(ValidationError) as exc_info:
            cart.validate_for_checkout(Decimal("100.00"))
        assert exc_info.value.code == "below_minimum"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_cart_cannot_check_out(self, storage):
        with pytest.raises(ValidationError):
            Cart(storage).validate_for_checkout(Decimal("0"))


class TestCheckout:

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_successful_checkout_clears_cart(self, cart, api_client):
        await cart.add(PANEER, 1)
        address = SavedAddress(id="a1", address="12 Abu Lane", city="Meerut")
        order = await cart.checkout(CustomerOrderRepository(api_client), address)
        assert order.status is OrderStatus.PLACED
        assert cart.is_empty()

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_out_of_area_keeps_cart(self, cart, api_client, backend):
        await cart.add(PANEER, 1)
        address = SavedAddress(id="a1", address="Connaught Place", city="New Delhi")
        with pytest.raises(ValidationError):
            await cart.checkout(CustomerOrderRepository(api_client), address)
        assert not cart.is_empty()
        assert backend.calls_to("/customer/orders") == 0

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_failed_placement_keeps_cart(self, cart, api_client, backend):
        await cart.add(PANEER, 1)
        backend.fail_next["/customer/orders"] = 400
        with pytest.raises(ValidationError):
            await cart.checkout(CustomerOrderRepository(api_client), SavedAddress(id="a1", address="x", city="Meerut"))
        assert len(cart.lines) == 1


class TestDeliveryArea:

    @pytest.mark.unit
    def test_city_match_is_case_insensitive(self):
        assert is_within_delivery_area("meerut cantt")
        assert not is_within_delivery_area("Ghaziabad")
        assert not is_within_delivery_area(None)

    @pytest.mark.unit
    def test_radius(self):
        config = RestaurantConfig()
        assert is_within_delivery_area("Meerut", 28.99, 77.71, config)
        # ~45 km south-west, still labelled Meerut
        assert not is_within_delivery_area("Meerut", 28.70, 77.40, config)

    @pytest.mark.unit
    def test_from_settings(self, test_settings):
        config = RestaurantConfig.from_settings(test_settings)
        assert config.min_order_amount == Decimal("100.00")
        assert config.delivery_city == "Meerut"


class TestAddressBook:

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_save_list_delete(self, storage):
        book = AddressBook(storage)
        home = await book.save("12 Abu Lane", "Meerut", label="Home", latitude=28.99, longitude=77.71)
        work = await book.save("Shastri Nagar", "Meerut", label="Work")
        assert [a.id for a in await book.list()] == [home.id, work.id]
        await book.delete(home.id)
        assert [a.label for a in await book.list()] == ["Work"]

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_blank_address_rejected(self, storage):
        with pytest.raises(ValidationError):
            await AddressBook(storage).save("   ", "Meerut")


class TestReviews:

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_submit_and_list(self, api_client):
        reviews = ReviewService(api_client)
        review = await reviews.submit(42, 5, "Great dal makhani")
        assert review.id is not None
        assert [r.order_id for r in await reviews.list_mine()] == [42]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_rating_out_of_range(self, api_client):
        with pytest.raises(ValidationError):
            await ReviewService(api_client).submit(42, 6)
