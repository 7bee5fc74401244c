import asyncio
import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, patch

from conftest import VENDOR_ID, OTHER_VENDOR_ID, SUPPLIER_ID, add_product
from routers.orders.helpers import order_helpers
from utils.errors import (
    Forbidden, InsufficientStock, NotAuthenticated, PersistenceError,
    ProductNotFound, ValidationError
)
from utils.session import SessionContext


class TestPlaceOrder:

    async def test_success_decrements_stock(self, store, make_product, vendor_session):
        product = await make_product(quantity=10, price=Decimal("40.00"))

        order = await order_helpers.place_order(store, vendor_session, product.id, 4)

        assert order.status == "pending"
        assert order.vendor_id == VENDOR_ID
        assert order.supplier_id == SUPPLIER_ID
        assert order.quantity_requested == 4
        assert order.total_amount == Decimal("160.00")

        updated = await store.get_product(product.id)
        assert updated.quantity == 6
        assert updated.is_available is True

    async def test_taking_last_units_marks_unavailable(self, store, make_product, vendor_session):
        product = await make_product(quantity=5)

        await order_helpers.place_order(store, vendor_session, product.id, 5)

        updated = await store.get_product(product.id)
        assert updated.quantity == 0
        assert updated.is_available is False
        assert await store.list_available_products() == []

    async def test_insufficient_stock_leaves_everything_untouched(self, store, make_product, vendor_session):
        product = await make_product(quantity=3, unit="kg")

        with pytest.raises(InsufficientStock) as exc_info:
            await order_helpers.place_order(store, vendor_session, product.id, 5)

        assert exc_info.value.requested == 5
        assert exc_info.value.available == 3
        assert exc_info.value.message == "Only 3 kg available"
        assert (await store.get_product(product.id)).quantity == 3
        assert await store.list_orders(vendor_id=VENDOR_ID) == []

    async def test_unavailable_product_reports_zero_available(self, store, make_product, vendor_session):
        product = await make_product(quantity=8, is_available=False)

        with pytest.raises(InsufficientStock) as exc_info:
            await order_helpers.place_order(store, vendor_session, product.id, 1)

        assert exc_info.value.available == 0
        assert (await store.get_product(product.id)).quantity == 8

    async def test_missing_product(self, store, vendor_session):
        with pytest.raises(ProductNotFound):
            await order_helpers.place_order(store, vendor_session, "does-not-exist", 1)

    async def test_requires_session(self, store, make_product):
        product = await make_product()

        with pytest.raises(NotAuthenticated):
            await order_helpers.place_order(store, None, product.id, 1)

    async def test_suppliers_cannot_order(self, store, make_product, supplier_session):
        product = await make_product()

        with pytest.raises(Forbidden):
            await order_helpers.place_order(store, supplier_session, product.id, 1)

    @pytest.mark.parametrize("quantity", [0, -3, 1.5, True])
    async def test_rejects_non_positive_quantities(self, store, make_product, vendor_session, quantity):
        product = await make_product(quantity=10)

        with pytest.raises(ValidationError):
            await order_helpers.place_order(store, vendor_session, product.id, quantity)

        assert (await store.get_product(product.id)).quantity == 10

    async def test_total_is_snapshot_of_price_at_order_time(self, store, make_product, vendor_session):
        product = await make_product(quantity=10, price=Decimal("25.50"))
        order = await order_helpers.place_order(store, vendor_session, product.id, 2)

        await store.update_product(product.id, {"price": Decimal("99.00")})

        stored = await store.get_order(order.id)
        assert stored.total_amount == Decimal("51.00")

    async def test_notes_are_trimmed(self, store, make_product, vendor_session):
        product = await make_product()

        with_notes = await order_helpers.place_order(store, vendor_session, product.id, 1, "  deliver by 7am  ")
        blank_notes = await order_helpers.place_order(store, vendor_session, product.id, 1, "   ")

        assert with_notes.notes == "deliver by 7am"
        assert blank_notes.notes is None

    async def test_stock_never_goes_negative(self, store, make_product, vendor_session):
        product = await make_product(quantity=7)

        for quantity in (3, 5, 2, 4, 1, 1):
            try:
                await order_helpers.place_order(store, vendor_session, product.id, quantity)
            except InsufficientStock:
                pass
            assert (await store.get_product(product.id)).quantity >= 0

        final = await store.get_product(product.id)
        assert final.quantity == 0
        assert final.is_available is False


class TestConcurrentPlacement:

    async def test_only_one_of_two_oversubscribed_orders_succeeds(self, yielding_store):
        product = await add_product(yielding_store, quantity=10)
        first = SessionContext(user_id=VENDOR_ID, role="vendor")
        second = SessionContext(user_id=OTHER_VENDOR_ID, role="vendor")
        decrement = AsyncMock(wraps=yielding_store.decrement_product_quantity)

        with patch.object(yielding_store, "decrement_product_quantity", decrement):
            results = await asyncio.gather(
                order_helpers.place_order(yielding_store, first, product.id, 7),
                order_helpers.place_order(yielding_store, second, product.id, 6),
                return_exceptions=True
            )

        # Both requests passed the stock check before either one took stock
        assert decrement.await_count == 2

        succeeded = [result for result in results if not isinstance(result, Exception)]
        failed = [result for result in results if isinstance(result, Exception)]
        assert len(succeeded) == 1
        assert len(failed) == 1
        assert isinstance(failed[0], InsufficientStock)
        assert failed[0].available == 10 - succeeded[0].quantity_requested

        remaining = (await yielding_store.get_product(product.id)).quantity
        assert remaining == 10 - succeeded[0].quantity_requested
        assert len(await yielding_store.list_orders(supplier_id=SUPPLIER_ID)) == 1

    async def test_both_succeed_when_stock_covers_both(self, yielding_store):
        product = await add_product(yielding_store, quantity=10)
        first = SessionContext(user_id=VENDOR_ID, role="vendor")
        second = SessionContext(user_id=OTHER_VENDOR_ID, role="vendor")

        await asyncio.gather(
            order_helpers.place_order(yielding_store, first, product.id, 4),
            order_helpers.place_order(yielding_store, second, product.id, 6),
        )

        updated = await yielding_store.get_product(product.id)
        assert updated.quantity == 0
        assert updated.is_available is False
        assert len(await yielding_store.list_orders(supplier_id=SUPPLIER_ID)) == 2

    async def test_lost_race_after_stock_check(self, store, make_product, vendor_session):
        product = await make_product(quantity=5)
        stale = await store.get_product(product.id)

        # Another order takes the stock between the read and the decrement
        await store.decrement_product_quantity(product.id, 4)

        with patch.object(store, "get_product", AsyncMock(side_effect=[stale, await store.get_product(product.id)])):
            with pytest.raises(InsufficientStock) as exc_info:
                await order_helpers.place_order(store, vendor_session, product.id, 3)

        assert exc_info.value.available == 1
        assert (await store.get_product(product.id)).quantity == 1
        assert await store.list_orders(vendor_id=VENDOR_ID) == []


class TestPersistenceFailures:

    async def test_failed_insert_restores_stock(self, store, make_product, vendor_session):
        product = await make_product(quantity=5)

        with patch.object(store, "insert_order", AsyncMock(side_effect=RuntimeError("connection reset"))):
            with pytest.raises(PersistenceError) as exc_info:
                await order_helpers.place_order(store, vendor_session, product.id, 5)

        assert exc_info.value.step == "insert_order"
        restored = await store.get_product(product.id)
        assert restored.quantity == 5
        assert restored.is_available is True
        assert await store.list_orders(vendor_id=VENDOR_ID) == []

    async def test_restore_keeps_product_hidden_by_supplier(self, store, make_product, vendor_session):
        product = await make_product(quantity=5)

        async def hide_then_fail(values):
            await store.update_product(product.id, {"is_available": False})
            raise RuntimeError("connection reset")

        with patch.object(store, "insert_order", AsyncMock(side_effect=hide_then_fail)):
            with pytest.raises(PersistenceError):
                await order_helpers.place_order(store, vendor_session, product.id, 2)

        restored = await store.get_product(product.id)
        assert restored.quantity == 5
        assert restored.is_available is False

    async def test_failed_decrement(self, store, make_product, vendor_session):
        product = await make_product(quantity=5)

        with patch.object(store, "decrement_product_quantity", AsyncMock(side_effect=RuntimeError("timeout"))):
            with pytest.raises(PersistenceError) as exc_info:
                await order_helpers.place_order(store, vendor_session, product.id, 2)

        assert exc_info.value.step == "decrement_product"
        assert (await store.get_product(product.id)).quantity == 5
        assert await store.list_orders(vendor_id=VENDOR_ID) == []

    async def test_failed_read(self, store, vendor_session):
        with patch.object(store, "get_product", AsyncMock(side_effect=RuntimeError("timeout"))):
            with pytest.raises(PersistenceError) as exc_info:
                await order_helpers.place_order(store, vendor_session, "any-product", 1)

        assert exc_info.value.step == "read_product"
