import asyncio
import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from conftest import VENDOR_ID, OTHER_VENDOR_ID, SUPPLIER_ID, OTHER_SUPPLIER_ID, add_product
from routers.orders.helpers import order_helpers
from utils.errors import Forbidden, NotAuthenticated, OrderNotFound, ValidationError
from utils.session import SessionContext


@pytest.fixture
def make_order(store):
    base_time = datetime(2025, 7, 1, 9, 0, tzinfo=timezone.utc)

    async def _make_order(product, vendor_id=VENDOR_ID, quantity=1, status="pending", minutes=0):
        return await store.insert_order({
            "vendor_id": vendor_id,
            "supplier_id": product.supplier_id,
            "product_id": product.id,
            "quantity_requested": quantity,
            "total_amount": product.price * quantity,
            "status": status,
            "created_at": base_time + timedelta(minutes=minutes),
        })
    return _make_order


class TestVendorHistory:

    async def test_newest_first_with_names(self, store, make_product, make_order, vendor_session):
        tomato = await make_product(name="Tomato", category="Vegetables")
        rice = await make_product(name="Rice", category="Grains", supplier_id=OTHER_SUPPLIER_ID)
        older = await make_order(tomato, minutes=0)
        newer = await make_order(rice, minutes=5)
        await make_order(tomato, vendor_id=OTHER_VENDOR_ID, minutes=10)

        history = await order_helpers.list_vendor_orders(store, vendor_session)

        assert [order.id for order in history] == [newer.id, older.id]
        assert history[0].product_name == "Rice"
        assert history[0].product_category == "Grains"
        assert history[0].supplier_name == "Grain House"
        assert history[1].supplier_name == "Fresh Farms"

    async def test_deleted_product_and_missing_supplier_use_placeholders(self, store, make_product, make_order, vendor_session):
        product = await make_product(supplier_id="66666666-6666-6666-6666-666666666666")
        await make_order(product)
        await store.delete_product(product.id)

        history = await order_helpers.list_vendor_orders(store, vendor_session)

        assert history[0].product_name == "Unknown Product"
        assert history[0].product_category == "Unknown"
        assert history[0].supplier_name == "Unknown Supplier"

    async def test_requires_session(self, store):
        with pytest.raises(NotAuthenticated):
            await order_helpers.list_vendor_orders(store, None)


class TestSupplierHistory:

    async def test_incoming_orders_with_vendor_details(self, store, make_product, make_order, supplier_session):
        product = await make_product()
        await make_order(product, vendor_id=VENDOR_ID, minutes=0)
        await make_order(product, vendor_id=OTHER_VENDOR_ID, minutes=1)
        other_product = await make_product(supplier_id=OTHER_SUPPLIER_ID)
        await make_order(other_product, minutes=2)

        history = await order_helpers.list_supplier_orders(store, supplier_session)

        assert len(history) == 2
        assert history[0].vendor_name == "Meena Dosa Corner"
        assert history[0].vendor_location == "Location not provided"
        assert history[1].vendor_name == "Ravi Chaatwala"
        assert history[1].vendor_location == "Dadar, Mumbai"

    async def test_unknown_vendor_placeholder(self, store, make_product, make_order, supplier_session):
        product = await make_product()
        await make_order(product, vendor_id="77777777-7777-7777-7777-777777777777")

        history = await order_helpers.list_supplier_orders(store, supplier_session)

        assert history[0].vendor_name == "Unknown Vendor"
        assert history[0].vendor_location == "Location not provided"


class TestOrderStatus:

    @pytest.mark.parametrize("start,target", [
        ("pending", "accepted"),
        ("pending", "rejected"),
        ("accepted", "completed"),
    ])
    async def test_allowed_transitions(self, store, make_product, make_order, supplier_session, start, target):
        order = await make_order(await make_product(), status=start)

        updated = await order_helpers.update_order_status(store, supplier_session, order.id, target)

        assert updated.status == target
        assert (await store.get_order(order.id)).status == target

    @pytest.mark.parametrize("start,target", [
        ("pending", "completed"),
        ("pending", "pending"),
        ("accepted", "rejected"),
        ("rejected", "accepted"),
        ("completed", "pending"),
    ])
    async def test_disallowed_transitions(self, store, make_product, make_order, supplier_session, start, target):
        order = await make_order(await make_product(), status=start)

        with pytest.raises(ValidationError):
            await order_helpers.update_order_status(store, supplier_session, order.id, target)

        assert (await store.get_order(order.id)).status == start

    async def test_unknown_status(self, store, make_product, make_order, supplier_session):
        order = await make_order(await make_product())

        with pytest.raises(ValidationError):
            await order_helpers.update_order_status(store, supplier_session, order.id, "shipped")

    async def test_other_suppliers_order(self, store, make_product, make_order):
        order = await make_order(await make_product(supplier_id=SUPPLIER_ID))
        other_supplier = SessionContext(user_id=OTHER_SUPPLIER_ID, role="supplier")

        with pytest.raises(Forbidden):
            await order_helpers.update_order_status(store, other_supplier, order.id, "accepted")

    async def test_vendor_cannot_change_status(self, store, make_product, make_order, vendor_session):
        order = await make_order(await make_product())

        with pytest.raises(Forbidden):
            await order_helpers.update_order_status(store, vendor_session, order.id, "accepted")

    async def test_missing_order(self, store, supplier_session):
        with pytest.raises(OrderNotFound):
            await order_helpers.update_order_status(store, supplier_session, "nope", "accepted")

    async def test_overlapping_updates_cannot_both_apply(self, yielding_store, supplier_session):
        product = await add_product(yielding_store)
        order = await yielding_store.insert_order({
            "vendor_id": VENDOR_ID,
            "supplier_id": product.supplier_id,
            "product_id": product.id,
            "quantity_requested": 1,
            "total_amount": product.price,
        })

        results = await asyncio.gather(
            order_helpers.update_order_status(yielding_store, supplier_session, order.id, "accepted"),
            order_helpers.update_order_status(yielding_store, supplier_session, order.id, "rejected"),
            return_exceptions=True
        )

        applied = [result for result in results if not isinstance(result, Exception)]
        assert len(applied) == 1
        assert isinstance(results[1], ValidationError)
        assert (await yielding_store.get_order(order.id)).status == applied[0].status == "accepted"

    async def test_store_skips_status_write_when_status_moved(self, store, make_product, make_order):
        order = await make_order(await make_product(), status="accepted")

        assert await store.update_order_status(order.id, "rejected", expected_status="pending") is None
        assert (await store.get_order(order.id)).status == "accepted"


class TestSupplierSummary:

    async def test_counts_and_completed_revenue(self, store, make_product, make_order, supplier_session):
        product = await make_product(price=Decimal("40.00"))
        await make_order(product, quantity=1, status="pending")
        await make_order(product, quantity=2, status="pending")
        await make_order(product, quantity=3, status="accepted")
        await make_order(product, quantity=4, status="completed")
        await make_order(product, quantity=5, status="completed")
        await make_order(product, quantity=6, status="rejected")
        await make_order(await make_product(supplier_id=OTHER_SUPPLIER_ID), quantity=9, status="completed")

        summary = await order_helpers.supplier_summary(store, supplier_session)

        assert summary.pending_orders == 2
        assert summary.accepted_orders == 1
        assert summary.completed_orders == 2
        assert summary.total_revenue == Decimal("360.00")

    async def test_empty_summary(self, store, supplier_session):
        summary = await order_helpers.supplier_summary(store, supplier_session)

        assert summary.pending_orders == 0
        assert summary.total_revenue == Decimal("0")
