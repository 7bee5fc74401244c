from store.base import MarketplaceStore
from store.records import OrderRecord, ProductRecord
from utils.errors import (
    Forbidden, InsufficientStock, OrderNotFound, PersistenceError,
    ProductNotFound, ValidationError
)
from utils.session import SessionContext, require_session
from .schemas import (
    OrderStatus, VendorOrderResponse, SupplierOrderResponse, OrderSummaryResponse
)
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
import logging

logger = logging.getLogger(__name__)

ALLOWED_STATUS_TRANSITIONS = {
    OrderStatus.PENDING.value: {OrderStatus.ACCEPTED.value, OrderStatus.REJECTED.value},
    OrderStatus.ACCEPTED.value: {OrderStatus.COMPLETED.value},
}


class OrderHelpers:
    """Order placement, order history and order status management"""

    async def place_order(
        self,
        store: MarketplaceStore,
        session: Optional[SessionContext],
        product_id: str,
        quantity: int,
        notes: Optional[str] = None
    ) -> OrderRecord:
        """
        Create a pending order and take its quantity out of the product's stock.

        Stock is taken with the store's conditional decrement, so two orders
        racing for the same units can never both succeed. The order row is
        written afterwards; if that fails the units are put back.
        """
        session = require_session(session)
        if not session.is_vendor:
            raise Forbidden("Only vendors can place orders")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("Quantity must be a positive whole number")

        product = await self._read_product(store, product_id)
        if product is None:
            raise ProductNotFound(product_id)
        if not product.is_available:
            raise InsufficientStock(product_id, quantity, 0, product.unit)
        if product.quantity < quantity:
            raise InsufficientStock(product_id, quantity, product.quantity, product.unit)

        try:
            updated = await store.decrement_product_quantity(product_id, quantity)
        except Exception as e:
            logger.error(f"Stock decrement failed for product {product_id}: {str(e)}")
            raise PersistenceError(step="decrement_product", message="Failed to update product stock")

        if updated is None:
            # Another order took the stock between the read and the decrement
            latest = await self._read_product(store, product_id)
            available = latest.quantity if latest and latest.is_available else 0
            logger.info(f"Order for {quantity} of {product_id} lost the race, {available} left")
            raise InsufficientStock(product_id, quantity, available, product.unit)

        order_data = {
            "vendor_id": session.user_id,
            "supplier_id": updated.supplier_id,
            "product_id": updated.id,
            "quantity_requested": quantity,
            "total_amount": updated.price * quantity,
            "status": OrderStatus.PENDING.value,
            "notes": notes.strip() if notes and notes.strip() else None,
        }

        try:
            order = await store.insert_order(order_data)
        except Exception as e:
            logger.error(f"Order insert failed for product {product_id}, restoring stock: {str(e)}")
            try:
                await store.restore_product_quantity(product_id, quantity)
            except Exception as restore_error:
                logger.error(f"Failed to restore {quantity} units of product {product_id}: {str(restore_error)}")
            raise PersistenceError(step="insert_order", message="Failed to place order")

        logger.info(f"Vendor {session.user_id} placed order {order.id} for {quantity} {updated.unit} of {updated.id}")
        return order

    async def list_vendor_orders(self, store: MarketplaceStore, session: Optional[SessionContext]) -> List[VendorOrderResponse]:
        """Orders placed by the vendor, newest first, with product and supplier names"""
        session = require_session(session)
        orders = await self._list_orders(store, vendor_id=session.user_id)

        products_by_id = await self._products_by_id(store, (order.product_id for order in orders))
        profiles_by_user = await self._profiles_by_user(store, (order.supplier_id for order in orders))

        history = []
        for order in orders:
            product = products_by_id.get(order.product_id)
            supplier = profiles_by_user.get(order.supplier_id)
            entry = VendorOrderResponse(**order.model_dump())
            if product:
                entry.product_name = product.name
                entry.product_category = product.category
            if supplier and supplier.full_name:
                entry.supplier_name = supplier.full_name
            history.append(entry)

        return history

    async def list_supplier_orders(self, store: MarketplaceStore, session: Optional[SessionContext]) -> List[SupplierOrderResponse]:
        """Orders addressed to the supplier, newest first, with product and vendor details"""
        session = require_session(session)
        orders = await self._list_orders(store, supplier_id=session.user_id)

        products_by_id = await self._products_by_id(store, (order.product_id for order in orders))
        profiles_by_user = await self._profiles_by_user(store, (order.vendor_id for order in orders))

        history = []
        for order in orders:
            product = products_by_id.get(order.product_id)
            vendor = profiles_by_user.get(order.vendor_id)
            entry = SupplierOrderResponse(**order.model_dump())
            if product:
                entry.product_name = product.name
                entry.product_category = product.category
            if vendor:
                entry.vendor_name = vendor.full_name or entry.vendor_name
                entry.vendor_location = vendor.location or entry.vendor_location
            history.append(entry)

        return history

    async def update_order_status(
        self,
        store: MarketplaceStore,
        session: Optional[SessionContext],
        order_id: str,
        new_status: str
    ) -> OrderRecord:
        session = require_session(session)
        if not session.is_supplier:
            raise Forbidden("Only suppliers can update order status")

        valid_statuses = {status.value for status in OrderStatus}
        if new_status not in valid_statuses:
            raise ValidationError(f"Unknown order status '{new_status}'")

        order = await store.get_order(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        if order.supplier_id != session.user_id:
            logger.warning(f"Supplier {session.user_id} tried to update order {order_id} of supplier {order.supplier_id}")
            raise Forbidden("You can only update your own orders")

        if new_status not in ALLOWED_STATUS_TRANSITIONS.get(order.status, set()):
            raise ValidationError(f"Cannot change order status from {order.status} to {new_status}")

        try:
            updated = await store.update_order_status(order_id, new_status, expected_status=order.status)
        except Exception as e:
            logger.error(f"Failed to update status of order {order_id}: {str(e)}")
            raise PersistenceError(step="update_order_status", message="Failed to update order status")
        if updated is None:
            # The order changed status after it was read
            latest = await store.get_order(order_id)
            if latest is None:
                raise OrderNotFound(order_id)
            logger.info(f"Order {order_id} moved to {latest.status} before it could become {new_status}")
            raise ValidationError(f"Cannot change order status from {latest.status} to {new_status}")

        logger.info(f"Order {order_id} moved from {order.status} to {new_status}")
        return updated

    async def supplier_summary(self, store: MarketplaceStore, session: Optional[SessionContext]) -> OrderSummaryResponse:
        session = require_session(session)
        if not session.is_supplier:
            raise Forbidden("Only suppliers have an order summary")

        orders = await self._list_orders(store, supplier_id=session.user_id)
        counts = {status.value: 0 for status in OrderStatus}
        revenue = Decimal("0")
        for order in orders:
            counts[order.status] = counts.get(order.status, 0) + 1
            if order.status == OrderStatus.COMPLETED.value:
                revenue += order.total_amount

        return OrderSummaryResponse(
            pending_orders=counts[OrderStatus.PENDING.value],
            accepted_orders=counts[OrderStatus.ACCEPTED.value],
            completed_orders=counts[OrderStatus.COMPLETED.value],
            total_revenue=revenue
        )

    async def _read_product(self, store: MarketplaceStore, product_id: str) -> Optional[ProductRecord]:
        try:
            return await store.get_product(product_id)
        except Exception as e:
            logger.error(f"Error reading product {product_id}: {str(e)}")
            raise PersistenceError(step="read_product", message="Failed to fetch product information")

    async def _list_orders(self, store: MarketplaceStore, **owner: Any) -> List[OrderRecord]:
        try:
            return await store.list_orders(**owner)
        except Exception as e:
            logger.error(f"Error fetching orders for {owner}: {str(e)}")
            raise PersistenceError(step="list_orders", message="Failed to load orders")

    async def _products_by_id(self, store: MarketplaceStore, product_ids: Iterable[str]) -> Dict[str, ProductRecord]:
        product_ids = set(product_ids)
        if not product_ids:
            return {}
        try:
            products = await store.get_products(product_ids)
        except Exception as e:
            logger.warning(f"Error fetching products for order history, using placeholders: {str(e)}")
            return {}
        return {product.id: product for product in products}

    async def _profiles_by_user(self, store: MarketplaceStore, user_ids: Iterable[str]) -> Dict[str, Any]:
        user_ids = set(user_ids)
        if not user_ids:
            return {}
        try:
            profiles = await store.get_profiles(user_ids)
        except Exception as e:
            logger.warning(f"Error fetching profiles for order history, using placeholders: {str(e)}")
            return {}
        return {profile.user_id: profile for profile in profiles}

order_helpers = OrderHelpers()
