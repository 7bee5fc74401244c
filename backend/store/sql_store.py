"""
Async SQLAlchemy store over the Supabase Postgres database.
Each method runs in its own session and commits before publishing a change event.
"""
from sqlalchemy import select, update, delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Callable, Dict, Iterable, List, Optional
import logging
import uuid

from models import Profile, Product, Order, Feedback
from store.base import MarketplaceStore
from store.records import ProfileRecord, ProductRecord, OrderRecord, FeedbackRecord
from utils.change_feed import ChangeFeed, ChangeEvent
from utils.response_helpers import safe_model_validate, safe_model_validate_list

logger = logging.getLogger(__name__)


def _as_uuid(value) -> Optional[uuid.UUID]:
    try:
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
    except ValueError:
        return None


class SqlStore(MarketplaceStore):

    def __init__(self, session_factory: Callable[[], AsyncSession], feed: Optional[ChangeFeed] = None):
        self._session_factory = session_factory
        self.feed = feed

    def _publish(self, table: str, event_type: str, record):
        if self.feed is not None:
            self.feed.publish(ChangeEvent(table, event_type, record.model_dump(mode="json")))

    async def _insert(self, model_class, record_class, table: str, values: Dict[str, Any]):
        async with self._session_factory() as db:
            row = model_class(**values)
            db.add(row)
            await db.commit()
            await db.refresh(row)
            record = safe_model_validate(record_class, row)
        self._publish(table, "INSERT", record)
        return record

    # Profiles

    async def get_profile(self, user_id: str) -> Optional[ProfileRecord]:
        user_uuid = _as_uuid(user_id)
        if user_uuid is None:
            return None
        async with self._session_factory() as db:
            result = await db.execute(select(Profile).where(Profile.user_id == user_uuid))
            profile = result.scalar_one_or_none()
            return safe_model_validate(ProfileRecord, profile) if profile else None

    async def get_profiles(self, user_ids: Iterable[str], user_role: Optional[str] = None) -> List[ProfileRecord]:
        user_uuids = [u for u in (_as_uuid(user_id) for user_id in set(user_ids)) if u is not None]
        if not user_uuids:
            return []
        query = select(Profile).where(Profile.user_id.in_(user_uuids))
        if user_role:
            query = query.where(Profile.user_role == user_role)
        async with self._session_factory() as db:
            result = await db.execute(query)
            return safe_model_validate_list(ProfileRecord, result.scalars().all())

    async def insert_profile(self, values: Dict[str, Any]) -> ProfileRecord:
        values = {**values, "user_id": _as_uuid(values["user_id"])}
        return await self._insert(Profile, ProfileRecord, "profiles", values)

    async def update_profile(self, user_id: str, changes: Dict[str, Any]) -> Optional[ProfileRecord]:
        user_uuid = _as_uuid(user_id)
        if user_uuid is None:
            return None
        async with self._session_factory() as db:
            result = await db.execute(
                update(Profile)
                .where(Profile.user_id == user_uuid)
                .values(**changes, updated_at=func.now())
                .returning(Profile)
                .execution_options(synchronize_session=False)
            )
            profile = result.scalar_one_or_none()
            await db.commit()
            record = safe_model_validate(ProfileRecord, profile) if profile else None
        if record:
            self._publish("profiles", "UPDATE", record)
        return record

    # Products

    async def get_product(self, product_id: str) -> Optional[ProductRecord]:
        product_uuid = _as_uuid(product_id)
        if product_uuid is None:
            return None
        async with self._session_factory() as db:
            result = await db.execute(select(Product).where(Product.id == product_uuid))
            product = result.scalar_one_or_none()
            return safe_model_validate(ProductRecord, product) if product else None

    async def get_products(self, product_ids: Iterable[str]) -> List[ProductRecord]:
        product_uuids = [p for p in (_as_uuid(product_id) for product_id in set(product_ids)) if p is not None]
        if not product_uuids:
            return []
        async with self._session_factory() as db:
            result = await db.execute(select(Product).where(Product.id.in_(product_uuids)))
            return safe_model_validate_list(ProductRecord, result.scalars().all())

    async def list_available_products(self) -> List[ProductRecord]:
        async with self._session_factory() as db:
            result = await db.execute(
                select(Product)
                .where(Product.is_available == True)
                .order_by(Product.created_at.desc())
            )
            return safe_model_validate_list(ProductRecord, result.scalars().all())

    async def list_supplier_products(self, supplier_id: str) -> List[ProductRecord]:
        supplier_uuid = _as_uuid(supplier_id)
        if supplier_uuid is None:
            return []
        async with self._session_factory() as db:
            result = await db.execute(
                select(Product)
                .where(Product.supplier_id == supplier_uuid)
                .order_by(Product.created_at.desc())
            )
            return safe_model_validate_list(ProductRecord, result.scalars().all())

    async def insert_product(self, values: Dict[str, Any]) -> ProductRecord:
        values = {**values, "supplier_id": _as_uuid(values["supplier_id"])}
        return await self._insert(Product, ProductRecord, "products", values)

    async def _update_product_where(self, product_uuid: uuid.UUID, criteria: list, values: Dict[str, Any]) -> Optional[ProductRecord]:
        async with self._session_factory() as db:
            result = await db.execute(
                update(Product)
                .where(Product.id == product_uuid, *criteria)
                .values(**values, updated_at=func.now())
                .returning(Product)
                .execution_options(synchronize_session=False)
            )
            product = result.scalar_one_or_none()
            await db.commit()
            record = safe_model_validate(ProductRecord, product) if product else None
        if record:
            self._publish("products", "UPDATE", record)
        return record

    async def update_product(self, product_id: str, changes: Dict[str, Any]) -> Optional[ProductRecord]:
        product_uuid = _as_uuid(product_id)
        if product_uuid is None:
            return None
        return await self._update_product_where(product_uuid, [], changes)

    async def delete_product(self, product_id: str) -> bool:
        product_uuid = _as_uuid(product_id)
        if product_uuid is None:
            return False
        async with self._session_factory() as db:
            result = await db.execute(
                delete(Product).where(Product.id == product_uuid).returning(Product.id)
            )
            deleted = result.scalar_one_or_none()
            await db.commit()
        if deleted is not None and self.feed is not None:
            self.feed.publish(ChangeEvent("products", "DELETE", {"id": str(deleted)}, {"id": str(deleted)}))
        return deleted is not None

    async def decrement_product_quantity(self, product_id: str, quantity: int) -> Optional[ProductRecord]:
        product_uuid = _as_uuid(product_id)
        if product_uuid is None:
            return None
        # SET expressions see the pre-update row, so is_available reflects the new quantity
        record = await self._update_product_where(
            product_uuid,
            [Product.is_available == True, Product.quantity >= quantity],
            {
                "quantity": Product.quantity - quantity,
                "is_available": (Product.quantity - quantity) > 0,
            }
        )
        if record is None:
            logger.info(f"Conditional decrement of {quantity} matched no row for product {product_id}")
        return record

    async def restore_product_quantity(self, product_id: str, quantity: int) -> Optional[ProductRecord]:
        product_uuid = _as_uuid(product_id)
        if product_uuid is None:
            return None
        return await self._update_product_where(
            product_uuid,
            [],
            {"quantity": Product.quantity + quantity, "is_available": or_(Product.is_available, Product.quantity == 0)}
        )

    # Orders

    async def insert_order(self, values: Dict[str, Any]) -> OrderRecord:
        values = {
            **values,
            "vendor_id": _as_uuid(values["vendor_id"]),
            "supplier_id": _as_uuid(values["supplier_id"]),
            "product_id": _as_uuid(values["product_id"]),
        }
        return await self._insert(Order, OrderRecord, "orders", values)

    async def get_order(self, order_id: str) -> Optional[OrderRecord]:
        order_uuid = _as_uuid(order_id)
        if order_uuid is None:
            return None
        async with self._session_factory() as db:
            result = await db.execute(select(Order).where(Order.id == order_uuid))
            order = result.scalar_one_or_none()
            return safe_model_validate(OrderRecord, order) if order else None

    async def list_orders(self, vendor_id: Optional[str] = None, supplier_id: Optional[str] = None) -> List[OrderRecord]:
        query = select(Order)
        if vendor_id is not None:
            query = query.where(Order.vendor_id == _as_uuid(vendor_id))
        if supplier_id is not None:
            query = query.where(Order.supplier_id == _as_uuid(supplier_id))
        async with self._session_factory() as db:
            result = await db.execute(query.order_by(Order.created_at.desc()))
            return safe_model_validate_list(OrderRecord, result.scalars().all())

    async def update_order_status(self, order_id: str, status: str, expected_status: Optional[str] = None) -> Optional[OrderRecord]:
        order_uuid = _as_uuid(order_id)
        if order_uuid is None:
            return None
        criteria = [Order.id == order_uuid]
        if expected_status is not None:
            criteria.append(Order.status == expected_status)
        async with self._session_factory() as db:
            result = await db.execute(
                update(Order)
                .where(*criteria)
                .values(status=status, updated_at=func.now())
                .returning(Order)
                .execution_options(synchronize_session=False)
            )
            order = result.scalar_one_or_none()
            await db.commit()
            record = safe_model_validate(OrderRecord, order) if order else None
        if record:
            self._publish("orders", "UPDATE", record)
        return record

    # Feedback

    async def insert_feedback(self, values: Dict[str, Any]) -> FeedbackRecord:
        values = {
            **values,
            "vendor_id": _as_uuid(values["vendor_id"]),
            "supplier_id": _as_uuid(values["supplier_id"]),
            "product_id": _as_uuid(values["product_id"]),
        }
        return await self._insert(Feedback, FeedbackRecord, "feedbacks", values)

    async def list_feedback(self, supplier_id: Optional[str] = None, product_id: Optional[str] = None) -> List[FeedbackRecord]:
        query = select(Feedback)
        if supplier_id is not None:
            query = query.where(Feedback.supplier_id == _as_uuid(supplier_id))
        if product_id is not None:
            query = query.where(Feedback.product_id == _as_uuid(product_id))
        async with self._session_factory() as db:
            result = await db.execute(query.order_by(Feedback.created_at.desc()))
            return safe_model_validate_list(FeedbackRecord, result.scalars().all())
