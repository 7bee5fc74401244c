"""
Store backed by Supabase PostgREST tables.
Stock changes go through the decrement_product_quantity / restore_product_quantity
Postgres functions created by the initial migration, since PostgREST updates
cannot express `quantity = quantity - n`.
"""
from datetime import datetime
from decimal import Decimal
from supabase import AsyncClient
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional
import logging
import uuid

from store.base import MarketplaceStore
from store.records import ProfileRecord, ProductRecord, OrderRecord, FeedbackRecord

logger = logging.getLogger(__name__)


def _jsonable(values: Dict[str, Any]) -> Dict[str, Any]:
    clean = {}
    for key, value in values.items():
        if isinstance(value, Decimal):
            value = str(value)
        elif isinstance(value, datetime):
            value = value.isoformat()
        elif value is not None and key.endswith("id"):
            value = str(value)
        clean[key] = value
    return clean


def _is_uuid(value) -> bool:
    # uuid columns reject anything else with an APIError instead of matching no rows
    try:
        uuid.UUID(str(value))
        return True
    except ValueError:
        return False


def _first(response):
    return response.data[0] if response.data else None


class SupabaseStore(MarketplaceStore):

    def __init__(self, client_factory: Callable[[], Awaitable[AsyncClient]]):
        self._client_factory = client_factory

    async def _table(self, name: str):
        client = await self._client_factory()
        return client.table(name)

    # Profiles

    async def get_profile(self, user_id: str) -> Optional[ProfileRecord]:
        table = await self._table("profiles")
        row = _first(await table.select("*").eq("user_id", str(user_id)).limit(1).execute())
        return ProfileRecord.model_validate(row) if row else None

    async def get_profiles(self, user_ids: Iterable[str], user_role: Optional[str] = None) -> List[ProfileRecord]:
        ids = sorted({str(user_id) for user_id in user_ids})
        if not ids:
            return []
        table = await self._table("profiles")
        query = table.select("*").in_("user_id", ids)
        if user_role:
            query = query.eq("user_role", user_role)
        response = await query.execute()
        return [ProfileRecord.model_validate(row) for row in response.data or []]

    async def insert_profile(self, values: Dict[str, Any]) -> ProfileRecord:
        table = await self._table("profiles")
        return ProfileRecord.model_validate(_first(await table.insert(_jsonable(values)).execute()))

    async def update_profile(self, user_id: str, changes: Dict[str, Any]) -> Optional[ProfileRecord]:
        table = await self._table("profiles")
        row = _first(await table.update(_jsonable(changes)).eq("user_id", str(user_id)).execute())
        return ProfileRecord.model_validate(row) if row else None

    # Products

    async def get_product(self, product_id: str) -> Optional[ProductRecord]:
        if not _is_uuid(product_id):
            return None
        table = await self._table("products")
        row = _first(await table.select("*").eq("id", str(product_id)).limit(1).execute())
        return ProductRecord.model_validate(row) if row else None

    async def get_products(self, product_ids: Iterable[str]) -> List[ProductRecord]:
        ids = sorted({str(product_id) for product_id in product_ids if _is_uuid(product_id)})
        if not ids:
            return []
        table = await self._table("products")
        response = await table.select("*").in_("id", ids).execute()
        return [ProductRecord.model_validate(row) for row in response.data or []]

    async def list_available_products(self) -> List[ProductRecord]:
        table = await self._table("products")
        response = await table.select("*").eq("is_available", True).order("created_at", desc=True).execute()
        return [ProductRecord.model_validate(row) for row in response.data or []]

    async def list_supplier_products(self, supplier_id: str) -> List[ProductRecord]:
        table = await self._table("products")
        response = await table.select("*").eq("supplier_id", str(supplier_id)).order("created_at", desc=True).execute()
        return [ProductRecord.model_validate(row) for row in response.data or []]

    async def insert_product(self, values: Dict[str, Any]) -> ProductRecord:
        table = await self._table("products")
        return ProductRecord.model_validate(_first(await table.insert(_jsonable(values)).execute()))

    async def update_product(self, product_id: str, changes: Dict[str, Any]) -> Optional[ProductRecord]:
        if not _is_uuid(product_id):
            return None
        table = await self._table("products")
        row = _first(await table.update(_jsonable(changes)).eq("id", str(product_id)).execute())
        return ProductRecord.model_validate(row) if row else None

    async def delete_product(self, product_id: str) -> bool:
        if not _is_uuid(product_id):
            return False
        table = await self._table("products")
        response = await table.delete().eq("id", str(product_id)).execute()
        return bool(response.data)

    async def _stock_rpc(self, function: str, product_id: str, quantity: int) -> Optional[ProductRecord]:
        if not _is_uuid(product_id):
            return None
        client = await self._client_factory()
        response = await client.rpc(function, {"p_product_id": str(product_id), "p_quantity": quantity}).execute()
        row = _first(response)
        return ProductRecord.model_validate(row) if row else None

    async def decrement_product_quantity(self, product_id: str, quantity: int) -> Optional[ProductRecord]:
        record = await self._stock_rpc("decrement_product_quantity", product_id, quantity)
        if record is None:
            logger.info(f"Conditional decrement of {quantity} matched no row for product {product_id}")
        return record

    async def restore_product_quantity(self, product_id: str, quantity: int) -> Optional[ProductRecord]:
        return await self._stock_rpc("restore_product_quantity", product_id, quantity)

    # Orders

    async def insert_order(self, values: Dict[str, Any]) -> OrderRecord:
        table = await self._table("orders")
        return OrderRecord.model_validate(_first(await table.insert(_jsonable(values)).execute()))

    async def get_order(self, order_id: str) -> Optional[OrderRecord]:
        if not _is_uuid(order_id):
            return None
        table = await self._table("orders")
        row = _first(await table.select("*").eq("id", str(order_id)).limit(1).execute())
        return OrderRecord.model_validate(row) if row else None

    async def list_orders(self, vendor_id: Optional[str] = None, supplier_id: Optional[str] = None) -> List[OrderRecord]:
        table = await self._table("orders")
        query = table.select("*")
        if vendor_id is not None:
            query = query.eq("vendor_id", str(vendor_id))
        if supplier_id is not None:
            query = query.eq("supplier_id", str(supplier_id))
        response = await query.order("created_at", desc=True).execute()
        return [OrderRecord.model_validate(row) for row in response.data or []]

    async def update_order_status(self, order_id: str, status: str, expected_status: Optional[str] = None) -> Optional[OrderRecord]:
        if not _is_uuid(order_id):
            return None
        table = await self._table("orders")
        query = table.update({"status": status}).eq("id", str(order_id))
        if expected_status is not None:
            query = query.eq("status", expected_status)
        row = _first(await query.execute())
        return OrderRecord.model_validate(row) if row else None

    # Feedback

    async def insert_feedback(self, values: Dict[str, Any]) -> FeedbackRecord:
        table = await self._table("feedbacks")
        return FeedbackRecord.model_validate(_first(await table.insert(_jsonable(values)).execute()))

    async def list_feedback(self, supplier_id: Optional[str] = None, product_id: Optional[str] = None) -> List[FeedbackRecord]:
        if product_id is not None and not _is_uuid(product_id):
            return []
        table = await self._table("feedbacks")
        query = table.select("*")
        if supplier_id is not None:
            query = query.eq("supplier_id", str(supplier_id))
        if product_id is not None:
            query = query.eq("product_id", str(product_id))
        response = await query.order("created_at", desc=True).execute()
        return [FeedbackRecord.model_validate(row) for row in response.data or []]
