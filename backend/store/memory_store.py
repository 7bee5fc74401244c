"""
In-memory store for local development and tests.
Each method runs without yielding to the event loop, so every call is atomic.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
import copy
import itertools
import uuid

from store.base import MarketplaceStore
from store.records import ProfileRecord, ProductRecord, OrderRecord, FeedbackRecord
from utils.change_feed import ChangeFeed, ChangeEvent


class MemoryStore(MarketplaceStore):

    def __init__(self, feed: Optional[ChangeFeed] = None):
        self.feed = feed
        self.profiles: Dict[str, Dict[str, Any]] = {}  # keyed by user_id
        self.products: Dict[str, Dict[str, Any]] = {}
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.feedbacks: Dict[str, Dict[str, Any]] = {}
        self._counter = itertools.count()
        self._positions: Dict[str, int] = {}

    def _new_row(self, values: Dict[str, Any]) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        row = copy.deepcopy(values)
        row["id"] = str(row.get("id") or uuid.uuid4())
        row.setdefault("created_at", now)
        row.setdefault("updated_at", row["created_at"])
        self._positions[row["id"]] = next(self._counter)
        return row

    def _newest_first(self, rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return sorted(rows, key=lambda row: (row["created_at"], self._positions[row["id"]]), reverse=True)

    def _publish(self, table: str, event_type: str, row: Dict[str, Any], old_row: Optional[Dict[str, Any]] = None):
        if self.feed is not None:
            self.feed.publish(ChangeEvent(table, event_type, copy.deepcopy(row), copy.deepcopy(old_row)))

    def _update(self, table: str, rows: Dict[str, Dict[str, Any]], key: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        row = rows.get(key)
        if row is None:
            return None
        old_row = copy.deepcopy(row)
        row.update(copy.deepcopy(changes))
        row["updated_at"] = datetime.now(timezone.utc)
        self._publish(table, "UPDATE", row, old_row)
        return row

    # Profiles

    async def get_profile(self, user_id: str) -> Optional[ProfileRecord]:
        row = self.profiles.get(str(user_id))
        return ProfileRecord.model_validate(copy.deepcopy(row)) if row else None

    async def get_profiles(self, user_ids: Iterable[str], user_role: Optional[str] = None) -> List[ProfileRecord]:
        wanted = {str(user_id) for user_id in user_ids}
        return [
            ProfileRecord.model_validate(copy.deepcopy(row))
            for user_id, row in self.profiles.items()
            if user_id in wanted and (user_role is None or row["user_role"] == user_role)
        ]

    async def insert_profile(self, values: Dict[str, Any]) -> ProfileRecord:
        row = self._new_row(values)
        row["user_id"] = str(row["user_id"])
        if row["user_id"] in self.profiles:
            raise ValueError(f"Profile for {row['user_id']} already exists")
        self.profiles[row["user_id"]] = row
        self._publish("profiles", "INSERT", row)
        return ProfileRecord.model_validate(copy.deepcopy(row))

    async def update_profile(self, user_id: str, changes: Dict[str, Any]) -> Optional[ProfileRecord]:
        row = self._update("profiles", self.profiles, str(user_id), changes)
        return ProfileRecord.model_validate(copy.deepcopy(row)) if row else None

    # Products

    async def get_product(self, product_id: str) -> Optional[ProductRecord]:
        row = self.products.get(str(product_id))
        return ProductRecord.model_validate(copy.deepcopy(row)) if row else None

    async def get_products(self, product_ids: Iterable[str]) -> List[ProductRecord]:
        wanted = {str(product_id) for product_id in product_ids}
        return [ProductRecord.model_validate(copy.deepcopy(row)) for key, row in self.products.items() if key in wanted]

    async def list_available_products(self) -> List[ProductRecord]:
        return [
            ProductRecord.model_validate(copy.deepcopy(row))
            for row in self._newest_first(self.products.values())
            if row["is_available"]
        ]

    async def list_supplier_products(self, supplier_id: str) -> List[ProductRecord]:
        return [
            ProductRecord.model_validate(copy.deepcopy(row))
            for row in self._newest_first(self.products.values())
            if row["supplier_id"] == str(supplier_id)
        ]

    async def insert_product(self, values: Dict[str, Any]) -> ProductRecord:
        row = self._new_row(values)
        row["supplier_id"] = str(row["supplier_id"])
        row["price"] = Decimal(str(row["price"]))
        self.products[row["id"]] = row
        self._publish("products", "INSERT", row)
        return ProductRecord.model_validate(copy.deepcopy(row))

    async def update_product(self, product_id: str, changes: Dict[str, Any]) -> Optional[ProductRecord]:
        if "price" in changes:
            changes = {**changes, "price": Decimal(str(changes["price"]))}
        row = self._update("products", self.products, str(product_id), changes)
        return ProductRecord.model_validate(copy.deepcopy(row)) if row else None

    async def delete_product(self, product_id: str) -> bool:
        row = self.products.pop(str(product_id), None)
        if row is None:
            return False
        self._publish("products", "DELETE", row, row)
        return True

    async def decrement_product_quantity(self, product_id: str, quantity: int) -> Optional[ProductRecord]:
        row = self.products.get(str(product_id))
        if row is None or not row["is_available"] or row["quantity"] < quantity:
            return None
        new_quantity = row["quantity"] - quantity
        row = self._update("products", self.products, str(product_id), {
            "quantity": new_quantity,
            "is_available": new_quantity > 0,
        })
        return ProductRecord.model_validate(copy.deepcopy(row))

    async def restore_product_quantity(self, product_id: str, quantity: int) -> Optional[ProductRecord]:
        row = self.products.get(str(product_id))
        if row is None:
            return None
        row = self._update("products", self.products, str(product_id), {
            "quantity": row["quantity"] + quantity,
            "is_available": row["is_available"] or row["quantity"] == 0,
        })
        return ProductRecord.model_validate(copy.deepcopy(row))

    # Orders

    async def insert_order(self, values: Dict[str, Any]) -> OrderRecord:
        row = self._new_row(values)
        for key in ("vendor_id", "supplier_id", "product_id"):
            row[key] = str(row[key])
        row.setdefault("status", "pending")
        row.setdefault("notes", None)
        self.orders[row["id"]] = row
        self._publish("orders", "INSERT", row)
        return OrderRecord.model_validate(copy.deepcopy(row))

    async def get_order(self, order_id: str) -> Optional[OrderRecord]:
        row = self.orders.get(str(order_id))
        return OrderRecord.model_validate(copy.deepcopy(row)) if row else None

    async def list_orders(self, vendor_id: Optional[str] = None, supplier_id: Optional[str] = None) -> List[OrderRecord]:
        rows = [
            row for row in self.orders.values()
            if (vendor_id is None or row["vendor_id"] == str(vendor_id))
            and (supplier_id is None or row["supplier_id"] == str(supplier_id))
        ]
        return [OrderRecord.model_validate(copy.deepcopy(row)) for row in self._newest_first(rows)]

    async def update_order_status(self, order_id: str, status: str, expected_status: Optional[str] = None) -> Optional[OrderRecord]:
        row = self.orders.get(str(order_id))
        if row is None or (expected_status is not None and row["status"] != expected_status):
            return None
        row = self._update("orders", self.orders, str(order_id), {"status": status})
        return OrderRecord.model_validate(copy.deepcopy(row)) if row else None

    # Feedback

    async def insert_feedback(self, values: Dict[str, Any]) -> FeedbackRecord:
        row = self._new_row(values)
        for key in ("vendor_id", "supplier_id", "product_id"):
            row[key] = str(row[key])
        self.feedbacks[row["id"]] = row
        self._publish("feedbacks", "INSERT", row)
        return FeedbackRecord.model_validate(copy.deepcopy(row))

    async def list_feedback(self, supplier_id: Optional[str] = None, product_id: Optional[str] = None) -> List[FeedbackRecord]:
        rows = [
            row for row in self.feedbacks.values()
            if (supplier_id is None or row["supplier_id"] == str(supplier_id))
            and (product_id is None or row["product_id"] == str(product_id))
        ]
        return [FeedbackRecord.model_validate(copy.deepcopy(row)) for row in self._newest_first(rows)]
