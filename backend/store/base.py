"""
Store interface over the backing datastore.

Every method is one round trip. decrement_product_quantity and
restore_product_quantity are conditional single-statement updates, which is
what keeps concurrent order placement from overselling.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from store.records import ProfileRecord, ProductRecord, OrderRecord, FeedbackRecord


class MarketplaceStore(ABC):

    # Profiles

    @abstractmethod
    async def get_profile(self, user_id: str) -> Optional[ProfileRecord]:
        ...

    @abstractmethod
    async def get_profiles(self, user_ids: Iterable[str], user_role: Optional[str] = None) -> List[ProfileRecord]:
        ...

    @abstractmethod
    async def insert_profile(self, values: Dict[str, Any]) -> ProfileRecord:
        ...

    @abstractmethod
    async def update_profile(self, user_id: str, changes: Dict[str, Any]) -> Optional[ProfileRecord]:
        ...

    # Products

    @abstractmethod
    async def get_product(self, product_id: str) -> Optional[ProductRecord]:
        ...

    @abstractmethod
    async def get_products(self, product_ids: Iterable[str]) -> List[ProductRecord]:
        ...

    @abstractmethod
    async def list_available_products(self) -> List[ProductRecord]:
        ...

    @abstractmethod
    async def list_supplier_products(self, supplier_id: str) -> List[ProductRecord]:
        ...

    @abstractmethod
    async def insert_product(self, values: Dict[str, Any]) -> ProductRecord:
        ...

    @abstractmethod
    async def update_product(self, product_id: str, changes: Dict[str, Any]) -> Optional[ProductRecord]:
        ...

    @abstractmethod
    async def delete_product(self, product_id: str) -> bool:
        ...

    @abstractmethod
    async def decrement_product_quantity(self, product_id: str, quantity: int) -> Optional[ProductRecord]:
        """
        Atomically take `quantity` units from an available product.
        Returns the updated row, or None when the product is missing,
        unavailable, or holds fewer than `quantity` units.
        """

    @abstractmethod
    async def restore_product_quantity(self, product_id: str, quantity: int) -> Optional[ProductRecord]:
        """
        Atomically give back `quantity` units. The product is marked available again
        only when it was sold out, so a product hidden by its supplier stays hidden.
        """

    # Orders

    @abstractmethod
    async def insert_order(self, values: Dict[str, Any]) -> OrderRecord:
        ...

    @abstractmethod
    async def get_order(self, order_id: str) -> Optional[OrderRecord]:
        ...

    @abstractmethod
    async def list_orders(self, vendor_id: Optional[str] = None, supplier_id: Optional[str] = None) -> List[OrderRecord]:
        """Orders for a vendor or a supplier, newest first"""

    @abstractmethod
    async def update_order_status(self, order_id: str, status: str, expected_status: Optional[str] = None) -> Optional[OrderRecord]:
        """
        Set the order status. When `expected_status` is given the write only
        applies while the order still holds that status; otherwise returns None.
        """

    # Feedback

    @abstractmethod
    async def insert_feedback(self, values: Dict[str, Any]) -> FeedbackRecord:
        ...

    @abstractmethod
    async def list_feedback(self, supplier_id: Optional[str] = None, product_id: Optional[str] = None) -> List[FeedbackRecord]:
        """Feedback for a supplier or a product, newest first"""
