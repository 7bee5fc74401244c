from fastapi import UploadFile
from config import get_supabase_storage, PRODUCT_IMAGE_BUCKET, MAX_IMAGE_SIZE, ALLOWED_IMAGE_TYPES
from store.base import MarketplaceStore
from store.records import ProductRecord
from utils.errors import Forbidden, PersistenceError, ProductNotFound, ValidationError
from utils.session import SessionContext, require_session
from .schemas import CatalogProductResponse, SupplierSnapshot
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional
import logging
import time

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}

LOW_PRICE_LIMIT = Decimal("50")
HIGH_PRICE_LIMIT = Decimal("150")


# =================
# CATALOG FILTERS
# =================

def _is_unfiltered(value: Optional[str]) -> bool:
    return not value or value == "all"

def filter_by_category(products: Iterable[CatalogProductResponse], category: Optional[str]) -> List[CatalogProductResponse]:
    """Case-insensitive substring match on the product category"""
    if _is_unfiltered(category):
        return list(products)
    needle = category.lower()
    return [product for product in products if needle in product.category.lower()]

def in_price_bucket(price: Decimal, bucket: Optional[str]) -> bool:
    if bucket == "low":
        return price < LOW_PRICE_LIMIT
    if bucket == "medium":
        return LOW_PRICE_LIMIT <= price <= HIGH_PRICE_LIMIT
    if bucket == "high":
        return price > HIGH_PRICE_LIMIT
    return True

def filter_by_price(products: Iterable[CatalogProductResponse], bucket: Optional[str]) -> List[CatalogProductResponse]:
    if _is_unfiltered(bucket):
        return list(products)
    return [product for product in products if in_price_bucket(product.price, bucket)]

def filter_by_search(products: Iterable[CatalogProductResponse], search: Optional[str]) -> List[CatalogProductResponse]:
    """Case-insensitive substring match on the product name or the supplier name"""
    if not search:
        return list(products)
    needle = search.lower()
    return [
        product for product in products
        if needle in product.name.lower() or needle in product.supplier.full_name.lower()
    ]

def filter_catalog(
    products: Iterable[CatalogProductResponse],
    category: Optional[str] = None,
    price: Optional[str] = None,
    search: Optional[str] = None
) -> List[CatalogProductResponse]:
    """Apply every filter; they compose with AND"""
    filtered = filter_by_category(products, category)
    filtered = filter_by_price(filtered, price)
    return filter_by_search(filtered, search)


class ProductHelpers:
    """Helper functions for catalog reads and supplier product management"""

    def __init__(self):
        self._storage = None

    @property
    def storage(self):
        if self._storage is None:
            self._storage = get_supabase_storage()
        return self._storage

    async def read_catalog(self, store: MarketplaceStore) -> List[CatalogProductResponse]:
        """
        Every available product with a snapshot of its supplier attached.
        Missing supplier details fall back to placeholders instead of failing the read.
        """
        try:
            products = await store.list_available_products()
        except Exception as e:
            logger.error(f"Error fetching available products: {str(e)}")
            raise PersistenceError(step="list_products", message="Failed to load products")

        supplier_ids = {product.supplier_id for product in products}
        profiles_by_user = {}
        if supplier_ids:
            try:
                profiles = await store.get_profiles(supplier_ids, user_role="supplier")
                profiles_by_user = {profile.user_id: profile for profile in profiles}
            except Exception as e:
                logger.warning(f"Error fetching supplier profiles, using placeholders: {str(e)}")

        catalog = []
        for product in products:
            profile = profiles_by_user.get(product.supplier_id)
            snapshot = SupplierSnapshot()
            if profile:
                snapshot = SupplierSnapshot(
                    full_name=profile.full_name or snapshot.full_name,
                    location=profile.location or snapshot.location,
                    contact_number=profile.contact_number or snapshot.contact_number,
                    preferred_languages=profile.preferred_languages or snapshot.preferred_languages
                )
            else:
                logger.warning(f"No supplier profile for product {product.id} (supplier {product.supplier_id})")

            catalog.append(CatalogProductResponse(**product.model_dump(), supplier=snapshot))

        return catalog

    async def list_my_products(self, store: MarketplaceStore, session: SessionContext) -> List[ProductRecord]:
        session = self._require_supplier(session)
        return await store.list_supplier_products(session.user_id)

    async def create_product(self, store: MarketplaceStore, session: SessionContext, values: Dict[str, Any]) -> ProductRecord:
        session = self._require_supplier(session)
        self._validate_product_values(values)

        product_data = {
            "supplier_id": session.user_id,
            "name": values["name"].strip(),
            "category": values["category"].strip(),
            "price": values["price"],
            "unit": values["unit"].strip(),
            "quantity": values["quantity"],
            "freshness": values.get("freshness", 100),
            "is_available": values["quantity"] > 0,
        }
        product = await store.insert_product(product_data)
        logger.info(f"Supplier {session.user_id} listed product {product.id}")
        return product

    async def update_product(
        self,
        store: MarketplaceStore,
        session: SessionContext,
        product_id: str,
        changes: Dict[str, Any]
    ) -> ProductRecord:
        """
        Partial update of an owned product.
        A quantity change recomputes availability unless the caller sets it too,
        and a product with no stock can never be marked available.
        """
        product = await self._get_owned_product(store, session, product_id)
        update_data = {field: value for field, value in changes.items() if value is not None}
        self._validate_product_values(update_data)

        for field in ("name", "category", "unit"):
            if field in update_data:
                update_data[field] = update_data[field].strip()

        quantity = update_data.get("quantity", product.quantity)
        if update_data.get("is_available") is True and quantity == 0:
            raise ValidationError("A product with no stock cannot be marked available")
        if "quantity" in update_data and "is_available" not in update_data:
            update_data["is_available"] = quantity > 0
        if quantity == 0:
            update_data["is_available"] = False

        if not update_data:
            return product

        updated = await store.update_product(product_id, update_data)
        if updated is None:
            raise ProductNotFound(product_id)
        return updated

    async def delete_product(self, store: MarketplaceStore, session: SessionContext, product_id: str) -> None:
        await self._get_owned_product(store, session, product_id)
        if not await store.delete_product(product_id):
            raise ProductNotFound(product_id)
        logger.info(f"Supplier {session.user_id} deleted product {product_id}")

    async def upload_product_image(
        self,
        store: MarketplaceStore,
        session: SessionContext,
        product_id: str,
        file: UploadFile
    ) -> str:
        """
        Upload a product image to Supabase Storage and store its public URL on the product
        """
        await self._get_owned_product(store, session, product_id)

        if file.content_type not in ALLOWED_IMAGE_TYPES:
            raise ValidationError(f"File type {file.content_type} not allowed. Use JPEG, PNG or WebP")

        file_content = await file.read()
        if len(file_content) > MAX_IMAGE_SIZE:
            raise ValidationError("File size must be less than 5MB")

        file_path = f"{session.user_id}/{int(time.time() * 1000)}.{IMAGE_EXTENSIONS[file.content_type]}"
        logger.info(f"Uploading image for product {product_id} to {PRODUCT_IMAGE_BUCKET}/{file_path}")

        try:
            self.storage.from_(PRODUCT_IMAGE_BUCKET).upload(
                path=file_path,
                file=file_content,
                file_options={"content-type": file.content_type}
            )
            public_url = self.storage.from_(PRODUCT_IMAGE_BUCKET).get_public_url(file_path)
        except Exception as e:
            logger.error(f"Storage upload failed for product {product_id}: {str(e)}")
            raise PersistenceError(step="upload_image", message="Failed to upload image")

        updated = await store.update_product(product_id, {"image_url": public_url})
        if updated is None:
            raise ProductNotFound(product_id)
        return public_url

    def _require_supplier(self, session: Optional[SessionContext]) -> SessionContext:
        session = require_session(session)
        if not session.is_supplier:
            raise Forbidden("Only suppliers can manage products")
        return session

    async def _get_owned_product(self, store: MarketplaceStore, session: SessionContext, product_id: str) -> ProductRecord:
        session = self._require_supplier(session)
        product = await store.get_product(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        if product.supplier_id != session.user_id:
            logger.warning(f"Supplier {session.user_id} tried to modify product {product_id} it does not own")
            raise Forbidden("You can only manage your own products")
        return product

    def _validate_product_values(self, values: Dict[str, Any]) -> None:
        if "price" in values and Decimal(str(values["price"])) <= 0:
            raise ValidationError("Price must be greater than zero")
        if "quantity" in values and values["quantity"] < 0:
            raise ValidationError("Quantity cannot be negative")
        if "freshness" in values and not 0 <= values["freshness"] <= 100:
            raise ValidationError("Freshness must be between 0 and 100")

product_helpers = ProductHelpers()
