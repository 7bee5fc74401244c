from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File, Query
from dependencies.rbac import require_product_write, require_product_delete
from dependencies.store import get_store
from routers.auth.auth import get_current_user
from store.base import MarketplaceStore
from utils.errors import MarketplaceError, to_http_exception
from utils.response_helpers import safe_model_validate, safe_model_validate_list
from utils.session import SessionContext
from routers.products.schemas import (
    ProductCreate, ProductUpdate, ProductResponse, ProductListResponse,
    CatalogResponse, ProductImageUpload
)
from routers.products.helpers import product_helpers, filter_catalog
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["Products"])


# =================
# CATALOG ROUTES (PUBLIC)
# =================

@router.get("/", response_model=CatalogResponse)
async def get_catalog(
    category: Optional[str] = Query(None, description="Case-insensitive category substring, or 'all'"),
    price: Optional[str] = Query(None, pattern="^(all|low|medium|high)$", description="low (<50), medium (50-150), high (>150)"),
    search: Optional[str] = Query(None, description="Matches product name or supplier name"),
    store: MarketplaceStore = Depends(get_store)
):
    """Get all available products with supplier details"""
    try:
        catalog = await product_helpers.read_catalog(store)
        products = filter_catalog(catalog, category=category, price=price, search=search)

        return CatalogResponse(products=products, total=len(products))

    except MarketplaceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error getting catalog: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load products"
        )


# =================
# SUPPLIER PRODUCT ROUTES
# =================

@router.get("/my-products", response_model=ProductListResponse)
async def get_my_products(
    current_user: SessionContext = Depends(get_current_user),
    store: MarketplaceStore = Depends(get_store),
    _: bool = Depends(require_product_write)
):
    """Get all of the current supplier's products, available or not"""
    try:
        products = await product_helpers.list_my_products(store, current_user)

        return ProductListResponse(
            products=safe_model_validate_list(ProductResponse, products),
            total=len(products)
        )

    except HTTPException:
        raise
    except MarketplaceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error getting supplier products: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get products"
        )


@router.post("/", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product_data: ProductCreate,
    current_user: SessionContext = Depends(get_current_user),
    store: MarketplaceStore = Depends(get_store),
    _: bool = Depends(require_product_write)
):
    """Create a new product (suppliers only)"""
    try:
        product = await product_helpers.create_product(store, current_user, product_data.model_dump())
        return safe_model_validate(ProductResponse, product)

    except HTTPException:
        raise
    except MarketplaceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error creating product: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create product"
        )


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    product_update: ProductUpdate,
    current_user: SessionContext = Depends(get_current_user),
    store: MarketplaceStore = Depends(get_store),
    _: bool = Depends(require_product_write)
):
    """Update one of the current supplier's products"""
    try:
        product = await product_helpers.update_product(
            store,
            current_user,
            product_id,
            product_update.model_dump(exclude_unset=True)
        )
        return safe_model_validate(ProductResponse, product)

    except HTTPException:
        raise
    except MarketplaceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error updating product {product_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update product"
        )


@router.delete("/{product_id}")
async def delete_product(
    product_id: str,
    current_user: SessionContext = Depends(get_current_user),
    store: MarketplaceStore = Depends(get_store),
    _: bool = Depends(require_product_delete)
):
    """Delete one of the current supplier's products"""
    try:
        await product_helpers.delete_product(store, current_user, product_id)
        return {"message": "Product deleted successfully"}

    except HTTPException:
        raise
    except MarketplaceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error deleting product {product_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete product"
        )


@router.post("/{product_id}/upload-image", response_model=ProductImageUpload)
async def upload_product_image(
    product_id: str,
    file: UploadFile = File(..., description="Product image file (JPEG, PNG or WebP, max 5MB)"),
    current_user: SessionContext = Depends(get_current_user),
    store: MarketplaceStore = Depends(get_store),
    _: bool = Depends(require_product_write)
):
    """Upload product image"""
    try:
        image_url = await product_helpers.upload_product_image(store, current_user, product_id, file)

        return ProductImageUpload(
            image_url=image_url,
            message="Image uploaded successfully"
        )

    except HTTPException:
        raise
    except MarketplaceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error uploading product image: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to upload product image"
        )
