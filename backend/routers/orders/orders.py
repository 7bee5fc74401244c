from fastapi import APIRouter, Depends, HTTPException, status
from dependencies.rbac import (
    require_order_read, require_order_write, require_incoming_orders,
    require_order_status_write, require_order_summary
)
from dependencies.store import get_store
from routers.auth.auth import get_current_user
from store.base import MarketplaceStore
from utils.errors import MarketplaceError, to_http_exception
from utils.response_helpers import safe_model_validate
from utils.session import SessionContext
from routers.orders.schemas import (
    OrderCreate, OrderStatusUpdate, OrderResponse,
    VendorOrderListResponse, SupplierOrderListResponse, OrderSummaryResponse
)
from routers.orders.helpers import order_helpers
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("/", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    order_data: OrderCreate,
    current_user: SessionContext = Depends(get_current_user),
    store: MarketplaceStore = Depends(get_store),
    _: bool = Depends(require_order_write)
):
    """
    Place an order for a product.
    The requested quantity is taken from the product's stock; if it is no longer
    there the request fails with 409 and nothing is written.
    """
    try:
        order = await order_helpers.place_order(
            store,
            current_user,
            order_data.product_id,
            order_data.quantity,
            order_data.notes
        )
        return safe_model_validate(OrderResponse, order)

    except HTTPException:
        raise
    except MarketplaceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error creating order: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create order"
        )


@router.get("/my-orders", response_model=VendorOrderListResponse)
async def get_my_orders(
    current_user: SessionContext = Depends(get_current_user),
    store: MarketplaceStore = Depends(get_store),
    _: bool = Depends(require_order_read)
):
    """Get the current vendor's orders, newest first"""
    try:
        orders = await order_helpers.list_vendor_orders(store, current_user)
        return VendorOrderListResponse(orders=orders, total=len(orders))

    except HTTPException:
        raise
    except MarketplaceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error getting orders: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get orders"
        )


@router.get("/incoming", response_model=SupplierOrderListResponse)
async def get_incoming_orders(
    current_user: SessionContext = Depends(get_current_user),
    store: MarketplaceStore = Depends(get_store),
    _: bool = Depends(require_incoming_orders)
):
    """Get orders addressed to the current supplier, newest first"""
    try:
        orders = await order_helpers.list_supplier_orders(store, current_user)
        return SupplierOrderListResponse(orders=orders, total=len(orders))

    except HTTPException:
        raise
    except MarketplaceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error getting incoming orders: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get orders"
        )


@router.get("/summary", response_model=OrderSummaryResponse)
async def get_order_summary(
    current_user: SessionContext = Depends(get_current_user),
    store: MarketplaceStore = Depends(get_store),
    _: bool = Depends(require_order_summary)
):
    """Order counts and revenue from completed orders for the current supplier"""
    try:
        return await order_helpers.supplier_summary(store, current_user)

    except HTTPException:
        raise
    except MarketplaceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error getting order summary: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get order summary"
        )


@router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    status_update: OrderStatusUpdate,
    current_user: SessionContext = Depends(get_current_user),
    store: MarketplaceStore = Depends(get_store),
    _: bool = Depends(require_order_status_write)
):
    """Accept, reject or complete an order"""
    try:
        order = await order_helpers.update_order_status(
            store,
            current_user,
            order_id,
            status_update.status.value
        )
        return safe_model_validate(OrderResponse, order)

    except HTTPException:
        raise
    except MarketplaceError as e:
        raise to_http_exception(e)
    except Exception as e:
        logger.error(f"Error updating order {order_id}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update order status"
        )
