from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"


class OrderCreate(BaseModel):
    product_id: str
    # Range is checked when the order is placed so the caller gets a 400
    quantity: int
    notes: Optional[str] = Field(None, max_length=500)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderResponse(BaseModel):
    id: str
    vendor_id: str
    supplier_id: str
    product_id: str
    quantity_requested: int
    total_amount: Decimal
    status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class VendorOrderResponse(OrderResponse):
    """An order as the vendor who placed it sees it"""
    product_name: str = "Unknown Product"
    product_category: str = "Unknown"
    supplier_name: str = "Unknown Supplier"


class SupplierOrderResponse(OrderResponse):
    """An order as the supplier who fulfils it sees it"""
    product_name: str = "Unknown Product"
    product_category: str = "Unknown"
    vendor_name: str = "Unknown Vendor"
    vendor_location: str = "Location not provided"


class VendorOrderListResponse(BaseModel):
    orders: List[VendorOrderResponse]
    total: int


class SupplierOrderListResponse(BaseModel):
    orders: List[SupplierOrderResponse]
    total: int


class OrderSummaryResponse(BaseModel):
    pending_orders: int
    accepted_orders: int
    completed_orders: int
    total_revenue: Decimal
