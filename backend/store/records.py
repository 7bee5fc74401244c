"""
Row snapshots returned by every store backend.
IDs are plain strings regardless of how the backend stores them.
"""
from pydantic import BaseModel, field_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


def _to_decimal(value):
    # PostgREST returns numeric columns as JSON numbers
    if isinstance(value, float):
        return Decimal(str(value))
    return value


class ProfileRecord(BaseModel):
    id: str
    user_id: str
    full_name: Optional[str] = None
    location: Optional[str] = None
    contact_number: Optional[str] = None
    phone: Optional[str] = None
    preferred_languages: Optional[List[str]] = None
    user_role: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProductRecord(BaseModel):
    id: str
    supplier_id: str
    name: str
    category: str
    price: Decimal
    unit: str
    quantity: int
    freshness: int
    is_available: bool
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("price", mode="before")
    @classmethod
    def coerce_price(cls, value):
        return _to_decimal(value)


class OrderRecord(BaseModel):
    id: str
    vendor_id: str
    supplier_id: str
    product_id: str
    quantity_requested: int
    total_amount: Decimal
    status: str = "pending"
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator("total_amount", mode="before")
    @classmethod
    def coerce_total_amount(cls, value):
        return _to_decimal(value)


class FeedbackRecord(BaseModel):
    id: str
    product_id: str
    vendor_id: str
    supplier_id: str
    message: Optional[str] = None
    rating: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
