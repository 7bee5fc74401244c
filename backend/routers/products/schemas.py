from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., min_length=1, max_length=100)
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    unit: str = Field(..., min_length=1, max_length=20)
    quantity: int = Field(..., ge=0)
    freshness: int = Field(100, ge=0, le=100)

    @field_validator("name", "category", "unit")
    @classmethod
    def strip_text(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    price: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2)
    unit: Optional[str] = Field(None, min_length=1, max_length=20)
    quantity: Optional[int] = Field(None, ge=0)
    freshness: Optional[int] = Field(None, ge=0, le=100)
    is_available: Optional[bool] = None

    @field_validator("name", "category", "unit")
    @classmethod
    def strip_text(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

class ProductResponse(BaseModel):
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

class SupplierSnapshot(BaseModel):
    """Supplier details shown next to each catalog entry"""
    full_name: str = "Unknown Supplier"
    location: str = "Location not available"
    contact_number: str = "N/A"
    preferred_languages: List[str] = ["English"]

class CatalogProductResponse(ProductResponse):
    supplier: SupplierSnapshot

class CatalogResponse(BaseModel):
    products: List[CatalogProductResponse]
    total: int

class ProductListResponse(BaseModel):
    products: List[ProductResponse]
    total: int

class ProductImageUpload(BaseModel):
    """Response schema for product image upload"""
    image_url: str
    message: str
