from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class FeedbackCreate(BaseModel):
    product_id: str
    rating: int
    message: Optional[str] = Field(None, max_length=1000)


class FeedbackResponse(BaseModel):
    id: str
    product_id: str
    vendor_id: str
    supplier_id: str
    message: Optional[str] = None
    rating: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReceivedFeedbackResponse(FeedbackResponse):
    product_name: str = "Unknown Product"
    vendor_name: str = "Unknown Vendor"


class FeedbackListResponse(BaseModel):
    feedbacks: List[FeedbackResponse]
    total: int


class ReceivedFeedbackListResponse(BaseModel):
    feedbacks: List[ReceivedFeedbackResponse]
    total: int
