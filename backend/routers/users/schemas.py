from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime

class UserProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=200)
    location: Optional[str] = Field(None, max_length=300)
    contact_number: Optional[str] = Field(None, max_length=20)
    phone: Optional[str] = Field(None, max_length=20)
    preferred_languages: Optional[List[str]] = None
    # Accepted only so a change attempt can be rejected explicitly
    user_role: Optional[str] = None

    @field_validator("full_name", "location", "contact_number", "phone")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("preferred_languages")
    @classmethod
    def require_language(cls, v):
        if v is None:
            return v
        languages = [language.strip() for language in v if language and language.strip()]
        if not languages:
            raise ValueError("Please select at least one preferred language")
        return languages

class UserResponse(BaseModel):
    id: str
    user_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    location: Optional[str] = None
    contact_number: Optional[str] = None
    phone: Optional[str] = None
    preferred_languages: List[str] = ["English"]
    user_role: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
