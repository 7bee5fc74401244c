from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional, List
from enum import Enum


class UserRole(str, Enum):
    VENDOR = "vendor"
    SUPPLIER = "supplier"


# Request schemas
class UserRegister(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    confirm_password: Optional[str] = None
    full_name: str = Field(min_length=1, max_length=200)
    user_role: UserRole
    contact_number: Optional[str] = Field(None, max_length=20)
    location: Optional[str] = Field(None, max_length=300)
    preferred_languages: List[str] = Field(default_factory=lambda: ["English"])

    @field_validator("full_name", "contact_number", "location")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("preferred_languages")
    @classmethod
    def require_language(cls, v):
        languages = [language.strip() for language in v if language and language.strip()]
        if not languages:
            raise ValueError("Please select at least one preferred language")
        return languages

    @model_validator(mode="after")
    def passwords_match(self):
        if self.confirm_password is not None and self.confirm_password != self.password:
            raise ValueError("Passwords do not match")
        return self

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class RefreshRequest(BaseModel):
    refresh_token: str

# Response schemas
class AuthResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    message: Optional[str] = None

class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
