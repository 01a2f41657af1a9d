from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from portfolio.schemas.base import ApiModel, PartialUpdate, UtcDatetime


class RegisterRequest(ApiModel):
    email: EmailStr
    password: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        return v

    @field_validator("first_name", "last_name")
    @classmethod
    def name_length(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if len(v) > 100:
            raise ValueError("Name must be at most 100 characters")
        return v or None


class LoginRequest(ApiModel):
    email: EmailStr
    password: str


class UserCreate(BaseModel):
    """Internal payload for creating a user in storage."""

    email: str
    hashed_password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    provider: str = "local"
    provider_id: Optional[str] = None


class UserUpdate(PartialUpdate):
    nullable_fields = frozenset({"first_name", "last_name", "profile_image_url"})

    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    profile_image_url: Optional[str] = Field(default=None, max_length=1024)


class UserRecord(BaseModel):
    """Full stored user, including the password hash. Never returned over HTTP."""

    model_config = {"from_attributes": True}

    id: str
    email: str
    hashed_password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    is_admin: bool = False
    provider: str = "local"
    provider_id: Optional[str] = None
    created_at: UtcDatetime
    updated_at: UtcDatetime


class UserResponse(ApiModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    is_admin: bool = False
    provider: str = "local"
    created_at: UtcDatetime


class UserPublic(ApiModel):
    """Author view embedded in comments."""

    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
