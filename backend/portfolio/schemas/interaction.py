from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from portfolio.schemas.auth import UserPublic
from portfolio.schemas.base import ApiModel, UtcDatetime


class EntityType(str, Enum):
    PROJECT = "project"
    ACHIEVEMENT = "achievement"


class CommentCreate(ApiModel):
    content: str = Field(min_length=1, max_length=2000)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Comment must not be empty")
        return v


class CommentResponse(ApiModel):
    id: str
    entity_id: str
    user_id: str
    content: str
    created_at: UtcDatetime
    user: UserPublic


class LikeResponse(BaseModel):
    liked: bool


class ContactCreate(ApiModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    subject: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=5000)


class ContactResponse(ApiModel):
    id: str
    name: str
    email: str
    subject: str
    message: str
    created_at: UtcDatetime


class ContactSubmitted(BaseModel):
    message: str
    id: str


class NotificationCreate(BaseModel):
    model_config = {"use_enum_values": True}

    user_id: str
    type: str
    entity_type: EntityType
    entity_id: str
    from_user_id: Optional[str] = None
    message: str


class NotificationResponse(ApiModel):
    id: str
    user_id: str
    type: str
    entity_type: EntityType
    entity_id: str
    from_user_id: Optional[str] = None
    message: str
    read: bool = False
    created_at: UtcDatetime
