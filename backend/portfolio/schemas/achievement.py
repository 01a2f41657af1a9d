from typing import Optional

from pydantic import Field

from portfolio.schemas.base import ApiModel, PartialUpdate, UtcDatetime
from portfolio.schemas.project import PublicationStatus


class AchievementBase(ApiModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    image: Optional[str] = None
    date: UtcDatetime
    category: str = "certification"
    certificate_url: Optional[str] = None
    organization: Optional[str] = None
    status: PublicationStatus = PublicationStatus.PUBLISHED
    featured: bool = False


class AchievementCreate(AchievementBase):
    pass


class AchievementUpdate(PartialUpdate):
    nullable_fields = frozenset({"image", "certificate_url", "organization"})

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1)
    image: Optional[str] = None
    date: Optional[UtcDatetime] = None
    category: Optional[str] = None
    certificate_url: Optional[str] = None
    organization: Optional[str] = None
    status: Optional[PublicationStatus] = None
    featured: Optional[bool] = None


class AchievementResponse(AchievementBase):
    id: str
    created_at: UtcDatetime
    updated_at: UtcDatetime
    likes_count: int = 0
    comments_count: int = 0
    user_liked: bool = False
