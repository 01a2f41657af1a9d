from enum import Enum
from typing import List, Optional

from pydantic import Field

from portfolio.schemas.base import ApiModel, PartialUpdate, UtcDatetime


class PublicationStatus(str, Enum):
    PUBLISHED = "published"
    DRAFT = "draft"


class ProjectBase(ApiModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    image: str = Field(min_length=1)
    github_url: Optional[str] = None
    demo_url: Optional[str] = None
    technologies: List[str] = Field(default_factory=list)
    category: str = "web"
    tags: List[str] = Field(default_factory=list)
    status: PublicationStatus = PublicationStatus.PUBLISHED
    featured: bool = False


class ProjectCreate(ProjectBase):
    pass


class ProjectUpdate(PartialUpdate):
    nullable_fields = frozenset({"github_url", "demo_url"})

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, min_length=1)
    image: Optional[str] = Field(default=None, min_length=1)
    github_url: Optional[str] = None
    demo_url: Optional[str] = None
    technologies: Optional[List[str]] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    status: Optional[PublicationStatus] = None
    featured: Optional[bool] = None


class ProjectResponse(ProjectBase):
    id: str
    created_at: UtcDatetime
    updated_at: UtcDatetime
    likes_count: int = 0
    comments_count: int = 0
    user_liked: bool = False
