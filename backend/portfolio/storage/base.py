"""
Storage contract shared by the relational and in-memory backends.

Both backends follow one error policy: absence is reported as ``None`` (reads and
updates) or ``False`` (deletes), and any infrastructure failure is raised as
``StorageUnavailableError``. Nothing degrades silently to an empty result.
Like toggles and comment inserts return ``None`` when the entity is gone.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from portfolio.schemas import (
    AchievementCreate,
    AchievementResponse,
    CommentResponse,
    ContactCreate,
    ContactResponse,
    ExperienceCreate,
    ExperienceResponse,
    NotificationCreate,
    NotificationResponse,
    ProjectCreate,
    ProjectResponse,
    UserCreate,
    UserRecord,
)


class StorageError(Exception):
    """Base class for storage failures."""


class StorageUnavailableError(StorageError):
    """The backing store could not be reached or failed mid-operation."""


class DuplicateEmailError(StorageError):
    def __init__(self, email: str):
        super().__init__(f"Email already registered: {email}")
        self.email = email


class Storage(Protocol):
    """Interface for portfolio data access."""

    name: str

    async def init(self) -> None:
        ...

    async def close(self) -> None:
        ...

    # Users
    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        ...

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        ...

    async def create_user(self, data: UserCreate, *, is_admin: bool = False) -> UserRecord:
        ...

    async def update_user(self, user_id: str, changes: dict) -> Optional[UserRecord]:
        ...

    async def list_users(self) -> list[UserRecord]:
        ...

    # Sessions
    async def create_session(self, user_id: str, expires_at: datetime) -> str:
        ...

    async def get_session_user_id(self, sid: str) -> Optional[str]:
        ...

    async def delete_session(self, sid: str) -> None:
        ...

    # Projects
    async def list_projects(
        self, viewer_id: Optional[str] = None, include_drafts: bool = False
    ) -> list[ProjectResponse]:
        ...

    async def get_project(
        self, project_id: str, viewer_id: Optional[str] = None
    ) -> Optional[ProjectResponse]:
        ...

    async def create_project(self, data: ProjectCreate) -> ProjectResponse:
        ...

    async def update_project(self, project_id: str, changes: dict) -> Optional[ProjectResponse]:
        ...

    async def delete_project(self, project_id: str) -> bool:
        ...

    async def toggle_project_like(self, project_id: str, user_id: str) -> Optional[bool]:
        ...

    async def list_project_comments(self, project_id: str) -> list[CommentResponse]:
        ...

    async def add_project_comment(
        self, project_id: str, user_id: str, content: str
    ) -> Optional[CommentResponse]:
        ...

    # Achievements
    async def list_achievements(
        self, viewer_id: Optional[str] = None, include_drafts: bool = False
    ) -> list[AchievementResponse]:
        ...

    async def get_achievement(
        self, achievement_id: str, viewer_id: Optional[str] = None
    ) -> Optional[AchievementResponse]:
        ...

    async def create_achievement(self, data: AchievementCreate) -> AchievementResponse:
        ...

    async def update_achievement(
        self, achievement_id: str, changes: dict
    ) -> Optional[AchievementResponse]:
        ...

    async def delete_achievement(self, achievement_id: str) -> bool:
        ...

    async def toggle_achievement_like(self, achievement_id: str, user_id: str) -> Optional[bool]:
        ...

    async def list_achievement_comments(self, achievement_id: str) -> list[CommentResponse]:
        ...

    async def add_achievement_comment(
        self, achievement_id: str, user_id: str, content: str
    ) -> Optional[CommentResponse]:
        ...

    # Experiences
    async def list_experiences(self, include_drafts: bool = False) -> list[ExperienceResponse]:
        ...

    async def get_experience(self, experience_id: str) -> Optional[ExperienceResponse]:
        ...

    async def create_experience(self, data: ExperienceCreate) -> ExperienceResponse:
        ...

    async def update_experience(
        self, experience_id: str, changes: dict
    ) -> Optional[ExperienceResponse]:
        ...

    async def delete_experience(self, experience_id: str) -> bool:
        ...

    # Contacts
    async def create_contact(self, data: ContactCreate) -> ContactResponse:
        ...

    async def list_contacts(self) -> list[ContactResponse]:
        ...

    # Notifications
    async def create_notification(self, data: NotificationCreate) -> NotificationResponse:
        ...

    async def list_notifications(self, user_id: str) -> list[NotificationResponse]:
        ...

    async def mark_notification_read(self, notification_id: str, user_id: str) -> bool:
        ...
