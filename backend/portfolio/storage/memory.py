"""
In-memory storage backend for development, tests and as the fallback store.

State lives in this process only: running several workers gives each its own
copy of the data.
"""

from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Generic, Optional, TypeVar

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
    UserPublic,
    UserRecord,
)
from portfolio.schemas.base import ensure_aware
from portfolio.storage.base import DuplicateEmailError

EntityT = TypeVar("EntityT", ProjectResponse, AchievementResponse)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class _CommentRow:
    id: str
    entity_id: str
    user_id: str
    content: str
    created_at: datetime = field(default_factory=_now)


@dataclass
class _EntityTable(Generic[EntityT]):
    """Rows of one likeable entity kind plus its likes and comments."""

    sort_key: Callable[[EntityT], tuple]
    rows: Dict[str, EntityT] = field(default_factory=dict)
    likes: Dict[str, set[str]] = field(default_factory=dict)
    comments: Dict[str, list[_CommentRow]] = field(default_factory=dict)


class InMemoryStorage:
    """Dictionary-backed storage with the same semantics as the SQL backend."""

    name = "memory"

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.sessions: Dict[str, tuple[str, datetime]] = {}
        self.projects: _EntityTable[ProjectResponse] = _EntityTable(
            sort_key=lambda p: (p.created_at,)
        )
        self.achievements: _EntityTable[AchievementResponse] = _EntityTable(
            sort_key=lambda a: (a.date, a.created_at)
        )
        self.experiences: Dict[str, ExperienceResponse] = {}
        self.contacts: Dict[str, ContactResponse] = {}
        self.notifications: Dict[str, NotificationResponse] = {}

    async def init(self) -> None:
        return None

    async def close(self) -> None:
        return None

    # Users

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self.users.get(user_id)

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        email = email.lower()
        return next((u for u in self.users.values() if u.email == email), None)

    async def create_user(self, data: UserCreate, *, is_admin: bool = False) -> UserRecord:
        email = data.email.lower()
        if any(u.email == email for u in self.users.values()):
            raise DuplicateEmailError(email)
        now = _now()
        user = UserRecord(
            **data.model_dump(exclude={"email"}),
            id=_new_id(),
            email=email,
            is_admin=is_admin,
            created_at=now,
            updated_at=now,
        )
        self.users[user.id] = user
        return user

    async def update_user(self, user_id: str, changes: dict) -> Optional[UserRecord]:
        user = self.users.get(user_id)
        if user is None:
            return None
        user = user.model_copy(update={**changes, "updated_at": _now()})
        self.users[user_id] = user
        return user

    async def list_users(self) -> list[UserRecord]:
        return sorted(self.users.values(), key=lambda u: u.created_at)

    # Sessions

    async def create_session(self, user_id: str, expires_at: datetime) -> str:
        sid = secrets.token_urlsafe(32)
        self.sessions[sid] = (user_id, ensure_aware(expires_at))
        return sid

    async def get_session_user_id(self, sid: str) -> Optional[str]:
        entry = self.sessions.get(sid)
        if entry is None:
            return None
        user_id, expires_at = entry
        if expires_at <= _now() or user_id not in self.users:
            self.sessions.pop(sid, None)
            return None
        return user_id

    async def delete_session(self, sid: str) -> None:
        self.sessions.pop(sid, None)

    # Likeable entities (projects and achievements)

    def _with_stats(self, table: _EntityTable[EntityT], row: EntityT, viewer_id: Optional[str]) -> EntityT:
        likes = table.likes.get(row.id, set())
        return row.model_copy(update={
            "likes_count": len(likes),
            "comments_count": len(table.comments.get(row.id, [])),
            "user_liked": viewer_id is not None and viewer_id in likes,
        })

    def _list(self, table: _EntityTable[EntityT], viewer_id: Optional[str], include_drafts: bool) -> list[EntityT]:
        rows = [
            r for r in table.rows.values()
            if include_drafts or r.status == "published"
        ]
        rows.sort(key=table.sort_key, reverse=True)
        return [self._with_stats(table, r, viewer_id) for r in rows]

    def _get(self, table: _EntityTable[EntityT], entity_id: str, viewer_id: Optional[str]) -> Optional[EntityT]:
        row = table.rows.get(entity_id)
        if row is None:
            return None
        return self._with_stats(table, row, viewer_id)

    def _create(self, table: _EntityTable[EntityT], response_cls: type[EntityT], data) -> EntityT:
        now = _now()
        row = response_cls(**data.model_dump(), id=_new_id(), created_at=now, updated_at=now)
        table.rows[row.id] = row
        return row

    def _update(self, table: _EntityTable[EntityT], entity_id: str, changes: dict) -> Optional[EntityT]:
        row = table.rows.get(entity_id)
        if row is None:
            return None
        row = row.model_copy(update={**changes, "updated_at": _now()})
        table.rows[entity_id] = row
        return self._with_stats(table, row, None)

    def _delete(self, table: _EntityTable[EntityT], entity_id: str) -> bool:
        if table.rows.pop(entity_id, None) is None:
            return False
        # Mirrors ON DELETE CASCADE in the relational schema
        table.likes.pop(entity_id, None)
        table.comments.pop(entity_id, None)
        return True

    def _toggle_like(self, table: _EntityTable, entity_id: str, user_id: str) -> Optional[bool]:
        if entity_id not in table.rows or user_id not in self.users:
            return None
        likes = table.likes.setdefault(entity_id, set())
        if user_id in likes:
            likes.discard(user_id)
            return False
        likes.add(user_id)
        return True

    def _hydrate(self, row: _CommentRow) -> Optional[CommentResponse]:
        user = self.users.get(row.user_id)
        if user is None:
            return None
        return CommentResponse(
            id=row.id,
            entity_id=row.entity_id,
            user_id=row.user_id,
            content=row.content,
            created_at=row.created_at,
            user=UserPublic.model_validate(user, from_attributes=True),
        )

    def _list_comments(self, table: _EntityTable, entity_id: str) -> list[CommentResponse]:
        rows = sorted(table.comments.get(entity_id, []), key=lambda c: c.created_at, reverse=True)
        hydrated = (self._hydrate(row) for row in rows)
        return [c for c in hydrated if c is not None]

    def _add_comment(self, table: _EntityTable, entity_id: str, user_id: str, content: str) -> Optional[CommentResponse]:
        if entity_id not in table.rows or user_id not in self.users:
            return None
        row = _CommentRow(id=_new_id(), entity_id=entity_id, user_id=user_id, content=content)
        table.comments.setdefault(entity_id, []).append(row)
        return self._hydrate(row)

    # Projects

    async def list_projects(self, viewer_id: Optional[str] = None, include_drafts: bool = False) -> list[ProjectResponse]:
        return self._list(self.projects, viewer_id, include_drafts)

    async def get_project(self, project_id: str, viewer_id: Optional[str] = None) -> Optional[ProjectResponse]:
        return self._get(self.projects, project_id, viewer_id)

    async def create_project(self, data: ProjectCreate) -> ProjectResponse:
        return self._create(self.projects, ProjectResponse, data)

    async def update_project(self, project_id: str, changes: dict) -> Optional[ProjectResponse]:
        return self._update(self.projects, project_id, changes)

    async def delete_project(self, project_id: str) -> bool:
        return self._delete(self.projects, project_id)

    async def toggle_project_like(self, project_id: str, user_id: str) -> Optional[bool]:
        return self._toggle_like(self.projects, project_id, user_id)

    async def list_project_comments(self, project_id: str) -> list[CommentResponse]:
        return self._list_comments(self.projects, project_id)

    async def add_project_comment(self, project_id: str, user_id: str, content: str) -> Optional[CommentResponse]:
        return self._add_comment(self.projects, project_id, user_id, content)

    # Achievements

    async def list_achievements(self, viewer_id: Optional[str] = None, include_drafts: bool = False) -> list[AchievementResponse]:
        return self._list(self.achievements, viewer_id, include_drafts)

    async def get_achievement(self, achievement_id: str, viewer_id: Optional[str] = None) -> Optional[AchievementResponse]:
        return self._get(self.achievements, achievement_id, viewer_id)

    async def create_achievement(self, data: AchievementCreate) -> AchievementResponse:
        return self._create(self.achievements, AchievementResponse, data)

    async def update_achievement(self, achievement_id: str, changes: dict) -> Optional[AchievementResponse]:
        return self._update(self.achievements, achievement_id, changes)

    async def delete_achievement(self, achievement_id: str) -> bool:
        return self._delete(self.achievements, achievement_id)

    async def toggle_achievement_like(self, achievement_id: str, user_id: str) -> Optional[bool]:
        return self._toggle_like(self.achievements, achievement_id, user_id)

    async def list_achievement_comments(self, achievement_id: str) -> list[CommentResponse]:
        return self._list_comments(self.achievements, achievement_id)

    async def add_achievement_comment(self, achievement_id: str, user_id: str, content: str) -> Optional[CommentResponse]:
        return self._add_comment(self.achievements, achievement_id, user_id, content)

    # Experiences

    async def list_experiences(self, include_drafts: bool = False) -> list[ExperienceResponse]:
        rows = [
            e for e in self.experiences.values()
            if include_drafts or e.status == "published"
        ]
        return sorted(rows, key=lambda e: e.start_date, reverse=True)

    async def get_experience(self, experience_id: str) -> Optional[ExperienceResponse]:
        return self.experiences.get(experience_id)

    async def create_experience(self, data: ExperienceCreate) -> ExperienceResponse:
        now = _now()
        experience = ExperienceResponse(**data.model_dump(), id=_new_id(), created_at=now, updated_at=now)
        self.experiences[experience.id] = experience
        return experience

    async def update_experience(self, experience_id: str, changes: dict) -> Optional[ExperienceResponse]:
        experience = self.experiences.get(experience_id)
        if experience is None:
            return None
        experience = experience.model_copy(update={**changes, "updated_at": _now()})
        self.experiences[experience_id] = experience
        return experience

    async def delete_experience(self, experience_id: str) -> bool:
        return self.experiences.pop(experience_id, None) is not None

    # Contacts

    async def create_contact(self, data: ContactCreate) -> ContactResponse:
        contact = ContactResponse(**data.model_dump(), id=_new_id(), created_at=_now())
        self.contacts[contact.id] = contact
        return contact

    async def list_contacts(self) -> list[ContactResponse]:
        return sorted(self.contacts.values(), key=lambda c: c.created_at, reverse=True)

    # Notifications

    async def create_notification(self, data: NotificationCreate) -> NotificationResponse:
        notification = NotificationResponse(**data.model_dump(), id=_new_id(), created_at=_now())
        self.notifications[notification.id] = notification
        return notification

    async def list_notifications(self, user_id: str) -> list[NotificationResponse]:
        rows = [n for n in self.notifications.values() if n.user_id == user_id]
        return sorted(rows, key=lambda n: n.created_at, reverse=True)

    async def mark_notification_read(self, notification_id: str, user_id: str) -> bool:
        notification = self.notifications.get(notification_id)
        if notification is None or notification.user_id != user_id:
            return False
        self.notifications[notification_id] = notification.model_copy(update={"read": True})
        return True
