"""
Relational storage backend on SQLAlchemy's async ORM.

Postgres (asyncpg) in production, SQLite (aiosqlite) in tests. Child rows of a
deleted project or achievement are removed by ON DELETE CASCADE foreign keys.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from sqlalchemy import delete, func, literal, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from portfolio.database import Base, create_engine, create_session_factory, init_db
from portfolio.models import (
    Achievement,
    AchievementComment,
    AchievementLike,
    Contact,
    Experience,
    Notification,
    Project,
    ProjectComment,
    ProjectLike,
    User,
    UserSession,
)
from portfolio.models.user import new_id
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
from portfolio.storage.base import DuplicateEmailError, StorageUnavailableError

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class _EntityKind:
    model: type[Base]
    like_model: type[Base]
    comment_model: type[Base]
    fk: str
    response: type
    order_by: tuple

    def like_fk(self):
        return getattr(self.like_model, self.fk)

    def comment_fk(self):
        return getattr(self.comment_model, self.fk)


PROJECTS = _EntityKind(
    model=Project,
    like_model=ProjectLike,
    comment_model=ProjectComment,
    fk="project_id",
    response=ProjectResponse,
    order_by=(Project.created_at.desc(),),
)

ACHIEVEMENTS = _EntityKind(
    model=Achievement,
    like_model=AchievementLike,
    comment_model=AchievementComment,
    fk="achievement_id",
    response=AchievementResponse,
    order_by=(Achievement.date.desc(), Achievement.created_at.desc()),
)


class SqlStorage:
    """Storage backed by a relational database through SQLAlchemy."""

    name = "relational"

    def __init__(self, database_url: str):
        self.engine = create_engine(database_url)
        self._session_factory = create_session_factory(self.engine)
        self._dialect = self.engine.dialect.name

    async def init(self) -> None:
        async with self._guard("init"):
            await init_db(self.engine)

    async def close(self) -> None:
        await self.engine.dispose()

    @asynccontextmanager
    async def _guard(self, operation: str) -> AsyncIterator[None]:
        """Translate infrastructure failures into StorageUnavailableError."""
        try:
            yield
        except IntegrityError:
            raise
        except (DBAPIError, OSError, asyncio.TimeoutError) as e:
            logger.exception(f"Database error in {operation}")
            raise StorageUnavailableError(f"{operation} failed: {e}") from e
        except SQLAlchemyError as e:
            logger.exception(f"Database error in {operation}")
            raise StorageUnavailableError(f"{operation} failed: {e}") from e

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        async with self._guard(operation):
            async with self._session_factory() as session:
                yield session

    def _insert(self, table):
        dialect = postgresql if self._dialect == "postgresql" else sqlite
        return dialect.insert(table)

    # Users

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        async with self._session("get_user") as db:
            user = await db.get(User, user_id)
            return UserRecord.model_validate(user) if user else None

    async def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        async with self._session("get_user_by_email") as db:
            result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
            user = result.scalar_one_or_none()
            return UserRecord.model_validate(user) if user else None

    async def create_user(self, data: UserCreate, *, is_admin: bool = False) -> UserRecord:
        email = data.email.lower()
        async with self._session("create_user") as db:
            now = _now()
            user = User(
                **data.model_dump(exclude={"email"}),
                email=email,
                is_admin=is_admin,
                created_at=now,
                updated_at=now,
            )
            db.add(user)
            try:
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                raise DuplicateEmailError(email) from e
            return UserRecord.model_validate(user)

    async def update_user(self, user_id: str, changes: dict) -> Optional[UserRecord]:
        async with self._session("update_user") as db:
            user = await db.get(User, user_id)
            if user is None:
                return None
            for key, value in changes.items():
                setattr(user, key, value)
            user.updated_at = _now()
            await db.commit()
            return UserRecord.model_validate(user)

    async def list_users(self) -> list[UserRecord]:
        async with self._session("list_users") as db:
            result = await db.execute(select(User).order_by(User.created_at))
            return [UserRecord.model_validate(u) for u in result.scalars().all()]

    # Sessions

    async def create_session(self, user_id: str, expires_at: datetime) -> str:
        sid = secrets.token_urlsafe(32)
        async with self._session("create_session") as db:
            db.add(UserSession(sid=sid, user_id=user_id, expire=expires_at))
            await db.commit()
        return sid

    async def get_session_user_id(self, sid: str) -> Optional[str]:
        async with self._session("get_session_user_id") as db:
            row = await db.get(UserSession, sid)
            if row is None:
                return None
            if ensure_aware(row.expire) <= _now():
                await db.delete(row)
                await db.commit()
                return None
            return row.user_id

    async def delete_session(self, sid: str) -> None:
        async with self._session("delete_session") as db:
            await db.execute(delete(UserSession).where(UserSession.sid == sid))
            await db.commit()

    # Likeable entities (projects and achievements)

    def _stats_query(self, kind: _EntityKind, viewer_id: Optional[str]):
        model = kind.model
        likes_count = (
            select(func.count(kind.like_model.id))
            .where(kind.like_fk() == model.id)
            .correlate(model)
            .scalar_subquery()
        )
        comments_count = (
            select(func.count(kind.comment_model.id))
            .where(kind.comment_fk() == model.id)
            .correlate(model)
            .scalar_subquery()
        )
        if viewer_id is not None:
            user_liked = (
                select(kind.like_model.id)
                .where(kind.like_fk() == model.id, kind.like_model.user_id == viewer_id)
                .correlate(model)
                .exists()
            )
        else:
            user_liked = literal(False)
        return select(
            model,
            likes_count.label("likes_count"),
            comments_count.label("comments_count"),
            user_liked.label("user_liked"),
        )

    @staticmethod
    def _to_response(kind: _EntityKind, row) -> object:
        entity, likes_count, comments_count, user_liked = row
        return kind.response.model_validate(entity).model_copy(update={
            "likes_count": likes_count or 0,
            "comments_count": comments_count or 0,
            "user_liked": bool(user_liked),
        })

    async def _fetch_one(self, db: AsyncSession, kind: _EntityKind, entity_id: str, viewer_id: Optional[str]):
        result = await db.execute(
            self._stats_query(kind, viewer_id).where(kind.model.id == entity_id)
        )
        row = result.first()
        return self._to_response(kind, row) if row else None

    async def _list(self, kind: _EntityKind, viewer_id: Optional[str], include_drafts: bool) -> list:
        async with self._session(f"list {kind.model.__tablename__}") as db:
            query = self._stats_query(kind, viewer_id)
            if not include_drafts:
                query = query.where(kind.model.status == "published")
            result = await db.execute(query.order_by(*kind.order_by))
            return [self._to_response(kind, row) for row in result.all()]

    async def _get(self, kind: _EntityKind, entity_id: str, viewer_id: Optional[str]):
        async with self._session(f"get {kind.model.__tablename__}") as db:
            return await self._fetch_one(db, kind, entity_id, viewer_id)

    async def _create(self, kind: _EntityKind, data):
        async with self._session(f"create {kind.model.__tablename__}") as db:
            now = _now()
            entity = kind.model(**data.model_dump(), created_at=now, updated_at=now)
            db.add(entity)
            await db.commit()
            return kind.response.model_validate(entity)

    async def _update(self, kind: _EntityKind, entity_id: str, changes: dict):
        async with self._session(f"update {kind.model.__tablename__}") as db:
            entity = await db.get(kind.model, entity_id)
            if entity is None:
                return None
            for key, value in changes.items():
                setattr(entity, key, value)
            entity.updated_at = _now()
            await db.commit()
            return await self._fetch_one(db, kind, entity_id, None)

    async def _delete(self, kind: _EntityKind, entity_id: str) -> bool:
        async with self._session(f"delete {kind.model.__tablename__}") as db:
            result = await db.execute(delete(kind.model).where(kind.model.id == entity_id))
            await db.commit()
            return result.rowcount > 0

    async def _toggle_like(self, kind: _EntityKind, entity_id: str, user_id: str) -> Optional[bool]:
        """Unlike by conditional delete, otherwise insert guarded by the unique constraint."""
        async with self._session(f"toggle {kind.like_model.__tablename__}") as db:
            removed = await db.execute(
                delete(kind.like_model).where(
                    kind.like_fk() == entity_id, kind.like_model.user_id == user_id
                )
            )
            if removed.rowcount:
                await db.commit()
                return False

            stmt = (
                self._insert(kind.like_model)
                .values(id=new_id(), user_id=user_id, created_at=_now(), **{kind.fk: entity_id})
                .on_conflict_do_nothing(index_elements=[kind.fk, "user_id"])
            )
            try:
                await db.execute(stmt)
                await db.commit()
            except IntegrityError:
                # Entity or user no longer exists
                await db.rollback()
                return None
            return True

    @staticmethod
    def _comment_response(kind: _EntityKind, comment, user) -> CommentResponse:
        return CommentResponse(
            id=comment.id,
            entity_id=getattr(comment, kind.fk),
            user_id=comment.user_id,
            content=comment.content,
            created_at=comment.created_at,
            user=UserPublic.model_validate(user),
        )

    async def _list_comments(self, kind: _EntityKind, entity_id: str) -> list[CommentResponse]:
        async with self._session(f"list {kind.comment_model.__tablename__}") as db:
            result = await db.execute(
                select(kind.comment_model)
                .options(selectinload(kind.comment_model.user))
                .where(kind.comment_fk() == entity_id)
                .order_by(kind.comment_model.created_at.desc())
            )
            return [self._comment_response(kind, c, c.user) for c in result.scalars().all()]

    async def _add_comment(self, kind: _EntityKind, entity_id: str, user_id: str, content: str) -> Optional[CommentResponse]:
        async with self._session(f"add {kind.comment_model.__tablename__}") as db:
            comment = kind.comment_model(
                id=new_id(), user_id=user_id, content=content, created_at=_now(), **{kind.fk: entity_id}
            )
            db.add(comment)
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                return None
            user = await db.get(User, user_id)
            return self._comment_response(kind, comment, user)

    # Projects

    async def list_projects(self, viewer_id: Optional[str] = None, include_drafts: bool = False) -> list[ProjectResponse]:
        return await self._list(PROJECTS, viewer_id, include_drafts)

    async def get_project(self, project_id: str, viewer_id: Optional[str] = None) -> Optional[ProjectResponse]:
        return await self._get(PROJECTS, project_id, viewer_id)

    async def create_project(self, data: ProjectCreate) -> ProjectResponse:
        return await self._create(PROJECTS, data)

    async def update_project(self, project_id: str, changes: dict) -> Optional[ProjectResponse]:
        return await self._update(PROJECTS, project_id, changes)

    async def delete_project(self, project_id: str) -> bool:
        return await self._delete(PROJECTS, project_id)

    async def toggle_project_like(self, project_id: str, user_id: str) -> Optional[bool]:
        return await self._toggle_like(PROJECTS, project_id, user_id)

    async def list_project_comments(self, project_id: str) -> list[CommentResponse]:
        return await self._list_comments(PROJECTS, project_id)

    async def add_project_comment(self, project_id: str, user_id: str, content: str) -> Optional[CommentResponse]:
        return await self._add_comment(PROJECTS, project_id, user_id, content)

    # Achievements

    async def list_achievements(self, viewer_id: Optional[str] = None, include_drafts: bool = False) -> list[AchievementResponse]:
        return await self._list(ACHIEVEMENTS, viewer_id, include_drafts)

    async def get_achievement(self, achievement_id: str, viewer_id: Optional[str] = None) -> Optional[AchievementResponse]:
        return await self._get(ACHIEVEMENTS, achievement_id, viewer_id)

    async def create_achievement(self, data: AchievementCreate) -> AchievementResponse:
        return await self._create(ACHIEVEMENTS, data)

    async def update_achievement(self, achievement_id: str, changes: dict) -> Optional[AchievementResponse]:
        return await self._update(ACHIEVEMENTS, achievement_id, changes)

    async def delete_achievement(self, achievement_id: str) -> bool:
        return await self._delete(ACHIEVEMENTS, achievement_id)

    async def toggle_achievement_like(self, achievement_id: str, user_id: str) -> Optional[bool]:
        return await self._toggle_like(ACHIEVEMENTS, achievement_id, user_id)

    async def list_achievement_comments(self, achievement_id: str) -> list[CommentResponse]:
        return await self._list_comments(ACHIEVEMENTS, achievement_id)

    async def add_achievement_comment(self, achievement_id: str, user_id: str, content: str) -> Optional[CommentResponse]:
        return await self._add_comment(ACHIEVEMENTS, achievement_id, user_id, content)

    # Experiences

    async def list_experiences(self, include_drafts: bool = False) -> list[ExperienceResponse]:
        async with self._session("list_experiences") as db:
            query = select(Experience)
            if not include_drafts:
                query = query.where(Experience.status == "published")
            result = await db.execute(query.order_by(Experience.start_date.desc()))
            return [ExperienceResponse.model_validate(e) for e in result.scalars().all()]

    async def get_experience(self, experience_id: str) -> Optional[ExperienceResponse]:
        async with self._session("get_experience") as db:
            experience = await db.get(Experience, experience_id)
            return ExperienceResponse.model_validate(experience) if experience else None

    async def create_experience(self, data: ExperienceCreate) -> ExperienceResponse:
        async with self._session("create_experience") as db:
            now = _now()
            experience = Experience(**data.model_dump(), created_at=now, updated_at=now)
            db.add(experience)
            await db.commit()
            return ExperienceResponse.model_validate(experience)

    async def update_experience(self, experience_id: str, changes: dict) -> Optional[ExperienceResponse]:
        async with self._session("update_experience") as db:
            experience = await db.get(Experience, experience_id)
            if experience is None:
                return None
            for key, value in changes.items():
                setattr(experience, key, value)
            experience.updated_at = _now()
            await db.commit()
            return ExperienceResponse.model_validate(experience)

    async def delete_experience(self, experience_id: str) -> bool:
        async with self._session("delete_experience") as db:
            result = await db.execute(delete(Experience).where(Experience.id == experience_id))
            await db.commit()
            return result.rowcount > 0

    # Contacts

    async def create_contact(self, data: ContactCreate) -> ContactResponse:
        async with self._session("create_contact") as db:
            contact = Contact(**data.model_dump(), created_at=_now())
            db.add(contact)
            await db.commit()
            return ContactResponse.model_validate(contact)

    async def list_contacts(self) -> list[ContactResponse]:
        async with self._session("list_contacts") as db:
            result = await db.execute(select(Contact).order_by(Contact.created_at.desc()))
            return [ContactResponse.model_validate(c) for c in result.scalars().all()]

    # Notifications

    async def create_notification(self, data: NotificationCreate) -> NotificationResponse:
        async with self._session("create_notification") as db:
            notification = Notification(**data.model_dump(), created_at=_now())
            db.add(notification)
            await db.commit()
            return NotificationResponse.model_validate(notification)

    async def list_notifications(self, user_id: str) -> list[NotificationResponse]:
        async with self._session("list_notifications") as db:
            result = await db.execute(
                select(Notification)
                .where(Notification.user_id == user_id)
                .order_by(Notification.created_at.desc())
            )
            return [NotificationResponse.model_validate(n) for n in result.scalars().all()]

    async def mark_notification_read(self, notification_id: str, user_id: str) -> bool:
        async with self._session("mark_notification_read") as db:
            result = await db.execute(
                update(Notification)
                .where(Notification.id == notification_id, Notification.user_id == user_id)
                .values(read=True)
            )
            await db.commit()
            return result.rowcount > 0
