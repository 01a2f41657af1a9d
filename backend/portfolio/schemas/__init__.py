from portfolio.schemas.base import MessageResponse
from portfolio.schemas.auth import (
    RegisterRequest,
    LoginRequest,
    UserCreate,
    UserUpdate,
    UserRecord,
    UserResponse,
    UserPublic,
)
from portfolio.schemas.project import (
    PublicationStatus,
    ProjectCreate,
    ProjectUpdate,
    ProjectResponse,
)
from portfolio.schemas.achievement import (
    AchievementCreate,
    AchievementUpdate,
    AchievementResponse,
)
from portfolio.schemas.experience import (
    ExperienceCreate,
    ExperienceUpdate,
    ExperienceResponse,
)
from portfolio.schemas.interaction import (
    EntityType,
    CommentCreate,
    CommentResponse,
    LikeResponse,
    ContactCreate,
    ContactResponse,
    ContactSubmitted,
    NotificationCreate,
    NotificationResponse,
)

__all__ = [
    "MessageResponse",
    "RegisterRequest",
    "LoginRequest",
    "UserCreate",
    "UserUpdate",
    "UserRecord",
    "UserResponse",
    "UserPublic",
    "PublicationStatus",
    "ProjectCreate",
    "ProjectUpdate",
    "ProjectResponse",
    "AchievementCreate",
    "AchievementUpdate",
    "AchievementResponse",
    "ExperienceCreate",
    "ExperienceUpdate",
    "ExperienceResponse",
    "EntityType",
    "CommentCreate",
    "CommentResponse",
    "LikeResponse",
    "ContactCreate",
    "ContactResponse",
    "ContactSubmitted",
    "NotificationCreate",
    "NotificationResponse",
]
