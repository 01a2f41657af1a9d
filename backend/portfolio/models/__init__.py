from portfolio.models.user import User, UserSession
from portfolio.models.project import Project, ProjectLike, ProjectComment
from portfolio.models.achievement import Achievement, AchievementLike, AchievementComment
from portfolio.models.experience import Experience
from portfolio.models.contact import Contact
from portfolio.models.notification import Notification

__all__ = [
    "User",
    "UserSession",
    "Project",
    "ProjectLike",
    "ProjectComment",
    "Achievement",
    "AchievementLike",
    "AchievementComment",
    "Experience",
    "Contact",
    "Notification",
]
