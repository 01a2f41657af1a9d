"""
Admin notifications for visitor activity on projects and achievements.
"""

import logging

from portfolio.schemas import ContactResponse, EntityType, NotificationCreate, UserRecord
from portfolio.storage import Storage

logger = logging.getLogger(__name__)

LIKE_LABELS = {
    EntityType.PROJECT.value: "o projeto",
    EntityType.ACHIEVEMENT.value: "a conquista",
}

COMMENT_LABELS = {
    EntityType.PROJECT.value: "no projeto",
    EntityType.ACHIEVEMENT.value: "na conquista",
}


def display_name(user: UserRecord) -> str:
    name = " ".join(part for part in (user.first_name, user.last_name) if part)
    return name or user.email.split("@")[0]


def _message(kind: str, actor: UserRecord, entity_type: EntityType, title: str) -> str:
    entity = EntityType(entity_type).value
    if kind == "like":
        return f'{display_name(actor)} curtiu {LIKE_LABELS[entity]} "{title}"'
    return f'{display_name(actor)} comentou {COMMENT_LABELS[entity]} "{title}"'


async def notify_admins(
    storage: Storage,
    actor: UserRecord,
    kind: str,
    entity_type: EntityType,
    entity_id: str,
    title: str,
) -> int:
    """Notify every admin about a like or comment. Returns notifications created."""
    if actor.is_admin:
        return 0

    admins = [u for u in await storage.list_users() if u.is_admin]
    message = _message(kind, actor, entity_type, title)
    for admin in admins:
        await storage.create_notification(NotificationCreate(
            user_id=admin.id,
            type=kind,
            entity_type=entity_type,
            entity_id=entity_id,
            from_user_id=actor.id,
            message=message,
        ))
    return len(admins)


def send_contact_email(contact: ContactResponse) -> None:
    """Stand-in for outbound email: contact submissions are only logged."""
    logger.info(
        f"New contact submission {contact.id} from {contact.name} <{contact.email}>: "
        f"{contact.subject}"
    )
