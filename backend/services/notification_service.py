"""
Notification sink for booking events.

Booking engines record in-app notifications through ``notify_safely``:
the notification is written inside a SAVEPOINT so a failure is logged and
discarded without rolling back the booking that triggered it.
"""

from typing import Dict, Iterable, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from backend.database.models import Notification, NotificationType
import logging

logger = logging.getLogger(__name__)


async def create_notification(
    session: AsyncSession,
    user_id: int,
    type: str,
    title: str,
    message: str,
    related_entity_type: Optional[str] = None,
    related_entity_id: Optional[int] = None,
) -> Dict:
    """
    Create a single unread notification for a user.

    Args:
        session: Database session
        user_id: ID of the user to notify
        type: Notification type (NotificationType enum value)
        title: Notification title
        message: Notification message text
        related_entity_type: Optional kind of entity the notification is about
        related_entity_id: Optional ID of that entity

    Returns:
        Dict containing the created notification data

    Raises:
        ValueError: If required fields are missing or the type is unknown
    """
    if not user_id:
        raise ValueError("user_id is required")
    if not title:
        raise ValueError("title is required")
    if not message:
        raise ValueError("message is required")
    try:
        type = NotificationType(type).value
    except ValueError:
        logger.error(f"Invalid notification type: {type}")
        raise ValueError(f"Invalid notification type: {type}")

    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        related_entity_type=related_entity_type,
        related_entity_id=related_entity_id,
        is_read=False,
    )
    session.add(notification)
    await session.flush()

    logger.info(f"Created notification for user {user_id}: {title} - {message}")

    return {
        "id": notification.id,
        "user_id": notification.user_id,
        "type": notification.type,
        "title": notification.title,
        "message": notification.message,
        "related_entity_type": notification.related_entity_type,
        "related_entity_id": notification.related_entity_id,
        "is_read": notification.is_read,
    }


async def notify_safely(
    session: AsyncSession,
    user_ids: Iterable[int],
    type: NotificationType,
    title: str,
    message: str,
    related_entity_type: Optional[str] = None,
    related_entity_id: Optional[int] = None,
) -> int:
    """
    Best-effort fan-out of one notification to several users.

    Never raises: each failure is logged at WARNING and skipped.

    Returns:
        Number of notifications actually created
    """
    created = 0
    for user_id in user_ids:
        try:
            async with session.begin_nested():
                await create_notification(
                    session,
                    user_id=user_id,
                    type=type.value,
                    title=title,
                    message=message,
                    related_entity_type=related_entity_type,
                    related_entity_id=related_entity_id,
                )
            created += 1
        except Exception as e:
            logger.warning(f"Failed to send {type.value} notification to user {user_id}: {e}")
    return created
