"""In-app notification persistence.

Notifications are written by the dispatcher after the originating
transaction commits, and read back on the profile and notifications
endpoints. Only OVERTAKEN events are persisted in-app today; welcome and
reset messages are email only.
"""

from __future__ import annotations

import enum
import logging
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from worldleader.db.models import Notification

logger = logging.getLogger(__name__)


class NotificationKind(str, enum.Enum):
    WELCOME = "WELCOME"
    OVERTAKEN = "OVERTAKEN"
    PASSWORD_RESET = "PASSWORD_RESET"


def build_overtaken_message(overtaken_by: str, continent: str, new_rank: int) -> str:
    """Text shown in-app to a user who was pushed down a slot."""
    return (
        f"{overtaken_by} just overtook you on the {continent} leaderboard! "
        f"You're now ranked #{new_rank}. The world is watching - will you climb back?"
    )


async def create_notification(
    db: AsyncSession,
    user_id: int,
    kind: NotificationKind,
    message: str,
) -> Notification:
    """Persist a notification. Flushes, does not commit."""
    notification = Notification(
        user_id=user_id,
        kind=kind.value,
        message=message,
        read_status=False,
        created_at=datetime.now(timezone.utc),
    )
    db.add(notification)
    await db.flush()
    return notification


async def get_notifications(
    db: AsyncSession,
    user_id: int,
    limit: int = 20,
    unread_only: bool = False,
) -> list[Notification]:
    """User's notifications, most recent first."""
    stmt = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        stmt = stmt.where(Notification.read_status.is_(False))
    result = await db.execute(
        stmt.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
    )
    return list(result.scalars().all())


async def get_unread_count(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, Notification.read_status.is_(False))
    )
    return result.scalar_one()


async def mark_as_read(db: AsyncSession, user_id: int, notification_id: int) -> bool:
    """Mark a single notification as read. Returns True if found."""
    result = await db.execute(
        update(Notification)
        .where(Notification.id == notification_id, Notification.user_id == user_id)
        .values(read_status=True)
    )
    return result.rowcount > 0  # type: ignore[attr-defined]


async def mark_all_as_read(db: AsyncSession, user_id: int) -> int:
    """Mark every unread notification as read. Returns the number updated."""
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read_status.is_(False))
        .values(read_status=True)
    )
    count = result.rowcount  # type: ignore[attr-defined]
    logger.debug("Marked %d notifications read for user %d", count, user_id)
    return count
