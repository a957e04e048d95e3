"""
Post-commit notification dispatch.

Events are built inside a request once its transaction has committed and
handed to FastAPI ``BackgroundTasks``. Each event is delivered on its own
database session; a failure is logged and never reaches the purchase,
registration, or reset flow that produced it.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import structlog

from worldleader.config import get_settings
from worldleader.database import get_session_factory
from worldleader.email.service import get_email_service
from worldleader.errors import NotificationFailure
from worldleader.ledger.service import PurchaseOutcome
from worldleader.notifications.service import (
    NotificationKind,
    build_overtaken_message,
    create_notification,
)
from worldleader.redis_client import get_optional_redis

logger = structlog.get_logger()


@dataclass(frozen=True)
class NotificationEvent:
    """One message to one recipient."""

    recipient_email: str
    kind: NotificationKind
    data: dict[str, Any] = field(default_factory=dict)


def _leaderboard_url(continent: str | None = None) -> str:
    base = get_settings().app_base_url.rstrip("/")
    if continent:
        return f"{base}/leaderboard?continent={continent}"
    return f"{base}/leaderboard"


def build_overtaken_events(outcome: PurchaseOutcome) -> list[NotificationEvent]:
    """One OVERTAKEN event per user the purchase pushed down."""
    continent = outcome.continent.display_name
    return [
        NotificationEvent(
            recipient_email=notice.email,
            kind=NotificationKind.OVERTAKEN,
            data={
                "user_id": notice.user_id,
                "username": notice.username,
                "overtaken_by": outcome.buyer_username,
                "continent": continent,
                "new_rank": notice.new_continent_rank,
                "positions_lost": notice.positions_lost,
                "leaderboard_url": _leaderboard_url(outcome.continent.value),
            },
        )
        for notice in outcome.overtaken
    ]


async def _deliver(event: NotificationEvent) -> None:
    """
    Persist (OVERTAKEN only) and email one event.

    Raises:
        NotificationFailure: If the email provider reports failure.
    """
    if event.kind is NotificationKind.OVERTAKEN:
        message = build_overtaken_message(
            event.data["overtaken_by"], event.data["continent"], event.data["new_rank"]
        )
        async with get_session_factory()() as db:
            await create_notification(db, event.data["user_id"], event.kind, message)
            await db.commit()

    email_service = get_email_service(get_optional_redis())
    sent = await email_service.send_template(event.recipient_email, event.kind.value, event.data)
    if not sent:
        msg = f"{event.kind.value} email to {event.recipient_email} was not sent"
        raise NotificationFailure(msg)


async def dispatch_events(events: Iterable[NotificationEvent]) -> int:
    """Deliver each event independently. Returns how many succeeded."""
    delivered = 0
    for event in events:
        try:
            await _deliver(event)
        except Exception:
            logger.exception("notification_failed", kind=event.kind.value, to=event.recipient_email)
            continue
        delivered += 1
    return delivered


async def dispatch_overtaken(events: list[NotificationEvent]) -> int:
    """Background task: notify every overtaken user of one purchase."""
    delivered = await dispatch_events(events)
    logger.info("overtaken_notifications_sent", total=len(events), delivered=delivered)
    return delivered


async def dispatch_welcome(email: str, username: str, continent: str, initial_rank: int) -> int:
    """Background task: welcome a newly registered user."""
    event = NotificationEvent(
        recipient_email=email,
        kind=NotificationKind.WELCOME,
        data={
            "username": username,
            "continent": continent,
            "initial_rank": initial_rank,
            "leaderboard_url": _leaderboard_url(),
        },
    )
    return await dispatch_events([event])


async def dispatch_password_reset(email: str, username: str, raw_token: str) -> int:
    """Background task: send a reset link. The raw token only ever travels in this email."""
    settings = get_settings()
    event = NotificationEvent(
        recipient_email=email,
        kind=NotificationKind.PASSWORD_RESET,
        data={
            "username": username,
            "reset_url": f"{settings.app_base_url.rstrip('/')}/reset-password?token={raw_token}",
            "ttl_minutes": settings.password_reset_token_ttl_minutes,
        },
    )
    return await dispatch_events([event])
