"""Users router — /api/v1/users endpoints for the authenticated caller."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from worldleader.auth.dependencies import get_current_user
from worldleader.database import get_session
from worldleader.db.models import User
from worldleader.ledger.service import get_user_transactions
from worldleader.notifications.service import (
    get_notifications,
    get_unread_count,
    mark_all_as_read,
    mark_as_read,
)
from worldleader.users.schemas import (
    NotificationListResponse,
    NotificationResponse,
    ProfileResponse,
    ProfileStatsResponse,
    TransactionResponse,
    UserProfile,
)
from worldleader.users.service import get_profile_stats

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


@router.get("/me", response_model=UserProfile)
async def me(user: User = Depends(get_current_user)) -> UserProfile:
    return UserProfile.model_validate(user)


@router.get("/me/profile", response_model=ProfileResponse)
async def my_profile(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    """Profile with ranking stats, the last 10 transactions and the last 5 notifications."""
    stats = await get_profile_stats(db, user)
    transactions = await get_user_transactions(db, user.id, limit=10)
    notifications = await get_notifications(db, user.id, limit=5)
    return ProfileResponse(
        profile=UserProfile.model_validate(user),
        stats=ProfileStatsResponse.model_validate(stats),
        transactions=[TransactionResponse.model_validate(t) for t in transactions],
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
    )


@router.get("/me/notifications", response_model=NotificationListResponse)
async def my_notifications(
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = Query(False),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> NotificationListResponse:
    notifications = await get_notifications(db, user.id, limit=limit, unread_only=unread_only)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=await get_unread_count(db, user.id),
    )


@router.post("/me/notifications/read-all")
async def read_all_notifications(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, int]:
    count = await mark_all_as_read(db, user.id)
    await db.commit()
    return {"updated": count}


@router.post("/me/notifications/{notification_id}/read")
async def read_notification(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, bool]:
    if not await mark_as_read(db, user.id, notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    await db.commit()
    return {"success": True}
