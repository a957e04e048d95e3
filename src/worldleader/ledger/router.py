"""Purchase router — POST /api/v1/purchase."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from worldleader.auth.dependencies import get_current_user
from worldleader.database import get_session
from worldleader.db.models import User
from worldleader.errors import WorldLeaderError, error_to_http
from worldleader.ledger.schemas import PurchaseRequest, PurchaseResponse
from worldleader.ledger.service import purchase_positions
from worldleader.notifications.dispatch import build_overtaken_events, dispatch_overtaken

router = APIRouter(prefix="/api/v1/purchase", tags=["Purchase"])


@router.post("", response_model=PurchaseResponse)
async def purchase(
    body: PurchaseRequest,
    background_tasks: BackgroundTasks,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> PurchaseResponse:
    """Buy positions for the caller ($1 = 1 position) and return the new ranks."""
    try:
        outcome = await purchase_positions(db, user.id, body.amount_usd)
    except WorldLeaderError as e:
        status, detail = error_to_http(e)
        raise HTTPException(status_code=status, detail=detail) from e

    if outcome.overtaken:
        background_tasks.add_task(dispatch_overtaken, build_overtaken_events(outcome))

    return PurchaseResponse(
        positions_purchased=outcome.positions_purchased,
        positions_moved=outcome.positions_moved,
        old_continent_rank=outcome.old_continent_rank,
        new_continent_rank=outcome.new_continent_rank,
        new_global_rank=outcome.new_global_rank,
        total_positions_purchased=outcome.total_positions_purchased,
        overtaken_count=len(outcome.overtaken),
        message=outcome.message,
    )
