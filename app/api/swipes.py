"""
ITDA — Swipe API

Daily swipe budget, the campaign queue, and recording swipes for the
signed-in influencer.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import (
    CurrentUser,
    get_current_user,
    get_queue_service,
    get_swipe_limit_service,
    get_swipe_service,
)
from app.database import get_db
from app.exceptions import DailyLimitExceededError
from app.models.match import SwipeRecord
from app.schemas.swipe import (
    CampaignCard,
    QueueResponse,
    SwipeCreate,
    SwipeLimitResponse,
    SwipeResponse,
)
from app.services.queue_service import QueueService
from app.services.swipe_limit_service import SwipeLimitService
from app.services.swipe_service import SwipeService

logger = structlog.get_logger("itda.api.swipes")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# GET /limit — Remaining swipes today
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/limit",
    response_model=SwipeLimitResponse,
    summary="Check today's remaining swipes",
)
async def get_swipe_limit(
    current_user: CurrentUser = Depends(get_current_user),
    limit_service: SwipeLimitService = Depends(get_swipe_limit_service),
    db: AsyncSession = Depends(get_db),
) -> SwipeLimitResponse:
    status_ = await limit_service.check_and_consume(current_user.id, db)
    return SwipeLimitResponse(**status_)


# ──────────────────────────────────────────────────────────────────────────────
# GET /queue — Next campaigns to swipe
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/queue",
    response_model=QueueResponse,
    summary="Get the campaign swipe queue",
)
async def get_swipe_queue(
    limit: int | None = Query(None, ge=1, le=50),
    current_user: CurrentUser = Depends(get_current_user),
    queue_service: QueueService = Depends(get_queue_service),
    db: AsyncSession = Depends(get_db),
) -> QueueResponse:
    """Ordered, deterministic queue; never longer than the remaining budget."""
    campaigns = await queue_service.generate_queue(current_user.id, db, limit=limit)
    remaining = await queue_service.limit_service.remaining_for(current_user.id, db)
    return QueueResponse(
        campaigns=[CampaignCard.model_validate(c) for c in campaigns],
        remaining=remaining,
    )


# ──────────────────────────────────────────────────────────────────────────────
# POST / — Record a swipe
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "",
    response_model=SwipeResponse,
    summary="Record a swipe on a campaign",
)
async def record_swipe(
    payload: SwipeCreate,
    current_user: CurrentUser = Depends(get_current_user),
    swipe_service: SwipeService = Depends(get_swipe_service),
    db: AsyncSession = Depends(get_db),
) -> SwipeResponse:
    """Check the daily budget, then record the swipe and its side effects.

    A repeat of an already recorded swipe succeeds even when today's budget
    is used up.  Returns 429 when the budget is exhausted for a new swipe,
    404 for an unknown campaign, and 500 with ``{"error": ...}`` when
    recording fails.  Pushes for the notifications it created are sent once
    the swipe has committed.
    """
    log = logger.bind(
        influencer_id=str(current_user.id),
        campaign_id=str(payload.campaign_id),
        action=payload.action,
    )

    budget = await swipe_service.limit_service.check_and_consume(current_user.id, db)
    if not budget["can_swipe"]:
        already_swiped = (
            await db.execute(
                select(SwipeRecord.id).where(
                    SwipeRecord.influencer_id == current_user.id,
                    SwipeRecord.campaign_id == payload.campaign_id,
                )
            )
        ).scalar_one_or_none()
        if already_swiped is None:
            log.info("swipe_rejected_daily_limit")
            raise DailyLimitExceededError(budget["daily_limit"], budget["reset_at"])

    result = await swipe_service.record_swipe(
        current_user.id, payload.campaign_id, payload.action, db
    )
    if not result["success"]:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to record swipe",
        )

    await db.commit()
    await swipe_service.notification_service.deliver_pending(db)
    return SwipeResponse(**result)
