"""
ITDA — Match Review API

Influencers list their applications; advertisers list applicants per campaign
and accept or reject them.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUser, get_current_user, get_match_review_service
from app.database import get_db
from app.schemas.match import (
    ApplicantItem,
    ApplicantListResponse,
    ApplicationItem,
    ApplicationListResponse,
    MatchDecisionRequest,
    MatchDecisionResponse,
)
from app.services.match_review_service import MatchReviewService

logger = structlog.get_logger("itda.api.matches")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# GET /applications — Caller's applications (influencer)
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/applications",
    response_model=ApplicationListResponse,
    summary="List my campaign applications",
)
async def list_applications(
    current_user: CurrentUser = Depends(get_current_user),
    review_service: MatchReviewService = Depends(get_match_review_service),
    db: AsyncSession = Depends(get_db),
) -> ApplicationListResponse:
    items = await review_service.list_applications(current_user.id, db)
    return ApplicationListResponse(applications=[ApplicationItem(**i) for i in items])


# ──────────────────────────────────────────────────────────────────────────────
# GET /campaigns/{campaign_id}/applicants — Applicants (advertiser)
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/campaigns/{campaign_id}/applicants",
    response_model=ApplicantListResponse,
    summary="List applicants for a campaign",
)
async def list_applicants(
    campaign_id: uuid.UUID,
    status: str | None = Query(None, pattern="^(pending|accepted|rejected)$"),
    current_user: CurrentUser = Depends(get_current_user),
    review_service: MatchReviewService = Depends(get_match_review_service),
    db: AsyncSession = Depends(get_db),
) -> ApplicantListResponse:
    items = await review_service.list_applicants(
        campaign_id, current_user.id, db, status=status
    )
    return ApplicantListResponse(applicants=[ApplicantItem(**i) for i in items])


# ──────────────────────────────────────────────────────────────────────────────
# POST /{match_id}/accept, /{match_id}/reject — Review decision
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/{match_id}/accept",
    response_model=MatchDecisionResponse,
    summary="Accept an application",
)
async def accept_match(
    match_id: uuid.UUID,
    payload: MatchDecisionRequest | None = None,
    current_user: CurrentUser = Depends(get_current_user),
    review_service: MatchReviewService = Depends(get_match_review_service),
    db: AsyncSession = Depends(get_db),
) -> MatchDecisionResponse:
    agreed_price = payload.agreed_price if payload else None
    result = await review_service.accept(
        match_id, current_user.id, db, agreed_price=agreed_price
    )
    await db.commit()
    await review_service.notification_service.deliver_pending(db)
    return MatchDecisionResponse(**result)


@router.post(
    "/{match_id}/reject",
    response_model=MatchDecisionResponse,
    summary="Reject an application",
)
async def reject_match(
    match_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    review_service: MatchReviewService = Depends(get_match_review_service),
    db: AsyncSession = Depends(get_db),
) -> MatchDecisionResponse:
    result = await review_service.reject(match_id, current_user.id, db)
    await db.commit()
    await review_service.notification_service.deliver_pending(db)
    return MatchDecisionResponse(**result)
