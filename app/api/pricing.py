"""
ITDA — AI Price Analysis API

Price predictions for an influencer, optionally against a campaign.  Request
``custom_data`` may override tuning parameters (followers, engagement,
category, budget, deliverables); the influencer and any referenced campaign
must exist.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUser, get_current_user, get_pricing_service
from app.config import get_settings
from app.database import get_db
from app.exceptions import EntityNotFoundError
from app.models.campaign import Campaign
from app.models.pricing import PricePredictionRecord
from app.models.user import Influencer
from app.schemas.pricing import (
    AIAnalysisRequest,
    AIAnalysisResponse,
    PredictionListResponse,
    PricePrediction,
    PricingCustomData,
)
from app.services.pricing_service import PricingService

logger = structlog.get_logger("itda.api.pricing")

router = APIRouter()


def _to_schema(record: PricePredictionRecord, recommendation: str | None = None) -> PricePrediction:
    return PricePrediction(
        id=record.id,
        influencer_id=record.influencer_id,
        campaign_id=record.campaign_id,
        estimated_price=record.predicted_price,
        min_price=record.min_price,
        max_price=record.max_price,
        confidence=record.confidence,
        factors=record.factors,
        recommendation=recommendation or (record.inputs or {}).get("recommendation"),
        created_at=record.created_at,
    )


# ──────────────────────────────────────────────────────────────────────────────
# POST /ai-analysis — Predict a price
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "",
    response_model=AIAnalysisResponse,
    summary="Predict a sponsorship price",
)
async def create_price_analysis(
    payload: AIAnalysisRequest,
    current_user: CurrentUser = Depends(get_current_user),
    pricing_service: PricingService = Depends(get_pricing_service),
    db: AsyncSession = Depends(get_db),
) -> AIAnalysisResponse:
    influencer_id = payload.influencer_id or current_user.id
    log = logger.bind(
        influencer_id=str(influencer_id),
        campaign_id=str(payload.campaign_id) if payload.campaign_id else None,
    )

    influencer = await db.get(Influencer, influencer_id)
    if influencer is None:
        raise EntityNotFoundError("Influencer", influencer_id)

    campaign: Campaign | None = None
    if payload.campaign_id is not None:
        campaign = await db.get(Campaign, payload.campaign_id)
        if campaign is None:
            raise EntityNotFoundError("Campaign", payload.campaign_id)

    # Only optional tuning parameters fall back to defaults.
    custom = payload.custom_data or PricingCustomData()
    followers = custom.followers if custom.followers is not None else influencer.followers_count
    engagement = (
        custom.engagement_rate
        if custom.engagement_rate is not None
        else influencer.engagement_rate
    )
    category = custom.category or influencer.primary_category
    budget = custom.budget or (campaign.budget if campaign else get_settings().DEFAULT_CAMPAIGN_BUDGET)
    deliverables = (
        [d.model_dump() for d in custom.deliverables]
        if custom.deliverables is not None
        else (campaign.deliverables if campaign else [])
    )

    prediction = pricing_service.predict(
        followers=followers,
        engagement_rate=engagement,
        category=category,
        budget=budget,
        deliverables=deliverables,
    )
    recommendation = pricing_service.recommendation(prediction["estimated_price"], budget)

    record = PricePredictionRecord(
        influencer_id=influencer.id,
        campaign_id=campaign.id if campaign else None,
        predicted_price=prediction["estimated_price"],
        min_price=prediction["min_price"],
        max_price=prediction["max_price"],
        confidence=prediction["confidence"],
        factors=prediction["factors"],
        inputs={
            "followers": followers,
            "engagement_rate": engagement,
            "category": category,
            "budget": budget,
            "deliverables": deliverables,
            "recommendation": recommendation,
        },
    )
    db.add(record)
    await db.flush()
    await db.refresh(record)

    log.info(
        "price_analysis_created",
        estimated_price=prediction["estimated_price"],
        confidence=prediction["confidence"],
    )
    return AIAnalysisResponse(prediction=_to_schema(record, recommendation))


# ──────────────────────────────────────────────────────────────────────────────
# GET /ai-analysis — Recent predictions
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "",
    response_model=PredictionListResponse,
    summary="List recent price predictions",
)
async def list_price_analyses(
    influencer_id: uuid.UUID | None = Query(None),
    campaign_id: uuid.UUID | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> PredictionListResponse:
    stmt = select(PricePredictionRecord)
    if influencer_id is not None:
        stmt = stmt.where(PricePredictionRecord.influencer_id == influencer_id)
    if campaign_id is not None:
        stmt = stmt.where(PricePredictionRecord.campaign_id == campaign_id)
    stmt = stmt.order_by(
        PricePredictionRecord.created_at.desc(), PricePredictionRecord.id
    ).limit(limit)

    records = (await db.execute(stmt)).scalars().all()
    return PredictionListResponse(predictions=[_to_schema(r) for r in records])
