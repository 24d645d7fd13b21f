"""
ITDA — Swipe Recorder

Records an influencer's decision on a campaign and applies its side effects
in one savepoint:

  every new swipe     → swipe_history row, campaign view_count + 1,
                        influencer daily counter + 1
  like / super_like   → campaign_influencers row (score + predicted price),
                        chat room with a welcome message,
                        like_count / application_count (+ super_like_count)
  new super_like match → immediate high-priority notification to the advertiser
  new like match       → applicant digest batch

Swipe, match, and room inserts are all ``ON CONFLICT DO NOTHING``, so a
repeated swipe on the same campaign is reported as success without touching
any counter.  Failures roll the savepoint back and come back as
``{"success": False, "error": ...}``; a missing influencer or campaign is
raised as :class:`EntityNotFoundError` for the HTTP layer to map to 404.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import insert_ignore
from app.exceptions import EntityNotFoundError
from app.models.campaign import Campaign
from app.models.chat import ChatRoom
from app.models.match import CampaignMatch, SwipeRecord
from app.models.user import Influencer
from app.services.chat_service import ChatService
from app.services.match_scoring_service import MatchScoringService, shared_categories
from app.services.notification_batcher import NotificationBatcher, applicant_snapshot
from app.services.notification_service import NotificationService
from app.services.pricing_service import PricingService
from app.services.swipe_limit_service import SwipeLimitService

logger = structlog.get_logger("itda.swipe_service")

VALID_ACTIONS = frozenset({"like", "pass", "super_like"})
POSITIVE_ACTIONS = frozenset({"like", "super_like"})


class SwipeService:
    """Swipe recording with match, chat, and notification side effects.

    Collaborators are injected so tests can replace any of them; defaults
    are built from settings.
    """

    def __init__(
        self,
        limit_service: SwipeLimitService | None = None,
        scoring_service: MatchScoringService | None = None,
        pricing_service: PricingService | None = None,
        chat_service: ChatService | None = None,
        notification_service: NotificationService | None = None,
        batcher: NotificationBatcher | None = None,
    ) -> None:
        self.limit_service = limit_service or SwipeLimitService()
        self.scoring_service = scoring_service or MatchScoringService()
        self.pricing_service = pricing_service or PricingService()
        self.chat_service = chat_service or ChatService()
        self.notification_service = notification_service or NotificationService()
        self.batcher = batcher or NotificationBatcher(
            scoring_service=self.scoring_service,
            pricing_service=self.pricing_service,
            notification_service=self.notification_service,
        )

    # ── Public API ────────────────────────────────────────────────────────

    async def record_swipe(
        self,
        influencer_id: uuid.UUID,
        campaign_id: uuid.UUID,
        action: str,
        db_session: AsyncSession,
        now: datetime | None = None,
    ) -> dict:
        """Record one swipe and its side effects.

        Returns
        -------
        dict
            ``{"success", "matched", "duplicate", "match_id", "chat_room_id",
            "match_score", "predicted_price"}``; ``"error"`` is added on
            failure.

        Raises
        ------
        ValueError
            If ``action`` is not like / pass / super_like.
        EntityNotFoundError
            If the influencer or campaign does not exist.
        """
        if action not in VALID_ACTIONS:
            raise ValueError(f"Invalid swipe action {action!r}")

        now = now or datetime.now(timezone.utc)
        log = logger.bind(
            influencer_id=str(influencer_id),
            campaign_id=str(campaign_id),
            action=action,
        )

        influencer = await db_session.get(Influencer, influencer_id)
        if influencer is None:
            raise EntityNotFoundError("Influencer", influencer_id)
        campaign = await db_session.get(Campaign, campaign_id)
        if campaign is None:
            raise EntityNotFoundError("Campaign", campaign_id)

        try:
            async with db_session.begin_nested():
                result = await self._record(influencer, campaign, action, db_session, now)
        except Exception as exc:
            log.exception("swipe_record_failed")
            return {
                "success": False,
                "matched": False,
                "duplicate": False,
                "match_id": None,
                "chat_room_id": None,
                "match_score": None,
                "predicted_price": None,
                "error": str(exc),
            }

        log.info(
            "swipe_recorded",
            duplicate=result["duplicate"],
            matched=result["matched"],
            match_score=result["match_score"],
        )
        return result

    # ── Internals ─────────────────────────────────────────────────────────

    async def _record(
        self,
        influencer: Influencer,
        campaign: Campaign,
        action: str,
        db_session: AsyncSession,
        now: datetime,
    ) -> dict:
        score = self.scoring_service.score(influencer, campaign)

        swipe_id = await insert_ignore(
            db_session,
            SwipeRecord,
            {
                "id": uuid.uuid4(),
                "influencer_id": influencer.id,
                "campaign_id": campaign.id,
                "action": action,
                "match_score": score,
                "category_match": bool(shared_categories(influencer, campaign)),
                "swiped_at": now,
            },
            ["influencer_id", "campaign_id"],
        )

        if swipe_id is None:
            return await self._duplicate_result(influencer, campaign, db_session)

        await self._bump_campaign_counters(campaign.id, action, db_session)
        await self.limit_service.consume(influencer.id, db_session, now=now)

        result = {
            "success": True,
            "matched": False,
            "duplicate": False,
            "match_id": None,
            "chat_room_id": None,
            "match_score": score,
            "predicted_price": None,
        }
        if action not in POSITIVE_ACTIONS:
            return result

        prediction = self.pricing_service.predict(
            followers=influencer.followers_count,
            engagement_rate=influencer.engagement_rate,
            category=influencer.primary_category,
            budget=campaign.budget,
            deliverables=campaign.deliverables,
        )
        predicted_price = prediction["estimated_price"]

        match_id = await insert_ignore(
            db_session,
            CampaignMatch,
            {
                "id": uuid.uuid4(),
                "campaign_id": campaign.id,
                "influencer_id": influencer.id,
                "status": "pending",
                "match_score": score,
                "proposed_price": predicted_price,
                "match_details": {
                    "action": action,
                    "predicted_price": predicted_price,
                    "min_price": prediction["min_price"],
                    "max_price": prediction["max_price"],
                    "confidence": prediction["confidence"],
                    "timestamp": now.isoformat(),
                },
                "applied_at": now,
            },
            ["campaign_id", "influencer_id"],
        )
        new_match = match_id is not None
        if not new_match:
            match_id = await self._existing_match_id(influencer.id, campaign.id, db_session)

        room_id, _ = await self.chat_service.ensure_room(
            campaign.id,
            campaign.advertiser_id,
            influencer.id,
            db_session,
            campaign_name=campaign.name,
        )

        if new_match:
            await self._notify_advertiser(
                influencer, campaign, action, score, predicted_price, db_session, now
            )

        result.update(
            matched=True,
            match_id=match_id,
            chat_room_id=room_id,
            predicted_price=predicted_price,
        )
        return result

    async def _bump_campaign_counters(
        self,
        campaign_id: uuid.UUID,
        action: str,
        db_session: AsyncSession,
    ) -> None:
        values = {"view_count": Campaign.view_count + 1}
        if action in POSITIVE_ACTIONS:
            values["like_count"] = Campaign.like_count + 1
            values["application_count"] = Campaign.application_count + 1
        if action == "super_like":
            values["super_like_count"] = Campaign.super_like_count + 1

        await db_session.execute(
            update(Campaign)
            .where(Campaign.id == campaign_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

    async def _notify_advertiser(
        self,
        influencer: Influencer,
        campaign: Campaign,
        action: str,
        score: int,
        predicted_price: int,
        db_session: AsyncSession,
        now: datetime,
    ) -> None:
        display_name = influencer.name or influencer.username or "An influencer"

        if action == "super_like":
            await self.notification_service.create_notification(
                user_id=campaign.advertiser_id,
                type="super_like",
                title="⭐ Super Like!",
                message=f"{display_name} is very interested in {campaign.name}!",
                db_session=db_session,
                metadata={
                    "campaign_id": str(campaign.id),
                    "influencer_id": str(influencer.id),
                    "match_score": score,
                    "predicted_price": predicted_price,
                },
                priority="high",
                action_url=f"/campaigns/{campaign.id}/applicants",
            )
            return

        applicant = applicant_snapshot(influencer, now)
        applicant["match_score"] = score
        await self.batcher.schedule_applicant_notification(
            campaign.id,
            campaign.advertiser_id,
            applicant,
            db_session,
            now=now,
        )

    async def _existing_match_id(
        self,
        influencer_id: uuid.UUID,
        campaign_id: uuid.UUID,
        db_session: AsyncSession,
    ) -> uuid.UUID | None:
        result = await db_session.execute(
            select(CampaignMatch.id).where(
                CampaignMatch.campaign_id == campaign_id,
                CampaignMatch.influencer_id == influencer_id,
            )
        )
        return result.scalar_one_or_none()

    async def _duplicate_result(
        self,
        influencer: Influencer,
        campaign: Campaign,
        db_session: AsyncSession,
    ) -> dict:
        """Describe what the earlier, identical swipe already produced."""
        row = (
            await db_session.execute(
                select(CampaignMatch.id, CampaignMatch.match_score, CampaignMatch.proposed_price)
                .where(
                    CampaignMatch.campaign_id == campaign.id,
                    CampaignMatch.influencer_id == influencer.id,
                )
            )
        ).one_or_none()
        room_id = (
            await db_session.execute(
                select(ChatRoom.id).where(
                    ChatRoom.campaign_id == campaign.id,
                    ChatRoom.advertiser_id == campaign.advertiser_id,
                    ChatRoom.influencer_id == influencer.id,
                )
            )
        ).scalar_one_or_none()

        return {
            "success": True,
            "matched": row is not None,
            "duplicate": True,
            "match_id": row.id if row else None,
            "chat_room_id": room_id,
            "match_score": row.match_score if row else None,
            "predicted_price": row.proposed_price if row else None,
        }
