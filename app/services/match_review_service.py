"""
ITDA — Application Review

Advertiser-side review of campaign applications (``campaign_influencers``
rows created by the swipe recorder) and the influencer-side application list.
Only ``pending`` applications can be accepted or rejected; the influencer is
notified of either decision.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import EntityNotFoundError, InvalidStateError, PermissionDeniedError
from app.models.campaign import Campaign
from app.models.chat import ChatRoom
from app.models.match import CampaignMatch
from app.services.chat_service import ChatService
from app.services.notification_service import NotificationService

logger = structlog.get_logger("itda.match_review_service")


class MatchReviewService:

    def __init__(
        self,
        notification_service: NotificationService | None = None,
        chat_service: ChatService | None = None,
    ) -> None:
        self.notification_service = notification_service or NotificationService()
        self.chat_service = chat_service or ChatService()

    async def list_applicants(
        self,
        campaign_id: uuid.UUID,
        advertiser_id: uuid.UUID,
        db_session: AsyncSession,
        status: str | None = None,
    ) -> list[dict]:
        """Applicants for one of the advertiser's campaigns, best match first."""
        campaign = await db_session.get(Campaign, campaign_id)
        if campaign is None:
            raise EntityNotFoundError("Campaign", campaign_id)
        if campaign.advertiser_id != advertiser_id:
            raise PermissionDeniedError("Campaign belongs to another advertiser")

        stmt = select(CampaignMatch).where(CampaignMatch.campaign_id == campaign_id)
        if status:
            stmt = stmt.where(CampaignMatch.status == status)
        stmt = stmt.order_by(
            CampaignMatch.match_score.desc(), CampaignMatch.applied_at, CampaignMatch.id
        )
        matches = (await db_session.execute(stmt)).scalars().all()

        return [
            {
                "match_id": m.id,
                "influencer_id": m.influencer_id,
                "name": m.influencer.name,
                "username": m.influencer.username,
                "avatar": m.influencer.avatar,
                "followers_count": m.influencer.followers_count,
                "engagement_rate": m.influencer.engagement_rate,
                "tier": m.influencer.tier,
                "status": m.status,
                "match_score": m.match_score,
                "proposed_price": m.proposed_price,
                "applied_at": m.applied_at,
            }
            for m in matches
        ]

    async def list_applications(
        self,
        influencer_id: uuid.UUID,
        db_session: AsyncSession,
    ) -> list[dict]:
        stmt = (
            select(CampaignMatch)
            .where(CampaignMatch.influencer_id == influencer_id)
            .order_by(CampaignMatch.applied_at.desc(), CampaignMatch.id)
        )
        matches = (await db_session.execute(stmt)).scalars().all()
        return [
            {
                "match_id": m.id,
                "campaign_id": m.campaign_id,
                "campaign_name": m.campaign.name,
                "budget": m.campaign.budget,
                "status": m.status,
                "match_score": m.match_score,
                "proposed_price": m.proposed_price,
                "agreed_price": m.agreed_price,
                "applied_at": m.applied_at,
                "reviewed_at": m.reviewed_at,
            }
            for m in matches
        ]

    async def _pending_match_for(
        self,
        match_id: uuid.UUID,
        advertiser_id: uuid.UUID,
        db_session: AsyncSession,
    ) -> CampaignMatch:
        match = await db_session.get(CampaignMatch, match_id, with_for_update=True)
        if match is None:
            raise EntityNotFoundError("Match", match_id)
        if match.campaign.advertiser_id != advertiser_id:
            raise PermissionDeniedError("Match belongs to another advertiser's campaign")
        if match.status != "pending":
            raise InvalidStateError(f"Match is already {match.status}")
        return match

    async def accept(
        self,
        match_id: uuid.UUID,
        advertiser_id: uuid.UUID,
        db_session: AsyncSession,
        agreed_price: int | None = None,
    ) -> dict:
        match = await self._pending_match_for(match_id, advertiser_id, db_session)
        campaign = match.campaign

        match.status = "accepted"
        match.agreed_price = agreed_price or match.proposed_price
        match.reviewed_at = datetime.now(timezone.utc)

        room_id, _ = await self.chat_service.ensure_room(
            campaign.id,
            campaign.advertiser_id,
            match.influencer_id,
            db_session,
            campaign_name=campaign.name,
        )

        await self.notification_service.create_notification(
            user_id=match.influencer_id,
            type="application_accepted",
            title="Application accepted",
            message=f"Your application to {campaign.name} was accepted.",
            db_session=db_session,
            metadata={
                "campaign_id": str(campaign.id),
                "match_id": str(match.id),
                "chat_room_id": str(room_id),
                "agreed_price": match.agreed_price,
            },
            priority="high",
            action_url=f"/chat/{room_id}",
        )
        await db_session.flush()

        logger.info(
            "application_accepted",
            match_id=str(match.id),
            campaign_id=str(campaign.id),
            agreed_price=match.agreed_price,
        )
        return {"match_id": match.id, "status": match.status, "chat_room_id": room_id}

    async def reject(
        self,
        match_id: uuid.UUID,
        advertiser_id: uuid.UUID,
        db_session: AsyncSession,
    ) -> dict:
        match = await self._pending_match_for(match_id, advertiser_id, db_session)
        campaign = match.campaign

        match.status = "rejected"
        match.reviewed_at = datetime.now(timezone.utc)

        room = (
            await db_session.execute(
                select(ChatRoom).where(
                    ChatRoom.campaign_id == campaign.id,
                    ChatRoom.influencer_id == match.influencer_id,
                )
            )
        ).scalar_one_or_none()
        if room is not None:
            room.contract_status = "cancelled"

        await self.notification_service.create_notification(
            user_id=match.influencer_id,
            type="application_rejected",
            title="Application update",
            message=f"Your application to {campaign.name} was not selected this time.",
            db_session=db_session,
            metadata={"campaign_id": str(campaign.id), "match_id": str(match.id)},
            priority="low",
        )
        await db_session.flush()

        logger.info("application_rejected", match_id=str(match.id), campaign_id=str(campaign.id))
        return {
            "match_id": match.id,
            "status": match.status,
            "chat_room_id": room.id if room else None,
        }
