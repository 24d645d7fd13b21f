"""
ITDA — Campaign Queue Generator

Builds the ordered list of campaigns an influencer sees next:

  1. Eligible pool: active campaigns, not past their deadline, that the
     influencer has neither swiped nor already applied to.
  2. n = min(requested size, remaining daily swipe budget).
  3. round(n × category share) slots go to the best eligible campaigns
     sharing a category with the influencer, by (premium, urgency, budget),
     however old they are.
  4. The rest are filled from the remaining pool, newest first.

There is no randomness: until a new swipe lands, repeated calls return the
same list.
"""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone

import structlog
from sqlalchemy import Select, case, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.exceptions import EntityNotFoundError
from app.models.campaign import Campaign
from app.models.match import CampaignMatch, SwipeRecord
from app.models.user import Influencer
from app.services.swipe_limit_service import SwipeLimitService

logger = structlog.get_logger("itda.queue_service")

URGENCY_RANK: dict[str, int] = {"low": 0, "medium": 1, "high": 2}


class QueueService:
    """Derives swipe queues from current exclusion state."""

    def __init__(self, limit_service: SwipeLimitService | None = None) -> None:
        settings = get_settings()
        self.default_size: int = settings.QUEUE_SIZE
        self.category_share: float = settings.QUEUE_CATEGORY_SHARE
        self.candidate_pool: int = settings.QUEUE_CANDIDATE_POOL
        self.limit_service = limit_service or SwipeLimitService()

    async def generate_queue(
        self,
        influencer_id: uuid.UUID,
        db_session: AsyncSession,
        limit: int | None = None,
        now: datetime | None = None,
    ) -> list[Campaign]:
        """Return up to ``min(limit, remaining budget)`` campaigns.

        Raises
        ------
        EntityNotFoundError
            If the influencer does not exist.
        """
        now = now or datetime.now(timezone.utc)
        limit = self.default_size if limit is None else limit
        log = logger.bind(influencer_id=str(influencer_id))

        influencer = await db_session.get(Influencer, influencer_id, populate_existing=True)
        if influencer is None:
            raise EntityNotFoundError("Influencer", influencer_id)

        today = self.limit_service.today(now)
        remaining = max(
            0, self.limit_service.daily_limit - self.limit_service.effective_count(influencer, today)
        )
        size = min(limit, remaining)
        if size <= 0:
            log.info("queue_empty_budget", limit=limit, remaining=remaining)
            return []

        category_slots = int(math.floor(size * self.category_share + 0.5))
        picked = await self._category_matches(
            influencer, db_session, now, category_slots
        )

        fill = await self._newest_campaigns(
            influencer_id,
            db_session,
            now,
            exclude={c.id for c in picked},
            limit=size - len(picked),
        )
        picked.extend(fill)

        log.info(
            "queue_generated",
            size=len(picked),
            requested=limit,
            remaining=remaining,
            category_matches=len(picked) - len(fill),
        )
        return picked

    async def get_next_campaign(
        self,
        influencer_id: uuid.UUID,
        db_session: AsyncSession,
        now: datetime | None = None,
    ) -> Campaign | None:
        queue = await self.generate_queue(influencer_id, db_session, limit=1, now=now)
        return queue[0] if queue else None

    def _eligible(self, influencer_id: uuid.UUID, now: datetime) -> Select:
        swiped = select(SwipeRecord.campaign_id).where(
            SwipeRecord.influencer_id == influencer_id
        )
        applied = select(CampaignMatch.campaign_id).where(
            CampaignMatch.influencer_id == influencer_id
        )
        return select(Campaign).where(
            Campaign.status == "active",
            or_(Campaign.deadline.is_(None), Campaign.deadline > now),
            Campaign.id.not_in(swiped),
            Campaign.id.not_in(applied),
        )

    async def _category_matches(
        self,
        influencer: Influencer,
        db_session: AsyncSession,
        now: datetime,
        slots: int,
    ) -> list[Campaign]:
        """Best ``slots`` eligible campaigns sharing a category, by priority.

        Categories live in a JSON column, so the whole eligible set is read in
        priority order one page at a time and the overlap is checked here.
        """
        preferred = set(influencer.categories or [])
        if slots <= 0 or not preferred:
            return []

        stmt = self._eligible(influencer.id, now).order_by(
            Campaign.is_premium.desc(),
            case(URGENCY_RANK, value=Campaign.urgency, else_=0).desc(),
            Campaign.budget.desc(),
            Campaign.id,
        )

        matches: list[Campaign] = []
        offset = 0
        while True:
            page = list(
                (
                    await db_session.execute(
                        stmt.limit(self.candidate_pool).offset(offset)
                    )
                ).scalars().all()
            )
            for campaign in page:
                if preferred.intersection(campaign.categories or []):
                    matches.append(campaign)
                    if len(matches) == slots:
                        return matches
            if len(page) < self.candidate_pool:
                return matches
            offset += self.candidate_pool

    async def _newest_campaigns(
        self,
        influencer_id: uuid.UUID,
        db_session: AsyncSession,
        now: datetime,
        exclude: set[uuid.UUID],
        limit: int,
    ) -> list[Campaign]:
        if limit <= 0:
            return []
        stmt = self._eligible(influencer_id, now)
        if exclude:
            stmt = stmt.where(Campaign.id.not_in(exclude))
        stmt = stmt.order_by(Campaign.created_at.desc(), Campaign.id).limit(limit)
        result = await db_session.execute(stmt)
        return list(result.scalars().all())
