"""Tests for QueueService — eligibility, category share, and determinism."""
import uuid
from datetime import timedelta

import pytest

from app.exceptions import EntityNotFoundError
from app.models.match import CampaignMatch, SwipeRecord
from app.services.queue_service import QueueService
from app.services.swipe_limit_service import SwipeLimitService


@pytest.fixture
def queue_service():
    return QueueService(limit_service=SwipeLimitService(daily_limit=10))


class TestEligibility:

    @pytest.mark.asyncio
    async def test_excludes_swiped_applied_inactive_and_expired(
        self, db, queue_service, make_influencer, make_advertiser, make_campaign, fixed_now
    ):
        influencer = await make_influencer()
        advertiser = await make_advertiser()

        eligible = await make_campaign(advertiser)
        swiped = await make_campaign(advertiser)
        applied = await make_campaign(advertiser)
        await make_campaign(advertiser, status="paused")
        await make_campaign(advertiser, deadline=fixed_now - timedelta(hours=1))
        future = await make_campaign(advertiser, deadline=fixed_now + timedelta(days=3))

        db.add(SwipeRecord(
            influencer_id=influencer.id, campaign_id=swiped.id, action="pass", swiped_at=fixed_now
        ))
        db.add(CampaignMatch(
            influencer_id=influencer.id, campaign_id=applied.id, match_score=80, applied_at=fixed_now
        ))
        await db.flush()

        queue = await queue_service.generate_queue(influencer.id, db, now=fixed_now)

        assert {c.id for c in queue} == {eligible.id, future.id}

    @pytest.mark.asyncio
    async def test_unknown_influencer(self, db, queue_service):
        with pytest.raises(EntityNotFoundError):
            await queue_service.generate_queue(uuid.uuid4(), db)


class TestComposition:

    @pytest.mark.asyncio
    async def test_category_share_then_newest(
        self, db, queue_service, make_influencer, make_advertiser, make_campaign, fixed_now
    ):
        influencer = await make_influencer(categories=["뷰티"])
        advertiser = await make_advertiser()
        beauty = [await make_campaign(advertiser, categories=["뷰티"]) for _ in range(10)]
        fashion = [await make_campaign(advertiser, categories=["패션"]) for _ in range(10)]

        queue = await queue_service.generate_queue(influencer.id, db, limit=10, now=fixed_now)

        assert len(queue) == 10
        beauty_ids = {c.id for c in beauty}
        assert sum(1 for c in queue if c.id in beauty_ids) == 7
        # Fashion campaigns are the newest, so they fill the remaining slots.
        assert [c.id for c in queue[7:]] == [c.id for c in reversed(fashion)][:3]

    @pytest.mark.asyncio
    async def test_category_matches_ranked_by_priority(
        self, db, queue_service, make_influencer, make_advertiser, make_campaign, fixed_now
    ):
        influencer = await make_influencer(categories=["뷰티"])
        advertiser = await make_advertiser()
        low = await make_campaign(advertiser, urgency="low", budget=9_000_000)
        high = await make_campaign(advertiser, urgency="high", budget=1_000_000)
        premium = await make_campaign(advertiser, urgency="low", is_premium=True)
        rich = await make_campaign(advertiser, urgency="high", budget=3_000_000)

        queue = await queue_service.generate_queue(influencer.id, db, limit=4, now=fixed_now)

        # round(4 x 0.7) = 3 priority slots, then newest remaining.
        assert [c.id for c in queue] == [premium.id, rich.id, high.id, low.id]

    @pytest.mark.asyncio
    async def test_old_premium_campaign_behind_newer_ones(
        self, db, queue_service, make_influencer, make_advertiser, make_campaign, fixed_now
    ):
        influencer = await make_influencer(categories=["뷰티"])
        advertiser = await make_advertiser()
        premium = await make_campaign(
            advertiser, categories=["뷰티"], is_premium=True, urgency="high"
        )
        plain = await make_campaign(advertiser, categories=["뷰티"], urgency="low")
        fashion = [await make_campaign(advertiser, categories=["패션"]) for _ in range(5)]
        # Smaller than the number of newer campaigns; matches are paged in.
        queue_service.candidate_pool = 2

        queue = await queue_service.generate_queue(influencer.id, db, limit=3, now=fixed_now)

        # round(3 x 0.7) = 2 category slots, then the newest fashion campaign.
        assert [c.id for c in queue] == [premium.id, plain.id, fashion[-1].id]

    @pytest.mark.asyncio
    async def test_fill_skips_category_picks(
        self, db, queue_service, make_influencer, make_advertiser, make_campaign, fixed_now
    ):
        influencer = await make_influencer(categories=["뷰티"])
        advertiser = await make_advertiser()
        older = await make_campaign(advertiser, categories=["패션"])
        beauty = await make_campaign(advertiser, categories=["뷰티"])

        queue = await queue_service.generate_queue(influencer.id, db, limit=2, now=fixed_now)

        assert [c.id for c in queue] == [beauty.id, older.id]

    @pytest.mark.asyncio
    async def test_deterministic(
        self, db, queue_service, make_influencer, make_advertiser, make_campaign, fixed_now
    ):
        influencer = await make_influencer(categories=["뷰티", "패션"])
        advertiser = await make_advertiser()
        for i in range(12):
            await make_campaign(advertiser, categories=["뷰티" if i % 2 else "테크"])

        first = await queue_service.generate_queue(influencer.id, db, now=fixed_now)
        second = await queue_service.generate_queue(influencer.id, db, now=fixed_now)
        assert [c.id for c in first] == [c.id for c in second]
        assert len({c.id for c in first}) == len(first)


class TestBudget:

    @pytest.mark.asyncio
    async def test_queue_never_exceeds_remaining(
        self, db, queue_service, make_influencer, make_advertiser, make_campaign, fixed_now
    ):
        influencer = await make_influencer(
            daily_swipes_count=8,
            last_swipe_date=queue_service.limit_service.today(fixed_now),
        )
        advertiser = await make_advertiser()
        for _ in range(5):
            await make_campaign(advertiser)

        queue = await queue_service.generate_queue(influencer.id, db, limit=10, now=fixed_now)
        assert len(queue) == 2

    @pytest.mark.asyncio
    async def test_exhausted_budget_returns_empty(
        self, db, queue_service, make_influencer, make_advertiser, make_campaign, fixed_now
    ):
        influencer = await make_influencer(
            daily_swipes_count=10,
            last_swipe_date=queue_service.limit_service.today(fixed_now),
        )
        advertiser = await make_advertiser()
        await make_campaign(advertiser)

        assert await queue_service.generate_queue(influencer.id, db, now=fixed_now) == []
        assert await queue_service.get_next_campaign(influencer.id, db, now=fixed_now) is None

    @pytest.mark.asyncio
    async def test_next_campaign(
        self, db, queue_service, make_influencer, make_advertiser, make_campaign, fixed_now
    ):
        influencer = await make_influencer()
        advertiser = await make_advertiser()
        older = await make_campaign(advertiser)
        newest = await make_campaign(advertiser)

        nxt = await queue_service.get_next_campaign(influencer.id, db, now=fixed_now)
        assert nxt is not None
        assert nxt.id in {older.id, newest.id}
