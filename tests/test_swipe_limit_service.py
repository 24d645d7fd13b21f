"""Tests for SwipeLimitService — daily budget in the Asia/Seoul calendar."""
import uuid
from datetime import date, datetime, timedelta, timezone

import pytest

from app.config import get_settings
from app.exceptions import EntityNotFoundError
from app.services.swipe_limit_service import SwipeLimitService


@pytest.fixture
def limit_service():
    return SwipeLimitService(daily_limit=10)


class TestCalendar:

    def test_today_uses_seoul_date(self, limit_service):
        # 16:00 UTC is already 01:00 the next day in Seoul.
        now = datetime(2025, 3, 10, 16, 0, tzinfo=timezone.utc)
        assert limit_service.today(now) == date(2025, 3, 11)

    def test_next_reset_is_local_midnight(self, limit_service, fixed_now):
        reset_at = limit_service.next_reset(fixed_now)
        # 2025-03-11 00:00 KST == 2025-03-10 15:00 UTC
        assert reset_at == datetime(2025, 3, 10, 15, 0, tzinfo=timezone.utc)


class TestCheck:

    @pytest.mark.asyncio
    async def test_fresh_influencer_has_full_budget(self, db, limit_service, make_influencer, fixed_now):
        influencer = await make_influencer()
        status = await limit_service.check_and_consume(influencer.id, db, now=fixed_now)
        assert status["can_swipe"] is True
        assert status["remaining"] == 10
        assert status["used"] == 0
        assert status["daily_limit"] == 10

    @pytest.mark.asyncio
    async def test_limit_reached(self, db, limit_service, make_influencer, fixed_now):
        influencer = await make_influencer(
            daily_swipes_count=10, last_swipe_date=limit_service.today(fixed_now)
        )
        status = await limit_service.check_and_consume(influencer.id, db, now=fixed_now)
        assert status["can_swipe"] is False
        assert status["remaining"] == 0

    @pytest.mark.asyncio
    async def test_yesterdays_count_is_ignored(self, db, limit_service, make_influencer, fixed_now):
        influencer = await make_influencer(
            daily_swipes_count=10,
            last_swipe_date=limit_service.today(fixed_now) - timedelta(days=1),
        )
        status = await limit_service.check_and_consume(influencer.id, db, now=fixed_now)
        assert status["can_swipe"] is True
        assert status["remaining"] == 10

    @pytest.mark.asyncio
    async def test_check_does_not_consume(self, db, limit_service, make_influencer, fixed_now):
        influencer = await make_influencer()
        await limit_service.check_and_consume(influencer.id, db, now=fixed_now)
        status = await limit_service.check_and_consume(influencer.id, db, now=fixed_now)
        assert status["used"] == 0

    @pytest.mark.asyncio
    async def test_explicit_zero_limit_blocks_swiping(self, db, make_influencer, fixed_now):
        influencer = await make_influencer()
        service = SwipeLimitService(daily_limit=0)

        status = await service.check_and_consume(influencer.id, db, now=fixed_now)

        assert service.daily_limit == 0
        assert status["can_swipe"] is False
        assert status["remaining"] == 0

    def test_default_limit_comes_from_settings(self):
        assert SwipeLimitService().daily_limit == get_settings().DAILY_SWIPE_LIMIT

    @pytest.mark.asyncio
    async def test_unknown_influencer(self, db, limit_service):
        with pytest.raises(EntityNotFoundError):
            await limit_service.check_and_consume(uuid.uuid4(), db)


class TestConsume:

    @pytest.mark.asyncio
    async def test_consume_increments(self, db, limit_service, make_influencer, fixed_now):
        influencer = await make_influencer()
        for _ in range(3):
            await limit_service.consume(influencer.id, db, now=fixed_now)
        status = await limit_service.check_and_consume(influencer.id, db, now=fixed_now)
        assert status["used"] == 3
        assert status["remaining"] == 7

    @pytest.mark.asyncio
    async def test_consume_rolls_over_stale_day(self, db, limit_service, make_influencer, fixed_now):
        influencer = await make_influencer(
            daily_swipes_count=9,
            last_swipe_date=limit_service.today(fixed_now) - timedelta(days=2),
        )
        await limit_service.consume(influencer.id, db, now=fixed_now)
        await db.refresh(influencer)
        assert influencer.daily_swipes_count == 1
        assert influencer.last_swipe_date == limit_service.today(fixed_now)

    @pytest.mark.asyncio
    async def test_consume_unknown_influencer(self, db, limit_service):
        with pytest.raises(EntityNotFoundError):
            await limit_service.consume(uuid.uuid4(), db)

    @pytest.mark.asyncio
    async def test_remaining_for(self, db, limit_service, make_influencer, fixed_now):
        influencer = await make_influencer(
            daily_swipes_count=4, last_swipe_date=limit_service.today(fixed_now)
        )
        assert await limit_service.remaining_for(influencer.id, db, now=fixed_now) == 6


class TestReset:

    @pytest.mark.asyncio
    async def test_reset_only_touches_stale_counters(self, db, limit_service, make_influencer, fixed_now):
        today = limit_service.today(fixed_now)
        stale = await make_influencer(daily_swipes_count=5, last_swipe_date=today - timedelta(days=1))
        current = await make_influencer(daily_swipes_count=3, last_swipe_date=today)

        rows = await limit_service.reset_daily_counts(db, now=fixed_now)

        assert rows == 1
        await db.refresh(stale)
        await db.refresh(current)
        assert stale.daily_swipes_count == 0
        assert current.daily_swipes_count == 3
