"""Tests for NotificationBatcher — open batches, durable sends, and digests."""
import uuid
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from app.exceptions import EntityNotFoundError
from app.models.notification import Notification, NotificationBatch, NotificationBatchSend
from app.services.notification_batcher import (
    DIGEST_WINDOWS,
    NotificationBatcher,
    applicant_snapshot,
)


@pytest.fixture
def batcher():
    return NotificationBatcher()


@pytest.fixture
async def campaign_setup(make_advertiser, make_campaign):
    advertiser = await make_advertiser()
    campaign = await make_campaign(advertiser, categories=["뷰티"], min_followers=10_000)
    return advertiser, campaign


async def _schedule(batcher, db, campaign, influencer, now):
    return await batcher.schedule_applicant_notification(
        campaign.id,
        campaign.advertiser_id,
        applicant_snapshot(influencer, now),
        db,
        now=now,
    )


class TestScheduling:

    @pytest.mark.asyncio
    async def test_first_applicant_opens_batch_with_three_sends(
        self, db, batcher, campaign_setup, make_influencer, fixed_now
    ):
        _, campaign = campaign_setup
        influencer = await make_influencer()

        batch = await _schedule(batcher, db, campaign, influencer, fixed_now)

        assert batch.status == "pending"
        assert len(batch.applicants) == 1
        sends = (await db.execute(
            select(NotificationBatchSend).where(NotificationBatchSend.batch_id == batch.id)
        )).scalars().all()
        assert sorted(s.window for s in sends) == sorted(DIGEST_WINDOWS)

    @pytest.mark.asyncio
    async def test_later_applicants_append(
        self, db, batcher, campaign_setup, make_influencer, fixed_now
    ):
        _, campaign = campaign_setup
        first = await make_influencer()
        second = await make_influencer()

        batch_a = await _schedule(batcher, db, campaign, first, fixed_now)
        batch_b = await _schedule(batcher, db, campaign, second, fixed_now + timedelta(minutes=5))

        assert batch_a.id == batch_b.id
        assert [a["influencer_id"] for a in batch_b.applicants] == [
            str(first.id),
            str(second.id),
        ]
        count = (await db.execute(select(func.count()).select_from(NotificationBatchSend))).scalar_one()
        assert count == 3


class TestDigest:

    @pytest.mark.asyncio
    async def test_thirty_minute_digest_is_partial(
        self, db, batcher, campaign_setup, make_influencer, fixed_now
    ):
        advertiser, campaign = campaign_setup
        weak = await make_influencer(categories=["게이밍"], followers_count=2_000)
        strong = await make_influencer(tier="gold", is_verified=True)
        batch = await _schedule(batcher, db, campaign, weak, fixed_now)
        await _schedule(batcher, db, campaign, strong, fixed_now + timedelta(minutes=1))

        result = await batcher.process_due_sends(db, now=fixed_now + timedelta(minutes=31))

        assert result == {"processed": 1, "sent": 1, "failed": 0}
        notification = (await db.execute(select(Notification))).scalar_one()
        assert notification.user_id == advertiser.id
        assert notification.type == "applicant_batch"
        assert notification.priority == "high"
        applicants = notification.metadata_["applicants"]
        assert applicants[0]["influencer_id"] == str(strong.id)
        assert applicants[0]["match_score"] >= applicants[1]["match_score"]
        assert notification.metadata_["batch_type"] == "30min"

        await db.refresh(batch)
        assert batch.status == "partial"

    @pytest.mark.asyncio
    async def test_final_digest_completes_batch(
        self, db, batcher, campaign_setup, make_influencer, fixed_now
    ):
        _, campaign = campaign_setup
        influencer = await make_influencer()
        batch = await _schedule(batcher, db, campaign, influencer, fixed_now)

        result = await batcher.process_due_sends(db, now=fixed_now + timedelta(hours=25))

        assert result["processed"] == 3
        assert result["sent"] == 3
        await db.refresh(batch)
        assert batch.status == "completed"

        # Nothing left to send.
        again = await batcher.process_due_sends(db, now=fixed_now + timedelta(hours=26))
        assert again["processed"] == 0

    @pytest.mark.asyncio
    async def test_completed_batch_lets_next_applicant_open_new_one(
        self, db, batcher, campaign_setup, make_influencer, fixed_now
    ):
        _, campaign = campaign_setup
        first = await make_influencer()
        old = await _schedule(batcher, db, campaign, first, fixed_now)
        await batcher.process_due_sends(db, now=fixed_now + timedelta(hours=25))

        later = fixed_now + timedelta(hours=30)
        new = await _schedule(batcher, db, campaign, await make_influencer(), later)

        assert new.id != old.id
        assert len(new.applicants) == 1

    @pytest.mark.asyncio
    async def test_already_sent_is_skipped(
        self, db, batcher, campaign_setup, make_influencer, fixed_now
    ):
        _, campaign = campaign_setup
        batch = await _schedule(batcher, db, campaign, await make_influencer(), fixed_now)
        send = next(s for s in batch.sends if s.window == "30min")

        first = await batcher.send_digest(send.id, db, now=fixed_now + timedelta(minutes=30))
        second = await batcher.send_digest(send.id, db, now=fixed_now + timedelta(minutes=31))

        assert first["success"] is True
        assert second == {"success": True, "skipped": True, "reason": "already_sent"}

    @pytest.mark.asyncio
    async def test_failed_send_is_recorded_for_retry(
        self, db, campaign_setup, make_influencer, fixed_now
    ):
        _, campaign = campaign_setup
        batcher = NotificationBatcher()
        batcher.notification_service.create_notification = AsyncMock(
            side_effect=RuntimeError("push gateway exploded")
        )
        batch = await _schedule(batcher, db, campaign, await make_influencer(), fixed_now)
        send = next(s for s in batch.sends if s.window == "30min")

        result = await batcher.send_digest(send.id, db, now=fixed_now + timedelta(minutes=30))

        assert result["success"] is False
        assert "exploded" in result["error"]
        send = await db.get(NotificationBatchSend, send.id, populate_existing=True)
        assert send.sent_at is None
        assert send.attempts == 1
        assert "exploded" in send.last_error

    @pytest.mark.asyncio
    async def test_unknown_send(self, db, batcher):
        with pytest.raises(EntityNotFoundError):
            await batcher.send_digest(uuid.uuid4(), db)
