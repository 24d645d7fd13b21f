"""
ITDA — Applicant Digest Batcher

Instead of notifying an advertiser once per application, ordinary ``like``
applications are collected into one open batch per (campaign, advertiser) and
summarised in three digests: 30 minutes, 2 hours, and 24 hours after the batch
was opened.

Digest sends are durable rows in ``notification_batch_sends`` (written once,
when the batch is created) and are executed by a polling worker via
:meth:`NotificationBatcher.process_due_sends`, so a restart loses nothing.
Each send re-scores every accumulated applicant against the campaign, sorts by
score, and emits a single ``applicant_batch`` notification.  The 24-hour send
completes the batch; the next application opens a fresh one.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.exceptions import EntityNotFoundError
from app.models.campaign import Campaign
from app.models.notification import NotificationBatch, NotificationBatchSend
from app.models.user import Influencer
from app.services.match_scoring_service import MatchScoringService
from app.services.notification_service import NotificationService
from app.services.pricing_service import PricingService

logger = structlog.get_logger("itda.notification_batcher")

# ──────────────────────────────────────────────────────────────────────────────
# Digest windows
# ──────────────────────────────────────────────────────────────────────────────

DIGEST_WINDOWS: dict[str, timedelta] = {
    "30min": timedelta(minutes=30),
    "2hour": timedelta(hours=2),
    "24hour": timedelta(hours=24),
}

_FINAL_WINDOW = "24hour"

_WINDOW_LABELS: dict[str, str] = {
    "30min": "30-minute",
    "2hour": "2-hour",
    "24hour": "24-hour",
}


def _profile_fields(influencer: Influencer) -> dict:
    return {
        "influencer_id": str(influencer.id),
        "name": influencer.name or influencer.username,
        "username": influencer.username,
        "followers_count": influencer.followers_count,
        "engagement_rate": influencer.engagement_rate,
        "categories": list(influencer.categories or []),
        "tier": influencer.tier,
        "is_verified": influencer.is_verified,
    }


def applicant_snapshot(influencer: Influencer, applied_at: datetime) -> dict:
    """JSON-safe view of an applicant as stored on a batch."""
    return {**_profile_fields(influencer), "applied_at": applied_at.isoformat()}


class NotificationBatcher:
    """Collects applicants and emits scheduled digest notifications."""

    def __init__(
        self,
        scoring_service: MatchScoringService | None = None,
        pricing_service: PricingService | None = None,
        notification_service: NotificationService | None = None,
    ) -> None:
        self.scoring_service = scoring_service or MatchScoringService()
        self.pricing_service = pricing_service or PricingService()
        self.notification_service = notification_service or NotificationService()

        settings = get_settings()
        self.batch_size: int = settings.BATCH_WORKER_BATCH_SIZE

    # ── Scheduling ────────────────────────────────────────────────────────

    async def schedule_applicant_notification(
        self,
        campaign_id: uuid.UUID,
        advertiser_id: uuid.UUID,
        applicant_data: dict,
        db_session: AsyncSession,
        now: datetime | None = None,
    ) -> NotificationBatch:
        """Append an applicant to the open batch, opening one if needed.

        Opening a batch also writes its three digest sends; appending to an
        existing batch never schedules anything new.
        """
        now = now or datetime.now(timezone.utc)
        log = logger.bind(campaign_id=str(campaign_id), advertiser_id=str(advertiser_id))

        batch = await self._open_batch(campaign_id, advertiser_id, db_session)
        if batch is None:
            try:
                async with db_session.begin_nested():
                    batch = self._new_batch(campaign_id, advertiser_id, applicant_data, now)
                    db_session.add(batch)
                log.info("digest_batch_opened", batch_id=str(batch.id))
                return batch
            except IntegrityError:
                # A concurrent request opened the batch first.
                log.info("digest_batch_open_race")
                batch = await self._open_batch(campaign_id, advertiser_id, db_session)
                if batch is None:
                    raise

        # Reassign so the JSON column change is tracked.
        batch.applicants = [*(batch.applicants or []), applicant_data]
        batch.updated_at = now
        await db_session.flush()

        log.info(
            "digest_batch_appended",
            batch_id=str(batch.id),
            applicants=len(batch.applicants),
        )
        return batch

    async def _open_batch(
        self,
        campaign_id: uuid.UUID,
        advertiser_id: uuid.UUID,
        db_session: AsyncSession,
    ) -> NotificationBatch | None:
        stmt = (
            select(NotificationBatch)
            .where(
                NotificationBatch.campaign_id == campaign_id,
                NotificationBatch.advertiser_id == advertiser_id,
                NotificationBatch.status != "completed",
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return (await db_session.execute(stmt)).scalar_one_or_none()

    @staticmethod
    def _new_batch(
        campaign_id: uuid.UUID,
        advertiser_id: uuid.UUID,
        applicant_data: dict,
        now: datetime,
    ) -> NotificationBatch:
        batch = NotificationBatch(
            id=uuid.uuid4(),
            campaign_id=campaign_id,
            advertiser_id=advertiser_id,
            applicants=[applicant_data],
            status="pending",
            scheduled_for=now + DIGEST_WINDOWS["30min"],
            created_at=now,
        )
        batch.sends = [
            NotificationBatchSend(window=window, due_at=now + offset)
            for window, offset in DIGEST_WINDOWS.items()
        ]
        return batch

    # ── Sending ───────────────────────────────────────────────────────────

    async def send_digest(
        self,
        send_id: uuid.UUID,
        db_session: AsyncSession,
        now: datetime | None = None,
    ) -> dict:
        """Execute one scheduled digest send.

        Runs inside a savepoint: on failure the partial work is rolled back,
        the attempt is recorded on the send row, and
        ``{"success": False, "error": ...}`` is returned so the next poll can
        retry it.
        """
        now = now or datetime.now(timezone.utc)
        log = logger.bind(send_id=str(send_id))

        try:
            async with db_session.begin_nested():
                return await self._send_digest(send_id, db_session, now)
        except EntityNotFoundError:
            raise
        except Exception as exc:
            log.exception("digest_send_failed")
            await db_session.execute(
                update(NotificationBatchSend)
                .where(NotificationBatchSend.id == send_id)
                .values(
                    attempts=NotificationBatchSend.attempts + 1,
                    last_error=str(exc)[:500],
                )
                .execution_options(synchronize_session=False)
            )
            return {"success": False, "error": str(exc)}

    async def _send_digest(
        self,
        send_id: uuid.UUID,
        db_session: AsyncSession,
        now: datetime,
    ) -> dict:
        send = await db_session.get(NotificationBatchSend, send_id, populate_existing=True)
        if send is None:
            raise EntityNotFoundError("NotificationBatchSend", send_id)
        if send.sent_at is not None:
            return {"success": True, "skipped": True, "reason": "already_sent"}

        batch = send.batch
        campaign = await db_session.get(Campaign, batch.campaign_id)

        if batch.status == "completed" or campaign is None or not batch.applicants:
            send.sent_at = now
            await db_session.flush()
            logger.info(
                "digest_send_skipped",
                send_id=str(send_id),
                batch_status=batch.status,
                has_campaign=campaign is not None,
            )
            return {"success": True, "skipped": True, "reason": "nothing_to_send"}

        ranked = await self._rank_applicants(batch.applicants, campaign, db_session)
        top = ranked[0]

        notification = await self.notification_service.create_notification(
            user_id=batch.advertiser_id,
            type="applicant_batch",
            title=f"{_WINDOW_LABELS[send.window]} applicant report",
            message=(
                f"{len(ranked)} new applicant(s) for {campaign.name}. "
                f"Top pick: {top['name']}"
            ),
            db_session=db_session,
            metadata={
                "campaign_id": str(campaign.id),
                "batch_id": str(batch.id),
                "batch_type": send.window,
                "applicants": ranked,
                "top_pick": top,
            },
            priority="high" if send.window == "30min" else "medium",
            action_url=f"/campaigns/{campaign.id}/applicants",
        )

        batch.status = "completed" if send.window == _FINAL_WINDOW else "partial"
        batch.last_sent_at = now
        send.sent_at = now
        await db_session.flush()

        logger.info(
            "digest_sent",
            send_id=str(send_id),
            batch_id=str(batch.id),
            window=send.window,
            applicants=len(ranked),
            batch_status=batch.status,
        )
        return {
            "success": True,
            "notification_id": notification.id,
            "applicant_count": len(ranked),
            "batch_status": batch.status,
        }

    async def _rank_applicants(
        self,
        applicants: list[dict],
        campaign: Campaign,
        db_session: AsyncSession,
    ) -> list[dict]:
        """Re-score every applicant against current profile data."""
        ids = []
        for applicant in applicants:
            try:
                ids.append(uuid.UUID(str(applicant["influencer_id"])))
            except (KeyError, ValueError):
                continue
        current: dict[str, Influencer] = {}
        if ids:
            rows = await db_session.execute(select(Influencer).where(Influencer.id.in_(ids)))
            current = {str(inf.id): inf for inf in rows.scalars().all()}

        analyzed: list[dict] = []
        for applicant in applicants:
            fresh = current.get(str(applicant.get("influencer_id")))
            profile = {**applicant, **_profile_fields(fresh)} if fresh else applicant
            score = self.scoring_service.score(profile, campaign)
            categories = profile.get("categories") or []
            price = self.pricing_service.predict(
                followers=profile.get("followers_count") or 0,
                engagement_rate=profile.get("engagement_rate") or 0.0,
                category=categories[0] if categories else None,
                budget=campaign.budget,
                deliverables=campaign.deliverables,
            )
            analyzed.append(
                {
                    **profile,
                    "match_score": score,
                    "recommendation": self.scoring_service.recommendation_label(score),
                    "predicted_price": price["estimated_price"],
                }
            )

        # Stable: equal scores keep application order.
        analyzed.sort(key=lambda a: a["match_score"], reverse=True)
        return analyzed

    # ── Worker entry point ────────────────────────────────────────────────

    async def process_due_sends(
        self,
        db_session: AsyncSession,
        now: datetime | None = None,
        limit: int | None = None,
    ) -> dict:
        """Claim and execute due digest sends, oldest first.

        Rows are locked with ``FOR UPDATE SKIP LOCKED`` so concurrent workers
        never pick the same send.  Failed sends stay unsent for the next poll.
        """
        now = now or datetime.now(timezone.utc)
        limit = limit or self.batch_size

        stmt = (
            select(NotificationBatchSend.id)
            .where(
                NotificationBatchSend.sent_at.is_(None),
                NotificationBatchSend.due_at <= now,
            )
            .order_by(NotificationBatchSend.due_at, NotificationBatchSend.id)
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        due_ids = list((await db_session.execute(stmt)).scalars().all())

        sent = failed = 0
        for send_id in due_ids:
            result = await self.send_digest(send_id, db_session, now=now)
            if result["success"]:
                sent += 1
            else:
                failed += 1

        if due_ids:
            logger.info("digest_sends_processed", due=len(due_ids), sent=sent, failed=failed)
        return {"processed": len(due_ids), "sent": sent, "failed": failed}
