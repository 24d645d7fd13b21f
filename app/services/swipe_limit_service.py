"""
ITDA — Swipe-Limit Guard

Per-influencer daily swipe budget.  The stored ``daily_swipes_count`` only
counts for the day in ``last_swipe_date``; once the local calendar moves on,
the effective count is zero even before any reset job has run (lazy reset).

Checking never consumes budget.  ``consume`` is called by the swipe recorder
after a swipe row is actually written, and performs the roll-over and the
increment in one ``UPDATE`` so concurrent swipes cannot lose counts.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, time, timedelta, timezone

import structlog
from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.exceptions import EntityNotFoundError
from app.models.user import Influencer

logger = structlog.get_logger("itda.swipe_limit_service")


class SwipeLimitService:
    """Daily swipe budget checks and atomic counter updates."""

    def __init__(self, daily_limit: int | None = None) -> None:
        settings = get_settings()
        self.daily_limit: int = (
            settings.DAILY_SWIPE_LIMIT if daily_limit is None else daily_limit
        )
        self.tz = settings.swipe_tz

    # ── Calendar helpers ──────────────────────────────────────────────────

    def today(self, now: datetime | None = None) -> date:
        """Current calendar date in the swipe timezone."""
        now = now or datetime.now(timezone.utc)
        return now.astimezone(self.tz).date()

    def next_reset(self, now: datetime | None = None) -> datetime:
        """Next local midnight, returned in UTC."""
        tomorrow = self.today(now) + timedelta(days=1)
        return datetime.combine(tomorrow, time.min, tzinfo=self.tz).astimezone(timezone.utc)

    def effective_count(self, influencer: Influencer, today: date) -> int:
        if influencer.last_swipe_date != today:
            return 0
        return influencer.daily_swipes_count or 0

    # ── Public API ────────────────────────────────────────────────────────

    async def check_and_consume(
        self,
        influencer_id: uuid.UUID,
        db_session: AsyncSession,
        now: datetime | None = None,
    ) -> dict:
        """Report whether the influencer may swipe right now.

        Despite the name this does not increment the counter; budget is
        consumed by :meth:`consume` once the swipe has been written.

        Returns
        -------
        dict
            ``{"can_swipe", "remaining", "used", "daily_limit", "reset_at"}``

        Raises
        ------
        EntityNotFoundError
            If the influencer does not exist.
        """
        # Counters are written with bulk UPDATEs; refresh any cached row.
        influencer = await db_session.get(Influencer, influencer_id, populate_existing=True)
        if influencer is None:
            raise EntityNotFoundError("Influencer", influencer_id)

        today = self.today(now)
        used = self.effective_count(influencer, today)
        remaining = max(0, self.daily_limit - used)

        return {
            "can_swipe": remaining > 0,
            "remaining": remaining,
            "used": used,
            "daily_limit": self.daily_limit,
            "reset_at": self.next_reset(now),
        }

    async def consume(
        self,
        influencer_id: uuid.UUID,
        db_session: AsyncSession,
        now: datetime | None = None,
    ) -> None:
        """Atomically count one swipe for today, rolling over a stale day."""
        now = now or datetime.now(timezone.utc)
        today = self.today(now)

        stmt = (
            update(Influencer)
            .where(Influencer.id == influencer_id)
            .values(
                daily_swipes_count=case(
                    (Influencer.last_swipe_date == today, Influencer.daily_swipes_count + 1),
                    else_=1,
                ),
                last_swipe_date=today,
                last_swipe_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await db_session.execute(stmt)
        if result.rowcount == 0:
            raise EntityNotFoundError("Influencer", influencer_id)

    async def reset_daily_counts(
        self,
        db_session: AsyncSession,
        now: datetime | None = None,
    ) -> int:
        """Zero every counter whose day has passed.  Returns rows touched."""
        today = self.today(now)
        stmt = (
            update(Influencer)
            .where(
                Influencer.daily_swipes_count > 0,
                (Influencer.last_swipe_date.is_(None)) | (Influencer.last_swipe_date != today),
            )
            .values(daily_swipes_count=0)
            .execution_options(synchronize_session=False)
        )
        result = await db_session.execute(stmt)
        logger.info("daily_swipe_counts_reset", rows=result.rowcount, today=today.isoformat())
        return result.rowcount

    async def remaining_for(
        self,
        influencer_id: uuid.UUID,
        db_session: AsyncSession,
        now: datetime | None = None,
    ) -> int:
        stmt = select(Influencer.daily_swipes_count, Influencer.last_swipe_date).where(
            Influencer.id == influencer_id
        )
        row = (await db_session.execute(stmt)).one_or_none()
        if row is None:
            raise EntityNotFoundError("Influencer", influencer_id)
        count, last_date = row
        used = count if last_date == self.today(now) else 0
        return max(0, self.daily_limit - (used or 0))
