"""
ITDA — In-app Notifications & Preferences

Creates notification rows, optionally fanning them out to the user's push
endpoints, and implements the read / unread bookkeeping behind the
notification centre.  Push delivery honours the user's preferences (channel
switch, per-type switch, quiet hours) and deregisters endpoints the gateway
reports as expired.

Pushes never go out from inside a transaction: ``create_notification`` only
queues the notification on the session, and the caller runs
``deliver_pending`` once the transaction has committed.
"""

from __future__ import annotations

import uuid
from datetime import datetime, time, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import EntityNotFoundError
from app.models.notification import (
    Notification,
    NotificationLog,
    NotificationPreference,
    PushSubscription,
)
from app.schemas.notification import NotificationPreferences
from app.services.push_service import PushService

logger = structlog.get_logger("itda.notification_service")

# ``AsyncSession.info`` key holding notification ids awaiting push.
PENDING_PUSH_KEY = "itda_pending_push"


def _parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def in_quiet_hours(quiet_hours: dict, now: datetime | None = None) -> bool:
    """True when ``now`` falls inside the configured quiet window."""
    if not quiet_hours or not quiet_hours.get("enabled"):
        return False
    try:
        tz = ZoneInfo(quiet_hours.get("timezone") or "Asia/Seoul")
        start = _parse_hhmm(quiet_hours.get("start", "22:00"))
        end = _parse_hhmm(quiet_hours.get("end", "08:00"))
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("quiet_hours_invalid", quiet_hours=quiet_hours)
        return False

    local = (now or datetime.now(timezone.utc)).astimezone(tz).time()
    if start <= end:
        return start <= local < end
    # Window wraps midnight, e.g. 22:00–08:00.
    return local >= start or local < end


class NotificationService:
    """Notification rows, push fan-out, and per-user preferences."""

    def __init__(self, push_service: PushService | None = None) -> None:
        self.push_service = push_service or PushService()

    # ── Creation ──────────────────────────────────────────────────────────

    async def create_notification(
        self,
        user_id: uuid.UUID,
        type: str,
        title: str,
        message: str,
        db_session: AsyncSession,
        metadata: dict | None = None,
        priority: str = "medium",
        action_url: str | None = None,
        push: bool = True,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            metadata_=metadata,
            priority=priority,
            action_url=action_url,
            created_at=datetime.now(timezone.utc),
        )
        db_session.add(notification)
        await db_session.flush()

        logger.info(
            "notification_created",
            notification_id=str(notification.id),
            user_id=str(user_id),
            type=type,
            priority=priority,
        )

        if push:
            db_session.info.setdefault(PENDING_PUSH_KEY, []).append(notification.id)
        return notification

    async def deliver_pending(self, db_session: AsyncSession) -> int:
        """Push every notification queued on this session since the last call.

        Call after the transaction that created them has committed.  Rows
        that were rolled back (for example by a failed savepoint) no longer
        exist and are skipped.
        """
        pending = db_session.info.pop(PENDING_PUSH_KEY, [])
        if not pending:
            return 0

        result = await db_session.execute(
            select(Notification)
            .where(Notification.id.in_(pending))
            .order_by(Notification.created_at, Notification.id)
        )
        notifications = list(result.scalars().all())
        if len(notifications) < len(pending):
            logger.info(
                "push_dropped_rolled_back",
                queued=len(pending),
                persisted=len(notifications),
            )

        for notification in notifications:
            await self._push(notification.user_id, notification, db_session)
        return len(notifications)

    async def _push(
        self,
        user_id: uuid.UUID,
        notification: Notification,
        db_session: AsyncSession,
    ) -> None:
        log = logger.bind(user_id=str(user_id), notification_id=str(notification.id))

        prefs = await self.get_preferences(user_id, db_session)
        if not prefs["channels"].get("push", True):
            log.debug("push_skipped", reason="channel_disabled")
            return
        if prefs["types"].get(notification.type) is False:
            log.debug("push_skipped", reason="type_disabled")
            return
        if notification.priority != "high" and in_quiet_hours(prefs["quiet_hours"]):
            log.debug("push_skipped", reason="quiet_hours")
            return

        result = await db_session.execute(
            select(PushSubscription).where(PushSubscription.user_id == user_id)
        )
        subscriptions = list(result.scalars().all())
        if not subscriptions:
            return

        try:
            expired = await self.push_service.deliver(
                subscriptions,
                title=notification.title,
                body=notification.message,
                metadata={
                    "notification_id": str(notification.id),
                    "type": notification.type,
                    **(notification.metadata_ or {}),
                },
                priority=notification.priority,
            )
        except Exception:
            # Push is a side channel; the notification row is already committed.
            log.exception("push_delivery_failed")
            return

        if expired:
            await db_session.execute(
                delete(PushSubscription).where(PushSubscription.endpoint.in_(expired))
            )
            log.info("push_subscriptions_expired", count=len(expired))

    # ── Reading ───────────────────────────────────────────────────────────

    async def list_notifications(
        self,
        user_id: uuid.UUID,
        db_session: AsyncSession,
        limit: int = 50,
        offset: int = 0,
        unread_only: bool = False,
        type: str | None = None,
    ) -> dict:
        stmt = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))
        if type:
            stmt = stmt.where(Notification.type == type)
        stmt = (
            stmt.order_by(Notification.created_at.desc(), Notification.id)
            .limit(limit)
            .offset(offset)
        )
        items = list((await db_session.execute(stmt)).scalars().all())

        return {
            "notifications": items,
            "unread_count": await self.unread_count(user_id, db_session),
            "has_more": len(items) == limit,
        }

    async def unread_count(self, user_id: uuid.UUID, db_session: AsyncSession) -> int:
        stmt = select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
        return (await db_session.execute(stmt)).scalar_one()

    # ── Read state ────────────────────────────────────────────────────────

    async def _get_owned(
        self,
        notification_id: uuid.UUID,
        user_id: uuid.UUID,
        db_session: AsyncSession,
    ) -> Notification:
        notification = await db_session.get(Notification, notification_id)
        # Another user's notification is reported as missing.
        if notification is None or notification.user_id != user_id:
            raise EntityNotFoundError("Notification", notification_id)
        return notification

    async def mark_read(
        self,
        notification_id: uuid.UUID,
        user_id: uuid.UUID,
        db_session: AsyncSession,
        is_read: bool = True,
    ) -> Notification:
        notification = await self._get_owned(notification_id, user_id, db_session)
        notification.is_read = is_read
        notification.read_at = datetime.now(timezone.utc) if is_read else None
        await db_session.flush()
        return notification

    async def mark_read_by_id(
        self,
        notification_id: uuid.UUID,
        db_session: AsyncSession,
    ) -> bool:
        """Mark read without a session; used by the service worker on click."""
        result = await db_session.execute(
            update(Notification)
            .where(Notification.id == notification_id)
            .values(is_read=True, read_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def mark_all_read(self, user_id: uuid.UUID, db_session: AsyncSession) -> int:
        result = await db_session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        logger.info("notifications_marked_read", user_id=str(user_id), count=result.rowcount)
        return result.rowcount

    async def delete_notification(
        self,
        notification_id: uuid.UUID,
        user_id: uuid.UUID,
        db_session: AsyncSession,
    ) -> None:
        notification = await self._get_owned(notification_id, user_id, db_session)
        await db_session.delete(notification)
        await db_session.flush()

    # ── Preferences ───────────────────────────────────────────────────────

    async def get_preferences(self, user_id: uuid.UUID, db_session: AsyncSession) -> dict:
        """Stored preferences, or the defaults when the user has none."""
        row = (
            await db_session.execute(
                select(NotificationPreference).where(NotificationPreference.user_id == user_id)
            )
        ).scalar_one_or_none()
        if row is None:
            return NotificationPreferences().model_dump()
        return NotificationPreferences(
            channels=row.channels,
            types=row.types,
            quiet_hours=row.quiet_hours,
            grouping=row.grouping,
        ).model_dump()

    async def save_preferences(
        self,
        user_id: uuid.UUID,
        preferences: NotificationPreferences,
        db_session: AsyncSession,
    ) -> dict:
        data = preferences.model_dump()
        row = (
            await db_session.execute(
                select(NotificationPreference).where(NotificationPreference.user_id == user_id)
            )
        ).scalar_one_or_none()

        if row is None:
            row = NotificationPreference(user_id=user_id)
            db_session.add(row)
        row.channels = data["channels"]
        row.types = data["types"]
        row.quiet_hours = data["quiet_hours"]
        row.grouping = data["grouping"]
        row.updated_at = datetime.now(timezone.utc)
        await db_session.flush()

        logger.info("notification_preferences_saved", user_id=str(user_id))
        return data

    # ── Analytics ─────────────────────────────────────────────────────────

    async def log_dismissed(
        self,
        notification_id: uuid.UUID | None,
        db_session: AsyncSession,
        timestamp: datetime | None = None,
        action: str = "dismissed",
    ) -> None:
        """Record a dismissed push.  Never raises; failures are only logged."""
        try:
            async with db_session.begin_nested():
                db_session.add(
                    NotificationLog(
                        notification_id=notification_id,
                        event_type=f"notification_{action}",
                        metadata_={
                            "timestamp": (timestamp or datetime.now(timezone.utc)).isoformat()
                        },
                    )
                )
        except Exception as exc:
            logger.warning(
                "notification_dismiss_log_failed",
                notification_id=str(notification_id),
                error=str(exc),
            )
