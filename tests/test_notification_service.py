"""Tests for NotificationService — rows, read state, preferences, and push gating."""
import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import select

from app.exceptions import EntityNotFoundError
from app.models.notification import NotificationLog, PushSubscription
from app.schemas.notification import NotificationPreferences, QuietHours
from app.services.notification_service import NotificationService, in_quiet_hours


@pytest.fixture
def push_service():
    service = MagicMock()
    service.deliver = AsyncMock(return_value=[])
    return service


@pytest.fixture
def notification_service(push_service):
    return NotificationService(push_service=push_service)


async def _notify(service, db, user_id, type="match", priority="medium", push=True):
    return await service.create_notification(
        user_id=user_id,
        type=type,
        title="Title",
        message="Body",
        db_session=db,
        metadata={"campaign_id": "c-1"},
        priority=priority,
        push=push,
    )


class TestQuietHours:

    def test_disabled(self):
        assert in_quiet_hours({"enabled": False, "start": "00:00", "end": "23:59"}) is False

    def test_wrapping_window(self):
        quiet = {"enabled": True, "start": "22:00", "end": "08:00", "timezone": "Asia/Seoul"}
        # 23:30 KST
        assert in_quiet_hours(quiet, datetime(2025, 3, 10, 14, 30, tzinfo=timezone.utc))
        # 12:00 KST
        assert not in_quiet_hours(quiet, datetime(2025, 3, 10, 3, 0, tzinfo=timezone.utc))

    def test_invalid_window_is_ignored(self):
        quiet = {"enabled": True, "start": "late", "end": "early"}
        assert in_quiet_hours(quiet) is False


class TestCreateAndPush:

    @pytest.mark.asyncio
    async def test_push_waits_for_deliver_pending(
        self, db, notification_service, push_service, make_user
    ):
        user = await make_user()
        db.add(PushSubscription(user_id=user.id, endpoint="https://push/1", keys={"auth": "a"}))
        await db.flush()

        notification = await _notify(notification_service, db, user.id)

        assert notification.is_read is False
        push_service.deliver.assert_not_awaited()

        await db.commit()
        assert await notification_service.deliver_pending(db) == 1

        push_service.deliver.assert_awaited_once()
        kwargs = push_service.deliver.await_args.kwargs
        assert kwargs["title"] == "Title"
        assert kwargs["metadata"]["notification_id"] == str(notification.id)

    @pytest.mark.asyncio
    async def test_deliver_pending_drains_queue(
        self, db, notification_service, push_service, make_user
    ):
        user = await make_user()
        db.add(PushSubscription(user_id=user.id, endpoint="https://push/1", keys={}))
        await _notify(notification_service, db, user.id)

        await notification_service.deliver_pending(db)
        assert await notification_service.deliver_pending(db) == 0

        push_service.deliver.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rolled_back_notification_is_not_pushed(
        self, db, notification_service, push_service, make_user
    ):
        user = await make_user()
        db.add(PushSubscription(user_id=user.id, endpoint="https://push/1", keys={}))
        await db.flush()

        with pytest.raises(RuntimeError):
            async with db.begin_nested():
                await _notify(notification_service, db, user.id, priority="high")
                raise RuntimeError("swipe failed")
        kept = await _notify(notification_service, db, user.id)

        assert await notification_service.deliver_pending(db) == 1
        push_service.deliver.assert_awaited_once()
        kwargs = push_service.deliver.await_args.kwargs
        assert kwargs["metadata"]["notification_id"] == str(kept.id)

    @pytest.mark.asyncio
    async def test_no_push_flag_queues_nothing(
        self, db, notification_service, push_service, make_user
    ):
        user = await make_user()
        db.add(PushSubscription(user_id=user.id, endpoint="https://push/1", keys={}))

        await _notify(notification_service, db, user.id, push=False)

        assert await notification_service.deliver_pending(db) == 0
        push_service.deliver.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expired_endpoints_are_removed(
        self, db, notification_service, push_service, make_user
    ):
        user = await make_user()
        db.add(PushSubscription(user_id=user.id, endpoint="https://push/gone", keys={}))
        db.add(PushSubscription(user_id=user.id, endpoint="https://push/live", keys={}))
        await db.flush()
        push_service.deliver.return_value = ["https://push/gone"]

        await _notify(notification_service, db, user.id)
        await notification_service.deliver_pending(db)

        endpoints = (await db.execute(select(PushSubscription.endpoint))).scalars().all()
        assert endpoints == ["https://push/live"]

    @pytest.mark.asyncio
    async def test_push_channel_disabled(
        self, db, notification_service, push_service, make_user
    ):
        user = await make_user()
        db.add(PushSubscription(user_id=user.id, endpoint="https://push/1", keys={}))
        prefs = NotificationPreferences(channels={"push": False, "email": True, "sms": False, "in_app": True})
        await notification_service.save_preferences(user.id, prefs, db)

        await _notify(notification_service, db, user.id)
        await notification_service.deliver_pending(db)

        push_service.deliver.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_quiet_hours_only_hold_back_non_urgent(
        self, db, notification_service, push_service, make_user
    ):
        user = await make_user()
        db.add(PushSubscription(user_id=user.id, endpoint="https://push/1", keys={}))
        prefs = NotificationPreferences(
            quiet_hours=QuietHours(enabled=True, start="00:00", end="23:59")
        )
        await notification_service.save_preferences(user.id, prefs, db)

        await _notify(notification_service, db, user.id, priority="medium")
        await notification_service.deliver_pending(db)
        push_service.deliver.assert_not_awaited()

        await _notify(notification_service, db, user.id, priority="high")
        await notification_service.deliver_pending(db)
        push_service.deliver.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_push_failure_keeps_notification(
        self, db, notification_service, push_service, make_user
    ):
        user = await make_user()
        db.add(PushSubscription(user_id=user.id, endpoint="https://push/1", keys={}))
        await db.flush()
        push_service.deliver.side_effect = RuntimeError("gateway down")

        notification = await _notify(notification_service, db, user.id)
        await notification_service.deliver_pending(db)

        assert await notification_service.unread_count(user.id, db) == 1
        assert notification.id is not None


class TestReadState:

    @pytest.mark.asyncio
    async def test_list_and_unread_count(self, db, notification_service, make_user):
        user = await make_user()
        for kind in ("match", "match", "super_like"):
            await _notify(notification_service, db, user.id, type=kind, push=False)

        page = await notification_service.list_notifications(user.id, db, limit=2)
        assert len(page["notifications"]) == 2
        assert page["unread_count"] == 3
        assert page["has_more"] is True

        filtered = await notification_service.list_notifications(user.id, db, type="super_like")
        assert len(filtered["notifications"]) == 1

    @pytest.mark.asyncio
    async def test_mark_read_and_all(self, db, notification_service, make_user):
        user = await make_user()
        first = await _notify(notification_service, db, user.id, push=False)
        await _notify(notification_service, db, user.id, push=False)

        updated = await notification_service.mark_read(first.id, user.id, db)
        assert updated.is_read is True
        assert updated.read_at is not None
        assert await notification_service.unread_count(user.id, db) == 1

        assert await notification_service.mark_all_read(user.id, db) == 1
        assert await notification_service.unread_count(user.id, db) == 0

    @pytest.mark.asyncio
    async def test_other_users_notification_is_not_found(
        self, db, notification_service, make_user
    ):
        owner = await make_user()
        stranger = await make_user()
        notification = await _notify(notification_service, db, owner.id, push=False)

        with pytest.raises(EntityNotFoundError):
            await notification_service.mark_read(notification.id, stranger.id, db)
        with pytest.raises(EntityNotFoundError):
            await notification_service.delete_notification(notification.id, stranger.id, db)

    @pytest.mark.asyncio
    async def test_mark_read_by_id(self, db, notification_service, make_user):
        user = await make_user()
        notification = await _notify(notification_service, db, user.id, push=False)

        assert await notification_service.mark_read_by_id(notification.id, db) is True
        assert await notification_service.mark_read_by_id(uuid.uuid4(), db) is False

    @pytest.mark.asyncio
    async def test_delete(self, db, notification_service, make_user):
        user = await make_user()
        notification = await _notify(notification_service, db, user.id, push=False)

        await notification_service.delete_notification(notification.id, user.id, db)

        assert await notification_service.unread_count(user.id, db) == 0


class TestPreferences:

    @pytest.mark.asyncio
    async def test_defaults_when_missing(self, db, notification_service, make_user):
        user = await make_user()
        prefs = await notification_service.get_preferences(user.id, db)
        assert prefs["channels"] == {"push": True, "email": True, "sms": False, "in_app": True}
        assert prefs["quiet_hours"]["enabled"] is False
        assert prefs["grouping"] == {"enabled": True, "interval": 30}

    @pytest.mark.asyncio
    async def test_save_then_read(self, db, notification_service, make_user):
        user = await make_user()
        prefs = NotificationPreferences(types={"applicant_batch": False})

        await notification_service.save_preferences(user.id, prefs, db)
        await notification_service.save_preferences(user.id, prefs, db)

        stored = await notification_service.get_preferences(user.id, db)
        assert stored["types"] == {"applicant_batch": False}


class TestDismissLog:

    @pytest.mark.asyncio
    async def test_dismiss_is_logged(self, db, notification_service):
        notification_id = uuid.uuid4()
        await notification_service.log_dismissed(notification_id, db)

        log = (await db.execute(select(NotificationLog))).scalar_one()
        assert log.notification_id == notification_id
        assert log.event_type == "notification_dismissed"
