"""Tests for ChatService — room creation, membership, and unread counters."""
import uuid

import pytest

from app.exceptions import EntityNotFoundError, PermissionDeniedError
from app.models.chat import ChatRoom
from app.services.chat_service import ChatService


@pytest.fixture
def chat_service():
    return ChatService()


@pytest.fixture
async def room(db, chat_service, make_influencer, make_advertiser, make_campaign):
    influencer = await make_influencer()
    advertiser = await make_advertiser()
    campaign = await make_campaign(advertiser, name="Glow launch")
    room_id, created = await chat_service.ensure_room(
        campaign.id, advertiser.id, influencer.id, db, campaign_name=campaign.name
    )
    assert created is True
    return room_id, advertiser, influencer, campaign


class TestRooms:

    @pytest.mark.asyncio
    async def test_room_is_created_once(self, db, chat_service, room):
        room_id, advertiser, influencer, campaign = room

        again_id, created = await chat_service.ensure_room(
            campaign.id, advertiser.id, influencer.id, db
        )

        assert again_id == room_id
        assert created is False

    @pytest.mark.asyncio
    async def test_welcome_message(self, db, chat_service, room):
        room_id, advertiser, _, _ = room

        messages = await chat_service.list_messages(room_id, advertiser.id, db)

        assert len(messages) == 1
        assert messages[0].message_type == "system"
        assert messages[0].sender_id is None
        assert "Glow launch" in messages[0].content

    @pytest.mark.asyncio
    async def test_list_rooms_for_both_sides(self, db, chat_service, room):
        room_id, advertiser, influencer, _ = room

        for user_id in (advertiser.id, influencer.id):
            rooms = await chat_service.list_rooms(user_id, db)
            assert [r["id"] for r in rooms] == [room_id]

        assert await chat_service.list_rooms(uuid.uuid4(), db) == []


class TestMessages:

    @pytest.mark.asyncio
    async def test_post_increments_recipient_unread(self, db, chat_service, room):
        room_id, advertiser, influencer, _ = room

        await chat_service.post_message(room_id, influencer.id, "Hi! Interested.", db)
        await chat_service.post_message(room_id, influencer.id, "Here is my kit.", db)

        adv_view = (await chat_service.list_rooms(advertiser.id, db))[0]
        inf_view = (await chat_service.list_rooms(influencer.id, db))[0]
        assert adv_view["unread_count"] == 2
        assert inf_view["unread_count"] == 0

        room_row = await db.get(ChatRoom, room_id, populate_existing=True)
        assert room_row.last_message == "Here is my kit."

    @pytest.mark.asyncio
    async def test_mark_room_read(self, db, chat_service, room):
        room_id, advertiser, influencer, _ = room
        await chat_service.post_message(room_id, advertiser.id, "Welcome aboard", db)

        await chat_service.mark_room_read(room_id, influencer.id, db)

        room_row = await db.get(ChatRoom, room_id, populate_existing=True)
        assert room_row.unread_influencer == 0

    @pytest.mark.asyncio
    async def test_messages_oldest_first(self, db, chat_service, room):
        room_id, advertiser, influencer, _ = room
        await chat_service.post_message(room_id, advertiser.id, "first", db)
        await chat_service.post_message(room_id, influencer.id, "second", db)

        messages = await chat_service.list_messages(room_id, influencer.id, db)

        assert [m.content for m in messages][-2:] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_outsider_is_rejected(self, db, chat_service, room):
        room_id, _, _, _ = room

        with pytest.raises(PermissionDeniedError):
            await chat_service.post_message(room_id, uuid.uuid4(), "let me in", db)

    @pytest.mark.asyncio
    async def test_unknown_room(self, db, chat_service):
        with pytest.raises(EntityNotFoundError):
            await chat_service.list_messages(uuid.uuid4(), uuid.uuid4(), db)

    @pytest.mark.asyncio
    async def test_closed_room_rejects_posts(self, db, chat_service, room):
        room_id, advertiser, _, _ = room
        room_row = await db.get(ChatRoom, room_id)
        room_row.status = "closed"
        await db.flush()

        with pytest.raises(PermissionDeniedError):
            await chat_service.post_message(room_id, advertiser.id, "hello?", db)
