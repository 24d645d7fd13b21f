"""
ITDA — Chat Rooms & Messages

One room per (campaign, advertiser, influencer), created lazily when the
influencer first applies and seeded with a system welcome message.  Rooms
carry a denormalised ``last_message`` and one unread counter per side; both
are maintained with single UPDATE statements when a message is posted.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import structlog
from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import insert_ignore
from app.exceptions import EntityNotFoundError, PermissionDeniedError
from app.models.chat import ChatMessage, ChatRoom

logger = structlog.get_logger("itda.chat_service")

_PREVIEW_LENGTH = 200


def _welcome_text(campaign_name: str | None) -> str:
    if campaign_name:
        return f"You're matched on \"{campaign_name}\". Say hello and discuss the details here."
    return "You're matched. Say hello and discuss the details here."


class ChatService:

    async def ensure_room(
        self,
        campaign_id: uuid.UUID,
        advertiser_id: uuid.UUID,
        influencer_id: uuid.UUID,
        db_session: AsyncSession,
        campaign_name: str | None = None,
    ) -> tuple[uuid.UUID, bool]:
        """Return ``(room_id, created)``; the room is created at most once."""
        now = datetime.now(timezone.utc)
        welcome = _welcome_text(campaign_name)

        room_id = await insert_ignore(
            db_session,
            ChatRoom,
            {
                "id": uuid.uuid4(),
                "campaign_id": campaign_id,
                "advertiser_id": advertiser_id,
                "influencer_id": influencer_id,
                "status": "active",
                "last_message": welcome,
                "last_message_at": now,
                "created_at": now,
            },
            ["campaign_id", "advertiser_id", "influencer_id"],
        )

        if room_id is None:
            existing = await db_session.execute(
                select(ChatRoom.id).where(
                    ChatRoom.campaign_id == campaign_id,
                    ChatRoom.advertiser_id == advertiser_id,
                    ChatRoom.influencer_id == influencer_id,
                )
            )
            return existing.scalar_one(), False

        db_session.add(
            ChatMessage(
                chat_room_id=room_id,
                sender_id=None,
                content=welcome,
                message_type="system",
                created_at=now,
            )
        )
        await db_session.flush()

        logger.info(
            "chat_room_created",
            room_id=str(room_id),
            campaign_id=str(campaign_id),
            influencer_id=str(influencer_id),
        )
        return room_id, True

    async def list_rooms(self, user_id: uuid.UUID, db_session: AsyncSession) -> list[dict]:
        stmt = (
            select(ChatRoom)
            .where(or_(ChatRoom.advertiser_id == user_id, ChatRoom.influencer_id == user_id))
            .order_by(ChatRoom.last_message_at.desc(), ChatRoom.created_at.desc(), ChatRoom.id)
            .execution_options(populate_existing=True)
        )
        rooms = (await db_session.execute(stmt)).scalars().all()
        return [
            {
                "id": room.id,
                "campaign_id": room.campaign_id,
                "advertiser_id": room.advertiser_id,
                "influencer_id": room.influencer_id,
                "status": room.status,
                "contract_status": room.contract_status,
                "last_message": room.last_message,
                "last_message_at": room.last_message_at,
                "unread_count": (
                    room.unread_advertiser
                    if room.advertiser_id == user_id
                    else room.unread_influencer
                ),
                "created_at": room.created_at,
            }
            for room in rooms
        ]

    async def get_room_for_member(
        self,
        room_id: uuid.UUID,
        user_id: uuid.UUID,
        db_session: AsyncSession,
    ) -> ChatRoom:
        room = await db_session.get(ChatRoom, room_id, populate_existing=True)
        if room is None:
            raise EntityNotFoundError("ChatRoom", room_id)
        if user_id not in (room.advertiser_id, room.influencer_id):
            raise PermissionDeniedError("Not a participant of this chat room")
        return room

    async def list_messages(
        self,
        room_id: uuid.UUID,
        user_id: uuid.UUID,
        db_session: AsyncSession,
        limit: int = 100,
    ) -> list[ChatMessage]:
        """Most recent ``limit`` messages, oldest first."""
        await self.get_room_for_member(room_id, user_id, db_session)
        stmt = (
            select(ChatMessage)
            .where(ChatMessage.chat_room_id == room_id)
            .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
            .limit(limit)
        )
        messages = list((await db_session.execute(stmt)).scalars().all())
        messages.reverse()
        return messages

    async def post_message(
        self,
        room_id: uuid.UUID,
        sender_id: uuid.UUID,
        content: str,
        db_session: AsyncSession,
    ) -> ChatMessage:
        room = await self.get_room_for_member(room_id, sender_id, db_session)
        if room.status != "active":
            raise PermissionDeniedError("Chat room is closed")

        now = datetime.now(timezone.utc)
        message = ChatMessage(
            chat_room_id=room_id,
            sender_id=sender_id,
            content=content,
            message_type="text",
            created_at=now,
        )
        db_session.add(message)

        # The recipient's counter goes up, never the sender's.
        if sender_id == room.advertiser_id:
            counter = {"unread_influencer": ChatRoom.unread_influencer + 1}
        else:
            counter = {"unread_advertiser": ChatRoom.unread_advertiser + 1}

        await db_session.execute(
            update(ChatRoom)
            .where(ChatRoom.id == room_id)
            .values(last_message=content[:_PREVIEW_LENGTH], last_message_at=now, **counter)
            .execution_options(synchronize_session=False)
        )
        await db_session.flush()

        logger.info("chat_message_posted", room_id=str(room_id), sender_id=str(sender_id))
        return message

    async def mark_room_read(
        self,
        room_id: uuid.UUID,
        user_id: uuid.UUID,
        db_session: AsyncSession,
    ) -> None:
        room = await self.get_room_for_member(room_id, user_id, db_session)
        column = "unread_advertiser" if user_id == room.advertiser_id else "unread_influencer"
        await db_session.execute(
            update(ChatRoom)
            .where(ChatRoom.id == room_id)
            .values(**{column: 0})
            .execution_options(synchronize_session=False)
        )
