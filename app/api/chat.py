"""
ITDA — Chat API

Rooms are created by the swipe flow; this surface lists them and reads /
posts messages for participants.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUser, get_chat_service, get_current_user
from app.database import get_db
from app.schemas.chat import (
    ChatMessageCreate,
    ChatMessageListResponse,
    ChatMessageResponse,
    ChatRoomListResponse,
    ChatRoomResponse,
)
from app.services.chat_service import ChatService

logger = structlog.get_logger("itda.api.chat")

router = APIRouter()


@router.get(
    "/rooms",
    response_model=ChatRoomListResponse,
    summary="List my chat rooms",
)
async def list_rooms(
    current_user: CurrentUser = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
    db: AsyncSession = Depends(get_db),
) -> ChatRoomListResponse:
    rooms = await chat_service.list_rooms(current_user.id, db)
    return ChatRoomListResponse(rooms=[ChatRoomResponse(**r) for r in rooms])


@router.get(
    "/rooms/{room_id}/messages",
    response_model=ChatMessageListResponse,
    summary="Read messages in a room",
)
async def list_messages(
    room_id: uuid.UUID,
    limit: int = Query(100, ge=1, le=500),
    current_user: CurrentUser = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
    db: AsyncSession = Depends(get_db),
) -> ChatMessageListResponse:
    """Returns messages oldest first and clears the caller's unread counter."""
    messages = await chat_service.list_messages(room_id, current_user.id, db, limit=limit)
    await chat_service.mark_room_read(room_id, current_user.id, db)
    return ChatMessageListResponse(
        messages=[ChatMessageResponse.model_validate(m) for m in messages]
    )


@router.post(
    "/rooms/{room_id}/messages",
    status_code=status.HTTP_201_CREATED,
    summary="Post a message",
)
async def post_message(
    room_id: uuid.UUID,
    payload: ChatMessageCreate,
    current_user: CurrentUser = Depends(get_current_user),
    chat_service: ChatService = Depends(get_chat_service),
    db: AsyncSession = Depends(get_db),
) -> dict:
    message = await chat_service.post_message(room_id, current_user.id, payload.content, db)
    return {
        "success": True,
        "message": ChatMessageResponse.model_validate(message).model_dump(mode="json"),
    }
