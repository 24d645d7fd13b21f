from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime
from typing import Optional

class ChatRoomResponse(BaseModel):
    id: UUID
    campaign_id: UUID
    advertiser_id: UUID
    influencer_id: UUID
    status: str
    contract_status: str
    last_message: Optional[str] = None
    last_message_at: Optional[datetime] = None
    unread_count: int = 0
    created_at: datetime

class ChatMessageResponse(BaseModel):
    id: UUID
    chat_room_id: UUID
    sender_id: Optional[UUID] = None
    content: str
    message_type: str
    created_at: datetime

    model_config = {"from_attributes": True}

class ChatMessageCreate(BaseModel):
    content: str = Field(min_length=1, max_length=4000)

class ChatRoomListResponse(BaseModel):
    success: bool = True
    rooms: list[ChatRoomResponse]

class ChatMessageListResponse(BaseModel):
    success: bool = True
    messages: list[ChatMessageResponse]
