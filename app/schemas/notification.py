from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime
from typing import Any, Literal, Optional

class NotificationResponse(BaseModel):
    id: UUID
    type: str
    title: str
    message: str
    metadata: Optional[dict] = Field(None, validation_alias="metadata_")
    priority: str
    action_url: Optional[str] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True, "populate_by_name": True}

class NotificationListResponse(BaseModel):
    success: bool = True
    notifications: list[NotificationResponse]
    unread_count: int
    has_more: bool

class UnreadCheckResponse(BaseModel):
    success: bool = True
    unread_count: int
    has_unread: bool

class NotificationUpdate(BaseModel):
    is_read: bool = True

class MarkReadRequest(BaseModel):
    notification_id: UUID

class QuietHours(BaseModel):
    enabled: bool = False
    start: str = Field("22:00", pattern=r"^\d{2}:\d{2}$")
    end: str = Field("08:00", pattern=r"^\d{2}:\d{2}$")
    timezone: str = "Asia/Seoul"

class NotificationPreferences(BaseModel):
    channels: dict[str, bool] = {"push": True, "email": True, "sms": False, "in_app": True}
    types: dict[str, bool] = {}  # type -> enabled; absent means enabled
    quiet_hours: QuietHours = QuietHours()
    grouping: dict[str, Any] = {"enabled": True, "interval": 30}

class PreferencesResponse(BaseModel):
    success: bool = True
    preferences: NotificationPreferences

class NotificationClosedEvent(BaseModel):
    notification_id: Optional[UUID] = None
    timestamp: Optional[datetime] = None
    action: Literal["dismissed", "closed"] = "dismissed"
