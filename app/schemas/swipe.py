from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime
from typing import Literal, Optional

SwipeAction = Literal["like", "pass", "super_like"]

class SwipeCreate(BaseModel):
    campaign_id: UUID
    action: SwipeAction

class SwipeLimitResponse(BaseModel):
    success: bool = True
    can_swipe: bool
    remaining: int = Field(ge=0)
    used: int = Field(ge=0)
    daily_limit: int
    reset_at: datetime

class SwipeResponse(BaseModel):
    success: bool
    matched: bool = False
    duplicate: bool = False
    match_id: Optional[UUID] = None
    chat_room_id: Optional[UUID] = None
    match_score: Optional[int] = None
    predicted_price: Optional[int] = None
    error: Optional[str] = None

class CampaignCard(BaseModel):
    id: UUID
    advertiser_id: UUID
    name: str
    description: Optional[str] = None
    budget: int
    categories: list[str] = []
    min_followers: int
    min_engagement_rate: float
    is_premium: bool
    urgency: str
    deliverables: list[dict] = []
    deadline: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}

class QueueResponse(BaseModel):
    success: bool = True
    campaigns: list[CampaignCard]
    remaining: int
