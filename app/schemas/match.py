from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime
from typing import Optional

class ApplicantItem(BaseModel):
    match_id: UUID
    influencer_id: UUID
    name: str
    username: Optional[str] = None
    avatar: Optional[str] = None
    followers_count: int
    engagement_rate: float
    tier: str
    status: str
    match_score: int
    proposed_price: Optional[int] = None
    applied_at: datetime

class ApplicationItem(BaseModel):
    match_id: UUID
    campaign_id: UUID
    campaign_name: str
    budget: int
    status: str
    match_score: int
    proposed_price: Optional[int] = None
    agreed_price: Optional[int] = None
    applied_at: datetime
    reviewed_at: Optional[datetime] = None

class ApplicantListResponse(BaseModel):
    success: bool = True
    applicants: list[ApplicantItem]

class ApplicationListResponse(BaseModel):
    success: bool = True
    applications: list[ApplicationItem]

class MatchDecisionRequest(BaseModel):
    agreed_price: Optional[int] = Field(None, gt=0)

class MatchDecisionResponse(BaseModel):
    success: bool = True
    match_id: UUID
    status: str
    chat_room_id: Optional[UUID] = None
