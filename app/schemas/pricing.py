from pydantic import BaseModel, Field
from uuid import UUID
from datetime import datetime
from typing import Optional

class Deliverable(BaseModel):
    type: Optional[str] = None
    count: int = Field(1, ge=0)

class PricingCustomData(BaseModel):
    """Optional tuning parameters; missing fields fall back to stored profile values."""
    followers: Optional[int] = Field(None, ge=0)
    engagement_rate: Optional[float] = Field(None, ge=0)
    category: Optional[str] = None
    budget: Optional[int] = Field(None, gt=0)
    deliverables: Optional[list[Deliverable]] = None

class AIAnalysisRequest(BaseModel):
    influencer_id: Optional[UUID] = None
    campaign_id: Optional[UUID] = None
    custom_data: Optional[PricingCustomData] = None

class PriceFactor(BaseModel):
    name: str
    impact: int
    description: str

class PricePrediction(BaseModel):
    id: Optional[UUID] = None
    influencer_id: UUID
    campaign_id: Optional[UUID] = None
    estimated_price: int
    min_price: int
    max_price: int
    confidence: int
    factors: list[PriceFactor]
    recommendation: Optional[str] = None
    created_at: Optional[datetime] = None

class AIAnalysisResponse(BaseModel):
    success: bool = True
    prediction: PricePrediction

class PredictionListResponse(BaseModel):
    success: bool = True
    predictions: list[PricePrediction]
