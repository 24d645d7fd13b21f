from pydantic import BaseModel, Field, field_validator
from uuid import UUID
from datetime import datetime
from typing import Literal, Optional

class WaitlistCreate(BaseModel):
    email: str = Field(max_length=320)
    name: Optional[str] = Field(None, max_length=200)
    user_type: Literal["influencer", "advertiser"]
    company: Optional[str] = Field(None, max_length=200)

    @field_validator("email")
    @classmethod
    def _normalise_email(cls, v: str) -> str:
        v = v.strip().lower()
        local, sep, domain = v.partition("@")
        if not sep or not local or "." not in domain:
            raise ValueError("Invalid email address")
        return v

class WaitlistJoinResponse(BaseModel):
    success: bool = True
    position: int
    already_registered: bool = False

class WaitlistEntryResponse(BaseModel):
    id: UUID
    email: str
    name: Optional[str] = None
    user_type: str
    company: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}

class WaitlistListResponse(BaseModel):
    success: bool = True
    entries: list[WaitlistEntryResponse]
    total: int
