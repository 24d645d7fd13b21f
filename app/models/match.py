"""
ITDA — Swipe history and campaign match models.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, JSONType


class SwipeRecord(Base):
    __tablename__ = "swipe_history"
    __table_args__ = (
        UniqueConstraint("influencer_id", "campaign_id", name="uq_swipe_pair"),
        Index("ix_swipe_history_influencer_swiped", "influencer_id", "swiped_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    influencer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("influencers.id", ondelete="CASCADE"), nullable=False
    )
    campaign_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False
    )
    action: Mapped[str] = mapped_column(
        String, nullable=False, comment="like / pass / super_like"
    )
    match_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    category_match: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    swiped_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<SwipeRecord {self.influencer_id} -> {self.campaign_id} "
            f"action={self.action!r}>"
        )


class CampaignMatch(Base):
    __tablename__ = "campaign_influencers"
    __table_args__ = (
        UniqueConstraint("campaign_id", "influencer_id", name="uq_campaign_influencer"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    campaign_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("campaigns.id", ondelete="CASCADE"), nullable=False
    )
    influencer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("influencers.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String,
        default="pending",
        server_default="pending",
        nullable=False,
        comment="pending / accepted / rejected",
    )
    match_score: Mapped[int] = mapped_column(Integer, nullable=False)
    proposed_price: Mapped[int | None] = mapped_column(
        BigInteger, nullable=True, comment="Predicted price at match time"
    )
    agreed_price: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    match_details: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    applied_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    reviewed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # ── Relationships ──────────────────────────────────────────────
    campaign: Mapped["Campaign"] = relationship("Campaign", lazy="selectin")
    influencer: Mapped["Influencer"] = relationship("Influencer", lazy="selectin")

    def __repr__(self) -> str:
        return (
            f"<CampaignMatch {self.campaign_id} <-> {self.influencer_id} "
            f"status={self.status!r} score={self.match_score}>"
        )
