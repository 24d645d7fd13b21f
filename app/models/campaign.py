"""
ITDA — Campaign model.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base, JSONType


class Campaign(Base):
    __tablename__ = "campaigns"
    __table_args__ = (
        CheckConstraint("budget > 0", name="ck_campaign_budget_positive"),
        Index("ix_campaigns_status_created", "status", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    advertiser_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("advertisers.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    budget: Mapped[int] = mapped_column(BigInteger, nullable=False)
    categories: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    min_followers: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    min_engagement_rate: Mapped[float] = mapped_column(
        Float, default=0.0, server_default="0", nullable=False
    )
    status: Mapped[str] = mapped_column(
        String,
        default="draft",
        server_default="draft",
        nullable=False,
        comment="draft / active / paused / completed / cancelled",
    )
    is_premium: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    urgency: Mapped[str] = mapped_column(
        String,
        default="medium",
        server_default="medium",
        nullable=False,
        comment="low / medium / high",
    )
    deliverables: Mapped[list] = mapped_column(
        JSONType, default=list, nullable=False, comment="[{type, count}]"
    )
    deadline: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # ── Aggregate counters (atomic increments only) ────────────────
    view_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    like_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    super_like_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    application_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )

    # ── Relationships ──────────────────────────────────────────────
    advertiser: Mapped["Advertiser"] = relationship("Advertiser", lazy="selectin")

    def __repr__(self) -> str:
        return f"<Campaign {self.name!r} status={self.status!r} budget={self.budget}>"
