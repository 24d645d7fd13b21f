"""
ITDA — Stored price predictions.
"""

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, JSONType


class PricePredictionRecord(Base):
    __tablename__ = "price_predictions"
    __table_args__ = (
        Index("ix_price_predictions_influencer_created", "influencer_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    influencer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("influencers.id", ondelete="CASCADE"), nullable=False
    )
    campaign_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("campaigns.id", ondelete="SET NULL"), nullable=True
    )
    predicted_price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    min_price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    max_price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    confidence: Mapped[int] = mapped_column(Integer, nullable=False)
    factors: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    inputs: Mapped[dict | None] = mapped_column(
        JSONType, nullable=True, comment="Parameters the prediction was computed from"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<PricePredictionRecord influencer={self.influencer_id} "
            f"price={self.predicted_price} confidence={self.confidence}>"
        )
