"""
ITDA — User, Influencer, and Advertiser models.

``users.id`` is the Supabase Auth uid.  Influencer and advertiser profiles
share that id as their primary key, so a session's ``sub`` claim addresses
the profile row directly.
"""

import uuid
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, JSONType


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    email: Mapped[str] = mapped_column(
        String, unique=True, index=True, nullable=False
    )
    display_name: Mapped[str | None] = mapped_column(String, nullable=True)
    user_type: Mapped[str] = mapped_column(
        String, nullable=False, comment="influencer / advertiser / admin"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true", nullable=False
    )

    def __repr__(self) -> str:
        return f"<User {self.email!r} type={self.user_type!r}>"


class Influencer(Base):
    __tablename__ = "influencers"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    username: Mapped[str | None] = mapped_column(String, nullable=True)
    avatar: Mapped[str | None] = mapped_column(String, nullable=True)
    followers_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    engagement_rate: Mapped[float] = mapped_column(
        Float, default=0.0, server_default="0", nullable=False, comment="Percentage"
    )
    categories: Mapped[list] = mapped_column(
        JSONType, default=list, nullable=False, comment="Category tags, primary first"
    )
    tier: Mapped[str] = mapped_column(
        String,
        default="bronze",
        server_default="bronze",
        nullable=False,
        comment="bronze / silver / gold / platinum",
    )
    is_verified: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    daily_swipes_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        server_default="0",
        nullable=False,
        comment="Only meaningful when last_swipe_date is today",
    )
    last_swipe_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_swipe_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    @property
    def primary_category(self) -> str | None:
        return self.categories[0] if self.categories else None

    def __repr__(self) -> str:
        return (
            f"<Influencer {self.name!r} followers={self.followers_count} "
            f"tier={self.tier!r}>"
        )


class Advertiser(Base):
    __tablename__ = "advertisers"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    company_name: Mapped[str] = mapped_column(String, nullable=False)
    company_logo: Mapped[str | None] = mapped_column(String, nullable=True)
    is_verified: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<Advertiser {self.company_name!r} id={self.id}>"
