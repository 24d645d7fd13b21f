"""
ITDA — Waitlist API

Public pre-launch signup plus the admin listing.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUser, require_admin
from app.database import get_db, insert_ignore
from app.models.waitlist import WaitlistEntry
from app.schemas.waitlist import (
    WaitlistCreate,
    WaitlistEntryResponse,
    WaitlistJoinResponse,
    WaitlistListResponse,
)

logger = structlog.get_logger("itda.api.waitlist")

router = APIRouter()
admin_router = APIRouter()


async def _position_of(entry_created_at: datetime, db: AsyncSession) -> int:
    stmt = select(func.count(WaitlistEntry.id)).where(
        WaitlistEntry.created_at <= entry_created_at
    )
    return (await db.execute(stmt)).scalar_one()


# ──────────────────────────────────────────────────────────────────────────────
# POST /waitlist — Join (public)
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "",
    response_model=WaitlistJoinResponse,
    summary="Join the waitlist",
)
async def join_waitlist(
    payload: WaitlistCreate,
    db: AsyncSession = Depends(get_db),
) -> WaitlistJoinResponse:
    """Idempotent per email; a repeat signup returns the original position."""
    now = datetime.now(timezone.utc)
    entry_id = await insert_ignore(
        db,
        WaitlistEntry,
        {
            "email": payload.email,
            "name": payload.name,
            "user_type": payload.user_type,
            "company": payload.company,
            "created_at": now,
        },
        ["email"],
    )

    if entry_id is None:
        created_at = (
            await db.execute(
                select(WaitlistEntry.created_at).where(WaitlistEntry.email == payload.email)
            )
        ).scalar_one()
        position = await _position_of(created_at, db)
        logger.info("waitlist_repeat_signup", position=position)
        return WaitlistJoinResponse(position=position, already_registered=True)

    position = await _position_of(now, db)
    logger.info("waitlist_signup", user_type=payload.user_type, position=position)
    return WaitlistJoinResponse(position=position)


# ──────────────────────────────────────────────────────────────────────────────
# GET /admin/waitlist — Listing (admin)
# ──────────────────────────────────────────────────────────────────────────────

@admin_router.get(
    "",
    response_model=WaitlistListResponse,
    summary="List waitlist signups",
)
async def list_waitlist(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user_type: str | None = Query(None, pattern="^(influencer|advertiser)$"),
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> WaitlistListResponse:
    base = select(WaitlistEntry)
    count_stmt = select(func.count(WaitlistEntry.id))
    if user_type:
        base = base.where(WaitlistEntry.user_type == user_type)
        count_stmt = count_stmt.where(WaitlistEntry.user_type == user_type)

    total = (await db.execute(count_stmt)).scalar_one()
    entries = (
        await db.execute(
            base.order_by(WaitlistEntry.created_at.desc(), WaitlistEntry.id)
            .limit(limit)
            .offset(offset)
        )
    ).scalars().all()

    logger.info("waitlist_listed", admin_id=str(admin.id), total=total)
    return WaitlistListResponse(
        entries=[WaitlistEntryResponse.model_validate(e) for e in entries],
        total=total,
    )
