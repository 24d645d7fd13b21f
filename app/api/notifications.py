"""
ITDA — Notifications API

Notification centre listing, unread checks, read-state changes, deletion, and
per-user delivery preferences.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUser, get_current_user, get_notification_service
from app.database import get_db
from app.exceptions import EntityNotFoundError
from app.schemas.notification import (
    MarkReadRequest,
    NotificationListResponse,
    NotificationPreferences,
    NotificationResponse,
    NotificationUpdate,
    PreferencesResponse,
    UnreadCheckResponse,
)
from app.services.notification_service import NotificationService

logger = structlog.get_logger("itda.api.notifications")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# GET / — List notifications
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "",
    response_model=NotificationListResponse,
    summary="List notifications",
)
async def list_notifications(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    unread: bool = Query(False),
    type: str | None = Query(None),
    current_user: CurrentUser = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service),
    db: AsyncSession = Depends(get_db),
) -> NotificationListResponse:
    result = await notification_service.list_notifications(
        current_user.id, db, limit=limit, offset=offset, unread_only=unread, type=type
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in result["notifications"]],
        unread_count=result["unread_count"],
        has_more=result["has_more"],
    )


@router.get(
    "/check",
    response_model=UnreadCheckResponse,
    summary="Check for unread notifications",
)
async def check_unread(
    current_user: CurrentUser = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service),
    db: AsyncSession = Depends(get_db),
) -> UnreadCheckResponse:
    count = await notification_service.unread_count(current_user.id, db)
    return UnreadCheckResponse(unread_count=count, has_unread=count > 0)


# ──────────────────────────────────────────────────────────────────────────────
# Bulk read-state
# ──────────────────────────────────────────────────────────────────────────────

@router.post("/mark-read", summary="Mark one notification read (service worker)")
async def mark_read_from_worker(
    payload: MarkReadRequest,
    notification_service: NotificationService = Depends(get_notification_service),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Called by the service worker on notification click, which carries no
    session; knowing the notification id is the only capability required."""
    updated = await notification_service.mark_read_by_id(payload.notification_id, db)
    if not updated:
        raise EntityNotFoundError("Notification", payload.notification_id)
    return {"success": True}


@router.post("/mark-all-read", summary="Mark all notifications read")
async def mark_all_read(
    current_user: CurrentUser = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service),
    db: AsyncSession = Depends(get_db),
) -> dict:
    count = await notification_service.mark_all_read(current_user.id, db)
    return {"success": True, "updated": count}


# ──────────────────────────────────────────────────────────────────────────────
# Preferences
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/preferences",
    response_model=PreferencesResponse,
    summary="Get notification preferences",
)
async def get_preferences(
    current_user: CurrentUser = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service),
    db: AsyncSession = Depends(get_db),
) -> PreferencesResponse:
    prefs = await notification_service.get_preferences(current_user.id, db)
    return PreferencesResponse(preferences=NotificationPreferences(**prefs))


@router.post(
    "/preferences",
    response_model=PreferencesResponse,
    summary="Save notification preferences",
)
async def save_preferences(
    payload: NotificationPreferences,
    current_user: CurrentUser = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service),
    db: AsyncSession = Depends(get_db),
) -> PreferencesResponse:
    prefs = await notification_service.save_preferences(current_user.id, payload, db)
    return PreferencesResponse(preferences=NotificationPreferences(**prefs))


# ──────────────────────────────────────────────────────────────────────────────
# /{notification_id} — Single notification
# ──────────────────────────────────────────────────────────────────────────────

@router.patch(
    "/{notification_id}",
    summary="Set a notification's read flag",
)
async def update_notification(
    notification_id: uuid.UUID,
    payload: NotificationUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service),
    db: AsyncSession = Depends(get_db),
) -> dict:
    notification = await notification_service.mark_read(
        notification_id, current_user.id, db, is_read=payload.is_read
    )
    return {
        "success": True,
        "notification": NotificationResponse.model_validate(notification).model_dump(mode="json"),
    }


@router.delete(
    "/{notification_id}",
    summary="Delete a notification",
)
async def delete_notification(
    notification_id: uuid.UUID,
    current_user: CurrentUser = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service),
    db: AsyncSession = Depends(get_db),
) -> dict:
    await notification_service.delete_notification(notification_id, current_user.id, db)
    return {"success": True}
