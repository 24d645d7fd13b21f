"""
ITDA — Client analytics side channel.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Body, Depends
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_notification_service
from app.database import get_db
from app.schemas.notification import NotificationClosedEvent
from app.services.notification_service import NotificationService

logger = structlog.get_logger("itda.api.analytics")

router = APIRouter()


@router.post("/notification-closed", summary="Record a dismissed push notification")
async def notification_closed(
    payload: dict | None = Body(None),
    notification_service: NotificationService = Depends(get_notification_service),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Always reports success; a bad payload or logging failure must not
    surface to the service worker."""
    try:
        event = NotificationClosedEvent.model_validate(payload or {})
    except ValidationError as exc:
        logger.info("notification_closed_payload_invalid", errors=exc.error_count())
        return {"success": True}

    await notification_service.log_dismissed(
        event.notification_id,
        db,
        timestamp=event.timestamp,
        action=event.action,
    )
    return {"success": True}
