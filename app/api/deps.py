"""
ITDA — Shared API dependencies.

Session authentication (Supabase access tokens), the admin gate, and service
construction.  Services are cheap to build, so each request gets its own,
wired to the push client the lifespan stored on ``app.state``.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

import jwt
import structlog
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database import get_db
from app.models.user import User
from app.services.chat_service import ChatService
from app.services.match_review_service import MatchReviewService
from app.services.notification_service import NotificationService
from app.services.pricing_service import PricingService
from app.services.push_service import PushService
from app.services.queue_service import QueueService
from app.services.swipe_limit_service import SwipeLimitService
from app.services.swipe_service import SwipeService

logger = structlog.get_logger("itda.api.deps")

_bearer = HTTPBearer(auto_error=False)

_JWT_ALGORITHMS = ["HS256"]


@dataclass(frozen=True)
class CurrentUser:
    id: uuid.UUID
    email: str | None
    role: str | None


# ── Authentication ────────────────────────────────────────────────────────────

def decode_session_token(token: str) -> dict:
    """Verify a Supabase access token and return its claims.

    Raises ``HTTPException(401)`` for expired, malformed, or badly signed
    tokens.
    """
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=_JWT_ALGORITHMS,
            audience=settings.SUPABASE_JWT_AUDIENCE,
        )
    except jwt.ExpiredSignatureError:
        logger.info("session_token_expired")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired",
        )
    except jwt.InvalidTokenError as exc:
        logger.info("session_token_invalid", error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> CurrentUser:
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )

    claims = decode_session_token(credentials.credentials)
    try:
        user_id = uuid.UUID(str(claims.get("sub")))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )

    return CurrentUser(id=user_id, email=claims.get("email"), role=claims.get("role"))


async def require_admin(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    user = await db.get(User, current_user.id)
    if user is None or user.user_type != "admin":
        logger.warning("admin_access_denied", user_id=str(current_user.id))
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


# ── Services ──────────────────────────────────────────────────────────────────

def get_push_service(request: Request) -> PushService:
    return request.app.state.push_service


def get_notification_service(
    push_service: PushService = Depends(get_push_service),
) -> NotificationService:
    return NotificationService(push_service=push_service)


def get_swipe_limit_service() -> SwipeLimitService:
    return SwipeLimitService()


def get_queue_service(
    limit_service: SwipeLimitService = Depends(get_swipe_limit_service),
) -> QueueService:
    return QueueService(limit_service=limit_service)


def get_swipe_service(
    limit_service: SwipeLimitService = Depends(get_swipe_limit_service),
    notification_service: NotificationService = Depends(get_notification_service),
) -> SwipeService:
    return SwipeService(
        limit_service=limit_service,
        notification_service=notification_service,
    )


def get_pricing_service() -> PricingService:
    return PricingService()


def get_chat_service() -> ChatService:
    return ChatService()


def get_match_review_service(
    notification_service: NotificationService = Depends(get_notification_service),
) -> MatchReviewService:
    return MatchReviewService(notification_service=notification_service)
