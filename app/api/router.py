"""
ITDA — Main API Router

Aggregates all sub-routers under a single prefix so that ``app.main``
can mount the entire API surface with one ``include_router`` call.
"""

from fastapi import APIRouter

from app.api import analytics, chat, matches, notifications, pricing, swipes, waitlist

router = APIRouter()

router.include_router(swipes.router, prefix="/swipes", tags=["Swipes"])
router.include_router(matches.router, prefix="/matches", tags=["Matches"])
router.include_router(pricing.router, prefix="/ai-analysis", tags=["AI Analysis"])
router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
router.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])
router.include_router(chat.router, prefix="/chat", tags=["Chat"])
router.include_router(waitlist.router, prefix="/waitlist", tags=["Waitlist"])
router.include_router(waitlist.admin_router, prefix="/admin/waitlist", tags=["Admin - Waitlist"])
