"""
ITDA — ORM model registry.

Importing every model here ensures that Alembic (and any other tool that
inspects ``Base.metadata``) discovers all tables automatically.
"""

from app.models.user import Advertiser, Influencer, User
from app.models.campaign import Campaign
from app.models.match import CampaignMatch, SwipeRecord
from app.models.chat import ChatMessage, ChatRoom
from app.models.notification import (
    Notification,
    NotificationBatch,
    NotificationBatchSend,
    NotificationLog,
    NotificationPreference,
    PushSubscription,
)
from app.models.pricing import PricePredictionRecord
from app.models.waitlist import WaitlistEntry

__all__ = [
    "User",
    "Influencer",
    "Advertiser",
    "Campaign",
    "SwipeRecord",
    "CampaignMatch",
    "ChatRoom",
    "ChatMessage",
    "Notification",
    "NotificationBatch",
    "NotificationBatchSend",
    "PushSubscription",
    "NotificationPreference",
    "NotificationLog",
    "PricePredictionRecord",
    "WaitlistEntry",
]
