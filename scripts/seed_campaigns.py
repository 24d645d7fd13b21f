"""Seed a demo advertiser, influencer, and a handful of active campaigns."""
import asyncio
import sys
import uuid
from datetime import datetime, timedelta, timezone
sys.path.insert(0, ".")

from sqlalchemy import select

from app.config import get_settings
from app.database import build_engine, build_session_factory
from app.models.campaign import Campaign
from app.models.user import Advertiser, Influencer, User

DEMO_ADVERTISER_EMAIL = "demo-brand@itda.dev"
DEMO_INFLUENCER_EMAIL = "demo-creator@itda.dev"

DEMO_CAMPAIGNS = [
    {
        "name": "Spring glow serum launch",
        "categories": ["뷰티"],
        "budget": 5_000_000,
        "min_followers": 10_000,
        "urgency": "high",
        "is_premium": True,
        "deliverables": [{"type": "reel", "count": 3}, {"type": "story", "count": 5}],
    },
    {
        "name": "Seoul cafe tour",
        "categories": ["푸드", "여행"],
        "budget": 1_500_000,
        "min_followers": 3_000,
        "urgency": "medium",
        "is_premium": False,
        "deliverables": [{"type": "post", "count": 2}],
    },
    {
        "name": "Home workout challenge",
        "categories": ["피트니스"],
        "budget": 3_000_000,
        "min_followers": 20_000,
        "urgency": "low",
        "is_premium": False,
        "deliverables": [{"type": "reel", "count": 4}],
    },
    {
        "name": "Fall lookbook",
        "categories": ["패션"],
        "budget": 8_000_000,
        "min_followers": 50_000,
        "urgency": "medium",
        "is_premium": True,
        "deliverables": [{"type": "post", "count": 3}, {"type": "story", "count": 3}],
    },
]


async def _get_or_create_user(session, email: str, user_type: str) -> User:
    user = (await session.execute(select(User).where(User.email == email))).scalar_one_or_none()
    if user is None:
        user = User(id=uuid.uuid4(), email=email, user_type=user_type)
        session.add(user)
        await session.flush()
        print(f"  Created {user_type} user {email}")
    return user


async def seed():
    settings = get_settings()
    engine = build_engine(settings)
    session_factory = build_session_factory(engine)
    now = datetime.now(timezone.utc)

    async with session_factory() as session:
        brand = await _get_or_create_user(session, DEMO_ADVERTISER_EMAIL, "advertiser")
        if await session.get(Advertiser, brand.id) is None:
            session.add(Advertiser(id=brand.id, company_name="ITDA Demo Brand", is_verified=True))

        creator = await _get_or_create_user(session, DEMO_INFLUENCER_EMAIL, "influencer")
        if await session.get(Influencer, creator.id) is None:
            session.add(
                Influencer(
                    id=creator.id,
                    name="Demo Creator",
                    username="demo.creator",
                    followers_count=75_000,
                    engagement_rate=4.2,
                    categories=["뷰티", "패션"],
                    tier="gold",
                    is_verified=True,
                )
            )
        await session.flush()

        for offset, fields in enumerate(DEMO_CAMPAIGNS):
            existing = await session.execute(
                select(Campaign).where(
                    Campaign.advertiser_id == brand.id, Campaign.name == fields["name"]
                )
            )
            if existing.scalar_one_or_none() is not None:
                print(f"  Campaign {fields['name']!r} already exists, skipping.")
                continue
            session.add(
                Campaign(
                    advertiser_id=brand.id,
                    status="active",
                    deadline=now + timedelta(days=30),
                    created_at=now - timedelta(minutes=offset),
                    **fields,
                )
            )
            print(f"  Seeded campaign {fields['name']!r}")

        await session.commit()
    await engine.dispose()
    print("Done seeding campaigns.")


if __name__ == "__main__":
    asyncio.run(seed())
