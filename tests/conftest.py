"""Shared pytest fixtures for ITDA tests."""
import os
import uuid
from datetime import datetime, timedelta, timezone

# Settings are read once on first import; point them at throwaway values.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-secret-with-enough-length-for-hs256")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  (registers every table on Base.metadata)
from app.database import Base, build_session_factory
from app.models.campaign import Campaign
from app.models.user import Advertiser, Influencer, User


@pytest.fixture
def fixed_now():
    """12:00 in Seoul on 2025-03-10."""
    return datetime(2025, 3, 10, 3, 0, tzinfo=timezone.utc)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Let SQLAlchemy own BEGIN so SAVEPOINTs behave on SQLite.
    @event.listens_for(engine.sync_engine, "connect")
    def _no_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _explicit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def make_user(db, fixed_now):
    async def _make(user_type="influencer", **overrides):
        fields = {
            "id": uuid.uuid4(),
            "email": f"{uuid.uuid4().hex[:10]}@itda.test",
            "user_type": user_type,
            "created_at": fixed_now,
        }
        fields.update(overrides)
        user = User(**fields)
        db.add(user)
        await db.flush()
        return user

    return _make


@pytest.fixture
def make_influencer(db, make_user, fixed_now):
    async def _make(**overrides):
        user = await make_user("influencer")
        fields = {
            "name": "Test Creator",
            "username": "test.creator",
            "followers_count": 75_000,
            "engagement_rate": 4.2,
            "categories": ["뷰티"],
            "tier": "bronze",
            "is_verified": False,
            "created_at": fixed_now,
        }
        fields.update(overrides)
        influencer = Influencer(id=user.id, **fields)
        db.add(influencer)
        await db.flush()
        return influencer

    return _make


@pytest.fixture
def make_advertiser(db, make_user, fixed_now):
    async def _make(**overrides):
        user = await make_user("advertiser")
        fields = {"company_name": "Test Brand", "created_at": fixed_now}
        fields.update(overrides)
        advertiser = Advertiser(id=user.id, **fields)
        db.add(advertiser)
        await db.flush()
        return advertiser

    return _make


@pytest.fixture
def make_campaign(db, fixed_now):
    created = {"n": 0}

    async def _make(advertiser, **overrides):
        # Each new campaign is one minute newer than the previous one.
        created["n"] += 1
        fields = {
            "advertiser_id": advertiser.id,
            "name": f"Campaign {created['n']}",
            "budget": 5_000_000,
            "categories": ["뷰티"],
            "min_followers": 10_000,
            "min_engagement_rate": 2.0,
            "status": "active",
            "urgency": "medium",
            "is_premium": False,
            "deliverables": [{"type": "reel", "count": 3}, {"type": "story", "count": 5}],
            "created_at": fixed_now - timedelta(days=1) + timedelta(minutes=created["n"]),
        }
        fields.update(overrides)
        campaign = Campaign(**fields)
        db.add(campaign)
        await db.flush()
        return campaign

    return _make
