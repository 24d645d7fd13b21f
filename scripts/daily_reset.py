"""Zero daily swipe counters whose day (Asia/Seoul) has passed.

Intended for a midnight cron; the swipe path resets lazily as well, so a
missed run only leaves stale counters in the table, never a blocked user.
"""
import asyncio
import sys
sys.path.insert(0, ".")

from app.config import get_settings
from app.database import build_engine, build_session_factory
from app.main import configure_logging
from app.services.swipe_limit_service import SwipeLimitService


async def reset():
    settings = get_settings()
    configure_logging(settings)
    engine = build_engine(settings)
    session_factory = build_session_factory(engine)
    try:
        async with session_factory() as session:
            rows = await SwipeLimitService().reset_daily_counts(session)
            await session.commit()
    finally:
        await engine.dispose()
    print(f"Reset {rows} daily swipe counter(s).")


if __name__ == "__main__":
    asyncio.run(reset())
