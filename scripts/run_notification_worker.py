#!/usr/bin/env python3
"""
ITDA — Applicant Digest Worker

Polls ``notification_batch_sends`` and executes every digest whose due time
has passed.  Several replicas may run side by side: a Redis lease elects one
active poller per tick, and the sends themselves are claimed with
``FOR UPDATE SKIP LOCKED``.

Usage examples
--------------
  # Run forever, polling every BATCH_WORKER_POLL_SECONDS
  python scripts/run_notification_worker.py

  # Process whatever is due right now and exit
  python scripts/run_notification_worker.py --once
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
import uuid

# Ensure the project root is importable
sys.path.insert(0, ".")

import httpx
import redis.asyncio as aioredis
import structlog

from app.config import Settings, get_settings
from app.database import build_engine, build_session_factory
from app.main import configure_logging
from app.services.notification_batcher import NotificationBatcher
from app.services.notification_service import NotificationService
from app.services.push_service import PushService

logger = structlog.get_logger("itda.worker.digest")

LEASE_KEY = "itda:digest-worker:lease"


async def acquire_lease(redis_client: aioredis.Redis, owner: str, ttl_seconds: int) -> bool:
    """Take or extend the single-poller lease."""
    if await redis_client.set(LEASE_KEY, owner, nx=True, ex=ttl_seconds):
        return True
    if await redis_client.get(LEASE_KEY) == owner:
        await redis_client.expire(LEASE_KEY, ttl_seconds)
        return True
    return False


async def release_lease(redis_client: aioredis.Redis, owner: str) -> None:
    if await redis_client.get(LEASE_KEY) == owner:
        await redis_client.delete(LEASE_KEY)


async def run_once(session_factory, batcher: NotificationBatcher) -> dict:
    async with session_factory() as session:
        try:
            result = await batcher.process_due_sends(session)
            await session.commit()
            await batcher.notification_service.deliver_pending(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
    return result


async def run(settings: Settings, once: bool = False) -> None:
    engine = build_engine(settings)
    session_factory = build_session_factory(engine)
    redis_client = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    http_client = httpx.AsyncClient(timeout=settings.PUSH_TIMEOUT_SECONDS)
    push_service = PushService(http_client=http_client)
    batcher = NotificationBatcher(
        notification_service=NotificationService(push_service=push_service)
    )

    owner = f"worker-{uuid.uuid4().hex[:12]}"
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            pass

    logger.info(
        "worker_started",
        owner=owner,
        poll_seconds=settings.BATCH_WORKER_POLL_SECONDS,
        batch_size=settings.BATCH_WORKER_BATCH_SIZE,
    )

    try:
        while not stop.is_set():
            try:
                if await acquire_lease(redis_client, owner, settings.BATCH_WORKER_LEASE_SECONDS):
                    result = await run_once(session_factory, batcher)
                    if result["processed"]:
                        logger.info("worker_tick", **result)
                else:
                    logger.debug("worker_lease_held_elsewhere")
            except Exception:
                logger.exception("worker_tick_failed")

            if once:
                break
            try:
                await asyncio.wait_for(stop.wait(), timeout=settings.BATCH_WORKER_POLL_SECONDS)
            except asyncio.TimeoutError:
                pass
    finally:
        await release_lease(redis_client, owner)
        await http_client.aclose()
        await redis_client.aclose()
        await engine.dispose()
        logger.info("worker_stopped", owner=owner)


def main() -> None:
    parser = argparse.ArgumentParser(description="ITDA applicant digest worker")
    parser.add_argument("--once", action="store_true", help="Process due sends and exit")
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings)
    asyncio.run(run(settings, once=args.once))


if __name__ == "__main__":
    main()
