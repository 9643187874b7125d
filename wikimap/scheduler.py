"""
Scheduler module using APScheduler.
Keeps today's on-this-day events warm in the session cache.
"""

from __future__ import annotations

import logging
from datetime import date, datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from wikimap.config import get_settings

logger = logging.getLogger(__name__)

_scheduler: AsyncIOScheduler | None = None


async def warm_todays_events(session) -> int:
    """Fetch (or hit the cache for) today's events; returns how many there are."""
    today = date.today()
    events = await session.fetch_events(today.month, today.day)
    return len(events)


async def _warm_job(session):
    """Wrapper that catches exceptions so the scheduler doesn't die on failure."""
    try:
        count = await warm_todays_events(session)
        logger.info("Event cache warm: %d events for today", count)
    except Exception as e:
        logger.error("Event cache warm-up failed: %s", e, exc_info=True)


def create_scheduler(session) -> AsyncIOScheduler:
    """Create and configure the APScheduler instance."""
    global _scheduler
    settings = get_settings().scheduler

    _scheduler = AsyncIOScheduler()
    _scheduler.add_job(
        _warm_job,
        trigger=IntervalTrigger(minutes=settings.interval_minutes),
        args=[session],
        id="wikimap_event_warmup",
        name="On-this-day event warm-up",
        replace_existing=True,
        max_instances=1,
        next_run_time=datetime.now(),
    )

    logger.info("Scheduler configured: event warm-up every %d minutes",
                settings.interval_minutes)
    return _scheduler


def start_scheduler(session) -> None:
    """Start the scheduler (non-blocking)."""
    settings = get_settings().scheduler
    if not settings.enabled:
        logger.info("Scheduler disabled via config")
        return

    scheduler = create_scheduler(session)
    scheduler.start()
    logger.info("Scheduler started")


def stop_scheduler() -> None:
    """Stop the scheduler."""
    global _scheduler
    if _scheduler is not None:
        if _scheduler.running:
            _scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
        _scheduler = None
