"""
Background polling schedule.

Runs the price poll and the balance refresh as independent interval jobs
on an in-process AsyncIOScheduler, so they share the process-wide state
objects with request handlers. The balance job starts a few seconds after
the price job so the two never fire together.
"""

import logging
from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from custodian.services.balance_service import BalanceMonitor
from custodian.services.price_service import PriceAggregator

logger = logging.getLogger(__name__)

PRICE_JOB_ID = "poll-price"
BALANCE_JOB_ID = "refresh-balance"


async def run_price_poll(aggregator: PriceAggregator) -> None:
    try:
        await aggregator.poll()
    except Exception:
        logger.exception("Price poll failed")


async def run_balance_refresh(monitor: BalanceMonitor) -> None:
    try:
        await monitor.refresh()
    except Exception:
        logger.exception("Balance refresh failed")


def build_scheduler(
    aggregator: PriceAggregator,
    monitor: BalanceMonitor,
    price_interval: int = 30,
    balance_interval: int = 30,
    balance_delay: int = 2,
) -> AsyncIOScheduler:
    """Create (but do not start) the scheduler with both polling jobs."""
    scheduler = AsyncIOScheduler(
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": price_interval,
        },
        timezone="UTC",
    )
    now = datetime.now(timezone.utc)

    scheduler.add_job(
        run_price_poll,
        trigger=IntervalTrigger(seconds=price_interval),
        args=[aggregator],
        id=PRICE_JOB_ID,
        name="Poll price sources",
        next_run_time=now,
        replace_existing=True,
    )
    scheduler.add_job(
        run_balance_refresh,
        trigger=IntervalTrigger(seconds=balance_interval),
        args=[monitor],
        id=BALANCE_JOB_ID,
        name="Refresh custodial balance",
        next_run_time=now + timedelta(seconds=balance_delay),
        replace_existing=True,
    )
    return scheduler
