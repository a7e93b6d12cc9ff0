"""scheduler.py – APScheduler timer for the poll cycle.

• every ``POLL_INTERVAL_H`` hours – ``FlightChecker.run_cycle``
• first run immediately after start-up
• one worker thread, never two cycles at once
"""

from __future__ import annotations

from datetime import datetime, timezone

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.blocking import BlockingScheduler

from .checker import FlightChecker

JOB_ID = "poll_cycle"


def build_scheduler(checker: FlightChecker, interval_h: int) -> BlockingScheduler:
    sched = BlockingScheduler(
        timezone="UTC",
        executors={"default": ThreadPoolExecutor(max_workers=1)},
    )
    sched.add_job(
        checker.run_cycle,
        "interval",
        hours=interval_h,
        id=JOB_ID,
        max_instances=1,
        coalesce=True,
        next_run_time=datetime.now(timezone.utc),
    )
    return sched


__all__ = ["build_scheduler", "JOB_ID"]
