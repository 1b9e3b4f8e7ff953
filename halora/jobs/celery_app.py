"""Celery configuration for scheduled sync jobs."""

from __future__ import annotations

import os

from celery import Celery
from celery.schedules import crontab

from halora.utils.dates import timezone_name

broker_url = os.environ.get("REDIS_URL", "redis://redis:6379/0")
backend_url = os.environ.get("REDIS_URL", "redis://redis:6379/0")

celery_app = Celery("halora", broker=broker_url, backend=backend_url, include=["halora.jobs.sync"])
celery_app.conf.timezone = timezone_name()
celery_app.conf.beat_schedule = {
    "nightly-sync": {
        "task": "halora.jobs.sync.run_sync",
        "schedule": crontab(hour=int(os.environ.get("SYNC_HOUR", "2")), minute=int(os.environ.get("SYNC_MINUTE", "0"))),
    },
    "drift-check": {
        "task": "halora.jobs.sync.run_drift_check",
        "schedule": crontab(minute=f"*/{int(os.environ.get('DRIFT_CHECK_MINUTES', '30'))}"),
    },
}


@celery_app.task(name="halora.jobs.sync.run_sync")
def run_sync_task() -> dict:  # pragma: no cover - executed by worker
    import asyncio

    from halora.jobs.sync import run_sync

    return asyncio.run(run_sync()).to_dict()


@celery_app.task(name="halora.jobs.sync.run_drift_check")
def run_drift_check_task() -> dict:  # pragma: no cover - executed by worker
    import asyncio

    from halora.jobs.sync import run_drift_check

    report = asyncio.run(run_drift_check())
    return {"totalDifferences": report.total_differences, "orphans": len(report.orphans)}
