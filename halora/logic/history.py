"""Ledger of sync and drift-check runs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import pendulum
from sqlalchemy import Boolean, DateTime, Integer, String, bindparam, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from halora.logic.drift import DriftReport
from halora.logic.reconcile import SyncResult
from halora.utils.dates import ISO_FORMAT

logger = logging.getLogger(__name__)

SYNC = "sync"
COMPARE = "compare"

INSERT_RUN = text(
    """
    INSERT INTO sync_runs (ts, action, success, synced_count, error_count, total_differences)
    VALUES (:ts, :action, :success, :synced_count, :error_count, :total_differences)
    """
).bindparams(bindparam("ts", type_=DateTime()))

SELECT_LAST_RUN = text(
    """
    SELECT ts, action, success, synced_count, error_count, total_differences
    FROM sync_runs
    WHERE action = :action
    ORDER BY ts DESC
    LIMIT 1
    """
).columns(
    ts=DateTime(),
    action=String(),
    success=Boolean(),
    synced_count=Integer(),
    error_count=Integer(),
    total_differences=Integer(),
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(slots=True)
class SyncRun:
    ts: datetime
    action: str
    success: bool
    synced_count: int = 0
    error_count: int = 0
    total_differences: int | None = None

    @classmethod
    def from_sync(cls, result: SyncResult, report: DriftReport | None = None) -> "SyncRun":
        return cls(
            ts=_utcnow(),
            action=SYNC,
            success=result.success,
            synced_count=result.synced_count,
            error_count=len(result.errors),
            total_differences=report.total_differences if report else None,
        )

    @classmethod
    def from_report(cls, report: DriftReport) -> "SyncRun":
        return cls(ts=_utcnow(), action=COMPARE, success=True, total_differences=report.total_differences)

    @property
    def ts_iso(self) -> str:
        return pendulum.instance(self.ts, tz="UTC").format(ISO_FORMAT)


def record_run(engine: Engine, run: SyncRun) -> bool:
    """Insert ``run``; ledger failures are logged and reported as ``False``."""
    try:
        with engine.begin() as conn:
            conn.execute(
                INSERT_RUN,
                {
                    "ts": run.ts,
                    "action": run.action,
                    "success": run.success,
                    "synced_count": run.synced_count,
                    "error_count": run.error_count,
                    "total_differences": run.total_differences,
                },
            )
    except SQLAlchemyError as exc:
        logger.warning("Could not record %s run: %s", run.action, exc)
        return False
    return True


def last_run(engine: Engine, action: str = SYNC) -> SyncRun | None:
    try:
        with engine.connect() as conn:
            row = conn.execute(SELECT_LAST_RUN, {"action": action}).mappings().first()
    except SQLAlchemyError as exc:
        logger.warning("Could not read %s history: %s", action, exc)
        return None
    if row is None:
        return None
    return SyncRun(
        ts=row["ts"],
        action=row["action"],
        success=bool(row["success"]),
        synced_count=row["synced_count"],
        error_count=row["error_count"],
        total_differences=row["total_differences"],
    )
