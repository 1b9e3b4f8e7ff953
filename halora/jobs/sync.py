"""Sync and drift-check jobs."""

from __future__ import annotations

import asyncio
import logging

from dotenv import load_dotenv
from sqlalchemy.engine import Engine

from halora.db.session import create_engine_from_env
from halora.logic.drift import DriftReport, compare_inventory_with_products
from halora.logic.history import SyncRun, record_run
from halora.logic.reconcile import SyncResult, sync_products_to_inventory
from halora.store import DocumentStore, StoreError, create_store_from_env

logger = logging.getLogger(__name__)


async def run_sync(store: DocumentStore | None = None, engine: Engine | None = None) -> SyncResult:
    """Sync catalog → inventory, then verify with a drift check."""
    load_dotenv()
    owns_store = store is None
    store = store or create_store_from_env()
    engine = engine or create_engine_from_env()
    try:
        result = await sync_products_to_inventory(store)
        report: DriftReport | None = None
        if result.success:
            try:
                report = await compare_inventory_with_products(store)
            except StoreError as exc:
                logger.warning("Post-sync verification failed: %s", exc)
            else:
                if report.total_differences:
                    logger.warning("%s differences remain after sync", report.total_differences)
        record_run(engine, SyncRun.from_sync(result, report))
        return result
    finally:
        if owns_store:
            await store.close()


async def run_drift_check(store: DocumentStore | None = None, engine: Engine | None = None) -> DriftReport:
    load_dotenv()
    owns_store = store is None
    store = store or create_store_from_env()
    engine = engine or create_engine_from_env()
    try:
        report = await compare_inventory_with_products(store)
        if report.total_differences:
            for diff in report.differences[:10]:
                logger.info(
                    "Drift %s/%s %s: catalog=%s inventory=%s",
                    diff.product_id,
                    diff.variant_id,
                    diff.field,
                    diff.catalog_value,
                    diff.inventory_value,
                )
        record_run(engine, SyncRun.from_report(report))
        return report
    finally:
        if owns_store:
            await store.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(run_sync())
