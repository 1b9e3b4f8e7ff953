from datetime import datetime

import pytest
from sqlalchemy import create_engine

from halora.jobs import sync as sync_job
from halora.jobs.watch import watch_products
from halora.logic.history import COMPARE, SYNC, SyncRun, last_run, record_run
from halora.store import InMemoryStore

from conftest import FailingStore, make_catalog


@pytest.mark.asyncio
async def test_run_sync_records_verified_run(store, engine):
    result = await sync_job.run_sync(store=store, engine=engine)

    assert result.success
    run = last_run(engine, SYNC)
    assert run.synced_count == 3
    assert run.error_count == 0
    assert run.total_differences == 0


@pytest.mark.asyncio
async def test_run_sync_uses_store_from_env(monkeypatch, engine):
    created = InMemoryStore({"products": make_catalog()})
    closed = []

    async def fake_close():
        closed.append(True)

    monkeypatch.setattr(created, "close", fake_close)
    monkeypatch.setattr(sync_job, "create_store_from_env", lambda: created)

    result = await sync_job.run_sync(engine=engine)

    assert result.synced_count == 3
    assert closed == [True]


@pytest.mark.asyncio
async def test_failed_sync_is_recorded(engine):
    store = FailingStore({"products": make_catalog()}, fail_get={"products"})

    result = await sync_job.run_sync(store=store, engine=engine)

    assert not result.success
    run = last_run(engine, SYNC)
    assert run.success is False
    assert run.total_differences is None


@pytest.mark.asyncio
async def test_drift_check_records_compare_run(store, engine):
    report = await sync_job.run_drift_check(store=store, engine=engine)

    assert report.total_differences == 3
    assert last_run(engine, COMPARE).total_differences == 3
    assert last_run(engine, SYNC) is None


@pytest.mark.asyncio
async def test_watch_products_syncs_on_change(store):
    results = []

    async def on_result(result):
        results.append(result)

    subscription = await watch_products(store, on_result)
    assert results[0].synced_count == 3

    await store.set("products/P3", {"name": "Toner", "variants": [{"id": "V4", "stockQty": 6, "price": 90}]})
    assert results[-1].synced_count == 4
    assert (await store.get("inventory/P3/V4"))["stockQty"] == 6

    subscription.cancel()
    await store.set("products/P3/variants/0/stockQty", 1)
    assert len(results) == 2


@pytest.mark.asyncio
async def test_watch_ignores_empty_catalog(empty_store):
    results = []

    async def on_result(result):
        results.append(result)

    await watch_products(empty_store, on_result)

    assert results == []


def test_ledger_failure_does_not_raise():
    engine = create_engine("sqlite:///:memory:", future=True)
    run = SyncRun(ts=datetime(2024, 1, 1), action=SYNC, success=True)

    assert record_run(engine, run) is False
    assert last_run(engine, SYNC) is None
