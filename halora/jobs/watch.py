"""Automatic sync whenever the catalog changes."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from dotenv import load_dotenv

from halora.logic.reconcile import SyncResult, sync_products_to_inventory
from halora.store import DocumentStore, Subscription, create_store_from_env
from halora.store.paths import PRODUCTS_ROOT

logger = logging.getLogger(__name__)

ResultCallback = Callable[[SyncResult], Awaitable[None]]


async def watch_products(store: DocumentStore, on_result: ResultCallback | None = None) -> Subscription:
    """Run a sync for every change under ``products/``."""

    async def _on_change(snapshot: Any) -> None:
        if snapshot is None:
            return
        logger.info("Products changed, triggering auto-sync")
        result = await sync_products_to_inventory(store)
        if on_result is not None:
            await on_result(result)

    return await store.subscribe(PRODUCTS_ROOT, _on_change)


async def main() -> None:
    load_dotenv()
    store = create_store_from_env()
    subscription = await watch_products(store)
    try:
        await asyncio.Event().wait()
    finally:
        subscription.cancel()
        await store.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
