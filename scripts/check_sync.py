"""Compare, sync, and compare again against the configured store."""

from __future__ import annotations

import asyncio
import json

from dotenv import load_dotenv

from halora.logic.catalog import fetch_catalog
from halora.logic.drift import compare_inventory_with_products
from halora.logic.reconcile import sync_products_to_inventory
from halora.store import create_store_from_env


async def main() -> dict[str, object]:
    load_dotenv()
    store = create_store_from_env()
    try:
        catalog = await fetch_catalog(store)
        before = await compare_inventory_with_products(store)
        result = await sync_products_to_inventory(store)
        after = await compare_inventory_with_products(store)
    finally:
        await store.close()
    summary = {
        "productsCount": len(catalog),
        "beforeDifferences": before.total_differences,
        "syncedCount": result.synced_count,
        "afterDifferences": after.total_differences,
        "orphans": len(after.orphans),
        "errors": [error.to_dict() for error in result.errors],
    }
    print(json.dumps(summary, ensure_ascii=False, indent=2))
    return summary


if __name__ == "__main__":
    asyncio.run(main())
