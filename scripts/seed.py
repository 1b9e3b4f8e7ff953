"""Seed the realtime store with a demo catalog."""

from __future__ import annotations

import asyncio
import pathlib
import time

import yaml
from dotenv import load_dotenv

from halora.store import create_store_from_env
from halora.store.paths import product_path

CATALOG_PATH = pathlib.Path(__file__).with_name("catalog.yml")


def load_catalog(path: pathlib.Path = CATALOG_PATH) -> dict[str, dict]:
    items = yaml.safe_load(path.read_text(encoding="utf-8")) or []
    now = int(time.time() * 1000)
    catalog: dict[str, dict] = {}
    for item in items:
        product = dict(item)
        product_id = product.pop("id")
        product.setdefault("createdAt", now)
        product["updatedAt"] = now
        catalog[product_id] = product
    return catalog


async def main() -> None:
    load_dotenv()
    store = create_store_from_env()
    try:
        catalog = load_catalog()
        for product_id, product in catalog.items():
            await store.set(product_path(product_id), product)
    finally:
        await store.close()
    print(f"Seeded {len(catalog)} products")


if __name__ == "__main__":
    asyncio.run(main())
