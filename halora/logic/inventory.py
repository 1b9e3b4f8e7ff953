"""Inventory reads, writes and the enriched realtime listing."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, Mapping

from halora.logic.catalog import normalize_catalog
from halora.store import DocumentStore, StoreError, Subscription
from halora.store.models import InventoryItem, Product, normalize_inventory_item
from halora.store.paths import INVENTORY_ROOT, PRODUCTS_ROOT, inventory_path
from halora.utils.dates import utc_now_iso

logger = logging.getLogger(__name__)

InventoryCallback = Callable[[list[InventoryItem]], Awaitable[None]]

WRITABLE_FIELDS = ("variantName", "stockQty", "importPrice", "price", "supplier", "brandId")


def iter_inventory_records(raw_inventory: Any):
    """Yield ``(productId, variantId, record)`` from ``inventory/``."""
    if not isinstance(raw_inventory, Mapping):
        return
    for product_id, variants in raw_inventory.items():
        if not isinstance(variants, Mapping):
            continue
        for variant_id, record in variants.items():
            if isinstance(record, Mapping):
                yield str(product_id), str(variant_id), record


def enrich_inventory(raw_inventory: Any, catalog: Mapping[str, Product]) -> list[InventoryItem]:
    items: list[InventoryItem] = []
    for product_id, variant_id, record in iter_inventory_records(raw_inventory):
        try:
            items.append(normalize_inventory_item(product_id, variant_id, record, catalog.get(product_id)))
        except ValueError as exc:
            logger.warning("Skipping malformed inventory record %s/%s: %s", product_id, variant_id, exc)
    return items


async def _load_catalog_for_display(store: DocumentStore) -> dict[str, Product]:
    try:
        return normalize_catalog(await store.get(PRODUCTS_ROOT))
    except StoreError as exc:
        logger.warning("Catalog unavailable for inventory enrichment: %s", exc)
        return {}


async def fetch_inventory(store: DocumentStore) -> list[InventoryItem]:
    raw_inventory = await store.get(INVENTORY_ROOT)
    return enrich_inventory(raw_inventory, await _load_catalog_for_display(store))


async def listen_inventory(store: DocumentStore, callback: InventoryCallback) -> Subscription:
    """Deliver the full enriched inventory list on every inventory change.

    The catalog is re-read for each notification so display fields always
    reflect the current product names; callers that need to avoid the extra
    read should keep their own catalog snapshot and call
    ``enrich_inventory`` directly.
    """

    async def _on_change(raw_inventory: Any) -> None:
        if not raw_inventory:
            await callback([])
            return
        catalog = await _load_catalog_for_display(store)
        await callback(enrich_inventory(raw_inventory, catalog))

    return await store.subscribe(INVENTORY_ROOT, _on_change)


async def get_inventory_item(store: DocumentStore, product_id: str, variant_id: str) -> InventoryItem | None:
    record = await store.get(inventory_path(product_id, variant_id))
    if not isinstance(record, Mapping):
        return None
    item = normalize_inventory_item(product_id, variant_id, record)
    item.product_name = item.product_image = item.product_category = None
    return item


def _writable(data: Mapping[str, Any]) -> dict[str, Any]:
    return {key: data[key] for key in WRITABLE_FIELDS if key in data}


async def add_inventory(
    store: DocumentStore, product_id: str, variant_id: str, data: Mapping[str, Any]
) -> dict[str, Any]:
    record = {
        "productId": product_id,
        "variantId": variant_id,
        **_writable(data),
        "updatedAt": utc_now_iso(),
    }
    await store.set(inventory_path(product_id, variant_id), record)
    logger.info("Wrote inventory record %s/%s", product_id, variant_id)
    return record


async def update_inventory(
    store: DocumentStore, product_id: str, variant_id: str, data: Mapping[str, Any]
) -> dict[str, Any]:
    changes = {**_writable(data), "updatedAt": utc_now_iso()}
    await store.update(inventory_path(product_id, variant_id), changes)
    logger.info("Updated inventory record %s/%s (%s)", product_id, variant_id, ", ".join(sorted(changes)))
    return changes
