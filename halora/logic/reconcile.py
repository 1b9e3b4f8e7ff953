"""Catalog → inventory reconciliation.

The catalog (``products/``) is the source of truth for stock, price and
import price. Every catalog variant is projected into
``inventory/{productId}/{variantId}`` and written unconditionally. Inventory
records whose variant has left the catalog are kept: order fulfilment may
still reference them, so they are reported by the drift check instead of
being deleted here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from halora.logic.catalog import fetch_raw_catalog
from halora.store import DocumentStore
from halora.store.models import (
    DEFAULT_SUPPLIER,
    InventoryItem,
    Variant,
    iter_variant_entries,
    normalize_variant,
    variant_key,
)
from halora.store.paths import inventory_path
from halora.utils.dates import utc_now_iso

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SyncError:
    product_id: str
    variant_id: str
    error: str

    def to_dict(self) -> dict[str, str]:
        return {"productId": self.product_id, "variantId": self.variant_id, "error": self.error}


@dataclass(slots=True)
class SyncResult:
    success: bool
    synced_count: int = 0
    errors: list[SyncError] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": self.success,
            "syncedCount": self.synced_count,
            "errors": [error.to_dict() for error in self.errors],
        }
        if self.error:
            data["error"] = self.error
        return data


def build_inventory_record(
    product_id: str, raw_product: Mapping[str, Any], variant: Variant, updated_at: str
) -> InventoryItem:
    supplier = raw_product.get("supplier") or DEFAULT_SUPPLIER
    brand_id = raw_product.get("brandId") or None
    return InventoryItem(
        product_id=product_id,
        variant_id=variant.id,
        variant_name=variant.name,
        stock_qty=variant.stock_qty,
        import_price=variant.import_price,
        price=variant.price,
        supplier=str(supplier),
        updated_at=updated_at,
        brand_id=str(brand_id) if brand_id else None,
    )


async def sync_products_to_inventory(store: DocumentStore) -> SyncResult:
    """Write every catalog variant into inventory; never raises."""
    logger.info("Starting sync from products to inventory")
    try:
        raw_catalog = await fetch_raw_catalog(store)
    except Exception as exc:
        logger.exception("Catalog fetch failed; sync aborted")
        return SyncResult(success=False, error=str(exc))

    result = SyncResult(success=True)
    for product_id, raw_product in raw_catalog.items():
        for index, key, raw_variant in iter_variant_entries(raw_product.get("variants")):
            variant_id = variant_key(product_id, index, raw_variant, key)
            try:
                variant = normalize_variant(product_id, index, raw_variant, key=key)
                record = build_inventory_record(product_id, raw_product, variant, utc_now_iso())
                await store.set(inventory_path(product_id, variant.id), record.to_record())
            except Exception as exc:
                logger.warning("Failed to sync %s/%s: %s", product_id, variant_id, exc)
                result.errors.append(SyncError(product_id, variant_id, str(exc)))
                continue
            result.synced_count += 1

    logger.info(
        "Synced %s inventory records (%s errors)", result.synced_count, len(result.errors)
    )
    return result
