"""Read-only access to the product catalog."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from halora.store import DocumentStore
from halora.store.models import Product, Variant, normalize_product
from halora.store.paths import PRODUCTS_ROOT

logger = logging.getLogger(__name__)

LOW_STOCK_THRESHOLD = 10


def product_entries(raw_products: Any) -> list[tuple[str, Mapping[str, Any]]]:
    """Return ``(productId, raw_product)`` pairs, skipping non-object entries.

    Numeric product keys come back from the realtime store as an array, so the
    list index is used as the product id; ``null`` holes are skipped.
    """
    if isinstance(raw_products, list):
        items = enumerate(raw_products)
    elif isinstance(raw_products, Mapping):
        items = raw_products.items()
    else:
        return []
    return [(str(pid), raw) for pid, raw in items if isinstance(raw, Mapping)]


def normalize_catalog(raw_products: Any) -> dict[str, Product]:
    return {pid: normalize_product(pid, raw) for pid, raw in product_entries(raw_products)}


async def fetch_raw_catalog(store: DocumentStore) -> dict[str, Mapping[str, Any]]:
    raw = await store.get(PRODUCTS_ROOT)
    return dict(product_entries(raw))


async def fetch_catalog(store: DocumentStore) -> dict[str, Product]:
    """Snapshot of ``products/``; an absent root is an empty catalog."""
    catalog = normalize_catalog(await store.get(PRODUCTS_ROOT))
    logger.info("Fetched %s products from catalog", len(catalog))
    return catalog


async def find_low_stock(
    store: DocumentStore, threshold: int = LOW_STOCK_THRESHOLD
) -> list[tuple[Product, Variant]]:
    catalog = await fetch_catalog(store)
    items: list[tuple[Product, Variant]] = []
    for product in catalog.values():
        for variant in product.variants:
            if 0 < variant.stock_qty < threshold:
                items.append((product, variant))
    return items


async def search_products(store: DocumentStore, query: str) -> list[Product]:
    needle = query.strip().lower()
    catalog = await fetch_catalog(store)
    if not needle:
        return list(catalog.values())
    return [
        product
        for product in catalog.values()
        if needle in product.name.lower()
        or needle in product.category.lower()
        or needle in product.description.lower()
    ]
