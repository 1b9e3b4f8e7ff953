"""Path helpers for the realtime document store."""

from __future__ import annotations

PRODUCTS_ROOT = "products"
INVENTORY_ROOT = "inventory"

FORBIDDEN_KEY_CHARS = frozenset(".$#[]/")


def validate_key(key: str) -> str:
    if not isinstance(key, str) or not key:
        raise ValueError(f"Invalid key: {key!r}")
    bad = FORBIDDEN_KEY_CHARS.intersection(key)
    if bad:
        raise ValueError(f"Invalid key {key!r}: contains {''.join(sorted(bad))}")
    return key


def ref_path(*segments: str) -> str:
    """Join validated key segments into a store path."""
    return "/".join(validate_key(str(segment)) for segment in segments)


def split_path(path: str) -> list[str]:
    return [part for part in path.strip("/").split("/") if part]


def product_path(product_id: str) -> str:
    return ref_path(PRODUCTS_ROOT, product_id)


def inventory_path(product_id: str, variant_id: str) -> str:
    return ref_path(INVENTORY_ROOT, product_id, variant_id)
