"""Read-only comparison of catalog and inventory values."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from halora.logic.catalog import fetch_raw_catalog
from halora.logic.inventory import iter_inventory_records
from halora.store import DocumentStore
from halora.store.models import UNKNOWN_PRODUCT, iter_variant_entries, normalize_variant, to_number, variant_key
from halora.store.paths import INVENTORY_ROOT

logger = logging.getLogger(__name__)

COMPARABLE_FIELDS = {
    "stockQty": "stock_qty",
    "price": "price",
    "importPrice": "import_price",
}
DEFAULT_FIELDS = ("stockQty",)


@dataclass(slots=True)
class Difference:
    product_id: str
    product_name: str
    variant_id: str
    variant_name: str
    field: str
    catalog_value: Any
    inventory_value: Any
    missing: bool = False

    def to_dict(self) -> dict[str, Any]:
        delta = None
        if isinstance(self.catalog_value, (int, float)) and isinstance(self.inventory_value, (int, float)):
            delta = self.catalog_value - self.inventory_value
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "variantId": self.variant_id,
            "variantName": self.variant_name,
            "field": self.field,
            "catalogValue": self.catalog_value,
            "inventoryValue": self.inventory_value,
            "difference": delta,
            "missing": self.missing,
        }


@dataclass(slots=True)
class Orphan:
    product_id: str
    variant_id: str
    variant_name: str
    inventory_value: Any

    def to_dict(self) -> dict[str, Any]:
        return {
            "productId": self.product_id,
            "variantId": self.variant_id,
            "variantName": self.variant_name,
            "inventoryValue": self.inventory_value,
        }


@dataclass(slots=True)
class DriftReport:
    differences: list[Difference] = field(default_factory=list)
    orphans: list[Orphan] = field(default_factory=list)

    @property
    def total_differences(self) -> int:
        return len(self.differences)

    def to_dict(self) -> dict[str, Any]:
        return {
            "differences": [diff.to_dict() for diff in self.differences],
            "totalDifferences": self.total_differences,
            "orphans": [orphan.to_dict() for orphan in self.orphans],
        }


def _inventory_value(record: Mapping[str, Any], name: str) -> Any:
    raw = record.get(name)
    try:
        return to_number(raw)
    except ValueError:
        return raw


def _validate_fields(fields: Sequence[str]) -> tuple[str, ...]:
    unknown = [name for name in fields if name not in COMPARABLE_FIELDS]
    if unknown:
        raise ValueError(f"Cannot compare fields: {', '.join(unknown)}")
    return tuple(fields) or DEFAULT_FIELDS


def diff_catalog_inventory(
    raw_catalog: Mapping[str, Mapping[str, Any]],
    raw_inventory: Any,
    fields: Sequence[str] = DEFAULT_FIELDS,
) -> DriftReport:
    fields = _validate_fields(fields)
    inventory: dict[tuple[str, str], Mapping[str, Any]] = {
        (pid, vid): record for pid, vid, record in iter_inventory_records(raw_inventory)
    }
    report = DriftReport()
    seen: set[tuple[str, str]] = set()

    for product_id, raw_product in raw_catalog.items():
        product_name = str(raw_product.get("name") or UNKNOWN_PRODUCT)
        for index, key, raw_variant in iter_variant_entries(raw_product.get("variants")):
            seen.add((product_id, variant_key(product_id, index, raw_variant, key)))
            try:
                variant = normalize_variant(product_id, index, raw_variant, key=key)
            except ValueError as exc:
                logger.warning("Cannot compare malformed variant of %s: %s", product_id, exc)
                continue
            record = inventory.get((product_id, variant.id))
            for name in fields:
                catalog_value = getattr(variant, COMPARABLE_FIELDS[name])
                if record is None:
                    inventory_value, missing = 0, True
                else:
                    inventory_value, missing = _inventory_value(record, name), False
                    if inventory_value == catalog_value:
                        continue
                report.differences.append(
                    Difference(
                        product_id=product_id,
                        product_name=product_name,
                        variant_id=variant.id,
                        variant_name=variant.name,
                        field=name,
                        catalog_value=catalog_value,
                        inventory_value=inventory_value,
                        missing=missing,
                    )
                )

    for (product_id, variant_id), record in inventory.items():
        if (product_id, variant_id) in seen:
            continue
        report.orphans.append(
            Orphan(
                product_id=product_id,
                variant_id=variant_id,
                variant_name=str(record.get("variantName") or variant_id),
                inventory_value=_inventory_value(record, "stockQty"),
            )
        )
    return report


async def compare_inventory_with_products(
    store: DocumentStore, fields: Sequence[str] = DEFAULT_FIELDS
) -> DriftReport:
    """Report catalog/inventory discrepancies without writing anything.

    Catalog variants missing from inventory are differences with an
    inventory value of 0; inventory records with no catalog variant are
    listed separately as orphans. Store failures propagate.
    """
    _validate_fields(fields)
    raw_catalog, raw_inventory = await asyncio.gather(
        fetch_raw_catalog(store), store.get(INVENTORY_ROOT)
    )
    report = diff_catalog_inventory(raw_catalog, raw_inventory, fields)
    logger.info(
        "Drift check: %s differences, %s orphans", report.total_differences, len(report.orphans)
    )
    return report
