"""Catalog and inventory records, with normalization of raw store data.

Records in the realtime store are loosely shaped: fields written by older
versions of the admin UI may be missing, ``null`` or stored with a different
name. Everything read from the store goes through the ``normalize_*``
helpers below so the rest of the code works with explicit, defaulted fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Literal, Mapping

from halora.utils.dates import millis_to_iso, utc_now_iso

UNKNOWN_PRODUCT = "Unknown Product"
UNKNOWN_VARIANT = "Unknown"
DEFAULT_CATEGORY = "uncategorized"
DEFAULT_SUPPLIER = "Imported from products"
IMPORT_PRICE_RATIO = 0.7


@dataclass(slots=True)
class ProductMedia:
    id: str
    url: str
    type: Literal["image", "video"]
    order: int

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "url": self.url, "type": self.type, "order": self.order}


@dataclass(slots=True)
class Variant:
    id: str
    name: str
    price: float
    import_price: float
    stock_qty: float
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": self.price,
            "importPrice": self.import_price,
            "stockQty": self.stock_qty,
            "createdAt": self.created_at,
        }


@dataclass(slots=True)
class Product:
    id: str
    name: str
    category: str
    description: str
    supplier: str
    media: list[ProductMedia] = field(default_factory=list)
    variants: list[Variant] = field(default_factory=list)
    brand_id: str | None = None
    image: str = ""
    created_at: str | None = None
    updated_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "description": self.description,
            "image": self.image,
            "media": [media.to_dict() for media in self.media],
            "variants": [variant.to_dict() for variant in self.variants],
            "supplier": self.supplier,
            "brandId": self.brand_id,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


@dataclass(slots=True)
class InventoryItem:
    product_id: str
    variant_id: str
    variant_name: str
    stock_qty: float
    import_price: float
    price: float
    supplier: str
    updated_at: str
    brand_id: str | None = None
    product_name: str | None = None
    product_image: str | None = None
    product_category: str | None = None

    def to_record(self) -> dict[str, Any]:
        """Shape persisted at ``inventory/{productId}/{variantId}``."""
        record: dict[str, Any] = {
            "productId": self.product_id,
            "variantId": self.variant_id,
            "variantName": self.variant_name,
            "stockQty": self.stock_qty,
            "importPrice": self.import_price,
            "price": self.price,
            "supplier": self.supplier,
            "updatedAt": self.updated_at,
        }
        if self.brand_id:
            record["brandId"] = self.brand_id
        return record

    def to_dict(self) -> dict[str, Any]:
        data = self.to_record()
        data["brandId"] = self.brand_id
        data["productName"] = self.product_name
        data["productImage"] = self.product_image
        data["productCategory"] = self.product_category
        return data


def to_number(value: Any, default: float = 0) -> float:
    """Coerce a stored numeric field; ``None``/empty take ``default``.

    Raises ``ValueError`` for values that are present but not numeric.
    """
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValueError(f"Expected a number, got {value!r}")
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            raise ValueError(f"Expected a number, got {value!r}") from None
    else:
        raise ValueError(f"Expected a number, got {value!r}")
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


def _timestamp(value: Any) -> str | None:
    if value in (None, ""):
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return millis_to_iso(value)
    return str(value)


def _text(value: Any, default: str = "") -> str:
    if value in (None, ""):
        return default
    return str(value)


def iter_variant_entries(raw_variants: Any) -> Iterator[tuple[int, str | None, Mapping[str, Any]]]:
    """Yield ``(index, key, raw_variant)`` for arrays and index/id keyed objects.

    The realtime store returns sparse arrays as objects keyed by index, so
    both shapes are accepted; ``null`` holes are skipped.
    """
    if isinstance(raw_variants, list):
        for index, raw in enumerate(raw_variants):
            if isinstance(raw, Mapping):
                yield index, None, raw
    elif isinstance(raw_variants, Mapping):
        for position, (key, raw) in enumerate(raw_variants.items()):
            if not isinstance(raw, Mapping):
                continue
            if str(key).isdigit():
                yield int(key), None, raw
            else:
                yield position, str(key), raw


def variant_key(product_id: str, index: int, raw: Mapping[str, Any], key: str | None = None) -> str:
    return _text(raw.get("id")) or key or f"variant_{product_id}_{index}"


def normalize_variant(
    product_id: str, index: int, raw: Mapping[str, Any], *, key: str | None = None
) -> Variant:
    variant_id = variant_key(product_id, index, raw, key)
    price = to_number(raw.get("price"))
    import_price = raw.get("importPrice")
    if import_price in (None, ""):
        import_price = round(price * IMPORT_PRICE_RATIO) if price else 0
    return Variant(
        id=variant_id,
        name=_text(raw.get("name")) or _text(raw.get("size")) or f"Variant {index + 1}",
        price=price,
        import_price=to_number(import_price),
        stock_qty=to_number(raw.get("stockQty")),
        created_at=_timestamp(raw.get("createdAt")),
    )


def normalize_media(product_id: str, raw: Mapping[str, Any]) -> list[ProductMedia]:
    media: list[ProductMedia] = []
    raw_media = raw.get("media")
    if isinstance(raw_media, list):
        for index, item in enumerate(raw_media):
            if not isinstance(item, Mapping) or not item.get("url"):
                continue
            media.append(
                ProductMedia(
                    id=_text(item.get("id")) or f"media_{product_id}_{index}",
                    url=str(item["url"]),
                    type="video" if item.get("type") == "video" else "image",
                    order=int(to_number(item.get("order"), default=index)),
                )
            )
    elif raw.get("image"):
        media.append(ProductMedia(id=f"media_{product_id}_0", url=str(raw["image"]), type="image", order=0))
    media.sort(key=lambda item: item.order)
    return media


def normalize_product(product_id: str, raw: Mapping[str, Any], *, strict: bool = False) -> Product:
    """Build a ``Product`` from a raw ``products/{productId}`` record.

    With ``strict=False`` variants whose numeric fields are malformed are
    dropped; callers that must report them iterate the raw variants
    themselves (see ``halora.logic.reconcile``).
    """
    variants: list[Variant] = []
    for index, key, raw_variant in iter_variant_entries(raw.get("variants")):
        try:
            variants.append(normalize_variant(product_id, index, raw_variant, key=key))
        except ValueError:
            if strict:
                raise
    media = normalize_media(product_id, raw)
    image = _text(raw.get("image")) or (media[0].url if media else "")
    return Product(
        id=product_id,
        name=_text(raw.get("name"), UNKNOWN_PRODUCT),
        category=_text(raw.get("category"), DEFAULT_CATEGORY),
        description=_text(raw.get("description")),
        supplier=_text(raw.get("supplier"), DEFAULT_SUPPLIER),
        media=media,
        variants=variants,
        brand_id=_text(raw.get("brandId")) or None,
        image=image,
        created_at=_timestamp(raw.get("createdAt")),
        updated_at=_timestamp(raw.get("updatedAt")),
    )


def normalize_inventory_item(
    product_id: str,
    variant_id: str,
    raw: Mapping[str, Any],
    product: Product | None = None,
) -> InventoryItem:
    """Build an ``InventoryItem`` and denormalize display fields from ``product``."""
    item = InventoryItem(
        product_id=product_id,
        variant_id=variant_id,
        variant_name=_text(raw.get("variantName"), UNKNOWN_VARIANT),
        stock_qty=to_number(raw.get("stockQty")),
        import_price=to_number(raw.get("importPrice")),
        price=to_number(raw.get("price")),
        supplier=_text(raw.get("supplier")),
        updated_at=_text(raw.get("updatedAt")) or utc_now_iso(),
        brand_id=_text(raw.get("brandId")) or None,
    )
    if product is None:
        item.product_name = UNKNOWN_PRODUCT
        item.product_image = ""
        item.product_category = ""
    else:
        item.product_name = product.name
        item.product_image = product.image
        item.product_category = product.category
    return item
