import pytest

from halora.logic.drift import compare_inventory_with_products, diff_catalog_inventory
from halora.logic.reconcile import sync_products_to_inventory
from halora.store import InMemoryStore, StoreError

from conftest import FailingStore, make_catalog


def _record(stock, price=100, import_price=70, name="30ml"):
    return {"variantName": name, "stockQty": stock, "price": price, "importPrice": import_price}


@pytest.mark.asyncio
async def test_detects_stock_drift():
    store = InMemoryStore(
        {
            "products": {"P1": {"name": "Serum", "variants": [{"id": "V1", "name": "30ml", "stockQty": 5, "price": 100}]}},
            "inventory": {"P1": {"V1": _record(3)}},
        }
    )

    report = await compare_inventory_with_products(store)

    assert report.total_differences == 1
    diff = report.differences[0]
    assert (diff.product_id, diff.variant_id, diff.variant_name) == ("P1", "V1", "30ml")
    assert diff.catalog_value == 5
    assert diff.inventory_value == 3
    assert not diff.missing
    assert diff.to_dict()["difference"] == 2


@pytest.mark.asyncio
async def test_missing_inventory_entry_is_a_difference():
    store = InMemoryStore({"products": {"P2": {"variants": [{"id": "V2", "stockQty": 4}]}}})

    report = await compare_inventory_with_products(store)

    assert report.total_differences == 1
    diff = report.differences[0]
    assert diff.missing
    assert diff.inventory_value == 0
    assert diff.catalog_value == 4


@pytest.mark.asyncio
async def test_orphans_are_reported_separately():
    store = InMemoryStore(
        {
            "products": {"P1": {"variants": [{"id": "V1", "stockQty": 5, "price": 100}]}},
            "inventory": {"P1": {"V1": _record(5), "OLD": _record(9, name="Old size")}, "GONE": {"X": _record(1)}},
        }
    )

    report = await compare_inventory_with_products(store)

    assert report.total_differences == 0
    assert [(o.product_id, o.variant_id) for o in report.orphans] == [("P1", "OLD"), ("GONE", "X")]
    assert report.orphans[0].variant_name == "Old size"
    assert report.to_dict()["orphans"][1]["inventoryValue"] == 1


@pytest.mark.asyncio
async def test_differences_follow_catalog_order(store):
    await store.set("inventory/P2/V3", _record(8))
    await store.set("inventory/P2/V2", _record(1))

    report = await compare_inventory_with_products(store)

    assert [(d.product_id, d.variant_id) for d in report.differences] == [("P1", "V1"), ("P2", "V2"), ("P2", "V3")]
    assert report.differences[0].missing
    assert not report.differences[1].missing


@pytest.mark.asyncio
async def test_stock_only_by_default_and_prices_on_request():
    store = InMemoryStore(
        {
            "products": {"P1": {"variants": [{"id": "V1", "stockQty": 5, "price": 120, "importPrice": 80}]}},
            "inventory": {"P1": {"V1": _record(5, price=100, import_price=70)}},
        }
    )

    assert (await compare_inventory_with_products(store)).total_differences == 0

    report = await compare_inventory_with_products(store, ["stockQty", "price", "importPrice"])
    assert [(d.field, d.catalog_value, d.inventory_value) for d in report.differences] == [
        ("price", 120, 100),
        ("importPrice", 80, 70),
    ]


@pytest.mark.asyncio
async def test_unknown_field_is_rejected(store):
    with pytest.raises(ValueError):
        await compare_inventory_with_products(store, ["supplier"])


@pytest.mark.asyncio
async def test_comparison_does_not_write():
    store = FailingStore({"products": make_catalog()})

    await compare_inventory_with_products(store)

    assert store.writes == []
    assert await store.get("inventory") is None


@pytest.mark.asyncio
async def test_read_failure_propagates():
    store = FailingStore({"products": make_catalog()}, fail_get={"inventory"})

    with pytest.raises(StoreError):
        await compare_inventory_with_products(store)


@pytest.mark.asyncio
async def test_no_differences_after_sync(store):
    before = await compare_inventory_with_products(store)
    assert before.total_differences == 3

    await sync_products_to_inventory(store)

    after = await compare_inventory_with_products(store)
    assert after.total_differences == 0
    assert after.orphans == []


def test_non_numeric_inventory_value_counts_as_drift():
    catalog = {"P1": {"variants": [{"id": "V1", "stockQty": 2}]}}
    inventory = {"P1": {"V1": {"stockQty": "two"}}}

    report = diff_catalog_inventory(catalog, inventory)

    assert report.total_differences == 1
    assert report.differences[0].inventory_value == "two"
    assert report.differences[0].to_dict()["difference"] is None


def test_malformed_catalog_variant_is_not_an_orphan():
    catalog = {"P1": {"variants": [{"id": "V1", "stockQty": "lots"}]}}
    inventory = {"P1": {"V1": {"stockQty": 3}}}

    report = diff_catalog_inventory(catalog, inventory)

    assert report.differences == []
    assert report.orphans == []
