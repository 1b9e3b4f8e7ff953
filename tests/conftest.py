import copy
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from halora.db.migrate import run_migrations
from halora.store import InMemoryStore, StoreError


CATALOG = {
    "P1": {
        "name": "Vitamin C Serum",
        "category": "skincare",
        "image": "https://cdn.example.com/p1.jpg",
        "supplier": "Halora Lab",
        "brandId": "halora",
        "variants": [
            {"id": "V1", "name": "30ml", "price": 100, "importPrice": 60, "stockQty": 5},
        ],
    },
    "P2": {
        "name": "Velvet Lipstick",
        "category": "makeup",
        "variants": [
            {"id": "V2", "size": "Red", "price": 200, "stockQty": 3},
            {"id": "V3", "size": "Nude", "price": 210, "stockQty": 0},
        ],
    },
}


class FailingStore(InMemoryStore):
    """In-memory store whose reads or writes can be made to fail per path."""

    def __init__(self, data=None, *, fail_get: set[str] | None = None, fail_set: set[str] | None = None):
        super().__init__(data)
        self.fail_get = fail_get or set()
        self.fail_set = fail_set or set()
        self.writes: list[str] = []

    async def get(self, path: str) -> Any | None:
        if path in self.fail_get:
            raise StoreError(f"GET {path} failed: connection reset")
        return await super().get(path)

    async def set(self, path: str, value: Any) -> None:
        if path in self.fail_set:
            raise StoreError(f"PUT {path} returned 401: Permission denied")
        self.writes.append(path)
        await super().set(path, value)


def make_catalog() -> dict:
    return copy.deepcopy(CATALOG)


@pytest.fixture()
def store():
    return InMemoryStore({"products": make_catalog()})


@pytest.fixture()
def empty_store():
    return InMemoryStore()


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    run_migrations(engine)
    yield engine
    engine.dispose()
