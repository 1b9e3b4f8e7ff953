"""Remote document store handle."""

from __future__ import annotations

import logging
import os

from halora.store.base import DocumentStore, StoreError, Subscription
from halora.store.memory import InMemoryStore
from halora.store.rest import RealtimeDatabaseClient

logger = logging.getLogger(__name__)

__all__ = [
    "DocumentStore",
    "InMemoryStore",
    "RealtimeDatabaseClient",
    "StoreError",
    "Subscription",
    "create_store_from_env",
]


def create_store_from_env() -> DocumentStore:
    """Create the store selected by STORE_BACKEND (``rest`` or ``memory``)."""
    backend = os.environ.get("STORE_BACKEND", "rest")
    if backend == "memory":
        logger.info("Using in-memory document store")
        return InMemoryStore()
    url = os.environ.get("FIREBASE_DATABASE_URL")
    if not url:
        raise KeyError("FIREBASE_DATABASE_URL")
    logger.info("Connecting to realtime database at %s", url)
    return RealtimeDatabaseClient(url, auth_token=os.environ.get("FIREBASE_AUTH_TOKEN"))
