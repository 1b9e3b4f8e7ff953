"""Interface shared by the document store backends."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, Mapping, Protocol

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[Any], Awaitable[None]]


class StoreError(RuntimeError):
    """A read or write against the remote store failed."""


class Subscription:
    """Handle returned by ``subscribe``; ``cancel()`` stops delivery."""

    def __init__(self, path: str, on_cancel: Callable[[], None]) -> None:
        self.path = path
        self._on_cancel = on_cancel
        self.active = True

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        self._on_cancel()
        logger.debug("Subscription to %s cancelled", self.path)

    __call__ = cancel


class DocumentStore(Protocol):
    async def get(self, path: str) -> Any | None: ...

    async def set(self, path: str, value: Any) -> None: ...

    async def update(self, path: str, values: Mapping[str, Any]) -> None: ...

    async def subscribe(self, path: str, on_change: ChangeHandler) -> Subscription: ...

    async def close(self) -> None: ...
