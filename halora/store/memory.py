"""In-process document store with realtime database semantics."""

from __future__ import annotations

import copy
import logging
from typing import Any, Mapping

from halora.store.base import ChangeHandler, StoreError, Subscription
from halora.store.paths import split_path

logger = logging.getLogger(__name__)


def _clean(value: Any) -> Any:
    """Drop ``None`` members and empty containers, as the realtime database does."""
    if isinstance(value, Mapping):
        cleaned = {str(k): _clean(v) for k, v in value.items()}
        cleaned = {k: v for k, v in cleaned.items() if v is not None}
        return cleaned or None
    if isinstance(value, (list, tuple)):
        items = [_clean(v) for v in value]
        return items if any(v is not None for v in items) else None
    return value


def _child(node: Any, key: str) -> Any:
    if isinstance(node, dict):
        return node.get(key)
    if isinstance(node, list) and key.isdigit():
        index = int(key)
        return node[index] if index < len(node) else None
    return None


def _is_empty(node: Any) -> bool:
    if isinstance(node, dict):
        return not node
    if isinstance(node, list):
        return all(item is None for item in node)
    return node is None


class InMemoryStore:
    """Nested-dict store used for local development and tests.

    Subscribers are notified synchronously (awaited in order) after every
    write whose path overlaps theirs, with the full current value of the
    subscribed path.
    """

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._root: dict[str, Any] = _clean(dict(data or {})) or {}
        self._subscribers: list[tuple[list[str], ChangeHandler]] = []

    async def get(self, path: str) -> Any | None:
        node: Any = self._root
        for key in split_path(path):
            node = _child(node, key)
            if node is None:
                return None
        return copy.deepcopy(node)

    async def set(self, path: str, value: Any) -> None:
        segments = split_path(path)
        self._write(segments, value)
        await self._notify([segments])

    async def update(self, path: str, values: Mapping[str, Any]) -> None:
        base = split_path(path)
        written = []
        for key, value in values.items():
            segments = base + split_path(key)
            self._write(segments, value)
            written.append(segments)
        await self._notify(written)

    async def subscribe(self, path: str, on_change: ChangeHandler) -> Subscription:
        segments = split_path(path)
        entry = (segments, on_change)
        self._subscribers.append(entry)

        def _remove() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        subscription = Subscription(path, _remove)
        await on_change(await self.get(path))
        return subscription

    async def close(self) -> None:
        self._subscribers.clear()

    def _write(self, segments: list[str], value: Any) -> None:
        if not segments:
            raise StoreError("Refusing to overwrite the store root")
        value = copy.deepcopy(_clean(value))
        node: Any = self._root
        for key in segments[:-1]:
            child = _child(node, key)
            if child is None or not isinstance(child, (dict, list)):
                if value is None:
                    return
                child = {}
                self._assign(node, key, child)
                node = _child(node, key)
            else:
                node = child
        last = segments[-1]
        if value is None:
            self._delete(node, last)
            self._prune(segments)
        else:
            self._assign(node, last, value)

    def _assign(self, node: Any, key: str, value: Any) -> None:
        if isinstance(node, dict):
            node[key] = value
            return
        if isinstance(node, list) and key.isdigit():
            index = int(key)
            if index < len(node):
                node[index] = value
                return
            node.extend([None] * (index - len(node)))
            node.append(value)
            return
        raise StoreError(f"Cannot write key {key!r} under a scalar value")

    def _delete(self, node: Any, key: str) -> None:
        if isinstance(node, dict):
            node.pop(key, None)
        elif isinstance(node, list) and key.isdigit() and int(key) < len(node):
            node[int(key)] = None

    def _prune(self, segments: list[str]) -> None:
        for depth in range(len(segments) - 1, 0, -1):
            parent: Any = self._root
            for key in segments[: depth - 1]:
                parent = _child(parent, key)
                if parent is None:
                    return
            key = segments[depth - 1]
            if _is_empty(_child(parent, key)):
                self._delete(parent, key)
            else:
                return

    async def _notify(self, written: list[list[str]]) -> None:
        for segments, handler in list(self._subscribers):
            if (segments, handler) not in self._subscribers:
                continue
            if any(_overlaps(segments, target) for target in written):
                path = "/".join(segments)
                try:
                    await handler(await self.get(path))
                except Exception:
                    logger.exception("Change handler for %s failed", path)


def _overlaps(a: list[str], b: list[str]) -> bool:
    size = min(len(a), len(b))
    return a[:size] == b[:size]
