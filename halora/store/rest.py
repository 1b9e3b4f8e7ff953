"""Firebase Realtime Database client over the REST API."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from typing import Any, Mapping

import httpx

from halora.store.base import ChangeHandler, StoreError, Subscription
from halora.store.paths import split_path
from halora.utils.retry import retry_async

logger = logging.getLogger(__name__)

STREAM_TIMEOUT = httpx.Timeout(30.0, read=None)


class RealtimeDatabaseClient:
    def __init__(
        self,
        base_url: str,
        *,
        auth_token: str | None = None,
        session: httpx.AsyncClient | None = None,
        reconnect_delay: float = 5.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.auth_token = auth_token
        self.reconnect_delay = reconnect_delay
        self._session = session or httpx.AsyncClient(timeout=30.0, follow_redirects=True)
        self._streams: set[asyncio.Task] = set()

    async def close(self) -> None:
        for task in list(self._streams):
            task.cancel()
        await self._session.aclose()

    async def get(self, path: str) -> Any | None:
        try:
            response = await retry_async(self._session.get)(self._url(path), params=self._params())
        except httpx.HTTPError as exc:
            raise StoreError(f"GET {path} failed: {exc}") from exc
        _raise_for_status(response, "GET", path)
        return response.json()

    async def set(self, path: str, value: Any) -> None:
        try:
            response = await self._session.put(self._url(path), params=self._params(), json=value)
        except httpx.HTTPError as exc:
            raise StoreError(f"PUT {path} failed: {exc}") from exc
        _raise_for_status(response, "PUT", path)

    async def update(self, path: str, values: Mapping[str, Any]) -> None:
        try:
            response = await self._session.patch(self._url(path), params=self._params(), json=dict(values))
        except httpx.HTTPError as exc:
            raise StoreError(f"PATCH {path} failed: {exc}") from exc
        _raise_for_status(response, "PATCH", path)

    async def subscribe(self, path: str, on_change: ChangeHandler) -> Subscription:
        task = asyncio.create_task(self._stream(path, on_change))
        self._streams.add(task)
        task.add_done_callback(self._streams.discard)
        return Subscription(path, task.cancel)

    async def _stream(self, path: str, on_change: ChangeHandler) -> None:
        headers = {"Accept": "text/event-stream"}
        while True:
            current: Any = None
            try:
                async with self._session.stream(
                    "GET", self._url(path), params=self._params(), headers=headers, timeout=STREAM_TIMEOUT
                ) as response:
                    if response.status_code >= 400:
                        await response.aread()
                    _raise_for_status(response, "STREAM", path)
                    async for event, payload in iter_events(response.aiter_lines()):
                        if event in ("cancel", "auth_revoked"):
                            logger.error("Stream for %s closed by server (%s)", path, event)
                            return
                        if event not in ("put", "patch") or not isinstance(payload, dict):
                            continue
                        current = apply_stream_event(current, event, payload)
                        try:
                            await on_change(current)
                        except Exception:
                            logger.exception("Change handler for %s failed", path)
            except (httpx.HTTPError, StoreError) as exc:
                logger.warning("Stream for %s dropped: %s", path, exc)
            await asyncio.sleep(self.reconnect_delay)

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{'/'.join(split_path(path))}.json"

    def _params(self) -> dict[str, str]:
        return {"auth": self.auth_token} if self.auth_token else {}


def _raise_for_status(response: httpx.Response, method: str, path: str) -> None:
    if response.status_code < 400:
        return
    try:
        detail = response.json().get("error", response.text)
    except (ValueError, AttributeError):
        detail = response.text
    raise StoreError(f"{method} {path} returned {response.status_code}: {detail}")


async def iter_events(lines: AsyncIterator[str]) -> AsyncIterator[tuple[str, Any]]:
    """Parse a server-sent event stream into ``(event, data)`` pairs."""
    event = "message"
    data: list[str] = []
    async for line in lines:
        if not line:
            if data:
                yield event, _decode(data)
            event, data = "message", []
            continue
        if line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        value = value.lstrip(" ")
        if name == "event":
            event = value
        elif name == "data":
            data.append(value)
    if data:
        yield event, _decode(data)


def _decode(data: list[str]) -> Any:
    raw = "\n".join(data)
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def apply_stream_event(current: Any, event: str, payload: Mapping[str, Any]) -> Any:
    """Apply a ``put``/``patch`` event to the locally mirrored subtree."""
    segments = split_path(payload.get("path") or "/")
    data = payload.get("data")
    if event == "put":
        return _put(current, segments, data)
    if event == "patch" and isinstance(data, Mapping):
        for key, value in data.items():
            current = _put(current, segments + split_path(key), value)
    return current


def _put(current: Any, segments: list[str], value: Any) -> Any:
    if not segments:
        return value
    if isinstance(current, dict):
        node = dict(current)
    elif isinstance(current, list):
        node = {str(i): item for i, item in enumerate(current) if item is not None}
    else:
        node = {}
    head, rest = segments[0], segments[1:]
    child = _put(node.get(head), rest, value)
    if child is None:
        node.pop(head, None)
    else:
        node[head] = child
    return node or None
