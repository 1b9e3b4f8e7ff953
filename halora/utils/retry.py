"""Retry helpers for calls to the remote store."""

from __future__ import annotations

import asyncio
import functools
import random
from collections.abc import Awaitable, Callable

import httpx

RETRY_EXCEPTIONS = (OSError, asyncio.TimeoutError, httpx.TransportError)
MAX_ATTEMPTS = 3


def retry_async(func: Callable[..., Awaitable]):
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        delay = 1.0
        for attempt in range(MAX_ATTEMPTS):
            try:
                return await func(*args, **kwargs)
            except RETRY_EXCEPTIONS:
                if attempt == MAX_ATTEMPTS - 1:
                    raise
                await asyncio.sleep(delay + random.random())
                delay *= 2
    return wrapper
