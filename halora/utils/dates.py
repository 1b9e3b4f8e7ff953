"""Datetime helpers."""

from __future__ import annotations

import os

import pendulum

DEFAULT_TZ = "Asia/Ho_Chi_Minh"
ISO_FORMAT = "YYYY-MM-DDTHH:mm:ss.SSS[Z]"


def timezone_name() -> str:
    return os.environ.get("TIMEZONE", DEFAULT_TZ)


def utc_now() -> pendulum.DateTime:
    return pendulum.now("UTC")


def utc_now_iso() -> str:
    """Current UTC time as ``2024-05-01T08:30:00.000Z``."""
    return utc_now().format(ISO_FORMAT)


def millis_to_iso(value: int | float) -> str:
    """Convert epoch milliseconds (as written by the web client) to ISO-8601."""
    return pendulum.from_timestamp(value / 1000, tz="UTC").format(ISO_FORMAT)
