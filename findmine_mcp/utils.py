from __future__ import annotations

import time
from datetime import datetime
from typing import Any

PRODUCT_URI_SCHEME = "product://"
LOOK_URI_SCHEME = "look://"


def now_ms() -> int:
    return int(time.perf_counter() * 1000)


def elapsed_ms(start_ms: int) -> int:
    return max(0, now_ms() - start_ms)


def clip_text(value: Any, max_chars: int) -> str:
    if value is None:
        return ""
    text = str(value).strip()
    if len(text) <= max_chars:
        return text
    return text[: max(0, max_chars - 3)].rstrip() + "..."


def to_iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def format_price(minor_units: int | None, currency: str = "$") -> str | None:
    """Render a price given in minor units, e.g. ``7999`` -> ``"$79.99"``."""
    if minor_units is None:
        return None
    sign = "-" if minor_units < 0 else ""
    major, minor = divmod(abs(minor_units), 100)
    return f"{sign}{currency}{major}.{minor:02d}"


def product_uri(product_id: str) -> str:
    return f"{PRODUCT_URI_SCHEME}{product_id}"


def look_uri(look_id: str) -> str:
    return f"{LOOK_URI_SCHEME}{look_id}"


def ok_response(
    intent: str,
    data: dict[str, Any],
    timing_ms: dict[str, int] | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "status": "ok",
        "intent": intent,
        "data": data,
    }
    if timing_ms:
        payload["timing_ms"] = timing_ms
    return payload


def error_response(
    intent: str,
    error_code: str,
    message: str,
    timing_ms: dict[str, int] | None = None,
    data: dict[str, Any] | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "status": "error",
        "intent": intent,
        "error_code": error_code,
        "message": clip_text(message, 220),
    }
    if timing_ms:
        payload["timing_ms"] = timing_ms
    if data:
        payload["data"] = data
    return payload
