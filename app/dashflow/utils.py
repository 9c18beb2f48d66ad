from __future__ import annotations

from typing import Any

from flask import request


def request_payload() -> dict[str, Any]:
    """JSON body when sent as JSON, otherwise the submitted form fields. The CSRF token is never part of it."""
    if request.is_json:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if k != "csrf_token"}
    return {k: v for k, v in request.form.items() if k != "csrf_token"}


def payload_text(payload: dict[str, Any], key: str, *, strip: bool = True) -> str:
    """``payload[key]`` as a string: ``""`` when missing or null, JSON numbers/booleans stringified."""
    value = payload.get(key)
    if value is None:
        return ""
    text = value if isinstance(value, str) else str(value)
    return text.strip() if strip else text


def parse_limit(raw: str | None, default: int, maximum: int) -> int:
    """Parse a positive ``limit`` query arg. Raises ValueError when malformed."""
    raw = (raw or "").strip()
    if not raw:
        return default
    value = int(raw)
    if value < 1:
        raise ValueError("limit must be at least 1.")
    return min(value, maximum)
