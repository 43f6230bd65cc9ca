"""Pure parsing and conversion utilities for exchange payloads."""

from __future__ import annotations

import json
from decimal import Decimal, InvalidOperation
from typing import Any, Optional


def parse_json_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
            return decoded if isinstance(decoded, list) else []
        except json.JSONDecodeError:
            return []
    return []


def to_decimal(value: Any) -> Optional[Decimal]:
    """Parse an exchange price/size into a Decimal, ``None`` when unparseable.

    Floats go through ``str`` so 0.45 stays 0.45 rather than its binary
    expansion.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y"}
    return False


def first_event_slug(raw: dict[str, Any]) -> str:
    events = raw.get("events", [])
    if isinstance(events, str):
        events = parse_json_list(events)
    if isinstance(events, list) and events:
        slug = events[0].get("slug")
        if isinstance(slug, str):
            return slug
    return str(raw.get("slug", ""))
