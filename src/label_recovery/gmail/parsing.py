"""Helpers for parsing Gmail message metadata into internal models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from label_recovery.models import RawMessage


def _header_map(message: dict[str, Any]) -> dict[str, str]:
    payload = message.get("payload") or {}
    headers = payload.get("headers") or []
    result: dict[str, str] = {}
    for h in headers:
        name = h.get("name")
        value = h.get("value")
        if isinstance(name, str) and isinstance(value, str):
            # Gmail can include duplicates; keep the first.
            result.setdefault(name.lower(), value)
    return result


def parse_position(value: Any) -> int | None:
    """Parse a Gmail history id into an exact integer.

    History ids arrive as decimal strings that exceed 2**53, so they are never
    routed through ``float``.

    Args:
        value: Raw history id (string or int).

    Returns:
        The position, or None when the value is missing or malformed.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    text = str(value).strip()
    if not text.isdigit():
        return None
    return int(text)


def _parse_internal_date(value: Any) -> datetime | None:
    try:
        millis = int(value)
    except (TypeError, ValueError):
        return None
    return datetime.fromtimestamp(millis / 1000.0, tz=timezone.utc)


def message_to_raw_message(message: dict[str, Any]) -> RawMessage:
    """Convert a Gmail API message (format=metadata) to RawMessage.

    Args:
        message: Gmail API message dict.

    Returns:
        RawMessage: Parsed metadata model.
    """

    label_ids = message.get("labelIds") or []
    if not isinstance(label_ids, list):
        label_ids = []

    try:
        size_estimate = int(message.get("sizeEstimate") or 0)
    except (TypeError, ValueError):
        size_estimate = 0

    message_id = str(message.get("id") or "")
    return RawMessage(
        id=message_id,
        # Gmail always sets threadId; fall back to the id so grouping stays total.
        conversation_id=str(message.get("threadId") or "") or message_id,
        headers=_header_map(message),
        snippet=str(message.get("snippet") or ""),
        size_estimate=size_estimate,
        label_ids=[str(x) for x in label_ids if isinstance(x, str)],
        internal_date=_parse_internal_date(message.get("internalDate")),
        log_position=parse_position(message.get("historyId")),
    )
