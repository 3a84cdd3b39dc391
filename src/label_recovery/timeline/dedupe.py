"""Group fetched messages into one card per conversation."""

from __future__ import annotations

from datetime import datetime
from typing import Mapping, Sequence

from label_recovery.models import EnrichedMessage, RawMessage

DISPLAY_DATE_FORMAT = "%b %d, %I:%M %p"


def format_display_date(value: datetime | None) -> str:
    if value is None:
        return ""
    return value.astimezone().strftime(DISPLAY_DATE_FORMAT)


def to_enriched(
    representative: RawMessage,
    member_ids: list[str],
    label_applied_at: datetime | None = None,
) -> EnrichedMessage:
    """Build the card for a conversation from its representative message."""
    return EnrichedMessage(
        id=representative.id,
        conversation_id=representative.conversation_id,
        member_message_ids=member_ids,
        subject=representative.header("subject") or "(No Subject)",
        sender=representative.header("from") or "(Unknown)",
        display_date=format_display_date(representative.internal_date),
        snippet=representative.snippet,
        arrival_timestamp=representative.internal_date,
        label_applied_at=label_applied_at,
        label_ids=list(representative.label_ids),
    )


def dedupe(
    messages: Sequence[RawMessage],
    applied_at: Mapping[str, datetime] | None = None,
) -> list[EnrichedMessage]:
    """Collapse messages sharing a conversation into a single card.

    The first message seen per conversation is the representative; every
    distinct message id lands in exactly one card's `member_message_ids`, so
    restoring the flattened members moves every physical message.

    Args:
        messages: Fetched messages in display-neutral order.
        applied_at: Label-applied time per message id, when known.

    Returns:
        One card per conversation, in first-seen order.
    """
    provenance = applied_at or {}
    groups: dict[str, tuple[RawMessage, list[str]]] = {}
    seen: set[str] = set()

    for message in messages:
        if message.id in seen:
            continue
        seen.add(message.id)
        group = groups.setdefault(message.conversation_id, (message, []))
        group[1].append(message.id)

    return [
        to_enriched(representative, member_ids, provenance.get(representative.id))
        for representative, member_ids in groups.values()
    ]
