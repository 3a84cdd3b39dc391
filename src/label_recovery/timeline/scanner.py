"""Change-log scanner.

Pages through ``users.history.list`` from a start anchor, keeping the first
"label added" record per message for the target label. History ids increase
monotonically within the stream, so the first record past the end anchor
ends the scan.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import structlog

from label_recovery.gmail.client import GmailClient
from label_recovery.gmail.parsing import parse_position
from label_recovery.models import ChangeEvent, LogAnchor

logger = structlog.get_logger()

LABEL_ADDED = "labelAdded"


@dataclass(frozen=True)
class ChangeLogScan:
    events: list[ChangeEvent] = field(default_factory=list)
    reached_end: bool = True
    pages: int = 0


def _events_from_record(record: dict[str, Any], position: int) -> list[ChangeEvent]:
    events: list[ChangeEvent] = []
    for added in record.get("labelsAdded") or []:
        message = added.get("message") or {}
        message_id = message.get("id")
        if not message_id:
            continue
        events.append(
            ChangeEvent(
                position=position,
                target_message_id=str(message_id),
                affected_label_ids=frozenset(str(x) for x in added.get("labelIds") or []),
            )
        )
    return events


class ChangeLogScanner:
    """Extract label-added events for one label between two anchors."""

    def __init__(self, transport: GmailClient, *, max_pages: int | None = None) -> None:
        self.transport = transport
        self.max_pages = max_pages

    async def scan(self, start: LogAnchor, end: LogAnchor | None, label_id: str) -> ChangeLogScan:
        """Scan the change log for `label_id` additions.

        Args:
            start: Anchor the scan starts from.
            end: Anchor past which records are discarded; None scans to the head.
            label_id: Label whose additions are collected.

        Returns:
            The qualifying events in log order. `reached_end` is False only
            when the page cap cut the scan short.

        Raises:
            LogExpiredError: If the start position is outside retention.
            TransportFailure: For any other failed page request.
        """
        end_position = end.position if end is not None else None
        found: dict[str, ChangeEvent] = {}
        page_token: str | None = None
        pages = 0

        while True:
            if self.max_pages is not None and pages >= self.max_pages:
                logger.warning("history_scan_page_cap", pages=pages, events=len(found))
                return ChangeLogScan(events=list(found.values()), reached_end=False, pages=pages)

            response = await self.transport.list_history_page(
                start.position,
                history_types=[LABEL_ADDED],
                page_token=page_token,
            )
            pages += 1
            records = response.get("history") or []
            past_end = False

            for record in records:
                position = parse_position(record.get("id"))
                if position is None or position < start.position:
                    continue
                if end_position is not None and position > end_position:
                    past_end = True
                    break
                for event in _events_from_record(record, position):
                    if label_id in event.affected_label_ids:
                        # Re-adds after a manual removal keep the first record.
                        found.setdefault(event.target_message_id, event)

            page_token = response.get("nextPageToken")
            logger.debug(
                "history_scan_page",
                page=pages,
                records=len(records),
                events=len(found),
                past_end=past_end,
            )
            if past_end or not page_token:
                break

        logger.info("history_scan_completed", pages=pages, events=len(found), label_id=label_id)
        return ChangeLogScan(events=list(found.values()), reached_end=True, pages=pages)
