"""Shared test helpers: Gmail payload builders and an in-memory transport."""

from __future__ import annotations

import asyncio
from typing import Any

from label_recovery.exceptions import TransportFailure


def make_message(
    message_id: str,
    *,
    thread_id: str | None = None,
    history_id: int | str = 1,
    label_ids: list[str] | None = None,
    subject: str = "Subject",
    sender: str = "sender@example.com",
    internal_ms: int = 1_700_000_000_000,
) -> dict[str, Any]:
    """Build a Gmail API message dict (format=metadata)."""
    return {
        "id": message_id,
        "threadId": thread_id or f"t-{message_id}",
        "historyId": str(history_id),
        "labelIds": label_ids if label_ids is not None else ["Label_1"],
        "snippet": f"snippet {message_id}",
        "sizeEstimate": 1024,
        "internalDate": str(internal_ms),
        "payload": {
            "headers": [
                {"name": "Subject", "value": subject},
                {"name": "From", "value": sender},
                {"name": "Date", "value": "Mon, 13 Oct 2025 10:00:00 +0000"},
            ]
        },
    }


def history_record(position: int, *added: tuple[str, list[str]]) -> dict[str, Any]:
    """Build a Gmail history record with labelsAdded entries."""
    return {
        "id": str(position),
        "labelsAdded": [
            {"message": {"id": message_id, "threadId": f"t-{message_id}"}, "labelIds": labels}
            for message_id, labels in added
        ],
    }


class FakeGmailClient:
    """In-memory stand-in for GmailClient's async operations."""

    def __init__(self) -> None:
        self.messages: dict[str, dict[str, Any]] = {}
        self.anchor_ids: dict[str, str | None] = {"before": None}
        # Hits (newest first) for bounded `after:... before:...` anchor searches.
        self.after_matches: list[str] = []
        self.after_empty_searches = 0
        self.profile_history_id: str | None = "1000"
        self.history_pages: list[list[dict[str, Any]]] = []
        self.history_error: Exception | None = None
        self.search_pages: list[list[str]] = []
        self.search_error: Exception | None = None
        self.failing_ids: set[str] = set()
        self.calls: list[tuple[Any, ...]] = []
        self.batch_calls: list[dict[str, Any]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def add(self, message: dict[str, Any]) -> None:
        self.messages[message["id"]] = message

    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)

    async def search_single(self, query: str) -> str | None:
        self.calls.append(("search_single", query))
        return self.anchor_ids.get(query.split(":", 1)[0])

    async def get_message(
        self,
        message_id: str,
        *,
        format: str = "metadata",
        metadata_headers: list[str] | None = None,
    ) -> dict[str, Any]:
        self.calls.append(("get_message", message_id, format))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if message_id in self.failing_ids or message_id not in self.messages:
                raise TransportFailure(f"cannot fetch {message_id}")
            return self.messages[message_id]
        finally:
            self.in_flight -= 1

    async def get_profile(self) -> dict[str, Any]:
        self.calls.append(("get_profile",))
        if self.profile_history_id is None:
            return {"emailAddress": "me@example.com"}
        return {"emailAddress": "me@example.com", "historyId": self.profile_history_id}

    async def list_history_page(
        self,
        start_position: int,
        *,
        history_types: list[str],
        page_token: str | None = None,
    ) -> dict[str, Any]:
        self.calls.append(("list_history_page", start_position, tuple(history_types), page_token))
        if self.history_error is not None:
            raise self.history_error
        index = int(page_token or 0)
        response: dict[str, Any] = {"historyId": self.profile_history_id}
        if index < len(self.history_pages):
            response["history"] = self.history_pages[index]
        if index + 1 < len(self.history_pages):
            response["nextPageToken"] = str(index + 1)
        return response

    async def search_page(
        self,
        query: str,
        *,
        page_token: str | None = None,
        page_size: int = 500,
    ) -> dict[str, Any]:
        if query.startswith("after:"):
            self.calls.append(("anchor_search", query, page_size))
            if self.after_empty_searches > 0:
                self.after_empty_searches -= 1
                return {"resultSizeEstimate": 0}
            return {"messages": [{"id": mid} for mid in self.after_matches]}
        self.calls.append(("search_page", query, page_token, page_size))
        if self.search_error is not None:
            raise self.search_error
        index = int(page_token or 0)
        response: dict[str, Any] = {"resultSizeEstimate": 0}
        if index < len(self.search_pages):
            response["messages"] = [{"id": mid} for mid in self.search_pages[index][:page_size]]
        if index + 1 < len(self.search_pages):
            response["nextPageToken"] = str(index + 1)
        return response

    async def batch_modify(
        self,
        message_ids: list[str],
        *,
        add_label_ids: list[str] | None = None,
        remove_label_ids: list[str] | None = None,
    ) -> None:
        self.calls.append(("batch_modify", len(message_ids)))
        self.batch_calls.append(
            {"ids": list(message_ids), "add": add_label_ids, "remove": remove_label_ids}
        )


