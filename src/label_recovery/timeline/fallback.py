"""Label-name search used when the change log cannot answer."""

from __future__ import annotations

from datetime import datetime

import structlog

from label_recovery.gmail.client import GmailClient
from label_recovery.models import RawMessage
from label_recovery.timeline.details import DetailFetcher

logger = structlog.get_logger()

MAX_PAGE_SIZE = 500


def build_label_query(
    label_name: str,
    after: datetime | None = None,
    before: datetime | None = None,
) -> str:
    """Build a Gmail search query scoped to a label and optional time bounds.

    Bounds are rendered as epoch seconds, which Gmail accepts for
    ``after:`` and ``before:``.
    """
    escaped = label_name.replace('"', '\\"')
    parts = [f'label:"{escaped}"']
    if after is not None:
        parts.append(f"after:{int(after.timestamp())}")
    if before is not None:
        parts.append(f"before:{int(before.timestamp())}")
    return " ".join(parts)


class FallbackLocator:
    """Find messages in a label by search, without provenance.

    Results keep Gmail's native order. Messages found here never carry a
    label-applied time.
    """

    def __init__(
        self,
        transport: GmailClient,
        fetcher: DetailFetcher,
        *,
        page_size: int = MAX_PAGE_SIZE,
    ) -> None:
        self.transport = transport
        self.fetcher = fetcher
        self.page_size = max(1, min(page_size, MAX_PAGE_SIZE))

    async def find_ids(
        self,
        label_name: str,
        after: datetime | None,
        before: datetime | None,
        limit: int,
    ) -> list[str]:
        """Page through the label search until `limit` ids or the last page.

        Raises:
            TransportFailure: If a search page request fails.
        """
        query = build_label_query(label_name, after, before)
        logger.info("fallback_search_started", query=query, limit=limit)

        ids: list[str] = []
        page_token: str | None = None
        while len(ids) < limit:
            response = await self.transport.search_page(
                query,
                page_token=page_token,
                page_size=min(self.page_size, limit - len(ids)),
            )
            for message in response.get("messages") or []:
                message_id = message.get("id")
                if message_id:
                    ids.append(str(message_id))
            page_token = response.get("nextPageToken")
            if not page_token:
                break

        ids = ids[:limit]
        logger.info("fallback_search_completed", query=query, found=len(ids))
        return ids

    async def locate(
        self,
        label_name: str,
        after: datetime | None = None,
        before: datetime | None = None,
        limit: int = 30000,
    ) -> list[RawMessage]:
        """Search the label and fetch metadata for every hit.

        Standalone entry point for callers that want the label contents without
        a timeline scan. `LabelTimelineResolver` calls `find_ids` and the detail
        fetcher separately so each stage can fail with its own scan state.

        Raises:
            TransportFailure: If a search page request fails.
            PartialFetchFailure: If a detail chunk fails.
        """
        ids = await self.find_ids(label_name, after, before, limit)
        return await self.fetcher.fetch_details(ids)
