"""Chunked, concurrency-bounded retrieval of message metadata."""

from __future__ import annotations

import asyncio
from typing import Sequence

import structlog

from label_recovery.exceptions import PartialFetchFailure
from label_recovery.gmail.client import GmailClient
from label_recovery.gmail.parsing import message_to_raw_message
from label_recovery.models import RawMessage
from label_recovery.utils import chunked

logger = structlog.get_logger()

DEFAULT_CHUNK_SIZE = 20
DEFAULT_METADATA_HEADERS: tuple[str, ...] = ("Subject", "From", "Date")


class DetailFetcher:
    """Fetch message metadata chunk by chunk.

    Requests inside a chunk run concurrently; chunks run one after another,
    which caps in-flight requests at the chunk size.
    """

    def __init__(
        self,
        transport: GmailClient,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        metadata_headers: Sequence[str] = DEFAULT_METADATA_HEADERS,
    ) -> None:
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.transport = transport
        self.chunk_size = chunk_size
        self.metadata_headers = list(metadata_headers)

    async def fetch_details(self, message_ids: Sequence[str]) -> list[RawMessage]:
        """Fetch metadata for every id, preserving input order.

        Raises:
            PartialFetchFailure: If any request in a chunk fails. Chunks after
                the failing one are not requested.
        """
        results: list[RawMessage] = []
        for index, chunk in enumerate(chunked(message_ids, self.chunk_size)):
            results.extend(await self._fetch_chunk(index, chunk))
            logger.debug("detail_chunk_fetched", chunk=index, size=len(chunk), total=len(results))

        logger.info("detail_fetch_completed", requested=len(message_ids), fetched=len(results))
        return results

    async def _fetch_chunk(self, index: int, chunk: list[str]) -> list[RawMessage]:
        tasks = [asyncio.create_task(self._fetch_one(message_id)) for message_id in chunk]
        try:
            return list(await asyncio.gather(*tasks))
        except Exception as exc:  # noqa: BLE001
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.error("detail_chunk_failed", chunk=index, size=len(chunk), error=str(exc))
            raise PartialFetchFailure(index, chunk, exc) from exc

    async def _fetch_one(self, message_id: str) -> RawMessage:
        message = await self.transport.get_message(
            message_id,
            format="metadata",
            metadata_headers=self.metadata_headers,
        )
        return message_to_raw_message(message)
