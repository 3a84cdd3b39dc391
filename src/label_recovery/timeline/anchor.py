"""Map wall-clock instants to approximate change-log positions."""

from __future__ import annotations

from datetime import datetime, timedelta

import structlog

from label_recovery.exceptions import AnchorUnavailableError, TransportFailure
from label_recovery.gmail.client import GmailClient
from label_recovery.gmail.parsing import parse_position
from label_recovery.models import AnchorDirection, LogAnchor

logger = structlog.get_logger()

# Gmail lists newest first, so the nearest message after an instant is the
# last hit of a search bounded on both sides. The bound widens until a hit.
AFTER_SEARCH_WIDTHS: tuple[timedelta, ...] = (
    timedelta(hours=1),
    timedelta(days=1),
    timedelta(days=7),
)
AFTER_SEARCH_PAGE_SIZE = 500


class AnchorResolver:
    """Resolve a timestamp to a `LogAnchor`.

    The anchor is the history id of the message nearest to the timestamp on
    the requested side. When the mailbox was idle on that side, the
    account's current history id stands in.
    """

    def __init__(self, transport: GmailClient) -> None:
        self.transport = transport

    async def resolve(self, timestamp: datetime, direction: AnchorDirection) -> LogAnchor | None:
        """Resolve `timestamp` to an anchor.

        Args:
            timestamp: Timezone-aware instant to anchor.
            direction: Search for a message before or after the instant.

        Returns:
            The anchor, or None if a transport call failed.

        Raises:
            AnchorUnavailableError: If neither a message nor the profile
                yields a usable position.
        """
        source = "message"
        try:
            position: int | None = None
            if direction is AnchorDirection.BEFORE:
                message_id = await self.transport.search_single(
                    f"before:{int(timestamp.timestamp())}"
                )
            else:
                message_id = await self._nearest_after(timestamp)
            if message_id is not None:
                message = await self.transport.get_message(message_id, format="minimal")
                position = parse_position(message.get("historyId"))

            if position is None:
                source = "profile"
                position = await self._profile_position()
        except TransportFailure as exc:
            logger.warning(
                "anchor_resolution_failed",
                direction=direction.value,
                timestamp=timestamp.isoformat(),
                error=str(exc),
            )
            return None

        return self._anchor(position, timestamp, direction.value, source)

    async def current(self, timestamp: datetime) -> LogAnchor | None:
        """Anchor `timestamp` (the present) to the account's current position.

        Returns:
            The anchor, or None if the profile request failed.

        Raises:
            AnchorUnavailableError: If the profile carries no history id.
        """
        try:
            position = await self._profile_position()
        except TransportFailure as exc:
            logger.warning("anchor_resolution_failed", direction="current", error=str(exc))
            return None
        return self._anchor(position, timestamp, "current", "profile")

    async def _nearest_after(self, timestamp: datetime) -> str | None:
        start = int(timestamp.timestamp())
        for width in AFTER_SEARCH_WIDTHS:
            query = f"after:{start} before:{int((timestamp + width).timestamp())}"
            response = await self.transport.search_page(
                query, page_size=AFTER_SEARCH_PAGE_SIZE
            )
            ids = [str(m["id"]) for m in response.get("messages") or [] if m.get("id")]
            if ids:
                # With more pages the last hit is still within `width` of the instant.
                return ids[-1]
        return None

    async def _profile_position(self) -> int | None:
        profile = await self.transport.get_profile()
        return parse_position(profile.get("historyId"))

    def _anchor(
        self, position: int | None, timestamp: datetime, direction: str, source: str
    ) -> LogAnchor:
        if position is None:
            raise AnchorUnavailableError(
                f"no history id available {direction} {timestamp.isoformat()}"
            )
        logger.info(
            "anchor_resolved",
            direction=direction,
            timestamp=timestamp.isoformat(),
            position=str(position),
            source=source,
        )
        return LogAnchor(position=position, approx_time=timestamp)
