"""Label timeline resolver.

Orchestrates a single scan: anchor the time window in the change log, scan
it for label additions, estimate when each label was applied, fetch message
metadata and fold conversations into cards. When the change log cannot
answer, a label search supplies the messages without timing.

The resolver keeps no state across scans apart from `state`, which reflects
the most recent scan. Callers that start a new scan while one is running are
responsible for discarding the stale result.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, NoReturn, Sequence

import structlog

from label_recovery.config import Settings
from label_recovery.exceptions import (
    LabelRecoveryError,
    LogExpiredError,
    ScanFailure,
)
from label_recovery.gmail.client import GmailClient
from label_recovery.models import (
    AnchorDirection,
    EnrichedMessage,
    HistoryHit,
    HistoryRange,
    HistorySkipped,
    RawMessage,
    ScanOutcome,
    ScanReport,
    ScanState,
    TimeWindow,
)
from label_recovery.timeline.anchor import AnchorResolver
from label_recovery.timeline.dedupe import dedupe
from label_recovery.timeline.details import DetailFetcher
from label_recovery.timeline.fallback import FallbackLocator
from label_recovery.timeline.interpolate import interpolate
from label_recovery.timeline.scanner import ChangeLogScanner
from label_recovery.utils import chunked

logger = structlog.get_logger()

INBOX_LABEL_ID = "INBOX"

_TRANSITIONS: dict[ScanState, frozenset[ScanState]] = {
    ScanState.ANCHORING: frozenset(
        {ScanState.SCANNING, ScanState.FALLBACK_SEARCHING, ScanState.FAILED}
    ),
    ScanState.SCANNING: frozenset({ScanState.INTERPOLATING, ScanState.FALLBACK_SEARCHING}),
    ScanState.INTERPOLATING: frozenset({ScanState.FETCHING_DETAILS}),
    ScanState.FALLBACK_SEARCHING: frozenset({ScanState.FETCHING_DETAILS, ScanState.FAILED}),
    ScanState.FETCHING_DETAILS: frozenset({ScanState.DEDUPLICATING, ScanState.FAILED}),
    ScanState.DEDUPLICATING: frozenset({ScanState.DONE}),
    ScanState.DONE: frozenset(),
    ScanState.FAILED: frozenset(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def sort_for_display(messages: Iterable[EnrichedMessage]) -> list[EnrichedMessage]:
    """Order cards newest first.

    Cards with a label-applied time come first, ordered by that time; the
    rest follow ordered by arrival time.
    """
    floor = datetime.min.replace(tzinfo=timezone.utc)

    def key(message: EnrichedMessage) -> tuple[int, datetime]:
        if message.label_applied_at is not None:
            return (1, message.label_applied_at)
        return (0, message.arrival_timestamp or floor)

    return sorted(messages, key=key, reverse=True)


def flatten_member_ids(
    messages: Iterable[EnrichedMessage],
    *,
    selected_only: bool = True,
) -> list[str]:
    """Collect the member ids of (selected) cards for a restore call."""
    ids: list[str] = []
    for message in messages:
        if selected_only and not message.selected:
            continue
        ids.extend(message.member_message_ids)
    return list(dict.fromkeys(ids))


class LabelTimelineResolver:
    """Resolve when a label was applied to the messages that carry it."""

    def __init__(
        self,
        transport: GmailClient,
        settings: Settings | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the resolver.

        Args:
            transport: Authenticated Gmail client used for every call.
            settings: Application settings. If None, uses default settings.
            clock: Returns the current aware instant; injectable for tests.
        """
        from label_recovery.config import get_settings

        self.settings = settings or get_settings()
        self.transport = transport
        self.clock = clock
        self.anchors = AnchorResolver(transport)
        self.scanner = ChangeLogScanner(transport, max_pages=self.settings.history_max_pages)
        self.fetcher = DetailFetcher(
            transport,
            chunk_size=self.settings.detail_chunk_size,
            metadata_headers=self.settings.metadata_headers,
        )
        self.locator = FallbackLocator(
            transport,
            self.fetcher,
            page_size=self.settings.search_page_size,
        )
        self.state: ScanState | None = None

    async def scan_label_timeline(
        self,
        label_id: str,
        label_name: str,
        window: TimeWindow,
        limit: int | None = None,
    ) -> list[EnrichedMessage]:
        """Scan a label and return its conversation cards.

        Raises:
            ScanFailure: If a stage fails in a way the label search cannot cover.
        """
        report = await self.scan(label_id, label_name, window, limit)
        return report.messages

    async def scan(
        self,
        label_id: str,
        label_name: str,
        window: TimeWindow,
        limit: int | None = None,
    ) -> ScanReport:
        """Scan a label and return the cards with details of how they were found.

        Args:
            label_id: Gmail label id to resolve.
            label_name: Display name, used by the label search.
            window: Time bounds of the scan.
            limit: Maximum number of messages (at least 1); defaults to the
                configured limit.

        Returns:
            The scan report. Card order is not defined; see `sort_for_display`.

        Raises:
            ScanFailure: Tagged with the stage that failed.
            ValueError: If `limit` is below 1.
        """
        if limit is not None and limit < 1:
            raise ValueError(f"limit must be positive, got {limit}")
        resolved_limit = limit if limit is not None else self.settings.default_result_limit
        now = self.clock()
        self.state = None
        logger.info(
            "label_scan_started",
            label_id=label_id,
            label_name=label_name,
            after=window.after.isoformat() if window.after else None,
            before=window.before.isoformat() if window.before else None,
            limit=resolved_limit,
        )

        self._transition(ScanState.ANCHORING)
        try:
            outcome = await self._resolve_history(label_id, window, now)
        except LabelRecoveryError as exc:
            self._fail(exc)

        applied_at: dict[str, datetime] = {}
        if isinstance(outcome, HistoryHit):
            self._transition(ScanState.INTERPOLATING)
            for event in outcome.events:
                estimate = interpolate(event.position, outcome.range)
                if estimate is not None:
                    applied_at[event.target_message_id] = estimate
            ids = [event.target_message_id for event in outcome.events][:resolved_limit]
            raw = await self._fetch(ids)
            # Messages whose label was removed again since are not candidates.
            raw = [message for message in raw if label_id in message.label_ids]
        else:
            self._transition(ScanState.FALLBACK_SEARCHING)
            try:
                ids = await self.locator.find_ids(
                    label_name, window.after, window.before, resolved_limit
                )
            except LabelRecoveryError as exc:
                self._fail(exc)
            raw = await self._fetch(ids)

        self._transition(ScanState.DEDUPLICATING)
        messages = dedupe(raw, applied_at)
        self._transition(ScanState.DONE)

        if isinstance(outcome, HistoryHit):
            report = ScanReport(messages=messages, source="history", history_range=outcome.range)
        else:
            report = ScanReport(messages=messages, source="fallback", skip_reason=outcome.reason)
        logger.info(
            "label_scan_completed",
            label_id=label_id,
            source=report.source,
            skip_reason=report.skip_reason,
            cards=len(messages),
            messages=len(raw),
        )
        return report

    async def restore(self, message_ids: Sequence[str], source_label_id: str | None) -> int:
        """Move messages back to the inbox and out of the source label.

        Pass the flattened member ids of the chosen cards (see
        `flatten_member_ids`), not representative ids.

        Returns:
            Number of distinct messages restored.

        Raises:
            TransportFailure: If a batch mutation fails.
        """
        ids = list(dict.fromkeys(message_id for message_id in message_ids if message_id))
        if not ids:
            return 0

        remove = None
        if source_label_id and source_label_id != INBOX_LABEL_ID:
            remove = [source_label_id]

        for batch in chunked(ids, self.settings.restore_batch_size):
            await self.transport.batch_modify(
                batch,
                add_label_ids=[INBOX_LABEL_ID],
                remove_label_ids=remove,
            )
        logger.info("messages_restored", count=len(ids), source_label_id=source_label_id)
        return len(ids)

    async def _resolve_history(self, label_id: str, window: TimeWindow, now: datetime) -> ScanOutcome:
        if window.after is None:
            return self._skip("no_start_bound")
        if window.after < now - timedelta(days=self.settings.history_retention_days):
            return self._skip("outside_retention")

        window_end = window.before or now
        start = await self.anchors.resolve(window.after, AnchorDirection.BEFORE)
        if start is None:
            return self._skip("anchor_unavailable")
        if window.before is None or window.before >= now:
            end = await self.anchors.current(window_end)
        else:
            end = await self.anchors.resolve(window_end, AnchorDirection.AFTER)

        self._transition(ScanState.SCANNING)
        try:
            scan = await self.scanner.scan(start, end, label_id)
        except LogExpiredError:
            return self._skip("log_expired")
        except LabelRecoveryError as exc:
            logger.warning("history_scan_failed", error=str(exc))
            return self._skip("history_error")

        if not scan.events:
            return self._skip("no_events")
        if not scan.reached_end:
            logger.warning("history_scan_truncated", pages=scan.pages, events=len(scan.events))

        if end is not None:
            end_position = end.position
        else:
            end_position = scan.events[-1].position
        history_range = HistoryRange(
            start_position=start.position,
            end_position=max(start.position, end_position),
            start_time=window.after,
            end_time=max(window.after, window_end),
        )
        return HistoryHit(events=scan.events, range=history_range)

    async def _fetch(self, ids: list[str]) -> list[RawMessage]:
        self._transition(ScanState.FETCHING_DETAILS)
        try:
            return await self.fetcher.fetch_details(ids)
        except LabelRecoveryError as exc:
            self._fail(exc)

    def _skip(self, reason: str) -> HistorySkipped:
        logger.info("history_skipped", reason=reason)
        return HistorySkipped(reason=reason)

    def _transition(self, state: ScanState) -> None:
        previous = self.state
        if previous is not None and state not in _TRANSITIONS[previous]:
            raise RuntimeError(f"invalid scan transition {previous.value} -> {state.value}")
        self.state = state
        logger.debug(
            "scan_state_changed",
            previous=previous.value if previous else None,
            state=state.value,
        )

    def _fail(self, cause: BaseException) -> NoReturn:
        stage = self.state or ScanState.ANCHORING
        self._transition(ScanState.FAILED)
        logger.error("label_scan_failed", stage=stage.value, error=str(cause))
        raise ScanFailure(stage, cause) from cause
