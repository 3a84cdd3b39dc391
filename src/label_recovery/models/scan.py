"""Scan-level models: time windows, scan states and outcomes."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from label_recovery.models.history import ChangeEvent, HistoryRange
from label_recovery.models.message import EnrichedMessage

WINDOW_PRESETS: tuple[str, ...] = ("all", "today", "2days", "7days")


class ScanState(str, Enum):
    """States a single label timeline scan moves through."""

    ANCHORING = "anchoring"
    SCANNING = "scanning"
    INTERPOLATING = "interpolating"
    FALLBACK_SEARCHING = "fallback_searching"
    FETCHING_DETAILS = "fetching_details"
    DEDUPLICATING = "deduplicating"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ScanState.DONE, ScanState.FAILED)


class TimeWindow(BaseModel):
    """Time bounds of a scan. Both ends are optional; ``before=None`` means now."""

    model_config = ConfigDict(frozen=True)

    after: datetime | None = None
    before: datetime | None = None

    @model_validator(mode="after")
    def _check_bounds(self) -> TimeWindow:
        for value in (self.after, self.before):
            if value is not None and value.tzinfo is None:
                raise ValueError("time window bounds must be timezone-aware")
        if self.after and self.before and self.after > self.before:
            raise ValueError("time window starts after it ends")
        return self

    @classmethod
    def preset(cls, name: str, now: datetime | None = None) -> TimeWindow:
        """Build one of the named windows offered by the label picker.

        Args:
            name: One of ``all``, ``today``, ``2days`` or ``7days``.
            now: Reference instant; defaults to the current local time.
        """
        current = now or datetime.now(timezone.utc).astimezone()
        if name == "all":
            return cls()
        if name == "today":
            return cls(after=current.replace(hour=0, minute=0, second=0, microsecond=0))
        if name == "2days":
            return cls(after=current - timedelta(days=2))
        if name == "7days":
            return cls(after=current - timedelta(days=7))
        raise ValueError(f"unknown time window preset: {name!r}")


class HistoryHit(BaseModel):
    """The change log produced label events for the window."""

    kind: Literal["history"] = "history"
    events: list[ChangeEvent]
    range: HistoryRange


class HistorySkipped(BaseModel):
    """The change log was not used; the label search takes over."""

    kind: Literal["skipped"] = "skipped"
    reason: str = Field(description="Why the change log was not used")


ScanOutcome = Union[HistoryHit, HistorySkipped]


class ScanReport(BaseModel):
    """Everything a caller needs to render a finished scan."""

    messages: list[EnrichedMessage] = Field(default_factory=list)
    source: Literal["history", "fallback"]
    skip_reason: str | None = None
    history_range: HistoryRange | None = None

    @property
    def estimated(self) -> bool:
        """Whether ``label_applied_at`` values are interpolated estimates."""
        return self.source == "history"
