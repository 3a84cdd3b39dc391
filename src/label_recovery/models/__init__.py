"""Data models for Label Recovery.

This module contains Pydantic models for data validation and serialization.
"""

from label_recovery.models.history import AnchorDirection, ChangeEvent, HistoryRange, LogAnchor
from label_recovery.models.label import GmailLabel
from label_recovery.models.message import EnrichedMessage, RawMessage
from label_recovery.models.scan import (
    WINDOW_PRESETS,
    HistoryHit,
    HistorySkipped,
    ScanOutcome,
    ScanReport,
    ScanState,
    TimeWindow,
)

__all__ = [
    "AnchorDirection",
    "ChangeEvent",
    "EnrichedMessage",
    "GmailLabel",
    "HistoryHit",
    "HistoryRange",
    "HistorySkipped",
    "LogAnchor",
    "RawMessage",
    "ScanOutcome",
    "ScanReport",
    "ScanState",
    "TimeWindow",
    "WINDOW_PRESETS",
]
