"""Unit tests for data models."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from label_recovery.models import (
    EnrichedMessage,
    HistoryRange,
    LogAnchor,
    ScanReport,
    ScanState,
    TimeWindow,
)

T = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


class TestHistoryRange:
    """Test suite for HistoryRange model."""

    def test_rejects_inverted_bracket(self) -> None:
        with pytest.raises(ValidationError):
            HistoryRange(start_position=200, end_position=100, start_time=T, end_time=T)

    def test_contains_and_degenerate(self) -> None:
        r = HistoryRange(start_position=90, end_position=200, start_time=T, end_time=T)

        assert r.contains(90)
        assert r.contains(200)
        assert not r.contains(201)
        assert not r.is_degenerate
        assert HistoryRange(
            start_position=5, end_position=5, start_time=T, end_time=T
        ).is_degenerate

    def test_is_immutable(self) -> None:
        r = HistoryRange(start_position=1, end_position=2, start_time=T, end_time=T)

        with pytest.raises(ValidationError):
            r.start_position = 0


class TestLogAnchor:
    def test_holds_positions_beyond_64_bits(self) -> None:
        anchor = LogAnchor(position=2**70 + 1, approx_time=T)

        assert anchor.position == 2**70 + 1


class TestEnrichedMessage:
    """Test suite for EnrichedMessage model."""

    def test_representative_must_be_member(self) -> None:
        with pytest.raises(ValidationError):
            EnrichedMessage(id="m1", conversation_id="t1", member_message_ids=["m2"])

    def test_defaults(self) -> None:
        message = EnrichedMessage(id="m1", conversation_id="t1", member_message_ids=["m1"])

        assert message.subject == "(No Subject)"
        assert message.sender == "(Unknown)"
        assert message.label_applied_at is None
        assert message.selected is False


class TestTimeWindow:
    """Test suite for TimeWindow presets and validation."""

    def test_presets(self) -> None:
        assert TimeWindow.preset("all", T) == TimeWindow()
        assert TimeWindow.preset("2days", T).after == T - timedelta(days=2)
        assert TimeWindow.preset("7days", T).after == T - timedelta(days=7)
        assert TimeWindow.preset("today", T).after == datetime(2026, 10, 18, tzinfo=timezone.utc)
        assert TimeWindow.preset("7days", T).before is None

    def test_unknown_preset(self) -> None:
        with pytest.raises(ValueError):
            TimeWindow.preset("fortnight", T)

    def test_rejects_naive_and_inverted_bounds(self) -> None:
        with pytest.raises(ValidationError):
            TimeWindow(after=datetime(2026, 1, 1))
        with pytest.raises(ValidationError):
            TimeWindow(after=T, before=T - timedelta(hours=1))


def test_terminal_states() -> None:
    assert ScanState.DONE.is_terminal
    assert ScanState.FAILED.is_terminal
    assert not ScanState.SCANNING.is_terminal


def test_scan_report_estimated_flag() -> None:
    assert ScanReport(source="history").estimated is True
    assert ScanReport(source="fallback", skip_reason="log_expired").estimated is False
