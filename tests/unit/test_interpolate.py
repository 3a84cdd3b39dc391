"""Unit tests for position-to-time interpolation."""

from datetime import datetime, timedelta, timezone

import pytest

from label_recovery.models import HistoryRange
from label_recovery.timeline import interpolate

T = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def _range(start: int, end: int) -> HistoryRange:
    return HistoryRange(
        start_position=start,
        end_position=end,
        start_time=T - timedelta(days=2),
        end_time=T,
    )


def test_endpoints_map_to_bracket_times() -> None:
    r = _range(90, 200)

    assert interpolate(90, r) == r.start_time
    assert interpolate(200, r) == r.end_time


def test_midpoint() -> None:
    r = _range(100, 200)

    assert interpolate(150, r) == T - timedelta(days=1)


def test_results_within_bracket_and_monotonic() -> None:
    r = _range(90, 200)
    estimates = [interpolate(p, r) for p in range(90, 201)]

    assert all(r.start_time <= e <= r.end_time for e in estimates)
    assert estimates == sorted(estimates)


def test_large_positions_keep_precision() -> None:
    base = 2**63 - 1_000
    r = _range(base, base + 1_000)

    # Floats cannot tell base and base + 1 apart; the ratio must still move.
    first = interpolate(base + 1, r)
    last = interpolate(base + 999, r)

    assert r.start_time < first < last < r.end_time


@pytest.mark.parametrize("position", [0, 100, 10**20])
def test_zero_width_bracket_gives_none(position: int) -> None:
    assert interpolate(position, _range(100, 100)) is None


def test_outside_bracket_gives_none() -> None:
    r = _range(90, 200)

    assert interpolate(89, r) is None
    assert interpolate(201, r) is None


def test_missing_range_gives_none() -> None:
    assert interpolate(100, None) is None
