"""Position-to-time interpolation.

Log positions do not advance at a constant rate, so the result is a
monotonic estimate, never an exact label-applied time.
"""

from __future__ import annotations

from datetime import datetime
from fractions import Fraction

from label_recovery.models import HistoryRange


def interpolate(position: int, history_range: HistoryRange | None) -> datetime | None:
    """Estimate when the change at `position` happened.

    Args:
        position: Log position of the change.
        history_range: Position/time bracket of the scan, or None when the
            change log was not used.

    Returns:
        The estimated instant, or None if the bracket is missing, has zero
        width, or does not contain `position`.
    """
    if history_range is None or history_range.is_degenerate:
        return None
    if not history_range.contains(position):
        return None

    ratio = float(
        Fraction(
            position - history_range.start_position,
            history_range.end_position - history_range.start_position,
        )
    )
    span = history_range.end_time - history_range.start_time
    return history_range.start_time + span * ratio
