"""Change-log models.

Log positions are Gmail history ids: opaque, monotonically increasing 64-bit
identifiers delivered as decimal strings. They are held as Python ``int``
throughout so ordering and arithmetic stay exact.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class AnchorDirection(str, Enum):
    """Which side of a timestamp an anchor message is searched on."""

    BEFORE = "before"
    AFTER = "after"


class LogAnchor(BaseModel):
    """A log position paired with the wall-clock instant it stands for."""

    model_config = ConfigDict(frozen=True)

    position: int = Field(ge=0, description="Change-log position (history id)")
    approx_time: datetime = Field(description="Instant the position approximates")


class ChangeEvent(BaseModel):
    """A single "label added" record taken from the change log."""

    model_config = ConfigDict(frozen=True)

    position: int = Field(ge=0, description="Change-log position of the record")
    target_message_id: str = Field(description="Message the labels were added to")
    affected_label_ids: frozenset[str] = Field(
        default_factory=frozenset, description="Label ids added by the record"
    )


class HistoryRange(BaseModel):
    """The position/time bracket used to interpolate label-applied times."""

    model_config = ConfigDict(frozen=True)

    start_position: int = Field(ge=0)
    end_position: int = Field(ge=0)
    start_time: datetime
    end_time: datetime

    @model_validator(mode="after")
    def _check_order(self) -> HistoryRange:
        if self.start_position > self.end_position:
            raise ValueError(
                f"start_position {self.start_position} exceeds end_position {self.end_position}"
            )
        return self

    @property
    def is_degenerate(self) -> bool:
        """True when the bracket has zero width and cannot be interpolated."""
        return self.start_position == self.end_position

    def contains(self, position: int) -> bool:
        return self.start_position <= position <= self.end_position
