"""Message models produced by the detail fetcher and the deduplicator."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RawMessage(BaseModel):
    """Gmail message metadata as fetched with ``format=metadata``."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Gmail message ID")
    conversation_id: str = Field(description="Gmail thread ID")
    headers: dict[str, str] = Field(
        default_factory=dict, description="Lower-cased header name -> first value"
    )
    snippet: str = Field(default="", description="Provider snippet")
    size_estimate: int = Field(default=0, description="Approximate size in bytes")
    label_ids: list[str] = Field(default_factory=list, description="Gmail label IDs")
    internal_date: datetime | None = Field(
        default=None, description="Provider arrival timestamp (UTC)"
    )
    log_position: int | None = Field(
        default=None, description="Message history id at fetch time"
    )

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())


class EnrichedMessage(BaseModel):
    """One card per conversation, ready for review and restore.

    ``label_applied_at`` is an *estimate* when it comes from the change log:
    it is linearly interpolated from log positions, which do not advance at a
    constant rate. ``None`` means the timing is unknown and the message should
    be treated as pre-existing in the label.
    """

    id: str = Field(description="Representative message ID")
    conversation_id: str = Field(description="Gmail thread ID")
    member_message_ids: list[str] = Field(
        description="Every message id folded into this conversation card"
    )
    subject: str = Field(default="(No Subject)")
    sender: str = Field(default="(Unknown)")
    display_date: str = Field(default="", description="Arrival time formatted for display")
    snippet: str = Field(default="")
    arrival_timestamp: datetime | None = Field(default=None)
    label_applied_at: datetime | None = Field(default=None)
    label_ids: list[str] = Field(default_factory=list)
    selected: bool = Field(default=False)

    @model_validator(mode="after")
    def _representative_is_member(self) -> EnrichedMessage:
        if self.id not in self.member_message_ids:
            raise ValueError(f"representative {self.id} missing from member_message_ids")
        return self
