"""Gmail label model."""

from __future__ import annotations

from pydantic import BaseModel, Field


class GmailLabel(BaseModel):
    id: str = Field(description="Gmail label ID")
    name: str = Field(description="Display name")
    type: str = Field(default="user", description="system or user")
