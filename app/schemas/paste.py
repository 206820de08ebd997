"""Pydantic schemas for paste requests and responses."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

FORMAT_MAX_CHARS = 64


class CreatePasteRequest(BaseModel):
    """Body of ``POST /create-paste``."""

    content: str = Field(..., description="Paste body. Stored verbatim.")
    format: str = Field(
        ...,
        max_length=FORMAT_MAX_CHARS,
        description="Free-form content label, e.g. a syntax highlighting hint.",
    )
    userid: str | None = Field(
        default=None,
        description="Owner id returned by /create-user. Omit (or send empty) for an anonymous paste.",
    )


class PasteResponse(BaseModel):
    """A stored paste as returned by the read endpoints."""

    id: str = Field(..., description="16-character paste id.")
    content: str
    format: str
    timestamp: datetime = Field(..., description="Creation time (UTC).")
    userid: str | None = Field(default=None, description="Owner id, null for anonymous pastes.")
