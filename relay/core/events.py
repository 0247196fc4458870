"""Stream notifications delivered to an EventSink. All events are Pydantic models."""

from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel, Field


class StreamStart(BaseModel):
    """A streaming call began; subsequent events carry the same session_id."""

    session_id: str


class StreamToken(BaseModel):
    """One content delta, in arrival order for its session."""

    session_id: str
    token: str = ""
    is_first: bool = Field(default=False, description="True only for the first non-empty delta")


class StreamEnd(BaseModel):
    """Stream finished; full_content is every token of the session concatenated."""

    session_id: str
    full_content: str = ""


class StreamError(BaseModel):
    """Transport failure. Sent at most once, best-effort."""

    message: str
    session_id: Optional[str] = Field(default=None, description="Set when the session was started")


StreamEvent = Union[StreamStart, StreamToken, StreamEnd, StreamError]
