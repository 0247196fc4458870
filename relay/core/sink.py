"""EventSink contract and in-process sinks.

A sink is passed explicitly into each streaming call. Sessions may interleave
on one sink; consumers tell them apart by session_id. A sink only has to keep
the events of a single session in order.
"""

from __future__ import annotations

import asyncio
from typing import Protocol, runtime_checkable

from relay.core.errors import SinkError
from relay.core.events import StreamEnd, StreamError, StreamEvent, StreamStart, StreamToken


@runtime_checkable
class EventSink(Protocol):
    """Receives StreamStart / StreamToken / StreamEnd / StreamError."""

    async def emit(self, event: StreamEvent) -> None:
        """Accept one event. Raising aborts the streaming call (except for StreamError)."""
        ...


class CollectingSink:
    """Keeps every event in a list. Used by tests and by callers that post-process."""

    def __init__(self) -> None:
        self.events: list[StreamEvent] = []

    async def emit(self, event: StreamEvent) -> None:
        self.events.append(event)

    def tokens(self, session_id: str | None = None) -> list[StreamToken]:
        return [
            e
            for e in self.events
            if isinstance(e, StreamToken) and (session_id is None or e.session_id == session_id)
        ]

    def starts(self) -> list[StreamStart]:
        return [e for e in self.events if isinstance(e, StreamStart)]

    def ends(self) -> list[StreamEnd]:
        return [e for e in self.events if isinstance(e, StreamEnd)]

    def errors(self) -> list[StreamError]:
        return [e for e in self.events if isinstance(e, StreamError)]


class QueueSink:
    """Pushes events into an asyncio.Queue drained by another task (e.g. a UI writer)."""

    def __init__(self, queue: asyncio.Queue[StreamEvent] | None = None) -> None:
        self.queue: asyncio.Queue[StreamEvent] = queue if queue is not None else asyncio.Queue()

    async def emit(self, event: StreamEvent) -> None:
        await self.queue.put(event)


async def deliver(sink: EventSink, event: StreamEvent) -> None:
    """Emit an event; any sink failure becomes SinkError, which aborts the call."""
    try:
        await sink.emit(event)
    except Exception as e:
        raise SinkError(
            f"Failed to emit {type(event).__name__} event: {e}",
            session_id=getattr(event, "session_id", None),
        ) from e
