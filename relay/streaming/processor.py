"""Interpret one SSE record: `data: <json>` -> optional StreamToken.

Malformed records are dropped; the stream keeps going. Only a sink failure
propagates (as SinkError).
"""

from __future__ import annotations

import json
import logging
from typing import Any

from relay.core.events import StreamToken
from relay.core.sink import EventSink, deliver
from relay.streaming.session import StreamSession

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"
_PREVIEW_CHARS = 80


def extract_delta(payload: Any) -> str | None:
    """Return choices[0].delta.content if it is a string, else None. Never raises on shape."""
    if not isinstance(payload, dict):
        return None
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    choice = choices[0]
    if not isinstance(choice, dict):
        return None
    delta = choice.get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    return content if isinstance(content, str) else None


class MessageProcessor:
    """Turns SSE records of one session into StreamToken events on the sink."""

    def __init__(self, session: StreamSession, sink: EventSink) -> None:
        self._session = session
        self._sink = sink
        self.dropped_records = 0

    @property
    def session(self) -> StreamSession:
        return self._session

    async def process(self, record: str) -> StreamToken | None:
        if not record.startswith(DATA_PREFIX):
            # event:/id:/retry:/comment records, keep-alive blanks
            logger.debug("skipping non-data record", extra={"session_id": self._session.id})
            return None
        data = record[len(DATA_PREFIX):]
        if data.strip() == DONE_SENTINEL:
            return None
        try:
            payload = json.loads(data)
        except json.JSONDecodeError as e:
            self.dropped_records += 1
            logger.warning(
                "dropping malformed SSE record: %s",
                e,
                extra={"session_id": self._session.id, "preview": data[:_PREVIEW_CHARS]},
            )
            return None
        content = extract_delta(payload)
        if not content:
            # role-only, finish_reason or keep-alive chunks
            return None
        is_first = self._session.append(content)
        event = StreamToken(session_id=self._session.id, token=content, is_first=is_first)
        await deliver(self._sink, event)
        return event
