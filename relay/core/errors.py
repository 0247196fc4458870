"""Error hierarchy for relay calls.

Malformed stream content never raises: bad records are dropped by the
decoder. What does raise is infrastructure failure:
- TransportError: the byte stream could not be read
- SinkError: the event sink refused an event
- ExtractionError: a non-streaming body has no answer text
- ProviderError: the upstream API answered with an error status
"""

from __future__ import annotations


class RelayError(Exception):
    """Base error for a relayed chat-completion call."""

    def __init__(self, message: str, session_id: str | None = None) -> None:
        super().__init__(message)
        self.session_id = session_id


class TransportError(RelayError):
    """I/O failure while reading the response byte stream."""


class SinkError(RelayError):
    """The event sink failed to accept an event."""


class ExtractionError(RelayError):
    """Non-streaming response body is not JSON or lacks the answer field."""


class ProviderError(RelayError):
    """Upstream API returned an error status."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_text: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text
