"""LLM chat-completion relay: whole answers or SSE token streams pushed to an event sink."""

from relay.core.errors import (
    ExtractionError,
    ProviderError,
    RelayError,
    SinkError,
    TransportError,
)
from relay.streaming.decoder import StreamDecoder, decode_stream
from relay.streaming.extractor import extract_content
from relay.streaming.processor import MessageProcessor

__all__ = [
    "StreamDecoder",
    "decode_stream",
    "MessageProcessor",
    "extract_content",
    "RelayError",
    "TransportError",
    "SinkError",
    "ExtractionError",
    "ProviderError",
]
