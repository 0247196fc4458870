"""Frame an arbitrarily-chunked SSE byte stream into records and drive MessageProcessor.

Framing is a two-state machine over the text buffer:

    BUFFERING     no "\\n\\n" in the buffer; wait for the next chunk
    RECORD_READY  a boundary was found; cut the record off the front and process it

Bytes are decoded incrementally, so a UTF-8 sequence split across chunks is
carried over instead of lost. A chunk with invalid UTF-8 is dropped whole.
"""

from __future__ import annotations

import codecs
import logging
from enum import Enum
from typing import AsyncIterable, Iterator, NoReturn

import httpx

from relay.core.errors import TransportError
from relay.core.events import StreamEnd, StreamError, StreamStart
from relay.core.sink import EventSink, deliver
from relay.streaming.processor import MessageProcessor
from relay.streaming.session import StreamSession

logger = logging.getLogger(__name__)

RECORD_DELIMITER = "\n\n"


class FrameState(Enum):
    BUFFERING = "buffering"
    RECORD_READY = "record_ready"


class StreamDecoder:
    """One decoder per streaming call. Not safe to share between sessions."""

    def __init__(self, sink: EventSink) -> None:
        self._sink = sink
        self._session: StreamSession | None = None
        self._processor: MessageProcessor | None = None
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="strict")
        self._buffer = ""
        self._state = FrameState.BUFFERING
        self._closed = False
        self._dropped_chunks = 0

    @property
    def session(self) -> StreamSession | None:
        return self._session

    @property
    def pending(self) -> str:
        """Text received but not yet framed into a record."""
        return self._buffer

    @property
    def state(self) -> FrameState:
        return self._state

    @property
    def dropped_chunks(self) -> int:
        """Chunks (or held-back byte tails) discarded as undecodable."""
        return self._dropped_chunks

    async def start(self) -> StreamSession:
        if self._session is not None:
            raise RuntimeError("stream already started")
        self._session = StreamSession()
        self._processor = MessageProcessor(self._session, self._sink)
        logger.info("stream started", extra={"session_id": self._session.id})
        await deliver(self._sink, StreamStart(session_id=self._session.id))
        return self._session

    async def feed(self, raw: bytes) -> None:
        self._check_open()
        text = self._decode(raw)
        if text is None:
            return
        self._buffer += text
        for record in self._frames():
            await self._processor.process(record)

    async def end(self) -> str:
        self._check_open()
        try:
            self._buffer += self._decoder.decode(b"", final=True)
        except UnicodeDecodeError as e:
            self._dropped_chunks += 1
            logger.warning("dropping truncated trailing bytes: %s", e, extra={"session_id": self._session.id})
        for record in self._frames():
            await self._processor.process(record)
        if self._buffer:
            # last record arrived without a trailing blank line
            record, self._buffer = self._buffer, ""
            await self._processor.process(record)
        self._closed = True
        session = self._session
        logger.info(
            "stream finished",
            extra={
                "session_id": session.id,
                "tokens": session.token_count,
                "chars": len(session.accumulated_content),
                "dropped_chunks": self._dropped_chunks,
                "dropped_records": self._processor.dropped_records,
            },
        )
        await deliver(self._sink, StreamEnd(session_id=session.id, full_content=session.accumulated_content))
        return session.accumulated_content

    async def fail(self, error: BaseException) -> NoReturn:
        """Report a transport failure once (best-effort) and raise TransportError."""
        self._closed = True
        session_id = self._session.id if self._session else None
        logger.error("stream transport error: %s", error, extra={"session_id": session_id})
        try:
            await self._sink.emit(StreamError(message=f"Stream error: {error}", session_id=session_id))
        except Exception as e:
            logger.warning("failed to emit stream error event: %s", e, extra={"session_id": session_id})
        raise TransportError(f"Error reading stream: {error}", session_id=session_id) from error

    def _decode(self, raw: bytes) -> str | None:
        held = len(self._decoder.getstate()[0])
        try:
            return self._decoder.decode(raw)
        except UnicodeDecodeError as e:
            self._decoder.reset()
            self._dropped_chunks += 1
            if e.start >= held:
                logger.warning(
                    "dropping undecodable chunk (%d bytes): %s",
                    len(raw),
                    e,
                    extra={"session_id": self._session.id},
                )
                return None
            # the bad bytes were held back from the previous chunk
            logger.warning(
                "dropping %d undecodable trailing bytes of previous chunk: %s",
                held,
                e,
                extra={"session_id": self._session.id},
            )
        return self._decode(raw)

    def _frames(self) -> Iterator[str]:
        while True:
            index = self._buffer.find(RECORD_DELIMITER)
            self._state = FrameState.RECORD_READY if index >= 0 else FrameState.BUFFERING
            if self._state is FrameState.BUFFERING:
                return
            record = self._buffer[:index]
            self._buffer = self._buffer[index + len(RECORD_DELIMITER):]
            yield record

    def _check_open(self) -> None:
        if self._session is None:
            raise RuntimeError("start() must be called before feeding the decoder")
        if self._closed:
            raise RuntimeError("stream already finished")


async def decode_stream(source: AsyncIterable[bytes], sink: EventSink) -> str:
    """Run a whole stream through a fresh decoder; returns the full generated text."""
    decoder = StreamDecoder(sink)
    await decoder.start()
    try:
        async for chunk in source:
            await decoder.feed(chunk)
    except (httpx.TransportError, httpx.StreamError, OSError) as e:
        await decoder.fail(e)
    return await decoder.end()
