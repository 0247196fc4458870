"""Event Bus: Redis pub/sub for stream events. Implements EventSink for UI-side subscribers."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

import redis.asyncio as aioredis
from pydantic import BaseModel

from relay.core.events import StreamEnd, StreamError, StreamEvent, StreamStart, StreamToken

logger = logging.getLogger(__name__)

# Channel names
CH_STREAM_START = "relay:llm_stream_start"
CH_STREAM_TOKEN = "relay:llm_stream_token"
CH_STREAM_END = "relay:llm_stream_end"
CH_STREAM_ERROR = "relay:llm_stream_error"


def _serialize(payload: BaseModel) -> str:
    return payload.model_dump_json()


def _deserialize(raw: bytes, model: type[BaseModel]) -> BaseModel:
    return model.model_validate_json(raw.decode("utf-8"))


class EventBus:
    """Redis-backed sink. emit() publishes; subscribers run through run_listener()."""

    _channel_models: dict[str, type[BaseModel]] = {
        CH_STREAM_START: StreamStart,
        CH_STREAM_TOKEN: StreamToken,
        CH_STREAM_END: StreamEnd,
        CH_STREAM_ERROR: StreamError,
    }

    def __init__(self, redis_url: str) -> None:
        self._redis_url = redis_url
        self._client: aioredis.Redis | None = None
        self._pubsub: aioredis.client.PubSub | None = None
        self._handlers: dict[str, list[Callable[..., Awaitable[None]]]] = {}
        self._running = False

    async def connect(self) -> None:
        if self._client is None:
            self._client = aioredis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=False,
            )
            await self._client.ping()
        logger.info("EventBus connected to Redis")

    async def disconnect(self) -> None:
        if self._pubsub:
            await self._pubsub.close()
            self._pubsub = None
        if self._client:
            await self._client.close()
            self._client = None
        self._running = False

    async def _ensure_connected(self) -> None:
        if self._client is None:
            await self.connect()

    @staticmethod
    def channel_for(event: StreamEvent) -> str:
        if isinstance(event, StreamToken):
            return CH_STREAM_TOKEN
        if isinstance(event, StreamStart):
            return CH_STREAM_START
        if isinstance(event, StreamEnd):
            return CH_STREAM_END
        if isinstance(event, StreamError):
            return CH_STREAM_ERROR
        raise TypeError(f"not a stream event: {type(event).__name__}")

    async def emit(self, event: StreamEvent) -> None:
        channel = self.channel_for(event)
        await self._ensure_connected()
        await self._client.publish(channel, _serialize(event))
        if not isinstance(event, StreamToken):
            logger.debug("published %s", channel, extra={"session_id": event.session_id})

    def subscribe_start(self, handler: Callable[[StreamStart], Awaitable[None]]) -> None:
        self._handlers.setdefault(CH_STREAM_START, []).append(handler)

    def subscribe_token(self, handler: Callable[[StreamToken], Awaitable[None]]) -> None:
        self._handlers.setdefault(CH_STREAM_TOKEN, []).append(handler)

    def subscribe_end(self, handler: Callable[[StreamEnd], Awaitable[None]]) -> None:
        self._handlers.setdefault(CH_STREAM_END, []).append(handler)

    def subscribe_error(self, handler: Callable[[StreamError], Awaitable[None]]) -> None:
        self._handlers.setdefault(CH_STREAM_ERROR, []).append(handler)

    async def dispatch(self, channel: str, data: bytes) -> None:
        """Deserialize one published message and hand it to the channel's handlers."""
        model_cls = self._channel_models.get(channel)
        if not model_cls or not data:
            return
        try:
            payload = _deserialize(data, model_cls)
        except Exception as e:
            logger.warning("failed to deserialize event", extra={"channel": channel, "error": str(e)})
            return
        for handler in self._handlers.get(channel, []):
            try:
                await handler(payload)
            except Exception as e:
                logger.exception("handler failed for %s: %s", channel, e)

    async def run_listener(self) -> None:
        """Run the pub/sub listener and dispatch to handlers. Blocks until stop."""
        await self._ensure_connected()
        self._pubsub = self._client.pubsub()
        channels = list(self._channel_models.keys())
        await self._pubsub.subscribe(*channels)
        self._running = True
        logger.info("EventBus listener started", extra={"channels": channels})
        try:
            async for message in self._pubsub.listen():
                if not self._running:
                    break
                if message["type"] != "message":
                    continue
                ch = message["channel"]
                if isinstance(ch, bytes):
                    ch = ch.decode("utf-8")
                data = message.get("data")
                if data is None:
                    continue
                await self.dispatch(ch, data)
        finally:
            await self._pubsub.unsubscribe()
            self._running = False

    def stop(self) -> None:
        self._running = False
