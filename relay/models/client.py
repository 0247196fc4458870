"""OpenAI-compatible chat-completion client: relays a message list, streamed or not."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from relay.config.loader import ApiSettings
from relay.core.errors import ProviderError, TransportError
from relay.core.sink import EventSink
from relay.streaming.decoder import decode_stream
from relay.streaming.extractor import extract_content

logger = logging.getLogger(__name__)


class ChatClient:
    """Sends the request; the streaming path hands the body to the SSE decoder."""

    def __init__(
        self,
        settings: ApiSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    def headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._settings.key:
            headers["Authorization"] = f"Bearer {self._settings.key}"
        return headers

    def build_request_body(self, messages: list[dict[str, Any]], stream: bool) -> dict[str, Any]:
        """Messages are relayed unchanged: history, system prompts, image parts."""
        return {
            "model": self._settings.model,
            "messages": messages,
            "stream": stream,
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._settings.timeout, transport=self._transport)

    async def complete(self, messages: list[dict[str, Any]]) -> str:
        """Non-streaming call; returns choices[0].message.content."""
        body = self.build_request_body(messages, stream=False)
        async with self._client() as client:
            try:
                resp = await client.post(self._settings.endpoint, json=body, headers=self.headers())
            except httpx.TransportError as e:
                raise TransportError(f"Failed to send request: {e}") from e
            _raise_for_status(resp)
            return extract_content(resp.content)

    async def stream(self, messages: list[dict[str, Any]], sink: EventSink) -> str:
        """Streaming call; tokens go to sink, the full text is returned."""
        body = self.build_request_body(messages, stream=True)
        async with self._client() as client:
            try:
                async with client.stream(
                    "POST", self._settings.endpoint, json=body, headers=self.headers()
                ) as resp:
                    if resp.is_error:
                        await resp.aread()
                        _raise_for_status(resp)
                    return await decode_stream(resp.aiter_bytes(), sink)
            except httpx.TransportError as e:
                raise TransportError(f"Failed to send request: {e}") from e

    async def call(
        self,
        messages: list[dict[str, Any]],
        sink: EventSink | None = None,
        *,
        stream: bool | None = None,
    ) -> str:
        should_stream = self._settings.stream if stream is None else stream
        logger.info(
            "calling LLM API",
            extra={"model": self._settings.model, "stream": should_stream, "messages": len(messages)},
        )
        if should_stream:
            if sink is None:
                raise ValueError("a sink is required for streaming calls")
            return await self.stream(messages, sink)
        return await self.complete(messages)


def _raise_for_status(resp: httpx.Response) -> None:
    if resp.is_error:
        raise ProviderError(
            f"API request failed with status {resp.status_code}",
            status_code=resp.status_code,
            response_text=resp.text[:500],
        )
