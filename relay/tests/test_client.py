"""Tests for ChatClient against httpx.MockTransport."""

from __future__ import annotations

import json

import httpx
import pytest

from relay.config.loader import ApiSettings
from relay.core.errors import ExtractionError, ProviderError, TransportError
from relay.core.sink import CollectingSink
from relay.models.client import ChatClient

ENDPOINT = "http://llm.test/v1/chat/completions"
HELLO = [{"role": "user", "content": "hello"}]


class ChunkedStream(httpx.AsyncByteStream):
    def __init__(self, parts: list[bytes]) -> None:
        self._parts = parts

    async def __aiter__(self):
        for part in self._parts:
            yield part


def _settings(**kw) -> ApiSettings:
    return ApiSettings(endpoint=ENDPOINT, key=kw.pop("key", "sk-test"), model="m1", **kw)


def test_headers_and_body():
    client = ChatClient(_settings())
    assert client.headers()["Authorization"] == "Bearer sk-test"
    hi = [{"role": "user", "content": "hi"}]
    assert client.build_request_body(hi, stream=True) == {
        "model": "m1",
        "messages": [{"role": "user", "content": "hi"}],
        "stream": True,
    }
    assert "Authorization" not in ChatClient(_settings(key="")).headers()


@pytest.mark.asyncio
async def test_complete_returns_message_content():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"choices": [{"message": {"content": "hi there"}}]})

    client = ChatClient(_settings(), transport=httpx.MockTransport(handler))
    out = await client.call(HELLO, stream=False)
    assert out == "hi there"
    assert seen["body"]["stream"] is False
    assert seen["auth"] == "Bearer sk-test"


@pytest.mark.asyncio
async def test_complete_extraction_error():
    client = ChatClient(_settings(), transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})))
    with pytest.raises(ExtractionError):
        await client.complete(HELLO)


@pytest.mark.asyncio
async def test_complete_http_error_status():
    client = ChatClient(
        _settings(), transport=httpx.MockTransport(lambda r: httpx.Response(401, text="bad key"))
    )
    with pytest.raises(ProviderError) as exc:
        await client.complete(HELLO)
    assert exc.value.status_code == 401
    assert exc.value.response_text == "bad key"


@pytest.mark.asyncio
async def test_stream_decodes_chunked_body():
    parts = [
        b'data: {"choices":[{"delta":{"content":"Hel"}}]}\n',
        b'\ndata: {"choices":[{"delta":{"content":"lo"}}]}\n\nda',
        b"ta: [DONE]\n\n",
    ]

    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content)["stream"] is True
        return httpx.Response(
            200,
            headers={"content-type": "text/event-stream"},
            stream=ChunkedStream(parts),
        )

    sink = CollectingSink()
    client = ChatClient(_settings(), transport=httpx.MockTransport(handler))
    out = await client.call(HELLO, sink, stream=True)
    assert out == "Hello"
    assert [(t.token, t.is_first) for t in sink.tokens()] == [("Hel", True), ("lo", False)]
    assert sink.ends()[0].full_content == "Hello"


@pytest.mark.asyncio
async def test_stream_http_error_status_emits_nothing():
    client = ChatClient(
        _settings(), transport=httpx.MockTransport(lambda r: httpx.Response(500, text="oops"))
    )
    sink = CollectingSink()
    with pytest.raises(ProviderError) as exc:
        await client.stream(HELLO, sink)
    assert exc.value.status_code == 500
    assert sink.events == []


@pytest.mark.asyncio
async def test_connect_error_is_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = ChatClient(_settings(), transport=httpx.MockTransport(handler))
    with pytest.raises(TransportError, match="Failed to send request"):
        await client.complete(HELLO)
    with pytest.raises(TransportError, match="Failed to send request"):
        await client.stream(HELLO, CollectingSink())


@pytest.mark.asyncio
async def test_stream_requires_sink():
    client = ChatClient(_settings(stream=True))
    with pytest.raises(ValueError):
        await client.call(HELLO)


@pytest.mark.asyncio
async def test_default_stream_flag_from_settings():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b'data: {"choices":[{"delta":{"content":"x"}}]}\n\n')

    client = ChatClient(_settings(stream=True), transport=httpx.MockTransport(handler))
    assert await client.call(HELLO, CollectingSink()) == "x"


@pytest.mark.asyncio
async def test_message_history_and_image_parts_relayed_unchanged():
    messages = [
        {"role": "system", "content": "You are an ophthalmology assistant."},
        {"role": "user", "content": "What is this?"},
        {"role": "assistant", "content": "A fundus photograph."},
        {
            "role": "user",
            "content": [
                {"type": "text", "text": "Any lesions?"},
                {"type": "image_url", "image_url": {"url": "data:image/png;base64,iVBORw0KGgo="}},
            ],
        },
    ]
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["messages"] = json.loads(request.content)["messages"]
        return httpx.Response(200, json={"choices": [{"message": {"content": "None visible."}}]})

    client = ChatClient(_settings(), transport=httpx.MockTransport(handler))
    assert await client.call(messages, stream=False) == "None visible."
    assert seen["messages"] == messages
