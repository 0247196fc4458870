"""Tests for the command-line entry point."""

import io
from unittest.mock import AsyncMock, patch

import pytest

from relay.config.loader import Config
from relay.core.events import StreamError, StreamStart, StreamToken
from relay.main import ConsoleSink, build_messages, parse_args, run


def test_parse_args():
    args = parse_args(["hello", "--stream"])
    assert args.prompt == "hello"
    assert args.stream is True
    assert args.bus is False
    assert args.config is None


@pytest.mark.asyncio
async def test_console_sink_writes_tokens(capsys):
    out = io.StringIO()
    sink = ConsoleSink(out)
    await sink.emit(StreamStart(session_id="s"))
    await sink.emit(StreamToken(session_id="s", token="Hel", is_first=True))
    await sink.emit(StreamToken(session_id="s", token="lo"))
    await sink.emit(StreamError(message="Stream error: x"))
    assert out.getvalue() == "Hello"
    assert "Stream error: x" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_run_non_streaming(capsys):
    with patch("relay.models.client.ChatClient.call", new_callable=AsyncMock) as mock_call:
        mock_call.return_value = "answer"
        code = await run(parse_args(["hi"]), Config.load())
    assert code == 0
    assert capsys.readouterr().out.strip() == "answer"
    mock_call.assert_awaited_once_with([{"role": "user", "content": "hi"}], stream=False)


@pytest.mark.asyncio
async def test_run_streaming_uses_console_sink():
    with patch("relay.models.client.ChatClient.call", new_callable=AsyncMock) as mock_call:
        mock_call.return_value = "answer"
        code = await run(parse_args(["hi", "--stream"]), Config.load())
    assert code == 0
    sink = mock_call.await_args.args[1]
    assert isinstance(sink, ConsoleSink)
    assert mock_call.await_args.kwargs == {"stream": True}


def test_build_messages_with_system_prompt():
    assert build_messages("hi") == [{"role": "user", "content": "hi"}]
    assert build_messages("hi", "be brief") == [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "hi"},
    ]


@pytest.mark.asyncio
async def test_run_passes_system_prompt():
    with patch("relay.models.client.ChatClient.call", new_callable=AsyncMock) as mock_call:
        mock_call.return_value = "answer"
        await run(parse_args(["hi", "--system", "be brief"]), Config.load())
    messages = mock_call.await_args.args[0]
    assert messages[0] == {"role": "system", "content": "be brief"}
    assert messages[-1] == {"role": "user", "content": "hi"}
