"""Entry point: send one prompt and print the answer, streamed or whole."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any, TextIO

from relay.config import Config, get_config
from relay.core.errors import RelayError
from relay.core.events import StreamError, StreamEvent, StreamToken
from relay.core.logging_config import setup_logging

logger = logging.getLogger(__name__)


class ConsoleSink:
    """Writes tokens to a text stream as they arrive."""

    def __init__(self, out: TextIO | None = None) -> None:
        self._out = out if out is not None else sys.stdout

    async def emit(self, event: StreamEvent) -> None:
        if isinstance(event, StreamToken):
            self._out.write(event.token)
            self._out.flush()
        elif isinstance(event, StreamError):
            print(f"\n[error] {event.message}", file=sys.stderr)


def build_messages(prompt: str, system: str | None = None) -> list[dict[str, Any]]:
    messages: list[dict[str, Any]] = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": prompt})
    return messages


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="relay", description="Relay a prompt to a chat-completion API")
    parser.add_argument("prompt", help="User message to send")
    parser.add_argument("--system", default=None, help="Optional system prompt sent before the user message")
    parser.add_argument("--stream", action="store_true", help="Stream tokens as they arrive")
    parser.add_argument("--config", default=None, help="Path to a YAML config file")
    parser.add_argument("--bus", action="store_true", help="Publish stream events to Redis instead of stdout")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace, config: Config) -> int:
    from relay.core.bus import EventBus
    from relay.models.client import ChatClient

    client = ChatClient(config.api)
    messages = build_messages(args.prompt, args.system)
    if not args.stream:
        print(await client.call(messages, stream=False))
        return 0
    if args.bus:
        bus = EventBus(config.redis.url)
        await bus.connect()
        try:
            await client.call(messages, bus, stream=True)
        finally:
            await bus.disconnect()
        return 0
    await client.call(messages, ConsoleSink(), stream=True)
    print()
    return 0


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    config = get_config(args.config)
    setup_logging(level=config.logging.level, use_json=config.logging.json_format)
    try:
        code = asyncio.run(run(args, config))
    except RelayError as e:
        logger.error("relay call failed: %s", e)
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
