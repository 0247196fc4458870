"""Non-streaming path: pull the answer text out of a complete chat-completion body."""

from __future__ import annotations

import json
from typing import Any

from relay.core.errors import ExtractionError


def _message_content(result: Any) -> Any:
    if not isinstance(result, dict):
        return None
    choices = result.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return None
    return message.get("content")


def extract_content(body: str | bytes) -> str:
    """Return choices[0].message.content. Raises ExtractionError on bad JSON or missing field."""
    try:
        result = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ExtractionError(f"Failed to parse response JSON: {e}") from e
    content = _message_content(result)
    if not isinstance(content, str):
        raise ExtractionError("Failed to extract content from LLM response")
    return content
