"""Per-call streaming state."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field


def new_session_id() -> str:
    return str(uuid.uuid4())


@dataclass
class StreamSession:
    """State for one HTTP response stream. Discarded after StreamEnd or StreamError."""

    id: str = field(default_factory=new_session_id)
    accumulated_content: str = ""
    first_token_sent: bool = False
    token_count: int = 0

    def append(self, token: str) -> bool:
        """Record a token. Returns True if it is the first one of the session."""
        is_first = not self.first_token_sent
        self.accumulated_content += token
        self.first_token_sent = True
        self.token_count += 1
        return is_first
