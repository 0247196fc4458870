"""SSE stream decoding and response extraction."""
