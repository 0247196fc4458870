"""HTTP client for the chat-completion API."""
