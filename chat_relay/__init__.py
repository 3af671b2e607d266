"""chat-relay: NDJSON token streaming relay between a browser chat UI and an LLM completion API."""

__version__ = "0.1.0"
