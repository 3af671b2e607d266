"""Chat transcript and the per-exchange assistant message that stream records are applied to."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from chat_relay.core.records import RecordKind, StreamRecord

PLACEHOLDER_TEXT = "…NEMO is thinking..."
NO_RESPONSE_TEXT = "(no response)"
ERROR_ANNOTATION = "\n\nError: "


@dataclass
class ChatMessage:
    role: str
    text: str = ""
    placeholder: bool = False


class ChatTranscript:
    """Ordered chat history. ``on_change`` is the UI refresh hook, called with the changed message."""

    def __init__(self, on_change: Optional[Callable[[ChatMessage], None]] = None) -> None:
        self.messages: list[ChatMessage] = []
        self._on_change = on_change

    def add(self, role: str, text: str, *, placeholder: bool = False) -> ChatMessage:
        message = ChatMessage(role=role, text=text, placeholder=placeholder)
        self.messages.append(message)
        self.refresh(message)
        return message

    def show_placeholder(self) -> ChatMessage:
        return self.add("assistant", PLACEHOLDER_TEXT, placeholder=True)

    def remove_placeholder(self) -> None:
        self.messages = [m for m in self.messages if not m.placeholder]

    @property
    def placeholder_shown(self) -> bool:
        return any(m.placeholder for m in self.messages)

    def fail(self, text: str) -> ChatMessage:
        """Transport-level failure: drop the placeholder and show one error message."""
        self.remove_placeholder()
        return self.add("assistant", text)

    def refresh(self, message: ChatMessage) -> None:
        if self._on_change is not None:
            self._on_change(message)


class AssistantMessage:
    """Assistant reply of one streamed exchange; the placeholder goes when the first record lands."""

    def __init__(self, transcript: ChatTranscript) -> None:
        self._transcript = transcript
        self._message: Optional[ChatMessage] = None

    @property
    def text(self) -> str:
        return self._message.text if self._message else ""

    def _surface(self) -> ChatMessage:
        if self._message is None:
            self._transcript.remove_placeholder()
            self._message = self._transcript.add("assistant", "")
        return self._message

    def apply(self, record: StreamRecord) -> None:
        message = self._surface()
        if record.kind is RecordKind.TOKEN:
            message.text += record.token
        elif record.kind is RecordKind.ERROR:
            message.text += ERROR_ANNOTATION + record.error
        else:
            return
        self._transcript.refresh(message)

    def finish(self) -> None:
        message = self._surface()
        if not message.text:
            message.text = NO_RESPONSE_TEXT
            self._transcript.refresh(message)
