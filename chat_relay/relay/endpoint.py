"""Chat relay: request validation, upstream messages and the per-request stream lifecycle."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Iterator, Optional

from chat_relay.core.errors import InvalidRequest, UpstreamFailure
from chat_relay.core.records import RecordKind, encode_record
from chat_relay.models.streaming import ChatMessages, CompletionSource, TokenStream
from chat_relay.relay.framer import frame_records

logger = logging.getLogger(__name__)

STREAM_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "X-Accel-Buffering": "no",
}


@dataclass(frozen=True)
class Attachment:
    """What the upstream model is told about an uploaded file."""

    original_name: str
    mime_type: str
    size: int
    download_url: str

    def describe(self) -> str:
        return (
            f"File attached: {self.original_name} (type: {self.mime_type}, "
            f"size: {self.size} bytes). Download: {self.download_url}"
        )


def build_messages(
    system_prompt: str,
    message: Optional[str] = None,
    attachment: Optional[Attachment] = None,
) -> ChatMessages:
    messages = [{"role": "system", "content": system_prompt}]
    if message:
        messages.append({"role": "user", "content": message})
    if attachment:
        messages.append({"role": "user", "content": attachment.describe()})
    return messages


def require_message(payload: Any) -> str:
    """Extract the ``message`` of a streaming request body or raise InvalidRequest."""
    message = payload.get("message") if isinstance(payload, dict) else None
    if not isinstance(message, str) or not message.strip():
        raise InvalidRequest("Message required")
    return message


class RelayState(str, Enum):
    IDLE = "idle"
    HEADERS_SENT = "headers_sent"
    STREAMING = "streaming"
    DONE = "done"
    ERRORED = "errored"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset((RelayState.DONE, RelayState.ERRORED, RelayState.CANCELLED))

_ALLOWED = {
    RelayState.IDLE: {RelayState.HEADERS_SENT},
    RelayState.HEADERS_SENT: {RelayState.STREAMING, RelayState.CANCELLED},
    RelayState.STREAMING: {RelayState.DONE, RelayState.ERRORED, RelayState.CANCELLED},
}


class RelayStream:
    """WSGI response body for one streaming request.

    The server calls ``close()`` when the response ends or the peer disconnects;
    before a terminal record that means the client went away, so upstream
    pulling stops and nothing more is written.
    """

    def __init__(self, fragments: Iterable[str], request_id: str = "") -> None:
        self.request_id = request_id or uuid.uuid4().hex[:12]
        self.state = RelayState.IDLE
        self.tokens = 0
        self._fragments = fragments
        self._records = frame_records(fragments)
        self._transition(RelayState.HEADERS_SENT)

    def _transition(self, new: RelayState) -> None:
        if new not in _ALLOWED.get(self.state, ()):
            raise RuntimeError(f"invalid relay transition {self.state.value} -> {new.value}")
        self.state = new

    def __iter__(self) -> Iterator[bytes]:
        return self._lines()

    def _lines(self) -> Iterator[bytes]:
        if self.state is not RelayState.HEADERS_SENT:
            return
        self._transition(RelayState.STREAMING)
        for record in self._records:
            if self.state is not RelayState.STREAMING:
                break
            if record.kind is RecordKind.TOKEN:
                self.tokens += 1
                if self.tokens == 1:
                    logger.info("chat.stream first_token", extra={"request_id": self.request_id})
            elif record.kind is RecordKind.DONE:
                self._transition(RelayState.DONE)
                logger.info(
                    "chat.stream done",
                    extra={"request_id": self.request_id, "tokens": self.tokens},
                )
            else:
                self._transition(RelayState.ERRORED)
                logger.warning(
                    "chat.stream error",
                    extra={"request_id": self.request_id, "tokens": self.tokens},
                )
            yield encode_record(record)

    def close(self) -> None:
        if self.state not in TERMINAL_STATES:
            self._transition(RelayState.CANCELLED)
            logger.info(
                "chat.stream cancelled",
                extra={"request_id": self.request_id, "tokens": self.tokens},
            )
        self._records.close()
        close = getattr(self._fragments, "close", None)
        if close is not None:
            close()


class ChatRelay:
    """Stateless per request: every call builds its own upstream message list."""

    def __init__(self, source: CompletionSource, system_prompt: str) -> None:
        self._source = source
        self._system_prompt = system_prompt

    def reply(self, message: Optional[str] = None, attachment: Optional[Attachment] = None) -> str:
        """Buffered completion. Upstream errors become UpstreamFailure."""
        messages = build_messages(self._system_prompt, message, attachment)
        try:
            return asyncio.run(self._source.complete(messages))
        except Exception as e:
            logger.exception("chat reply failed")
            raise UpstreamFailure(str(e) or e.__class__.__name__) from e

    def open_stream(self, payload: Any) -> RelayStream:
        """Validate, open the upstream stream and return the response body.

        Nothing has been written when this raises: InvalidRequest before any
        upstream call, UpstreamFailure if the stream could not be started.
        """
        message = require_message(payload)
        request_id = uuid.uuid4().hex[:12]
        logger.info(
            "chat.stream start",
            extra={"request_id": request_id, "message_len": len(message)},
        )
        messages = build_messages(self._system_prompt, message)
        try:
            fragments = TokenStream.open(lambda: self._source.open_stream(messages))
        except Exception as e:
            logger.exception("chat.stream open failed", extra={"request_id": request_id})
            raise UpstreamFailure(str(e) or e.__class__.__name__) from e
        return RelayStream(fragments, request_id=request_id)
