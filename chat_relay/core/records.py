"""Stream records: the NDJSON wire format shared by the server framer and the client decoder.

Each line of a ``/chat/stream`` body is one compact JSON object carrying exactly
one of ``token``, ``done`` or ``error``::

    {"token":"He"}
    {"token":"llo"}
    {"done":true}

After a ``done`` or ``error`` record nothing else follows for that request.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from chat_relay.core.errors import DecodeAnomaly

NDJSON_MEDIA_TYPE = "application/x-ndjson"


class RecordKind(str, Enum):
    TOKEN = "token"
    DONE = "done"
    ERROR = "error"


class StreamRecord(BaseModel):
    """Tagged variant: exactly one field is set per record."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    token: Optional[str] = None
    done: Optional[bool] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _exactly_one_variant(self) -> "StreamRecord":
        present = [f for f in ("token", "done", "error") if getattr(self, f) is not None]
        if len(present) != 1:
            raise ValueError(f"expected exactly one of token/done/error, got {present or 'none'}")
        if self.done is not None and self.done is not True:
            raise ValueError("done must be true")
        return self

    @property
    def kind(self) -> RecordKind:
        if self.token is not None:
            return RecordKind.TOKEN
        if self.done is not None:
            return RecordKind.DONE
        return RecordKind.ERROR


def token_record(text: str) -> StreamRecord:
    return StreamRecord(token=text)


def done_record() -> StreamRecord:
    return StreamRecord(done=True)


def error_record(message: str) -> StreamRecord:
    return StreamRecord(error=message)


def encode_record(record: StreamRecord) -> bytes:
    """One NDJSON line. JSON escaping keeps newlines in token text off the wire."""
    return (record.model_dump_json(exclude_none=True) + "\n").encode("utf-8")


def parse_record(line: str) -> StreamRecord:
    """Parse one line (without its newline). Raises DecodeAnomaly on anything malformed."""
    try:
        return StreamRecord.model_validate_json(line)
    except ValidationError as e:
        raise DecodeAnomaly(f"invalid stream record: {e.error_count()} error(s)", line) from e
