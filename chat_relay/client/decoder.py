"""NDJSON decoder: arbitrary byte chunks in, complete stream records out."""

from __future__ import annotations

import codecs
import logging

from chat_relay.core.errors import DecodeAnomaly
from chat_relay.core.records import StreamRecord, parse_record

logger = logging.getLogger(__name__)


class NdjsonDecoder:
    """Reassembles lines across chunk boundaries, including split multi-byte characters.

    Only ``"\\n"`` terminates a record; the text after the last newline stays
    buffered until more bytes arrive or :meth:`finish` is called. Malformed
    lines are logged and skipped, never raised.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""
        self.anomalies = 0

    @property
    def pending(self) -> str:
        """Decoded text not yet terminated by a newline."""
        return self._buffer

    def feed(self, chunk: bytes) -> list[StreamRecord]:
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return self._parse(lines)

    def finish(self) -> list[StreamRecord]:
        """End of stream: best-effort parse of whatever is left in the buffer."""
        self._buffer += self._decoder.decode(b"", final=True)
        residue, self._buffer = self._buffer, ""
        return self._parse([residue])

    def _parse(self, lines: list[str]) -> list[StreamRecord]:
        records = []
        for line in lines:
            if not line.strip():
                continue
            try:
                records.append(parse_record(line))
            except DecodeAnomaly as e:
                # May be a proxy/buffering artifact or a framing bug upstream; count it either way.
                self.anomalies += 1
                logger.warning("NDJSON parse error: %s (line=%r)", e, line[:200])
        return records
