"""Error taxonomy shared by the relay, the web layer and the client decoder."""

from __future__ import annotations


class RelayError(Exception):
    """Base for errors reported to the caller as ``{"error": ...}`` with ``status_code``."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequest(RelayError):
    """Missing or empty required input. Raised before any upstream call."""

    status_code = 400


class UpstreamFailure(RelayError):
    """The completion source failed before any output was committed."""

    status_code = 502


class DecodeAnomaly(ValueError):
    """A line of the NDJSON stream is not a valid record. Never fatal to the stream."""

    def __init__(self, message: str, line: str) -> None:
        super().__init__(message)
        self.line = line
