"""Stream framer: upstream text fragments -> NDJSON stream records."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from chat_relay.core.records import StreamRecord, done_record, error_record, token_record

logger = logging.getLogger(__name__)


def _error_message(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


def frame_records(fragments: Iterable[str]) -> Iterator[StreamRecord]:
    """One token record per non-empty fragment, then exactly one of done/error.

    Closing this generator early stops pulling from ``fragments`` and closes it
    (when it has ``close()``); no terminal record is produced in that case.
    """
    try:
        try:
            for fragment in fragments:
                if not fragment:
                    continue
                yield token_record(fragment)
        except Exception as e:
            logger.warning("upstream stream failed: %s", e)
            yield error_record(_error_message(e))
            return
        yield done_record()
    finally:
        close = getattr(fragments, "close", None)
        if close is not None:
            close()
