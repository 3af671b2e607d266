"""Streaming contract for upstream completions.

A completion source produces either one buffered reply or an async iteration
of text fragments (OpenAI Chat Completions ``delta.content`` per chunk).

The relay serves streams from synchronous WSGI workers, so the async iterator
is wrapped in a TokenStream: a single-pass, lazy sequence that drives the
iterator on its own event loop and has an explicit ``close()`` that stops
pulling and releases the upstream connection.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, Iterator, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

ChatMessages = list[dict[str, str]]


@runtime_checkable
class CompletionSource(Protocol):
    """Upstream LLM: buffered or streamed completion of a message list."""

    async def complete(self, messages: ChatMessages) -> str:
        """Return the full reply text."""
        ...

    async def open_stream(self, messages: ChatMessages) -> AsyncIterator[str]:
        """Start a streamed completion and return its content fragments.

        Failures to start the stream are raised here, before any fragment is produced.
        """
        ...


class TokenStream:
    """Cancellable lazy sequence of text fragments backed by a private event loop."""

    def __init__(self, fragments: AsyncIterator[str], loop: asyncio.AbstractEventLoop) -> None:
        self._fragments = fragments
        self._loop = loop
        self._closed = False

    @classmethod
    def open(cls, opener: Callable[[], Awaitable[AsyncIterator[str]]]) -> "TokenStream":
        """Run ``opener`` on a fresh loop; its exceptions propagate and the loop is closed."""
        loop = asyncio.new_event_loop()
        try:
            fragments = loop.run_until_complete(opener())
        except BaseException:
            loop.close()
            raise
        return cls(fragments, loop)

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> Iterator[str]:
        return self

    def __next__(self) -> str:
        if self._closed:
            raise StopIteration
        try:
            fragment = self._loop.run_until_complete(self._fragments.__anext__())
        except StopAsyncIteration:
            self.close()
            raise StopIteration from None
        except BaseException:
            self.close()
            raise
        return fragment

    def close(self) -> None:
        """Stop pulling. Idempotent; finalizes the async iterator and closes the loop."""
        if self._closed:
            return
        self._closed = True
        aclose = getattr(self._fragments, "aclose", None)
        try:
            if aclose is not None:
                self._loop.run_until_complete(aclose())
        except Exception as e:
            logger.warning("upstream stream close failed: %s", e)
        finally:
            self._loop.close()
