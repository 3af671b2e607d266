"""OpenAI-compatible completion source (NVIDIA Integrate by default) via the OpenAI client."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, AsyncIterator

from openai import AsyncOpenAI

from chat_relay.models.streaming import ChatMessages

if TYPE_CHECKING:
    from chat_relay.config.loader import ModelSettings

logger = logging.getLogger(__name__)


class OpenAICompletionSource:
    """Chat Completions API. One client per call so no connection outlives its event loop."""

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        model_name: str = "nvidia/llama-3.1-nemotron-ultra-253b-v1",
        temperature: float = 0.6,
        top_p: float = 0.95,
        max_tokens: int = 1024,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._model_name = model_name
        self._params = {"temperature": temperature, "top_p": top_p, "max_tokens": max_tokens}

    @classmethod
    def from_settings(cls, settings: ModelSettings) -> "OpenAICompletionSource":
        return cls(
            api_key=settings.api_key,
            base_url=settings.base_url or None,
            model_name=settings.name,
            temperature=settings.temperature,
            top_p=settings.top_p,
            max_tokens=settings.max_tokens,
        )

    def _new_client(self) -> AsyncOpenAI:
        return AsyncOpenAI(api_key=self._api_key, base_url=self._base_url)

    async def complete(self, messages: ChatMessages) -> str:
        client = self._new_client()
        try:
            resp = await client.chat.completions.create(
                model=self._model_name,
                messages=messages,
                **self._params,
            )
        finally:
            await client.close()
        if not resp.choices:
            return ""
        return resp.choices[0].message.content or ""

    async def open_stream(self, messages: ChatMessages) -> AsyncIterator[str]:
        client = self._new_client()
        try:
            stream = await client.chat.completions.create(
                model=self._model_name,
                messages=messages,
                stream=True,
                **self._params,
            )
        except BaseException:
            await client.close()
            raise
        logger.debug("upstream stream opened", extra={"model": self._model_name})
        return CompletionFragments(client, stream)


class CompletionFragments:
    """Content deltas of one streamed completion.

    ``aclose()`` releases the upstream response and the client whether or not
    iteration has started; exhaustion and errors release them too. Empty
    deltas (role/finish chunks) are dropped.
    """

    def __init__(self, client: AsyncOpenAI, stream) -> None:
        self._client = client
        self._stream = stream
        self._chunks = stream.__aiter__()
        self._closed = False

    def __aiter__(self) -> "CompletionFragments":
        return self

    async def __anext__(self) -> str:
        if self._closed:
            raise StopAsyncIteration
        while True:
            try:
                chunk = await self._chunks.__anext__()
            except BaseException:
                await self.aclose()
                raise
            delta = chunk.choices[0].delta if chunk.choices else None
            if delta and getattr(delta, "content", None):
                return delta.content

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        # openai.AsyncStream closes with close(); plain async generators with aclose().
        close = getattr(self._stream, "close", None) or getattr(self._stream, "aclose", None)
        try:
            if close is not None:
                await close()
        finally:
            await self._client.close()
