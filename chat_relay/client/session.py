"""HTTP client for a running relay: streaming or buffered submission into a ChatTranscript."""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path
from typing import Optional

import httpx

from chat_relay.client.appender import NO_RESPONSE_TEXT, AssistantMessage, ChatTranscript
from chat_relay.client.decoder import NdjsonDecoder

logger = logging.getLogger(__name__)


class ChatRequestError(Exception):
    """The relay rejected a request (non-2xx status)."""


class ChatClient:
    """One submission at a time; each ``send`` is a stateless exchange with the relay."""

    def __init__(
        self,
        base_url: str,
        transcript: Optional[ChatTranscript] = None,
        *,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self.transcript = transcript or ChatTranscript()

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout, transport=self._transport)

    async def send(self, text: str = "", attachment: str | Path | None = None) -> Optional[str]:
        """Submit a message; with an attachment the buffered endpoint is used.

        Returns the last assistant message text, or None when there was nothing to send.
        """
        text = (text or "").strip()
        path = Path(attachment) if attachment else None
        if not text and path is None:
            return None
        if text:
            self.transcript.add("user", text)
        if path is not None:
            self.transcript.add("user", f"Attached file: {path.name}")
        self.transcript.show_placeholder()
        async with self._client() as client:
            if path is not None:
                await self._send_buffered(client, text, path)
            else:
                await self._send_streaming(client, text)
        return self.transcript.messages[-1].text

    async def _send_buffered(self, client: httpx.AsyncClient, text: str, path: Path) -> None:
        mime = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        try:
            content = path.read_bytes()
            resp = await client.post(
                "/chat",
                data={"message": text},
                files={"file": (path.name, content, mime)},
            )
            data = resp.json()
        except (httpx.HTTPError, OSError, ValueError) as e:
            logger.warning("buffered chat failed: %s", e)
            self.transcript.fail(f"Network/server error: {e}")
            return
        self.transcript.remove_placeholder()
        if isinstance(data, dict) and data.get("error"):
            self.transcript.add("assistant", f"Error: {data['error']}")
        else:
            reply = data.get("reply") if isinstance(data, dict) else None
            self.transcript.add("assistant", reply or NO_RESPONSE_TEXT)

    async def _send_streaming(self, client: httpx.AsyncClient, text: str) -> None:
        reply = AssistantMessage(self.transcript)
        decoder = NdjsonDecoder()
        try:
            async with client.stream("POST", "/chat/stream", json={"message": text}) as resp:
                if not resp.is_success:
                    body = (await resp.aread()).decode("utf-8", errors="replace")
                    raise ChatRequestError(f"Stream request failed: {body}")
                async for chunk in resp.aiter_bytes():
                    for record in decoder.feed(chunk):
                        reply.apply(record)
                for record in decoder.finish():
                    reply.apply(record)
        except (httpx.HTTPError, ChatRequestError) as e:
            logger.warning("streaming chat failed: %s", e)
            self.transcript.fail(f"Error streaming response: {e}")
            return
        reply.finish()
