"""Tests for ChatClient against a mocked relay (httpx.MockTransport)."""

import json

import httpx
import pytest

from chat_relay.client.appender import ChatTranscript
from chat_relay.client.session import ChatClient

STREAM_BODY = '{"token":"Hé"}\n{"token":"llo"}\n{"token":" 🙂"}\n{"done":true}\n'.encode("utf-8")


def _chunked(data: bytes, size: int):
    async def gen():
        for i in range(0, len(data), size):
            yield data[i : i + size]

    return gen()


def _client(handler, transcript=None):
    return ChatClient("http://relay", transcript, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
@pytest.mark.parametrize("chunk_size", [1, 3, 7, len(STREAM_BODY)])
async def test_streaming_reply_concatenates_tokens(chunk_size):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.url.path, json.loads(request.content)))
        return httpx.Response(
            200,
            headers={"Content-Type": "application/x-ndjson"},
            content=_chunked(STREAM_BODY, chunk_size),
        )

    client = _client(handler)
    out = await client.send("hi")
    assert out == "Héllo 🙂"
    assert seen == [("/chat/stream", {"message": "hi"})]
    assert [(m.role, m.text) for m in client.transcript.messages] == [
        ("user", "hi"),
        ("assistant", "Héllo 🙂"),
    ]
    assert not client.transcript.placeholder_shown


@pytest.mark.asyncio
async def test_streaming_error_after_tokens():
    body = b'{"token":"Hel"}\n{"token":"lo"}\n{"error":"upstream reset"}\n'

    def handler(request):
        return httpx.Response(200, content=_chunked(body, 5))

    client = _client(handler)
    out = await client.send("hi")
    assert out == "Hello\n\nError: upstream reset"


@pytest.mark.asyncio
async def test_streaming_rejected_request():
    def handler(request):
        return httpx.Response(400, json={"error": "Message required"})

    client = _client(handler)
    await client.send("hi")
    assistant = [m for m in client.transcript.messages if m.role == "assistant"]
    assert len(assistant) == 1
    assert assistant[0].text.startswith("Error streaming response: Stream request failed: ")
    assert "Message required" in assistant[0].text
    assert not client.transcript.placeholder_shown


@pytest.mark.asyncio
async def test_streaming_network_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = _client(handler)
    out = await client.send("hi")
    assert out == "Error streaming response: connection refused"
    assert not client.transcript.placeholder_shown


@pytest.mark.asyncio
async def test_buffered_with_attachment(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("some notes")
    seen = []

    def handler(request):
        seen.append((request.url.path, request.content))
        return httpx.Response(200, json={"reply": "Summary."})

    client = _client(handler)
    out = await client.send("summarize", path)
    assert out == "Summary."
    assert seen[0][0] == "/chat"
    assert b'filename="notes.txt"' in seen[0][1]
    assert b"some notes" in seen[0][1]
    assert [m.text for m in client.transcript.messages] == [
        "summarize",
        "Attached file: notes.txt",
        "Summary.",
    ]


@pytest.mark.asyncio
async def test_buffered_server_error(tmp_path):
    path = tmp_path / "a.bin"
    path.write_bytes(b"\x00\x01")

    def handler(request):
        return httpx.Response(502, json={"error": "model overloaded"})

    client = _client(handler)
    assert await client.send("", path) == "Error: model overloaded"
    assert not client.transcript.placeholder_shown


@pytest.mark.asyncio
async def test_buffered_empty_reply(tmp_path):
    path = tmp_path / "a.txt"
    path.write_text("x")

    def handler(request):
        return httpx.Response(200, json={"reply": ""})

    assert await _client(handler).send("hi", path) == "(no response)"


@pytest.mark.asyncio
async def test_buffered_non_json_response(tmp_path):
    path = tmp_path / "a.txt"
    path.write_text("x")

    def handler(request):
        return httpx.Response(502, text="<html>Bad Gateway</html>")

    client = _client(handler)
    out = await client.send("hi", path)
    assert out.startswith("Network/server error: ")
    assert sum(1 for m in client.transcript.messages if m.role == "assistant") == 1


@pytest.mark.asyncio
async def test_nothing_to_send():
    def handler(request):
        raise AssertionError("no request expected")

    transcript = ChatTranscript()
    assert await _client(handler, transcript).send("   ") is None
    assert transcript.messages == []
