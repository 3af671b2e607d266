"""Tests for the Flask endpoints."""

import io
import json
from urllib.parse import urlparse

import pytest

from chat_relay.web.app import create_app
from chat_relay.tests.stubs import StubSource


def _app_with(config, source):
    app = create_app(config, source=source)
    app.config["TESTING"] = True
    return app.test_client()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.get_json() == {"ok": True}


def test_index_page(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.mimetype == "text/html"
    assert b"/chat/stream" in r.data
    assert b"data-placeholder" in r.data


def test_cors_header(client):
    r = client.get("/health")
    assert r.headers["Access-Control-Allow-Origin"] == "*"


def test_stream_scenario(client, stub_source):
    r = client.post("/chat/stream", json={"message": "hi"})
    assert r.status_code == 200
    assert r.headers["Content-Type"].startswith("application/x-ndjson")
    assert r.headers["Cache-Control"] == "no-cache, no-transform"
    assert r.headers["X-Accel-Buffering"] == "no"
    assert r.data == b'{"token":"He"}\n{"token":"llo"}\n{"done":true}\n'
    assert stub_source.calls[0][0] == {"role": "system", "content": "You are a test assistant."}


@pytest.mark.parametrize("payload", [{"message": ""}, {"message": "   "}, {}, {"text": "hi"}])
def test_stream_rejects_empty_message(client, stub_source, payload):
    r = client.post("/chat/stream", json=payload)
    assert r.status_code == 400
    assert r.get_json() == {"error": "Message required"}
    assert stub_source.calls == []


def test_stream_rejects_non_json_body(client, stub_source):
    r = client.post("/chat/stream", data="hi", content_type="text/plain")
    assert r.status_code == 400
    assert stub_source.calls == []


def test_stream_open_failure_is_json_error(config):
    client = _app_with(config, StubSource(open_error=ConnectionError("connect timeout")))
    r = client.post("/chat/stream", json={"message": "hi"})
    assert r.status_code == 502
    assert r.get_json() == {"error": "connect timeout"}


def test_stream_failure_after_tokens_is_in_band(config):
    client = _app_with(config, StubSource(["Hel", "lo"], fail_after=2))
    r = client.post("/chat/stream", json={"message": "hi"})
    assert r.status_code == 200
    records = [json.loads(line) for line in r.data.splitlines()]
    assert records == [{"token": "Hel"}, {"token": "lo"}, {"error": "upstream connection reset"}]


def test_chat_buffered_text_only(client, stub_source):
    r = client.post("/chat", data={"message": "hello"})
    assert r.status_code == 200
    assert r.get_json() == {"reply": "Hi there"}
    assert stub_source.calls[0] == [
        {"role": "system", "content": "You are a test assistant."},
        {"role": "user", "content": "hello"},
    ]


def test_chat_buffered_without_fields_still_calls_upstream(client, stub_source):
    r = client.post("/chat", data={})
    assert r.status_code == 200
    assert stub_source.calls[0] == [{"role": "system", "content": "You are a test assistant."}]


def test_chat_with_file_references_download(client, stub_source, config):
    r = client.post(
        "/chat",
        data={"message": "read this", "file": (io.BytesIO(b"hello"), "my notes.txt")},
        content_type="multipart/form-data",
    )
    assert r.status_code == 200
    assert r.get_json() == {"reply": "Hi there"}

    messages = stub_source.calls[0]
    assert messages[1] == {"role": "user", "content": "read this"}
    note = messages[2]["content"]
    assert note.startswith("File attached: my notes.txt (type: text/plain, size: 5 bytes). Download: ")
    url = note.split("Download: ", 1)[1]
    path = urlparse(url).path
    assert path.startswith("/uploads/")
    assert path.endswith("-my_notes.txt")
    assert len(list(config.uploads_path.iterdir())) == 1

    download = client.get(path)
    assert download.status_code == 200
    assert download.data == b"hello"


def test_chat_upstream_error(config):
    client = _app_with(config, StubSource(complete_error=RuntimeError("model overloaded")))
    r = client.post("/chat", data={"message": "hello"})
    assert r.status_code == 502
    assert r.get_json() == {"error": "model overloaded"}


def test_missing_upload_is_404(client):
    assert client.get("/uploads/nope.txt").status_code == 404
