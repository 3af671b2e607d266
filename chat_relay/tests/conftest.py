"""Pytest fixtures and config."""

import pytest

from chat_relay.config.loader import Config
from chat_relay.tests.stubs import StubSource
from chat_relay.web.app import create_app


@pytest.fixture(autouse=True)
def env_cleanup(monkeypatch):
    """Avoid picking up real credentials or deployment overrides in tests."""
    for name in ("NVIDIA_API_KEY", "PORT", "LOG_LEVEL", "CHAT_RELAY_ENV"):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def config(tmp_path):
    return Config(
        server={"uploads_dir": str(tmp_path / "uploads")},
        model={"api_key": "test-key", "system_prompt": "You are a test assistant."},
    )


@pytest.fixture
def stub_source():
    return StubSource(["He", "llo"], reply="Hi there")


@pytest.fixture
def app(config, stub_source):
    app = create_app(config, source=stub_source)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
