"""Tests for the server entry point."""

from unittest.mock import MagicMock

import pytest

from chat_relay import main as main_module
from chat_relay.config.loader import Config


def test_missing_api_key_exits_before_serving(monkeypatch):
    create_app = MagicMock()
    monkeypatch.setattr(main_module, "get_config", lambda: Config())
    monkeypatch.setattr(main_module, "create_app", create_app)
    with pytest.raises(SystemExit) as exc_info:
        main_module.main()
    assert exc_info.value.code == 1
    create_app.assert_not_called()


def test_serves_with_config(monkeypatch):
    config = Config(model={"api_key": "k"}, server={"port": 4321, "host": "127.0.0.1"})
    app = MagicMock()
    monkeypatch.setattr(main_module, "get_config", lambda: config)
    monkeypatch.setattr(main_module, "create_app", lambda c: app)
    main_module.main()
    app.run.assert_called_once_with(host="127.0.0.1", port=4321, threaded=True)
