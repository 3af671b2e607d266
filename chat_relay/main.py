"""Entry point for chat-relay: load config once, configure logging, serve the Flask app."""

from __future__ import annotations

import logging
import sys

from chat_relay.config import get_config
from chat_relay.core.logging_config import setup_logging
from chat_relay.web.app import create_app

logger = logging.getLogger(__name__)


def main() -> None:
    config = get_config()
    setup_logging(level=config.logging.level, use_json=config.logging.use_json)
    if not config.model.api_key:
        logger.error("NVIDIA_API_KEY is required. Set it in the environment before starting.")
        sys.exit(1)
    app = create_app(config)
    logger.info(
        "chat-relay listening",
        extra={"host": config.server.host, "port": config.server.port, "model": config.model.name},
    )
    app.run(host=config.server.host, port=config.server.port, threaded=True)


if __name__ == "__main__":
    main()
