"""Terminal chat against a running relay.

Usage:
  chat-relay-client "hello"
  chat-relay-client --file notes.txt "summarize this"
  chat-relay-client            # interactive, Ctrl-D to quit
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from typing import Optional, TextIO

from chat_relay.client.appender import ChatMessage, ChatTranscript
from chat_relay.client.session import ChatClient

DEFAULT_URL = "http://localhost:3000"


class TerminalView:
    """Writes each assistant message as it grows; placeholders and user echoes are skipped."""

    def __init__(self, out: TextIO) -> None:
        self._out = out
        self._current: Optional[ChatMessage] = None
        self._written = 0

    def render(self, message: ChatMessage) -> None:
        if message.role != "assistant" or message.placeholder:
            return
        if message is not self._current:
            self.end()
            self._current = message
            self._written = 0
        self._out.write(message.text[self._written :])
        self._written = len(message.text)
        self._out.flush()

    def end(self) -> None:
        if self._current is not None:
            self._out.write("\n")
            self._out.flush()
            self._current = None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chat-relay-client", description="Chat with a chat-relay server.")
    parser.add_argument("message", nargs="*", help="message text; omit for interactive mode")
    parser.add_argument("--url", default=os.getenv("CHAT_RELAY_URL", DEFAULT_URL), help="relay base URL")
    parser.add_argument("--file", help="attach a file (uses the buffered endpoint)")
    parser.add_argument("--timeout", type=float, default=120.0, help="HTTP timeout in seconds")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    view = TerminalView(sys.stdout)
    client = ChatClient(args.url, ChatTranscript(on_change=view.render), timeout=args.timeout)

    text = " ".join(args.message)
    if text or args.file:
        asyncio.run(client.send(text, args.file))
        view.end()
        return 0
    while True:
        try:
            line = input("> ")
        except (EOFError, KeyboardInterrupt):
            print()
            return 0
        asyncio.run(client.send(line))
        view.end()


if __name__ == "__main__":
    sys.exit(main())
