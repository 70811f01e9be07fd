"""Command-line entry point that runs the vision MCP server over stdio."""

from __future__ import annotations

import argparse
import os
import signal
import sys
import threading
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass

from vision_mcp.client import Config, VisionClient
from vision_mcp.server import McpServer
from vision_mcp.tool import register

SERVER_NAME = "vision-mcp"
SERVER_VERSION = "0.1.0"
DEFAULT_MODEL = "gpt-4.1-mini"
DEFAULT_MAX_TOKENS = 1024

_DESCRIPTION = """\
vision-mcp is a Model Context Protocol server that exposes a single "see" tool.
The tool accepts an image source (file path, HTTP URL, or data URL), an optional question,
optional crop region, and sends the image to a vision-capable model via any OpenAI-compatible API.

Required environment variables:
  VISION_API_BASE_URL   Base URL of the OpenAI-compatible API (e.g. http://localhost:11434/v1)
  VISION_API_KEY        API key / bearer token

Optional environment variables:
  VISION_API_MODEL      Model name (default: gpt-4.1-mini)
  VISION_API_MAX_TOKENS Default max response tokens (default: 1024)"""


class ConfigurationError(Exception):
    """Raised when required settings are missing."""


@dataclass(frozen=True)
class Settings:
    """Settings read from the environment."""

    base_url: str
    api_key: str
    model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS

    def client_config(self) -> Config:
        return Config(
            base_url=self.base_url,
            api_key=self.api_key,
            model=self.model,
            max_tokens=self.max_tokens,
        )


def _to_int(text: str) -> int:
    text = text.strip()
    for base in (10, 0):
        try:
            return int(text, base)
        except ValueError:
            continue
    try:
        value = float(text)
    except ValueError:
        return 0
    return int(value) if value.is_integer() else 0


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Read settings from ``environ`` (the process environment by default)."""
    env = os.environ if environ is None else environ
    base_url = env.get("VISION_API_BASE_URL", "")
    api_key = env.get("VISION_API_KEY", "")
    if not base_url:
        raise ConfigurationError("VISION_API_BASE_URL is required but not set")
    if not api_key:
        raise ConfigurationError("VISION_API_KEY is required but not set")

    model = env.get("VISION_API_MODEL") or DEFAULT_MODEL
    raw_tokens = env.get("VISION_API_MAX_TOKENS")
    max_tokens = _to_int(raw_tokens) if raw_tokens else DEFAULT_MAX_TOKENS
    return Settings(base_url=base_url, api_key=api_key, model=model, max_tokens=max_tokens)


@contextmanager
def _interrupt_on_sigterm() -> Iterator[None]:
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _raise(signum, frame):
        raise KeyboardInterrupt

    previous = signal.signal(signal.SIGTERM, _raise)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=SERVER_NAME,
        description=_DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("args", nargs="*", help=argparse.SUPPRESS)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the MCP server on stdin/stdout; return the process exit status."""
    _parser().parse_args(argv)

    try:
        settings = load_settings()
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    server = McpServer(SERVER_NAME, SERVER_VERSION)
    with VisionClient(settings.client_config()) as client:
        register(server, client)
        try:
            with _interrupt_on_sigterm():
                server.serve(sys.stdin, sys.stdout)
        except KeyboardInterrupt:
            pass
    return 0


if __name__ == "__main__":
    sys.exit(main())