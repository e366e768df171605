"""CLI entry point for toolchat-server.

This module provides the command-line interface for starting the toolchat-server.
It can be invoked as `toolchat-server` (via the script entry point) or
`python -m toolchat_server`.
"""

import argparse
import logging
import sys

import uvicorn

from toolchat_server import __version__, create_app
from toolchat_server.config import ToolchatServerSettings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="toolchat-server",
        description="Headless FastAPI server for tool-calling LLM conversations",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"toolchat-server {__version__}",
    )

    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host to bind the server to (default: 127.0.0.1, can be set via TOOLCHAT_HOST)",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind the server to (default: 8000, can be set via TOOLCHAT_PORT)",
    )

    parser.add_argument(
        "--ollama-host",
        type=str,
        default=None,
        help="Ollama server URL (default: http://localhost:11434, can be set via TOOLCHAT_OLLAMA_HOST)",
    )

    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="Chat model to use (default: llama3.2:latest, can be set via TOOLCHAT_MODEL)",
    )

    parser.add_argument(
        "--storage",
        type=str,
        default=None,
        choices=["memory", "json"],
        help="Conversation storage backend (default: memory, can be set via TOOLCHAT_STORAGE)",
    )

    parser.add_argument(
        "--busy-policy",
        type=str,
        default=None,
        choices=["queue", "reject"],
        help="What to do with a turn on a busy conversation (default: queue, can be set via TOOLCHAT_BUSY_POLICY)",
    )

    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Base directory for all data (default: ., can be set via TOOLCHAT_DATA_DIR)",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO, can be set via TOOLCHAT_LOG_LEVEL)",
    )

    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development (uvicorn --reload)",
    )

    return parser


def settings_from_args(args: argparse.Namespace) -> ToolchatServerSettings:
    """Build settings, CLI args override environment variables."""
    overrides = {
        "host": args.host,
        "port": args.port,
        "ollama_host": args.ollama_host,
        "model": args.model,
        "storage": args.storage,
        "busy_policy": args.busy_policy,
        "data_dir": args.data_dir,
        "log_level": args.log_level,
    }
    return ToolchatServerSettings(
        **{key: value for key, value in overrides.items() if value is not None}
    )


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the toolchat-server CLI.

    Parses command-line arguments and starts the uvicorn server with the
    FastAPI application.
    """
    args = build_parser().parse_args(argv)
    settings = settings_from_args(args)

    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)

    app = create_app(settings=settings)

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=args.reload,
    )


if __name__ == "__main__":
    sys.exit(main())
