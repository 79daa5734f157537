"""Command-line launcher for the multichat HTTP service."""

from __future__ import annotations

import argparse
import logging
from typing import Optional

import uvicorn

from llm_providers import ProviderSettings
from multichat import ChatConfig
from multichat.api import create_app

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the multi-provider chat service.")
    parser.add_argument("--host", default="0.0.0.0", help="Host interface to bind.")
    parser.add_argument("--port", type=int, default=8010, help="Port to bind.")
    parser.add_argument("--log_dir", default="./logs", help="Directory for application logs.")
    parser.add_argument("--request_timeout", type=int, default=180, help="Timeout for provider calls (seconds).")
    parser.add_argument(
        "--default_temperature",
        type=float,
        default=0.7,
        help="Sampling temperature used when neither the request nor the model sets one.",
    )
    parser.add_argument(
        "--claude_max_tokens",
        type=int,
        default=4096,
        help="Token cap sent to Claude when the model config has none.",
    )
    parser.add_argument(
        "--no_stream_default",
        action="store_true",
        help="Return complete replies unless a request asks for streaming.",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ChatConfig:
    return ChatConfig(
        provider=ProviderSettings(
            request_timeout=args.request_timeout,
            default_temperature=args.default_temperature,
            claude_max_tokens=args.claude_max_tokens,
        ),
        stream_by_default=not args.no_stream_default,
    )


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    app = create_app(build_config(args), log_dir=args.log_dir)
    logger.info("Starting multichat server on %s:%d", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
