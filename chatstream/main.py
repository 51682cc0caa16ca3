"""
Command line entry point: stream one chat reply to stdout.
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

import structlog

from chatstream.config import Configuration
from chatstream.llm import (
    ChatMessage,
    MessageRole,
    RequestRejected,
    StreamingChatClient,
    TransportFailure,
)
from chatstream.logging_utils import StreamErrorHandler, configure_logging

logger = structlog.get_logger(__name__)


class IncrementalPrinter:
    """Writes only the part of the accumulated text not yet shown."""

    def __init__(self, stream=None) -> None:
        self.stream = stream or sys.stdout
        self.shown = 0

    def __call__(self, text: str) -> None:
        self.stream.write(text[self.shown:])
        self.stream.flush()
        self.shown = len(text)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Stream a chat reply from an LLM.")
    parser.add_argument("prompt", help="User message to send")
    parser.add_argument("--provider", help="Provider name from config.yaml")
    parser.add_argument("--system", help="System prompt")
    parser.add_argument("--config", help="Path to an alternative config.yaml")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    """Stream one reply; returns the process exit code."""
    try:
        config = Configuration(args.config)
        configure_logging(config.get_logging_config()["level"])
        provider_config = config.get_provider_config(args.provider)
        streaming_config = config.get_streaming_config()
    except ValueError as e:
        logger.error("Invalid configuration", error=str(e))
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    messages = [ChatMessage(role=MessageRole.USER, content=args.prompt)]

    async with StreamingChatClient(provider_config, streaming_config) as client:
        accumulator = client.create_accumulator()

        # Ctrl+C stops the stream cleanly and keeps the partial reply
        if sys.platform != "win32":
            loop = asyncio.get_running_loop()
            loop.add_signal_handler(signal.SIGINT, accumulator.cancel)

        printer = IncrementalPrinter()
        try:
            result = await client.stream_chat(
                messages,
                printer,
                system_prompt=args.system,
                accumulator=accumulator,
            )
        except (RequestRejected, TransportFailure) as e:
            logger.error("Request failed", error=str(e))
            print(StreamErrorHandler.describe_error(e), file=sys.stderr)
            return 1
        finally:
            if sys.platform != "win32":
                asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)

    printer(StreamErrorHandler.describe(result))
    print()
    if result.error is not None and result.error.user_visible:
        return 1
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    sys.exit(asyncio.run(run(parse_args(argv))))


if __name__ == "__main__":
    main()
