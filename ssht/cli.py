"""``ssht <destination>``: attach to remote tmux and serve pane requests locally."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import Optional

from instrukt_ai_logging import get_logger
from pydantic import ValidationError

from ssht.app import run_session
from ssht.config import load_config
from ssht.constants import LOG_LEVEL_ENV
from ssht.logging_config import setup_logging
from ssht.remote import RemoteError

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ssht",
        description="Attach to tmux on a remote host and expose pane navigation on a local socket.",
    )
    parser.add_argument("destination", help="remote host, e.g. user@host or user@host:port")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    setup_logging(level=os.getenv(LOG_LEVEL_ENV))

    try:
        settings = load_config()
    except ValidationError as e:
        logger.error("Invalid configuration: %s", e)
        return 1

    try:
        return asyncio.run(run_session(args.destination, settings))
    except RemoteError as e:
        logger.error("Remote session failed: %s", e)
        return 1
    except OSError as e:
        logger.error("Local I/O failed: %s", e, exc_info=True)
        return 1
    except KeyboardInterrupt:
        logger.info("Received interrupt signal...")
        return 130


if __name__ == "__main__":
    sys.exit(main())
