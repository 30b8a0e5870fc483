"""Entry point: python -m stepnote

Starts the interactive REPL over the file store configured in stepnote.toml
(or the STEPNOTE_* environment variables).
"""

from __future__ import annotations

import asyncio
import logging
import sys

from stepnote.config import load_config


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


async def _run() -> None:
    config = load_config()
    _setup_logging(config.log_level)

    from stepnote.connectors.cli import CLIConnector
    from stepnote.core import StepBoard

    board = StepBoard.from_config(config)
    await board.load()
    cli = CLIConnector(board)
    try:
        await cli.start()
    finally:
        await board.close()


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else "repl"

    if cmd != "repl":
        print("Usage: python -m stepnote [repl]")
        sys.exit(1)
    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
