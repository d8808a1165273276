# src/vehix/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppContext, then runs the console REPL.
"""

from __future__ import annotations

import logging

from ..cli.bootstrap import create_app_context
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    console_level = getattr(logging, settings.log_level, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    ctx = create_app_context(settings=settings)

    try:
        run_console_loop(ctx)
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
