#!/usr/bin/env python3
"""
Logging setup for the coddy command line.
Records go through rich so they share the console with lesson output.
"""

import logging
import os

from rich.logging import RichHandler


def configure_logging(verbose: bool = False) -> None:
    """Route log records through rich; level from CODDY_LOG_LEVEL or -v."""
    level = "DEBUG" if verbose else os.getenv("CODDY_LOG_LEVEL", "WARNING").upper()

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=verbose, show_path=verbose)],
        force=True,
    )

    if not verbose:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
