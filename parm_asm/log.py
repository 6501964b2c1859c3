"""
Logging setup for the parm_asm package and the parmasm CLI.

Library modules only call logging.getLogger(__name__); handlers are attached
here, once, by the application. Console output goes through rich; an optional
log file captures everything at DEBUG with function and line number.
"""

from __future__ import annotations
import logging
import sys
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

FILE_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"
FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    name: str = "parm_asm",
    level: int = logging.DEBUG,
    console_level: int = logging.WARNING,
    log_file: Optional[Union[str, Path]] = None,
    rich_console: bool = True,
) -> logging.Logger:
    """
    Configure and return the package logger.

    Console: WARNING+ by default (INFO/DEBUG with -v/-vv), written to stderr
    so assembled output on stdout stays clean.
    File: everything from DEBUG up, only when `log_file` is given.

    Calling it again replaces the handlers it installed before.
    """
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)
    logger.propagate = False

    # ── File handler: captures everything (DEBUG+) ──
    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(path), encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATEFMT))
        logger.addHandler(fh)

    # ── Console handler ──
    if rich_console:
        ch = RichHandler(
            console=Console(stderr=True),
            level=console_level,
            show_time=False,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )
    else:
        ch = logging.StreamHandler(sys.stderr)
        ch.setFormatter(logging.Formatter("%(levelname)-7s | %(message)s"))
    ch.setLevel(console_level)
    logger.addHandler(ch)

    logger.debug("Logger initialized: %s (console %s, file %s)", name,
                 logging.getLevelName(console_level), log_file or "none")
    return logger


def verbosity_to_level(verbose: int) -> int:
    """-v -> INFO, -vv -> DEBUG, default WARNING."""
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return logging.WARNING
