"""Loguru setup for the CLI and library.

Console output goes to stderr at the configured level (``--verbose`` and
``--quiet`` override it). Standard library loggers, used by the tracker,
queue and cache as well as httpx and githubkit, are routed into loguru.
An optional rotating log file records everything at DEBUG.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from loguru import logger

if TYPE_CHECKING:
    from types import FrameType

    from loguru import Logger, Record

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# HTTP stack loggers; only shown when debugging
QUIET_LIBRARIES = ("httpx", "httpcore", "githubkit")

CONSOLE_FORMAT = (
    "<dim>{time:HH:mm:ss}</dim> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[source]}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{extra[source]}:{function}:{line} | {extra} | {message}"
)


class InterceptHandler(logging.Handler):
    """Forward standard library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so loguru reports the real call site
        frame: FrameType | None = logging.currentframe()
        depth = 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.bind(name=record.name).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _label_source(record: Record) -> None:
    # Unbound loguru calls fall back to the calling module
    extra = record["extra"]
    extra.setdefault("source", extra.get("name") or record["name"] or "root")


def _effective_level(level: LogLevel, verbose: bool, quiet: bool) -> LogLevel:
    if verbose:
        return "DEBUG"
    if quiet:
        return "WARNING"
    return level


def setup_logging(
    level: LogLevel = "INFO",
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    serialize: bool = False,
) -> LogLevel:
    """Replace loguru's sinks with the application's.

    Safe to call more than once; each call starts from no sinks.

    Args:
        level: Console level from settings
        verbose: Force DEBUG (wins over ``quiet``)
        quiet: Force WARNING
        log_file: Rotating file that receives DEBUG and above
        rotation: Size or age at which the file rotates
        retention: How long rotated files are kept
        serialize: Write the file as JSON lines

    Returns:
        The console level in effect
    """
    effective = _effective_level(level, verbose, quiet)

    logger.remove()
    logger.configure(patcher=_label_source)
    logger.add(
        sys.stderr,
        level=effective,
        format=CONSOLE_FORMAT,
        colorize=True,
        backtrace=True,
        diagnose=True,
    )
    if log_file is not None:
        logger.add(
            log_file,
            level="DEBUG",
            format=FILE_FORMAT,
            rotation=rotation,
            retention=retention,
            compression="gz",
            serialize=serialize,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    library_level = logging.DEBUG if effective in ("TRACE", "DEBUG") else logging.WARNING
    for name in QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(library_level)

    return effective


def get_logger(name: str) -> Logger:
    """Loguru logger labelled with ``name`` (typically ``__name__``)."""
    return logger.bind(name=name)


def bind_repo(owner: str, repo: str) -> Logger:
    """Logger for one fetch, carrying ``repo="owner/repo"``."""
    return logger.bind(name="fetch", repo=f"{owner}/{repo}")
