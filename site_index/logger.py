"""Logging for SiteIndex.

Everything logs under the ``SiteIndex`` logger. Components take a child via
:func:`get_logger` so a line shows where it came from:

==========================  ============================================
``SiteIndex.crawler``       job lifecycle, per-page failures
``SiteIndex.fetcher``       retries and backoff
``SiteIndex.robots``        robots.txt availability
``SiteIndex.sitemap``       sitemap fetches and dropped foreign URLs
``SiteIndex.store``         index writes and loads
``SiteIndex.progress``      subscriber replacement
``SiteIndex.server``        crawl triggers, progress streams, 5xx answers
==========================  ============================================

The CLI calls :func:`configure` once per invocation with ``--log-level``,
``--log-file`` and ``--log-format``. Until then the module-level
:data:`logger` writes INFO and above to stdout.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Iterator, Union

DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOGGER_NAME: Final[str] = "SiteIndex"

#: rotation of ``--log-file``: 5 MiB per file, three backups
MAX_LOG_BYTES: Final[int] = 5 * 1024 * 1024
LOG_BACKUPS: Final[int] = 3


def _handlers(log_file: Union[str, Path, None], fmt: str) -> Iterator[logging.Handler]:
    formatter = logging.Formatter(fmt)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        handlers.append(
            RotatingFileHandler(
                filename=str(log_file),
                maxBytes=MAX_LOG_BYTES,
                backupCount=LOG_BACKUPS,
                encoding="utf-8",
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)
        yield handler


def configure(
    *,
    level: Union[int, str] = "INFO",
    log_file: Union[str, Path, None] = None,
    log_format: str = DEFAULT_FORMAT,
    replace_handlers: bool = True,
) -> logging.Logger:
    """Point the ``SiteIndex`` logger at stdout and, optionally, a rotating file.

    Replaced handlers are closed, so a log file left by an earlier call is
    released. Records do not propagate to the root logger.
    """
    root = logging.getLogger(LOGGER_NAME)
    root.setLevel(level)

    if replace_handlers:
        for handler in root.handlers:
            handler.close()
        root.handlers.clear()

    for handler in _handlers(log_file, log_format):
        root.addHandler(handler)

    root.propagate = False
    return root


def get_logger(name: str | None = None) -> logging.Logger:
    """``SiteIndex`` itself, or its ``SiteIndex.<name>`` child."""
    return logging.getLogger(f"{LOGGER_NAME}.{name}" if name else LOGGER_NAME)


logger: logging.Logger = configure()

__all__ = ["logger", "configure", "get_logger", "DEFAULT_FORMAT", "LOGGER_NAME"]
