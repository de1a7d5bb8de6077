"""
Logging configuration — set up once by the CLI entrypoint.

Every module does ``logger = logging.getLogger(__name__)`` and inherits
this config. Library callers that embed the engine configure logging
themselves; nothing here runs on import.

Console level precedence:
    CLI flag  >  DEVKIT_LOG_LEVEL  >  WARNING

A log file is added when DEVKIT_LOG_FILE is set (level from
DEVKIT_LOG_FILE_LEVEL, else the console level).
"""

from __future__ import annotations

import logging
import os
import sys

ENV_LEVEL = "DEVKIT_LOG_LEVEL"
ENV_FILE = "DEVKIT_LOG_FILE"
ENV_FILE_LEVEL = "DEVKIT_LOG_FILE_LEVEL"

# Console formats by verbosity: (format, datefmt)
_CONSOLE_FORMATS = {
    logging.DEBUG: ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
}
_FMT_MINIMAL = "%(message)s"

_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

# asyncio logs slow-callback and subprocess-transport chatter at DEBUG
_NOISY_LOGGERS = ("asyncio",)


def parse_level(level: str | None, default: int = logging.WARNING) -> int:
    """Convert a level name to its numeric constant (``default`` if unknown)."""
    if not level:
        return default
    numeric = getattr(logging, level.strip().upper(), None)
    return numeric if isinstance(numeric, int) else default


def resolve_level(cli_level: str | None = None) -> str:
    """Pick the console level name: CLI flag, then env var, then WARNING."""
    if cli_level:
        return cli_level
    return os.environ.get(ENV_LEVEL) or "WARNING"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Configure the root logger for the process.

    Args:
        level: Console log level name.
        log_file: Optional log file path (default: ``$DEVKIT_LOG_FILE``).
        log_file_level: File level name (default: ``$DEVKIT_LOG_FILE_LEVEL``,
            then ``level``).
        quiet_third_party: Hold noisy library loggers at WARNING unless
            the console runs at DEBUG.
    """
    console_level = parse_level(level)
    if console_level <= logging.DEBUG:
        fmt, datefmt = _CONSOLE_FORMATS[logging.DEBUG]
    elif console_level <= logging.INFO:
        fmt, datefmt = _CONSOLE_FORMATS[logging.INFO]
    else:
        fmt, datefmt = _FMT_MINIMAL, None

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = console_level

    log_file = log_file or os.environ.get(ENV_FILE)
    if log_file:
        file_level = parse_level(
            log_file_level or os.environ.get(ENV_FILE_LEVEL), default=console_level,
        )
        root_level = min(root_level, file_level)

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(file_handler)

    root.setLevel(root_level)

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False
