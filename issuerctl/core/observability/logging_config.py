"""
Logging configuration — central setup for the CLI entrypoint.

Called once at startup by main.py.  Every module that does
``logger = logging.getLogger(__name__)`` inherits this config.

Levels are resolved in precedence order:
    --debug / --verbose / --quiet  >  ISSUERCTL_LOG_LEVEL  >  WARNING

Console records carry an operator-style ``[LEVEL]`` tag, coloured when
stderr is a terminal. Optional file output via ISSUERCTL_LOG_FILE /
ISSUERCTL_LOG_FILE_LEVEL always uses the full diagnostic format.
"""

from __future__ import annotations

import logging
import sys

import click

# ── Format strings ──────────────────────────────────────────────

# WARNING and above — tag + message
_FMT_MINIMAL = "%(tag)s %(message)s"

# INFO — timestamped with logger name
_FMT_VERBOSE = "%(asctime)s %(tag)s [%(name)s] %(message)s"

# DEBUG — file:line for every record
_FMT_DEBUG = "%(asctime)s %(tag)s %(name)s:%(lineno)d — %(message)s"

_DATEFMT_CONSOLE = "%H:%M:%S"

# File output — always full detail
_FMT_FILE = "%(asctime)s %(levelname)-7s %(name)s:%(lineno)d — %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

_TAG_COLORS = {
    logging.DEBUG: "white",
    logging.INFO: "blue",
    logging.WARNING: "yellow",
    logging.ERROR: "red",
    logging.CRITICAL: "red",
}

# Third-party loggers that are noisy at INFO/DEBUG
_NOISY_LOGGERS = ("urllib3", "werkzeug")


class _TaggedFormatter(logging.Formatter):
    """Adds a ``[LEVEL]`` tag attribute, coloured on a TTY."""

    def __init__(self, fmt: str, datefmt: str | None, color: bool):
        super().__init__(fmt, datefmt=datefmt)
        self._color = color

    def format(self, record: logging.LogRecord) -> str:
        tag = f"[{record.levelname}]"
        if self._color:
            tag = click.style(tag, fg=_TAG_COLORS.get(record.levelno, "white"), bold=True)
        record.tag = tag
        return super().format(record)


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Configure Python logging for the entire process.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to a log file.
        log_file_level: Optional separate level for the log file.
            Defaults to the console level.
        quiet_third_party: Keep noisy third-party loggers at WARNING
            unless the console is at DEBUG.
    """
    numeric_level = _parse_level(level)

    if numeric_level <= logging.DEBUG:
        fmt = _FMT_DEBUG
    elif numeric_level <= logging.INFO:
        fmt = _FMT_VERBOSE
    else:
        fmt = _FMT_MINIMAL

    color = hasattr(sys.stderr, "isatty") and sys.stderr.isatty()
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(_TaggedFormatter(fmt, _DATEFMT_CONSOLE, color))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)

    effective_level = numeric_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        effective_level = min(effective_level, file_level)

        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_FILE, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)

    root.setLevel(effective_level)

    if quiet_third_party and numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def resolve_level(debug: bool, verbose: bool, quiet: bool, env_level: str | None) -> str:
    """Pick the console level from CLI flags, then the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return env_level or "WARNING"


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
