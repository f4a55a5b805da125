"""
Logging configuration — one call at process start, from main.py.

Modules log through ``logging.getLogger(__name__)`` and never configure
handlers themselves.  Store writes log at DEBUG, simulator start/stop
and actor switches at INFO, observer and audit failures at ERROR with a
traceback.

Console level, highest precedence first:
    --debug / --verbose / --quiet  >  RMX_LOG_LEVEL  >  WARNING

RMX_LOG_FILE adds a file handler; RMX_LOG_FILE_LEVEL sets its level
(default: same as the console).
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping

DEFAULT_LEVEL = "WARNING"

ENV_LEVEL = "RMX_LOG_LEVEL"
ENV_FILE = "RMX_LOG_FILE"
ENV_FILE_LEVEL = "RMX_LOG_FILE_LEVEL"

_DETAILED = "%(asctime)s %(levelname)-5s [%(threadName)s] %(name)s:%(lineno)d %(message)s"

# (threshold, format, datefmt), first match wins
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, _DETAILED, "%H:%M:%S"),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    (logging.CRITICAL, "%(message)s", None),
)
_FILE_FORMAT = (_DETAILED, "%Y-%m-%d %H:%M:%S")

# Per-request access lines from the dev server
_NOISY_LOGGERS = ("werkzeug", "urllib3")


def resolve_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Pick the console level from CLI flags, then the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    env = os.environ if environ is None else environ
    return env.get(ENV_LEVEL) or DEFAULT_LEVEL


def setup_logging(
    level: str = DEFAULT_LEVEL,
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Install console (and optional file) handlers on the root logger.

    Replaces any handlers already on the root logger, so calling it
    twice does not duplicate output.

    Args:
        level: Console level name; unknown names fall back to WARNING.
        log_file: Path of an extra log file, if any.
        log_file_level: Level for the file (default: ``level``).
        quiet_third_party: Hold werkzeug/urllib3 at WARNING unless the
            console is at DEBUG.
    """
    console_level = _parse_level(level)
    handlers: list[logging.Handler] = [_console_handler(console_level)]

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        handlers.append(_file_handler(log_file, file_level))

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(min(h.level for h in handlers))

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    # Handler errors never reach the code that logged
    logging.raiseExceptions = False


def setup_logging_from_env(**flags: bool) -> None:
    """``setup_logging`` with the level and file taken from flags and RMX_* vars."""
    setup_logging(
        level=resolve_level(**flags),
        log_file=os.environ.get(ENV_FILE),
        log_file_level=os.environ.get(ENV_FILE_LEVEL),
        quiet_third_party=not flags.get("debug", False),
    )


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = next((f, d) for threshold, f, d in _CONSOLE_FORMATS if level <= threshold)
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(*_FILE_FORMAT))
    return handler


def _parse_level(level: str | None) -> int:
    """Level name to its numeric value; WARNING for anything unknown."""
    numeric = logging.getLevelName(level.upper()) if level else None
    return numeric if isinstance(numeric, int) else logging.WARNING
