"""
Logging configuration — one setup call for the CLI and embedders.

Every module does ``logger = logging.getLogger(__name__)`` and inherits
what is configured here.

Level precedence:
    --verbose/--debug flag  >  HOSTFORGE_LOG_LEVEL  >  WARNING

File output is opt-in through HOSTFORGE_LOG_FILE, with its own level in
HOSTFORGE_LOG_FILE_LEVEL (defaults to the console level).
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping

# ── Formats ─────────────────────────────────────────────────────

_FMT_MINIMAL = "%(message)s"

_FMT_VERBOSE = "%(asctime)s [%(name)s] %(message)s"
_DATEFMT_VERBOSE = "%H:%M:%S"

_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d %(threadName)s  %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"

_FMT_FILE = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

ENV_LEVEL = "HOSTFORGE_LOG_LEVEL"
ENV_FILE = "HOSTFORGE_LOG_FILE"
ENV_FILE_LEVEL = "HOSTFORGE_LOG_FILE_LEVEL"

# Libraries that chatter at INFO.
_NOISY_LOGGERS = ("urllib3", "asyncio", "concurrent.futures")


def setup_logging(
    level: str | None = None,
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
    env: Mapping[str, str] | None = None,
) -> int:
    """Configure the root logger for the process.

    Explicit arguments win over environment variables.

    Returns:
        The numeric console level that was applied.
    """
    env = os.environ if env is None else env
    level = level or env.get(ENV_LEVEL) or "WARNING"
    log_file = log_file or env.get(ENV_FILE) or None
    log_file_level = log_file_level or env.get(ENV_FILE_LEVEL) or None

    numeric_level = parse_level(level)

    # ── Console (stderr, stdout stays machine-readable) ─────────
    if numeric_level <= logging.DEBUG:
        fmt, datefmt = _FMT_DEBUG, _DATEFMT_DEBUG
    elif numeric_level <= logging.INFO:
        fmt, datefmt = _FMT_VERBOSE, _DATEFMT_VERBOSE
    else:
        fmt, datefmt = _FMT_MINIMAL, None

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.addHandler(console)

    effective_level = numeric_level

    # ── File (optional) ─────────────────────────────────────────
    if log_file:
        file_level = parse_level(log_file_level) if log_file_level else numeric_level
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
    return numeric_level


def parse_level(level: str | None) -> int:
    """Level name (case-insensitive) to its numeric value; unknown → WARNING."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.strip().upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
