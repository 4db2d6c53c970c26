"""
Logging setup for the ``scaffold`` process.

Operator-facing output (questions, banners, warnings) goes through the
click operator on stdout. Logs are a separate diagnostic channel on
stderr, quiet by default so they never interleave with the prompts:

    --debug  >  --verbose  >  --quiet  >  SCAFFOLD_LOG_LEVEL  >  WARNING

A long build or a failed rollback is easier to diagnose from a file, so
``SCAFFOLD_LOG_FILE`` adds a file handler with its own level
(``SCAFFOLD_LOG_FILE_LEVEL``, default DEBUG) that always records the
full layout.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

_DATEFMT = "%H:%M:%S"

# Console layout per level threshold, most detailed first
_CONSOLE_FORMATS: tuple[tuple[int, str, str | None], ...] = (
    (logging.DEBUG, "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s", _DATEFMT),
    (logging.INFO, "%(asctime)s [%(name)s] %(message)s", _DATEFMT),
)
_CONSOLE_DEFAULT = "%(levelname)s: %(message)s"

_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Libraries that log per request when the root level is low
_NOISY_LOGGERS = ("urllib3", "charset_normalizer")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Configure the root logger once, at CLI start-up.

    Args:
        level: Console level name.
        log_file: Optional log file path; parent directories are created.
        log_file_level: Level for the file handler (default DEBUG).
        quiet_third_party: Pin noisy library loggers to WARNING unless the
            console is at DEBUG.
    """
    console_level = _parse_level(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_console_handler(console_level))
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level, default=logging.DEBUG)
        root.addHandler(_file_handler(Path(log_file), file_level))
        root_level = min(root_level, file_level)

    root.setLevel(root_level)

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    # A closed stderr (piped into `head`, say) must not abort an install
    logging.raiseExceptions = False


def _console_handler(level: int) -> logging.Handler:
    fmt, datefmt = _CONSOLE_DEFAULT, None
    for threshold, layout, layout_datefmt in _CONSOLE_FORMATS:
        if level <= threshold:
            fmt, datefmt = layout, layout_datefmt
            break
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    return handler


def _file_handler(path: Path, level: int) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
    return handler


def _parse_level(level: str | None, default: int = logging.WARNING) -> int:
    """Level name → numeric level; unknown names fall back to ``default``."""
    if not level:
        return default
    numeric = logging.getLevelName(level.strip().upper())
    return numeric if isinstance(numeric, int) else default
