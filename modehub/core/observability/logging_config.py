"""
Logging configuration — set up once by the CLI entrypoint.

Every module does ``logger = logging.getLogger(__name__)`` and inherits
this config. Levels are resolved in precedence order:
    --debug  >  --verbose  >  --quiet  >  MODE_LOG_LEVEL env var  >  WARNING

Optional file output via MODE_LOG_FILE / MODE_LOG_FILE_LEVEL.

Records emitted while a module is being processed (inside
``module_context``) carry its id, rendered as a ``[web/markdown]`` prefix.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

_FMT_MINIMAL = "%(message)s"

_FMT_VERBOSE = "%(module_tag)s%(message)s"

_FMT_DEBUG = "%(asctime)s %(levelname)-5s %(module_tag)s%(name)s:%(lineno)d %(message)s"
_DATEFMT_DEBUG = "%H:%M:%S"

_FMT_FILE = "%(asctime)s %(levelname)-5s module=%(module_id)s %(name)s:%(lineno)d %(message)s"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"

# asyncio logs slow-callback and selector chatter at DEBUG
_NOISY_LOGGERS = ("asyncio",)

_current_module: ContextVar[str | None] = ContextVar("modehub_module", default=None)


@contextmanager
def module_context(module_id: str) -> Iterator[None]:
    """Tag every record logged inside the block with ``module_id``."""
    token = _current_module.set(module_id)
    try:
        yield
    finally:
        _current_module.reset(token)


def current_module_id() -> str | None:
    """Id of the module whose work is running, if any."""
    return _current_module.get()


class ModuleContextFilter(logging.Filter):
    """Adds ``module_id`` (or "-") and ``module_tag`` to each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        module_id = current_module_id()
        record.module_id = module_id or "-"
        record.module_tag = f"[{module_id}] " if module_id else ""
        return True


def resolve_level(
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    env_level: str | None = None,
) -> str:
    """Pick the console level from CLI flags and the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return env_level or "WARNING"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Configure Python logging for the whole process.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to a log file.
        log_file_level: Optional separate level for the log file.
        quiet_third_party: Keep noisy library loggers at WARNING unless
            running at DEBUG.
    """
    numeric_level = _parse_level(level)

    if numeric_level <= logging.DEBUG:
        fmt, datefmt = _FMT_DEBUG, _DATEFMT_DEBUG
    elif numeric_level <= logging.INFO:
        fmt, datefmt = _FMT_VERBOSE, None
    else:
        fmt, datefmt = _FMT_MINIMAL, None

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    console.addFilter(ModuleContextFilter())

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
        fh.addFilter(ModuleContextFilter())
        root.addHandler(fh)

    root.setLevel(effective_level)

    if quiet_third_party and numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Convert a level name string to its numeric constant."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
