from __future__ import annotations
import logging
from logging.handlers import RotatingFileHandler
from contextlib import contextmanager
from pathlib import Path
from time import perf_counter
from typing import Iterator, Optional, Union

from .paths import DATA_ROOT, ensure_dir

# ---------------------------------------------------------
# Logging setup (file + optional console) with a unified format
# ---------------------------------------------------------

_LOGGER_INITIALIZED = False
_LOG_FILE_NAME = "wheel_backtest.log"

Level = Union[int, str]


def _coerce_level(level: Level) -> int:
    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level!r}")
        return resolved
    return level


def init_logging(
    level: Level = logging.INFO,
    *,
    log_to_console: bool = True,
    log_dir: Optional[Path] = None,
    max_bytes: int = 10_000_000,
    backup_count: int = 5,
) -> None:
    """Initialize root logger once with a rotating file handler and optional console.

    Parameters
    ----------
    level : int | str
        Logging level (e.g., logging.INFO, "DEBUG").
    log_to_console : bool
        If True, also attach a StreamHandler to stderr.
    log_dir : Path, optional
        Directory for the log file; defaults to ``DATA_ROOT``.
    max_bytes : int
        Maximum bytes for each rotated file.
    backup_count : int
        Number of rotated file backups to keep.
    """
    global _LOGGER_INITIALIZED
    level = _coerce_level(level)
    if _LOGGER_INITIALIZED:
        set_level(level)
        return

    target_dir = Path(log_dir) if log_dir is not None else DATA_ROOT
    ensure_dir(target_dir)
    log_path = target_dir / _LOG_FILE_NAME

    fmt = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)

    # Root logger
    root = logging.getLogger()
    root.setLevel(level)

    # File handler (rotating)
    file_handler = RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count)
    file_handler.setFormatter(formatter)
    file_handler.setLevel(level)
    root.addHandler(file_handler)

    # Optional console handler
    if log_to_console:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        console.setLevel(level)
        root.addHandler(console)

    _LOGGER_INITIALIZED = True


def set_level(level: Level) -> None:
    """Update logging level for all handlers on the root logger."""
    level = _coerce_level(level)
    root = logging.getLogger()
    root.setLevel(level)
    for h in root.handlers:
        h.setLevel(level)


@contextmanager
def timed(msg: str, *, logger: Optional[logging.Logger] = None, level: int = logging.DEBUG) -> Iterator[None]:
    """Context manager to time a code block and log the elapsed duration.

    Usage
    -----
    >>> from weeklywheel.logging_setup import timed
    >>> with timed("aggregate weeks"):
    ...     weekly = aggregate_weekly(daily)
    """
    log = logger or logging.getLogger(__name__)
    start = perf_counter()
    try:
        yield
    finally:
        elapsed = (perf_counter() - start) * 1000.0  # ms
        log.log(level, f"{msg} finished in {elapsed:.2f} ms")
