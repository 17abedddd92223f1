"""
Logging setup for the ``run`` CLI.

Called once per invocation by main.py; modules log through
``logging.getLogger(__name__)``.

Console level, in precedence order:
    --debug / --verbose / --quiet  >  RUN_LOG_LEVEL  >  WARNING

File output is opt-in. RUN_LOG_FILE names the file; RUN_LOG_DIR instead
gets one file per day (``run-YYYY-MM-DD.log``). RUN_LOG_FILE_LEVEL sets
the file's own level. Files rotate at 10 MB.

Records emitted inside ``package_context`` carry the operation and
package name, so interleaved lines from a parallel batch stay readable.
"""

from __future__ import annotations

import contextlib
import contextvars
import datetime
import logging
import logging.handlers
import sys
from collections.abc import Iterator
from pathlib import Path

_CONSOLE_FORMATS: dict[int, tuple[str, str | None]] = {
    logging.DEBUG: ("%(asctime)s %(levelname)-7s %(context)s%(name)s:%(lineno)d %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s %(context)s%(message)s", "%H:%M:%S"),
}
_CONSOLE_DEFAULT = ("%(message)s", None)

_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(context)s%(name)s: %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"
_FILE_MAX_BYTES = 10 * 1024 * 1024
_FILE_BACKUPS = 5

_context: contextvars.ContextVar[str] = contextvars.ContextVar("run_log_context", default="")


class _ContextFilter(logging.Filter):
    """Adds ``record.context``: ``"[install node] "`` or empty."""

    def filter(self, record: logging.LogRecord) -> bool:
        ctx = _context.get()
        record.context = f"[{ctx}] " if ctx else ""
        return True


@contextlib.contextmanager
def package_context(package: str, operation: str = "") -> Iterator[None]:
    """Tag log records emitted in this block with an operation and package."""
    token = _context.set(f"{operation} {package}".strip())
    try:
        yield
    finally:
        _context.reset(token)


def daily_log_file(log_dir: str | Path, today: datetime.date | None = None) -> Path:
    day = today or datetime.date.today()
    return Path(log_dir).expanduser() / f"run-{day.isoformat()}.log"


def setup_logging(
    level: str = "WARNING",
    log_file: str | Path | None = None,
    log_file_level: str | None = None,
) -> None:
    """Replace the root logger's handlers with a console and optional file.

    Args:
        level: Console level name.
        log_file: File to append to; its directory is created.
        log_file_level: File level name, defaulting to ``level``.
    """
    console_level = _parse_level(level)
    fmt, datefmt = _console_format(console_level)
    context = _ContextFilter()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt, datefmt=datefmt))
    console.addFilter(context)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.handlers.RotatingFileHandler(
            path, maxBytes=_FILE_MAX_BYTES, backupCount=_FILE_BACKUPS, encoding="utf-8",
        )
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
        fh.addFilter(context)
        root.addHandler(fh)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)
    logging.raiseExceptions = False


def _console_format(level: int) -> tuple[str, str | None]:
    for threshold in sorted(_CONSOLE_FORMATS):
        if level <= threshold:
            return _CONSOLE_FORMATS[threshold]
    return _CONSOLE_DEFAULT


def _parse_level(level: str | None) -> int:
    """Level name to its numeric value; unknown names mean WARNING."""
    if not level:
        return logging.WARNING
    numeric = logging.getLevelName(level.upper())
    return numeric if isinstance(numeric, int) else logging.WARNING
