"""
core/logging_config.py - Logging Configuration

Three channels, all optional except the console:
  - Console (stderr): INFO+ (DEBUG+ with --debug), single line, coloured on a TTY.
  - Mismatch log: only reconciliation findings and query failures (ERROR+ from
    the reconciliation and coordinator loggers). One line per finding, so a
    long validation pass can be diffed against the previous one.
  - Debug log: everything, with logger, line number and the run stage that
    emitted the record.

The run stage (parse, inject, validate, export) is carried in a context
variable, so records emitted by validation workers are tagged as well.
"""

import contextlib
import contextvars
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Iterator, Optional

_run_stage = contextvars.ContextVar("run_stage", default=None)

# Loggers whose ERROR records are reconciliation findings
_MISMATCH_LOGGERS = ("reconciliation", "core.snapshot_runner")


@contextlib.contextmanager
def log_stage(stage: str) -> Iterator[None]:
    """Tag every record emitted inside the block (and tasks it starts) with `stage`."""
    token = _run_stage.set(stage)
    try:
        yield
    finally:
        _run_stage.reset(token)


def current_stage() -> Optional[str]:
    return _run_stage.get()


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

class NoDebugFilter(logging.Filter):
    """Block DEBUG records (used on console handler outside --debug)."""
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno > logging.DEBUG


class MismatchLogFilter(logging.Filter):
    """Pass ERROR+ records from the reconciliation side only."""
    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno < logging.ERROR:
            return False
        return any(
            record.name == prefix or record.name.startswith(prefix + ".")
            for prefix in _MISMATCH_LOGGERS
        )


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------

class MainFormatter(logging.Formatter):
    """
    Single-line format for the console and the mismatch log.
    Adds ANSI colour when writing to a real TTY.
    """
    _COLORS = {
        logging.DEBUG:    "\033[36m",   # cyan
        logging.INFO:     "\033[32m",   # green
        logging.WARNING:  "\033[33m",   # yellow
        logging.ERROR:    "\033[31m",   # red
        logging.CRITICAL: "\033[35m",   # magenta
    }
    _RESET = "\033[0m"

    def __init__(self, use_color: bool = False):
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")
        self._use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:<8}"
        if self._use_color:
            level = f"{self._COLORS.get(record.levelno, '')}{level}{self._RESET}"
        line = f"{self.formatTime(record, self.datefmt)} {level} {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class DebugFormatter(logging.Formatter):
    """Verbose format for the debug log: stage, logger and line number."""
    def format(self, record: logging.LogRecord) -> str:
        ts = f"{self.formatTime(record, '%Y-%m-%d %H:%M:%S')}.{int(record.msecs):03d}"
        stage = current_stage()
        stage_str = f" [{stage}]" if stage else ""
        line = (
            f"{ts} {record.levelname:8}{stage_str} "
            f"{record.name}:{record.lineno} - {record.getMessage()}"
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def _rotating_handler(path: str, max_bytes: int, backup_count: int) -> logging.Handler:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )


def setup_logging(
    debug: bool = False,
    log_file: Optional[str] = None,
    mismatch_log_file: Optional[str] = None,
    console_output: bool = True,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Configure the logging channels for one run.

    Parameters
    ----------
    debug             : Let DEBUG records through to the console.
    log_file          : Path for the verbose debug log (None disables it).
    mismatch_log_file : Path for the findings-only log (None disables it).
    console_output    : Attach the console handler.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.handlers.clear()

    if log_file:
        debug_handler = _rotating_handler(log_file, max_bytes, backup_count)
        debug_handler.setLevel(logging.DEBUG)
        debug_handler.setFormatter(DebugFormatter())
        root.addHandler(debug_handler)

    if mismatch_log_file:
        mismatch_handler = _rotating_handler(mismatch_log_file, max_bytes, backup_count)
        mismatch_handler.setLevel(logging.ERROR)
        mismatch_handler.addFilter(MismatchLogFilter())
        mismatch_handler.setFormatter(MainFormatter(use_color=False))
        root.addHandler(mismatch_handler)

    if console_output:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(logging.DEBUG if debug else logging.INFO)
        if not debug:
            console.addFilter(NoDebugFilter())
        is_tty = hasattr(sys.stderr, "isatty") and sys.stderr.isatty()
        console.setFormatter(MainFormatter(use_color=is_tty))
        root.addHandler(console)

    # Every HTTP round-trip is logged by these at INFO/DEBUG
    for noisy in (
        "httpx",
        "httpcore",
        "httpcore.http11",
        "httpcore.connection",
        "asyncio",
    ):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return root
