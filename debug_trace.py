"""
debug_trace.py

Logging setup and category-tagged tracing.

Modules log through ``logging.getLogger(__name__)``; the sync engine and
scene rebuild paths additionally call ``trace()`` which writes to the
``pdfsigner.trace`` logger at DEBUG level with a category tag.
"""

import logging
import sys
import traceback
from functools import wraps
from typing import Optional

# Set to True to trace paint events (very verbose)
TRACE_PAINT = False

LOG_FORMAT = "%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"

_ERROR_CATEGORIES = frozenset({"CRASH", "ERROR"})

_trace_log = logging.getLogger("pdfsigner.trace")
_file_handler: Optional[logging.Handler] = None


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure the root logger once for the application.

    Args:
        level: Logging level name (``"DEBUG"``, ``"INFO"``, ...).
        log_file: Optional path that receives a copy of every record.
    """
    global _file_handler
    numeric = logging.getLevelName(str(level).upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO

    root = logging.getLogger()
    root.setLevel(numeric)
    if not any(getattr(h, "_pdfsigner", False) for h in root.handlers):
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        console._pdfsigner = True
        root.addHandler(console)

    if log_file and _file_handler is None:
        try:
            _file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        except OSError as e:
            root.warning("could not open log file %r: %s", log_file, e)
        else:
            _file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
            root.addHandler(_file_handler)


def trace(msg: str, category: str = "INFO"):
    """Log a trace message tagged with *category*."""
    if category == "PAINT" and not TRACE_PAINT:
        return
    level = logging.ERROR if category in _ERROR_CATEGORIES else logging.DEBUG
    _trace_log.log(level, "[%s] %s", category, msg)


def trace_exception(msg: str = "Exception"):
    """Log the exception currently being handled."""
    _trace_log.error("%s: %s", msg, traceback.format_exc())


def trace_call(category: str = "CALL"):
    """Decorator to trace function calls."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            func_name = func.__qualname__
            trace(f">>> {func_name}", category)
            try:
                result = func(*args, **kwargs)
                trace(f"<<< {func_name}", category)
                return result
            except Exception as e:
                trace(f"!!! {func_name} raised {type(e).__name__}: {e}", "ERROR")
                raise
        return wrapper
    return decorator


def close_log():
    """Detach and close the log file handler, if any."""
    global _file_handler
    if _file_handler is not None:
        logging.getLogger().removeHandler(_file_handler)
        _file_handler.close()
        _file_handler = None
