"""qrstyle structured logging: AUDIT events, call tracing, console/JSON output."""

import functools
import inspect
import json
import logging
import sys
import time
import traceback
from datetime import datetime, timezone

ROOT = "qrstyle"

# Custom AUDIT level (between WARNING=30 and ERROR=40)
AUDIT = 35
logging.addLevelName(AUDIT, "AUDIT")


def _truncate(value: object, max_len: int = 80) -> str:
    s = str(value)
    if len(s) > max_len:
        return s[:max_len] + "..."
    return s


def _summarize(value: object) -> str:
    """Short description of an argument or result for trace records."""
    if isinstance(value, (str, int, float, bool)) or value is None:
        return _truncate(repr(value), 80)
    if isinstance(value, (list, tuple)):
        return f"{type(value).__name__}[{len(value)}]"
    if isinstance(value, dict):
        return f"dict[{len(value)} keys]"
    size = getattr(value, "size", None)
    if isinstance(size, tuple) and "Image" in type(value).__name__:
        return f"<{type(value).__name__} {size[0]}x{size[1]}>"
    return f"<{type(value).__name__}>"


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record):
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "src": record.name,
        }
        if hasattr(record, "event"):
            entry["event"] = record.event
        if hasattr(record, "duration_ms"):
            entry["duration_ms"] = round(record.duration_ms, 2)
        if hasattr(record, "ctx"):
            entry["ctx"] = record.ctx
        if not hasattr(record, "event") and record.getMessage():
            entry["msg"] = record.getMessage()
        if record.exc_info and record.exc_info[1]:
            entry["traceback"] = traceback.format_exception(*record.exc_info)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Colored single-line console output."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "AUDIT": "\033[35m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
    }
    RESET = "\033[0m"

    def __init__(self, color: bool = True):
        super().__init__()
        self.color = color

    def format(self, record):
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%H:%M:%S.%f")[:-3]
        if self.color:
            level = f"{self.COLORS.get(record.levelname, '')}{record.levelname:5s}{self.RESET}"
        else:
            level = f"{record.levelname:5s}"
        parts = [ts, level, f"[{record.name}]"]

        if hasattr(record, "event"):
            parts.append(record.event)
        if hasattr(record, "duration_ms"):
            parts.append(f"({record.duration_ms:.1f}ms)")

        if getattr(record, "ctx", None):
            parts.append(" ".join(f"{k}={_truncate(v)}" for k, v in record.ctx.items()))
        elif not hasattr(record, "event") and record.getMessage():
            parts.append(record.getMessage())

        if record.exc_info and record.exc_info[1]:
            parts.append(f"\n{''.join(traceback.format_exception(*record.exc_info))}")
        return " ".join(parts)


def setup_logging(level: str = "INFO", log_file: str | None = None, json_format: bool = False):
    """Configure the qrstyle logger tree.

    Args:
        level: DEBUG, INFO, AUDIT, WARNING or ERROR.
        log_file: If set, JSON lines are also appended to this file.
        json_format: Use JSON on the console as well.
    """
    root = logging.getLogger(ROOT)
    name = level.upper()
    root.setLevel(AUDIT if name == "AUDIT" else getattr(logging, name, logging.INFO))
    root.handlers.clear()

    console = logging.StreamHandler()
    console.setFormatter(JsonFormatter() if json_format else ConsoleFormatter(color=sys.stderr.isatty()))
    root.addHandler(console)

    if log_file:
        fh = logging.FileHandler(log_file)
        fh.setFormatter(JsonFormatter())
        root.addHandler(fh)


def get_logger(module_name: str) -> logging.Logger:
    """Logger scoped under the qrstyle namespace."""
    return logging.getLogger(f"{ROOT}.{module_name}")


def _emit(log: logging.Logger, level: int, event: str, ctx: dict,
          duration_ms: float | None = None, exc_info=None):
    record = log.makeRecord(
        name=log.name, level=level, fn="", lno=0,
        msg="", args=(), exc_info=exc_info,
    )
    record.event = event
    record.ctx = ctx
    if duration_ms is not None:
        record.duration_ms = duration_ms
    log.handle(record)


def audit(event: str, logger: logging.Logger | None = None, **context):
    """Emit an AUDIT-level structured entry.

    Args:
        event: Machine-readable tag, e.g. ``"version.resolved"``.
        logger: Logger to use; defaults to the qrstyle root.
        **context: Key-value pairs attached to the event.
    """
    log = logger or logging.getLogger(ROOT)
    if log.isEnabledFor(AUDIT):
        _emit(log, AUDIT, event, context)


def trace(func=None, *, logger_name: str | None = None):
    """Decorator logging entry (DEBUG), exit with timing (INFO) and errors (ERROR).

    Works on plain functions and coroutine functions.
    """
    def decorator(fn):
        log = get_logger(logger_name or fn.__module__.replace(f"{ROOT}.", ""))
        fn_name = fn.__name__

        def enter(args, kwargs):
            if log.isEnabledFor(logging.DEBUG):
                _emit(log, logging.DEBUG, f"{fn_name}.enter", {
                    "args": [_summarize(a) for a in args],
                    "kwargs": {k: _summarize(v) for k, v in kwargs.items()},
                })

        def done(start, result):
            if log.isEnabledFor(logging.INFO):
                _emit(log, logging.INFO, f"{fn_name}.done", {"result": _summarize(result)},
                      duration_ms=(time.perf_counter() - start) * 1000)

        def failed(start):
            _emit(log, logging.ERROR, f"{fn_name}.error", {"function": fn_name},
                  duration_ms=(time.perf_counter() - start) * 1000, exc_info=sys.exc_info())

        if inspect.iscoroutinefunction(fn):
            @functools.wraps(fn)
            async def async_wrapper(*args, **kwargs):
                enter(args, kwargs)
                start = time.perf_counter()
                try:
                    result = await fn(*args, **kwargs)
                except Exception:
                    failed(start)
                    raise
                done(start, result)
                return result
            return async_wrapper

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            enter(args, kwargs)
            start = time.perf_counter()
            try:
                result = fn(*args, **kwargs)
            except Exception:
                failed(start)
                raise
            done(start, result)
            return result
        return wrapper

    if func is not None:
        return decorator(func)
    return decorator