"""
escrow_vm.logging
-----------------

Structured logging with:
- JSON or concise colored text formats
- Context-local fields via `contextvars` (trace_id, deal, component, ...)
- Safe JSON serialization (bytes → hex, dataclasses → dicts)
- Simple, dependency-free setup (stdlib only)

Usage
-----
    from escrow_vm import logging as elog

    elog.configure(json=False, level="INFO")  # once at process start
    log = elog.get_logger(__name__)

    with elog.trace_scope():
        elog.bind(component="sandbox")
        log.info("deal deployed", extra={"deal": "0:ab.."})

Environment
-----------
- ESCROW_VM_LOG_FORMAT = json | text   (default: text on a TTY, JSON otherwise)
- ESCROW_VM_LOG_LEVEL  = DEBUG | INFO | WARNING | ...
"""

from __future__ import annotations

import datetime as _dt
import io
import json
import logging
import os
import sys
import traceback
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, Optional, Tuple

# ----------------------------
# Context
# ----------------------------

_LOG_CONTEXT: ContextVar[Dict[str, Any]] = ContextVar("_ESCROW_LOG_CONTEXT", default={})

DEFAULT_CONTEXT_KEYS = (
    "trace_id",
    "component",
    "deal",
    "sender",
    "op",
)

_LEVEL_TO_INT = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "NOTSET": logging.NOTSET,
}

# LogRecord attributes that are never treated as structured extras.
_RESERVED = frozenset(
    (
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
    )
)


def context() -> Dict[str, Any]:
    """Return a *copy* of the active logging context."""
    return dict(_LOG_CONTEXT.get())


def bind(**fields: Any) -> None:
    """Merge fields into the active context."""
    cur = dict(_LOG_CONTEXT.get())
    cur.update({k: _coerce_value(v) for k, v in fields.items()})
    _LOG_CONTEXT.set(cur)


def unbind(*keys: str) -> None:
    cur = dict(_LOG_CONTEXT.get())
    for k in keys:
        cur.pop(k, None)
    _LOG_CONTEXT.set(cur)


def clear_context() -> None:
    _LOG_CONTEXT.set({})


@contextmanager
def trace_scope(trace_id: Optional[str] = None):
    """
    Ensure a trace_id is present for the duration of the scope.
    Restores prior context on exit.
    """
    prev = dict(_LOG_CONTEXT.get())
    try:
        bind(trace_id=trace_id or short_uuid())
        yield
    finally:
        _LOG_CONTEXT.set(prev)


def short_uuid() -> str:
    return uuid.uuid4().hex[:12]


# ----------------------------
# Formatters
# ----------------------------


def _utcnow_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat(timespec="milliseconds")


def _coerce_value(v: Any) -> Any:
    if v is None or isinstance(v, (bool, int, float, str, list, dict)):
        return v
    if isinstance(v, (bytes, bytearray)):
        return bytes(v).hex()
    if is_dataclass(v) and not isinstance(v, type):
        return asdict(v)
    return str(v)


def _extras(record: logging.LogRecord) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for k, v in record.__dict__.items():
        if k.startswith("_") or k in _RESERVED:
            continue
        out[k] = _coerce_value(v)
    return out


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": _utcnow_iso(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(context())
        for k, v in _extras(record).items():
            payload.setdefault(k, v)
        if record.exc_info:
            payload["err"] = "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return json.dumps(payload, default=str, separators=(",", ":"))


class TextFormatter(logging.Formatter):
    """
    Human-friendly one-liner:
      2026-01-05T12:34:56.789Z | INFO  | escrow_vm.runtime.machine | deal=0:ab.. | deal funded
    """

    _COLORS = {
        logging.DEBUG: "\x1b[90m",
        logging.INFO: "\x1b[32m",
        logging.WARNING: "\x1b[33m",
        logging.ERROR: "\x1b[31m",
        logging.CRITICAL: "\x1b[1m\x1b[35m",
    }
    _RESET = "\x1b[0m"

    def __init__(self, stream: io.TextIOBase):
        super().__init__()
        self._color = _supports_color(stream)

    def format(self, record: logging.LogRecord) -> str:
        ctx = context()
        parts = [f"{k}={ctx[k]}" for k in DEFAULT_CONTEXT_KEYS if ctx.get(k) is not None]
        parts.extend(f"{k}={v}" for k, v in _extras(record).items() if k not in ctx)

        lvl = f"{record.levelname:<5}"
        if self._color:
            lvl = f"{self._COLORS.get(record.levelno, '')}{lvl}{self._RESET}"

        line = f"{_utcnow_iso()} | {lvl} | {record.name}"
        if parts:
            line += " | " + " ".join(parts)
        line += f" | {record.getMessage()}"
        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info)).rstrip()
        return line


# ----------------------------
# Public setup API
# ----------------------------


def configure(
    *,
    json: Optional[bool] = None,
    level: str | int | None = None,
    stream: io.TextIOBase = sys.stderr,
) -> None:
    """
    Configure the `escrow_vm` logger tree.

    Parameters
    ----------
    json : bool | None
        If None, determined by env ESCROW_VM_LOG_FORMAT and TTY detection.
    level : str | int | None
        Minimum log level; None reads ESCROW_VM_LOG_LEVEL (default INFO).
    stream : TextIO
        Stream for the console handler (default: stderr).
    """
    if level is None:
        level = os.environ.get("ESCROW_VM_LOG_LEVEL", "INFO")
    lvl = _coerce_level(level)

    root = logging.getLogger("escrow_vm")
    root.setLevel(lvl)
    for h in list(root.handlers):
        root.removeHandler(h)

    console = logging.StreamHandler(stream)
    console.setLevel(lvl)
    console.setFormatter(JSONFormatter() if _decide_json(json, stream) else TextFormatter(stream))
    root.addHandler(console)
    root.propagate = False


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or "escrow_vm")


def with_fields(logger: logging.Logger, **fields: Any) -> "ContextAdapter":
    """Return a logger adapter that injects constant fields on each call."""
    return ContextAdapter(logger, extra={k: _coerce_value(v) for k, v in fields.items()})


class ContextAdapter(logging.LoggerAdapter):
    """
    LoggerAdapter that merges its constant `.extra` with per-call
    `extra={...}` without clobbering call-site values.
    """

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> Tuple[Any, Dict[str, Any]]:
        extra = kwargs.get("extra") or {}
        kwargs["extra"] = {**self.extra, **extra} if isinstance(extra, dict) else dict(self.extra)
        return msg, kwargs


# ----------------------------
# Internals
# ----------------------------


def _supports_color(stream: io.TextIOBase) -> bool:
    try:
        return stream.isatty() and os.environ.get("NO_COLOR") is None
    except (AttributeError, ValueError):
        return False


def _coerce_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    return _LEVEL_TO_INT.get(level.strip().upper(), logging.INFO)


def _decide_json(json_flag: Optional[bool], stream: io.TextIOBase) -> bool:
    if json_flag is not None:
        return json_flag
    env = os.environ.get("ESCROW_VM_LOG_FORMAT", "").strip().lower()
    if env in ("json", "text"):
        return env == "json"
    return not _supports_color(stream)


__all__ = [
    "bind",
    "unbind",
    "clear_context",
    "context",
    "trace_scope",
    "short_uuid",
    "JSONFormatter",
    "TextFormatter",
    "configure",
    "get_logger",
    "with_fields",
    "ContextAdapter",
]
