"""
purchasing_kernel.logging_config -- JSON log lines with session context.

Every record under the ``purchasing`` logger tree is rendered as one JSON
object.  Fields bound through ``LogContext`` (the edit session, the invoice
number being edited, the acting user) are merged into every line emitted
while they are bound, so an allocation warning deep inside an engine can
be traced back to the draft that caused it.

Usage:
    configure_logging(level="DEBUG")
    with LogContext.bind(session_id=session.session_id):
        get_logger("services.edit").info("edit_action_applied", extra={...})
"""

__all__ = [
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any

_LOGGER_PREFIX = "purchasing"

_CONTEXT_VARS: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"purchasing_log_{name}", default=None)
    for name in ("correlation_id", "session_id", "invoice_number", "actor_id")
}


class LogContext:
    """Context-local fields merged into every purchasing log line."""

    FIELDS = tuple(_CONTEXT_VARS)

    @staticmethod
    def _var(name: str) -> ContextVar[str | None]:
        try:
            return _CONTEXT_VARS[name]
        except KeyError:
            raise ValueError(f"Unknown log context field: {name}") from None

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Set the given fields; None values are ignored."""
        for name, value in fields.items():
            var = cls._var(name)
            if value is not None:
                var.set(value)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return {
            name: value
            for name, var in _CONTEXT_VARS.items()
            if (value := var.get()) is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in _CONTEXT_VARS.values():
            var.set(None)

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[type["LogContext"]]:
        """Bind fields for the duration of a ``with`` block, then restore."""
        tokens = [
            (var, var.set(value))
            for name, value in fields.items()
            if value is not None
            for var in (cls._var(name),)
        ]
        try:
            yield cls
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# Attributes every LogRecord carries; anything else came from ``extra``.
_RESERVED = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if hasattr(value, "value"):  # enums
        return value.value
    return str(value)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: envelope, bound context, then extras."""

    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        line.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RESERVED and key not in line
        )
        if record.exc_info and record.exc_info[1] is not None:
            line.update(self._exception_fields(record.exc_info[1]))
            line["traceback"] = self.formatException(record.exc_info)
        return json.dumps(line, default=_json_default)

    @staticmethod
    def _exception_fields(exc: BaseException) -> dict[str, Any]:
        fields: dict[str, Any] = {
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
        }
        code = getattr(exc, "code", None)
        if code is not None:
            fields["exc_code"] = code
        # PurchasingError subclasses keep their context as public attributes
        for name, value in vars(exc).items():
            if not name.startswith("_") and name != "code":
                fields[f"exc_{name}"] = value
        return fields


def get_logger(name: str) -> logging.Logger:
    """Logger named ``purchasing.<name>``."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


_configured = False
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> bool:
    """
    Attach a JSON handler to the ``purchasing`` logger.

    Only the first call has an effect until ``reset_logging``; level names
    such as ``"DEBUG"`` are accepted as well as numeric levels.

    Returns:
        True if this call installed the handler.
    """
    global _configured
    with _lock:
        if _configured:
            return False
        _configured = True

    tree = logging.getLogger(_LOGGER_PREFIX)
    tree.setLevel(level.upper() if isinstance(level, str) else level)
    tree.propagate = False

    target = handler or logging.StreamHandler(stream or sys.stderr)
    target.setFormatter(StructuredFormatter())
    tree.addHandler(target)
    return True


def reset_logging() -> None:
    """Detach handlers and allow ``configure_logging`` again (tests only)."""
    global _configured
    with _lock:
        _configured = False
    tree = logging.getLogger(_LOGGER_PREFIX)
    for h in list(tree.handlers):
        tree.removeHandler(h)
    tree.setLevel(logging.NOTSET)
    tree.propagate = True
