"""
Structured JSON logging for the hours kernel.

Every record under the ``hours_kernel`` logger is written as one JSON line:
the envelope (ts, level, logger, message), the fields bound in
``LogContext`` (actor, task, bonus, redistribution), then whatever the call
passed as ``extra``.  Failures logged with ``exc_info`` also carry the typed
fields of the ``HoursKernelError`` that was raised.
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
from contextvars import ContextVar
from datetime import UTC, date, datetime
from typing import Any

_LOGGER_PREFIX = "hours_kernel"

_CONTEXT: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"log_{name}", default=None)
    for name in ("actor_id", "task_id", "bonus_id", "redistribution_id")
}


class LogContext:
    """Request-scoped log fields, safe across threads and tasks."""

    @classmethod
    def set(cls, **fields: Any) -> None:
        """Set known fields; None values and unknown names are ignored."""
        for name, value in fields.items():
            if value is not None and name in _CONTEXT:
                _CONTEXT[name].set(str(value))

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return {
            name: var.get() for name, var in _CONTEXT.items() if var.get() is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in _CONTEXT.values():
            var.set(None)

    @classmethod
    def bind(cls, **fields: Any) -> "_BoundContext":
        """Set fields for the duration of a ``with`` block."""
        return _BoundContext(fields)


class _BoundContext:
    def __init__(self, fields: dict[str, Any]):
        self._fields = fields
        self._tokens: list[tuple[ContextVar[str | None], Any]] = []

    def __enter__(self) -> type[LogContext]:
        for name, value in self._fields.items():
            if value is not None and name in _CONTEXT:
                var = _CONTEXT[name]
                self._tokens.append((var, var.set(str(value))))
        return LogContext

    def __exit__(self, *exc: Any) -> None:
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()


_STDLIB_KEYS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "taskName"}


def _json_default(obj: Any) -> str:
    # UUID and Decimal render through str(); dates as ISO-8601.
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    return str(obj)


class StructuredFormatter(logging.Formatter):
    """Formats each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.get_all())

        for key, val in vars(record).items():
            if key not in _STDLIB_KEYS and key not in payload:
                payload[key] = val

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            payload["exc_type"] = type(exc).__name__
            payload["exc_message"] = str(exc)
            code = getattr(exc, "code", None)
            if code is not None:
                payload["exc_code"] = code
            for k, v in vars(exc).items():
                if not k.startswith("_") and k not in ("args", "code"):
                    payload[f"exc_{k}"] = v
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the hours_kernel namespace."""
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def configure_logging(*, level: int = logging.INFO) -> None:
    """Attach the JSON handler to the hours_kernel logger once."""
    root_logger = logging.getLogger(_LOGGER_PREFIX)
    if root_logger.handlers:
        return
    root_logger.setLevel(level)
    root_logger.propagate = False
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(handler)


def reset_logging() -> None:
    """Drop handlers so the next ``configure_logging`` starts fresh. Tests only."""
    root_logger = logging.getLogger(_LOGGER_PREFIX)
    root_logger.handlers.clear()
    root_logger.setLevel(logging.WARNING)
