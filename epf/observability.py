"""
EPF Observability

Structured logging for the verification layer.

    logger.info("msg", box_id=x)
                │
    EpfLogger ──┴── layer, operation, error_code, context
                │
    StructuredHandler (json) │ logging.Formatter (text)

Log level and format come from ``epf.config``.
"""

from __future__ import annotations

import json
import logging
import sys
import time
import traceback
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, Optional, TypeVar

from epf.config import get_config


class EpfLayer(Enum):
    """EPF components, used to categorise log records."""
    LEDGER = "ledger"
    PREDICATE = "predicate"
    BOX = "box"
    STAGE = "stage"
    CONFIG = "config"


@dataclass
class LogEvent:
    """Structured log event."""
    timestamp: str
    level: str
    logger: str
    message: str
    layer: str = ""
    operation: str = ""
    duration_ms: Optional[float] = None
    error_code: str = ""
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding empty values."""
        d = asdict(self)
        return {k: v for k, v in d.items() if v is not None and v != "" and v != {}}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str, sort_keys=True)


class StructuredHandler(logging.Handler):
    """Logging handler that outputs one JSON object per line."""

    def __init__(self, stream: Any = None):
        super().__init__()
        self.stream = stream or sys.stderr

    def emit(self, record: logging.LogRecord) -> None:
        try:
            event = LogEvent(
                timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
                level=record.levelname.lower(),
                logger=record.name,
                message=record.getMessage(),
                layer=getattr(record, "layer", ""),
                operation=getattr(record, "operation", ""),
                duration_ms=getattr(record, "duration_ms", None),
                error_code=getattr(record, "error_code", ""),
                context=getattr(record, "context", {}),
            )

            if record.exc_info:
                event.exception = "".join(traceback.format_exception(*record.exc_info))

            self.stream.write(event.to_json() + "\n")
            self.stream.flush()
        except Exception:
            self.handleError(record)


# Unknown level names fall back to INFO.
LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _make_handler(log_format: str, stream: Any = None) -> logging.Handler:
    if log_format == "text":
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
        return handler
    return StructuredHandler(stream)


def _is_epf_handler(h: logging.Handler) -> bool:
    return getattr(h, "_epf_handler", False)


class EpfLogger:
    """
    Structured logger for EPF components.

    Every record carries the component layer; keyword arguments become the
    record's structured context.
    """

    def __init__(self, name: str, layer: EpfLayer):
        self.name = name
        self.layer = layer
        self._logger = logging.getLogger(f"epf.{layer.value}.{name}")
        self.configure()

    def configure(self, stream: Any = None) -> None:
        """(Re)apply level and handler from the current configuration."""
        obs = get_config().observability
        self._logger.setLevel(LOG_LEVELS.get(obs.log_level.get(), logging.INFO))

        for h in [h for h in self._logger.handlers if _is_epf_handler(h)]:
            self._logger.removeHandler(h)
        handler = _make_handler(obs.log_format.get(), stream)
        handler._epf_handler = True  # type: ignore[attr-defined]
        self._logger.addHandler(handler)

    def _log(
        self,
        level: int,
        message: str,
        operation: str = "",
        error_code: str = "",
        duration_ms: Optional[float] = None,
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        extra = {
            "layer": self.layer.value,
            "operation": operation,
            "error_code": error_code,
            "duration_ms": duration_ms,
            "context": context,
        }
        self._logger.log(level, message, extra=extra, exc_info=exc_info)

    def debug(self, message: str, **context: Any) -> None:
        self._log(logging.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(logging.WARNING, message, **context)

    def error(
        self,
        message: str,
        error_code: str = "",
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        self._log(logging.ERROR, message, error_code=error_code, exc_info=exc_info, **context)

    def operation(
        self,
        name: str,
        duration_ms: float,
        success: bool = True,
        **context: Any,
    ) -> None:
        """Log an operation completion."""
        level = logging.DEBUG if success else logging.INFO
        status = "completed" if success else "failed"
        self._log(
            level,
            f"Operation {name} {status}",
            operation=name,
            duration_ms=duration_ms,
            **context,
        )


_loggers: Dict[str, EpfLogger] = {}


def get_logger(name: str, layer: EpfLayer) -> EpfLogger:
    """Get (or create) the logger for an EPF component."""
    key = f"{layer.value}.{name}"
    logger = _loggers.get(key)
    if logger is None:
        logger = _loggers.setdefault(key, EpfLogger(name, layer))
    return logger


def configure_logging(stream: Any = None) -> None:
    """Re-apply configuration to every logger created so far."""
    for logger in list(_loggers.values()):
        logger.configure(stream)


T = TypeVar("T")


def timed_operation(
    logger: EpfLogger,
    operation_name: str,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for timing and logging operations."""
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            start = time.monotonic()
            success = True
            try:
                return func(*args, **kwargs)
            except Exception:
                success = False
                raise
            finally:
                duration_ms = (time.monotonic() - start) * 1000
                logger.operation(operation_name, duration_ms, success)
        return wrapper
    return decorator
