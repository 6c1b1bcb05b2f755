"""
Logging helpers for the MindPlace stores and API.

Store loggers live under the ``mindplace`` namespace. Records emitted through
``StoreLoggerAdapter`` carry the component that logged them, the repository
mode at the time and the failing operation, so a fallback can be traced in
the server's JSON output.
"""

import json
import logging
import sys
from collections.abc import Callable
from typing import Any

from .models import to_iso, utc_now

CONTEXT_FIELDS = ("component", "mode", "operation")


class StructuredJsonFormatter(logging.Formatter):
    """Format records as single-line JSON.

    Fields: ``timestamp`` (ISO 8601 UTC, milliseconds), ``level``, ``logger``,
    ``message``, then whichever of ``component``, ``mode`` and ``operation``
    the record carries, and ``exception`` when one is attached.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj: dict[str, Any] = {
            "timestamp": to_iso(utc_now()),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_obj[key] = value
        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_obj, default=str)


def configure_logging(level: int = logging.INFO, json_format: bool = True) -> logging.Logger:
    """Send ``mindplace`` and aiohttp records to stdout.

    Args:
        level: Logging level (default: INFO)
        json_format: Emit JSON lines; plain text otherwise

    Returns:
        The root logger
    """
    root = logging.getLogger()
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if json_format:
        handler.setFormatter(StructuredJsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    root.addHandler(handler)
    root.setLevel(level)
    return root


def get_store_logger(name: str) -> logging.Logger:
    """Logger for a store component, named ``mindplace.{name}``."""
    return logging.getLogger(f"mindplace.{name}")


class StoreLoggerAdapter(logging.LoggerAdapter):
    """Attach component, mode and operation context to every record.

    ``mode`` is a callable read at log time, so each record shows the mode
    the repository was in when it was written. Pass ``operation=`` to any
    log call to tag the record with the operation that triggered it.

    Example:
        >>> log = StoreLoggerAdapter(logger, "repository", mode=lambda: repo.mode.value)
        >>> log.warning("Remote store unavailable", operation="list_snippets")
    """

    def __init__(
        self,
        logger: logging.Logger,
        component: str,
        mode: Callable[[], str] | None = None,
    ) -> None:
        super().__init__(logger, {"component": component})
        self._mode = mode

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = dict(self.extra)
        if self._mode is not None:
            extra["mode"] = self._mode()
        operation = kwargs.pop("operation", None)
        if operation is not None:
            extra["operation"] = operation
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs
