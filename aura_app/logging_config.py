"""Structured JSON logging for the Maison Aura stylist service.

Every record carries the correlation id and operation name of the request
that produced it, including records emitted by background image tasks, which
inherit the context of the request that spawned them. Uploaded photos and
generated images travel through the code as data URLs and bytes, so values
are scrubbed before they reach a handler.
"""

from __future__ import annotations

import contextlib
import contextvars
import json
import logging
import os
import re
import time
import uuid
from typing import Any, Dict, Iterator

CORRELATION_ID: contextvars.ContextVar[str | None] = contextvars.ContextVar("correlation_id", default=None)
OPERATION: contextvars.ContextVar[str | None] = contextvars.ContextVar("operation", default=None)

_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}
_SENSITIVE_KEYS = frozenset({"email", "otp", "images", "image", "base_image"})
_IMAGE_KEY_PATTERN = re.compile(r"(image|visual)_?url$", re.IGNORECASE)
_EMAIL_PATTERN = re.compile(r"[\w.\-+]+@[\w\-]+(\.[\w\-]+)+")
_MAX_LOGGED_STRING = 512

_configured = False


class JsonFormatter(logging.Formatter):
    """Render a record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        message = record.getMessage()
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
            "event": getattr(record, "event", message),
            "correlation_id": getattr(record, "correlation_id", None) or CORRELATION_ID.get(),
            "operation": getattr(record, "operation", None) or OPERATION.get(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and key not in payload:
                payload[key] = _scrub_field(key, value)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: int | str | None = None, force: bool = False) -> None:
    """Install the JSON handler on the root logger once per process."""

    global _configured
    if _configured and not force:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    logging.basicConfig(level=level or os.getenv("LOG_LEVEL", "INFO"), handlers=[handler], force=True)
    _configured = True


def _redact_string(value: str) -> str:
    if value.startswith("data:"):
        mime_type = value[5:].split(";", 1)[0] or "unknown"
        return f"[{mime_type} data-url, {len(value)} chars]"
    if _EMAIL_PATTERN.search(value):
        value = _EMAIL_PATTERN.sub("[redacted-email]", value)
    if value.lower().startswith(("http://", "https://")):
        return "[redacted-url]"
    if len(value) > _MAX_LOGGED_STRING:
        return value[:_MAX_LOGGED_STRING] + "...[truncated]"
    return value


def _scrub_field(key: str, value: Any) -> Any:
    if key in _SENSITIVE_KEYS or _IMAGE_KEY_PATTERN.search(key):
        return None if value is None else "[redacted]"
    return redact_for_log(value)


def redact_for_log(payload: Any) -> Any:
    """Recursively replace emails, URLs and image payloads with placeholders."""

    if payload is None or isinstance(payload, (bool, int, float)):
        return payload
    if isinstance(payload, str):
        return _redact_string(payload)
    if isinstance(payload, (bytes, bytearray)):
        return f"[{len(payload)} bytes]"
    if isinstance(payload, dict):
        return {key: _scrub_field(str(key), value) for key, value in payload.items()}
    if isinstance(payload, (list, tuple, set)):
        return [redact_for_log(item) for item in payload]
    return _redact_string(str(payload))


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)


def ensure_correlation_id(correlation_id: str | None = None) -> str:
    """Adopt ``correlation_id``, keep the current one, or mint a new one."""

    if correlation_id:
        CORRELATION_ID.set(correlation_id)
        return correlation_id
    current = CORRELATION_ID.get()
    if current:
        return current
    minted = uuid.uuid4().hex
    CORRELATION_ID.set(minted)
    return minted


@contextlib.contextmanager
def correlation_context(correlation_id: str | None = None) -> Iterator[str]:
    token = CORRELATION_ID.set(correlation_id or CORRELATION_ID.get() or uuid.uuid4().hex)
    try:
        yield CORRELATION_ID.get()
    finally:
        CORRELATION_ID.reset(token)


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    """Log ``event`` with scrubbed keyword fields as structured attributes."""

    correlation_id = ensure_correlation_id(fields.pop("correlation_id", None))
    exc_info = fields.pop("exc_info", None)
    extra = {key: _scrub_field(key, value) for key, value in fields.items()}
    extra.update(event=event, correlation_id=correlation_id, operation=OPERATION.get())
    logger.log(level, event, exc_info=exc_info, extra=extra)


@contextlib.contextmanager
def operation_context(name: str, correlation_id: str | None = None) -> Iterator[str]:
    """Scope a correlation id and operation name, logging the operation's duration.

    Tasks created inside the block copy the context, so their records keep
    the dispatching operation's id even after the block has exited.
    """

    logger = logging.getLogger(__name__)
    started = time.perf_counter()
    operation_token = OPERATION.set(name)
    with correlation_context(correlation_id) as scoped_id:
        try:
            yield scoped_id
        except Exception:
            log_event(
                logger,
                logging.DEBUG,
                "operation_failed",
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            raise
        else:
            log_event(
                logger,
                logging.DEBUG,
                "operation_finished",
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
        finally:
            OPERATION.reset(operation_token)


__all__ = [
    "CORRELATION_ID",
    "OPERATION",
    "JsonFormatter",
    "configure_logging",
    "correlation_context",
    "ensure_correlation_id",
    "get_logger",
    "log_event",
    "operation_context",
    "redact_for_log",
]
