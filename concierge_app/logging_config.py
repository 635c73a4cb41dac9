"""Structured logging helpers for the Weather Concierge app."""

from __future__ import annotations

import contextlib
import contextvars
from dataclasses import asdict, is_dataclass
from enum import Enum
import json
import logging
import os
import re
import time
import uuid
from typing import Any, Dict, Iterator

CORRELATION_ID = contextvars.ContextVar("correlation_id", default=None)

# Attributes every LogRecord carries; anything else on a record came from ``extra``.
_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))) | {
    "message",
    "asctime",
}
_DEFAULT_REDACT_KEYS = {
    "title",
    "summary",
    "description",
    "location",
    "address",
    "coordinates",
    "latitude",
    "longitude",
    "lat",
    "lon",
    "token",
    "access_token",
    "calendar_token",
    "home_location",
}
_EMAIL_PATTERN = re.compile(r"[\w.\-]+@[\w.\-]+")
_TOKEN_PREFIXES = ("bearer ", "ya29.")


class JsonFormatter(logging.Formatter):
    """One JSON object per record: level, event name, correlation id and extras."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        message = record.getMessage()
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
            "event": getattr(record, "event", message),
            "correlation_id": getattr(record, "correlation_id", None) or CORRELATION_ID.get(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key in payload:
                continue
            payload[key] = redact_for_log(value) if key not in _DEFAULT_REDACT_KEYS else "[redacted]"
        return json.dumps(payload)


def configure_logging(level: int | str | None = None) -> None:
    """Send root logging to stderr as JSON; ``LOG_LEVEL`` applies when no level is given."""

    desired_level = level or os.getenv("LOG_LEVEL", "INFO")
    if isinstance(desired_level, str):
        desired_level = desired_level.upper()
    logging.root.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    logging.basicConfig(level=desired_level, handlers=[handler])


def _redact_string(value: str) -> str:
    """Mask email addresses and OAuth bearer tokens."""

    lowered = value.lower()
    if lowered.startswith(_TOKEN_PREFIXES):
        return "[redacted-token]"
    if _EMAIL_PATTERN.search(value):
        return _EMAIL_PATTERN.sub("[redacted-email]", value)
    return value


def redact_for_log(payload: Any) -> Any:
    """Recursively scrub event titles, locations, coordinates and tokens.

    Dataclasses (snapshots, coordinates, events) are flattened first so their
    sensitive fields are caught by key rather than leaking through ``str()``.
    """

    if payload is None or isinstance(payload, (bool, int, float)):
        return payload
    if isinstance(payload, Enum):
        return payload.value
    if isinstance(payload, str):
        return _redact_string(payload)
    if is_dataclass(payload) and not isinstance(payload, type):
        return redact_for_log(asdict(payload))
    if isinstance(payload, (list, tuple, set)):
        return [redact_for_log(item) for item in payload]
    if isinstance(payload, dict):
        return {
            key: "[redacted]" if key in _DEFAULT_REDACT_KEYS else redact_for_log(value)
            for key, value in payload.items()
        }
    return str(payload)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger, configuring JSON output on first use."""

    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)


def ensure_correlation_id(correlation_id: str | None = None) -> str:
    """Return the active correlation id, assigning ``correlation_id`` or a new one if needed."""

    if correlation_id:
        CORRELATION_ID.set(correlation_id)
        return correlation_id
    current = CORRELATION_ID.get()
    if current:
        return current
    new_id = uuid.uuid4().hex
    CORRELATION_ID.set(new_id)
    return new_id


@contextlib.contextmanager
def correlation_context(correlation_id: str | None = None) -> Iterator[str]:
    """Temporarily set a correlation id; the previous one is restored on exit."""

    token = CORRELATION_ID.set(correlation_id or ensure_correlation_id())
    try:
        yield CORRELATION_ID.get()
    finally:
        CORRELATION_ID.reset(token)


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    """Emit a structured log entry with correlation metadata."""

    correlation_id = ensure_correlation_id(fields.pop("correlation_id", None))
    exc_info = fields.pop("exc_info", None)
    logger.log(
        level,
        event,
        exc_info=exc_info,
        extra={"event": event, "correlation_id": correlation_id, **redact_for_log(fields)},
    )


@contextlib.contextmanager
def operation_context(name: str, **attributes: Any) -> Iterator[str]:
    """Scope a correlation id to one operation and log how long it took.

    An id already active in the caller's context is reused, so a dashboard load,
    the orchestrator run and the enrichment run inside it all log under one id.
    A new id is minted only when none is active.
    """

    logger = logging.getLogger(__name__)
    correlation_id = attributes.pop("correlation_id", None) or CORRELATION_ID.get() or uuid.uuid4().hex
    with correlation_context(correlation_id) as scoped_id:
        started = time.perf_counter()
        log_event(logger, logging.DEBUG, "operation_started", operation=name, **attributes)
        try:
            yield scoped_id
        except Exception:
            log_event(
                logger,
                logging.WARNING,
                "operation_failed",
                operation=name,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            raise
        log_event(
            logger,
            logging.DEBUG,
            "operation_completed",
            operation=name,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )


__all__ = [
    "JsonFormatter",
    "configure_logging",
    "correlation_context",
    "ensure_correlation_id",
    "get_logger",
    "log_event",
    "redact_for_log",
    "operation_context",
]
