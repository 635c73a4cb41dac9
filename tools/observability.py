"""Observability helpers for instrumenting provider calls."""

from __future__ import annotations

import logging
import time
from functools import wraps
from typing import Callable, ParamSpec, TypeVar

from concierge_app.logging_config import ensure_correlation_id, get_logger, log_event

LOGGER = get_logger(__name__)
P = ParamSpec("P")
R = TypeVar("R")


def instrument_call(call_name: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Wrap a blocking provider call to emit structured start/finish logs.

    Arguments are not logged; provider inputs are coordinates and free-text
    locations, both of which are personal data.
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            correlation_id = ensure_correlation_id()
            start = time.perf_counter()
            log_event(LOGGER, logging.DEBUG, "provider_call_started", call=call_name, correlation_id=correlation_id)
            try:
                result = func(*args, **kwargs)
            except Exception:
                duration_ms = round((time.perf_counter() - start) * 1000, 2)
                log_event(
                    LOGGER,
                    logging.ERROR,
                    "provider_call_failed",
                    call=call_name,
                    correlation_id=correlation_id,
                    duration_ms=duration_ms,
                    exc_info=True,
                )
                raise
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            log_event(
                LOGGER,
                logging.INFO,
                "provider_call_completed",
                call=call_name,
                correlation_id=correlation_id,
                duration_ms=duration_ms,
                empty=result is None or result == [],
            )
            return result

        return wrapper

    return decorator


__all__ = ["instrument_call"]
