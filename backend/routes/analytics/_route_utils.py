"""
Shared route utilities for API endpoints.

Goals:
- Structured logger usage for timing and failures
- Keep endpoint handlers small and consistent
- One way to reach the app's record store
"""

import time
import logging
from typing import Any, Callable, Dict, Mapping, Optional

from flask import current_app

from api.serializers import json_success

STORE_EXTENSION = "record_store"


def route_logger(name: str) -> logging.Logger:
    """Return namespaced logger for analytics routes."""
    return logging.getLogger(f"analytics.{name}")


def elapsed_ms(start_time: float) -> int:
    """Return elapsed milliseconds since a perf_counter() start value."""
    return int((time.perf_counter() - start_time) * 1000)


def get_store():
    """The record store created (or injected) by create_app()."""
    return current_app.extensions[STORE_EXTENSION]


def log_success(
    logger: logging.Logger,
    route: str,
    start_time: float,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    payload = {"route": route, "elapsed_ms": elapsed_ms(start_time)}
    if details:
        payload.update(details)
    logger.info("route_success %s", payload)


def log_error(
    logger: logging.Logger,
    route: str,
    start_time: float,
    err: Exception,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    payload = {"route": route, "elapsed_ms": elapsed_ms(start_time)}
    if details:
        payload.update(details)
    logger.error("route_error %s err=%s: %s", payload, type(err).__name__, err)


def run_view(
    logger: logging.Logger,
    route: str,
    view: Callable[[Any, Mapping[str, Any]], Dict[str, Any]],
    params: Mapping[str, Any],
):
    """
    Call a view with the app's store and wrap the result in the success
    envelope. Failures are logged with the request filters and re-raised
    for the app error handlers.
    """
    start = time.perf_counter()
    try:
        result = view(get_store(), params)
    except Exception as e:
        log_error(logger, route, start, e, {"filters": dict(params)})
        raise
    log_success(logger, route, start)
    return json_success(result, meta={"elapsedMs": elapsed_ms(start)})
