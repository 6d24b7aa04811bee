"""
Query timing middleware - Lightweight MongoDB command timing for observability.

Captures:
- Command execution time (db_time_ms)
- Command count per request
- Correlates with request_id

Timing comes from pymongo's command monitoring (CommandSucceededEvent
carries the server round-trip duration), so nothing extra is sent to the
server. Views dispatch pipelines on worker threads; the request id travels
with them in a ContextVar (see services.analytics_service.run_parallel).

Log format:
    SLOW_QUERY request_id=<uuid> elapsed_ms=<float> command=<name> collection=<name>
    REQUEST_TIMING request_id=<uuid> db_time_ms=<float> query_count=<int>
"""

import logging
import threading
from typing import Dict, List, Optional

from flask import Flask, g
from pymongo import monitoring

from .request_id import current_request_id

logger = logging.getLogger('mongo.timing')

# request_id -> list of command timings
_timings: Dict[str, List[dict]] = {}
_timings_lock = threading.Lock()

# Commands whose timings are irrelevant to request latency
_IGNORED_COMMANDS = {'hello', 'ismaster', 'isMaster', 'ping', 'endSessions', 'saslStart', 'saslContinue'}


def _slow_threshold_ms() -> int:
    from config import Config

    return Config.SLOW_QUERY_THRESHOLD_MS


class CommandTimingListener(monitoring.CommandListener):
    """Accumulates per-request command timings and logs slow commands."""

    def __init__(self, slow_threshold_ms: Optional[int] = None):
        self.slow_threshold_ms = slow_threshold_ms

    @property
    def threshold_ms(self) -> int:
        if self.slow_threshold_ms is not None:
            return self.slow_threshold_ms
        return _slow_threshold_ms()

    def started(self, event):
        pass

    def succeeded(self, event):
        if event.command_name in _IGNORED_COMMANDS:
            return
        elapsed_ms = event.duration_micros / 1000.0
        request_id = current_request_id.get()
        _record(request_id, elapsed_ms)

        if elapsed_ms > self.threshold_ms:
            collection = None
            reply = getattr(event, 'reply', None) or {}
            cursor = reply.get('cursor') if isinstance(reply, dict) else None
            if isinstance(cursor, dict):
                collection = cursor.get('ns')
            logger.warning(
                f"SLOW_QUERY request_id={request_id or 'no-request-id'} "
                f"elapsed_ms={elapsed_ms:.2f} command={event.command_name} "
                f"collection={collection or event.database_name}"
            )

    def failed(self, event):
        if event.command_name in _IGNORED_COMMANDS:
            return
        request_id = current_request_id.get()
        _record(request_id, event.duration_micros / 1000.0)
        logger.warning(
            f"QUERY_FAILED request_id={request_id or 'no-request-id'} "
            f"command={event.command_name} failure={str(event.failure)[:200]}"
        )


def _record(request_id: Optional[str], elapsed_ms: float) -> None:
    if request_id is None:
        return
    with _timings_lock:
        queries = _timings.get(request_id)
        if queries is not None:
            queries.append({'elapsed_ms': round(elapsed_ms, 2)})


def setup_query_timing_middleware(app: Flask) -> None:
    """
    Set up query timing middleware on Flask app.

    The CommandTimingListener itself is attached when the MongoClient is
    created (see db.mongo.create_client); this wires the per-request
    bookkeeping and the timing response headers.

    Args:
        app: Flask application instance
    """

    @app.before_request
    def reset_query_timing():
        """Start collecting timings for this request."""
        request_id = _get_request_id()
        with _timings_lock:
            _timings[request_id] = []

    @app.after_request
    def inject_timing_headers(response):
        """Add timing headers to response for observability."""
        request_id = _get_request_id()
        with _timings_lock:
            queries = _timings.pop(request_id, [])

        if queries:
            total_db_ms = sum(q['elapsed_ms'] for q in queries)
            query_count = len(queries)

            response.headers['X-DB-Time-Ms'] = str(round(total_db_ms, 2))
            response.headers['X-Query-Count'] = str(query_count)

            if total_db_ms > 200:
                logger.info(
                    f"REQUEST_TIMING request_id={request_id} "
                    f"db_time_ms={total_db_ms:.2f} query_count={query_count}"
                )

        return response

    @app.teardown_request
    def clear_query_timing(exc=None):
        with _timings_lock:
            _timings.pop(_get_request_id(), None)


def _get_request_id() -> str:
    """Get current request ID from Flask context, or 'no-request-id' if unavailable."""
    return getattr(g, 'request_id', 'no-request-id')


def get_request_timing(request_id: Optional[str] = None) -> dict:
    """
    Get timing data for a request (the current one by default).

    Returns:
        dict with total_db_ms, query_count, and individual query timings
    """
    request_id = request_id or current_request_id.get()
    with _timings_lock:
        queries = list(_timings.get(request_id, []))
    return {
        'total_db_ms': sum(q['elapsed_ms'] for q in queries),
        'query_count': len(queries),
        'queries': queries,
    }
