"""
Request logging middleware - sampled usage log for /api routes.

Each logged line carries the normalized filters the view ran with, so a slow
or failing analytics request can be replayed against the store. 5xx
responses are always logged; the rest go through the endpoint watchlist
and then the sample rate.
"""

import logging
import random
import time
from typing import Sequence

from flask import Flask, g, request


logger = logging.getLogger("api.request")

API_PREFIX = "/api"


class RequestSampler:
    """Decides which finished requests make it into the log."""

    def __init__(self, sample_rate: float, watched_prefixes: Sequence[str] = ()):
        self.sample_rate = sample_rate
        self.watched_prefixes = tuple(watched_prefixes)

    @classmethod
    def from_config(cls, config) -> "RequestSampler":
        prefixes = [part.strip() for part in (config.REQUEST_LOG_ENDPOINTS or "").split(",")]
        return cls(config.REQUEST_LOG_SAMPLE_RATE, [p for p in prefixes if p])

    def wants(self, path: str, status: int) -> bool:
        if status >= 500:
            return True
        if self.watched_prefixes and path.startswith(self.watched_prefixes):
            return True
        if self.sample_rate <= 0:
            return False
        return self.sample_rate >= 1 or random.random() <= self.sample_rate


def setup_request_logging_middleware(app: Flask) -> None:
    """
    Attach the sampled request log.

    Reads REQUEST_LOG_ENABLED, REQUEST_LOG_SAMPLE_RATE and
    REQUEST_LOG_ENDPOINTS from config.Config at setup time.
    """
    from config import Config

    if not Config.REQUEST_LOG_ENABLED:
        return

    sampler = RequestSampler.from_config(Config)

    @app.before_request
    def _mark_start():
        g.request_start = time.perf_counter()

    @app.after_request
    def _log_request(response):
        path = request.path
        if not path.startswith(API_PREFIX) or not sampler.wants(path, response.status_code):
            return response

        started = getattr(g, "request_start", None)
        duration_ms = round((time.perf_counter() - started) * 1000, 2) if started is not None else None

        logger.info(
            "api_request path=%s method=%s status=%s duration_ms=%s db_ms=%s queries=%s request_id=%s filters=%s",
            path,
            request.method,
            response.status_code,
            duration_ms,
            response.headers.get("X-DB-Time-Ms"),
            response.headers.get("X-Query-Count"),
            getattr(g, "request_id", None),
            getattr(g, "normalized_params", None),
        )
        return response
