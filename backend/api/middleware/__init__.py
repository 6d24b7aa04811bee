"""
App-wide middleware, installed by create_app in this order:

- request_id: X-Request-ID propagation and g.request_id
- request_logging: sampled api_request log lines with normalized filters
- query_timing: X-DB-Time-Ms / X-Query-Count from pymongo command events
- error_envelope: every failure rendered as {"error": {...}}
"""

from .error_envelope import setup_error_handlers
from .query_timing import CommandTimingListener, setup_query_timing_middleware
from .request_id import setup_request_id_middleware
from .request_logging import setup_request_logging_middleware

__all__ = [
    'CommandTimingListener',
    'setup_error_handlers',
    'setup_query_timing_middleware',
    'setup_request_id_middleware',
    'setup_request_logging_middleware',
]
