"""
Request ID middleware - Inject X-Request-ID for request correlation.

Provides:
- Request ID injection on every request (g.request_id)
- The same id in a ContextVar, so store commands run on worker threads
  can still be attributed to their request
- Response header addition
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

from flask import Flask, has_app_context, request, g

# Inbound ids are echoed into logs and headers; keep them boring
_REQUEST_ID_PATTERN = re.compile(r'^[A-Za-z0-9._-]{1,64}$')

current_request_id: ContextVar[Optional[str]] = ContextVar('current_request_id', default=None)


def _accept_request_id(raw: Optional[str]) -> str:
    if raw and _REQUEST_ID_PATTERN.match(raw):
        return raw
    return str(uuid.uuid4())


def setup_request_id_middleware(app: Flask) -> None:
    """
    Set up request ID middleware on Flask app.

    Injects X-Request-ID into:
    - Flask's g object (g.request_id)
    - current_request_id ContextVar
    - Response headers (X-Request-ID)

    A client-supplied X-Request-ID is reused only if it is a short token of
    letters, digits, '.', '_' or '-'; anything else gets a fresh UUID.

    Args:
        app: Flask application instance
    """

    @app.before_request
    def inject_request_id():
        """Inject request ID before each request."""
        request_id = _accept_request_id(request.headers.get('X-Request-ID'))
        g.request_id = request_id
        g._request_id_token = current_request_id.set(request_id)

    @app.after_request
    def add_request_id_header(response):
        """Add request ID to response headers."""
        if hasattr(g, 'request_id'):
            response.headers['X-Request-ID'] = g.request_id
        return response

    @app.teardown_request
    def clear_request_id(exc=None):
        token = g.pop('_request_id_token', None)
        if token is not None:
            current_request_id.reset(token)


def get_request_id() -> str:
    """
    Get current request ID.

    Falls back to the ContextVar (worker threads) and then to a fresh UUID
    outside any request.
    """
    if has_app_context() and hasattr(g, "request_id"):
        return g.request_id
    return current_request_id.get() or str(uuid.uuid4())
