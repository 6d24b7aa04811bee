"""
Error envelope middleware - every failure leaves the API in one shape.

    {
        "error": {
            "code": "DATABASE_ERROR",
            "message": "The data store is temporarily unavailable",
            "requestId": "uuid"
        }
    }

Analytics params are coerced leniently, so 4xx responses are mostly routing
errors (404/405), rate limiting (429) and the occasional INVALID_PARAMS from
a param model. Store failures surface as 503 without leaking server detail.
"""

import logging
from typing import Any, Dict, Optional

from flask import Flask, g, jsonify
from pymongo.errors import PyMongoError
from werkzeug.exceptions import HTTPException

from api.serializers.response import error_envelope
from utils.normalize import ValidationError

logger = logging.getLogger('api.middleware.error')

# Envelope code -> default HTTP status
ERROR_CODES = {
    "BAD_REQUEST": 400,
    "INVALID_PARAMS": 400,
    "NOT_FOUND": 404,
    "METHOD_NOT_ALLOWED": 405,
    "TOO_MANY_REQUESTS": 429,
    "INTERNAL_ERROR": 500,
    "DATABASE_ERROR": 503,
    "SERVICE_UNAVAILABLE": 503,
}

STORE_UNAVAILABLE_MESSAGE = "The data store is temporarily unavailable"


def _http_error_code(error: HTTPException) -> str:
    # "Method Not Allowed" -> "METHOD_NOT_ALLOWED"
    return (error.name or "Error").upper().replace(' ', '_')


def _log_context(error: Exception, event: str) -> Dict[str, Any]:
    return {
        "event": event,
        "request_id": getattr(g, 'request_id', None),
        "error_type": type(error).__name__,
    }


def setup_error_handlers(app: Flask) -> None:
    """
    Register the envelope handlers on the app.

    HTTPException      -> its own status, code derived from the name
    ValidationError    -> 400 INVALID_PARAMS with the offending field
    PyMongoError       -> 503 DATABASE_ERROR
    anything else      -> 500 INTERNAL_ERROR (logged with traceback)
    """

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return make_error_response(_http_error_code(error), error.description, status_code=error.code)

    @app.errorhandler(ValidationError)
    def handle_validation_error(error):
        details = None
        if error.received_value is not None:
            details = {"received": error.received_value}
        return make_error_response("INVALID_PARAMS", error.message, field=error.field, details=details)

    @app.errorhandler(PyMongoError)
    def handle_store_error(error):
        logger.error(
            "store_error %s: %s", type(error).__name__, str(error)[:200],
            extra=_log_context(error, "store_error"),
        )
        return make_error_response("DATABASE_ERROR", STORE_UNAVAILABLE_MESSAGE)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.exception("unhandled_error %s", error, extra=_log_context(error, "unhandled_error"))
        return make_error_response("INTERNAL_ERROR", "An unexpected error occurred")


def make_error_response(
    code: str,
    message: str,
    status_code: Optional[int] = None,
    field: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    hint: Optional[str] = None,
):
    """
    (response, status) for an error envelope.

    status_code defaults to ERROR_CODES[code], or 500 for unknown codes.
    The request id is always present in the body (null outside a request)
    and mirrored in X-Request-ID.
    """
    body = error_envelope(code, message, field=field, details=details, hint=hint)
    request_id = getattr(g, 'request_id', None)
    body["error"].setdefault("requestId", request_id)

    response = jsonify(body)
    if request_id:
        response.headers['X-Request-ID'] = request_id
    return response, status_code or ERROR_CODES.get(code, 500)
