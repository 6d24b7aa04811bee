"""
Response envelopes.

Success:
    {"success": true, "data": {...view result...}, "meta": {"requestId", ...}}

Error:
    {"error": {"code", "message", "requestId", ["field"], ["details"], ["hint"]}}

View results come straight out of aggregation pipelines, so success data is
passed through serialize_for_json (ObjectId, Decimal128, datetimes) before
it reaches jsonify.
"""

from typing import Any, Dict, List, Optional

from flask import g, has_request_context, jsonify

from services.json_serializer import serialize_for_json


def _request_id() -> Optional[str]:
    if not has_request_context():
        return None
    return getattr(g, 'request_id', None)


def success_envelope(
    data: Any,
    meta: Optional[Dict[str, Any]] = None,
    warnings: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """
    Wrap a view result.

    meta is copied, never mutated; requestId is added when a request is
    active. warnings are included only when non-empty.
    """
    envelope_meta = dict(meta or {})
    request_id = _request_id()
    if request_id:
        envelope_meta['requestId'] = request_id

    envelope = {"success": True, "data": serialize_for_json(data), "meta": envelope_meta}
    if warnings:
        envelope['warnings'] = list(warnings)
    return envelope


def error_envelope(
    code: str,
    message: str,
    field: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    hint: Optional[str] = None,
) -> Dict[str, Any]:
    """Error body; optional keys are omitted rather than sent as null."""
    error: Dict[str, Any] = {"code": code, "message": message}

    request_id = _request_id()
    if request_id:
        error['requestId'] = request_id

    optional = {"field": field, "details": serialize_for_json(details) if details else None, "hint": hint}
    error.update({key: value for key, value in optional.items() if value})
    return {"error": error}


def json_success(data: Any, meta: Optional[Dict[str, Any]] = None, status: int = 200):
    """jsonify(success_envelope(...)) with a status code, for route handlers."""
    return jsonify(success_envelope(data, meta=meta)), status
