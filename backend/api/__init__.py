"""
API package - request boundary layer.

This package provides:
- Pydantic param models and the @api_contract decorator
- Response envelopes
- Global middleware (request_id, error_envelope, request logging, query timing)
"""

from .contracts import api_contract, parse_query_params

__all__ = ['api_contract', 'parse_query_params']
