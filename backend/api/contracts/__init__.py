"""
Contract enforcement package.

Provides the pydantic param models and the @api_contract decorator.
"""

from .wrapper import api_contract, parse_query_params

__all__ = [
    'api_contract',
    'parse_query_params',
]
