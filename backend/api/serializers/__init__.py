"""
Response serializers and envelope helpers.
"""

from .response import success_envelope, error_envelope, json_success

__all__ = ['success_envelope', 'error_envelope', 'json_success']
