"""
@api_contract decorator - applies param normalization to route handlers.

Usage:
    @analytics_bp.route("/analytics/trends", methods=["GET"])
    @api_contract(TrendsParams)
    def trends():
        params = g.normalized_params  # dict for the service layer
        ...

The decorator:
1. Builds the endpoint's pydantic param model from the query string
2. Converts a model failure into utils.normalize.ValidationError (400)
3. Stores the normalized params on g for the handler and for logging
4. Adds X-Elapsed-Ms to the response
"""

import functools
import logging
import time
from typing import Callable, Type

from flask import g, request
from pydantic import ValidationError as ModelValidationError

from utils.normalize import from_model_error

from .pydantic_models.base import BaseParamsModel

logger = logging.getLogger('api.contracts')


def parse_query_params(model_cls: Type[BaseParamsModel]) -> BaseParamsModel:
    """
    Validate the current request's query string against model_cls.

    Raises:
        utils.normalize.ValidationError: if the model rejects the input
    """
    raw = request.args.to_dict(flat=True)
    try:
        return model_cls.model_validate(raw)
    except ModelValidationError as e:
        err = from_model_error(e)
        logger.info(
            "param_validation_failed endpoint=%s field=%s msg=%s",
            request.path, err.field, err.message,
        )
        raise err from e


def api_contract(model_cls: Type[BaseParamsModel]):
    """
    Decorator that normalizes request params before the handler runs.

    Args:
        model_cls: The endpoint's param model

    Returns:
        Decorated function; the handler reads g.params (model) or
        g.normalized_params (dict)
    """
    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            start_time = time.perf_counter()

            params = parse_query_params(model_cls)
            g.params = params
            g.normalized_params = params.to_service_params()

            result = fn(*args, **kwargs)

            response = result[0] if isinstance(result, tuple) else result
            if hasattr(response, 'headers'):
                elapsed = (time.perf_counter() - start_time) * 1000
                response.headers['X-Elapsed-Ms'] = f"{elapsed:.1f}"
            return result

        return wrapper
    return decorator
