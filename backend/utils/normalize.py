"""
Input Normalization Utilities
=============================

Single source of truth for input normalization.
All parsing of external inputs happens here or in the pydantic param
models built on top of it (api/contracts/pydantic_models), nowhere else.

Two kinds of input:
    - Analytics knobs (granularity, metric, order, sort): an unknown value
      falls back to the documented default via to_choice(). Never a 400.
    - Request structure the route cannot interpret (a parameter model that
      fails validation): ValidationError, rendered as 400 INVALID_PARAMS by
      the error envelope middleware.

Usage:
    from utils.normalize import to_choice, to_str, ValidationError

    granularity = to_choice(params.get("granularity"), GRANULARITIES, default="yearly")
"""

from typing import Any, Iterable, Optional


class ValidationError(ValueError):
    """Raised when input cannot be normalized to expected type."""

    def __init__(self, message: str, field: str = None, received_value=None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.received_value = received_value


def to_str(
    value: Any,
    *,
    default: Optional[str] = None,
    strip: bool = True,
    lower: bool = False,
) -> Optional[str]:
    """
    Normalize string input, optionally stripping whitespace.

    Args:
        value: Input value
        default: Value to return if input is None or empty
        strip: Whether to strip leading/trailing whitespace
        lower: Whether to lowercase the result

    Returns:
        Normalized string or default
    """
    if value is None or value == "":
        return default
    result = str(value)
    if strip:
        result = result.strip()
    # Treat whitespace-only as empty
    if result == "":
        return default
    return result.lower() if lower else result


def to_choice(value: Any, choices: Iterable[str], *, default: str) -> str:
    """
    Match value (case-insensitive) against a fixed vocabulary.

    Unknown or empty values return `default`, which is expected to be one of
    the choices.

    Examples:
        to_choice("Monthly", ["yearly", "monthly"], default="yearly") -> "monthly"
        to_choice("hourly", ["yearly", "monthly"], default="yearly") -> "yearly"
    """
    candidate = to_str(value, lower=True)
    if candidate is None:
        return default
    for choice in choices:
        if str(choice).lower() == candidate:
            return choice
    return default


def to_direction(value: Any, *, default: int = -1) -> int:
    """'asc'/'desc' (or 1/-1) to a sort direction; anything else is `default`."""
    candidate = to_str(value, lower=True)
    if candidate in ("asc", "ascending", "1"):
        return 1
    if candidate in ("desc", "descending", "-1"):
        return -1
    return default


def to_optional_bool(value: Any) -> Optional[bool]:
    """
    Parse a yes/no query flag; None when absent or unrecognized.

    Accepts (case-insensitive):
        True: 'true', '1', 'yes', 'on'
        False: 'false', '0', 'no', 'off'
    """
    if isinstance(value, bool):
        return value
    candidate = to_str(value, lower=True)
    if candidate in ("true", "1", "yes", "on"):
        return True
    if candidate in ("false", "0", "no", "off"):
        return False
    return None


def from_model_error(error: Exception) -> ValidationError:
    """
    Convert a pydantic ValidationError into ours, keeping the first failing
    field for the error envelope.
    """
    errors = error.errors() if hasattr(error, "errors") else []
    if not errors:
        return ValidationError(str(error))
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or None
    return ValidationError(
        first.get("msg", "Invalid parameter"),
        field=field,
        received_value=first.get("input"),
    )

