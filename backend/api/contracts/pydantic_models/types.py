"""
Shared Pydantic types and validators for API params.

Query-string values arrive as strings. Analytics params are lenient: a value
that cannot be used becomes None and the service applies its documented
default, so a malformed number never turns into a 400.

- LenientInt: "12" -> 12, "abc" -> None, "3.7" -> 3
- NonNegativeFloat: "1500.5" -> 1500.5, "-1" -> None, "x" -> None
- Year: "2023" -> 2023, "23" -> None
- SearchText: "  road  works " -> "road  works" (stripped, truncated to 200 chars)
- MemberId: "" -> None, " 64f0... " -> "64f0..."
- OptionalBool: "true" / "1" -> True, "no" -> False, "maybe" -> None
"""

from typing import Annotated, Any, Optional

from pydantic import BeforeValidator

from utils.normalize import to_optional_bool
from utils.sanitize import clean_search_term, parse_non_negative, parse_year


def _first(v: Any) -> Any:
    """Repeated query params arrive as lists; the first value wins."""
    if isinstance(v, (list, tuple)):
        return v[0] if v else None
    return v


def coerce_int(v: Any) -> Optional[int]:
    """
    Coerce value to int, or None when it is not a number.

    Examples:
        "12" -> 12
        "12.9" -> 12
        "abc" -> None
        True -> None
    """
    v = _first(v)
    if v is None or v == '' or isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    try:
        return int(float(str(v).strip()))
    except (TypeError, ValueError, OverflowError):
        return None


def coerce_non_negative(v: Any) -> Optional[float]:
    return parse_non_negative(_first(v))


def coerce_year(v: Any) -> Optional[int]:
    return parse_year(_first(v))


def coerce_search(v: Any) -> Optional[str]:
    return clean_search_term(_first(v))


def coerce_optional_str(v: Any) -> Optional[str]:
    v = _first(v)
    if v is None:
        return None
    text = str(v).strip()
    return text or None


def coerce_bool(v: Any) -> Optional[bool]:
    return to_optional_bool(_first(v))


LenientInt = Annotated[Optional[int], BeforeValidator(coerce_int)]
NonNegativeFloat = Annotated[Optional[float], BeforeValidator(coerce_non_negative)]
Year = Annotated[Optional[int], BeforeValidator(coerce_year)]
SearchText = Annotated[Optional[str], BeforeValidator(coerce_search)]
OptionalText = Annotated[Optional[str], BeforeValidator(coerce_optional_str)]
MemberId = Annotated[Optional[str], BeforeValidator(coerce_optional_str)]
OptionalBool = Annotated[Optional[bool], BeforeValidator(coerce_bool)]
