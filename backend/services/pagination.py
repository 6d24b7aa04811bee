"""
Pagination & sort resolution.

Malformed input is clamped to a safe value rather than rejected: a page of
"abc" is page 1, a limit of 5000 is the maximum limit, and an unknown sort
key falls back to the view's default sort.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from constants import DEFAULT_LIMIT, DEFAULT_PAGE, MAX_LIMIT, MAX_PAGE, MIN_LIMIT


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int
    skip: int


@dataclass(frozen=True)
class SortSpec:
    """A resolved sort: public key echoed back, internal field used in $sort."""

    key: str
    field: str
    direction: int

    def stage(self, tiebreak: Optional[str] = '_id') -> Dict[str, Any]:
        spec = {self.field: self.direction}
        if tiebreak and tiebreak != self.field:
            spec[tiebreak] = 1
        return {'$sort': spec}

    @property
    def public(self) -> str:
        return f"-{self.key}" if self.direction < 0 else self.key


def _coerce_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return None


def resolve_pagination(
    page: Any = None,
    limit: Any = None,
    *,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
    max_page: int = MAX_PAGE,
) -> Pagination:
    """
    Clamp page/limit into range and compute skip.

    page  -> [1, max_page], default 1
    limit -> [1, max_limit], default default_limit
    skip  = (page - 1) * limit
    """
    safe_page = _coerce_int(page)
    if safe_page is None:
        safe_page = DEFAULT_PAGE
    safe_page = min(max(safe_page, 1), max_page)

    safe_limit = _coerce_int(limit)
    if safe_limit is None:
        safe_limit = default_limit
    safe_limit = min(max(safe_limit, MIN_LIMIT), max_limit)

    return Pagination(page=safe_page, limit=safe_limit, skip=(safe_page - 1) * safe_limit)


def _parse_sort(raw: Any):
    if raw is None:
        return None, 1
    text = str(raw).strip()
    if not text:
        return None, 1
    direction = 1
    if text.startswith('-'):
        direction = -1
        text = text[1:]
    elif text.startswith('+'):
        text = text[1:]
    return text.strip().lower() or None, direction


def resolve_sort(sort: Any, aliases: Mapping[str, str], default: str) -> SortSpec:
    """
    Map a public sort key ('amount', '-year', ...) to the post-projection field.

    Unknown keys fail closed to `default`, which must itself be a valid key.
    """
    key, direction = _parse_sort(sort)
    if key not in aliases:
        key, direction = _parse_sort(default)
        if key not in aliases:
            raise ValueError(f"Default sort {default!r} is not a known sort key")
    return SortSpec(key=key, field=aliases[key], direction=direction)
