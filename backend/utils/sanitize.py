"""
Input sanitization for values embedded in store queries.

Free text from the request is never used as a pattern directly: it is
escaped and wrapped in a case-insensitive $regex so that "a.b*c" matches the
literal substring "a.b*c". Numeric range inputs are parsed leniently and
dropped (not rejected) when negative or non-numeric.

Usage:
    from utils.sanitize import contains_pattern, parse_non_negative

    match['state'] = contains_pattern(params.state)
    min_amount = parse_non_negative(request.args.get('min_amount'))
"""

import math
import re
from typing import Any, Dict, Optional

# Longest free-text term we embed in a pattern filter
MAX_SEARCH_LENGTH = 200


def escape_regex(text: Any) -> str:
    """
    Escape every regex metacharacter in text.

    re.escape covers the full set (. ^ $ * + ? { } [ ] \\ | ( )) plus
    whitespace and '-', which is a superset of what the store's PCRE engine
    needs.
    """
    if text is None:
        return ''
    return re.escape(str(text))


def clean_search_term(text: Any, max_length: int = MAX_SEARCH_LENGTH) -> Optional[str]:
    """
    Strip and truncate a search term; None if nothing is left.

    Inner whitespace is kept as typed: "road  works" must still match a
    description stored with two spaces.
    """
    if text is None:
        return None
    term = str(text).strip()
    if not term:
        return None
    return term[:max_length]


def contains_pattern(text: Any) -> Optional[Dict[str, str]]:
    """
    Case-insensitive literal substring predicate for a store $match.

    Returns None for empty input so callers can skip the condition.
    """
    term = clean_search_term(text)
    if term is None:
        return None
    return {'$regex': escape_regex(term), '$options': 'i'}


def parse_non_negative(value: Any) -> Optional[float]:
    """
    Parse a range bound. Negative, non-numeric, NaN and infinite inputs
    yield None so the bound is silently dropped.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if value == '':
            return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(parsed) or math.isinf(parsed) or parsed < 0:
        return None
    return parsed


def parse_year(value: Any) -> Optional[int]:
    """Parse a four-digit year; anything else yields None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        year = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    if year < 1000 or year > 9999:
        return None
    return year
