"""
Filter builder utilities.

Provides a single source of truth for house/term gating and the standard
record filters. Every pipeline that is house/term aware (raw expenditures,
works, member summaries, state summaries) gets its gate from
build_house_gate() so the predicate shape never differs between endpoints.
"""

from typing import Any, Dict, Iterable, List, Optional, Union

from bson import ObjectId

from constants import (
    HOUSE_LOK_SABHA,
    HOUSE_RAJYA_SABHA,
    KNOWN_LS_TERMS,
    LS_TERM_BOTH,
    normalize_house,
)
from utils.sanitize import contains_pattern

TermSelection = Union[int, str]


def _default_term() -> TermSelection:
    from config import Config

    default = _parse_term(Config.DEFAULT_LS_TERM)
    return default if default is not None else KNOWN_LS_TERMS[-1]


def _parse_term(raw: Any) -> Optional[TermSelection]:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        raw = raw.strip().lower()
        if raw == LS_TERM_BOTH:
            return LS_TERM_BOTH
    try:
        term = int(raw)
    except (TypeError, ValueError):
        return None
    return term if term in KNOWN_LS_TERMS else None


def resolve_term_selection(raw: Any = None, default: Any = None) -> TermSelection:
    """
    Resolve the Lok Sabha term selection for a request.

    Returns 17, 18 or 'both'. Missing or unrecognized values fall back to
    `default`, then to Config.DEFAULT_LS_TERM (18 unless configured).
    """
    term = _parse_term(raw)
    if term is not None:
        return term
    fallback = _parse_term(default)
    if fallback is not None:
        return fallback
    return _default_term()


def term_condition(term_selection: TermSelection) -> Any:
    """lsTerm predicate value for a resolved selection."""
    if term_selection == LS_TERM_BOTH:
        return {'$in': list(KNOWN_LS_TERMS)}
    return int(term_selection)


def build_house_gate(house: Optional[str], term_selection: TermSelection) -> Dict[str, Any]:
    """
    Build the house/term gate predicate.

    - Lok Sabha: house = LS and lsTerm = selection (or in {17, 18} for 'both')
    - Rajya Sabha: house = RS only; the term dimension does not apply
    - unspecified: RS records plus the selected LS term(s), never LS across
      all terms
    """
    canonical = normalize_house(house)
    lok_sabha = {'house': HOUSE_LOK_SABHA, 'lsTerm': term_condition(term_selection)}

    if canonical == HOUSE_LOK_SABHA:
        return lok_sabha
    if canonical == HOUSE_RAJYA_SABHA:
        return {'house': HOUSE_RAJYA_SABHA}
    return {'$or': [{'house': HOUSE_RAJYA_SABHA}, lok_sabha]}


def build_state_condition(state: Optional[str], field: str = 'state') -> Optional[Dict[str, Any]]:
    """Case-insensitive substring match on state; independent of the gate."""
    pattern = contains_pattern(state)
    if pattern is None:
        return None
    return {field: pattern}


def build_mp_id_condition(mp_id: Optional[str], field: str = 'mp_id') -> Optional[Dict[str, Any]]:
    """
    Match a member reference stored either as a raw string or an ObjectId.
    """
    if mp_id is None:
        return None
    raw = str(mp_id).strip()
    if not raw:
        return None
    alternatives: List[Dict[str, Any]] = [{field: raw}]
    if ObjectId.is_valid(raw):
        alternatives.append({field: ObjectId(raw)})
    if len(alternatives) == 1:
        return alternatives[0]
    return {'$or': alternatives}


def build_search_condition(search: Optional[str], fields: Iterable[str]) -> Optional[Dict[str, Any]]:
    """Literal, case-insensitive substring search across several fields."""
    pattern = contains_pattern(search)
    if pattern is None:
        return None
    return {'$or': [{field: dict(pattern)} for field in fields]}


def build_member_search_condition(
    search: Optional[str],
    name_field: str = 'mpName',
    other_fields: Iterable[str] = ('constituency', 'state'),
) -> Optional[Dict[str, Any]]:
    """
    Member search: the name as typed, every word of a multi-word name in any
    order ("Kumar Ravi" finds "Ravi Kumar"), or a substring of another field.
    """
    pattern = contains_pattern(search)
    if pattern is None:
        return None
    alternatives: List[Dict[str, Any]] = [{name_field: dict(pattern)}]
    words = search.split()
    if len(words) > 1:
        alternatives.append({'$and': [{name_field: contains_pattern(word)} for word in words]})
    alternatives.extend({field: dict(pattern)} for field in other_fields)
    return {'$or': alternatives}


def combine_conditions(conditions: Iterable[Optional[Dict[str, Any]]]) -> Dict[str, Any]:
    """
    AND together the non-empty conditions.

    Always returns an explicit {'$and': [...]} when there is more than one
    clause so a gate's $or can never collide with another clause's $or.
    """
    clauses = [c for c in conditions if c]
    if not clauses:
        return {}
    if len(clauses) == 1:
        return clauses[0]
    return {'$and': clauses}
