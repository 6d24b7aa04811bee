import re

import pytest

from utils.sanitize import (
    MAX_SEARCH_LENGTH,
    clean_search_term,
    contains_pattern,
    escape_regex,
    parse_non_negative,
    parse_year,
)


@pytest.mark.parametrize("text", ["a.b", "(x)", "[1]", "a+b?", "^start$", "back\\slash", "{2}", "a|b"])
def test_escaped_pattern_matches_only_the_literal(text):
    pattern = re.compile(escape_regex(text), re.IGNORECASE)

    assert pattern.search(f"prefix {text} suffix")
    assert pattern.fullmatch(text)


def test_escape_regex_none_is_empty():
    assert escape_regex(None) == ""


def test_clean_search_term_strips_and_truncates():
    assert clean_search_term("  road works ") == "road works"
    assert clean_search_term("   ") is None
    assert clean_search_term(None) is None
    assert len(clean_search_term("x" * 500)) == MAX_SEARCH_LENGTH


def test_inner_whitespace_is_kept_literal():
    assert clean_search_term("  road  works ") == "road  works"

    pattern = re.compile(contains_pattern("road  works")["$regex"], re.IGNORECASE)
    assert pattern.search("New road  works, ward 9")
    assert not pattern.search("New road works, ward 9")


def test_contains_pattern():
    assert contains_pattern("Kerala") == {"$regex": "Kerala", "$options": "i"}
    assert contains_pattern("") is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1500.5", 1500.5),
        (0, 0.0),
        ("0", 0.0),
        ("-1", None),
        ("abc", None),
        ("nan", None),
        ("inf", None),
        ("", None),
        (None, None),
        (True, None),
    ],
)
def test_parse_non_negative(raw, expected):
    assert parse_non_negative(raw) == expected


def test_parse_year():
    assert parse_year("2023") == 2023
    assert parse_year(2019) == 2019
    assert parse_year("23") is None
    assert parse_year("twenty") is None
    assert parse_year(None) is None
