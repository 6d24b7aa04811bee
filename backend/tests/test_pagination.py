import pytest

from constants import DEFAULT_EXPENDITURE_SORT, EXPENDITURE_SORT_FIELDS
from services.pagination import resolve_pagination, resolve_sort


class TestResolvePagination:

    def test_defaults(self):
        p = resolve_pagination()
        assert (p.page, p.limit, p.skip) == (1, 20, 0)

    def test_skip_is_page_offset(self):
        p = resolve_pagination(3, 25)
        assert p.skip == 50

    @pytest.mark.parametrize(
        "page, limit, expected",
        [
            ("abc", "xyz", (1, 20)),
            (0, 0, (1, 1)),
            (-5, -5, (1, 1)),
            (5000, 5000, (1000, 100)),
            ("2.9", "10", (2, 10)),
            (True, None, (1, 20)),
        ],
    )
    def test_malformed_values_are_clamped(self, page, limit, expected):
        p = resolve_pagination(page, limit)
        assert (p.page, p.limit) == expected


class TestResolveSort:

    def test_descending_prefix(self):
        sort = resolve_sort("-year", EXPENDITURE_SORT_FIELDS, DEFAULT_EXPENDITURE_SORT)
        assert (sort.key, sort.field, sort.direction) == ("year", "year", -1)
        assert sort.public == "-year"

    def test_public_key_maps_to_normalized_field(self):
        sort = resolve_sort("amount", EXPENDITURE_SORT_FIELDS, DEFAULT_EXPENDITURE_SORT)
        assert sort.field == "amountNorm"
        assert sort.stage() == {"$sort": {"amountNorm": 1, "_id": 1}}

    @pytest.mark.parametrize("raw", [None, "", "-", "password", "$where"])
    def test_unknown_key_falls_back_to_default(self, raw):
        sort = resolve_sort(raw, EXPENDITURE_SORT_FIELDS, DEFAULT_EXPENDITURE_SORT)
        assert sort.public == DEFAULT_EXPENDITURE_SORT
        assert sort.stage() == {"$sort": {"amountNorm": -1, "_id": 1}}

    def test_invalid_default_is_a_programming_error(self):
        with pytest.raises(ValueError):
            resolve_sort("bogus", EXPENDITURE_SORT_FIELDS, "also-bogus")
