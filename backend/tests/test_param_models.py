"""
Query-string param models: lenient coercion, aliases and boundary
normalization of house / ls_term.
"""

import pytest
from pydantic import ValidationError as ModelValidationError

from api.contracts.pydantic_models import (
    CompletedWorksListParams,
    ExpenditureExportParams,
    ExpenditureListParams,
    MemberSummaryExportParams,
    MemberSummaryListParams,
    RecommendedWorksListParams,
    StateSummaryParams,
    TopPerformersParams,
    TrendsParams,
)


class TestScopedParams:

    def test_defaults(self):
        params = TrendsParams.model_validate({})
        assert params.house is None
        assert params.ls_term == 18
        assert params.state is None

    @pytest.mark.parametrize(
        "raw, expected",
        [("LS", "Lok Sabha"), ("rajya_sabha", "Rajya Sabha"), ("Both Houses", None), ("senate", None)],
    )
    def test_house_normalized(self, raw, expected):
        assert TrendsParams.model_validate({"house": raw}).house == expected

    @pytest.mark.parametrize("raw, expected", [("17", 17), ("both", "both"), ("99", 18), ("", 18)])
    def test_ls_term_resolved(self, raw, expected):
        assert TrendsParams.model_validate({"lsTerm": raw}).ls_term == expected
        assert TrendsParams.model_validate({"ls_term": raw}).ls_term == expected

    def test_models_are_frozen(self):
        params = TrendsParams.model_validate({})
        with pytest.raises(ModelValidationError):
            params.state = "Goa"


class TestExpenditureParams:

    def test_lenient_coercion(self):
        params = ExpenditureListParams.model_validate({
            "page": "abc",
            "limit": "5",
            "minAmount": "-3",
            "maxAmount": "1000",
            "year": "2023",
            "search": "  road   works ",
            "mpId": "  ",
            "unknown": "ignored",
        })

        assert params.page is None
        assert params.limit == 5
        assert params.min_amount is None
        assert params.max_amount == 1000.0
        assert params.year == 2023
        assert params.search == "road   works"
        assert params.mp_id is None

    def test_snake_case_names_accepted(self):
        params = ExpenditureListParams.model_validate({"min_amount": "10", "mp_id": "abc"})
        assert params.min_amount == 10.0
        assert params.mp_id == "abc"

    def test_service_params_are_a_plain_dict(self):
        service_params = ExpenditureExportParams.model_validate({"maxRows": "25"}).to_service_params()

        assert service_params["max_rows"] == 25
        assert service_params["ls_term"] == 18
        assert "page" not in service_params


def test_other_models_accept_camel_case_aliases():
    assert TrendsParams.model_validate({"startYear": "2019", "endYear": "x"}).start_year == 2019
    assert TopPerformersParams.model_validate({"topN": "7"}).top_n == 7
    assert StateSummaryParams.model_validate({"sortBy": "mpCount"}).sort_by == "mpCount"


class TestWorksParams:

    def test_aliases_and_lenient_values(self):
        params = RecommendedWorksListParams.model_validate({
            "mpId": " 64f0 ",
            "minCost": "1e5",
            "maxCost": "lots",
            "hasPayments": "YES",
            "status": " Sanctioned ",
            "district": "Wayanad",
        })

        assert params.mp_id == "64f0"
        assert params.min_cost == 100000.0
        assert params.max_cost is None
        assert params.has_payments is True
        assert params.status == "Sanctioned"
        assert params.district == "Wayanad"

    @pytest.mark.parametrize("raw, expected", [("false", False), ("0", False), ("maybe", None), ("", None)])
    def test_has_payments_flag(self, raw, expected):
        assert RecommendedWorksListParams.model_validate({"has_payments": raw}).has_payments is expected

    def test_completed_works_have_no_recommendation_flags(self):
        service_params = CompletedWorksListParams.model_validate({"status": "x", "page": "2"}).to_service_params()

        assert service_params["page"] == 2
        assert "status" not in service_params
        assert "has_payments" not in service_params


class TestMemberSummaryParams:

    def test_list_params(self):
        params = MemberSummaryListParams.model_validate({
            "sortBy": "mpName",
            "minUtilization": "25",
            "maxUtilization": "-1",
            "search": "  Ravi  Kumar ",
            "limit": "50",
        })

        assert params.sort_by == "mpName"
        assert params.min_utilization == 25.0
        assert params.max_utilization is None
        assert params.search == "Ravi  Kumar"
        assert params.limit == 50

    def test_export_params_have_max_rows_not_page(self):
        service_params = MemberSummaryExportParams.model_validate({"maxRows": "100", "page": "3"}).to_service_params()

        assert service_params["max_rows"] == 100
        assert "page" not in service_params
