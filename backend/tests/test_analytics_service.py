"""
View functions against a recording store: param resolution, dispatch and
response shapes.
"""

from datetime import date

import pytest
from pymongo.errors import PyMongoError

from api.middleware.request_id import current_request_id
from constants import (
    COLLECTION_EXPENDITURES,
    COLLECTION_SUMMARIES,
    COLLECTION_WORKS_COMPLETED,
    COLLECTION_WORKS_RECOMMENDED,
)
from services.analytics_service import (
    get_completed_works,
    get_expenditure_categories,
    get_expenditures,
    get_filter_options,
    get_member_summaries,
    get_overview,
    get_performance_distribution,
    get_recommended_works,
    get_state_summary,
    get_top_performers,
    get_utilization_trends,
    resolve_expenditure_filters,
    resolve_scope,
    resolve_works_filters,
    resolve_year_range,
    run_parallel,
)
from services.result_shaper import EMPTY_COMPARISON_STATS, EMPTY_EXPENDITURE_SUMMARY, EMPTY_WORKS_SUMMARY


def _ops(pipeline):
    return [next(iter(stage)) for stage in pipeline]


class TestParamResolution:

    def test_scope_defaults_to_both_houses_and_configured_term(self):
        scope = resolve_scope({})
        assert scope.house is None
        assert scope.term == 18
        assert scope.state is None

    def test_scope_normalizes_inputs(self):
        scope = resolve_scope({"house": "lok_sabha", "ls_term": "17", "state": "  Uttar Pradesh "})
        assert scope.house == "Lok Sabha"
        assert scope.term == 17
        assert scope.state == "Uttar Pradesh"

    def test_year_range_defaults(self):
        assert resolve_year_range({}, today=date(2026, 3, 1)) == (2014, 2026)

    def test_reversed_year_range_is_swapped(self):
        assert resolve_year_range({"start_year": 2024, "end_year": 2019}) == (2019, 2024)

    def test_expenditure_filters_drop_bad_bounds(self):
        filters = resolve_expenditure_filters({
            "min_amount": "-5",
            "max_amount": "abc",
            "year": "20x3",
            "category": "  ",
            "search": " road ",
        })
        assert filters.min_amount is None
        assert filters.max_amount is None
        assert filters.year is None
        assert filters.category is None
        assert filters.search == "road"

    def test_works_filters_accept_district_and_flags(self):
        filters = resolve_works_filters(
            {"district": "Wayanad", "min_cost": "-1", "status": "Sanctioned", "has_payments": "0"},
            recommended=True,
        )
        assert filters.constituency == "Wayanad"
        assert filters.min_cost is None
        assert filters.status == "Sanctioned"
        assert filters.has_payments is False

        completed = resolve_works_filters({"status": "Sanctioned", "has_payments": "true"})
        assert completed.status is None
        assert completed.has_payments is None


class TestRunParallel:

    def test_collects_results_by_name(self):
        assert run_parallel({"a": lambda: 1, "b": lambda: 2}) == {"a": 1, "b": 2}

    def test_request_id_follows_tasks_to_worker_threads(self):
        token = current_request_id.set("req-123")
        try:
            results = run_parallel({
                "a": current_request_id.get,
                "b": current_request_id.get,
            })
        finally:
            current_request_id.reset(token)
        assert results == {"a": "req-123", "b": "req-123"}

    def test_failure_in_any_task_propagates(self):
        def boom():
            raise PyMongoError("store down")

        with pytest.raises(PyMongoError):
            run_parallel({"ok": lambda: 1, "boom": boom})


class TestExpenditures:

    rows = [{"_id": "e1", "amountNorm": 10.0}, {"_id": "e2", "amountNorm": 5.0}]

    def _responder(self, collection, pipeline):
        ops = _ops(pipeline)
        if "$count" in ops:
            return [{"total": 25}]
        if "$lookup" in ops:
            return self.rows
        return [{
            "totalAmount": 100.0,
            "avgAmount": 4.0,
            "totalTransactions": 25,
            "uniqueCategories": ["Water", None, "Roads"],
            "uniqueMPCount": 3,
        }]

    def test_page_with_pagination_and_summary(self, recording_store):
        store = recording_store(responder=self._responder)

        result = get_expenditures(store, {"page": 2, "limit": 10})

        assert result["expenditures"] == self.rows
        assert result["pagination"] == {
            "currentPage": 2,
            "totalPages": 3,
            "totalCount": 25,
            "limit": 10,
            "hasNext": True,
            "hasPrev": True,
        }
        assert result["summary"]["uniqueCategories"] == ["Roads", "Water"]
        assert result["summary"]["uniqueMPCount"] == 3
        assert result["filters"]["sort"] == "-amount"
        assert result["filters"]["ls_term"] == 18
        assert "lastUpdated" in result
        assert len(store.calls) == 3
        assert {"$skip": 10} in store.pipelines_with("$lookup")[0]

    def test_empty_result_keeps_shape(self, store):
        result = get_expenditures(store, {})

        assert result["expenditures"] == []
        assert result["pagination"]["totalCount"] == 0
        assert result["pagination"]["totalPages"] == 0
        assert result["pagination"]["hasNext"] is False
        assert result["summary"] == EMPTY_EXPENDITURE_SUMMARY

    def test_unknown_sort_falls_back(self, store):
        result = get_expenditures(store, {"sort": "password"})
        assert result["filters"]["sort"] == "-amount"

    def test_store_failure_propagates(self, recording_store):
        store = recording_store(error=PyMongoError("down"))
        with pytest.raises(PyMongoError):
            get_expenditures(store, {})

    def test_categories(self, recording_store):
        store = recording_store(responder=lambda c, p: [{"category": "Roads", "totalAmount": 9.0}])

        result = get_expenditure_categories(store, {"house": "Rajya Sabha"})

        assert result["totalCategories"] == 1
        assert result["filters"]["house"] == "Rajya Sabha"
        assert store.calls[0][1][0] == {"$match": {"house": "Rajya Sabha"}}


class TestTrends:

    def test_yearly_granularity_skips_monthly_and_quarterly(self, store):
        result = get_utilization_trends(store, {"start_year": 2020, "end_year": 2022})

        assert len(store.calls) == 4
        assert result["utilization"]["monthly"] == []
        assert result["utilization"]["quarterly"] == []
        assert result["period"] == {"start_year": 2020, "end_year": 2022, "granularity": "yearly"}

    def test_monthly_granularity_adds_one_pipeline(self, store):
        result = get_utilization_trends(store, {"granularity": "MONTHLY", "end_year": 2022})

        assert len(store.calls) == 5
        assert result["period"]["granularity"] == "monthly"
        assert len(store.pipelines_for(COLLECTION_EXPENDITURES)) == 3

    def test_unknown_granularity_is_yearly(self, store):
        result = get_utilization_trends(store, {"granularity": "hourly"})
        assert result["period"]["granularity"] == "yearly"


class TestTopPerformers:

    def test_defaults_and_clamping(self, store):
        result = get_top_performers(store, {"top_n": 500, "metric": "bogus"})

        assert result["metric"] == "utilization"
        assert result["parameters"]["top_n"] == 50
        assert result["comparisonStats"] == EMPTY_COMPARISON_STATS
        assert result["topPerformers"] == []
        assert any({"$limit": 50} in p for p in store.pipelines_for(COLLECTION_SUMMARIES))

    def test_metric_selects_summary_field(self, store):
        get_top_performers(store, {"metric": "works_completed", "top_n": 3})

        added = [s for p in store.calls for s in p[1] if "$addFields" in s]
        assert added
        assert all(s["$addFields"]["_metric"] == {"$ifNull": ["$completedWorksCount", 0]} for s in added)


class TestDistribution:

    def test_house_comparison_only_for_both_houses(self, store):
        result = get_performance_distribution(store, {})
        assert len(store.calls) == 2
        assert len(result["utilizationDistribution"]) == 6
        assert result["houseComparison"] == []

    def test_single_house_skips_comparison(self, store):
        get_performance_distribution(store, {"house": "Lok Sabha"})
        assert len(store.calls) == 1


class TestSummaries:

    def test_overview_empty(self, store):
        result = get_overview(store, {})
        assert result["totalMPs"] == 0
        assert result["utilizationPercentage"] == 0.0

    def test_state_summary(self, recording_store):
        def responder(collection, pipeline):
            if "$limit" in _ops(pipeline):
                return [{"state": "Kerala", "totalAllocated": 100, "totalExpenditure": 50, "mpCount": 4}]
            return [{"_id": "Kerala", "completedWorksCount": 7, "recommendedWorksCount": 9}]

        store = recording_store(responder=responder)
        result = get_state_summary(store, {"sort_by": "totalallocated", "order": "asc", "limit": 500})

        assert result["count"] == 1
        assert result["states"][0]["utilizationPercentage"] == 50.0
        assert result["states"][0]["completedWorksCount"] == 7
        assert result["filters"]["sort_by"] == "totalAllocated"
        assert result["filters"]["order"] == "asc"
        assert result["filters"]["limit"] == 100

    def test_state_summary_defaults(self, store):
        result = get_state_summary(store, {"sort_by": "nope", "order": "sideways"})
        assert result["filters"]["sort_by"] == "utilizationPercentage"
        assert result["filters"]["order"] == "desc"
        assert result["filters"]["limit"] == 50

    def test_filter_options(self, recording_store):
        store = recording_store(distinct_values={
            ("mps", "state"): ["Kerala", None, "Bihar"],
            ("mps", "house"): ["Rajya Sabha"],
            ("mps", "constituency"): ["Wayanad", ""],
        })

        result = get_filter_options(store, {})

        assert result["states"] == ["Bihar", "Kerala"]
        assert result["houses"] == ["Rajya Sabha"]
        assert result["constituencies"] == ["Wayanad"]
        assert [t["term"] for t in result["lsTerms"]] == [18, 17]
        assert result["granularities"] == ["yearly", "quarterly", "monthly"]


class TestWorks:

    rows = [{"_id": "w1", "amountNorm": 50.0}, {"_id": "w2", "amountNorm": 100.0}]

    def _responder(self, collection, pipeline):
        ops = _ops(pipeline)
        if "$count" in ops:
            return [{"total": 3}]
        if "$skip" in ops:
            return self.rows
        if pipeline[-1] == {"$sort": {"count": -1, "status": 1}}:
            return [{"status": "Recommended", "count": 3}]
        return [{
            "totalCost": 150.0,
            "avgCost": 50.0,
            "totalWorks": 3,
            "uniqueCategories": ["Water", None],
            "uniqueConstituencyCount": 1,
            "totalBeneficiaries": 1200.0,
        }]

    def test_completed_works_page(self, recording_store):
        store = recording_store(responder=self._responder)

        result = get_completed_works(store, {"page": 1, "limit": 2, "district": "Wayanad", "status": "Sanctioned"})

        assert result["completedWorks"] == self.rows
        assert result["pagination"]["totalPages"] == 2
        assert result["pagination"]["hasNext"] is True
        assert result["summary"]["totalCost"] == 150.0
        assert result["summary"]["uniqueCategories"] == ["Water"]
        assert result["summary"]["totalBeneficiaries"] == 1200
        assert "statusDistribution" not in result["summary"]
        assert result["filters"]["constituency"] == "Wayanad"
        assert result["filters"]["sort"] == "-date"
        assert "status" not in result["filters"]
        assert [c for c, _ in store.calls] == [COLLECTION_WORKS_COMPLETED] * 3

    def test_recommended_works_share_one_prefix(self, recording_store):
        store = recording_store(responder=self._responder)

        result = get_recommended_works(store, {"has_payments": "yes", "sort": "cost"})

        assert result["recommendedWorks"] == self.rows
        assert result["summary"]["statusDistribution"] == [{"status": "Recommended", "count": 3}]
        assert result["filters"]["has_payments"] is True
        assert result["filters"]["sort"] == "cost"
        assert [c for c, _ in store.calls] == [COLLECTION_WORKS_RECOMMENDED] * 4
        count = store.pipelines_with("$count")[0]
        prefix = count[:-1]
        assert all(pipeline[:len(prefix)] == prefix for _, pipeline in store.calls)

    def test_empty_works_keep_shape(self, store):
        result = get_recommended_works(store, {})

        assert result["recommendedWorks"] == []
        assert result["pagination"]["totalCount"] == 0
        assert result["summary"] == {**EMPTY_WORKS_SUMMARY, "statusDistribution": []}


class TestMemberSummaries:

    def test_page_sort_and_echo(self, recording_store):
        def responder(collection, pipeline):
            if "$count" in _ops(pipeline):
                return [{"total": 41}]
            return [{"id": "m1", "mpName": "Ravi Kumar"}]

        store = recording_store(responder=responder)
        result = get_member_summaries(store, {
            "page": 3,
            "limit": 20,
            "sort_by": "mpname",
            "order": "asc",
            "search": " Ravi ",
        })

        assert result["mps"] == [{"id": "m1", "mpName": "Ravi Kumar"}]
        assert result["pagination"]["totalPages"] == 3
        assert result["pagination"]["hasNext"] is False
        assert result["filters"]["sort_by"] == "mpName"
        assert result["filters"]["order"] == "asc"
        assert result["filters"]["search"] == "Ravi"
        assert len(store.pipelines_for(COLLECTION_SUMMARIES)) == 2
        assert {"$skip": 40} in store.pipelines_with("$skip")[0]

    def test_defaults(self, store):
        result = get_member_summaries(store, {"sort_by": "password", "order": "sideways"})

        assert result["mps"] == []
        assert result["filters"]["sort_by"] == "utilizationPercentage"
        assert result["filters"]["order"] == "desc"
        assert result["pagination"]["limit"] == 20
