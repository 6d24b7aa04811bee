"""
Analytics Service - the view functions behind every analytics endpoint.

Each view takes a record store and a flat params mapping and returns a
plain dict. Params are resolved leniently here (not only in the route
models) so direct callers get the same defaults:

    ls_term      -> 17 | 18 | 'both'         (default Config.DEFAULT_LS_TERM)
    house        -> 'Lok Sabha' | 'Rajya Sabha' | None (both houses)
    page/limit   -> clamped, see services.pagination
    sort/metric  -> unknown keys fall back to the documented default

Independent pipelines of one view are dispatched concurrently with
run_parallel(). A store exception in any of them propagates and fails the
whole view; an empty result is replaced by the shaper's zeroed default.

Usage:
    from services.analytics_service import get_expenditures

    result = get_expenditures(store, {"house": "Lok Sabha", "ls_term": 17, "page": 2})
"""

import contextvars
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Any, Callable, Dict, Mapping, Optional

from constants import (
    COLLECTION_EXPENDITURES,
    COLLECTION_MPS,
    COLLECTION_SUMMARIES,
    COLLECTION_WORKS_COMPLETED,
    COLLECTION_WORKS_RECOMMENDED,
    DEFAULT_EXPENDITURE_SORT,
    DEFAULT_MEMBER_SUMMARY_SORT,
    DEFAULT_METRIC,
    DEFAULT_START_YEAR,
    DEFAULT_STATE_SUMMARY_LIMIT,
    DEFAULT_STATE_SUMMARY_SORT,
    DEFAULT_TOP_N,
    DEFAULT_WORKS_SORT,
    EXPENDITURE_SORT_FIELDS,
    GRANULARITIES,
    GRANULARITY_MONTHLY,
    GRANULARITY_QUARTERLY,
    GRANULARITY_YEARLY,
    HOUSES,
    LS_TERM_PERIODS,
    MAX_STATE_SUMMARY_LIMIT,
    MAX_TOP_N,
    MEMBER_SUMMARY_SORT_FIELDS,
    METRIC_FIELDS,
    STATE_SUMMARY_SORT_FIELDS,
    WORKS_SORT_FIELDS,
    normalize_house,
)
from services import pipelines
from services.pagination import resolve_pagination, resolve_sort
from services.pipelines import ExpenditureFilters, MemberSummaryFilters, Scope, TrendFilters, WorksFilters
from services.result_shaper import (
    build_pagination_meta,
    build_view_response,
    first_count,
    shape_comparison_stats,
    shape_distribution,
    shape_expenditure_summary,
    shape_overview,
    shape_state_rows,
    shape_works_summary,
)
from utils.filter_builder import resolve_term_selection
from utils.normalize import to_choice, to_direction, to_optional_bool, to_str
from utils.sanitize import clean_search_term, parse_non_negative, parse_year

logger = logging.getLogger('analytics.service')


# ============================================================================
# CONCURRENT DISPATCH
# ============================================================================

_EXECUTOR: Optional[ThreadPoolExecutor] = None
_EXECUTOR_LOCK = threading.Lock()


def _get_executor() -> ThreadPoolExecutor:
    global _EXECUTOR
    with _EXECUTOR_LOCK:
        if _EXECUTOR is None:
            from config import Config

            max_workers = max(1, Config.QUERY_WORKERS)
            _EXECUTOR = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="analytics-query")
        return _EXECUTOR


def run_parallel(tasks: Mapping[str, Callable[[], Any]]) -> Dict[str, Any]:
    """
    Run independent store calls concurrently and collect results by name.

    Each task runs in a copy of the caller's context so the request id
    (and anything else carried in ContextVars) follows it to the worker
    thread. The first exception raised by any task is re-raised here.
    """
    if len(tasks) <= 1:
        return {name: task() for name, task in tasks.items()}

    executor = _get_executor()
    futures = {
        name: executor.submit(contextvars.copy_context().run, task)
        for name, task in tasks.items()
    }
    return {name: future.result() for name, future in futures.items()}


def _timed(view: str, start_time: float, **details: Any) -> None:
    elapsed_ms = int((time.perf_counter() - start_time) * 1000)
    logger.info("view_complete %s", {"view": view, "elapsed_ms": elapsed_ms, **details})


# ============================================================================
# PARAM RESOLUTION
# ============================================================================

def resolve_scope(params: Mapping[str, Any]) -> Scope:
    """house / ls_term / state of a request, resolved once per view."""
    return Scope(
        house=normalize_house(params.get('house')),
        term=resolve_term_selection(params.get('ls_term')),
        state=clean_search_term(params.get('state')),
    )


def _scope_filters(scope: Scope) -> Dict[str, Any]:
    return {'state': scope.state, 'house': scope.house, 'ls_term': scope.term}


def _clamp_int(value: Any, default: int, low: int, high: int) -> int:
    try:
        number = int(float(value)) if value is not None and not isinstance(value, bool) else default
    except (TypeError, ValueError, OverflowError):
        number = default
    return min(max(number, low), high)


def resolve_year_range(params: Mapping[str, Any], today: Optional[date] = None):
    """
    (start_year, end_year) with defaults DEFAULT_START_YEAR and the current
    year. A reversed range is swapped rather than returning nothing.
    """
    current_year = (today or date.today()).year
    start_year = parse_year(params.get('start_year'))
    end_year = parse_year(params.get('end_year'))
    if start_year is None:
        start_year = DEFAULT_START_YEAR
    if end_year is None:
        end_year = current_year
    if start_year > end_year:
        start_year, end_year = end_year, start_year
    return start_year, end_year


def resolve_expenditure_filters(params: Mapping[str, Any]) -> ExpenditureFilters:
    return ExpenditureFilters(
        scope=resolve_scope(params),
        mp_id=to_str(params.get('mp_id')),
        year=parse_year(params.get('year')),
        min_amount=parse_non_negative(params.get('min_amount')),
        max_amount=parse_non_negative(params.get('max_amount')),
        category=clean_search_term(params.get('category')),
        search=clean_search_term(params.get('search')),
    )


def _expenditure_filter_echo(filters: ExpenditureFilters) -> Dict[str, Any]:
    return {
        **_scope_filters(filters.scope),
        'mp_id': filters.mp_id,
        'year': filters.year,
        'min_amount': filters.min_amount,
        'max_amount': filters.max_amount,
        'category': filters.category,
        'search': filters.search,
    }


def resolve_works_filters(params: Mapping[str, Any], *, recommended: bool = False) -> WorksFilters:
    """
    Works list filters. `district` is accepted for `constituency`; status and
    has_payments only apply to recommended works.
    """
    return WorksFilters(
        scope=resolve_scope(params),
        mp_id=to_str(params.get('mp_id')),
        constituency=to_str(params.get('constituency')) or to_str(params.get('district')),
        year=parse_year(params.get('year')),
        min_cost=parse_non_negative(params.get('min_cost')),
        max_cost=parse_non_negative(params.get('max_cost')),
        category=clean_search_term(params.get('category')),
        search=clean_search_term(params.get('search')),
        status=to_str(params.get('status')) if recommended else None,
        has_payments=to_optional_bool(params.get('has_payments')) if recommended else None,
    )


def works_filter_prefix(filters: WorksFilters, *, recommended: bool = False):
    if recommended:
        return pipelines.recommended_works_filter_prefix(filters)
    return pipelines.completed_works_filter_prefix(filters)


def _works_filter_echo(filters: WorksFilters, recommended: bool) -> Dict[str, Any]:
    echo = {
        **_scope_filters(filters.scope),
        'mp_id': filters.mp_id,
        'constituency': filters.constituency,
        'year': filters.year,
        'min_cost': filters.min_cost,
        'max_cost': filters.max_cost,
        'category': filters.category,
        'search': filters.search,
    }
    if recommended:
        echo['status'] = filters.status
        echo['has_payments'] = filters.has_payments
    return echo


def resolve_member_summary_filters(params: Mapping[str, Any]) -> MemberSummaryFilters:
    return MemberSummaryFilters(
        scope=resolve_scope(params),
        search=clean_search_term(params.get('search')),
        min_utilization=parse_non_negative(params.get('min_utilization')),
        max_utilization=parse_non_negative(params.get('max_utilization')),
    )


def resolve_member_summary_sort(params: Mapping[str, Any]):
    """(sort field, direction); unknown fields fall back to utilization, desc."""
    sort_by = to_choice(params.get('sort_by'), MEMBER_SUMMARY_SORT_FIELDS, default=DEFAULT_MEMBER_SUMMARY_SORT)
    return sort_by, to_direction(params.get('order'), default=-1)


# ============================================================================
# VIEWS
# ============================================================================

def get_utilization_trends(store, params: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Expenditure and works trends over a year range.

    Returns:
        {
            "utilization": {"yearly": [...], "monthly": [...], "quarterly": [...], "categories": [...]},
            "works": [...],                 # completed works per year
            "worksRecommended": [...],
            "period": {"start_year", "end_year", "granularity"},
            "filters": {...},
            "lastUpdated": "..."
        }

    monthly/quarterly series are only computed for that granularity and are
    empty lists otherwise.
    """
    start = time.perf_counter()
    scope = resolve_scope(params)
    start_year, end_year = resolve_year_range(params)
    granularity = to_choice(params.get('granularity'), GRANULARITIES, default=GRANULARITY_YEARLY)
    trend = TrendFilters(scope=scope, start_year=start_year, end_year=end_year)

    tasks: Dict[str, Callable[[], Any]] = {
        'yearly': lambda: store.aggregate(COLLECTION_EXPENDITURES, pipelines.yearly_trend_pipeline(trend)),
        'categories': lambda: store.aggregate(COLLECTION_EXPENDITURES, pipelines.category_rollup_pipeline(trend)),
        'works': lambda: store.aggregate(COLLECTION_WORKS_COMPLETED, pipelines.works_completed_trend_pipeline(trend)),
        'worksRecommended': lambda: store.aggregate(
            COLLECTION_WORKS_RECOMMENDED, pipelines.works_recommended_trend_pipeline(trend)
        ),
    }
    if granularity == GRANULARITY_MONTHLY:
        tasks['monthly'] = lambda: store.aggregate(COLLECTION_EXPENDITURES, pipelines.monthly_trend_pipeline(trend))
    if granularity == GRANULARITY_QUARTERLY:
        tasks['quarterly'] = lambda: store.aggregate(COLLECTION_EXPENDITURES, pipelines.quarterly_trend_pipeline(trend))

    results = run_parallel(tasks)
    _timed('trends', start, granularity=granularity, years=f"{start_year}-{end_year}")

    return build_view_response(
        {
            'utilization': {
                'yearly': results['yearly'],
                'monthly': results.get('monthly', []),
                'quarterly': results.get('quarterly', []),
                'categories': results['categories'],
            },
            'works': results['works'],
            'worksRecommended': results['worksRecommended'],
            'period': {'start_year': start_year, 'end_year': end_year, 'granularity': granularity},
        },
        filters=_scope_filters(scope),
    )


def get_top_performers(store, params: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Top members by metric, with comparison stats and the best member per
    state, all over the same gated MemberSummary set.
    """
    start = time.perf_counter()
    scope = resolve_scope(params)
    metric = to_choice(params.get('metric'), METRIC_FIELDS, default=DEFAULT_METRIC)
    metric_field = METRIC_FIELDS[metric]
    top_n = _clamp_int(params.get('top_n'), DEFAULT_TOP_N, 1, MAX_TOP_N)

    results = run_parallel({
        'top': lambda: store.aggregate(
            COLLECTION_SUMMARIES, pipelines.top_performers_pipeline(scope, metric_field, top_n)
        ),
        'comparison': lambda: store.aggregate(COLLECTION_SUMMARIES, pipelines.comparison_stats_pipeline(scope)),
        'stateWise': lambda: store.aggregate(
            COLLECTION_SUMMARIES, pipelines.state_top_performers_pipeline(scope, metric_field)
        ),
    })
    _timed('top_performers', start, metric=metric, top_n=top_n)

    return build_view_response(
        {
            'topPerformers': results['top'],
            'comparisonStats': shape_comparison_stats(results['comparison']),
            'stateWiseTopPerformers': results['stateWise'],
            'metric': metric,
            'parameters': {'top_n': top_n, 'year': parse_year(params.get('year'))},
        },
        filters=_scope_filters(scope),
    )


def get_performance_distribution(store, params: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Utilization buckets over MemberSummary, plus a per-house comparison when
    the request is not already restricted to one house.
    """
    start = time.perf_counter()
    scope = resolve_scope(params)

    tasks: Dict[str, Callable[[], Any]] = {
        'distribution': lambda: store.aggregate(
            COLLECTION_SUMMARIES, pipelines.utilization_distribution_pipeline(scope)
        ),
    }
    if scope.house is None:
        tasks['houses'] = lambda: store.aggregate(COLLECTION_SUMMARIES, pipelines.house_comparison_pipeline(scope))

    results = run_parallel(tasks)
    _timed('performance_distribution', start, house=scope.house)

    return build_view_response(
        {
            'utilizationDistribution': shape_distribution(results['distribution']),
            'houseComparison': results.get('houses', []),
        },
        filters=_scope_filters(scope),
    )


def get_expenditures(store, params: Mapping[str, Any]) -> Dict[str, Any]:
    """
    One page of expenditures with pagination and summary over the full
    filtered set. Rows, count and summary share one filter prefix.
    """
    start = time.perf_counter()
    filters = resolve_expenditure_filters(params)
    pagination = resolve_pagination(params.get('page'), params.get('limit'))
    sort = resolve_sort(params.get('sort'), EXPENDITURE_SORT_FIELDS, DEFAULT_EXPENDITURE_SORT)

    results = run_parallel({
        'rows': lambda: store.aggregate(
            COLLECTION_EXPENDITURES, pipelines.expenditure_list_pipeline(filters, sort, pagination)
        ),
        'count': lambda: store.aggregate(COLLECTION_EXPENDITURES, pipelines.expenditure_count_pipeline(filters)),
        'summary': lambda: store.aggregate(COLLECTION_EXPENDITURES, pipelines.expenditure_summary_pipeline(filters)),
    })
    total = first_count(results['count'])
    _timed('expenditures', start, page=pagination.page, total=total)

    return build_view_response(
        {'expenditures': results['rows']},
        pagination=build_pagination_meta(pagination.page, pagination.limit, total),
        summary=shape_expenditure_summary(results['summary']),
        filters={**_expenditure_filter_echo(filters), 'sort': sort.public},
    )


def _works_view(store, params: Mapping[str, Any], *, recommended: bool) -> Dict[str, Any]:
    start = time.perf_counter()
    collection = COLLECTION_WORKS_RECOMMENDED if recommended else COLLECTION_WORKS_COMPLETED
    filters = resolve_works_filters(params, recommended=recommended)
    pagination = resolve_pagination(params.get('page'), params.get('limit'))
    sort = resolve_sort(params.get('sort'), WORKS_SORT_FIELDS, DEFAULT_WORKS_SORT)
    prefix = works_filter_prefix(filters, recommended=recommended)

    tasks: Dict[str, Callable[[], Any]] = {
        'rows': lambda: store.aggregate(collection, pipelines.works_list_pipeline(prefix, sort, pagination)),
        'count': lambda: store.aggregate(collection, pipelines.works_count_pipeline(prefix)),
        'summary': lambda: store.aggregate(collection, pipelines.works_summary_pipeline(prefix)),
    }
    if recommended:
        tasks['statuses'] = lambda: store.aggregate(collection, pipelines.works_status_pipeline(prefix))

    results = run_parallel(tasks)
    total = first_count(results['count'])
    view = 'recommended_works' if recommended else 'completed_works'
    _timed(view, start, page=pagination.page, total=total)

    return build_view_response(
        {'recommendedWorks' if recommended else 'completedWorks': results['rows']},
        pagination=build_pagination_meta(pagination.page, pagination.limit, total),
        summary=shape_works_summary(results['summary'], results.get('statuses')),
        filters={**_works_filter_echo(filters, recommended), 'sort': sort.public},
    )


def get_completed_works(store, params: Mapping[str, Any]) -> Dict[str, Any]:
    """
    One page of completed works with pagination and a cost/beneficiary
    summary over the full filtered set.

    sort: cost | date | year | category | description, '-' for descending
    (default -date).
    """
    return _works_view(store, params, recommended=False)


def get_recommended_works(store, params: Mapping[str, Any]) -> Dict[str, Any]:
    """
    One page of recommended works that have not been completed yet.

    Adds status and has_payments filters and a statusDistribution block in
    the summary. has_payments joins successful expenditures by workId.
    """
    return _works_view(store, params, recommended=True)


def get_member_summaries(store, params: Mapping[str, Any]) -> Dict[str, Any]:
    """Paginated MemberSummary rows with search, utilization range and sort."""
    start = time.perf_counter()
    filters = resolve_member_summary_filters(params)
    pagination = resolve_pagination(params.get('page'), params.get('limit'))
    sort_by, direction = resolve_member_summary_sort(params)

    results = run_parallel({
        'rows': lambda: store.aggregate(
            COLLECTION_SUMMARIES,
            pipelines.member_summary_list_pipeline(filters, sort_by, direction, pagination),
        ),
        'count': lambda: store.aggregate(COLLECTION_SUMMARIES, pipelines.member_summary_count_pipeline(filters)),
    })
    total = first_count(results['count'])
    _timed('member_summaries', start, page=pagination.page, total=total)

    return build_view_response(
        {'mps': results['rows']},
        pagination=build_pagination_meta(pagination.page, pagination.limit, total),
        filters={
            **_scope_filters(filters.scope),
            'search': filters.search,
            'min_utilization': filters.min_utilization,
            'max_utilization': filters.max_utilization,
            'sort_by': sort_by,
            'order': 'asc' if direction == 1 else 'desc',
        },
    )


def get_expenditure_categories(store, params: Mapping[str, Any]) -> Dict[str, Any]:
    """Totals per normalized category over the gated expenditure set."""
    start = time.perf_counter()
    scope = resolve_scope(params)
    categories = store.aggregate(COLLECTION_EXPENDITURES, pipelines.expenditure_categories_pipeline(scope))
    _timed('expenditure_categories', start, categories=len(categories))

    return build_view_response(
        {'categories': categories, 'totalCategories': len(categories)},
        filters=_scope_filters(scope),
    )


def get_overview(store, params: Mapping[str, Any]) -> Dict[str, Any]:
    """Headline totals and ratios over the gated MemberSummary set."""
    start = time.perf_counter()
    scope = resolve_scope(params)
    rows = store.aggregate(COLLECTION_SUMMARIES, pipelines.overview_pipeline(scope))
    _timed('overview', start)
    return build_view_response(shape_overview(rows), filters=_scope_filters(scope))


def get_state_summary(store, params: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Per-state allocation, expenditure and utilization, merged with works
    counts from MemberSummary.

    sort_by must be one of STATE_SUMMARY_SORT_FIELDS (default
    utilizationPercentage); order is 'asc' or 'desc' (default desc).
    """
    start = time.perf_counter()
    scope = resolve_scope(params)
    sort_by = to_choice(params.get('sort_by'), STATE_SUMMARY_SORT_FIELDS, default=DEFAULT_STATE_SUMMARY_SORT)
    direction = to_direction(params.get('order'), default=-1)
    limit = _clamp_int(params.get('limit'), DEFAULT_STATE_SUMMARY_LIMIT, 1, MAX_STATE_SUMMARY_LIMIT)

    results = run_parallel({
        'states': lambda: store.aggregate(
            COLLECTION_SUMMARIES, pipelines.state_summary_pipeline(scope, sort_by, direction, limit)
        ),
        'works': lambda: store.aggregate(COLLECTION_SUMMARIES, pipelines.state_works_pipeline(scope)),
    })
    states = shape_state_rows(results['states'], results['works'])
    _timed('state_summary', start, states=len(states))

    return build_view_response(
        {'states': states, 'count': len(states)},
        filters={
            **_scope_filters(scope),
            'sort_by': sort_by,
            'order': 'asc' if direction == 1 else 'desc',
            'limit': limit,
        },
    )


def get_filter_options(store, params: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Values for the filter dropdowns: states, houses and constituencies known
    to the member collection, plus the Lok Sabha terms in the data.
    """
    start = time.perf_counter()
    scope = resolve_scope(params)
    member_query = {'house': scope.house} if scope.house else {}

    results = run_parallel({
        'states': lambda: store.distinct(COLLECTION_MPS, 'state', member_query),
        'houses': lambda: store.distinct(COLLECTION_MPS, 'house', {}),
        'constituencies': lambda: store.distinct(COLLECTION_MPS, 'constituency', member_query),
    })
    _timed('filter_options', start)

    houses = [h for h in HOUSES if h in set(results['houses'])] or list(HOUSES)
    return build_view_response(
        {
            'states': sorted(s for s in results['states'] if s),
            'houses': houses,
            'constituencies': sorted(c for c in results['constituencies'] if c),
            'lsTerms': [LS_TERM_PERIODS[term] for term in sorted(LS_TERM_PERIODS, reverse=True)],
            'granularities': list(GRANULARITIES),
            'metrics': list(METRIC_FIELDS),
            'sortFields': list(EXPENDITURE_SORT_FIELDS),
        },
        filters=_scope_filters(scope),
    )
