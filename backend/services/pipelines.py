"""
Pipeline Composer - ordered aggregation stages for every analytics view.

Every builder here is pure: it takes resolved filter values and returns a
list of stages for the record store. Nothing in this module talks to the
database, which keeps the filter semantics testable in isolation.

Stage order for raw-record views:

    $match(base AND gate)         raw-field filters + house/term gate
    $project(normalize)           canonical amount/year/category/...
    $match(normalized filters)    year, amount range, category
    ...view-specific stages...

The list, count and summary pipelines of the expenditure list share one
prefix object (expenditure_filter_prefix) so their totals always agree.
The works and member summary listings follow the same pattern with
completed_works_filter_prefix, recommended_works_filter_prefix and
member_summary_filter_prefix.
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional

from constants import (
    CATEGORY_ROLLUP_LIMIT,
    COLLECTION_EXPENDITURES,
    COLLECTION_MPS,
    COLLECTION_WORKS_COMPLETED,
    DEFAULT_WORK_STATUS,
    MEMBER_SUMMARY_TEXT_SORT_FIELDS,
    MONTHLY_TREND_YEARS,
    PAYMENT_SUCCESS,
    SUMMARY_TYPE_MP,
    SUMMARY_TYPE_STATE,
    UTILIZATION_BUCKET_BOUNDARIES,
    UTILIZATION_OVERFLOW_BUCKET,
)
from services.field_normalizer import (
    AMOUNT,
    CATEGORY,
    DESCRIPTION,
    EXPENDITURE_FIELDS,
    MONTH,
    SUMMARY_ALLOCATION,
    SUMMARY_COMPLETED_VALUE,
    SUMMARY_IN_PROGRESS,
    WORKS_COMPLETED_FIELDS,
    WORKS_RECOMMENDED_FIELDS,
    YEAR,
    normalization_stage,
    numeric_or_zero,
    source_or_zero,
    to_amount,
)
from services.pagination import Pagination, SortSpec
from utils.filter_builder import (
    TermSelection,
    build_house_gate,
    build_member_search_condition,
    build_mp_id_condition,
    build_search_condition,
    build_state_condition,
    combine_conditions,
)
from utils.sanitize import contains_pattern

Stage = Dict[str, Any]
Pipeline = List[Stage]

# Raw fields searched by the free-text filter (both schema eras)
EXPENDITURE_SEARCH_FIELDS = (
    EXPENDITURE_FIELDS.description.primary,
    EXPENDITURE_FIELDS.description.legacy,
    'vendor',
    'ida',
    'mpName',
)

# Raw fields carried through normalization for display/export
EXPENDITURE_PASSTHROUGH = (
    'mp_id', 'mpName', 'state', 'house', 'lsTerm', 'constituency',
    'vendor', 'ida', 'quarter', 'paymentStatus', 'workId',
)


def _round(expression: Any, decimals: int = 2) -> Dict[str, Any]:
    return {'$round': [expression, decimals]}


# One member referenced as a string in some rows and an ObjectId in others
MEMBER_KEY = {'$toString': '$mp_id'}


def _size_or_zero(field: str) -> Dict[str, Any]:
    return {'$size': {'$ifNull': [f'${field}', []]}}


def _distinct_count(field: str) -> Dict[str, Any]:
    """Size of an $addToSet array, not counting rows without a member."""
    return {
        '$size': {
            '$filter': {
                'input': {'$ifNull': [f'${field}', []]},
                'cond': {'$ne': ['$$this', None]},
            }
        }
    }


def _year_range(start_year: Optional[int], end_year: Optional[int]) -> Optional[Dict[str, Any]]:
    bounds: Dict[str, Any] = {}
    if start_year is not None:
        bounds['$gte'] = start_year
    if end_year is not None:
        bounds['$lte'] = end_year
    return {YEAR: bounds} if bounds else None


# ============================================================================
# SCOPE (house/term gate + state)
# ============================================================================

@dataclass(frozen=True)
class Scope:
    """
    The house/term/state scope shared by every house-aware view.

    match() is the only place a view's base $match is assembled, so raw
    records, member summaries and state summaries are all gated by the same
    build_house_gate() predicate.
    """

    house: Optional[str]
    term: TermSelection
    state: Optional[str] = None

    def gate(self) -> Dict[str, Any]:
        return build_house_gate(self.house, self.term)

    def match(self, *conditions: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        return combine_conditions([*conditions, build_state_condition(self.state), self.gate()])


def member_summary_match(scope: Scope) -> Dict[str, Any]:
    return scope.match({'type': SUMMARY_TYPE_MP})


def state_summary_match(scope: Scope) -> Dict[str, Any]:
    return scope.match({'type': SUMMARY_TYPE_STATE})


# ============================================================================
# EXPENDITURE LIST (list + count + summary)
# ============================================================================

@dataclass(frozen=True)
class ExpenditureFilters:
    scope: Scope
    mp_id: Optional[str] = None
    year: Optional[int] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    category: Optional[str] = None
    search: Optional[str] = None


def _normalized_match(
    year: Optional[int],
    min_amount: Optional[float],
    max_amount: Optional[float],
    category: Optional[str],
    **exact: Any,
) -> Optional[Dict[str, Any]]:
    """Filters on canonical fields; exact holds extra equality filters (None = unset)."""
    conditions: Dict[str, Any] = {}
    if year is not None:
        conditions[YEAR] = year

    amount: Dict[str, Any] = {}
    if min_amount is not None:
        amount['$gte'] = min_amount
    if max_amount is not None:
        amount['$lte'] = max_amount
    if amount:
        conditions[AMOUNT] = amount

    pattern = contains_pattern(category)
    if pattern is not None:
        conditions[CATEGORY] = pattern
    for field, value in exact.items():
        if value is not None:
            conditions[field] = value
    return conditions or None


def _normalized_expenditure_match(filters: ExpenditureFilters) -> Optional[Dict[str, Any]]:
    return _normalized_match(filters.year, filters.min_amount, filters.max_amount, filters.category)


def expenditure_filter_prefix(filters: ExpenditureFilters) -> Pipeline:
    """
    match(base AND gate) -> normalize -> match(normalized filters).

    Shared verbatim by the list, count, summary and export pipelines.
    """
    base = filters.scope.match(
        build_mp_id_condition(filters.mp_id),
        build_search_condition(filters.search, EXPENDITURE_SEARCH_FIELDS),
    )
    stages: Pipeline = [
        {'$match': base},
        normalization_stage(
            EXPENDITURE_FIELDS,
            include=(AMOUNT, YEAR, CATEGORY, DESCRIPTION),
            keep=EXPENDITURE_PASSTHROUGH,
            extra={'date': EXPENDITURE_FIELDS.date.coalesce()},
        ),
    ]
    post = _normalized_expenditure_match(filters)
    if post:
        stages.append({'$match': post})
    return stages


def member_lookup_stages() -> Pipeline:
    """
    Left outer join to the member collection.

    mp_id may be a string or an ObjectId; both resolve. A missing member
    keeps the row with null display fields.
    """
    return [
        {
            '$lookup': {
                'from': COLLECTION_MPS,
                'let': {'mpId': '$mp_id'},
                'pipeline': [
                    {
                        '$match': {
                            '$expr': {
                                '$eq': [
                                    '$_id',
                                    {
                                        '$convert': {
                                            'input': '$$mpId',
                                            'to': 'objectId',
                                            'onError': '$$mpId',
                                            'onNull': None,
                                        }
                                    },
                                ]
                            }
                        }
                    },
                    {'$project': {'name': 1, 'constituency': 1, 'state': 1, 'house': 1}},
                ],
                'as': 'mp_details',
            }
        },
        {'$unwind': {'path': '$mp_details', 'preserveNullAndEmptyArrays': True}},
    ]


def _display_projection(passthrough=EXPENDITURE_PASSTHROUGH) -> Stage:
    projection: Dict[str, Any] = {
        AMOUNT: 1,
        YEAR: 1,
        CATEGORY: 1,
        DESCRIPTION: 1,
        'date': 1,
        'mp_details': {
            'name': {'$ifNull': ['$mp_details.name', None]},
            'constituency': {'$ifNull': ['$mp_details.constituency', None]},
            'state': {'$ifNull': ['$mp_details.state', None]},
            'house': {'$ifNull': ['$mp_details.house', None]},
        },
    }
    for name in passthrough:
        projection.setdefault(name, 1)
    return {'$project': projection}


def expenditure_list_pipeline(
    filters: ExpenditureFilters,
    sort: SortSpec,
    pagination: Pagination,
) -> Pipeline:
    """
    One page of expenditures.

    The member join runs after $skip/$limit: a left outer join never adds or
    removes rows, so joining only the page keeps row order and counts
    identical to the count pipeline.
    """
    return [
        *expenditure_filter_prefix(filters),
        sort.stage(),
        {'$skip': pagination.skip},
        {'$limit': pagination.limit},
        *member_lookup_stages(),
        _display_projection(),
    ]


def expenditure_count_pipeline(filters: ExpenditureFilters) -> Pipeline:
    return [*expenditure_filter_prefix(filters), {'$count': 'total'}]


def expenditure_summary_pipeline(filters: ExpenditureFilters) -> Pipeline:
    return [
        *expenditure_filter_prefix(filters),
        {
            '$group': {
                '_id': None,
                'totalAmount': {'$sum': f'${AMOUNT}'},
                'avgAmount': {'$avg': f'${AMOUNT}'},
                'totalTransactions': {'$sum': 1},
                'uniqueCategories': {'$addToSet': f'${CATEGORY}'},
                'uniqueMPs': {'$addToSet': MEMBER_KEY},
            }
        },
        {
            '$project': {
                '_id': 0,
                'totalAmount': _round('$totalAmount'),
                'avgAmount': _round('$avgAmount'),
                'totalTransactions': 1,
                'uniqueCategories': 1,
                'uniqueMPCount': _distinct_count('uniqueMPs'),
            }
        },
    ]


def expenditure_export_pipeline(filters: ExpenditureFilters, sort: SortSpec, max_rows: int) -> Pipeline:
    return [
        *expenditure_filter_prefix(filters),
        sort.stage(),
        {'$limit': max_rows},
        *member_lookup_stages(),
        _display_projection(),
    ]


# ============================================================================
# WORKS LISTS (completed + recommended; list + count + summary)
# ============================================================================

WORKS_SEARCH_FIELDS = (
    WORKS_COMPLETED_FIELDS.description.primary,
    WORKS_COMPLETED_FIELDS.description.legacy,
    'ida',
    'location',
)

WORKS_PASSTHROUGH = ('mp_id', 'mpName', 'state', 'house', 'lsTerm', 'hasImage', 'averageRating')

# Everything a works row may carry into the display projection
WORKS_DISPLAY_FIELDS = (
    *WORKS_PASSTHROUGH,
    'workId', 'ida', 'constituency', 'beneficiaries', 'status', 'priority',
    'hasPayments', 'totalPaid', 'paymentCount',
)


@dataclass(frozen=True)
class WorksFilters:
    scope: Scope
    mp_id: Optional[str] = None
    constituency: Optional[str] = None
    year: Optional[int] = None
    min_cost: Optional[float] = None
    max_cost: Optional[float] = None
    category: Optional[str] = None
    search: Optional[str] = None
    # recommended works only
    status: Optional[str] = None
    has_payments: Optional[bool] = None


def _work_id(prefix: str = '$') -> Dict[str, Any]:
    return {'$ifNull': [f'{prefix}workId', {'$ifNull': [f'{prefix}work_id', None]}]}


def _constituency_condition(constituency: Optional[str]) -> Optional[Dict[str, Any]]:
    """Older works rows carry the constituency as `district`."""
    if not constituency:
        return None
    return {'$or': [{'constituency': constituency}, {'district': constituency}]}


def _works_base_match(filters: WorksFilters) -> Dict[str, Any]:
    return filters.scope.match(
        build_mp_id_condition(filters.mp_id),
        _constituency_condition(filters.constituency),
        build_search_condition(filters.search, WORKS_SEARCH_FIELDS),
    )


def _works_extra(fields, beneficiaries_field: str) -> Dict[str, Any]:
    return {
        'date': fields.date.coalesce(),
        'workId': _work_id(),
        'ida': {'$ifNull': ['$ida', '$location']},
        'constituency': {'$ifNull': ['$constituency', '$district']},
        'beneficiaries': to_amount(f'${beneficiaries_field}'),
    }


def _works_post_match(filters: WorksFilters) -> Optional[Dict[str, Any]]:
    return _normalized_match(
        filters.year,
        filters.min_cost,
        filters.max_cost,
        filters.category,
        status=filters.status,
        hasPayments=filters.has_payments,
    )


def completed_work_exclusion_stages() -> Pipeline:
    """
    Drop recommendations that already have a completed work with the same
    workId, house and term. Rows without a workId are never excluded.
    """
    return [
        {
            '$lookup': {
                'from': COLLECTION_WORKS_COMPLETED,
                'let': {
                    'workId': _work_id(),
                    'house': {'$ifNull': ['$house', None]},
                    'lsTerm': {'$ifNull': ['$lsTerm', None]},
                },
                'pipeline': [
                    {
                        '$match': {
                            '$expr': {
                                '$and': [
                                    {'$ne': ['$$workId', None]},
                                    {'$eq': [_work_id(), '$$workId']},
                                    {'$eq': ['$house', '$$house']},
                                    {'$eq': [{'$ifNull': ['$lsTerm', None]}, '$$lsTerm']},
                                ]
                            }
                        }
                    },
                    {'$limit': 1},
                    {'$project': {'_id': 1}},
                ],
                'as': 'completedMatch',
            }
        },
        {'$match': {'completedMatch': {'$size': 0}}},
    ]


def work_payment_stages() -> Pipeline:
    """
    Successful payments booked against each work: hasPayments, totalPaid
    and paymentCount. Runs after normalization so workId is coalesced.
    """
    return [
        {
            '$lookup': {
                'from': COLLECTION_EXPENDITURES,
                'let': {'workId': {'$ifNull': ['$workId', None]}},
                'pipeline': [
                    {
                        '$match': {
                            '$expr': {
                                '$and': [
                                    {'$ne': ['$$workId', None]},
                                    {'$eq': ['$workId', '$$workId']},
                                    {'$eq': ['$paymentStatus', PAYMENT_SUCCESS]},
                                ]
                            }
                        }
                    },
                    {
                        '$group': {
                            '_id': None,
                            'totalPaid': {'$sum': to_amount(EXPENDITURE_FIELDS.amount.coalesce())},
                            'paymentCount': {'$sum': 1},
                        }
                    },
                ],
                'as': 'payments',
            }
        },
        {
            '$addFields': {
                'hasPayments': {'$gt': [{'$size': '$payments'}, 0]},
                'totalPaid': {'$ifNull': [{'$arrayElemAt': ['$payments.totalPaid', 0]}, 0]},
                'paymentCount': {'$ifNull': [{'$arrayElemAt': ['$payments.paymentCount', 0]}, 0]},
            }
        },
        {'$project': {'payments': 0}},
    ]


def completed_works_filter_prefix(filters: WorksFilters) -> Pipeline:
    """match(base AND gate) -> normalize -> match(normalized filters)."""
    stages: Pipeline = [
        {'$match': _works_base_match(filters)},
        normalization_stage(
            WORKS_COMPLETED_FIELDS,
            include=(AMOUNT, YEAR, CATEGORY, DESCRIPTION),
            keep=WORKS_PASSTHROUGH,
            extra=_works_extra(WORKS_COMPLETED_FIELDS, 'beneficiaries'),
        ),
    ]
    post = _works_post_match(replace(filters, status=None, has_payments=None))
    if post:
        stages.append({'$match': post})
    return stages


def recommended_works_filter_prefix(filters: WorksFilters) -> Pipeline:
    """
    match(base AND gate) -> drop completed -> normalize -> [payments] ->
    match(normalized filters).

    The payment join only runs when has_payments is set. A missing status
    reads as 'Recommended', and the status filter applies to that value.
    """
    extra = _works_extra(WORKS_RECOMMENDED_FIELDS, 'expected_beneficiaries')
    extra['status'] = {'$ifNull': ['$status', DEFAULT_WORK_STATUS]}
    stages: Pipeline = [
        {'$match': _works_base_match(filters)},
        *completed_work_exclusion_stages(),
        normalization_stage(
            WORKS_RECOMMENDED_FIELDS,
            include=(AMOUNT, YEAR, CATEGORY, DESCRIPTION),
            keep=(*WORKS_PASSTHROUGH, 'priority'),
            extra=extra,
        ),
    ]
    if filters.has_payments is not None:
        stages.extend(work_payment_stages())
    post = _works_post_match(filters)
    if post:
        stages.append({'$match': post})
    return stages


def works_list_pipeline(prefix: Pipeline, sort: SortSpec, pagination: Pagination) -> Pipeline:
    """One page of works; the member join runs on the page only."""
    return [
        *prefix,
        sort.stage(),
        {'$skip': pagination.skip},
        {'$limit': pagination.limit},
        *member_lookup_stages(),
        _display_projection(WORKS_DISPLAY_FIELDS),
    ]


def works_count_pipeline(prefix: Pipeline) -> Pipeline:
    return [*prefix, {'$count': 'total'}]


def works_summary_pipeline(prefix: Pipeline) -> Pipeline:
    """
    Totals over the filtered works. For recommended works the cost is the
    recommended amount and beneficiaries are the expected count.
    """
    return [
        *prefix,
        {
            '$group': {
                '_id': None,
                'totalCost': {'$sum': f'${AMOUNT}'},
                'avgCost': {'$avg': f'${AMOUNT}'},
                'totalWorks': {'$sum': 1},
                'uniqueCategories': {'$addToSet': f'${CATEGORY}'},
                'uniqueConstituencies': {'$addToSet': '$constituency'},
                'totalBeneficiaries': {'$sum': '$beneficiaries'},
            }
        },
        {
            '$project': {
                '_id': 0,
                'totalCost': _round('$totalCost'),
                'avgCost': _round('$avgCost'),
                'totalWorks': 1,
                'uniqueCategories': 1,
                'uniqueConstituencyCount': _distinct_count('uniqueConstituencies'),
                'totalBeneficiaries': 1,
            }
        },
    ]


def works_status_pipeline(prefix: Pipeline) -> Pipeline:
    return [
        *prefix,
        {'$group': {'_id': '$status', 'count': {'$sum': 1}}},
        {'$project': {'_id': 0, 'status': '$_id', 'count': 1}},
        {'$sort': {'count': -1, 'status': 1}},
    ]


def works_export_pipeline(prefix: Pipeline, sort: SortSpec, max_rows: int) -> Pipeline:
    return [
        *prefix,
        sort.stage(),
        {'$limit': max_rows},
        *member_lookup_stages(),
        _display_projection(WORKS_DISPLAY_FIELDS),
    ]


# ============================================================================
# MEMBER SUMMARY LIST (list + count)
# ============================================================================

@dataclass(frozen=True)
class MemberSummaryFilters:
    scope: Scope
    search: Optional[str] = None
    min_utilization: Optional[float] = None
    max_utilization: Optional[float] = None


def member_summary_filter_prefix(filters: MemberSummaryFilters) -> Pipeline:
    utilization: Dict[str, Any] = {}
    if filters.min_utilization is not None:
        utilization['$gte'] = filters.min_utilization
    if filters.max_utilization is not None:
        utilization['$lte'] = filters.max_utilization
    match = filters.scope.match(
        {'type': SUMMARY_TYPE_MP},
        build_member_search_condition(filters.search),
        {'utilizationPercentage': utilization} if utilization else None,
    )
    return [{'$match': match}]


def _member_sort_value(sort_field: str) -> Any:
    if sort_field in MEMBER_SUMMARY_TEXT_SORT_FIELDS:
        return f'${sort_field}'
    if sort_field == 'allocatedAmount':
        return source_or_zero(SUMMARY_ALLOCATION)
    return numeric_or_zero(sort_field)


def _member_sort_stages(sort_field: str, direction: int) -> Pipeline:
    return [
        {'$addFields': {'_sortValue': _member_sort_value(sort_field)}},
        {'$sort': {'_sortValue': direction, 'mpName': 1, '_id': 1}},
    ]


def _member_row_projection() -> Stage:
    return {
        '$project': {
            '_id': 0,
            'id': '$_id',
            'mpName': 1,
            'house': 1,
            'lsTerm': 1,
            'state': 1,
            'constituency': 1,
            'allocatedAmount': _round(source_or_zero(SUMMARY_ALLOCATION)),
            'totalExpenditure': _round(numeric_or_zero('totalExpenditure')),
            'utilizationPercentage': _round(numeric_or_zero('utilizationPercentage')),
            'completedWorksCount': numeric_or_zero('completedWorksCount'),
            'recommendedWorksCount': numeric_or_zero('recommendedWorksCount'),
            'completionRate': _round(numeric_or_zero('completionRate')),
            'pendingWorks': numeric_or_zero('pendingWorks'),
            'unspentAmount': _round(numeric_or_zero('unspentAmount')),
            'completedWorksValue': _round(source_or_zero(SUMMARY_COMPLETED_VALUE)),
            'inProgressPayments': _round(source_or_zero(SUMMARY_IN_PROGRESS)),
            'paymentGapPercentage': _round(numeric_or_zero('paymentGapPercentage')),
            'transactionCount': numeric_or_zero('transactionCount'),
            'successfulPayments': numeric_or_zero('successfulPayments'),
            'pendingPayments': numeric_or_zero('pendingPayments'),
            'avgRating': {'$ifNull': ['$avgRating', None]},
        }
    }


def member_summary_list_pipeline(
    filters: MemberSummaryFilters,
    sort_field: str,
    direction: int,
    pagination: Pagination,
) -> Pipeline:
    return [
        *member_summary_filter_prefix(filters),
        *_member_sort_stages(sort_field, direction),
        {'$skip': pagination.skip},
        {'$limit': pagination.limit},
        _member_row_projection(),
    ]


def member_summary_count_pipeline(filters: MemberSummaryFilters) -> Pipeline:
    return [*member_summary_filter_prefix(filters), {'$count': 'total'}]


def member_summary_export_pipeline(
    filters: MemberSummaryFilters,
    sort_field: str,
    direction: int,
    max_rows: int,
) -> Pipeline:
    return [
        *member_summary_filter_prefix(filters),
        *_member_sort_stages(sort_field, direction),
        {'$limit': max_rows},
        _member_row_projection(),
    ]


# ============================================================================
# EXPENDITURE CATEGORIES
# ============================================================================

def expenditure_categories_pipeline(scope: Scope) -> Pipeline:
    return [
        {'$match': scope.match()},
        normalization_stage(EXPENDITURE_FIELDS, include=(AMOUNT, CATEGORY)),
        {
            '$group': {
                '_id': f'${CATEGORY}',
                'totalAmount': {'$sum': f'${AMOUNT}'},
                'transactionCount': {'$sum': 1},
                'avgAmount': {'$avg': f'${AMOUNT}'},
            }
        },
        {
            '$project': {
                '_id': 0,
                'category': '$_id',
                'totalAmount': _round('$totalAmount'),
                'transactionCount': 1,
                'avgAmount': _round('$avgAmount'),
            }
        },
        {'$sort': {'totalAmount': -1, 'category': 1}},
    ]


# ============================================================================
# TIME TRENDS
# ============================================================================

@dataclass(frozen=True)
class TrendFilters:
    scope: Scope
    start_year: int
    end_year: int


def yearly_trend_pipeline(filters: TrendFilters) -> Pipeline:
    """
    Yearly expenditure totals grouped by year (and state/house when those
    filters are set, so a filtered view can still be split by them).
    """
    scope = filters.scope
    group_id: Dict[str, Any] = {
        'year': f'${YEAR}',
        'state': '$state' if scope.state else None,
        'house': '$house' if scope.house else None,
    }
    return [
        {'$match': scope.match()},
        normalization_stage(EXPENDITURE_FIELDS, include=(AMOUNT, YEAR), keep=('mp_id', 'state', 'house')),
        {'$match': _year_range(filters.start_year, filters.end_year)},
        {
            '$group': {
                '_id': group_id,
                'totalExpenditure': {'$sum': f'${AMOUNT}'},
                'uniqueMPs': {'$addToSet': MEMBER_KEY},
                'transactionCount': {'$sum': 1},
                'avgTransactionAmount': {'$avg': f'${AMOUNT}'},
            }
        },
        {
            '$project': {
                '_id': 0,
                'year': '$_id.year',
                'state': '$_id.state',
                'house': '$_id.house',
                'totalExpenditure': _round('$totalExpenditure'),
                'uniqueMPCount': _distinct_count('uniqueMPs'),
                'transactionCount': 1,
                'avgTransactionAmount': _round('$avgTransactionAmount'),
                'avgExpenditurePerMP': _round({
                    '$cond': [
                        {'$gt': [_distinct_count('uniqueMPs'), 0]},
                        {'$divide': ['$totalExpenditure', _distinct_count('uniqueMPs')]},
                        0,
                    ]
                }),
            }
        },
        {'$sort': {'year': 1, 'state': 1, 'house': 1}},
    ]


def monthly_trend_pipeline(filters: TrendFilters) -> Pipeline:
    """Monthly totals for the trailing window ending at end_year."""
    window_start = filters.end_year - (MONTHLY_TREND_YEARS - 1)
    return [
        {'$match': filters.scope.match()},
        normalization_stage(EXPENDITURE_FIELDS, include=(AMOUNT, YEAR, MONTH)),
        {'$match': _year_range(window_start, filters.end_year)},
        {
            '$group': {
                '_id': {'year': f'${YEAR}', 'month': f'${MONTH}'},
                'totalExpenditure': {'$sum': f'${AMOUNT}'},
                'transactionCount': {'$sum': 1},
            }
        },
        {
            '$project': {
                '_id': 0,
                'year': '$_id.year',
                'month': '$_id.month',
                'totalExpenditure': _round('$totalExpenditure'),
                'transactionCount': 1,
            }
        },
        {'$sort': {'year': 1, 'month': 1}},
    ]


def quarterly_trend_pipeline(filters: TrendFilters) -> Pipeline:
    """Calendar-quarter totals across the requested year range."""
    return [
        {'$match': filters.scope.match()},
        normalization_stage(EXPENDITURE_FIELDS, include=(AMOUNT, YEAR, MONTH)),
        {'$match': _year_range(filters.start_year, filters.end_year)},
        {
            '$group': {
                '_id': {
                    'year': f'${YEAR}',
                    'quarter': {'$ceil': {'$divide': [f'${MONTH}', 3]}},
                },
                'totalExpenditure': {'$sum': f'${AMOUNT}'},
                'transactionCount': {'$sum': 1},
            }
        },
        {
            '$project': {
                '_id': 0,
                'year': '$_id.year',
                'quarter': '$_id.quarter',
                'totalExpenditure': _round('$totalExpenditure'),
                'transactionCount': 1,
            }
        },
        {'$sort': {'year': 1, 'quarter': 1}},
    ]


def category_rollup_pipeline(filters: TrendFilters, limit: int = CATEGORY_ROLLUP_LIMIT) -> Pipeline:
    """
    Top categories by total across years, each with a per-year breakdown.

    group(year, category) -> sort by year -> group(category) so the pushed
    yearlyData arrives in year order.
    """
    return [
        {'$match': filters.scope.match()},
        normalization_stage(EXPENDITURE_FIELDS, include=(AMOUNT, YEAR, CATEGORY)),
        {'$match': _year_range(filters.start_year, filters.end_year)},
        {
            '$group': {
                '_id': {'year': f'${YEAR}', 'category': f'${CATEGORY}'},
                'totalExpenditure': {'$sum': f'${AMOUNT}'},
                'transactionCount': {'$sum': 1},
            }
        },
        {'$sort': {'_id.year': 1}},
        {
            '$group': {
                '_id': '$_id.category',
                'yearlyData': {
                    '$push': {
                        'year': '$_id.year',
                        'totalExpenditure': _round('$totalExpenditure'),
                        'transactionCount': '$transactionCount',
                    }
                },
                'totalAcrossYears': {'$sum': '$totalExpenditure'},
                'transactionCount': {'$sum': '$transactionCount'},
            }
        },
        {'$sort': {'totalAcrossYears': -1, '_id': 1}},
        {'$limit': limit},
        {
            '$project': {
                '_id': 0,
                'category': '$_id',
                'yearlyData': 1,
                'totalAcrossYears': _round('$totalAcrossYears'),
                'transactionCount': 1,
            }
        },
    ]


def works_completed_trend_pipeline(filters: TrendFilters) -> Pipeline:
    return [
        {'$match': filters.scope.match()},
        normalization_stage(
            WORKS_COMPLETED_FIELDS,
            include=(AMOUNT, YEAR),
            extra={'beneficiaries': to_amount('$beneficiaries')},
        ),
        {'$match': _year_range(filters.start_year, filters.end_year)},
        {
            '$group': {
                '_id': f'${YEAR}',
                'totalWorksCompleted': {'$sum': 1},
                'totalCost': {'$sum': f'${AMOUNT}'},
                'avgCostPerWork': {'$avg': f'${AMOUNT}'},
                'totalBeneficiaries': {'$sum': '$beneficiaries'},
            }
        },
        {
            '$project': {
                '_id': 0,
                'year': '$_id',
                'totalWorksCompleted': 1,
                'totalCost': _round('$totalCost'),
                'avgCostPerWork': _round('$avgCostPerWork'),
                'totalBeneficiaries': 1,
            }
        },
        {'$sort': {'year': 1}},
    ]


def works_recommended_trend_pipeline(filters: TrendFilters) -> Pipeline:
    return [
        {'$match': filters.scope.match()},
        normalization_stage(WORKS_RECOMMENDED_FIELDS, include=(AMOUNT, YEAR)),
        {'$match': _year_range(filters.start_year, filters.end_year)},
        {
            '$group': {
                '_id': f'${YEAR}',
                'totalWorksRecommended': {'$sum': 1},
                'totalRecommendedAmount': {'$sum': f'${AMOUNT}'},
                'avgRecommendedAmount': {'$avg': f'${AMOUNT}'},
            }
        },
        {
            '$project': {
                '_id': 0,
                'year': '$_id',
                'totalWorksRecommended': 1,
                'totalRecommendedAmount': _round('$totalRecommendedAmount'),
                'avgRecommendedAmount': _round('$avgRecommendedAmount'),
            }
        },
        {'$sort': {'year': 1}},
    ]


# ============================================================================
# TOP PERFORMERS (MemberSummary)
# ============================================================================

def _metric_stage(metric_field: str) -> Stage:
    return {'$addFields': {'_metric': numeric_or_zero(metric_field)}}


def top_performers_pipeline(scope: Scope, metric_field: str, top_n: int) -> Pipeline:
    return [
        {'$match': member_summary_match(scope)},
        _metric_stage(metric_field),
        {'$sort': {'_metric': -1, 'mpName': 1, '_id': 1}},
        {'$limit': top_n},
        {
            '$project': {
                '_id': 0,
                'mpName': 1,
                'constituency': 1,
                'state': 1,
                'house': 1,
                'lsTerm': 1,
                'utilizationPercentage': _round(numeric_or_zero('utilizationPercentage')),
                'totalExpenditure': _round(numeric_or_zero('totalExpenditure')),
                'completedWorksCount': numeric_or_zero('completedWorksCount'),
                'allocatedAmount': _round(source_or_zero(SUMMARY_ALLOCATION)),
                'metricValue': _round('$_metric'),
            }
        },
    ]


def comparison_stats_pipeline(scope: Scope) -> Pipeline:
    return [
        {'$match': member_summary_match(scope)},
        {
            '$group': {
                '_id': None,
                'avgUtilization': {'$avg': numeric_or_zero('utilizationPercentage')},
                'totalMPs': {'$sum': 1},
                'avgAllocation': {'$avg': source_or_zero(SUMMARY_ALLOCATION)},
                'avgExpenditure': {'$avg': numeric_or_zero('totalExpenditure')},
            }
        },
        {
            '$project': {
                '_id': 0,
                'avgUtilization': _round('$avgUtilization'),
                'totalMPs': 1,
                'avgAllocation': _round('$avgAllocation'),
                'avgExpenditure': _round('$avgExpenditure'),
            }
        },
    ]


def state_top_performers_pipeline(scope: Scope, metric_field: str) -> Pipeline:
    """Best member per state: sort by (state, metric desc) then $first per group."""
    return [
        {'$match': member_summary_match(scope)},
        _metric_stage(metric_field),
        {'$sort': {'state': 1, '_metric': -1, 'mpName': 1, '_id': 1}},
        {
            '$group': {
                '_id': '$state',
                'top': {
                    '$first': {
                        'mpName': '$mpName',
                        'constituency': '$constituency',
                        'house': '$house',
                        'lsTerm': '$lsTerm',
                        'metricValue': '$_metric',
                    }
                },
                'avgUtilization': {'$avg': numeric_or_zero('utilizationPercentage')},
                'totalMPs': {'$sum': 1},
            }
        },
        {'$sort': {'top.metricValue': -1, '_id': 1}},
        {
            '$project': {
                '_id': 0,
                'state': '$_id',
                'topPerformer': {
                    'mpName': '$top.mpName',
                    'constituency': '$top.constituency',
                    'house': '$top.house',
                    'lsTerm': '$top.lsTerm',
                    'metricValue': _round('$top.metricValue'),
                },
                'avgUtilization': _round('$avgUtilization'),
                'totalMPs': 1,
            }
        },
    ]


# ============================================================================
# DISTRIBUTION (MemberSummary)
# ============================================================================

def utilization_bucket_boundaries(boundaries=UTILIZATION_BUCKET_BOUNDARIES):
    """$bucket boundaries: lower bounds of each bucket plus the exclusive top."""
    return list(boundaries)


def utilization_bucket_key(boundaries=UTILIZATION_BUCKET_BOUNDARIES) -> Dict[str, Any]:
    """
    groupBy for the utilization $bucket.

    $bucket ranges are half-open, so a value equal to the top boundary would
    fall into the overflow bucket. Exactly the top value is mapped onto the
    last lower bound; anything else outside [0, top] stays in overflow.
    """
    utilization = numeric_or_zero('utilizationPercentage')
    return {'$cond': [{'$eq': [utilization, boundaries[-1]]}, boundaries[-2], utilization]}


def utilization_distribution_pipeline(scope: Scope) -> Pipeline:
    return [
        {'$match': member_summary_match(scope)},
        {
            '$bucket': {
                'groupBy': utilization_bucket_key(),
                'boundaries': utilization_bucket_boundaries(),
                'default': UTILIZATION_OVERFLOW_BUCKET,
                'output': {
                    'count': {'$sum': 1},
                    'avgUtilization': {'$avg': numeric_or_zero('utilizationPercentage')},
                    'avgAllocation': {'$avg': source_or_zero(SUMMARY_ALLOCATION)},
                    'avgExpenditure': {'$avg': numeric_or_zero('totalExpenditure')},
                },
            }
        },
        {
            '$project': {
                'count': 1,
                'avgUtilization': _round('$avgUtilization'),
                'avgAllocation': _round('$avgAllocation'),
                'avgExpenditure': _round('$avgExpenditure'),
            }
        },
    ]


def house_comparison_pipeline(scope: Scope) -> Pipeline:
    return [
        {'$match': member_summary_match(scope)},
        {
            '$group': {
                '_id': '$house',
                'avgUtilization': {'$avg': numeric_or_zero('utilizationPercentage')},
                'totalMPs': {'$sum': 1},
                'totalAllocation': {'$sum': source_or_zero(SUMMARY_ALLOCATION)},
                'totalExpenditure': {'$sum': numeric_or_zero('totalExpenditure')},
            }
        },
        {
            '$project': {
                '_id': 0,
                'house': '$_id',
                'avgUtilization': _round('$avgUtilization'),
                'totalMPs': 1,
                'totalAllocation': _round('$totalAllocation'),
                'totalExpenditure': _round('$totalExpenditure'),
            }
        },
        {'$sort': {'house': 1}},
    ]


# ============================================================================
# OVERVIEW / STATE SUMMARY
# ============================================================================

def overview_pipeline(scope: Scope) -> Pipeline:
    """Raw totals only; ratios are derived by the result shaper."""
    member_key = {
        '$concat': [
            {'$ifNull': ['$mpName', '']}, '::',
            {'$ifNull': ['$house', '']}, '::',
            {'$ifNull': ['$state', '']}, '::',
            {'$ifNull': ['$constituency', '']},
        ]
    }
    return [
        {'$match': member_summary_match(scope)},
        {
            '$group': {
                '_id': None,
                'memberKeys': {'$addToSet': member_key},
                'totalAllocated': {'$sum': source_or_zero(SUMMARY_ALLOCATION)},
                'avgAllocation': {'$avg': source_or_zero(SUMMARY_ALLOCATION)},
                'totalExpenditure': {'$sum': numeric_or_zero('totalExpenditure')},
                'totalTransactions': {'$sum': numeric_or_zero('transactionCount')},
                'totalWorksCompleted': {'$sum': numeric_or_zero('completedWorksCount')},
                'totalWorksRecommended': {'$sum': numeric_or_zero('recommendedWorksCount')},
                'totalCompletedWorksValue': {'$sum': source_or_zero(SUMMARY_COMPLETED_VALUE)},
                'totalInProgressPayments': {'$sum': source_or_zero(SUMMARY_IN_PROGRESS)},
            }
        },
        {'$addFields': {'totalMPs': _size_or_zero('memberKeys')}},
        {'$project': {'_id': 0, 'memberKeys': 0}},
    ]


def state_summary_pipeline(scope: Scope, sort_field: str, direction: int, limit: int) -> Pipeline:
    """
    Allocation/expenditure per state from StateSummary rows.

    Rows from both houses (or both LS terms) of a state are summed into one
    entry; utilization is computed in-pipeline only so it can be sorted on.
    """
    sort_spec = {sort_field: direction}
    if sort_field != 'state':
        sort_spec['state'] = 1
    return [
        {'$match': state_summary_match(scope)},
        {
            '$group': {
                '_id': '$state',
                'totalAllocated': {'$sum': numeric_or_zero('totalAllocated')},
                'totalExpenditure': {'$sum': numeric_or_zero('totalExpenditure')},
                'mpCount': {'$sum': numeric_or_zero('mpCount')},
            }
        },
        {
            '$addFields': {
                'state': '$_id',
                'utilizationPercentage': {
                    '$cond': [
                        {'$gt': ['$totalAllocated', 0]},
                        {'$multiply': [{'$divide': ['$totalExpenditure', '$totalAllocated']}, 100]},
                        0,
                    ]
                },
            }
        },
        {'$sort': sort_spec},
        {'$limit': limit},
        {'$project': {'_id': 0}},
    ]


def state_works_pipeline(scope: Scope) -> Pipeline:
    return [
        {'$match': member_summary_match(scope)},
        {
            '$group': {
                '_id': '$state',
                'completedWorksCount': {'$sum': numeric_or_zero('completedWorksCount')},
                'recommendedWorksCount': {'$sum': numeric_or_zero('recommendedWorksCount')},
            }
        },
    ]
