"""
Centralized Constants - SINGLE SOURCE OF TRUTH

Houses, Lok Sabha terms, collection names, pagination bounds and the fixed
analytical vocabularies (metrics, sort keys, bucket boundaries) used by the
MPLADS analytics engine.

DO NOT duplicate these definitions in other files.
"""

# =============================================================================
# HOUSES AND TERMS
# =============================================================================

HOUSE_LOK_SABHA = 'Lok Sabha'
HOUSE_RAJYA_SABHA = 'Rajya Sabha'
HOUSES = [HOUSE_LOK_SABHA, HOUSE_RAJYA_SABHA]

# Request values meaning "no house filter" (both chambers)
BOTH_HOUSES_ALIASES = {'', 'all', 'both', 'both houses'}

# Only the Lok Sabha has a term dimension in this data
KNOWN_LS_TERMS = [17, 18]
LS_TERM_BOTH = 'both'

LS_TERM_PERIODS = {
    18: {'term': 18, 'startYear': 2024, 'endYear': 2029, 'label': 'Lok Sabha 2024-29'},
    17: {'term': 17, 'startYear': 2019, 'endYear': 2024, 'label': 'Lok Sabha 2019-24'},
}


def normalize_house(house) -> str:
    """
    Canonicalize a house name from request input.

    Returns 'Lok Sabha', 'Rajya Sabha', or None for "both houses"/unknown.
    Matching is case-insensitive and tolerant of underscores/hyphens.
    """
    if house is None:
        return None
    key = str(house).strip().lower().replace('_', ' ').replace('-', ' ')
    key = ' '.join(key.split())
    if key in BOTH_HOUSES_ALIASES:
        return None
    if key in ('lok sabha', 'ls'):
        return HOUSE_LOK_SABHA
    if key in ('rajya sabha', 'rs'):
        return HOUSE_RAJYA_SABHA
    return None


# =============================================================================
# COLLECTIONS
# =============================================================================

COLLECTION_EXPENDITURES = 'expenditures'
COLLECTION_WORKS_COMPLETED = 'works_completed'
COLLECTION_WORKS_RECOMMENDED = 'works_recommended'
COLLECTION_SUMMARIES = 'summaries'
COLLECTION_MPS = 'mps'

SUMMARY_TYPE_MP = 'mp_summary'
SUMMARY_TYPE_STATE = 'state_summary'


# =============================================================================
# PAGINATION
# =============================================================================

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_PAGE = 1000
MIN_LIMIT = 1
MAX_LIMIT = 100


# =============================================================================
# ANALYTICS VOCABULARIES
# =============================================================================

# First financial year with MPLADS data in the store
DEFAULT_START_YEAR = 2014

GRANULARITY_YEARLY = 'yearly'
GRANULARITY_QUARTERLY = 'quarterly'
GRANULARITY_MONTHLY = 'monthly'
GRANULARITIES = [GRANULARITY_YEARLY, GRANULARITY_QUARTERLY, GRANULARITY_MONTHLY]

# Monthly trend window: end_year and the year before it
MONTHLY_TREND_YEARS = 2

CATEGORY_ROLLUP_LIMIT = 10

DEFAULT_TOP_N = 10
MAX_TOP_N = 50

# Public metric name -> MemberSummary field
METRIC_FIELDS = {
    'utilization': 'utilizationPercentage',
    'expenditure': 'totalExpenditure',
    'works_completed': 'completedWorksCount',
}
DEFAULT_METRIC = 'utilization'

# Utilization buckets; the terminal bucket [90, 100] includes 100
UTILIZATION_BUCKET_BOUNDARIES = [0, 25, 50, 75, 90, 100]
UTILIZATION_OVERFLOW_BUCKET = 'other'

# Public sort key -> field name after the normalization projection
EXPENDITURE_SORT_FIELDS = {
    'amount': 'amountNorm',
    'year': 'year',
    'date': 'date',
    'category': 'category',
    'description': 'description',
}
DEFAULT_EXPENDITURE_SORT = '-amount'

# Whitelisted sort fields for the state summary view
STATE_SUMMARY_SORT_FIELDS = [
    'utilizationPercentage',
    'totalAllocated',
    'totalExpenditure',
    'mpCount',
    'state',
]
DEFAULT_STATE_SUMMARY_SORT = 'utilizationPercentage'
DEFAULT_STATE_SUMMARY_LIMIT = 50
MAX_STATE_SUMMARY_LIMIT = 100

MONEY_DECIMALS = 2


# =============================================================================
# WORKS AND MEMBER LISTINGS
# =============================================================================

# Public sort key -> field name after the works normalization projection
WORKS_SORT_FIELDS = {
    'cost': 'amountNorm',
    'date': 'date',
    'year': 'year',
    'category': 'category',
    'description': 'description',
}
DEFAULT_WORKS_SORT = '-date'

# Recommendations written without a status are still open
DEFAULT_WORK_STATUS = 'Recommended'
PAYMENT_SUCCESS = 'Payment Success'

# Whitelisted sort fields for the member summary listing
MEMBER_SUMMARY_SORT_FIELDS = [
    'utilizationPercentage',
    'totalExpenditure',
    'allocatedAmount',
    'completedWorksCount',
    'recommendedWorksCount',
    'completionRate',
    'unspentAmount',
    'mpName',
    'state',
    'constituency',
]
MEMBER_SUMMARY_TEXT_SORT_FIELDS = {'mpName', 'state', 'constituency'}
DEFAULT_MEMBER_SUMMARY_SORT = 'utilizationPercentage'
