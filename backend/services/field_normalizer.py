"""
Field Normalizer - one canonical value per concept, whatever the schema era.

Records in the store were written under two schemas. Expenditures, for
example, carry their amount as `expenditureAmount` (current) or `amount`
(legacy), sometimes as decimal text. Each collection declares its
(primary, legacy) field pairs ONCE in a RecordFields table below, and
normalization_stage() turns that table into the single $project stage that
every pipeline runs before filtering on normalized values.

Canonical output fields:
    amountNorm   - max(0, toDouble(coalesce(primary, legacy))), 0 if not numeric
    year         - coalesce(explicit year, year(coalesce(primary date, legacy date)))
    month        - coalesce(explicit month, month(coalesce(primary date, legacy date)))
    category     - coalesce(primary category, legacy category)
    description  - coalesce(primary description, legacy description)

Filtering on raw fields instead of these would silently drop legacy-shaped
records, so amount/year filters are only ever applied after this stage.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

AMOUNT = 'amountNorm'
YEAR = 'year'
MONTH = 'month'
CATEGORY = 'category'
DESCRIPTION = 'description'

NORMALIZED_FIELDS = (AMOUNT, YEAR, MONTH, CATEGORY, DESCRIPTION)


@dataclass(frozen=True)
class FieldSource:
    """A concept stored under either of two field names. Primary wins."""

    primary: str
    legacy: str

    def coalesce(self) -> Dict[str, Any]:
        return {'$ifNull': [f'${self.primary}', f'${self.legacy}']}


@dataclass(frozen=True)
class RecordFields:
    """Where each canonical value lives for one collection."""

    amount: FieldSource
    date: FieldSource
    category: FieldSource
    description: FieldSource
    explicit_year: Optional[str] = None
    explicit_month: Optional[str] = None


EXPENDITURE_FIELDS = RecordFields(
    amount=FieldSource('expenditureAmount', 'amount'),
    date=FieldSource('expenditureDate', 'date'),
    category=FieldSource('category', 'expenditureCategory'),
    description=FieldSource('work', 'description'),
    explicit_year='year',
    explicit_month='month',
)

WORKS_COMPLETED_FIELDS = RecordFields(
    amount=FieldSource('finalAmount', 'cost'),
    date=FieldSource('completedDate', 'completion_date'),
    category=FieldSource('workCategory', 'category'),
    description=FieldSource('workDescription', 'work_description'),
    explicit_year='completion_year',
)

WORKS_RECOMMENDED_FIELDS = RecordFields(
    amount=FieldSource('recommendedAmount', 'estimated_cost'),
    date=FieldSource('recommendationDate', 'recommended_date'),
    category=FieldSource('workCategory', 'category'),
    description=FieldSource('workDescription', 'work_description'),
    explicit_year='recommended_year',
)

# MemberSummary rows written by older sync jobs use different names
SUMMARY_ALLOCATION = FieldSource('allocatedAmount', 'totalAllocated')
SUMMARY_COMPLETED_VALUE = FieldSource('completedWorksValue', 'totalCompletedAmount')
SUMMARY_IN_PROGRESS = FieldSource('inProgressPayments', 'totalInProgressPayments')


# ============================================================================
# EXPRESSION BUILDERS
# ============================================================================

def to_amount(expression: Any) -> Dict[str, Any]:
    """Non-negative double; missing or non-coercible input becomes 0."""
    return {
        '$max': [
            0,
            {'$convert': {'input': expression, 'to': 'double', 'onError': 0, 'onNull': 0}},
        ]
    }


def to_int_or_null(expression: Any) -> Dict[str, Any]:
    return {'$convert': {'input': expression, 'to': 'int', 'onError': None, 'onNull': None}}


def to_date_or_null(expression: Any) -> Dict[str, Any]:
    return {'$convert': {'input': expression, 'to': 'date', 'onError': None, 'onNull': None}}


def numeric_or_zero(field: str) -> Dict[str, Any]:
    """Pre-aggregated numeric field with null/missing treated as 0."""
    return {'$ifNull': [f'${field}', 0]}


def source_or_zero(source: FieldSource) -> Dict[str, Any]:
    return {'$ifNull': [f'${source.primary}', {'$ifNull': [f'${source.legacy}', 0]}]}


def amount_expression(fields: RecordFields) -> Dict[str, Any]:
    return to_amount(fields.amount.coalesce())


def year_expression(fields: RecordFields) -> Dict[str, Any]:
    derived = {'$year': to_date_or_null(fields.date.coalesce())}
    if not fields.explicit_year:
        return derived
    return {'$ifNull': [to_int_or_null(f'${fields.explicit_year}'), derived]}


def month_expression(fields: RecordFields) -> Dict[str, Any]:
    derived = {'$month': to_date_or_null(fields.date.coalesce())}
    if not fields.explicit_month:
        return derived
    return {'$ifNull': [to_int_or_null(f'${fields.explicit_month}'), derived]}


def normalized_projection(
    fields: RecordFields,
    include: Iterable[str] = (AMOUNT, YEAR),
) -> Dict[str, Any]:
    """Projection spec for the requested canonical fields."""
    builders = {
        AMOUNT: lambda: amount_expression(fields),
        YEAR: lambda: year_expression(fields),
        MONTH: lambda: month_expression(fields),
        CATEGORY: lambda: fields.category.coalesce(),
        DESCRIPTION: lambda: fields.description.coalesce(),
    }
    projection: Dict[str, Any] = {}
    for name in include:
        if name not in builders:
            raise ValueError(f"Unknown normalized field: {name}")
        projection[name] = builders[name]()
    return projection


def normalization_stage(
    fields: RecordFields,
    include: Iterable[str] = (AMOUNT, YEAR),
    keep: Iterable[str] = (),
    extra: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    The $project stage that computes canonical values.

    Args:
        fields: The collection's RecordFields table
        include: Canonical fields to compute
        keep: Raw fields passed through unchanged (e.g. 'mp_id', 'state')
        extra: Additional projection entries (joined display fields)
    """
    projection = normalized_projection(fields, include)
    for name in keep:
        projection.setdefault(name, 1)
    if extra:
        for name, expression in extra.items():
            if name in projection:
                raise ValueError(f"Projection field {name!r} is already normalized")
            projection[name] = expression
    return {'$project': projection}
