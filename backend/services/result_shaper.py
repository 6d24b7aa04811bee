"""
Result Shaper - response structures for the analytics views.

Rounding happens here (or in the final $project of a pipeline), never
mid-pipeline. Every block a client relies on has a zeroed default so an
empty result set still produces the same response shape.
"""

import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from constants import MONEY_DECIMALS, UTILIZATION_BUCKET_BOUNDARIES, UTILIZATION_OVERFLOW_BUCKET


def _to_float(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def round_money(value: Any, decimals: int = MONEY_DECIMALS) -> float:
    """Round a monetary/percentage figure; None, NaN and non-numerics become 0."""
    return round(_to_float(value), decimals)


def safe_ratio(numerator: Any, denominator: Any, *, percent: bool = True) -> float:
    """numerator / denominator (x100 when percent), 0 when the denominator is 0."""
    den = _to_float(denominator)
    if den == 0:
        return 0.0
    ratio = _to_float(numerator) / den
    return round_money(ratio * 100 if percent else ratio)


def timestamp() -> str:
    """ISO-8601 UTC generation timestamp."""
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


def build_pagination_meta(page: int, limit: int, total: int) -> Dict[str, Any]:
    """
    Pagination block.

    totalPages = ceil(total / limit); hasNext is false on the last page.
    """
    total = max(int(total or 0), 0)
    total_pages = math.ceil(total / limit) if limit > 0 else 0
    return {
        "currentPage": page,
        "totalPages": total_pages,
        "totalCount": total,
        "limit": limit,
        "hasNext": page * limit < total,
        "hasPrev": page > 1,
    }


EMPTY_EXPENDITURE_SUMMARY = {
    "totalAmount": 0.0,
    "avgAmount": 0.0,
    "totalTransactions": 0,
    "uniqueCategories": [],
    "uniqueCategoryCount": 0,
    "uniqueMPCount": 0,
}


def shape_expenditure_summary(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Summary block for the expenditure list; zeroed when no rows matched."""
    if not rows:
        return {k: (list(v) if isinstance(v, list) else v) for k, v in EMPTY_EXPENDITURE_SUMMARY.items()}
    row = rows[0]
    categories = sorted(c for c in (row.get("uniqueCategories") or []) if c)
    return {
        "totalAmount": round_money(row.get("totalAmount")),
        "avgAmount": round_money(row.get("avgAmount")),
        "totalTransactions": int(row.get("totalTransactions") or 0),
        "uniqueCategories": categories,
        "uniqueCategoryCount": len(categories),
        "uniqueMPCount": int(row.get("uniqueMPCount") or 0),
    }


EMPTY_WORKS_SUMMARY = {
    "totalCost": 0.0,
    "avgCost": 0.0,
    "totalWorks": 0,
    "uniqueCategories": [],
    "uniqueCategoryCount": 0,
    "uniqueConstituencyCount": 0,
    "totalBeneficiaries": 0,
}


def shape_works_summary(
    rows: List[Dict[str, Any]],
    status_rows: Optional[Iterable[Mapping[str, Any]]] = None,
) -> Dict[str, Any]:
    """
    Summary block for a works list. status_rows (recommended works only)
    adds a statusDistribution list.
    """
    if not rows:
        summary = {k: (list(v) if isinstance(v, list) else v) for k, v in EMPTY_WORKS_SUMMARY.items()}
    else:
        row = rows[0]
        categories = sorted(c for c in (row.get("uniqueCategories") or []) if c)
        summary = {
            "totalCost": round_money(row.get("totalCost")),
            "avgCost": round_money(row.get("avgCost")),
            "totalWorks": int(row.get("totalWorks") or 0),
            "uniqueCategories": categories,
            "uniqueCategoryCount": len(categories),
            "uniqueConstituencyCount": int(row.get("uniqueConstituencyCount") or 0),
            "totalBeneficiaries": int(_to_float(row.get("totalBeneficiaries"))),
        }
    if status_rows is not None:
        summary["statusDistribution"] = [
            {"status": r.get("status"), "count": int(r.get("count") or 0)} for r in status_rows
        ]
    return summary


def first_count(rows: List[Dict[str, Any]], field: str = "total") -> int:
    """Value of a $count stage; 0 when the pipeline returned nothing."""
    if not rows:
        return 0
    return int(rows[0].get(field) or 0)


EMPTY_COMPARISON_STATS = {
    "avgUtilization": 0.0,
    "totalMPs": 0,
    "avgAllocation": 0.0,
    "avgExpenditure": 0.0,
}


def shape_comparison_stats(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    if not rows:
        return dict(EMPTY_COMPARISON_STATS)
    row = rows[0]
    return {
        "avgUtilization": round_money(row.get("avgUtilization")),
        "totalMPs": int(row.get("totalMPs") or 0),
        "avgAllocation": round_money(row.get("avgAllocation")),
        "avgExpenditure": round_money(row.get("avgExpenditure")),
    }


def bucket_label(lower: Any, boundaries: List[int]) -> str:
    """'0-25', ..., '90-100' for a bucket's lower bound; anything else is the overflow bucket."""
    if lower in boundaries[:-1]:
        upper = boundaries[boundaries.index(lower) + 1]
        return f"{lower}-{upper}"
    return str(UTILIZATION_OVERFLOW_BUCKET)


def shape_distribution(rows: List[Dict[str, Any]], boundaries: List[int] = UTILIZATION_BUCKET_BOUNDARIES) -> List[Dict[str, Any]]:
    """
    Every utilization bucket in boundary order, overflow last.

    Buckets with no members are present with count 0 so charts get a stable
    x-axis.
    """
    by_bucket = {row.get("_id"): row for row in rows}
    keys: List[Any] = list(boundaries[:-1]) + [UTILIZATION_OVERFLOW_BUCKET]
    shaped = []
    for key in keys:
        row = by_bucket.get(key, {})
        shaped.append({
            "bucket": key,
            "range": bucket_label(key, boundaries),
            "count": int(row.get("count") or 0),
            "avgUtilization": round_money(row.get("avgUtilization")),
            "avgAllocation": round_money(row.get("avgAllocation")),
            "avgExpenditure": round_money(row.get("avgExpenditure")),
        })
    return shaped


EMPTY_OVERVIEW = {
    "totalAllocated": 0.0,
    "totalExpenditure": 0.0,
    "utilizationPercentage": 0.0,
    "totalMPs": 0,
    "totalWorksCompleted": 0,
    "totalWorksRecommended": 0,
    "completionRate": 0.0,
    "totalTransactions": 0,
    "avgAllocation": 0.0,
    "pendingWorks": 0,
    "paymentGap": 0.0,
    "completedWorksValue": 0.0,
    "inProgressPayments": 0.0,
}


def shape_overview(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Dashboard overview with derived ratios.

    utilization = expenditure / allocation, completion = completed /
    recommended, payment gap = in-progress payments / expenditure, all as
    percentages with a zero denominator yielding 0.
    """
    if not rows:
        return dict(EMPTY_OVERVIEW)
    row = rows[0]
    allocated = row.get("totalAllocated") or 0
    expenditure = row.get("totalExpenditure") or 0
    completed = int(row.get("totalWorksCompleted") or 0)
    recommended = int(row.get("totalWorksRecommended") or 0)
    in_progress = row.get("totalInProgressPayments") or 0
    return {
        "totalAllocated": round_money(allocated),
        "totalExpenditure": round_money(expenditure),
        "utilizationPercentage": safe_ratio(expenditure, allocated),
        "totalMPs": int(row.get("totalMPs") or 0),
        "totalWorksCompleted": completed,
        "totalWorksRecommended": recommended,
        "completionRate": safe_ratio(completed, recommended),
        "totalTransactions": int(row.get("totalTransactions") or 0),
        "avgAllocation": round_money(row.get("avgAllocation")),
        "pendingWorks": max(0, recommended - completed),
        "paymentGap": safe_ratio(in_progress, expenditure),
        "completedWorksValue": round_money(row.get("totalCompletedWorksValue")),
        "inProgressPayments": round_money(in_progress),
    }


def shape_state_rows(
    state_rows: Iterable[Mapping[str, Any]],
    completion_rows: Iterable[Mapping[str, Any]] = (),
) -> List[Dict[str, Any]]:
    """Merge state allocation rollups with works counts keyed by state."""
    completion = {row.get("_id"): row for row in completion_rows}
    shaped = []
    for row in state_rows:
        state = row.get("state")
        works = completion.get(state, {})
        allocated = row.get("totalAllocated") or 0
        expenditure = row.get("totalExpenditure") or 0
        entry = {
            "state": state,
            "totalAllocated": round_money(allocated),
            "totalExpenditure": round_money(expenditure),
            "utilizationPercentage": safe_ratio(expenditure, allocated),
            "mpCount": int(row.get("mpCount") or 0),
            "completedWorksCount": int(works.get("completedWorksCount") or 0),
            "recommendedWorksCount": int(works.get("recommendedWorksCount") or 0),
        }
        if row.get("house"):
            entry["house"] = row["house"]
        shaped.append(entry)
    return shaped


def build_view_response(
    data: Any,
    *,
    filters: Mapping[str, Any],
    pagination: Optional[Dict[str, Any]] = None,
    summary: Optional[Dict[str, Any]] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Assemble a view's response body.

    {
        <data keys>,
        "pagination": {...},   # list views only
        "summary": {...},      # list views only
        "filters": {...},      # echoed request filters
        "lastUpdated": "..."
    }
    """
    response: Dict[str, Any] = dict(data) if isinstance(data, Mapping) else {"data": data}
    if pagination is not None:
        response["pagination"] = pagination
    if summary is not None:
        response["summary"] = summary
    if extra:
        response.update(extra)
    response["filters"] = {k: v for k, v in filters.items()}
    response["lastUpdated"] = timestamp()
    return response
