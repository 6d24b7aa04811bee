"""
CSV exports of the list views.

Each export uses the same filter prefix as its paginated list
(services.pipelines), so a file contains exactly the rows the list would
page through, capped at Config.EXPORT_MAX_ROWS.

    export_expenditures_csv        /export/expenditures
    export_completed_works_csv     /export/works/completed
    export_recommended_works_csv   /export/works/recommended
    export_member_summaries_csv    /export/mps
"""

import csv
import io
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional

from constants import (
    COLLECTION_EXPENDITURES,
    COLLECTION_SUMMARIES,
    COLLECTION_WORKS_COMPLETED,
    COLLECTION_WORKS_RECOMMENDED,
    DEFAULT_EXPENDITURE_SORT,
    DEFAULT_WORKS_SORT,
    EXPENDITURE_SORT_FIELDS,
    WORKS_SORT_FIELDS,
)
from services.analytics_service import (
    resolve_expenditure_filters,
    resolve_member_summary_filters,
    resolve_member_summary_sort,
    resolve_works_filters,
    works_filter_prefix,
)
from services.field_normalizer import AMOUNT, CATEGORY, DESCRIPTION, YEAR
from services.pagination import resolve_sort
from services.pipelines import expenditure_export_pipeline, member_summary_export_pipeline, works_export_pipeline
from services.json_serializer import serialize_for_json

logger = logging.getLogger('analytics.export')

EXPENDITURE_COLUMNS = [
    'MP Name',
    'Constituency',
    'State',
    'House',
    'Lok Sabha Term',
    'Work Description',
    'Category',
    'Vendor',
    'IDA',
    'Expenditure Amount (₹)',
    'Expenditure Date',
    'Year',
    'Payment Status',
]

COMPLETED_WORKS_COLUMNS = [
    'Work ID',
    'Work Description',
    'Category',
    'MP Name',
    'Constituency',
    'State',
    'House',
    'Lok Sabha Term',
    'Final Amount (₹)',
    'Completed Date',
    'Year',
    'Beneficiaries',
    'Has Images',
    'Average Rating',
    'IDA',
]

RECOMMENDED_WORKS_COLUMNS = [
    'Work ID',
    'Work Description',
    'Category',
    'MP Name',
    'Constituency',
    'State',
    'House',
    'Lok Sabha Term',
    'Recommended Amount (₹)',
    'Recommendation Date',
    'Year',
    'Status',
    'Expected Beneficiaries',
    'Has Images',
    'IDA',
]

MEMBER_SUMMARY_COLUMNS = [
    'MP Name',
    'Constituency',
    'State',
    'House',
    'Lok Sabha Term',
    'Allocated Amount (₹)',
    'Total Expenditure (₹)',
    'Utilization %',
    'Completed Works',
    'Recommended Works',
    'Completion Rate %',
    'Unspent Amount (₹)',
    'Transaction Count',
    'Successful Payments',
    'Pending Payments',
    'Average Rating',
]


@dataclass
class CsvExport:
    filename: str
    content: str
    row_count: int
    truncated: bool


def _member(row: Mapping[str, Any], field: str, member_field: str) -> Any:
    value = row.get(field)
    if value not in (None, ''):
        return value
    return (row.get('mp_details') or {}).get(member_field)


def _format_date(value: Any) -> Optional[str]:
    if isinstance(value, (datetime, date)):
        return value.date().isoformat() if isinstance(value, datetime) else value.isoformat()
    return value


def _yes_no(value: Any) -> str:
    return 'Yes' if value else 'No'


def _member_columns(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        'MP Name': _member(row, 'mpName', 'name'),
        'Constituency': _member(row, 'constituency', 'constituency'),
        'State': _member(row, 'state', 'state'),
        'House': _member(row, 'house', 'house'),
        'Lok Sabha Term': row.get('lsTerm'),
    }


def expenditure_csv_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    """One display row of the list pipeline as a CSV record."""
    return serialize_for_json({
        **_member_columns(row),
        'Work Description': row.get(DESCRIPTION),
        'Category': row.get(CATEGORY),
        'Vendor': row.get('vendor'),
        'IDA': row.get('ida'),
        'Expenditure Amount (₹)': row.get(AMOUNT),
        'Expenditure Date': _format_date(row.get('date')),
        'Year': row.get(YEAR),
        'Payment Status': row.get('paymentStatus'),
    })


def completed_work_csv_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    return serialize_for_json({
        **_member_columns(row),
        'Work ID': row.get('workId'),
        'Work Description': row.get(DESCRIPTION),
        'Category': row.get(CATEGORY),
        'Final Amount (₹)': row.get(AMOUNT),
        'Completed Date': _format_date(row.get('date')),
        'Year': row.get(YEAR),
        'Beneficiaries': row.get('beneficiaries'),
        'Has Images': _yes_no(row.get('hasImage')),
        'Average Rating': row.get('averageRating'),
        'IDA': row.get('ida'),
    })


def recommended_work_csv_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    return serialize_for_json({
        **_member_columns(row),
        'Work ID': row.get('workId'),
        'Work Description': row.get(DESCRIPTION),
        'Category': row.get(CATEGORY),
        'Recommended Amount (₹)': row.get(AMOUNT),
        'Recommendation Date': _format_date(row.get('date')),
        'Year': row.get(YEAR),
        'Status': row.get('status'),
        'Expected Beneficiaries': row.get('beneficiaries'),
        'Has Images': _yes_no(row.get('hasImage')),
        'IDA': row.get('ida'),
    })


def member_summary_csv_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    return serialize_for_json({
        **_member_columns(row),
        'Allocated Amount (₹)': row.get('allocatedAmount'),
        'Total Expenditure (₹)': row.get('totalExpenditure'),
        'Utilization %': row.get('utilizationPercentage'),
        'Completed Works': row.get('completedWorksCount'),
        'Recommended Works': row.get('recommendedWorksCount'),
        'Completion Rate %': row.get('completionRate'),
        'Unspent Amount (₹)': row.get('unspentAmount'),
        'Transaction Count': row.get('transactionCount'),
        'Successful Payments': row.get('successfulPayments'),
        'Pending Payments': row.get('pendingPayments'),
        'Average Rating': row.get('avgRating'),
    })


def render_csv(rows: List[Mapping[str, Any]], columns: List[str] = EXPENDITURE_COLUMNS) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=columns, extrasaction='ignore', lineterminator='\n')
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue()


def resolve_export_cap(params: Mapping[str, Any], max_rows: Optional[int] = None) -> int:
    """Config.EXPORT_MAX_ROWS (or max_rows), lowered by a smaller params['max_rows']."""
    from config import Config

    cap = Config.EXPORT_MAX_ROWS if max_rows is None else max_rows
    requested = params.get('max_rows')
    if isinstance(requested, int) and not isinstance(requested, bool) and 0 < requested < cap:
        cap = requested
    return cap


def _capped_export(
    store,
    collection: str,
    pipeline_for: Callable[[int], List[Dict[str, Any]]],
    to_csv_row: Callable[[Mapping[str, Any]], Dict[str, Any]],
    columns: List[str],
    name: str,
    cap: int,
) -> CsvExport:
    # One extra row tells us whether the cap cut the export short
    rows = store.aggregate(collection, pipeline_for(cap + 1))
    truncated = len(rows) > cap
    rows = rows[:cap]

    content = render_csv([to_csv_row(row) for row in rows], columns)
    filename = f"mplads_{name}_{date.today().isoformat()}.csv"
    logger.info("export_complete name=%s rows=%d truncated=%s cap=%d", name, len(rows), truncated, cap)
    return CsvExport(filename=filename, content=content, row_count=len(rows), truncated=truncated)


def export_expenditures_csv(store, params: Mapping[str, Any], max_rows: Optional[int] = None) -> CsvExport:
    """
    Export the filtered expenditure set as CSV.

    params are the expenditure list filters (house, ls_term, state, mp_id,
    year, min_amount, max_amount, category, search, sort) plus an optional
    max_rows, which can only lower the configured cap.
    """
    filters = resolve_expenditure_filters(params)
    sort = resolve_sort(params.get('sort'), EXPENDITURE_SORT_FIELDS, DEFAULT_EXPENDITURE_SORT)
    return _capped_export(
        store,
        COLLECTION_EXPENDITURES,
        lambda limit: expenditure_export_pipeline(filters, sort, limit),
        expenditure_csv_row,
        EXPENDITURE_COLUMNS,
        'expenditures',
        resolve_export_cap(params, max_rows),
    )


def _export_works(store, params, max_rows, *, recommended: bool) -> CsvExport:
    filters = resolve_works_filters(params, recommended=recommended)
    sort = resolve_sort(params.get('sort'), WORKS_SORT_FIELDS, DEFAULT_WORKS_SORT)
    prefix = works_filter_prefix(filters, recommended=recommended)
    return _capped_export(
        store,
        COLLECTION_WORKS_RECOMMENDED if recommended else COLLECTION_WORKS_COMPLETED,
        lambda limit: works_export_pipeline(prefix, sort, limit),
        recommended_work_csv_row if recommended else completed_work_csv_row,
        RECOMMENDED_WORKS_COLUMNS if recommended else COMPLETED_WORKS_COLUMNS,
        'recommended_works' if recommended else 'completed_works',
        resolve_export_cap(params, max_rows),
    )


def export_completed_works_csv(store, params: Mapping[str, Any], max_rows: Optional[int] = None) -> CsvExport:
    """Completed works list filters (see get_completed_works) plus max_rows."""
    return _export_works(store, params, max_rows, recommended=False)


def export_recommended_works_csv(store, params: Mapping[str, Any], max_rows: Optional[int] = None) -> CsvExport:
    """Recommended works list filters, including status and has_payments, plus max_rows."""
    return _export_works(store, params, max_rows, recommended=True)


def export_member_summaries_csv(store, params: Mapping[str, Any], max_rows: Optional[int] = None) -> CsvExport:
    """
    MemberSummary rows for the scope, searched and utilization-bounded like
    /summary/mps, sorted by sort_by/order (default utilization, desc).
    """
    filters = resolve_member_summary_filters(params)
    sort_by, direction = resolve_member_summary_sort(params)
    return _capped_export(
        store,
        COLLECTION_SUMMARIES,
        lambda limit: member_summary_export_pipeline(filters, sort_by, direction, limit),
        member_summary_csv_row,
        MEMBER_SUMMARY_COLUMNS,
        'mp_summary',
        resolve_export_cap(params, max_rows),
    )
