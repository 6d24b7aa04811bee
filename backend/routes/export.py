"""
Export Endpoints

Endpoints:
- /export/expenditures - Filtered expenditure list as a CSV download
- /export/works/completed - Filtered completed works
- /export/works/recommended - Filtered recommended works
- /export/mps - Member summaries

Every export takes its list's filters (without page/limit) plus max_rows,
and answers 404 when nothing matches, so clients never download a
header-only file.
"""

import time

from flask import Blueprint, Response, g

from api.contracts import api_contract
from api.contracts.pydantic_models import (
    CompletedWorksExportParams,
    ExpenditureExportParams,
    MemberSummaryExportParams,
    RecommendedWorksExportParams,
)
from api.middleware.error_envelope import make_error_response
from routes.analytics._route_utils import get_store, log_error, log_success, route_logger
from services.export_service import (
    export_completed_works_csv,
    export_expenditures_csv,
    export_member_summaries_csv,
    export_recommended_works_csv,
)

export_bp = Blueprint('export', __name__)

logger = route_logger("export")


def _download(route: str, exporter, empty_message: str):
    start = time.perf_counter()
    params = g.normalized_params

    try:
        export = exporter(get_store(), params)
    except Exception as e:
        log_error(logger, route, start, e, {"filters": dict(params)})
        raise

    if export.row_count == 0:
        return make_error_response("NOT_FOUND", empty_message)

    log_success(logger, route, start, {"rows": export.row_count, "truncated": export.truncated})
    response = Response(export.content.encode('utf-8'), mimetype='text/csv')
    response.headers['Content-Disposition'] = f'attachment; filename="{export.filename}"'
    response.headers['X-Export-Rows'] = str(export.row_count)
    response.headers['X-Export-Truncated'] = 'true' if export.truncated else 'false'
    return response


@export_bp.route("/export/expenditures", methods=["GET"])
@api_contract(ExpenditureExportParams)
def export_expenditures():
    return _download(
        "/api/export/expenditures",
        export_expenditures_csv,
        "No expenditures found with the specified criteria",
    )


@export_bp.route("/export/works/completed", methods=["GET"])
@api_contract(CompletedWorksExportParams)
def export_completed_works():
    return _download(
        "/api/export/works/completed",
        export_completed_works_csv,
        "No completed works found with the specified criteria",
    )


@export_bp.route("/export/works/recommended", methods=["GET"])
@api_contract(RecommendedWorksExportParams)
def export_recommended_works():
    return _download(
        "/api/export/works/recommended",
        export_recommended_works_csv,
        "No recommended works found with the specified criteria",
    )


@export_bp.route("/export/mps", methods=["GET"])
@api_contract(MemberSummaryExportParams)
def export_member_summaries():
    return _download(
        "/api/export/mps",
        export_member_summaries_csv,
        "No MP summaries found with the specified criteria",
    )
