"""
Summary Endpoints

Endpoints:
- /summary/overview - Headline totals and ratios
- /summary/states - Per-state allocation, expenditure and utilization
- /summary/mps - Paginated member summaries
- /filters/options - Values for the filter dropdowns
"""

from flask import Blueprint, g

from api.contracts import api_contract
from api.contracts.pydantic_models import (
    FilterOptionsParams,
    MemberSummaryListParams,
    OverviewParams,
    StateSummaryParams,
)
from routes.analytics._route_utils import route_logger, run_view
from services.analytics_service import get_filter_options, get_member_summaries, get_overview, get_state_summary

summary_bp = Blueprint('summary', __name__)

logger = route_logger("summary")


@summary_bp.route("/summary/overview", methods=["GET"])
@api_contract(OverviewParams)
def overview():
    return run_view(logger, "/api/summary/overview", get_overview, g.normalized_params)


@summary_bp.route("/summary/states", methods=["GET"])
@api_contract(StateSummaryParams)
def state_summary():
    """
    Query params:
      - state, house, ls_term
      - sort_by: utilizationPercentage (default), totalAllocated,
        totalExpenditure, mpCount, state
      - order: desc (default) or asc
      - limit: 1-100 (default 50)
    """
    return run_view(logger, "/api/summary/states", get_state_summary, g.normalized_params)


@summary_bp.route("/summary/mps", methods=["GET"])
@api_contract(MemberSummaryListParams)
def member_summaries():
    """
    Query params:
      - page (1-1000, default 1), limit (1-100, default 20)
      - state, house, ls_term, search (name, constituency or state)
      - min_utilization, max_utilization
      - sort_by: utilizationPercentage (default), totalExpenditure,
        allocatedAmount, completedWorksCount, recommendedWorksCount,
        completionRate, unspentAmount, mpName, state, constituency
      - order: desc (default) or asc
    """
    return run_view(logger, "/api/summary/mps", get_member_summaries, g.normalized_params)


@summary_bp.route("/filters/options", methods=["GET"])
@api_contract(FilterOptionsParams)
def filter_options():
    return run_view(logger, "/api/filters/options", get_filter_options, g.normalized_params)
