"""
Top Performers Endpoint

Endpoints:
- /analytics/top-performers - Members ranked by utilization, expenditure
  or works completed, with comparison stats and per-state leaders
"""

from flask import g

from api.contracts import api_contract
from api.contracts.pydantic_models import TopPerformersParams
from routes.analytics import analytics_bp
from routes.analytics._route_utils import route_logger, run_view
from services.analytics_service import get_top_performers

logger = route_logger("performers")


@analytics_bp.route("/analytics/top-performers", methods=["GET"])
@api_contract(TopPerformersParams)
def top_performers():
    """
    Query params:
      - top_n: 1-50 (default 10)
      - metric: utilization (default), expenditure, works_completed
      - state, house, ls_term
    """
    return run_view(logger, "/api/analytics/top-performers", get_top_performers, g.normalized_params)
