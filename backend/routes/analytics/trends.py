"""
Trend Endpoints

Endpoints:
- /analytics/trends - Yearly (optionally monthly/quarterly) expenditure,
  top categories and works trends
"""

from flask import g

from api.contracts import api_contract
from api.contracts.pydantic_models import TrendsParams
from routes.analytics import analytics_bp
from routes.analytics._route_utils import route_logger, run_view
from services.analytics_service import get_utilization_trends

logger = route_logger("trends")


@analytics_bp.route("/analytics/trends", methods=["GET"])
@api_contract(TrendsParams)
def utilization_trends():
    """
    Time-based utilization trends.

    Query params:
      - start_year (default 2014), end_year (default current year)
      - state, house, ls_term
      - granularity: yearly (default), quarterly, monthly
    """
    return run_view(logger, "/api/analytics/trends", get_utilization_trends, g.normalized_params)
