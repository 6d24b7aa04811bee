"""
Performance Distribution Endpoint

Endpoints:
- /analytics/performance-distribution - Members per utilization bucket
"""

from flask import g

from api.contracts import api_contract
from api.contracts.pydantic_models import DistributionParams
from routes.analytics import analytics_bp
from routes.analytics._route_utils import route_logger, run_view
from services.analytics_service import get_performance_distribution

logger = route_logger("distribution")


@analytics_bp.route("/analytics/performance-distribution", methods=["GET"])
@api_contract(DistributionParams)
def performance_distribution():
    return run_view(
        logger,
        "/api/analytics/performance-distribution",
        get_performance_distribution,
        g.normalized_params,
    )
