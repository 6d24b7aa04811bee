"""
Works Endpoints

Endpoints:
- /works/completed - Paginated, filterable completed works with summary
- /works/recommended - Paginated recommendations not yet completed
"""

from flask import Blueprint, g

from api.contracts import api_contract
from api.contracts.pydantic_models import CompletedWorksListParams, RecommendedWorksListParams
from routes.analytics._route_utils import route_logger, run_view
from services.analytics_service import get_completed_works, get_recommended_works

works_bp = Blueprint('works', __name__)

logger = route_logger("works")


@works_bp.route("/works/completed", methods=["GET"])
@api_contract(CompletedWorksListParams)
def completed_works():
    """
    Query params:
      - page (1-1000, default 1), limit (1-100, default 20)
      - sort: cost | date | year | category | description, '-' prefix for
        descending (default -date)
      - mp_id, state, house, ls_term, constituency (or district), year,
        min_cost, max_cost, category, search
    """
    return run_view(logger, "/api/works/completed", get_completed_works, g.normalized_params)


@works_bp.route("/works/recommended", methods=["GET"])
@api_contract(RecommendedWorksListParams)
def recommended_works():
    """
    Same params as /works/completed, plus:
      - status: exact status (missing status reads as Recommended)
      - has_payments: true/false, works with or without a successful payment
    """
    return run_view(logger, "/api/works/recommended", get_recommended_works, g.normalized_params)
