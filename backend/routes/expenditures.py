"""
Expenditure Endpoints

Endpoints:
- /expenditures - Paginated, filterable expenditure list with summary
- /expenditures/categories - Totals per category
"""

from flask import Blueprint, g

from api.contracts import api_contract
from api.contracts.pydantic_models import ExpenditureCategoriesParams, ExpenditureListParams
from routes.analytics._route_utils import route_logger, run_view
from services.analytics_service import get_expenditure_categories, get_expenditures

expenditures_bp = Blueprint('expenditures', __name__)

logger = route_logger("expenditures")


@expenditures_bp.route("/expenditures", methods=["GET"])
@api_contract(ExpenditureListParams)
def list_expenditures():
    """
    Query params:
      - page (1-1000, default 1), limit (1-100, default 20)
      - sort: amount | year | date | category | description, '-' prefix
        for descending (default -amount)
      - mp_id, state, house, ls_term, year, min_amount, max_amount,
        category, search
    """
    return run_view(logger, "/api/expenditures", get_expenditures, g.normalized_params)


@expenditures_bp.route("/expenditures/categories", methods=["GET"])
@api_contract(ExpenditureCategoriesParams)
def expenditure_categories():
    return run_view(logger, "/api/expenditures/categories", get_expenditure_categories, g.normalized_params)
