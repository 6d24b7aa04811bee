"""
Pydantic models for API param validation.

Key features:
- Frozen models (immutable after normalization)
- Lenient coercion for analytics knobs (malformed numbers become None)
- house / ls_term normalized once at the boundary

Usage:
    from api.contracts.pydantic_models import ExpenditureListParams

    params = ExpenditureListParams(**request.args.to_dict())
    result = get_expenditures(store, params.to_service_params())
"""

from .base import BaseParamsModel
from .analytics import DistributionParams, ScopedParams, TopPerformersParams, TrendsParams
from .expenditures import (
    ExpenditureCategoriesParams,
    ExpenditureExportParams,
    ExpenditureFilterParams,
    ExpenditureListParams,
)
from .summary import (
    FilterOptionsParams,
    MemberSummaryExportParams,
    MemberSummaryListParams,
    OverviewParams,
    StateSummaryParams,
)
from .works import (
    CompletedWorksExportParams,
    CompletedWorksListParams,
    RecommendedWorksExportParams,
    RecommendedWorksListParams,
)

__all__ = [
    'BaseParamsModel',
    'ScopedParams',
    'TrendsParams',
    'TopPerformersParams',
    'DistributionParams',
    'ExpenditureFilterParams',
    'ExpenditureListParams',
    'ExpenditureCategoriesParams',
    'ExpenditureExportParams',
    'CompletedWorksListParams',
    'RecommendedWorksListParams',
    'CompletedWorksExportParams',
    'RecommendedWorksExportParams',
    'OverviewParams',
    'StateSummaryParams',
    'MemberSummaryListParams',
    'MemberSummaryExportParams',
    'FilterOptionsParams',
]
