"""
Pydantic models for /works/* and /export/works/* params.
"""

from pydantic import Field

from .analytics import ScopedParams
from .types import LenientInt, MemberId, NonNegativeFloat, OptionalBool, OptionalText, SearchText, Year


class WorksFilterParams(ScopedParams):
    mp_id: MemberId = Field(default=None, validation_alias='mpId')
    constituency: OptionalText = None
    district: OptionalText = Field(default=None, description="Alias for constituency")
    year: Year = None
    min_cost: NonNegativeFloat = Field(default=None, validation_alias='minCost')
    max_cost: NonNegativeFloat = Field(default=None, validation_alias='maxCost')
    category: OptionalText = None
    search: SearchText = None
    sort: OptionalText = Field(default=None, description="cost, date, year, category, description; '-' for desc")


class RecommendedWorksFilterParams(WorksFilterParams):
    status: OptionalText = None
    has_payments: OptionalBool = Field(default=None, validation_alias='hasPayments')


class CompletedWorksListParams(WorksFilterParams):
    page: LenientInt = None
    limit: LenientInt = None


class RecommendedWorksListParams(RecommendedWorksFilterParams):
    page: LenientInt = None
    limit: LenientInt = None


class CompletedWorksExportParams(WorksFilterParams):
    max_rows: LenientInt = Field(default=None, validation_alias='maxRows')


class RecommendedWorksExportParams(RecommendedWorksFilterParams):
    max_rows: LenientInt = Field(default=None, validation_alias='maxRows')
