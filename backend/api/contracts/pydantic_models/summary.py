"""
Pydantic models for /summary/*, /export/mps and /filters/options params.
"""

from pydantic import Field

from .analytics import ScopedParams
from .types import LenientInt, NonNegativeFloat, OptionalText, SearchText


class OverviewParams(ScopedParams):
    pass


class StateSummaryParams(ScopedParams):
    limit: LenientInt = None
    sort_by: OptionalText = Field(default=None, validation_alias='sortBy')
    order: OptionalText = Field(default=None, description="asc or desc")


class MemberSummaryFilterParams(ScopedParams):
    search: SearchText = Field(default=None, description="Member name, constituency or state")
    min_utilization: NonNegativeFloat = Field(default=None, validation_alias='minUtilization')
    max_utilization: NonNegativeFloat = Field(default=None, validation_alias='maxUtilization')
    sort_by: OptionalText = Field(default=None, validation_alias='sortBy')
    order: OptionalText = Field(default=None, description="asc or desc")


class MemberSummaryListParams(MemberSummaryFilterParams):
    page: LenientInt = None
    limit: LenientInt = None


class MemberSummaryExportParams(MemberSummaryFilterParams):
    max_rows: LenientInt = Field(default=None, validation_alias='maxRows')


class FilterOptionsParams(ScopedParams):
    pass
