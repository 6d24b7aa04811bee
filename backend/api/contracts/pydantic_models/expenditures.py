"""
Pydantic models for /expenditures and /export/expenditures params.
"""

from pydantic import Field

from .analytics import ScopedParams
from .types import LenientInt, MemberId, NonNegativeFloat, OptionalText, SearchText, Year


class ExpenditureFilterParams(ScopedParams):
    mp_id: MemberId = Field(default=None, validation_alias='mpId')
    year: Year = None
    min_amount: NonNegativeFloat = Field(default=None, validation_alias='minAmount')
    max_amount: NonNegativeFloat = Field(default=None, validation_alias='maxAmount')
    category: OptionalText = None
    search: SearchText = None
    sort: OptionalText = Field(default=None, description="amount, year, date, category, description; '-' for desc")


class ExpenditureListParams(ExpenditureFilterParams):
    page: LenientInt = None
    limit: LenientInt = None


class ExpenditureCategoriesParams(ScopedParams):
    pass


class ExpenditureExportParams(ExpenditureFilterParams):
    max_rows: LenientInt = Field(default=None, validation_alias='maxRows')
