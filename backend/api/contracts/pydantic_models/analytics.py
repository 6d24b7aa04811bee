"""
Pydantic models for /analytics/* endpoint params.

Only coercion happens here; defaults that depend on the clock (end_year) or
on vocabularies (granularity, metric) are applied by the analytics service
so that direct service callers get the same behavior.
"""

from typing import Optional, Union

from pydantic import Field

from .base import BaseParamsModel
from .types import LenientInt, OptionalText, Year


class ScopedParams(BaseParamsModel):
    """house / ls_term / state, shared by every house-aware endpoint."""

    state: OptionalText = Field(default=None, description="State (substring, case-insensitive)")
    house: Optional[str] = Field(default=None, description="Lok Sabha, Rajya Sabha or both")
    ls_term: Union[int, str] = Field(
        default=None,
        validate_default=True,
        validation_alias='lsTerm',
        description="Lok Sabha term: 17, 18 or 'both'",
    )


class TrendsParams(ScopedParams):
    start_year: Year = Field(default=None, validation_alias='startYear')
    end_year: Year = Field(default=None, validation_alias='endYear')
    granularity: OptionalText = Field(default=None, description="yearly, quarterly or monthly")


class TopPerformersParams(ScopedParams):
    top_n: LenientInt = Field(default=None, validation_alias='topN')
    metric: OptionalText = Field(default=None, description="utilization, expenditure or works_completed")
    year: Year = Field(default=None, description="Echoed only; summaries are not per-year")


class DistributionParams(ScopedParams):
    pass
