"""
Base Pydantic model for all API param schemas.

Key features:
- frozen=True: Immutable after normalization (prevents downstream mutation)
- populate_by_name=True: Accept both alias and field name
- extra='ignore': Ignore undeclared fields (safe)
- house and ls_term normalized at the boundary
"""

from typing import Any, Dict, Union

from pydantic import BaseModel, ConfigDict, field_validator

from constants import normalize_house
from utils.filter_builder import resolve_term_selection


class BaseParamsModel(BaseModel):
    """
    Base model for all API param schemas.

    All param models inherit from this to ensure consistent behavior:
    - Frozen after creation (immutable)
    - Whitespace stripped from strings
    - Both alias and field name accepted
    - Unknown fields ignored
    - house normalized to its canonical name ("Lok Sabha" / "Rajya Sabha")
      or None for both houses
    - ls_term resolved to 17, 18 or "both"

    Invariant: Inside backend (after validation), house is always a
    canonical name or None, and ls_term is always a valid TermSelection.
    """
    model_config = ConfigDict(
        frozen=True,  # Immutable after normalization
        str_strip_whitespace=True,  # Strip whitespace from strings
        populate_by_name=True,  # Accept both alias and field name
        extra='ignore',  # Ignore undeclared fields
    )

    @field_validator('house', mode='before', check_fields=False)
    @classmethod
    def normalize_house_name(cls, v):
        """Accepts 'Lok Sabha', 'lok_sabha', 'LS', 'Both Houses', 'all', ... ."""
        if isinstance(v, (list, tuple)):
            v = v[0] if v else None
        return normalize_house(v)

    @field_validator('ls_term', mode='before', check_fields=False)
    @classmethod
    def resolve_ls_term(cls, v) -> Union[int, str]:
        if isinstance(v, (list, tuple)):
            v = v[0] if v else None
        return resolve_term_selection(v)

    def to_service_params(self) -> Dict[str, Any]:
        """Plain dict handed to the view functions."""
        return self.model_dump()
