"""
Autocomplete Models - AI suggestions while the user types a record, and the
fields read from a photo of a medicine package.
"""

from typing import Generic, List, Optional, TypeVar
from pydantic import Field

from .common import CamelModel
from .enums import AllergyType, MedicationFrequency

T = TypeVar("T")

AUTOCOMPLETE_MIN_QUERY_LENGTH = 2
AUTOCOMPLETE_DEFAULT_LIMIT = 10
AUTOCOMPLETE_MAX_LIMIT = 20


class MedicalConditionSuggestion(CamelModel):
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    icd_code: Optional[str] = None
    synonyms: List[str] = Field(default_factory=list)


class MedicationSuggestion(CamelModel):
    name: str
    generic_name: Optional[str] = None
    brand_names: List[str] = Field(default_factory=list)
    drug_class: Optional[str] = None
    common_dosages: List[str] = Field(default_factory=list)
    forms: List[str] = Field(default_factory=list)


class AllergySuggestion(CamelModel):
    name: str
    type: AllergyType = AllergyType.OTHER
    common_reactions: List[str] = Field(default_factory=list)
    cross_reactivities: List[str] = Field(default_factory=list)


class AutocompleteResponse(CamelModel, Generic[T]):
    """Suggestions for one query; empty whenever the model cannot help."""
    suggestions: List[T] = Field(default_factory=list)
    query: str = ""
    has_more: bool = False


class MedicineScanResult(CamelModel):
    """Medication form prefill read from a medicine photo."""
    medication_name: str
    generic_name: Optional[str] = None
    brand_name: Optional[str] = None
    dosage_amount: Optional[str] = None
    frequency: Optional[MedicationFrequency] = None
    form: Optional[str] = None
    strength: Optional[str] = None
    manufacturer: Optional[str] = None
    active_ingredients: List[str] = Field(default_factory=list)
    instructions: Optional[str] = None
    warnings: List[str] = Field(default_factory=list)
    expiry_date: Optional[str] = None  # YYYY-MM as printed
    confidence: float = 0.5
    notes: Optional[str] = None
