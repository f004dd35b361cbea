"""
Health Pass Models - the stored pass, its visibility manifest, the frozen AI
judgments, and the owner / clinician projections.
"""

from datetime import date, datetime
from typing import Generic, List, Optional, TypeVar
from pydantic import Field, field_validator

from .common import CamelModel
from .enums import (
    AllergySeverity,
    AllergyType,
    AppointmentSpecialty,
    DocumentType,
    Gender,
    HabitFrequency,
    HealthPassItemType,
    HealthPassStatus,
    LifestyleCategory,
    MedicationFrequency,
)
from .records import Allergy, LifestyleHabit, MedicalCondition, MedicalDocument, Medication

T = TypeVar("T")


class ItemRecommendation(CamelModel):
    """AI judgment for a single record (habits use their category as id)."""
    id: str
    is_relevant: bool
    recommendation: str = ""


class HealthPassRecommendations(CamelModel):
    """Per-item AI judgments for every category plus the overall rationale."""
    condition_recommendations: List[ItemRecommendation] = Field(default_factory=list)
    medication_recommendations: List[ItemRecommendation] = Field(default_factory=list)
    allergy_recommendations: List[ItemRecommendation] = Field(default_factory=list)
    habit_recommendations: List[ItemRecommendation] = Field(default_factory=list)
    document_recommendations: List[ItemRecommendation] = Field(default_factory=list)
    overall_recommendation: str = ""


class DataToggles(CamelModel):
    """Visibility manifest: what a pass exposes to whoever scans it."""
    name: bool = True
    gender: bool = True
    date_of_birth: bool = True

    # Category switches: is the category rendered at all
    medical_conditions: bool = True
    medications: bool = True
    allergies: bool = True
    lifestyle_choices: bool = True
    documents: bool = True

    # Which items within each category are rendered
    specific_conditions: List[str] = Field(default_factory=list)
    specific_medications: List[str] = Field(default_factory=list)
    specific_allergies: List[str] = Field(default_factory=list)
    specific_lifestyles: List[str] = Field(default_factory=list)  # habit categories
    specific_documents: List[str] = Field(default_factory=list)


class DataTogglesUpdate(CamelModel):
    """Partial manifest update; the identity toggles can never be switched off."""
    name: Optional[bool] = None
    gender: Optional[bool] = None
    date_of_birth: Optional[bool] = None
    medical_conditions: Optional[bool] = None
    medications: Optional[bool] = None
    allergies: Optional[bool] = None
    lifestyle_choices: Optional[bool] = None
    documents: Optional[bool] = None
    specific_conditions: Optional[List[str]] = None
    specific_medications: Optional[List[str]] = None
    specific_allergies: Optional[List[str]] = None
    specific_lifestyles: Optional[List[str]] = None
    specific_documents: Optional[List[str]] = None

    @field_validator("name", "gender", "date_of_birth")
    @classmethod
    def always_shared(cls, value: Optional[bool]) -> Optional[bool]:
        if value is False:
            raise ValueError("name, gender and dateOfBirth are always shared and cannot be disabled")
        return value


class HealthPass(CamelModel):
    """Health pass as stored."""
    id: str
    user_id: str
    appointment_specialty: AppointmentSpecialty
    appointment_date: Optional[date] = None
    appointment_notes: Optional[str] = None
    qr_code: str
    access_code: str
    status: HealthPassStatus = HealthPassStatus.DRAFT
    data_toggles: DataToggles = Field(default_factory=DataToggles)
    ai_recommendations: Optional[str] = None
    ai_profile_summary: Optional[str] = None
    ai_item_recommendations: HealthPassRecommendations = Field(default_factory=HealthPassRecommendations)
    expires_at: datetime
    last_accessed_at: Optional[datetime] = None
    access_count: int = 0
    created_at: datetime
    updated_at: datetime


class HealthPassCreate(CamelModel):
    appointment_specialty: AppointmentSpecialty
    appointment_date: Optional[date] = None
    appointment_notes: Optional[str] = Field(None, max_length=2000)


class HealthPassUpdate(CamelModel):
    appointment_date: Optional[date] = None
    appointment_notes: Optional[str] = Field(None, max_length=2000)
    data_toggles: Optional[DataTogglesUpdate] = None


class ToggleItemRequest(CamelModel):
    item_type: HealthPassItemType
    item_id: str = Field(..., min_length=1)
    is_enabled: bool


# Owner view

class HealthPassItem(CamelModel, Generic[T]):
    """A record together with the AI judgment attached to it."""
    data: T
    is_relevant: bool
    ai_recommendation: str


class HealthPassResponse(CamelModel):
    id: str
    user_id: str
    appointment_specialty: AppointmentSpecialty
    appointment_date: Optional[date] = None
    appointment_notes: Optional[str] = None
    qr_code: str
    access_code: str
    status: HealthPassStatus
    data_toggles: DataToggles
    medical_conditions: List[HealthPassItem[MedicalCondition]] = Field(default_factory=list)
    medications: List[HealthPassItem[Medication]] = Field(default_factory=list)
    allergies: List[HealthPassItem[Allergy]] = Field(default_factory=list)
    lifestyles: List[HealthPassItem[LifestyleHabit]] = Field(default_factory=list)
    documents: List[HealthPassItem[MedicalDocument]] = Field(default_factory=list)
    ai_recommendations: Optional[str] = None
    ai_profile_summary: Optional[str] = None
    expires_at: datetime
    last_accessed_at: Optional[datetime] = None
    access_count: int = 0
    created_at: datetime
    updated_at: datetime


class HealthPassSummary(CamelModel):
    id: str
    appointment_specialty: AppointmentSpecialty
    appointment_date: Optional[date] = None
    status: HealthPassStatus
    expires_at: datetime
    access_count: int = 0
    created_at: datetime


# Clinician (scanner) view

class PreviewCondition(CamelModel):
    id: str
    name: str
    diagnosed_date: Optional[date] = None
    notes: Optional[str] = None
    ai_recommendation: str


class PreviewMedication(CamelModel):
    id: str
    medication_name: str
    dosage_amount: str
    frequency: MedicationFrequency
    notes: Optional[str] = None
    ai_recommendation: str


class PreviewAllergy(CamelModel):
    id: str
    allergen: str
    type: AllergyType
    severity: Optional[AllergySeverity] = None
    reaction: Optional[str] = None
    ai_recommendation: str


class PreviewHabit(CamelModel):
    category: LifestyleCategory
    frequency: HabitFrequency
    notes: Optional[str] = None
    ai_recommendation: str


class PreviewDocument(CamelModel):
    id: str
    document_name: str
    document_type: DocumentType
    document_date: Optional[date] = None
    notes: Optional[str] = None
    file_url: Optional[str] = None
    ai_recommendation: str


class HealthPassPreview(CamelModel):
    patient_name: str
    date_of_birth: date
    gender: Optional[Gender] = None
    appointment_specialty: AppointmentSpecialty
    appointment_date: Optional[date] = None
    appointment_notes: Optional[str] = None
    ai_recommendations: Optional[str] = None
    ai_profile_summary: Optional[str] = None
    medical_conditions: Optional[List[PreviewCondition]] = None
    medications: Optional[List[PreviewMedication]] = None
    allergies: Optional[List[PreviewAllergy]] = None
    lifestyle_choices: Optional[List[PreviewHabit]] = None
    documents: Optional[List[PreviewDocument]] = None
