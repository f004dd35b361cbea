"""
Health Record Models - conditions, medications, allergies, lifestyle habits
and medical documents owned by a user.
"""

from datetime import date, datetime
from typing import List, Optional
from pydantic import Field, field_validator

from .common import CamelModel
from .enums import (
    AllergySeverity,
    AllergyType,
    DocumentType,
    HabitFrequency,
    LifestyleCategory,
    MedicationFrequency,
)


class RecordBase(CamelModel):
    """Fields shared by every stored record."""
    id: str
    user_id: str
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


# Medical conditions

class MedicalConditionCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    diagnosed_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)


class MedicalConditionUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    diagnosed_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)


class MedicalCondition(RecordBase):
    name: str
    diagnosed_date: Optional[date] = None
    notes: Optional[str] = None


# Medications

class MedicationCreate(CamelModel):
    medication_name: str = Field(..., min_length=1, max_length=200)
    dosage_amount: str = Field(..., min_length=1, max_length=100)
    frequency: MedicationFrequency
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)


class MedicationUpdate(CamelModel):
    medication_name: Optional[str] = Field(None, min_length=1, max_length=200)
    dosage_amount: Optional[str] = Field(None, min_length=1, max_length=100)
    frequency: Optional[MedicationFrequency] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)


class Medication(RecordBase):
    medication_name: str
    dosage_amount: str
    frequency: MedicationFrequency
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = None


# Allergies

class AllergyCreate(CamelModel):
    allergen: str = Field(..., min_length=1, max_length=200)
    type: Optional[AllergyType] = None  # classified by the AI service when omitted
    severity: Optional[AllergySeverity] = None
    reaction: Optional[str] = Field(None, max_length=500)
    diagnosed_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)


class AllergyUpdate(CamelModel):
    allergen: Optional[str] = Field(None, min_length=1, max_length=200)
    type: Optional[AllergyType] = None
    severity: Optional[AllergySeverity] = None
    reaction: Optional[str] = Field(None, max_length=500)
    diagnosed_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)


class Allergy(RecordBase):
    allergen: str
    type: AllergyType = AllergyType.OTHER
    severity: Optional[AllergySeverity] = None
    reaction: Optional[str] = None
    diagnosed_date: Optional[date] = None
    notes: Optional[str] = None


# Lifestyle

class LifestyleHabit(CamelModel):
    """A single habit; the category is its identity within a lifestyle record."""
    category: LifestyleCategory
    frequency: HabitFrequency = HabitFrequency.NOT_SET
    notes: Optional[str] = Field(None, max_length=1000)


class LifestyleUpsert(CamelModel):
    habits: List[LifestyleHabit] = Field(default_factory=list)

    @field_validator("habits")
    @classmethod
    def unique_categories(cls, habits: List[LifestyleHabit]) -> List[LifestyleHabit]:
        categories = [h.category for h in habits]
        if len(categories) != len(set(categories)):
            raise ValueError("Each lifestyle category may appear only once")
        return habits


class Lifestyle(RecordBase):
    habits: List[LifestyleHabit] = Field(default_factory=list)


# Documents

class DocumentAiSuggestion(CamelModel):
    """What the AI service read from an uploaded document."""
    suggested_name: str = "Medical Document"
    suggested_date: Optional[date] = None
    suggested_notes: str = ""
    suggested_type: DocumentType = DocumentType.OTHER
    extracted_text: str = ""
    confidence: float = 0.0


class DocumentConfirm(CamelModel):
    document_name: str = Field(..., min_length=1, max_length=300)
    document_type: DocumentType
    document_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=4000)


class DocumentUpdate(CamelModel):
    document_name: Optional[str] = Field(None, min_length=1, max_length=300)
    document_type: Optional[DocumentType] = None
    document_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=4000)


class MedicalDocument(RecordBase):
    original_file_name: str
    document_name: str
    document_type: DocumentType = DocumentType.OTHER
    file_path: str = Field(..., exclude=True)  # object storage pointer, never sent to clients
    file_url: Optional[str] = None  # signed on read
    mime_type: str
    file_size: Optional[int] = None
    document_date: Optional[date] = None
    notes: Optional[str] = None

    # AI-processed data
    ai_suggested_name: Optional[str] = None
    ai_suggested_date: Optional[date] = None
    ai_generated_notes: Optional[str] = None
    extracted_text: Optional[str] = Field(None, exclude=True)
    ai_confidence: Optional[float] = None
    is_ai_processed: bool = False
    is_confirmed: bool = False


class DocumentUploadResponse(CamelModel):
    id: str
    original_file_name: str
    file_url: str
    ai_suggestions: DocumentAiSuggestion
