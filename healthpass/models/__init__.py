"""Models module."""

from .common import CamelModel, success_response, error_response
from .user import (
    User, UserUpdate, UserFullSummary, IdCardData, AuthUser,
    TokenPair, LoginResponse, RefreshTokenRequest, TokenData
)
from .records import (
    MedicalCondition, MedicalConditionCreate, MedicalConditionUpdate,
    Medication, MedicationCreate, MedicationUpdate,
    Allergy, AllergyCreate, AllergyUpdate,
    Lifestyle, LifestyleHabit, LifestyleUpsert,
    MedicalDocument, DocumentAiSuggestion, DocumentConfirm, DocumentUpdate, DocumentUploadResponse
)
from .health_pass import (
    HealthPass, HealthPassCreate, HealthPassUpdate, HealthPassResponse, HealthPassSummary,
    HealthPassPreview, HealthPassItem, HealthPassRecommendations, ItemRecommendation,
    DataToggles, DataTogglesUpdate, ToggleItemRequest
)
from .autocomplete import (
    AutocompleteResponse, MedicalConditionSuggestion, MedicationSuggestion, AllergySuggestion,
    MedicineScanResult
)

__all__ = [
    'CamelModel', 'success_response', 'error_response',
    'User', 'UserUpdate', 'UserFullSummary', 'IdCardData', 'AuthUser',
    'TokenPair', 'LoginResponse', 'RefreshTokenRequest', 'TokenData',
    'MedicalCondition', 'MedicalConditionCreate', 'MedicalConditionUpdate',
    'Medication', 'MedicationCreate', 'MedicationUpdate',
    'Allergy', 'AllergyCreate', 'AllergyUpdate',
    'Lifestyle', 'LifestyleHabit', 'LifestyleUpsert',
    'MedicalDocument', 'DocumentAiSuggestion', 'DocumentConfirm', 'DocumentUpdate', 'DocumentUploadResponse',
    'HealthPass', 'HealthPassCreate', 'HealthPassUpdate', 'HealthPassResponse', 'HealthPassSummary',
    'HealthPassPreview', 'HealthPassItem', 'HealthPassRecommendations', 'ItemRecommendation',
    'DataToggles', 'DataTogglesUpdate', 'ToggleItemRequest',
    'AutocompleteResponse', 'MedicalConditionSuggestion', 'MedicationSuggestion', 'AllergySuggestion',
    'MedicineScanResult'
]
