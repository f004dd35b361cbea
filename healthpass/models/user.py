"""
User Model - Defines the user data structure and authentication payloads.
"""

from datetime import date, datetime
from typing import List, Optional
from pydantic import EmailStr, Field, computed_field

from .common import CamelModel
from .enums import Gender
from .records import Allergy, Lifestyle, MedicalCondition, MedicalDocument, Medication


class IdCardData(CamelModel):
    """Identity fields read from a scanned national ID card."""
    first_name: str
    last_name: str
    government_id: str
    date_of_birth: str  # as printed on the card
    birth_place: str = ""
    dad_name: str = ""
    mom_full_name: str = ""
    gender: Optional[Gender] = None


class User(CamelModel):
    """User model with all fields."""
    id: str
    first_name: str
    last_name: str
    government_id: str
    date_of_birth: date
    birth_place: str = ""
    dad_name: str = ""
    mom_full_name: str = ""

    # Contact / demographic fields (the only updatable ones)
    gender: Optional[Gender] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    profile_image_url: Optional[str] = None

    last_login_at: Optional[datetime] = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class UserUpdate(CamelModel):
    """User update model - all fields optional, identity fields excluded."""
    gender: Optional[Gender] = None
    phone_number: Optional[str] = Field(None, max_length=30)
    email: Optional[EmailStr] = None
    profile_image_url: Optional[str] = None


class AuthUser(CamelModel):
    id: str
    full_name: str


class TokenPair(CamelModel):
    """JWT token response model."""
    access_token: str
    refresh_token: str
    expires_in: int  # seconds
    token_type: str = "bearer"


class LoginResponse(CamelModel):
    """Result of an ID-card verification."""
    is_new_user: bool
    user: AuthUser
    token: TokenPair
    extracted_data: Optional[IdCardData] = None


class RefreshTokenRequest(CamelModel):
    refresh_token: str


class TokenData(CamelModel):
    """Token payload data."""
    user_id: Optional[str] = None
    full_name: Optional[str] = None
    government_id: Optional[str] = None
    type: Optional[str] = None


class UserFullSummary(User):
    """A user together with all of their active health records."""
    medical_conditions: List[MedicalCondition] = Field(default_factory=list)
    medications: List[Medication] = Field(default_factory=list)
    allergies: List[Allergy] = Field(default_factory=list)
    lifestyle: Optional[Lifestyle] = None
    documents: List[MedicalDocument] = Field(default_factory=list)
