"""
Service Registry - wires the application services together once at startup.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..config import settings
from ..llm import LLMProvider
from ..storage import Database, StorageInterface
from .ai_service import AIService
from .auth_service import AuthService
from .document_service import DocumentService
from .health_pass_service import HealthPassService
from .id_card_service import IdCardService
from .lifestyle_service import LifestyleService
from .qr_code_service import QrCodeService
from .record_service import AllergyService, MedicalConditionService, MedicationService
from .storage_service import ObjectStorageService
from .user_service import UserService

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Every service the API layer depends on."""
    db: Database
    object_storage: ObjectStorageService
    ai: AIService
    users: UserService
    auth: AuthService
    medical_conditions: MedicalConditionService
    medications: MedicationService
    allergies: AllergyService
    lifestyle: LifestyleService
    documents: DocumentService
    health_passes: HealthPassService


def build_services(storage: StorageInterface, provider: Optional[LLMProvider] = None) -> Services:
    """
    Construct the service graph over a storage backend.

    Args:
        storage: Backend for both the document collections and uploaded files
        provider: LLM provider; None leaves the AI features on their defaults
    """
    db = Database(storage)
    object_storage = ObjectStorageService(storage)
    ai = AIService(provider)
    users = UserService(db)
    conditions = MedicalConditionService(db)
    medications = MedicationService(db)
    allergies = AllergyService(db, ai)
    lifestyle = LifestyleService(db)
    documents = DocumentService(db, object_storage, ai)

    return Services(
        db=db,
        object_storage=object_storage,
        ai=ai,
        users=users,
        auth=AuthService(users, IdCardService(provider)),
        medical_conditions=conditions,
        medications=medications,
        allergies=allergies,
        lifestyle=lifestyle,
        documents=documents,
        health_passes=HealthPassService(
            db,
            user_service=users,
            condition_service=conditions,
            medication_service=medications,
            allergy_service=allergies,
            lifestyle_service=lifestyle,
            document_service=documents,
            ai_service=ai,
            qr_code_service=QrCodeService(settings.public_app_url),
        ),
    )


# Global services instance
_services: Optional[Services] = None


def init_services(storage: StorageInterface, provider: Optional[LLMProvider] = None) -> Services:
    """
    Initialize the global services instance.

    Args:
        storage: StorageInterface implementation
        provider: Optional LLM provider
    """
    global _services
    _services = build_services(storage, provider)
    logger.info(
        "Services initialized",
        extra={"extra_fields": {"llm_provider": provider.name if provider else None}}
    )
    return _services


def get_services() -> Services:
    """
    Get the global services instance.

    Raises:
        RuntimeError: If services have not been initialized
    """
    if _services is None:
        raise RuntimeError("Services not initialized. Call init_services() first.")
    return _services
