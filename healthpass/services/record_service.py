"""
Record Services - owner-scoped CRUD over the health record collections.

Each record belongs to one user and is soft-deleted through ``is_active``.
Key fields are stored trimmed. A user may not hold two active records with
the same domain key (compared case-insensitively); the check runs under the
collection lock.
"""

import logging
from typing import Any, Callable, Dict, Generic, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel

from ..core.errors import ConflictError, NotFoundError, ValidationError
from ..models.enums import AllergyType
from ..models.records import Allergy, AllergyCreate, MedicalCondition, Medication, RecordBase
from ..storage import Collection, Database, DuplicateKeyError

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=RecordBase)


def normalize_key(value: Any) -> str:
    """Comparison form of a domain-key field."""
    return str(value or "").strip().lower()


class RecordService(Generic[R]):
    """
    Base CRUD service for one record collection.

    Subclasses set ``collection_name``, ``model``, ``label`` and ``key_fields``.
    """

    collection_name: str = ""
    model: Type[R]
    label: str = "Record"
    key_fields: Sequence[str] = ()

    def __init__(self, db: Database):
        self.db = db
        self.collection: Collection = getattr(db, self.collection_name)

    # Helpers

    def _to_model(self, document: Dict[str, Any]) -> R:
        return self.model.model_validate(document)

    def _trim_keys(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Strip surrounding whitespace from the key fields present in ``fields``."""
        trimmed = dict(fields)
        for name in self.key_fields:
            if isinstance(trimmed.get(name), str):
                trimmed[name] = trimmed[name].strip()
                if not trimmed[name]:
                    raise ValidationError(f"{name} cannot be blank", errors=[{"field": name, "message": "blank"}])
        return trimmed

    def _key(self, document: Dict[str, Any]) -> tuple:
        return tuple(normalize_key(document.get(field)) for field in self.key_fields)

    def _duplicate_of(
        self,
        user_id: str,
        key: tuple
    ) -> Optional[Callable[[Dict[str, Any]], bool]]:
        """Predicate matching another active record of the same owner with the same key."""
        if not self.key_fields:
            return None
        return lambda other: (
            other.get("user_id") == user_id
            and other.get("is_active", True)
            and self._key(other) == key
        )

    def _conflict(self, document: Dict[str, Any]) -> ConflictError:
        described = " ".join(str(document.get(f)) for f in self.key_fields if document.get(f))
        return ConflictError(f"{self.label} '{described}' already exists")

    async def _get_document(self, record_id: str, user_id: Optional[str] = None) -> Dict[str, Any]:
        document = await self.collection.find_by_id(record_id)
        if document is None or (user_id is not None and document.get("user_id") != user_id):
            raise NotFoundError(f"{self.label} not found")
        return document

    # Operations

    async def create(self, user_id: str, data: BaseModel, **extra: Any) -> R:
        """
        Create a record for a user.

        Raises:
            ConflictError: If an active record with the same key exists
        """
        document = {
            **self._trim_keys(data.model_dump(mode="json")),
            **extra,
            "user_id": user_id,
            "is_active": True,
        }
        try:
            stored = await self.collection.insert_one(
                document, reject_if=self._duplicate_of(user_id, self._key(document))
            )
        except DuplicateKeyError:
            raise self._conflict(document)

        logger.info(
            f"{self.label} created",
            extra={"extra_fields": {"user_id": user_id, "record_id": stored["id"]}}
        )
        return self._to_model(stored)

    async def list_by_owner(self, user_id: str, active_only: bool = True) -> List[R]:
        """All records of a user, newest first."""
        def query(document: Dict[str, Any]) -> bool:
            if document.get("user_id") != user_id:
                return False
            return document.get("is_active", True) or not active_only

        return [self._to_model(d) for d in await self.collection.find(query)]

    async def get_by_id(self, record_id: str, user_id: Optional[str] = None) -> R:
        """
        Get a record by id; with ``user_id``, records of other users are not found.

        Raises:
            NotFoundError: If the record does not exist
        """
        return self._to_model(await self._get_document(record_id, user_id))

    async def update(self, record_id: str, data: BaseModel, user_id: Optional[str] = None) -> R:
        """
        Apply a partial update. The duplicate check is repeated when the key changes.

        Raises:
            NotFoundError: If the record does not exist
            ConflictError: If the new key collides with another active record
        """
        current = await self._get_document(record_id, user_id)
        updates = self._trim_keys(data.model_dump(mode="json", exclude_unset=True))
        if not updates:
            return self._to_model(current)

        merged = {**current, **updates}
        reject_if = None
        if current.get("is_active", True) and self._key(merged) != self._key(current):
            reject_if = self._duplicate_of(current["user_id"], self._key(merged))

        try:
            updated = await self.collection.update_one(record_id, updates, reject_if=reject_if)
        except DuplicateKeyError:
            raise self._conflict(merged)
        if updated is None:
            raise NotFoundError(f"{self.label} not found")
        return self._to_model(updated)

    async def soft_delete(self, record_id: str, user_id: Optional[str] = None) -> None:
        """
        Mark a record inactive. Deleting an already inactive record is a no-op.

        Raises:
            NotFoundError: If the record never existed
        """
        await self._get_document(record_id, user_id)
        await self.collection.update_one(record_id, {"is_active": False})
        logger.info(f"{self.label} deleted", extra={"extra_fields": {"record_id": record_id}})


class MedicalConditionService(RecordService[MedicalCondition]):
    collection_name = "medical_conditions"
    model = MedicalCondition
    label = "Medical condition"
    key_fields = ("name",)


class MedicationService(RecordService[Medication]):
    collection_name = "medications"
    model = Medication
    label = "Medication"
    key_fields = ("medication_name", "dosage_amount")


class AllergyService(RecordService[Allergy]):
    collection_name = "allergies"
    model = Allergy
    label = "Allergy"
    key_fields = ("allergen",)

    def __init__(self, db: Database, ai_service=None):
        super().__init__(db)
        self.ai_service = ai_service

    async def create(self, user_id: str, data: AllergyCreate, **extra: Any) -> Allergy:
        """Create an allergy, classifying the allergen when no type is given."""
        if data.type is None:
            allergy_type = await self.ai_service.classify_allergen(data.allergen) if self.ai_service else None
            data = data.model_copy(update={"type": allergy_type or AllergyType.OTHER})
        return await super().create(user_id, data, **extra)
