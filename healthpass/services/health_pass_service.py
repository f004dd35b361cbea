"""
Health Pass Service - composes passes from the user's records, the AI's
relevance judgments and an expiring access code, and renders the owner and
clinician views of a pass.

The visibility manifest stores record IDs only. Both views re-read the
owner's current active records and filter them through the manifest, so a
record deleted after generation never reappears.
"""

import asyncio
import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from ..config import settings
from ..core.errors import NotFoundError, ValidationError
from ..models.enums import (
    HEALTH_PASS_EXPIRY_HOURS,
    AppointmentSpecialty,
    HealthPassItemType,
    HealthPassStatus,
    LifestyleCategory,
)
from ..models.health_pass import (
    DataToggles,
    HealthPass,
    HealthPassCreate,
    HealthPassItem,
    HealthPassPreview,
    HealthPassRecommendations,
    HealthPassResponse,
    HealthPassSummary,
    HealthPassUpdate,
    ItemRecommendation,
    PreviewAllergy,
    PreviewCondition,
    PreviewDocument,
    PreviewHabit,
    PreviewMedication,
)
from ..models.records import Allergy, LifestyleHabit, MedicalCondition, MedicalDocument, Medication
from ..storage import Database
from .ai_service import AIService
from .document_service import DocumentService
from .lifestyle_service import LifestyleService
from .qr_code_service import QrCodeService
from .record_service import AllergyService, MedicalConditionService, MedicationService
from .user_service import UserService

logger = logging.getLogger(__name__)

ACCESS_CODE_BYTES = 16

# Rationale shown for a visible item the frozen snapshot has no judgment for
GENERIC_RATIONALE = "Shared by the patient for this appointment."
UNJUDGED_RATIONALE = "Added after this health pass was generated."

NOT_FOUND_MESSAGE = "Health pass not found or expired"

# Item type -> (category switch, specific-ID list) in the visibility manifest
MANIFEST_FIELDS = {
    HealthPassItemType.MEDICAL_CONDITION: ("medical_conditions", "specific_conditions"),
    HealthPassItemType.MEDICATION: ("medications", "specific_medications"),
    HealthPassItemType.ALLERGY: ("allergies", "specific_allergies"),
    HealthPassItemType.LIFESTYLE: ("lifestyle_choices", "specific_lifestyles"),
    HealthPassItemType.DOCUMENT: ("documents", "specific_documents"),
}

ALWAYS_SHARED = ("name", "gender", "date_of_birth")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


@dataclass
class RecordSet:
    """A user's active records, one list per category."""
    conditions: List[MedicalCondition] = field(default_factory=list)
    medications: List[Medication] = field(default_factory=list)
    allergies: List[Allergy] = field(default_factory=list)
    habits: List[LifestyleHabit] = field(default_factory=list)
    documents: List[MedicalDocument] = field(default_factory=list)

    def as_dict(self) -> Dict[str, list]:
        return {
            "conditions": self.conditions,
            "medications": self.medications,
            "allergies": self.allergies,
            "habits": self.habits,
            "documents": self.documents,
        }


def _habit_id(habit: LifestyleHabit) -> str:
    return habit.category.value if isinstance(habit.category, LifestyleCategory) else str(habit.category)


def visible_records(records: RecordSet, toggles: DataToggles) -> RecordSet:
    """Records the manifest exposes: category switch on and ID listed."""
    def pick(items, enabled: bool, ids: List[str], key=lambda item: item.id):
        if not enabled:
            return []
        allowed = set(ids)
        return [item for item in items if key(item) in allowed]

    return RecordSet(
        conditions=pick(records.conditions, toggles.medical_conditions, toggles.specific_conditions),
        medications=pick(records.medications, toggles.medications, toggles.specific_medications),
        allergies=pick(records.allergies, toggles.allergies, toggles.specific_allergies),
        habits=pick(records.habits, toggles.lifestyle_choices, toggles.specific_lifestyles, key=_habit_id),
        documents=pick(records.documents, toggles.documents, toggles.specific_documents),
    )


def hidden_flags(records: RecordSet, visible: RecordSet) -> Dict[str, bool]:
    """Per category, whether the user has active records the manifest hides."""
    everything = records.as_dict()
    shown = visible.as_dict()
    return {category: len(everything[category]) > len(shown[category]) for category in everything}


def toggles_from_recommendations(recommendations: HealthPassRecommendations) -> DataToggles:
    """Initial manifest: every item judged relevant is listed."""
    def relevant(items: List[ItemRecommendation]) -> List[str]:
        return [r.id for r in items if r.is_relevant]

    return DataToggles(
        lifestyle_choices=any(r.is_relevant for r in recommendations.habit_recommendations),
        specific_conditions=relevant(recommendations.condition_recommendations),
        specific_medications=relevant(recommendations.medication_recommendations),
        specific_allergies=relevant(recommendations.allergy_recommendations),
        specific_lifestyles=relevant(recommendations.habit_recommendations),
        specific_documents=relevant(recommendations.document_recommendations),
    )


class HealthPassService:
    """Creation, sharing and rendering of health passes."""

    def __init__(
        self,
        db: Database,
        user_service: UserService,
        condition_service: MedicalConditionService,
        medication_service: MedicationService,
        allergy_service: AllergyService,
        lifestyle_service: LifestyleService,
        document_service: DocumentService,
        ai_service: AIService,
        qr_code_service: QrCodeService,
    ):
        self.collection = db.health_passes
        self.user_service = user_service
        self.condition_service = condition_service
        self.medication_service = medication_service
        self.allergy_service = allergy_service
        self.lifestyle_service = lifestyle_service
        self.document_service = document_service
        self.ai_service = ai_service
        self.qr_code_service = qr_code_service

    # Helpers

    async def _fetch_records(self, user_id: str) -> RecordSet:
        """Fetch all five categories concurrently; any failed fetch fails the whole call."""
        conditions, medications, allergies, habits, documents = await asyncio.gather(
            self.condition_service.list_by_owner(user_id),
            self.medication_service.list_by_owner(user_id),
            self.allergy_service.list_by_owner(user_id),
            self.lifestyle_service.habits_for(user_id),
            self.document_service.list_by_owner(user_id, confirmed_only=True),
        )
        return RecordSet(conditions, medications, allergies, habits, documents)

    async def _get_document(self, pass_id: str, user_id: Optional[str] = None) -> Dict[str, Any]:
        document = await self.collection.find_by_id(pass_id)
        if document is None or (user_id is not None and document.get("user_id") != user_id):
            raise NotFoundError("Health pass not found")
        return document

    @staticmethod
    def _is_expired(health_pass: HealthPass, now: Optional[datetime] = None) -> bool:
        if health_pass.status == HealthPassStatus.EXPIRED:
            return True
        return (now or _now()) > _parse_datetime(health_pass.expires_at)

    def _display_status(self, health_pass: HealthPass) -> HealthPassStatus:
        return HealthPassStatus.EXPIRED if self._is_expired(health_pass) else health_pass.status

    @staticmethod
    def _new_access_code() -> str:
        return secrets.token_urlsafe(ACCESS_CODE_BYTES)

    def _to_response(self, health_pass: HealthPass, records: RecordSet) -> HealthPassResponse:
        """Owner view: every current record with its frozen judgment."""
        judgments = health_pass.ai_item_recommendations

        def items(records_list, recommendations: List[ItemRecommendation], key=lambda item: item.id):
            by_id = {r.id: r for r in recommendations}
            result = []
            for record in records_list:
                judgment = by_id.get(key(record))
                result.append(HealthPassItem(
                    data=record,
                    is_relevant=judgment.is_relevant if judgment else False,
                    ai_recommendation=(judgment.recommendation if judgment else "") or UNJUDGED_RATIONALE,
                ))
            return result

        return HealthPassResponse(
            id=health_pass.id,
            user_id=health_pass.user_id,
            appointment_specialty=health_pass.appointment_specialty,
            appointment_date=health_pass.appointment_date,
            appointment_notes=health_pass.appointment_notes,
            qr_code=health_pass.qr_code,
            access_code=health_pass.access_code,
            status=self._display_status(health_pass),
            data_toggles=health_pass.data_toggles,
            medical_conditions=items(records.conditions, judgments.condition_recommendations),
            medications=items(records.medications, judgments.medication_recommendations),
            allergies=items(records.allergies, judgments.allergy_recommendations),
            lifestyles=items(records.habits, judgments.habit_recommendations, key=_habit_id),
            documents=items(records.documents, judgments.document_recommendations),
            ai_recommendations=health_pass.ai_recommendations,
            ai_profile_summary=health_pass.ai_profile_summary,
            expires_at=health_pass.expires_at,
            last_accessed_at=health_pass.last_accessed_at,
            access_count=health_pass.access_count,
            created_at=health_pass.created_at,
            updated_at=health_pass.updated_at,
        )

    async def _owner_view(self, document: Dict[str, Any]) -> HealthPassResponse:
        health_pass = HealthPass.model_validate(document)
        return self._to_response(health_pass, await self._fetch_records(health_pass.user_id))

    # Operations

    async def create(self, user_id: str, data: HealthPassCreate) -> HealthPassResponse:
        """
        Generate a health pass for an appointment.

        Raises:
            NotFoundError: If the user does not exist
        """
        specialty = AppointmentSpecialty(data.appointment_specialty)
        user, records = await asyncio.gather(
            self.user_service.get_by_id(user_id),
            self._fetch_records(user_id),
        )

        recommendations = await self.ai_service.generate_health_pass_recommendations(
            specialty,
            conditions=records.conditions,
            medications=records.medications,
            allergies=records.allergies,
            habits=records.habits,
            documents=records.documents,
        )
        toggles = toggles_from_recommendations(recommendations)

        access_code = self._new_access_code()
        expires_at = _now() + timedelta(hours=HEALTH_PASS_EXPIRY_HOURS)

        visible = visible_records(records, toggles)
        profile_summary = await self.ai_service.generate_profile_summary(
            specialty,
            full_name=user.full_name,
            date_of_birth=user.date_of_birth,
            gender=user.gender,
            shared=visible.as_dict(),
            hidden=hidden_flags(records, visible),
        )

        stored = await self.collection.insert_one({
            "user_id": user_id,
            "appointment_specialty": specialty.value,
            "appointment_date": data.appointment_date.isoformat() if data.appointment_date else None,
            "appointment_notes": data.appointment_notes,
            "qr_code": self.qr_code_service.generate_qr_code(access_code),
            "access_code": access_code,
            "status": HealthPassStatus.GENERATED.value,
            "data_toggles": toggles.model_dump(mode="json"),
            "ai_recommendations": recommendations.overall_recommendation,
            "ai_profile_summary": profile_summary,
            "ai_item_recommendations": recommendations.model_dump(mode="json"),
            "expires_at": expires_at.isoformat(),
            "last_accessed_at": None,
            "access_count": 0,
        })

        logger.info(
            "Health pass created",
            extra={"extra_fields": {
                "user_id": user_id,
                "health_pass_id": stored["id"],
                "specialty": specialty.value,
                "visible_items": sum(len(v) for v in visible.as_dict().values()),
            }}
        )
        return self._to_response(HealthPass.model_validate(stored), records)

    async def get(self, pass_id: str, user_id: Optional[str] = None) -> HealthPassResponse:
        """Owner view of a pass, rebuilt from current records."""
        return await self._owner_view(await self._get_document(pass_id, user_id))

    async def list_by_owner(self, user_id: str) -> List[HealthPassSummary]:
        """Summaries of a user's passes, newest first."""
        summaries = []
        for document in await self.collection.find({"user_id": user_id}):
            health_pass = HealthPass.model_validate(document)
            summaries.append(HealthPassSummary(
                id=health_pass.id,
                appointment_specialty=health_pass.appointment_specialty,
                appointment_date=health_pass.appointment_date,
                status=self._display_status(health_pass),
                expires_at=health_pass.expires_at,
                access_count=health_pass.access_count,
                created_at=health_pass.created_at,
            ))
        return summaries

    async def update(self, pass_id: str, data: HealthPassUpdate, user_id: Optional[str] = None) -> HealthPassResponse:
        """
        Update appointment details and the visibility manifest.

        Raises:
            ValidationError: If the update tries to hide name, gender or date of birth
            NotFoundError: If the pass does not exist
        """
        toggle_updates: Dict[str, Any] = {}
        if data.data_toggles is not None:
            toggle_updates = data.data_toggles.model_dump(exclude_unset=True, exclude_none=True)
            disabled = [name for name in ALWAYS_SHARED if toggle_updates.get(name) is False]
            if disabled:
                raise ValidationError(
                    "Name, gender and date of birth are always shared",
                    errors=[{"field": name, "message": "cannot be disabled"} for name in disabled],
                )

        await self._get_document(pass_id, user_id)
        fields = data.model_dump(mode="json", exclude_unset=True, exclude={"data_toggles"})

        def mutate(current: Dict[str, Any]) -> Optional[Dict[str, Any]]:
            updates = dict(fields)
            if toggle_updates:
                merged = {**(current.get("data_toggles") or {}), **toggle_updates}
                merged.update({name: True for name in ALWAYS_SHARED})
                updates["data_toggles"] = DataToggles.model_validate(merged).model_dump(mode="json")
            return updates or None

        updated = await self.collection.find_one_and_update({"id": pass_id}, mutate)
        if updated is None:
            raise NotFoundError("Health pass not found")
        return await self._owner_view(updated)

    async def toggle_item(
        self,
        pass_id: str,
        item_type: HealthPassItemType,
        item_id: str,
        is_enabled: bool,
        user_id: Optional[str] = None
    ) -> HealthPassResponse:
        """
        Add or remove one item in its category's specific-ID list.

        Enabling an item also switches its category on, so the item shows in the
        preview. Disabling never turns the category off. Idempotent: enabling a
        listed item in a category that is on, or disabling an unlisted one,
        changes nothing. Other categories and the AI snapshot are left untouched.

        Raises:
            NotFoundError: If the pass does not exist
            ValidationError: If a lifestyle item is not a known habit category
        """
        item_type = HealthPassItemType(item_type)
        if item_type == HealthPassItemType.LIFESTYLE and item_id not in {c.value for c in LifestyleCategory}:
            raise ValidationError(f"Unknown lifestyle category: {item_id}")

        await self._get_document(pass_id, user_id)
        switch_field, list_field = MANIFEST_FIELDS[item_type]

        def mutate(current: Dict[str, Any]) -> Optional[Dict[str, Any]]:
            toggles = dict(current.get("data_toggles") or {})
            ids = list(toggles.get(list_field) or [])
            changed = False
            if is_enabled:
                if item_id not in ids:
                    ids.append(item_id)
                    changed = True
                if toggles.get(switch_field) is not True:
                    toggles[switch_field] = True
                    changed = True
            elif item_id in ids:
                ids.remove(item_id)
                changed = True
            if not changed:
                return None
            toggles[list_field] = ids
            return {"data_toggles": toggles}

        updated = await self.collection.find_one_and_update({"id": pass_id}, mutate)
        if updated is None:
            raise NotFoundError("Health pass not found")

        logger.info(
            "Health pass item toggled",
            extra={"extra_fields": {
                "health_pass_id": pass_id,
                "item_type": item_type.value,
                "item_id": item_id,
                "is_enabled": is_enabled,
            }}
        )
        return await self._owner_view(updated)

    async def regenerate_qr(self, pass_id: str, user_id: Optional[str] = None) -> HealthPassResponse:
        """
        Rotate the access code and QR image; the old code stops working.

        Raises:
            NotFoundError: If the pass does not exist or has expired
        """
        await self._get_document(pass_id, user_id)
        access_code = self._new_access_code()
        qr_code = self.qr_code_service.generate_qr_code(access_code)
        expired = False

        def mutate(current: Dict[str, Any]) -> Optional[Dict[str, Any]]:
            nonlocal expired
            if self._is_expired(HealthPass.model_validate(current)):
                expired = True
                return None
            return {"access_code": access_code, "qr_code": qr_code}

        updated = await self.collection.find_one_and_update({"id": pass_id}, mutate)
        if updated is None or expired:
            raise NotFoundError(NOT_FOUND_MESSAGE)

        logger.info("Health pass access code rotated", extra={"extra_fields": {"health_pass_id": pass_id}})
        return await self._owner_view(updated)

    async def access_by_code(self, access_code: str) -> HealthPassPreview:
        """
        Clinician view of a pass, reached anonymously through its access code.

        Expiry is checked under the collection lock: an expired pass is marked
        ``expired`` and reported exactly like a missing one; otherwise the pass
        becomes ``shared`` and its access counter is incremented.

        Raises:
            NotFoundError: If no pass has this code or it has expired
        """
        expired = False

        def mutate(current: Dict[str, Any]) -> Optional[Dict[str, Any]]:
            nonlocal expired
            now = _now()
            if current.get("status") == HealthPassStatus.EXPIRED.value:
                expired = True
                return None
            if now > _parse_datetime(current["expires_at"]):
                expired = True
                return {"status": HealthPassStatus.EXPIRED.value}
            return {
                "status": HealthPassStatus.SHARED.value,
                "last_accessed_at": now.isoformat(),
                "access_count": int(current.get("access_count") or 0) + 1,
            }

        document = await self.collection.find_one_and_update({"access_code": access_code}, mutate)
        if document is None or expired:
            logger.info("Health pass access rejected", extra={"extra_fields": {"found": document is not None}})
            raise NotFoundError(NOT_FOUND_MESSAGE)

        health_pass = HealthPass.model_validate(document)
        user, records = await asyncio.gather(
            self.user_service.get_by_id(health_pass.user_id),
            self._fetch_records(health_pass.user_id),
        )

        logger.info(
            "Health pass accessed",
            extra={"extra_fields": {"health_pass_id": health_pass.id, "access_count": health_pass.access_count}}
        )
        return self._to_preview(health_pass, user, records)

    def _to_preview(self, health_pass: HealthPass, user, records: RecordSet) -> HealthPassPreview:
        """Clinician view: only manifest-visible current records with their frozen rationale."""
        toggles = health_pass.data_toggles
        judgments = health_pass.ai_item_recommendations
        visible = visible_records(records, toggles)
        # File links handed to the clinician die with the pass
        link_lifetime = min(
            _parse_datetime(health_pass.expires_at) - _now(),
            timedelta(days=settings.signed_url_expire_days),
        )

        def rationale(recommendations: List[ItemRecommendation], item_id: str) -> str:
            for r in recommendations:
                if r.id == item_id and r.recommendation:
                    return r.recommendation
            return GENERIC_RATIONALE

        conditions = [
            PreviewCondition(
                id=c.id, name=c.name, diagnosed_date=c.diagnosed_date, notes=c.notes,
                ai_recommendation=rationale(judgments.condition_recommendations, c.id),
            )
            for c in visible.conditions
        ]
        medications = [
            PreviewMedication(
                id=m.id, medication_name=m.medication_name, dosage_amount=m.dosage_amount,
                frequency=m.frequency, notes=m.notes,
                ai_recommendation=rationale(judgments.medication_recommendations, m.id),
            )
            for m in visible.medications
        ]
        allergies = [
            PreviewAllergy(
                id=a.id, allergen=a.allergen, type=a.type, severity=a.severity, reaction=a.reaction,
                ai_recommendation=rationale(judgments.allergy_recommendations, a.id),
            )
            for a in visible.allergies
        ]
        habits = [
            PreviewHabit(
                category=h.category, frequency=h.frequency, notes=h.notes,
                ai_recommendation=rationale(judgments.habit_recommendations, _habit_id(h)),
            )
            for h in visible.habits
        ]
        documents = [
            PreviewDocument(
                id=d.id, document_name=d.document_name, document_type=d.document_type,
                document_date=d.document_date, notes=d.notes,
                file_url=self.document_service.signed_url(d, link_lifetime),
                ai_recommendation=rationale(judgments.document_recommendations, d.id),
            )
            for d in visible.documents
        ]

        return HealthPassPreview(
            patient_name=user.full_name,
            date_of_birth=user.date_of_birth,
            gender=user.gender,
            appointment_specialty=health_pass.appointment_specialty,
            appointment_date=health_pass.appointment_date,
            appointment_notes=health_pass.appointment_notes,
            ai_recommendations=health_pass.ai_recommendations,
            ai_profile_summary=health_pass.ai_profile_summary,
            medical_conditions=conditions if toggles.medical_conditions else None,
            medications=medications if toggles.medications else None,
            allergies=allergies if toggles.allergies else None,
            lifestyle_choices=habits if toggles.lifestyle_choices else None,
            documents=documents if toggles.documents else None,
        )
