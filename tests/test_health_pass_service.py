"""
Tests for health pass composition, sharing and expiry.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch
import pytest
from jose import jwt

from healthpass.core.errors import NotFoundError, ValidationError
from healthpass.models import (
    AllergyCreate,
    DataTogglesUpdate,
    DocumentConfirm,
    HealthPassCreate,
    HealthPassUpdate,
    IdCardData,
    LifestyleHabit,
    LifestyleUpsert,
    MedicalConditionCreate,
    MedicationCreate,
)
from healthpass.models.enums import (
    HEALTH_PASS_EXPIRY_HOURS,
    AllergyType,
    AppointmentSpecialty,
    DocumentType,
    HabitFrequency,
    HealthPassItemType,
    HealthPassStatus,
    LifestyleCategory,
    MedicationFrequency,
)
from healthpass.services.ai_service import HIDDEN_RECORDS_NOTE
from healthpass.services.health_pass_service import GENERIC_RATIONALE

RECOMMENDATION_MARKER = "decide whether it is relevant"


def judging(verdicts, summary="Patient summary.", overall="Share what matters."):
    """
    Handler for the fake provider: ``verdicts`` maps record names to
    (is_relevant, rationale). Unmentioned records are left to the defaults.
    """
    def handler(prompt, json_mode):
        if not json_mode:
            return summary
        if RECOMMENDATION_MARKER not in prompt:
            return {}

        judgments = {"conditionRecommendations": [], "medicationRecommendations": [],
                     "allergyRecommendations": [], "habitRecommendations": [], "documentRecommendations": []}
        sections = {
            "Medical Conditions:": "conditionRecommendations",
            "Medications:": "medicationRecommendations",
            "Allergies:": "allergyRecommendations",
            "Lifestyle Habits:": "habitRecommendations",
            "Documents:": "documentRecommendations",
        }
        current = None
        for line in prompt.splitlines():
            if line.strip() in sections:
                current = sections[line.strip()]
                continue
            if current and line.startswith("- ID:"):
                item_id = line.split('"')[1]
                for name, (relevant, rationale) in verdicts.items():
                    if f" {name} " in f"{line} ":
                        judgments[current].append(
                            {"id": item_id, "isRelevant": relevant, "recommendation": rationale})
        judgments["overallRecommendation"] = overall
        return judgments
    return handler


@pytest.fixture
def build(make_services, fake_provider):
    """Services plus a registered user, around a provider scripted with ``judging``."""
    async def _build(verdicts=None, summary="Patient summary.", provider=...):
        if provider is ...:
            provider = fake_provider(handler=judging(verdicts or {}, summary=summary))
        services = make_services(provider)
        user = await services.users.create_from_id_card(IdCardData(
            first_name="Rami", last_name="Haddad", government_id="123456", date_of_birth="15/03/1980"))
        return services, user, provider
    return _build


async def _aspirin(services, user_id):
    return await services.medications.create(user_id, MedicationCreate(
        medication_name="Aspirin", dosage_amount="100mg", frequency=MedicationFrequency.ONCE_DAILY))


async def _expire(services, pass_id):
    past = (datetime.now(timezone.utc) - timedelta(minutes=1)).isoformat()
    await services.db.health_passes.update_one(pass_id, {"expires_at": past})


class TestCreate:

    @pytest.mark.asyncio
    async def test_relevant_medication_is_shared_with_rationale(self, build):
        services, user, _ = await build({"Aspirin": (True, "Antiplatelet therapy matters for cardiology.")})
        aspirin = await _aspirin(services, user.id)

        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.CARDIOLOGY))

        assert health_pass.status == HealthPassStatus.GENERATED
        assert health_pass.qr_code.startswith("data:image/png;base64,")
        assert health_pass.data_toggles.specific_medications == [aspirin.id]
        assert health_pass.ai_recommendations == "Share what matters."

        preview = await services.health_passes.access_by_code(health_pass.access_code)
        assert [m.medication_name for m in preview.medications] == ["Aspirin"]
        assert preview.medications[0].ai_recommendation == "Antiplatelet therapy matters for cardiology."
        assert preview.patient_name == "Rami Haddad"

    @pytest.mark.asyncio
    async def test_irrelevant_medication_hidden_but_acknowledged(self, build):
        services, user, provider = await build({"Aspirin": (False, "Not relevant to a skin exam.")})
        await _aspirin(services, user.id)

        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.CARDIOLOGY))
        assert health_pass.data_toggles.specific_medications == []

        preview = await services.health_passes.access_by_code(health_pass.access_code)
        assert preview.medications == []

        summary_prompt = next(c["prompt"] for c in provider.calls if not c["json_mode"])
        assert f"Current Medications:\n- {HIDDEN_RECORDS_NOTE}" in summary_prompt
        assert "Aspirin" not in summary_prompt

    @pytest.mark.asyncio
    async def test_default_summary_never_claims_no_medications(self, build, fake_provider):
        handler = judging({"Aspirin": (False, "Not relevant.")})

        def failing_summary(prompt, json_mode):
            if not json_mode:
                raise RuntimeError("summary model down")
            return handler(prompt, json_mode)

        services, user, _ = await build(provider=fake_provider(handler=failing_summary))
        await _aspirin(services, user.id)

        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.CARDIOLOGY))

        assert "no medications" not in health_pass.ai_profile_summary.lower()
        assert "Aspirin" not in health_pass.ai_profile_summary
        assert "Additional records are on file" in health_pass.ai_profile_summary

    @pytest.mark.asyncio
    async def test_owner_projection_lists_every_item(self, build):
        services, user, _ = await build({
            "Aspirin": (True, "Relevant."),
            "Eczema": (False, "Unrelated to the heart."),
        })
        await _aspirin(services, user.id)
        await services.medical_conditions.create(user.id, MedicalConditionCreate(name="Eczema"))

        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.CARDIOLOGY))

        assert len(health_pass.medical_conditions) == 1
        assert health_pass.medical_conditions[0].is_relevant is False
        assert health_pass.medical_conditions[0].ai_recommendation == "Unrelated to the heart."
        assert health_pass.medications[0].is_relevant is True

    @pytest.mark.asyncio
    async def test_defaults_without_provider(self, build):
        services, user, _ = await build(provider=None)
        await _aspirin(services, user.id)
        await services.allergies.create(user.id, AllergyCreate(allergen="Penicillin", type=AllergyType.DRUG))
        await services.lifestyle.upsert(user.id, LifestyleUpsert(habits=[
            LifestyleHabit(category=LifestyleCategory.SMOKING, frequency=HabitFrequency.DAILY)]))

        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.GENERAL_PRACTICE))

        toggles = health_pass.data_toggles
        assert len(toggles.specific_medications) == 1
        assert len(toggles.specific_allergies) == 1
        assert toggles.specific_lifestyles == []
        assert toggles.lifestyle_choices is False
        assert toggles.medical_conditions is True

    @pytest.mark.asyncio
    async def test_expiry_is_24_hours(self, build):
        services, user, _ = await build(provider=None)
        before = datetime.now(timezone.utc)
        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.OTHER))
        delta = health_pass.expires_at - before
        assert timedelta(hours=HEALTH_PASS_EXPIRY_HOURS) <= delta < timedelta(hours=HEALTH_PASS_EXPIRY_HOURS, minutes=1)

    @pytest.mark.asyncio
    async def test_failed_category_fetch_aborts_creation(self, build):
        services, user, _ = await build(provider=None)
        with patch.object(services.allergies, "list_by_owner", AsyncMock(side_effect=RuntimeError("disk"))):
            with pytest.raises(RuntimeError):
                await services.health_passes.create(
                    user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.OTHER))
        assert await services.db.health_passes.find() == []

    @pytest.mark.asyncio
    async def test_unknown_user(self, build):
        services, _, _ = await build(provider=None)
        with pytest.raises(NotFoundError):
            await services.health_passes.create(
                "ghost", HealthPassCreate(appointment_specialty=AppointmentSpecialty.OTHER))

    @pytest.mark.asyncio
    async def test_only_confirmed_documents_are_considered(self, build):
        services, user, _ = await build(provider=None)
        draft = await services.documents.upload_and_process(user.id, "scan.png", b"png-bytes", "image/png")
        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.OTHER))
        assert health_pass.documents == []

        await services.documents.confirm(draft.id, DocumentConfirm(
            document_name="Chest X-ray", document_type=DocumentType.X_RAY), user.id)
        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.OTHER))
        assert [d.data.id for d in health_pass.documents] == [draft.id]
        # Documents default to not relevant
        assert health_pass.data_toggles.specific_documents == []


class TestAccessByCode:

    @pytest.mark.asyncio
    async def test_unknown_code(self, build):
        services, _, _ = await build(provider=None)
        with pytest.raises(NotFoundError):
            await services.health_passes.access_by_code("nope")

    @pytest.mark.asyncio
    async def test_access_marks_shared_and_counts(self, build):
        services, user, _ = await build(provider=None)
        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.OTHER))

        counts = []
        for _ in range(3):
            await services.health_passes.access_by_code(health_pass.access_code)
            counts.append((await services.health_passes.get(health_pass.id, user.id)).access_count)
        assert counts == [1, 2, 3]

        stored = await services.health_passes.get(health_pass.id, user.id)
        assert stored.status == HealthPassStatus.SHARED
        assert stored.last_accessed_at is not None

    @pytest.mark.asyncio
    async def test_concurrent_scans_all_counted(self, build):
        services, user, _ = await build(provider=None)
        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.OTHER))

        await asyncio.gather(*[services.health_passes.access_by_code(health_pass.access_code) for _ in range(5)])
        assert (await services.health_passes.get(health_pass.id)).access_count == 5

    @pytest.mark.asyncio
    async def test_expired_pass_is_not_found_and_stays_expired(self, build):
        services, user, _ = await build(provider=None)
        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.OTHER))
        await services.health_passes.access_by_code(health_pass.access_code)
        await _expire(services, health_pass.id)

        with pytest.raises(NotFoundError) as expired:
            await services.health_passes.access_by_code(health_pass.access_code)
        stored = await services.db.health_passes.find_by_id(health_pass.id)
        assert stored["status"] == HealthPassStatus.EXPIRED.value
        assert stored["access_count"] == 1

        # Pushing expiry back does not resurrect it
        future = (datetime.now(timezone.utc) + timedelta(hours=1)).isoformat()
        await services.db.health_passes.update_one(health_pass.id, {"expires_at": future})
        with pytest.raises(NotFoundError) as again:
            await services.health_passes.access_by_code(health_pass.access_code)
        assert again.value.message == expired.value.message

        with pytest.raises(NotFoundError) as unknown:
            await services.health_passes.access_by_code("never-issued")
        assert unknown.value.message == expired.value.message

    @pytest.mark.asyncio
    async def test_deleted_record_never_reappears(self, build):
        services, user, _ = await build({"Aspirin": (True, "Relevant.")})
        aspirin = await _aspirin(services, user.id)
        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.CARDIOLOGY))

        await services.medications.soft_delete(aspirin.id, user.id)
        preview = await services.health_passes.access_by_code(health_pass.access_code)
        assert preview.medications == []

        # A new record with the same key is a different ID and stays hidden
        await _aspirin(services, user.id)
        preview = await services.health_passes.access_by_code(health_pass.access_code)
        assert preview.medications == []

    @pytest.mark.asyncio
    async def test_item_added_later_gets_generic_rationale(self, build):
        services, user, _ = await build(provider=None)
        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.OTHER))

        later = await services.medical_conditions.create(user.id, MedicalConditionCreate(name="Gout"))
        await services.health_passes.toggle_item(
            health_pass.id, HealthPassItemType.MEDICAL_CONDITION, later.id, True, user.id)

        preview = await services.health_passes.access_by_code(health_pass.access_code)
        assert [(c.name, c.ai_recommendation) for c in preview.medical_conditions] == [("Gout", GENERIC_RATIONALE)]

    @pytest.mark.asyncio
    async def test_category_switch_hides_whole_category(self, build):
        services, user, _ = await build({"Aspirin": (True, "Relevant.")})
        await _aspirin(services, user.id)
        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.CARDIOLOGY))

        await services.health_passes.update(
            health_pass.id, HealthPassUpdate(data_toggles=DataTogglesUpdate(medications=False)), user.id)
        preview = await services.health_passes.access_by_code(health_pass.access_code)
        assert preview.medications is None
        assert preview.allergies == []

    @pytest.mark.asyncio
    async def test_enabling_an_item_reopens_its_category(self, build):
        services, user, _ = await build({"Aspirin": (True, "Relevant.")})
        aspirin = await _aspirin(services, user.id)
        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.CARDIOLOGY))
        await services.health_passes.update(
            health_pass.id, HealthPassUpdate(data_toggles=DataTogglesUpdate(medications=False)), user.id)

        # Already listed, but the switch was off: one toggle is enough
        toggled = await services.health_passes.toggle_item(
            health_pass.id, HealthPassItemType.MEDICATION, aspirin.id, True, user.id)
        assert toggled.data_toggles.medications is True

        preview = await services.health_passes.access_by_code(health_pass.access_code)
        assert [m.id for m in preview.medications] == [aspirin.id]

        # Disabling the item leaves the switch on
        off = await services.health_passes.toggle_item(
            health_pass.id, HealthPassItemType.MEDICATION, aspirin.id, False, user.id)
        assert off.data_toggles.medications is True
        assert off.data_toggles.specific_medications == []

    @pytest.mark.asyncio
    async def test_document_links_expire_with_the_pass(self, build):
        services, user, _ = await build(provider=None)
        draft = await services.documents.upload_and_process(user.id, "scan.png", b"png-bytes", "image/png")
        await services.documents.confirm(draft.id, DocumentConfirm(
            document_name="Chest X-ray", document_type=DocumentType.X_RAY), user.id)
        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.PULMONOLOGY))
        await services.health_passes.toggle_item(
            health_pass.id, HealthPassItemType.DOCUMENT, draft.id, True, user.id)

        preview = await services.health_passes.access_by_code(health_pass.access_code)
        file_url = preview.documents[0].file_url
        token = file_url.rsplit("/", 1)[-1]
        assert jwt.get_unverified_claims(token)["exp"] <= health_pass.expires_at.timestamp() + 1
        assert await services.object_storage.load_file(services.object_storage.verify_signed_token(token))

        # The owner's own links keep the configured lifetime
        owned = await services.documents.get_by_id(draft.id, user.id)
        owner_token = owned.file_url.rsplit("/", 1)[-1]
        assert jwt.get_unverified_claims(owner_token)["exp"] > health_pass.expires_at.timestamp() + 3600


class TestToggleAndUpdate:

    @pytest.mark.asyncio
    async def test_toggle_round_trip(self, build):
        services, user, _ = await build({"Aspirin": (True, "Relevant.")})
        aspirin = await _aspirin(services, user.id)
        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.CARDIOLOGY))
        original = health_pass.data_toggles

        off = await services.health_passes.toggle_item(
            health_pass.id, HealthPassItemType.MEDICATION, aspirin.id, False, user.id)
        assert off.data_toggles.specific_medications == []
        # Disabling twice is a no-op
        off_again = await services.health_passes.toggle_item(
            health_pass.id, HealthPassItemType.MEDICATION, aspirin.id, False, user.id)
        assert off_again.data_toggles.specific_medications == []

        on = await services.health_passes.toggle_item(
            health_pass.id, HealthPassItemType.MEDICATION, aspirin.id, True, user.id)
        on_again = await services.health_passes.toggle_item(
            health_pass.id, HealthPassItemType.MEDICATION, aspirin.id, True, user.id)
        assert on.data_toggles == original
        assert on_again.data_toggles == original
        # The frozen rationale is untouched
        assert on_again.medications[0].ai_recommendation == "Relevant."

    @pytest.mark.asyncio
    async def test_toggle_lifestyle_category(self, build):
        services, user, _ = await build(provider=None)
        await services.lifestyle.upsert(user.id, LifestyleUpsert(habits=[
            LifestyleHabit(category=LifestyleCategory.SMOKING, frequency=HabitFrequency.DAILY)]))
        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.PULMONOLOGY))

        # Habits default to not relevant, so the lifestyle switch starts off
        assert health_pass.data_toggles.lifestyle_choices is False

        toggled = await services.health_passes.toggle_item(
            health_pass.id, HealthPassItemType.LIFESTYLE, "smoking", True, user.id)
        assert toggled.data_toggles.lifestyle_choices is True
        assert toggled.data_toggles.specific_lifestyles == ["smoking"]

        preview = await services.health_passes.access_by_code(health_pass.access_code)
        assert [h.category for h in preview.lifestyle_choices] == [LifestyleCategory.SMOKING]

        with pytest.raises(ValidationError):
            await services.health_passes.toggle_item(
                health_pass.id, HealthPassItemType.LIFESTYLE, "skydiving", True, user.id)

    @pytest.mark.asyncio
    async def test_toggle_missing_pass(self, build):
        services, user, _ = await build(provider=None)
        with pytest.raises(NotFoundError):
            await services.health_passes.toggle_item("missing", HealthPassItemType.ALLERGY, "a1", True, user.id)

    @pytest.mark.asyncio
    async def test_other_owner_cannot_touch_pass(self, build):
        services, user, _ = await build(provider=None)
        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.OTHER))
        with pytest.raises(NotFoundError):
            await services.health_passes.get(health_pass.id, "someone-else")
        with pytest.raises(NotFoundError):
            await services.health_passes.regenerate_qr(health_pass.id, "someone-else")

    @pytest.mark.asyncio
    async def test_identity_toggles_cannot_be_disabled(self, build):
        services, user, _ = await build(provider=None)
        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.OTHER))

        with pytest.raises(ValueError):
            DataTogglesUpdate(name=False)

        # Bypassing model validation still hits the service guard
        sneaky = HealthPassUpdate.model_construct(
            data_toggles=DataTogglesUpdate.model_construct(gender=False, _fields_set={"gender"}),
            _fields_set={"data_toggles"},
        )
        with pytest.raises(ValidationError):
            await services.health_passes.update(health_pass.id, sneaky, user.id)

        stored = await services.health_passes.get(health_pass.id, user.id)
        assert stored.data_toggles.gender is True

    @pytest.mark.asyncio
    async def test_update_appointment_details(self, build):
        services, user, _ = await build(provider=None)
        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.OTHER))

        updated = await services.health_passes.update(
            health_pass.id, HealthPassUpdate(appointment_notes="Bring fasting labs"), user.id)
        assert updated.appointment_notes == "Bring fasting labs"
        assert updated.data_toggles == health_pass.data_toggles

    @pytest.mark.asyncio
    async def test_regenerate_qr_rotates_code(self, build):
        services, user, _ = await build(provider=None)
        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.OTHER))

        rotated = await services.health_passes.regenerate_qr(health_pass.id, user.id)
        assert rotated.access_code != health_pass.access_code
        assert rotated.qr_code != health_pass.qr_code
        assert rotated.expires_at == health_pass.expires_at

        with pytest.raises(NotFoundError):
            await services.health_passes.access_by_code(health_pass.access_code)
        await services.health_passes.access_by_code(rotated.access_code)

    @pytest.mark.asyncio
    async def test_regenerate_qr_does_not_revive_expired_pass(self, build):
        services, user, _ = await build(provider=None)
        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.OTHER))
        await _expire(services, health_pass.id)

        with pytest.raises(NotFoundError):
            await services.health_passes.regenerate_qr(health_pass.id, user.id)

        stored = await services.db.health_passes.find_by_id(health_pass.id)
        assert stored["access_code"] == health_pass.access_code

    @pytest.mark.asyncio
    async def test_regenerate_qr_checks_expiry_under_the_lock(self, build):
        services, user, _ = await build(provider=None)
        health_pass = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.OTHER))
        collection = services.db.health_passes
        original_find_by_id = collection.find_by_id
        reads = []

        async def expiring_find_by_id(record_id):
            # The pass lapses between the ownership read and the locked write
            reads.append(record_id)
            document = await original_find_by_id(record_id)
            if len(reads) == 2:
                document["expires_at"] = (datetime.now(timezone.utc) - timedelta(seconds=1)).isoformat()
            return document

        with patch.object(collection, "find_by_id", side_effect=expiring_find_by_id):
            with pytest.raises(NotFoundError):
                await services.health_passes.regenerate_qr(health_pass.id, user.id)

        stored = await collection.find_by_id(health_pass.id)
        assert stored["access_code"] == health_pass.access_code

    @pytest.mark.asyncio
    async def test_list_by_owner(self, build):
        services, user, _ = await build(provider=None)
        first = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.OTHER))
        await asyncio.sleep(0.01)
        second = await services.health_passes.create(
            user.id, HealthPassCreate(appointment_specialty=AppointmentSpecialty.DENTISTRY))
        await _expire(services, first.id)

        summaries = await services.health_passes.list_by_owner(user.id)
        assert [s.id for s in summaries] == [second.id, first.id]
        assert summaries[1].status == HealthPassStatus.EXPIRED
        assert await services.health_passes.list_by_owner("someone-else") == []
