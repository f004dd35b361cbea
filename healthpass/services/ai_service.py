"""
AI Service - relevance recommendations, profile summaries, allergen
classification, record autocomplete, medicine photo scanning and medical
document analysis on top of the LLM provider.

Every operation except document analysis and medicine scanning degrades to a
safe default when the provider is missing or misbehaves; callers never see an
AI failure from them.
"""

import base64
import logging
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence, Type, TypeVar

from ..config import settings
from ..core.errors import AIProcessingError, NonHealthcareDocumentError, ValidationError
from ..llm.base import LLMMessage, LLMProvider, parse_json_object
from ..models.autocomplete import (
    AUTOCOMPLETE_DEFAULT_LIMIT,
    AUTOCOMPLETE_MIN_QUERY_LENGTH,
    AllergySuggestion,
    AutocompleteResponse,
    MedicalConditionSuggestion,
    MedicationSuggestion,
    MedicineScanResult,
)
from ..models.enums import AllergyType, AppointmentSpecialty, DocumentType, Gender, MedicationFrequency
from ..models.health_pass import HealthPassRecommendations, ItemRecommendation
from ..models.records import (
    Allergy,
    DocumentAiSuggestion,
    LifestyleHabit,
    MedicalCondition,
    MedicalDocument,
    Medication,
)
from ..utils.dates import calculate_age

logger = logging.getLogger(__name__)

S = TypeVar("S")

# Conservative per-category judgment used whenever the model gives none
DEFAULT_JUDGMENTS = {
    "condition": (True, "Recommended to share with your doctor."),
    "medication": (True, "Recommended to share with your doctor."),
    "allergy": (True, "Important for medication safety."),
    "habit": (False, "Share if relevant to your appointment."),
    "document": (False, "Share if relevant to your appointment."),
}

DEFAULT_OVERALL_RECOMMENDATION = (
    "We recommend sharing your medical conditions, medications, and allergies "
    "with your doctor for a comprehensive consultation."
)

HIDDEN_RECORDS_NOTE = "Additional records on file, not shared for this appointment"

DOCUMENT_FALLBACK_NOTES = "Unable to automatically process document. Please review manually."

NON_HEALTHCARE_MESSAGE = (
    "This document does not appear to be healthcare-related. Please upload a medical "
    "document such as lab reports, prescriptions, imaging scans, or medical records."
)

ANALYZABLE_MIME_TYPES = {
    "application/pdf",
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "image/webp",
}

DOCUMENT_PROMPT = """You are a medical document analyzer and clinical assistant. Analyze the attached document and determine if it is healthcare-related.

FIRST - Determine if this is a healthcare document:
- Healthcare documents include lab reports, medical records, prescriptions, imaging scans (MRI, CT, X-ray), vaccination records, medical reports, discharge summaries, clinical notes and diagnostic reports.
- NON-healthcare documents include invoices, receipts, legal documents, personal photos, business documents, ID cards (unless a medical ID) and resumes.
- If the document is NOT healthcare-related, set isHealthcareRelated to false and give a rejectionReason.

If healthcare-related:
1. Suggest a descriptive document name (e.g. "Blood Test Results - Complete Blood Count").
2. Find the document date if visible.
3. Write concise clinical notes: the conclusion or diagnosis for medical reports, only abnormal or clinically significant values for lab reports, the radiologist's impression for imaging. If all values are normal, say "All values within normal limits".
4. Determine the document type.
5. Extract all visible text for search.

Respond ONLY with JSON:
{
  "isHealthcareRelated": true,
  "rejectionReason": "only when isHealthcareRelated is false",
  "suggestedName": "string",
  "documentDate": "YYYY-MM-DD or null",
  "notes": "clinical summary",
  "documentType": "lab_report | mri_scan | ct_scan | x_ray | prescription | medical_report | vaccination_record | other",
  "extractedText": "string",
  "confidence": 0.0
}"""

SCANNABLE_IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}

MEDICINE_NOT_IDENTIFIED_MESSAGE = (
    "Could not identify medication from the image. Please ensure the image clearly shows the medicine label."
)
MEDICINE_SCAN_FAILED_MESSAGE = "Failed to process medicine image. Please try again with a clearer photo."

MEDICINE_SCAN_PROMPT = f"""You are a pharmaceutical assistant reading a photo of a medicine package, bottle or label.

Extract what is printed. Do not guess values that are not visible.
- medicationName: the main product name
- dosageAmount: strength per unit, e.g. "500mg"
- frequency: only if the label states it, one of {" | ".join(f.value for f in MedicationFrequency)}
- expiryDate: as YYYY-MM when printed
- confidence: 0.0 when no medicine is visible, up to 1.0 when the label is fully legible

Respond ONLY with JSON:
{{
  "medicationName": "string",
  "genericName": "string or null",
  "brandName": "string or null",
  "dosageAmount": "string or null",
  "frequency": "string or null",
  "form": "tablet | capsule | syrup | injection | cream | other",
  "strength": "string or null",
  "manufacturer": "string or null",
  "activeIngredients": ["string"],
  "instructions": "string or null",
  "warnings": ["string"],
  "expiryDate": "YYYY-MM or null",
  "confidence": 0.0,
  "notes": "string or null"
}}"""


def _specialty_label(specialty: AppointmentSpecialty) -> str:
    return specialty.value.replace("_", " ")


def _enum_value(value: Any) -> str:
    return getattr(value, "value", value) or ""


def _parse_relevance(value: Any, default: bool) -> bool:
    """A real boolean or "true"/"false" string; anything else keeps the category default."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return default


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if isinstance(v, (str, int, float)) and str(v).strip()]


def _optional_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def default_recommendations(
    conditions: Sequence[MedicalCondition] = (),
    medications: Sequence[Medication] = (),
    allergies: Sequence[Allergy] = (),
    habits: Sequence[LifestyleHabit] = (),
    documents: Sequence[MedicalDocument] = (),
) -> HealthPassRecommendations:
    """Judgment set used when the model is unavailable."""
    def judge(kind: str, ids: List[str]) -> List[ItemRecommendation]:
        relevant, text = DEFAULT_JUDGMENTS[kind]
        return [ItemRecommendation(id=item_id, is_relevant=relevant, recommendation=text) for item_id in ids]

    return HealthPassRecommendations(
        condition_recommendations=judge("condition", [c.id for c in conditions]),
        medication_recommendations=judge("medication", [m.id for m in medications]),
        allergy_recommendations=judge("allergy", [a.id for a in allergies]),
        habit_recommendations=judge("habit", [_enum_value(h.category) for h in habits]),
        document_recommendations=judge("document", [d.id for d in documents]),
        overall_recommendation=DEFAULT_OVERALL_RECOMMENDATION,
    )


class AIService:
    """Generative-model features of the application."""

    def __init__(self, provider: Optional[LLMProvider] = None):
        self.provider = provider

    def is_configured(self) -> bool:
        return self.provider is not None

    async def _complete(
        self,
        prompt: str,
        json_mode: bool = False,
        attachments: Optional[List[Dict[str, str]]] = None,
    ) -> str:
        if self.provider is None:
            raise AIProcessingError("LLM provider not configured")

        if attachments:
            message = LLMMessage.multimodal("user", prompt, file_base64_list=attachments)
        else:
            message = LLMMessage.text("user", prompt)

        response = await self.provider.chat_completion([message], temperature=0, json_mode=json_mode)
        content = (response.content or "").strip()
        if not content:
            raise AIProcessingError("No response from AI")
        return content

    # Health pass recommendations

    @staticmethod
    def _recommendation_prompt(
        specialty: AppointmentSpecialty,
        conditions: Sequence[MedicalCondition],
        medications: Sequence[Medication],
        allergies: Sequence[Allergy],
        habits: Sequence[LifestyleHabit],
        documents: Sequence[MedicalDocument],
    ) -> str:
        label = _specialty_label(specialty)

        def lines(items: List[str]) -> str:
            return "\n".join(items) or "None"

        return f"""You are a medical AI assistant helping a patient prepare for a {label} appointment.

The patient has the following medical information. For EACH item, decide whether it is relevant to share for this appointment type and give a brief recommendation explaining why or why not.

Medical Conditions:
{lines([f'- ID: "{c.id}" | Name: {c.name} | Diagnosed: {c.diagnosed_date or "unknown"} | Notes: {c.notes or "none"}' for c in conditions])}

Medications:
{lines([f'- ID: "{m.id}" | Name: {m.medication_name} | Dosage: {m.dosage_amount} | Frequency: {_enum_value(m.frequency)} | Notes: {m.notes or "none"}' for m in medications])}

Allergies:
{lines([f'- ID: "{a.id}" | Allergen: {a.allergen} | Severity: {_enum_value(a.severity) or "unknown"} | Notes: {a.notes or "none"}' for a in allergies])}

Lifestyle Habits:
{lines([f'- ID: "{_enum_value(h.category)}" | Category: {_enum_value(h.category)} | Frequency: {_enum_value(h.frequency)} | Notes: {h.notes or "none"}' for h in habits])}

Documents:
{lines([f'- ID: "{d.id}" | Name: {d.document_name} | Type: {_enum_value(d.document_type)} | Date: {d.document_date or "unknown"} | Notes: {d.notes or "none"}' for d in documents])}

Respond ONLY with JSON in exactly this shape:
{{
  "conditionRecommendations": [{{"id": "exact-id", "isRelevant": true, "recommendation": "one line"}}],
  "medicationRecommendations": [{{"id": "exact-id", "isRelevant": true, "recommendation": "one line"}}],
  "allergyRecommendations": [{{"id": "exact-id", "isRelevant": true, "recommendation": "one line"}}],
  "habitRecommendations": [{{"id": "category", "isRelevant": false, "recommendation": "one line"}}],
  "documentRecommendations": [{{"id": "exact-id", "isRelevant": false, "recommendation": "one line"}}],
  "overallRecommendation": "brief summary of what to share and why"
}}

Include EVERY item above, use the EXACT IDs (the category for habits), and keep each recommendation to one line of at most 15 words."""

    @staticmethod
    def _merge_judgments(kind: str, ids: List[str], returned: Any) -> List[ItemRecommendation]:
        by_id: Dict[str, Dict[str, Any]] = {}
        if isinstance(returned, list):
            for entry in returned:
                if isinstance(entry, dict) and entry.get("id") is not None:
                    by_id.setdefault(str(entry["id"]), entry)

        default_relevant, default_text = DEFAULT_JUDGMENTS[kind]
        judgments = []
        for item_id in ids:
            found = by_id.get(item_id)
            if found is None:
                judgments.append(ItemRecommendation(id=item_id, is_relevant=default_relevant, recommendation=default_text))
            else:
                judgments.append(ItemRecommendation(
                    id=item_id,
                    is_relevant=_parse_relevance(found.get("isRelevant"), default_relevant),
                    recommendation=str(found.get("recommendation") or ""),
                ))
        return judgments

    async def generate_health_pass_recommendations(
        self,
        specialty: AppointmentSpecialty,
        conditions: Sequence[MedicalCondition] = (),
        medications: Sequence[Medication] = (),
        allergies: Sequence[Allergy] = (),
        habits: Sequence[LifestyleHabit] = (),
        documents: Sequence[MedicalDocument] = (),
    ) -> HealthPassRecommendations:
        """
        Judge every record's relevance to an appointment specialty.

        A judgment is returned for every item passed in. Items the model omits
        get the category default; a missing provider, a provider error or
        malformed output yields the full default set.
        """
        prompt = self._recommendation_prompt(specialty, conditions, medications, allergies, habits, documents)
        try:
            parsed = parse_json_object(await self._complete(prompt, json_mode=True))
        except Exception as e:
            logger.warning(
                f"Health pass recommendations unavailable, using defaults: {e}",
                extra={"extra_fields": {"specialty": specialty.value}}
            )
            return default_recommendations(conditions, medications, allergies, habits, documents)

        return HealthPassRecommendations(
            condition_recommendations=self._merge_judgments(
                "condition", [c.id for c in conditions], parsed.get("conditionRecommendations")),
            medication_recommendations=self._merge_judgments(
                "medication", [m.id for m in medications], parsed.get("medicationRecommendations")),
            allergy_recommendations=self._merge_judgments(
                "allergy", [a.id for a in allergies], parsed.get("allergyRecommendations")),
            habit_recommendations=self._merge_judgments(
                "habit", [_enum_value(h.category) for h in habits], parsed.get("habitRecommendations")),
            document_recommendations=self._merge_judgments(
                "document", [d.id for d in documents], parsed.get("documentRecommendations")),
            overall_recommendation=str(parsed.get("overallRecommendation") or DEFAULT_OVERALL_RECOMMENDATION),
        )

    # Profile summary

    @staticmethod
    def _category_block(shared: Sequence[str], has_hidden: bool) -> str:
        if not shared:
            return f"- {HIDDEN_RECORDS_NOTE}" if has_hidden else "- None on file"
        block = "\n".join(shared)
        if has_hidden:
            block += f"\n- {HIDDEN_RECORDS_NOTE}"
        return block

    @staticmethod
    def default_profile_summary(
        age: int,
        gender: Optional[Gender],
        specialty: AppointmentSpecialty,
        shared: Dict[str, Sequence[Any]],
        hidden: Dict[str, bool],
    ) -> str:
        """Plain summary built from shared items only."""
        parts = [f"{age}-year-old {_enum_value(gender) or 'patient'} attending a {_specialty_label(specialty)} appointment"]

        conditions = shared.get("conditions") or []
        medications = shared.get("medications") or []
        allergies = shared.get("allergies") or []
        if conditions:
            parts.append(f"with {', '.join(c.name for c in conditions)}")
        if medications:
            parts.append(f"currently taking {', '.join(m.medication_name for m in medications)}")
        if allergies:
            parts.append(f"with known allergies to {', '.join(a.allergen for a in allergies)}")

        summary = " ".join(parts) + "."
        if any(hidden.values()):
            summary += " Additional records are on file but were not shared for this appointment."
        return summary

    async def generate_profile_summary(
        self,
        specialty: AppointmentSpecialty,
        full_name: str,
        date_of_birth: date,
        gender: Optional[Gender],
        shared: Dict[str, Sequence[Any]],
        hidden: Dict[str, bool],
    ) -> str:
        """
        Short clinician-facing summary of the patient.

        Args:
            shared: Visible records per category ("conditions", "medications",
                "allergies", "habits", "documents")
            hidden: Per category, whether records exist that are not shared.
                Hidden records are only ever mentioned as existing, never
                described or counted.
        """
        age = calculate_age(date_of_birth)
        label = _specialty_label(specialty)

        conditions = [f"- {c.name}{f' ({c.notes})' if c.notes else ''}" for c in shared.get("conditions", [])]
        medications = [
            f"- {m.medication_name} {m.dosage_amount} {_enum_value(m.frequency)}" for m in shared.get("medications", [])
        ]
        allergies = [
            f"- {a.allergen} ({_enum_value(a.severity) or 'severity unknown'}){f': {a.notes}' if a.notes else ''}"
            for a in shared.get("allergies", [])
        ]
        habits = [
            f"- {_enum_value(h.category)}: {_enum_value(h.frequency)}{f' ({h.notes})' if h.notes else ''}"
            for h in shared.get("habits", [])
        ]
        documents = [
            f"- {d.document_name} ({_enum_value(d.document_type)}){f': {d.notes}' if d.notes else ''}"
            for d in shared.get("documents", [])
        ]

        prompt = f"""You are a medical AI assistant. Write a brief, professional patient profile summary for a {label} appointment.

Patient Information:
- Name: {full_name}
- Age: {age} years old
- Gender: {_enum_value(gender) or 'Not specified'}
- Date of Birth: {date_of_birth.isoformat()}

Medical Conditions:
{self._category_block(conditions, hidden.get("conditions", False))}

Current Medications:
{self._category_block(medications, hidden.get("medications", False))}

Known Allergies:
{self._category_block(allergies, hidden.get("allergies", False))}

Lifestyle Habits:
{self._category_block(habits, hidden.get("habits", False))}

Medical Documents:
{self._category_block(documents, hidden.get("documents", False))}

Write 2-3 sentences a doctor can read quickly before the appointment, focusing on what matters for {label}.

RULES:
- "None on file" means the patient has no records in that category.
- "{HIDDEN_RECORDS_NOTE}" means records exist but were not shared. Never say the patient has no conditions, medications or allergies in that case, and never guess what those records are or how many there are.
- Be factual and do not assume anything beyond the data above.

Respond with ONLY the summary text, no JSON, no formatting, no quotes."""

        try:
            return await self._complete(prompt)
        except Exception as e:
            logger.warning(f"Profile summary unavailable, using default: {e}")
            return self.default_profile_summary(age, gender, specialty, shared, hidden)

    # Allergen classification

    async def classify_allergen(self, allergen: str) -> AllergyType:
        """Best-effort allergen type; ``other`` whenever the model cannot say."""
        allowed = ", ".join(t.value for t in AllergyType)
        prompt = (
            f"Classify the allergen \"{allergen}\" into exactly one of these types: {allowed}.\n"
            'Respond ONLY with JSON: {"type": "<one of the types>"}'
        )
        try:
            parsed = parse_json_object(await self._complete(prompt, json_mode=True))
            return AllergyType(str(parsed.get("type", "")).strip().lower())
        except Exception as e:
            logger.info(f"Allergen classification fell back to 'other' for '{allergen}': {e}")
            return AllergyType.OTHER

    # Autocomplete

    async def _suggest(
        self,
        kind: str,
        query: str,
        limit: int,
        prompt: str,
        suggestion_type: Type[S],
        build: Callable[[Dict[str, Any]], S],
    ) -> AutocompleteResponse[S]:
        """Run one autocomplete prompt; any failure yields no suggestions."""
        if len((query or "").strip()) < AUTOCOMPLETE_MIN_QUERY_LENGTH or not self.is_configured():
            return AutocompleteResponse[suggestion_type](query=query or "")

        try:
            parsed = parse_json_object(await self._complete(prompt, json_mode=True))
        except Exception as e:
            logger.info(f"{kind} autocomplete unavailable for '{query}': {e}")
            return AutocompleteResponse[suggestion_type](query=query)

        raw = parsed.get("suggestions")
        suggestions = [
            build(entry) for entry in (raw if isinstance(raw, list) else [])
            if isinstance(entry, dict) and _optional_text(entry.get("name"))
        ]
        return AutocompleteResponse[suggestion_type](
            suggestions=suggestions[:limit],
            query=query,
            has_more=parsed.get("hasMore") is True or len(suggestions) > limit,
        )

    @staticmethod
    def _autocomplete_prompt(role: str, subject: str, query: str, limit: int, context: Optional[str],
                             guidance: str, schema: str) -> str:
        context_line = f"\nAdditional context: {context}" if context else ""
        return f"""You are a {role}. The user is typing {subject} and needs autocomplete suggestions.

User input: "{query}"{context_line}

Provide up to {limit} suggestions that start with or contain the user's input, most common first.
{guidance}

Respond ONLY with JSON:
{{
  "suggestions": [
    {schema}
  ],
  "hasMore": true or false
}}"""

    async def suggest_medical_conditions(
        self,
        query: str,
        limit: int = AUTOCOMPLETE_DEFAULT_LIMIT,
        context: Optional[str] = None
    ) -> AutocompleteResponse[MedicalConditionSuggestion]:
        prompt = self._autocomplete_prompt(
            "medical knowledge assistant", "a medical condition name", query, limit, context,
            "Include the medical term and the common name, and ICD-10 codes when they exist.",
            '{"name": "full condition name", "description": "one sentence", '
            '"category": "e.g. Cardiovascular, Endocrine", "icdCode": "e.g. E11", "synonyms": ["string"]}',
        )
        return await self._suggest(
            "Medical condition", query, limit, prompt, MedicalConditionSuggestion,
            lambda s: MedicalConditionSuggestion(
                name=_optional_text(s.get("name")),
                description=_optional_text(s.get("description")),
                category=_optional_text(s.get("category")),
                icd_code=_optional_text(s.get("icdCode")),
                synonyms=_string_list(s.get("synonyms")),
            ),
        )

    async def suggest_medications(
        self,
        query: str,
        limit: int = AUTOCOMPLETE_DEFAULT_LIMIT,
        context: Optional[str] = None
    ) -> AutocompleteResponse[MedicationSuggestion]:
        prompt = self._autocomplete_prompt(
            "pharmaceutical knowledge assistant", "a medication name", query, limit, context,
            "Search generic and brand names, and list the most common dosages.",
            '{"name": "generic name preferred", "genericName": "string", "brandNames": ["string"], '
            '"drugClass": "e.g. ACE Inhibitor", "commonDosages": ["10mg"], "forms": ["tablet"]}',
        )
        return await self._suggest(
            "Medication", query, limit, prompt, MedicationSuggestion,
            lambda s: MedicationSuggestion(
                name=_optional_text(s.get("name")),
                generic_name=_optional_text(s.get("genericName")),
                brand_names=_string_list(s.get("brandNames")),
                drug_class=_optional_text(s.get("drugClass")),
                common_dosages=_string_list(s.get("commonDosages")),
                forms=_string_list(s.get("forms")),
            ),
        )

    async def suggest_allergies(
        self,
        query: str,
        limit: int = AUTOCOMPLETE_DEFAULT_LIMIT,
        context: Optional[str] = None
    ) -> AutocompleteResponse[AllergySuggestion]:
        allowed = " | ".join(t.value for t in AllergyType)
        prompt = self._autocomplete_prompt(
            "medical allergy knowledge assistant", "an allergen name", query, limit, context,
            "Cover drug, food and environmental allergens and note important cross-reactivities.",
            f'{{"name": "allergen", "type": "{allowed}", "commonReactions": ["string"], '
            '"crossReactivities": ["string"]}',
        )

        def build(s: Dict[str, Any]) -> AllergySuggestion:
            try:
                allergy_type = AllergyType(str(s.get("type") or "").strip().lower())
            except ValueError:
                allergy_type = AllergyType.OTHER
            return AllergySuggestion(
                name=_optional_text(s.get("name")),
                type=allergy_type,
                common_reactions=_string_list(s.get("commonReactions")),
                cross_reactivities=_string_list(s.get("crossReactivities")),
            )

        return await self._suggest("Allergy", query, limit, prompt, AllergySuggestion, build)

    # Medicine photo scanning

    async def scan_medicine_photo(self, content: bytes, mime_type: str) -> MedicineScanResult:
        """
        Read a medicine package photo to prefill the medication form.

        Raises:
            ValidationError: If the upload is empty or not a supported image
            AIProcessingError: If the medication cannot be identified
        """
        mime_type = (mime_type or "").lower()
        if not content:
            raise ValidationError("No image provided")
        if len(content) > settings.max_upload_size_mb * 1024 * 1024:
            raise ValidationError(f"Image exceeds the {settings.max_upload_size_mb} MB upload limit")
        if mime_type not in SCANNABLE_IMAGE_TYPES:
            raise ValidationError(f"Unsupported image type: {mime_type}. Supported types: JPEG, PNG, WEBP")

        attachment = {"data": base64.b64encode(content).decode(), "media_type": mime_type}
        try:
            parsed = parse_json_object(
                await self._complete(MEDICINE_SCAN_PROMPT, json_mode=True, attachments=[attachment])
            )
        except Exception as e:
            logger.warning(f"Medicine photo scan failed: {e}")
            raise AIProcessingError(MEDICINE_SCAN_FAILED_MESSAGE)

        name = _optional_text(parsed.get("medicationName"))
        confidence = self._parse_confidence(parsed.get("confidence"))
        if not name or confidence == 0:
            raise AIProcessingError(MEDICINE_NOT_IDENTIFIED_MESSAGE)

        try:
            frequency = MedicationFrequency(str(parsed.get("frequency") or "").strip().lower())
        except ValueError:
            frequency = None

        return MedicineScanResult(
            medication_name=name,
            generic_name=_optional_text(parsed.get("genericName")),
            brand_name=_optional_text(parsed.get("brandName")),
            dosage_amount=_optional_text(parsed.get("dosageAmount")),
            frequency=frequency,
            form=_optional_text(parsed.get("form")),
            strength=_optional_text(parsed.get("strength")),
            manufacturer=_optional_text(parsed.get("manufacturer")),
            active_ingredients=_string_list(parsed.get("activeIngredients")),
            instructions=_optional_text(parsed.get("instructions")),
            warnings=_string_list(parsed.get("warnings")),
            expiry_date=_optional_text(parsed.get("expiryDate")),
            confidence=confidence,
            notes=_optional_text(parsed.get("notes")),
        )

    # Document analysis

    @staticmethod
    def _map_document_type(value: Any) -> DocumentType:
        try:
            return DocumentType(str(value or "").strip().lower())
        except ValueError:
            return DocumentType.OTHER

    @staticmethod
    def _parse_suggested_date(value: Any) -> Optional[date]:
        if not value:
            return None
        try:
            return date.fromisoformat(str(value)[:10])
        except ValueError:
            return None

    @staticmethod
    def _parse_confidence(value: Any) -> float:
        try:
            confidence = float(value)
        except (TypeError, ValueError):
            return 0.5
        return min(max(confidence, 0.0), 1.0)

    async def process_document(self, content: bytes, mime_type: str) -> DocumentAiSuggestion:
        """
        Read a medical document and suggest its metadata.

        Raises:
            AIProcessingError: If the file type cannot be analyzed
            NonHealthcareDocumentError: If the model says the document is not medical
        """
        mime_type = (mime_type or "").lower()
        if mime_type not in ANALYZABLE_MIME_TYPES:
            raise AIProcessingError(
                f"Unsupported file type: {mime_type}. Supported types: PDF, JPEG, PNG, GIF, WEBP"
            )

        attachment = {"data": base64.b64encode(content).decode(), "media_type": mime_type}
        try:
            parsed = parse_json_object(await self._complete(DOCUMENT_PROMPT, json_mode=True, attachments=[attachment]))
        except Exception as e:
            logger.warning(f"Document analysis failed, returning default suggestions: {e}")
            return DocumentAiSuggestion(suggested_notes=DOCUMENT_FALLBACK_NOTES)

        if parsed.get("isHealthcareRelated") is False:
            raise NonHealthcareDocumentError(str(parsed.get("rejectionReason") or NON_HEALTHCARE_MESSAGE))

        return DocumentAiSuggestion(
            suggested_name=str(parsed.get("suggestedName") or "Medical Document"),
            suggested_date=self._parse_suggested_date(parsed.get("documentDate")),
            suggested_notes=str(parsed.get("notes") or ""),
            suggested_type=self._map_document_type(parsed.get("documentType")),
            extracted_text=str(parsed.get("extractedText") or ""),
            confidence=self._parse_confidence(parsed.get("confidence")),
        )
