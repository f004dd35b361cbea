"""
ID Card Service - reads identity fields from a scanned national ID card with
the multimodal LLM.
"""

import base64
import logging
from typing import Any, Dict, Optional

from ..core.errors import DocumentProcessingError, ValidationError
from ..llm.base import LLMMessage, LLMProvider, parse_json_object
from ..models.enums import SUPPORTED_ID_IMAGE_FORMATS, Gender
from ..models.user import IdCardData
from ..utils.dates import parse_date_string

logger = logging.getLogger(__name__)

ID_CARD_PROMPT = """You are reading a scanned national identity card.

Extract the holder's identity fields. Arabic or French text must be transliterated or translated to English. Dates must be Gregorian in DD/MM/YYYY format.

Respond ONLY with JSON:
{
  "first_name": "string",
  "last_name": "string",
  "government_id": "the card or registry number, digits only",
  "date_of_birth": "DD/MM/YYYY",
  "birth_place": "string or empty",
  "dad_name": "father's first name or empty",
  "mom_full_name": "mother's full name or empty",
  "gender": "male | female | empty if not printed"
}

If the image is not an identity card, respond with {"error": "not an identity card"}."""


def _clean(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def _map_gender(value: Any) -> Optional[Gender]:
    text = _clean(value).lower()
    if text in ("male", "m"):
        return Gender.MALE
    if text in ("female", "f"):
        return Gender.FEMALE
    return None


class IdCardService:
    """Identity extraction for ID-based sign-in."""

    def __init__(self, provider: Optional[LLMProvider] = None):
        self.provider = provider

    async def _read_fields(self, content: bytes, mime_type: str) -> Dict[str, Any]:
        message = LLMMessage.multimodal(
            "user",
            ID_CARD_PROMPT,
            file_base64_list=[{"data": base64.b64encode(content).decode(), "media_type": mime_type}],
        )
        response = await self.provider.chat_completion([message], temperature=0, json_mode=True)
        return parse_json_object(response.content)

    async def extract(self, content: bytes, mime_type: str) -> IdCardData:
        """
        Extract identity fields from an ID card image.

        Raises:
            ValidationError: If the upload is not a supported image
            DocumentProcessingError: If the card cannot be read or required
                fields (government ID, names, birth date) are missing
        """
        mime_type = (mime_type or "").lower()
        if mime_type not in SUPPORTED_ID_IMAGE_FORMATS:
            raise ValidationError(f"Unsupported image type: {mime_type}. Supported types: JPEG, PNG, WEBP")
        if not content:
            raise ValidationError("Empty image upload")
        if self.provider is None:
            raise DocumentProcessingError("ID card processing is not configured")

        try:
            fields = await self._read_fields(content, mime_type)
        except Exception as e:
            logger.error(f"ID card extraction failed: {e}", exc_info=True)
            raise DocumentProcessingError(f"Failed to process ID card: {e}")

        if fields.get("error"):
            raise DocumentProcessingError(f"Failed to process ID card: {fields['error']}")

        data = IdCardData(
            first_name=_clean(fields.get("first_name")),
            last_name=_clean(fields.get("last_name")),
            government_id=_clean(fields.get("government_id")),
            date_of_birth=_clean(fields.get("date_of_birth")),
            birth_place=_clean(fields.get("birth_place")),
            dad_name=_clean(fields.get("dad_name")),
            mom_full_name=_clean(fields.get("mom_full_name")),
            gender=_map_gender(fields.get("gender")),
        )

        if not data.government_id:
            raise DocumentProcessingError("Could not extract government ID from the document")
        if not data.first_name or not data.last_name:
            raise DocumentProcessingError("Could not extract name from the document")
        if parse_date_string(data.date_of_birth) is None:
            raise DocumentProcessingError("Could not extract date of birth from the document")

        logger.info("ID card processed", extra={"extra_fields": {"fields_found": sorted(k for k, v in fields.items() if v)}})
        return data
