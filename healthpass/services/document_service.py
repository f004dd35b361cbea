"""
Document Service - medical document uploads, AI drafting and confirmation.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from ..config import settings
from ..core.errors import AIProcessingError, NonHealthcareDocumentError, NotFoundError, ValidationError
from ..models.enums import SUPPORTED_DOCUMENT_FORMATS
from ..models.records import (
    DocumentConfirm,
    DocumentUploadResponse,
    MedicalDocument,
)
from ..storage import Database
from .ai_service import AIService
from .record_service import RecordService
from .storage_service import ObjectStorageService

logger = logging.getLogger(__name__)


class DocumentService(RecordService[MedicalDocument]):
    """
    Documents are created unconfirmed from the AI's reading of the file and
    become user-approved through ``confirm``. Every read carries a freshly
    signed file URL; the storage path itself never leaves the service.
    """

    collection_name = "documents"
    model = MedicalDocument
    label = "Document"

    def __init__(self, db: Database, object_storage: ObjectStorageService, ai_service: AIService):
        super().__init__(db)
        self.object_storage = object_storage
        self.ai_service = ai_service

    def signed_url(self, document: MedicalDocument, expires_delta: Optional[timedelta] = None) -> str:
        """Fresh signed link to the document's file, by default valid for the configured days."""
        return self.object_storage.generate_signed_url(document.file_path, expires_delta)

    def _to_model(self, document: Dict[str, Any]) -> MedicalDocument:
        signed = {**document, "file_url": self.object_storage.generate_signed_url(document["file_path"])}
        return MedicalDocument.model_validate(signed)

    async def upload_and_process(
        self,
        user_id: str,
        original_file_name: str,
        content: bytes,
        mime_type: str
    ) -> DocumentUploadResponse:
        """
        Store the file, let the AI read it, and create an unconfirmed record.

        Raises:
            ValidationError: If the file is empty, too large or of an unsupported type
            AIProcessingError / NonHealthcareDocumentError: If the AI rejects the file
            StorageError: If the file cannot be stored
        """
        mime_type = (mime_type or "").lower()
        if mime_type not in SUPPORTED_DOCUMENT_FORMATS:
            raise ValidationError(f"Unsupported file type: {mime_type}. Supported types: PDF, JPEG, PNG, WEBP")
        if not content:
            raise ValidationError("Empty file upload")
        if len(content) > settings.max_upload_size_mb * 1024 * 1024:
            raise ValidationError(f"File exceeds the {settings.max_upload_size_mb} MB upload limit")

        file_path = await self.object_storage.upload_file(content, original_file_name, mime_type, user_id)

        try:
            suggestions = await self.ai_service.process_document(content, mime_type)
        except (AIProcessingError, NonHealthcareDocumentError):
            await self.object_storage.delete_file(file_path)
            raise

        stored = await self.collection.insert_one({
            "user_id": user_id,
            "original_file_name": original_file_name,
            "document_name": suggestions.suggested_name,
            "document_type": suggestions.suggested_type.value,
            "file_path": file_path,
            "mime_type": mime_type,
            "file_size": len(content),
            "document_date": suggestions.suggested_date.isoformat() if suggestions.suggested_date else None,
            "notes": None,
            "ai_suggested_name": suggestions.suggested_name,
            "ai_suggested_date": suggestions.suggested_date.isoformat() if suggestions.suggested_date else None,
            "ai_generated_notes": suggestions.suggested_notes,
            "extracted_text": suggestions.extracted_text,
            "ai_confidence": suggestions.confidence,
            "is_ai_processed": True,
            "is_confirmed": False,
            "is_active": True,
        })

        logger.info(
            "Document uploaded and processed",
            extra={"extra_fields": {
                "user_id": user_id,
                "document_id": stored["id"],
                "document_type": stored["document_type"],
                "ai_confidence": suggestions.confidence,
            }}
        )

        return DocumentUploadResponse(
            id=stored["id"],
            original_file_name=original_file_name,
            file_url=self.object_storage.generate_signed_url(file_path),
            ai_suggestions=suggestions,
        )

    async def confirm(self, document_id: str, data: DocumentConfirm, user_id: Optional[str] = None) -> MedicalDocument:
        """Record the user's approved metadata and mark the document confirmed."""
        await self._get_document(document_id, user_id)
        updated = await self.collection.update_one(document_id, {
            **data.model_dump(mode="json"),
            "is_confirmed": True,
        })
        if updated is None:
            raise NotFoundError("Document not found")
        return self._to_model(updated)

    async def list_by_owner(
        self,
        user_id: str,
        active_only: bool = True,
        confirmed_only: bool = True
    ) -> List[MedicalDocument]:
        """Documents of a user, newest first; unconfirmed drafts are hidden by default."""
        documents = await super().list_by_owner(user_id, active_only)
        if confirmed_only:
            documents = [d for d in documents if d.is_confirmed]
        return documents
