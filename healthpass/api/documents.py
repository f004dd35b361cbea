"""
Document API endpoints - medical document uploads and signed file access.
"""

from fastapi import APIRouter, Depends, File, Response, UploadFile, status

from ..models import DocumentConfirm, DocumentUpdate, success_response
from ..services import Services, get_services
from ..utils.auth import get_current_user_id

router = APIRouter(prefix="/documents", tags=["documents"])
files_router = APIRouter(prefix="/files", tags=["files"])


@router.post("/upload", status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services)
):
    """
    Upload a medical document for AI processing.

    Args:
        file: PDF, JPEG, PNG or WEBP file

    Returns:
        The unconfirmed document id, a signed file URL and the AI's suggestions
    """
    content = await file.read()
    result = await services.documents.upload_and_process(
        user_id,
        original_file_name=file.filename or "document",
        content=content,
        mime_type=file.content_type,
    )
    return success_response(result, "Document uploaded and processed")


@router.post("/{document_id}/confirm")
async def confirm_document(
    document_id: str,
    data: DocumentConfirm,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services)
):
    """Approve the document's metadata; only confirmed documents can be shared."""
    return success_response(await services.documents.confirm(document_id, data, user_id))


@router.get("")
async def list_documents(
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services)
):
    return success_response(await services.documents.list_by_owner(user_id))


@router.get("/{document_id}")
async def get_document(
    document_id: str,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services)
):
    return success_response(await services.documents.get_by_id(document_id, user_id))


@router.patch("/{document_id}")
async def update_document(
    document_id: str,
    data: DocumentUpdate,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services)
):
    return success_response(await services.documents.update(document_id, data, user_id))


@router.delete("/{document_id}")
async def delete_document(
    document_id: str,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services)
):
    await services.documents.soft_delete(document_id, user_id)
    return success_response(message="Document deleted successfully")


@files_router.get("/{token}")
async def download_file(token: str, services: Services = Depends(get_services)):
    """Serve a stored file through a signed, expiring link."""
    path = services.object_storage.verify_signed_token(token)
    content, content_type = await services.object_storage.load_file(path)
    return Response(content=content, media_type=content_type)
