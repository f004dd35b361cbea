"""
Autocomplete API endpoints - AI suggestions for record forms and medicine photo scanning.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile

from ..models import success_response
from ..models.autocomplete import AUTOCOMPLETE_DEFAULT_LIMIT, AUTOCOMPLETE_MAX_LIMIT
from ..services import Services, get_services
from ..utils.auth import get_current_user_id

router = APIRouter(prefix="/autocomplete", tags=["autocomplete"])


@router.get("/medical-conditions")
async def suggest_medical_conditions(
    q: str = Query(""),
    limit: int = Query(AUTOCOMPLETE_DEFAULT_LIMIT, ge=1, le=AUTOCOMPLETE_MAX_LIMIT),
    context: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services)
):
    """
    Suggest medical condition names for partial input.

    Queries shorter than two characters return no suggestions.
    """
    return success_response(await services.ai.suggest_medical_conditions(q, limit, context))


@router.get("/medications")
async def suggest_medications(
    q: str = Query(""),
    limit: int = Query(AUTOCOMPLETE_DEFAULT_LIMIT, ge=1, le=AUTOCOMPLETE_MAX_LIMIT),
    context: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services)
):
    return success_response(await services.ai.suggest_medications(q, limit, context))


@router.get("/allergies")
async def suggest_allergies(
    q: str = Query(""),
    limit: int = Query(AUTOCOMPLETE_DEFAULT_LIMIT, ge=1, le=AUTOCOMPLETE_MAX_LIMIT),
    context: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services)
):
    return success_response(await services.ai.suggest_allergies(q, limit, context))


@router.post("/medications/scan")
async def scan_medicine(
    image: UploadFile = File(...),
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services)
):
    """
    Read a medicine package photo and return medication form prefill.

    Args:
        image: JPEG, PNG or WEBP photo of the medicine label
    """
    content = await image.read()
    result = await services.ai.scan_medicine_photo(content, image.content_type)
    return success_response(result, "Medicine scanned successfully")
