"""
Health Pass API endpoints - pass management for the owner and anonymous
access by code for clinicians.
"""

from fastapi import APIRouter, Depends, status

from ..models import HealthPassCreate, HealthPassUpdate, ToggleItemRequest, success_response
from ..services import Services, get_services
from ..utils.auth import get_current_user_id

router = APIRouter(prefix="/health-passes", tags=["health-passes"])


@router.get("/access/{access_code}")
async def access_health_pass(access_code: str, services: Services = Depends(get_services)):
    """
    Open a health pass from its QR code. No authentication.

    Returns:
        The clinician preview; 404 for an unknown or expired code
    """
    return success_response(await services.health_passes.access_by_code(access_code))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_health_pass(
    data: HealthPassCreate,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services)
):
    """Generate a health pass for an appointment, with AI-selected items."""
    health_pass = await services.health_passes.create(user_id, data)
    return success_response(health_pass, "Health pass generated successfully")


@router.get("")
async def list_health_passes(
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services)
):
    return success_response(await services.health_passes.list_by_owner(user_id))


@router.get("/{pass_id}")
async def get_health_pass(
    pass_id: str,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services)
):
    return success_response(await services.health_passes.get(pass_id, user_id))


@router.patch("/{pass_id}")
async def update_health_pass(
    pass_id: str,
    data: HealthPassUpdate,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services)
):
    """Update appointment details or the visibility toggles."""
    return success_response(await services.health_passes.update(pass_id, data, user_id))


@router.post("/{pass_id}/regenerate-qr")
async def regenerate_qr(
    pass_id: str,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services)
):
    """Issue a new access code and QR image; the previous code stops working."""
    return success_response(await services.health_passes.regenerate_qr(pass_id, user_id))


@router.patch("/{pass_id}/toggle-item")
async def toggle_item(
    pass_id: str,
    request: ToggleItemRequest,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services)
):
    """Show or hide a single record on the pass."""
    health_pass = await services.health_passes.toggle_item(
        pass_id, request.item_type, request.item_id, request.is_enabled, user_id
    )
    return success_response(health_pass)
