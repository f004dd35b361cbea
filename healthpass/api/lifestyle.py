"""
Lifestyle API endpoints - the user's single lifestyle record.
"""

from fastapi import APIRouter, Depends

from ..models import LifestyleUpsert, success_response
from ..services import Services, get_services
from ..utils.auth import get_current_user_id

router = APIRouter(prefix="/lifestyle", tags=["lifestyle"])


@router.post("")
async def upsert_lifestyle(
    data: LifestyleUpsert,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services)
):
    """Create the lifestyle record or merge habits into it, by category."""
    return success_response(await services.lifestyle.upsert(user_id, data))


@router.get("")
async def get_lifestyle(
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services)
):
    return success_response(await services.lifestyle.get_by_owner(user_id))


@router.patch("")
async def update_lifestyle(
    data: LifestyleUpsert,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services)
):
    return success_response(await services.lifestyle.update(user_id, data))


@router.delete("")
async def delete_lifestyle(
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services)
):
    await services.lifestyle.soft_delete(user_id)
    return success_response(message="Lifestyle deleted successfully")
