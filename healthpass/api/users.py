"""
User API endpoints - the signed-in user's profile.
"""

import asyncio
from fastapi import APIRouter, Depends

from ..models import UserFullSummary, UserUpdate, success_response
from ..services import Services, get_services
from ..utils.auth import get_current_user_id

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me")
async def get_me(
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services)
):
    """Get the current user's profile."""
    return success_response(await services.users.get_by_id(user_id))


@router.patch("/me")
async def update_me(
    user_update: UserUpdate,
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services)
):
    """
    Update the current user's contact details.

    Identity fields read from the ID card cannot be changed.
    """
    return success_response(await services.users.update(user_id, user_update))


@router.get("/summary")
async def get_summary(
    user_id: str = Depends(get_current_user_id),
    services: Services = Depends(get_services)
):
    """Get the current user with all of their active health records."""
    user, conditions, medications, allergies, lifestyles, documents = await asyncio.gather(
        services.users.get_by_id(user_id),
        services.medical_conditions.list_by_owner(user_id),
        services.medications.list_by_owner(user_id),
        services.allergies.list_by_owner(user_id),
        services.lifestyle.list_by_owner(user_id),
        services.documents.list_by_owner(user_id),
    )
    summary = UserFullSummary(
        **user.model_dump(),
        medical_conditions=conditions,
        medications=medications,
        allergies=allergies,
        lifestyle=lifestyles[0] if lifestyles else None,
        documents=documents,
    )
    return success_response(summary)
