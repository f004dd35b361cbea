"""
Health record API endpoints - medical conditions, medications and allergies.

The three collections share one set of owner-scoped CRUD routes.
"""

from typing import Type
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from ..models import (
    AllergyCreate,
    AllergyUpdate,
    MedicalConditionCreate,
    MedicalConditionUpdate,
    MedicationCreate,
    MedicationUpdate,
    success_response,
)
from ..services import Services, get_services
from ..utils.auth import get_current_user_id


def build_record_router(
    prefix: str,
    tag: str,
    service_name: str,
    create_model: Type[BaseModel],
    update_model: Type[BaseModel],
) -> APIRouter:
    """
    Create the CRUD router for one record collection.

    Args:
        prefix: URL prefix, e.g. "/medications"
        tag: OpenAPI tag
        service_name: Attribute of ``Services`` holding the record service
        create_model: Request body for POST
        update_model: Request body for PATCH
    """
    router = APIRouter(prefix=prefix, tags=[tag])

    def service_of(services: Services):
        return getattr(services, service_name)

    @router.post("", status_code=status.HTTP_201_CREATED)
    async def create_record(
        data: create_model,
        user_id: str = Depends(get_current_user_id),
        services: Services = Depends(get_services)
    ):
        record = await service_of(services).create(user_id, data)
        return success_response(record)

    @router.get("")
    async def list_records(
        user_id: str = Depends(get_current_user_id),
        services: Services = Depends(get_services)
    ):
        return success_response(await service_of(services).list_by_owner(user_id))

    @router.get("/{record_id}")
    async def get_record(
        record_id: str,
        user_id: str = Depends(get_current_user_id),
        services: Services = Depends(get_services)
    ):
        return success_response(await service_of(services).get_by_id(record_id, user_id))

    @router.patch("/{record_id}")
    async def update_record(
        record_id: str,
        data: update_model,
        user_id: str = Depends(get_current_user_id),
        services: Services = Depends(get_services)
    ):
        return success_response(await service_of(services).update(record_id, data, user_id))

    @router.delete("/{record_id}")
    async def delete_record(
        record_id: str,
        user_id: str = Depends(get_current_user_id),
        services: Services = Depends(get_services)
    ):
        service = service_of(services)
        await service.soft_delete(record_id, user_id)
        return success_response(message=f"{service.label} deleted successfully")

    return router


medical_conditions_router = build_record_router(
    "/medical-conditions", "medical-conditions", "medical_conditions",
    MedicalConditionCreate, MedicalConditionUpdate,
)
medications_router = build_record_router(
    "/medications", "medications", "medications",
    MedicationCreate, MedicationUpdate,
)
allergies_router = build_record_router(
    "/allergies", "allergies", "allergies",
    AllergyCreate, AllergyUpdate,
)
