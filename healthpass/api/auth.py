"""
Authentication API endpoints - ID card sign-in and token refresh.
"""

from fastapi import APIRouter, Depends, File, UploadFile

from ..models import RefreshTokenRequest, success_response
from ..services import Services, get_services

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/verify-id")
async def verify_id(
    image: UploadFile = File(...),
    services: Services = Depends(get_services)
):
    """
    Sign in with a scanned ID card, registering the holder on first use.

    Args:
        image: ID card image (JPEG, PNG or WEBP)

    Returns:
        LoginResponse with tokens; ``extractedData`` is set for new users
    """
    content = await image.read()
    result = await services.auth.verify_id(content, image.content_type)
    message = "Account created successfully" if result.is_new_user else "Login successful"
    return success_response(result, message)


@router.post("/extract-id")
async def extract_id(
    image: UploadFile = File(...),
    services: Services = Depends(get_services)
):
    """Read the fields of an ID card without signing in."""
    content = await image.read()
    return success_response(await services.auth.extract_id(content, image.content_type))


@router.post("/refresh")
async def refresh_token(
    request: RefreshTokenRequest,
    services: Services = Depends(get_services)
):
    """Exchange a refresh token for a new token pair."""
    return success_response(await services.auth.refresh(request.refresh_token))
