"""
Auth Service - sign-in and registration by scanned ID card, and token refresh.
"""

import logging

from ..config import settings
from ..core.errors import NotFoundError, UnauthorizedError
from ..models.user import AuthUser, IdCardData, LoginResponse, TokenPair, User
from ..utils.auth import REFRESH_TOKEN, create_access_token, create_refresh_token, decode_token
from .id_card_service import IdCardService
from .user_service import UserService

logger = logging.getLogger(__name__)


class AuthService:
    """The ID card is the only credential; a known government ID logs in, an unknown one registers."""

    def __init__(self, user_service: UserService, id_card_service: IdCardService):
        self.user_service = user_service
        self.id_card_service = id_card_service

    @staticmethod
    def generate_tokens(user: User) -> TokenPair:
        return TokenPair(
            access_token=create_access_token(user.id, user.full_name, user.government_id),
            refresh_token=create_refresh_token(user.id, user.full_name, user.government_id),
            expires_in=settings.access_token_expire_minutes * 60,
        )

    async def extract_id(self, content: bytes, mime_type: str) -> IdCardData:
        """Read an ID card without touching any account."""
        return await self.id_card_service.extract(content, mime_type)

    async def verify_id(self, content: bytes, mime_type: str) -> LoginResponse:
        """
        Log in the holder of the scanned card, registering them on first use.

        Raises:
            ValidationError: If the upload is not a supported image
            DocumentProcessingError: If the card cannot be read
        """
        extracted = await self.id_card_service.extract(content, mime_type)

        user = await self.user_service.find_by_government_id(extracted.government_id)
        is_new_user = user is None
        if is_new_user:
            user = await self.user_service.create_from_id_card(extracted)
        else:
            user = await self.user_service.update_last_login(user.id)

        logger.info(
            "User verified by ID card",
            extra={"extra_fields": {"user_id": user.id, "is_new_user": is_new_user}}
        )

        return LoginResponse(
            is_new_user=is_new_user,
            user=AuthUser(id=user.id, full_name=user.full_name),
            token=self.generate_tokens(user),
            extracted_data=extracted if is_new_user else None,
        )

    async def refresh(self, refresh_token: str) -> TokenPair:
        """
        Exchange a refresh token for a new token pair.

        Raises:
            UnauthorizedError: If the token is invalid, not a refresh token,
                or its user no longer exists
        """
        token_data = decode_token(refresh_token, REFRESH_TOKEN)
        if token_data is None:
            raise UnauthorizedError("Invalid or expired refresh token")

        try:
            user = await self.user_service.get_by_id(token_data.user_id)
        except NotFoundError:
            raise UnauthorizedError("User no longer exists")

        return self.generate_tokens(user)
