"""
User Service - accounts keyed by government ID.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from ..core.errors import ConflictError, DocumentProcessingError, NotFoundError
from ..models.user import IdCardData, User, UserUpdate
from ..storage import Database, DuplicateKeyError
from ..utils.dates import parse_date_string

logger = logging.getLogger(__name__)


class UserService:
    """Create, look up and update users."""

    def __init__(self, db: Database):
        self.collection = db.users

    async def create_from_id_card(self, data: IdCardData) -> User:
        """
        Register a user from extracted ID card fields.

        Raises:
            DocumentProcessingError: If the printed birth date cannot be parsed
            ConflictError: If the government ID is already registered
        """
        date_of_birth = parse_date_string(data.date_of_birth)
        if date_of_birth is None:
            raise DocumentProcessingError("Could not extract date of birth from the document")

        try:
            stored = await self.collection.insert_one({
                "first_name": data.first_name,
                "last_name": data.last_name,
                "government_id": data.government_id,
                "date_of_birth": date_of_birth.isoformat(),
                "birth_place": data.birth_place,
                "dad_name": data.dad_name,
                "mom_full_name": data.mom_full_name,
                "gender": data.gender.value if data.gender else None,
                "phone_number": None,
                "email": None,
                "profile_image_url": None,
                "last_login_at": datetime.now(timezone.utc).isoformat(),
                "is_active": True,
            })
        except DuplicateKeyError:
            raise ConflictError("A user with this government ID already exists")

        logger.info("User registered", extra={"extra_fields": {"user_id": stored["id"]}})
        return User.model_validate(stored)

    async def find_by_government_id(self, government_id: str) -> Optional[User]:
        document = await self.collection.find_one({"government_id": government_id})
        return User.model_validate(document) if document else None

    async def get_by_id(self, user_id: str) -> User:
        """
        Raises:
            NotFoundError: If the user does not exist
        """
        document = await self.collection.find_by_id(user_id)
        if document is None:
            raise NotFoundError("User not found")
        return User.model_validate(document)

    async def update(self, user_id: str, data: UserUpdate) -> User:
        """Update contact and demographic fields; identity fields are fixed."""
        updates = data.model_dump(mode="json", exclude_unset=True)
        if not updates:
            return await self.get_by_id(user_id)
        updated = await self.collection.update_one(user_id, updates)
        if updated is None:
            raise NotFoundError("User not found")
        return User.model_validate(updated)

    async def update_last_login(self, user_id: str) -> User:
        updated = await self.collection.update_one(
            user_id, {"last_login_at": datetime.now(timezone.utc).isoformat()}
        )
        if updated is None:
            raise NotFoundError("User not found")
        return User.model_validate(updated)
