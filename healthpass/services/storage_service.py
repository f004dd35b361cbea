"""
Object Storage Service - keeps uploaded document binaries in StorageInterface
and issues expiring signed links to them.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import PurePosixPath
from typing import Optional, Tuple
from jose import JWTError, jwt

from ..config import settings
from ..core.errors import NotFoundError, StorageError, UnauthorizedError
from ..storage import StorageInterface

logger = logging.getLogger(__name__)

OBJECTS_PREFIX = "objects"
FILE_TOKEN = "file"


class ObjectStorageService:
    """
    Binary object store on top of the application storage backend.

    Objects live under ``objects/documents/{user_id}/{uuid}_{timestamp}{ext}``
    so stored names are never predictable from the original file name.
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage

    @staticmethod
    def _random_file_name(original_file_name: str) -> str:
        ext = PurePosixPath(original_file_name or "").suffix.lower()
        timestamp = int(datetime.now(timezone.utc).timestamp() * 1000)
        return f"{uuid.uuid4()}_{timestamp}{ext}"

    async def upload_file(
        self,
        content: bytes,
        original_file_name: str,
        mime_type: str,
        user_id: str
    ) -> str:
        """
        Store a file for a user.

        Returns:
            str: Storage path of the object

        Raises:
            StorageError: If the backend rejects the write
        """
        path = f"{OBJECTS_PREFIX}/documents/{user_id}/{self._random_file_name(original_file_name)}"
        saved = await self.storage.save(path, content, metadata={
            "content_type": mime_type,
            "original_file_name": original_file_name,
            "uploaded_at": datetime.now(timezone.utc).isoformat(),
            "user_id": user_id,
        })
        if not saved:
            raise StorageError(f"Failed to upload file '{original_file_name}' to storage")

        logger.info(
            "File uploaded",
            extra={"extra_fields": {"path": path, "size": len(content), "mime_type": mime_type}}
        )
        return path

    async def load_file(self, path: str) -> Tuple[bytes, str]:
        """
        Read an object and its content type.

        Raises:
            NotFoundError: If the object does not exist
        """
        if not path.startswith(f"{OBJECTS_PREFIX}/"):
            raise NotFoundError("File not found")
        content = await self.storage.load(path)
        if content is None:
            raise NotFoundError("File not found")
        metadata = await self.storage.get_metadata(path) or {}
        content_type = metadata.get("content_type", "application/octet-stream")
        return content, content_type

    async def delete_file(self, path: str) -> None:
        """Delete an object; a missing object is not an error."""
        if not await self.storage.delete(path):
            logger.warning(f"Object {path} was not deleted (already gone?)")

    def generate_signed_url(self, path: str, expires_delta: Optional[timedelta] = None) -> str:
        """Signed, expiring URL that serves the object without a bearer token."""
        if expires_delta is None:
            expires_delta = timedelta(days=settings.signed_url_expire_days)
        token = jwt.encode(
            {"path": path, "type": FILE_TOKEN, "exp": datetime.now(timezone.utc) + expires_delta},
            settings.secret_key,
            algorithm=settings.algorithm,
        )
        return f"{settings.public_api_url.rstrip('/')}{settings.api_prefix}/files/{token}"

    def verify_signed_token(self, token: str) -> str:
        """
        Resolve a signed file token to its storage path.

        Raises:
            UnauthorizedError: If the token is invalid or expired
        """
        try:
            payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        except JWTError:
            raise UnauthorizedError("Invalid or expired file link")
        path = payload.get("path")
        if payload.get("type") != FILE_TOKEN or not path:
            raise UnauthorizedError("Invalid or expired file link")
        return path
