"""
Document Store - JSON document collections persisted through StorageInterface.
Each document lives in its own file under collections/{name}/{id}.json.
"""

import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from ..core.errors import StorageError
from .interface import StorageInterface

logger = logging.getLogger(__name__)

Query = Union[Dict[str, Any], Callable[[Dict[str, Any]], bool]]


class DuplicateKeyError(Exception):
    """Raised when a write would violate a collection's uniqueness rules."""

    def __init__(self, collection: str, key: str):
        super().__init__(f"Duplicate key in '{collection}': {key}")
        self.collection = collection
        self.key = key


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Collection:
    """
    A named set of JSON documents.

    Writes are serialized by a per-collection lock, which makes the
    check-then-write helpers (``insert_one`` / ``update_one`` with
    ``reject_if``, and ``find_one_and_update``) atomic within the process.
    Reads go straight to storage; each document file is replaced atomically.
    """

    def __init__(
        self,
        storage: StorageInterface,
        name: str,
        unique_fields: Sequence[str] = ()
    ):
        self.storage = storage
        self.name = name
        self.unique_fields = tuple(unique_fields)
        self._dir = f"collections/{name}"
        self._lock = asyncio.Lock()

    def _path(self, doc_id: str) -> str:
        return f"{self._dir}/{doc_id}.json"

    @staticmethod
    def _matches(document: Dict[str, Any], query: Optional[Query]) -> bool:
        if query is None:
            return True
        if callable(query):
            return bool(query(document))
        return all(document.get(key) == value for key, value in query.items())

    async def _read(self, path: str) -> Optional[Dict[str, Any]]:
        content = await self.storage.load(path)
        if content is None:
            return None
        try:
            return json.loads(content.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"Corrupt document {path}: {e}")
            return None

    async def _write(self, document: Dict[str, Any]) -> None:
        content = json.dumps(document, indent=2, ensure_ascii=False, default=str)
        if not await self.storage.save(self._path(document["id"]), content):
            raise StorageError(f"Failed to persist document {document['id']} in '{self.name}'")

    async def _all(self) -> List[Dict[str, Any]]:
        files = await self.storage.list(self._dir, pattern="*.json", recursive=False)
        documents = []
        for file_path in files:
            document = await self._read(file_path)
            if document is not None:
                documents.append(document)
        return documents

    def _check_unique(
        self,
        document: Dict[str, Any],
        existing: List[Dict[str, Any]],
        reject_if: Optional[Callable[[Dict[str, Any]], bool]] = None
    ) -> None:
        for other in existing:
            if other.get("id") == document.get("id"):
                continue
            for field in self.unique_fields:
                if document.get(field) is not None and other.get(field) == document.get(field):
                    raise DuplicateKeyError(self.name, field)
            if reject_if is not None and reject_if(other):
                raise DuplicateKeyError(self.name, "reject_if")

    async def insert_one(
        self,
        document: Dict[str, Any],
        reject_if: Optional[Callable[[Dict[str, Any]], bool]] = None
    ) -> Dict[str, Any]:
        """
        Insert a document, assigning ``id`` and timestamps.

        Args:
            document: Document fields
            reject_if: Optional predicate; if any other stored document matches,
                the insert is rejected with DuplicateKeyError

        Returns:
            Dict: The stored document
        """
        now = _now_iso()
        doc = dict(document)
        doc["id"] = doc.get("id") or uuid.uuid4().hex
        doc["created_at"] = now
        doc["updated_at"] = now

        async with self._lock:
            if self.unique_fields or reject_if is not None:
                self._check_unique(doc, await self._all(), reject_if)
            await self._write(doc)

        return doc

    async def find_by_id(self, doc_id: str) -> Optional[Dict[str, Any]]:
        """Get a document by its id."""
        if not doc_id or "/" in doc_id or ".." in doc_id:
            return None
        return await self._read(self._path(doc_id))

    async def find_one(self, query: Query) -> Optional[Dict[str, Any]]:
        """Return the first document matching ``query``."""
        for document in await self._all():
            if self._matches(document, query):
                return document
        return None

    async def find(
        self,
        query: Optional[Query] = None,
        sort_by: str = "created_at",
        descending: bool = True
    ) -> List[Dict[str, Any]]:
        """Return every matching document, newest first by default."""
        documents = [d for d in await self._all() if self._matches(d, query)]
        documents.sort(key=lambda d: d.get(sort_by) or "", reverse=descending)
        return documents

    async def update_one(
        self,
        doc_id: str,
        updates: Dict[str, Any],
        reject_if: Optional[Callable[[Dict[str, Any]], bool]] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Apply ``updates`` to a document.

        Returns:
            Optional[Dict]: Updated document, or None if it does not exist

        Raises:
            DuplicateKeyError: If the update violates uniqueness
        """
        async with self._lock:
            document = await self.find_by_id(doc_id)
            if document is None:
                return None

            updated = {**document, **updates, "id": document["id"], "updated_at": _now_iso()}
            if self.unique_fields or reject_if is not None:
                self._check_unique(updated, await self._all(), reject_if)
            await self._write(updated)

        return updated

    async def find_one_and_update(
        self,
        query: Query,
        mutate: Callable[[Dict[str, Any]], Optional[Dict[str, Any]]]
    ) -> Optional[Dict[str, Any]]:
        """
        Compare-and-set on a single document.

        ``mutate`` receives the current document while the collection lock is
        held and returns the fields to change (or None to leave it as is).
        Unique fields touched by the change are checked like ``update_one``.

        Returns:
            Optional[Dict]: The document after the update, or None if no match
        """
        async with self._lock:
            if isinstance(query, dict) and set(query) == {"id"}:
                document = await self.find_by_id(query["id"])
            else:
                document = await self.find_one(query)
            if document is None:
                return None

            updates = mutate(dict(document))
            if updates:
                document = {**document, **updates, "id": document["id"], "updated_at": _now_iso()}
                if any(field in updates for field in self.unique_fields):
                    self._check_unique(document, await self._all())
                await self._write(document)

        return document


class Database:
    """All collections used by the application."""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.users = Collection(storage, "users", unique_fields=("government_id",))
        self.medical_conditions = Collection(storage, "medical_conditions")
        self.medications = Collection(storage, "medications")
        self.allergies = Collection(storage, "allergies")
        self.lifestyles = Collection(storage, "lifestyles", unique_fields=("user_id",))
        self.documents = Collection(storage, "documents")
        self.health_passes = Collection(storage, "health_passes", unique_fields=("access_code",))
