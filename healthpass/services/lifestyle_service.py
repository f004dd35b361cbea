"""
Lifestyle Service - the single per-user lifestyle record and its habits.
"""

import logging
from typing import Dict, List

from ..core.errors import NotFoundError
from ..models.enums import LifestyleCategory
from ..models.records import Lifestyle, LifestyleHabit, LifestyleUpsert
from ..storage import Database, DuplicateKeyError

logger = logging.getLogger(__name__)


def _merge_habits(existing: List[Dict], incoming: List[LifestyleHabit]) -> List[Dict]:
    """Replace habits by category, keeping untouched categories as they were."""
    merged = {habit["category"]: habit for habit in existing}
    for habit in incoming:
        dumped = habit.model_dump(mode="json")
        merged[dumped["category"]] = dumped
    order = [c.value for c in LifestyleCategory]
    return sorted(merged.values(), key=lambda h: order.index(h["category"]) if h["category"] in order else len(order))


class LifestyleService:
    """One lifestyle record per user, created on first write."""

    label = "Lifestyle"

    def __init__(self, db: Database):
        self.collection = db.lifestyles

    async def _find(self, user_id: str):
        return await self.collection.find_one({"user_id": user_id})

    async def upsert(self, user_id: str, data: LifestyleUpsert) -> Lifestyle:
        """
        Find-or-create the user's lifestyle record and merge habits into it.
        A soft-deleted record is reactivated rather than duplicated.
        """
        existing = await self._find(user_id)
        if existing is None:
            try:
                stored = await self.collection.insert_one({
                    "user_id": user_id,
                    "habits": _merge_habits([], data.habits),
                    "is_active": True,
                })
                logger.info("Lifestyle record created", extra={"extra_fields": {"user_id": user_id}})
                return Lifestyle.model_validate(stored)
            except DuplicateKeyError:
                # Lost a create race; fall through and merge into the winner
                existing = await self._find(user_id)

        base = existing["habits"] if existing.get("is_active", True) else []
        updated = await self.collection.update_one(existing["id"], {
            "habits": _merge_habits(base, data.habits),
            "is_active": True,
        })
        return Lifestyle.model_validate(updated)

    async def update(self, user_id: str, data: LifestyleUpsert) -> Lifestyle:
        """
        Merge habits into an existing active record.

        Raises:
            NotFoundError: If the user has no active lifestyle record
        """
        await self.get_by_owner(user_id)
        return await self.upsert(user_id, data)

    async def get_by_owner(self, user_id: str) -> Lifestyle:
        """
        Raises:
            NotFoundError: If the user has no active lifestyle record
        """
        existing = await self._find(user_id)
        if existing is None or not existing.get("is_active", True):
            raise NotFoundError("Lifestyle record not found")
        return Lifestyle.model_validate(existing)

    async def list_by_owner(self, user_id: str, active_only: bool = True) -> List[Lifestyle]:
        existing = await self._find(user_id)
        if existing is None or (active_only and not existing.get("is_active", True)):
            return []
        return [Lifestyle.model_validate(existing)]

    async def habits_for(self, user_id: str) -> List[LifestyleHabit]:
        """Habits of the user's active lifestyle record, empty when there is none."""
        records = await self.list_by_owner(user_id)
        return records[0].habits if records else []

    async def soft_delete(self, user_id: str) -> None:
        """
        Raises:
            NotFoundError: If the user never had a lifestyle record
        """
        existing = await self._find(user_id)
        if existing is None:
            raise NotFoundError("Lifestyle record not found")
        await self.collection.update_one(existing["id"], {"is_active": False})
