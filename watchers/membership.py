from __future__ import annotations

import asyncio
from abc import abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from fanout.messages import RECIPE_FALLBACK, build_collection_message, build_menu_message
from models.notifications import MembershipTask, NotificationKind, PushMessage
from models.schema import COL_MENULISTS, COL_RECIPE_COLLECTIONS
from repos.recipe_repo import RecipeRepository
from watchers.base import ChangeWatcher, recipients_for
from watchers.feed import CHANGE_ADDED, CHANGE_MODIFIED, CHANGE_REMOVED, DocumentChange, Snapshot


def added_members(previous: Iterable[str], current: Iterable[str]) -> List[str]:
    """current - previous, in order of first appearance, without duplicates."""
    prev = set(previous or [])
    out: List[str] = []
    for member in current or []:
        if member in prev or member in out:
            continue
        out.append(member)
    return out


class MembershipWatcher(ChangeWatcher):
    """
    Shared lists whose recipe membership grows.

    The cache maps list id -> member ids last seen and is rewritten on every
    modification, even when nothing was added.
    """

    def __init__(self, orchestrator, recipes: Optional[RecipeRepository] = None):
        super().__init__(orchestrator)
        self.recipes = recipes or RecipeRepository()
        self.cache: Dict[str, List[str]] = {}

    @abstractmethod
    def members(self, data: Dict[str, Any]) -> List[str]:
        """Member ids of one list document, in stored order."""

    @abstractmethod
    def build_message(self, task: MembershipTask, member_id: str, title: str) -> PushMessage:
        """Push text announcing one added member."""

    def reset(self) -> None:
        super().reset()
        self.cache.clear()

    def seed(self, snapshot: Snapshot) -> None:
        for doc in snapshot.documents:
            self.cache[doc.id] = self.members(doc.data or {})

    def classify_change(self, change: DocumentChange) -> Optional[MembershipTask]:
        doc = change.document
        if change.type == CHANGE_REMOVED:
            self.cache.pop(doc.id, None)
            return None
        if change.type == CHANGE_ADDED:
            # Lists created after startup: remember what they start with.
            self.cache[doc.id] = self.members(doc.data or {})
            return None
        if change.type != CHANGE_MODIFIED:
            return None

        data = doc.data or {}
        current = self.members(data)
        added = added_members(self.cache.get(doc.id, []), current)
        self.cache[doc.id] = current

        if not added:
            self.skip("no_additions", list_id=doc.id)
            return None
        shared_with = data.get("sharedWith") or []
        if not shared_with:
            self.skip("not_shared", list_id=doc.id)
            return None

        return MembershipTask(
            list_id=doc.id,
            list_name=data.get("name") or "",
            added_ids=tuple(added),
            recipients=recipients_for(data.get("userId"), shared_with, data.get("updatedBy")),
        )

    async def recipe_title(self, recipe_id: str) -> str:
        try:
            title = await asyncio.to_thread(self.recipes.get_title, recipe_id)
        except Exception as e:
            self.log.warning(
                "recipe_title_lookup_failed",
                extra={"extra": {"event": "recipe_title_lookup_failed", "recipe_id": recipe_id, "error_type": type(e).__name__, "message": str(e)}},
            )
            return RECIPE_FALLBACK
        return title or RECIPE_FALLBACK

    async def handle(self, task: MembershipTask) -> None:
        for member_id in task.added_ids:
            title = await self.recipe_title(member_id)
            message = self.build_message(task, member_id, title)
            await self.fan_out(task.recipients, NotificationKind.UPDATE, message)
            self.skip("update_fanned_out", list_id=task.list_id, recipe_id=member_id, recipients=len(task.recipients))


class MenuWatcher(MembershipWatcher):
    name = "menus"
    collection = COL_MENULISTS

    def members(self, data: Dict[str, Any]) -> List[str]:
        return [r.get("recipeId") for r in (data.get("recipes") or []) if isinstance(r, dict) and r.get("recipeId")]

    def build_message(self, task: MembershipTask, member_id: str, title: str) -> PushMessage:
        return build_menu_message(task.list_id, task.list_name, member_id, title)


class RecipeCollectionWatcher(MembershipWatcher):
    name = "collections"
    collection = COL_RECIPE_COLLECTIONS

    def members(self, data: Dict[str, Any]) -> List[str]:
        return [r for r in (data.get("recipeIds") or []) if r]

    def build_message(self, task: MembershipTask, member_id: str, title: str) -> PushMessage:
        return build_collection_message(task.list_id, task.list_name, member_id, title)
