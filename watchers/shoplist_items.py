from __future__ import annotations

import asyncio
from typing import Optional, Set

from fanout.messages import build_shoplist_item_message
from models.notifications import NotificationKind, ShoplistItemTask
from models.schema import COL_SHOPLIST_ITEMS
from repos.shoplist_repo import ShoplistRepository
from watchers.base import ChangeWatcher, recipients_for
from watchers.feed import CHANGE_ADDED, DocumentChange, Snapshot


class ShoplistItemWatcher(ChangeWatcher):
    """
    Item creation across every shoplist (collection group "items").

    Items present in the initial snapshot are marked processed so they never
    notify; after a restart only items created afterwards do.
    """

    name = "shoplist-items"
    collection = COL_SHOPLIST_ITEMS
    group = True

    def __init__(self, orchestrator, shoplists: Optional[ShoplistRepository] = None):
        super().__init__(orchestrator)
        self.shoplists = shoplists or ShoplistRepository()
        self.processed: Set[str] = set()

    def reset(self) -> None:
        super().reset()
        self.processed.clear()

    def seed(self, snapshot: Snapshot) -> None:
        for doc in snapshot.documents:
            self.processed.add(doc.path)

    def classify_change(self, change: DocumentChange) -> Optional[ShoplistItemTask]:
        if change.type != CHANGE_ADDED:
            return None
        doc = change.document
        if doc.path in self.processed:
            self.skip("item_already_processed", item_path=doc.path)
            return None
        self.processed.add(doc.path)

        parent = doc.parent_path
        if not parent:
            self.skip("item_without_shoplist", item_path=doc.path)
            return None
        data = doc.data or {}
        return ShoplistItemTask(
            item_id=doc.id,
            item_path=doc.path,
            shoplist_path=parent,
            text=data.get("text") or "",
            created_by=data.get("createdBy") or "",
        )

    async def handle(self, task: ShoplistItemTask) -> None:
        shoplist = await asyncio.to_thread(self.shoplists.get_by_path, task.shoplist_path)
        if shoplist is None:
            # Parent list deleted before we got to it.
            return
        shoplist_id = shoplist.get("shoplist_id") or task.shoplist_path.rsplit("/", 1)[-1]
        shared_with = shoplist.get("sharedWith") or []
        if not shared_with:
            self.skip("not_shared", shoplist_id=shoplist_id)
            return

        recipients = recipients_for(shoplist.get("userId"), shared_with, task.created_by or None)
        message = build_shoplist_item_message(shoplist_id, shoplist.get("name"), task.item_id, task.text)
        await self.fan_out(recipients, NotificationKind.UPDATE, message)
        self.skip("item_fanned_out", shoplist_id=shoplist_id, item_id=task.item_id, recipients=len(recipients))
