from __future__ import annotations

from typing import Optional, Set

from fanout.messages import build_invitation_message
from models.notifications import InvitationTask, NotificationKind
from models.schema import COL_INVITATIONS
from watchers.base import ChangeWatcher
from watchers.feed import CHANGE_ADDED, CHANGE_MODIFIED, DocumentChange

STATUS_PENDING = "pending"


class InvitationWatcher(ChangeWatcher):
    """
    New pending invitations -> one push to the invitee.

    The processed set stops repeats within this process; the notifiedAt
    marker written after sending stops them across restarts.
    """

    name = "invites"
    collection = COL_INVITATIONS

    def __init__(self, orchestrator):
        super().__init__(orchestrator)
        self.processed: Set[str] = set()

    def classify_change(self, change: DocumentChange) -> Optional[InvitationTask]:
        if change.type not in (CHANGE_ADDED, CHANGE_MODIFIED):
            return None
        doc = change.document
        data = doc.data or {}

        status = data.get("status")
        if status and status != STATUS_PENDING:
            self.skip("invite_not_pending", invitation_id=doc.id, status=status)
            return None
        if data.get("notifiedAt"):
            self.skip("invite_already_notified", invitation_id=doc.id)
            return None
        if doc.id in self.processed:
            self.skip("invite_already_processed", invitation_id=doc.id)
            return None
        if not data.get("toUserId"):
            self.skip("invite_missing_recipient", invitation_id=doc.id)
            return None

        self.processed.add(doc.id)
        return InvitationTask(
            invitation_id=doc.id,
            to_user_id=data["toUserId"],
            item_name=data.get("itemName") or "",
            item_id=data.get("itemId") or "",
            item_type=data.get("itemType") or "",
        )

    async def handle(self, task: InvitationTask) -> None:
        outcome = await self.orchestrator.notify(
            task.to_user_id,
            NotificationKind.INVITE,
            build_invitation_message(task),
            invitation_id=task.invitation_id,
        )
        self.skip("invite_handled", invitation_id=task.invitation_id, to_user_id=task.to_user_id, outcome=outcome)
