from __future__ import annotations

from typing import Optional
from google.cloud import firestore
from google.cloud.firestore import Client
from storage.firestore_client import get_firestore_client
from models.schema import COL_INVITATIONS


class InvitationRepository:
    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def mark_notified(self, invitation_id: str) -> None:
        self.db.collection(COL_INVITATIONS).document(invitation_id).set(
            {"notifiedAt": firestore.SERVER_TIMESTAMP}, merge=True
        )
