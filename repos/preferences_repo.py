from __future__ import annotations

from typing import Optional
from google.cloud.firestore import Client
from storage.firestore_client import get_firestore_client
from models.notifications import NotificationPreferences
from models.schema import COL_USERS, COL_NOTIFICATION_SETTINGS, DOC_NOTIFICATION_PREFERENCES


class PreferencesRepository:
    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def get(self, user_id: str) -> NotificationPreferences:
        snap = (
            self.db.collection(COL_USERS)
            .document(user_id)
            .collection(COL_NOTIFICATION_SETTINGS)
            .document(DOC_NOTIFICATION_PREFERENCES)
            .get()
        )
        if not snap.exists:
            return NotificationPreferences()
        d = snap.to_dict() or {}
        # Explicit nulls fall back to the default as well.
        return NotificationPreferences(**{k: v for k, v in d.items() if k in NotificationPreferences.model_fields and v is not None})
