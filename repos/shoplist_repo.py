from __future__ import annotations

from typing import Any, Dict, Optional
from google.cloud.firestore import Client
from storage.firestore_client import get_firestore_client


class ShoplistRepository:
    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def get_by_path(self, path: str) -> Optional[Dict[str, Any]]:
        snap = self.db.document(path).get()
        if not snap.exists:
            return None
        d = snap.to_dict() or {}
        d["shoplist_id"] = snap.id
        return d
