from __future__ import annotations

from typing import Optional
from google.cloud.firestore import Client
from storage.firestore_client import get_firestore_client
from models.schema import COL_RECIPES


class RecipeRepository:
    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def get_title(self, recipe_id: str) -> Optional[str]:
        snap = self.db.collection(COL_RECIPES).document(recipe_id).get()
        if not snap.exists:
            return None
        return (snap.to_dict() or {}).get("title") or None
