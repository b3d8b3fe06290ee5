from __future__ import annotations

import logging
from typing import List, Optional

from google.cloud import firestore
from google.cloud.firestore import Client

from models.schema import COL_NOTIFICATION_TOKENS, COL_USERS
from ops.structured_logger import token_hint
from storage.firestore_client import get_firestore_client

log = logging.getLogger("listappi.repos.tokens")


class TokenRepository:
    """Device tokens at users/{uid}/notificationTokens/{token}."""

    def __init__(self, db: Optional[Client] = None):
        self.db = db or get_firestore_client()

    def _tokens_col(self, user_id: str):
        return self.db.collection(COL_USERS).document(user_id).collection(COL_NOTIFICATION_TOKENS)

    def list_tokens(self, user_id: str) -> List[str]:
        # Distinct, in storage order; docs without a token value are ignored.
        seen: List[str] = []
        for snap in self._tokens_col(user_id).stream():
            token = (snap.to_dict() or {}).get("token")
            if token and token not in seen:
                seen.append(token)
        return seen

    def register(self, user_id: str, token: str, platform: str) -> None:
        self._tokens_col(user_id).document(token).set(
            {"token": token, "platform": platform, "updatedAt": firestore.SERVER_TIMESTAMP},
            merge=True,
        )

    def delete_by_token(self, token: str) -> int:
        """Delete every registration with this token value, across all users."""
        snaps = list(self.db.collection_group(COL_NOTIFICATION_TOKENS).where("token", "==", token).stream())
        deleted = 0
        for snap in snaps:
            try:
                snap.reference.delete()
                deleted += 1
            except Exception as e:
                log.warning(
                    "token_delete_failed",
                    extra={
                        "extra": {
                            "event": "token_delete_failed",
                            "token": token_hint(token),
                            "path": snap.reference.path,
                            "error_type": type(e).__name__,
                            "message": str(e),
                        }
                    },
                )
        return deleted
