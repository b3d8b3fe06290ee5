from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from google.cloud.firestore import Client

from storage.firestore_client import get_firestore_client
from watchers.feed import Document, DocumentChange, Snapshot

log = logging.getLogger("listappi.feed")

# google.cloud.firestore ChangeType enum names -> feed change types
_CHANGE_TYPES = {"ADDED": "added", "MODIFIED": "modified", "REMOVED": "removed"}


def _to_document(snap) -> Document:
    return Document(id=snap.id, path=snap.reference.path, data=snap.to_dict() or {})


def to_snapshot(docs, changes) -> Snapshot:
    return Snapshot(
        documents=[_to_document(d) for d in docs],
        changes=[
            DocumentChange(type=_CHANGE_TYPES.get(c.type.name, c.type.name.lower()), document=_to_document(c.document))
            for c in changes
        ],
    )


class FirestoreSubscription:
    def __init__(self, watch):
        self._watch = watch
        self._closed = False

    def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._watch.unsubscribe()
        except Exception as e:
            log.warning("unsubscribe_failed", extra={"extra": {"event": "unsubscribe_failed", "error_type": type(e).__name__, "message": str(e)}})

    def is_active(self) -> bool:
        # The watch stream flips is_active off when its RPC dies.
        return not self._closed and bool(self._watch.is_active)


class FirestoreChangeFeed:
    """
    Listens to a collection or collection group.

    Firestore invokes snapshot callbacks on its own listener thread; each
    snapshot is handed to the event loop so handlers run on the loop thread.
    """

    def __init__(self, collection: str, group: bool = False, loop: Optional[asyncio.AbstractEventLoop] = None,
                 db: Optional[Client] = None):
        self.collection = collection
        self.group = group
        self.loop = loop
        self.db = db

    def _query(self):
        db = self.db or get_firestore_client()
        return db.collection_group(self.collection) if self.group else db.collection(self.collection)

    def subscribe(self, on_snapshot: Callable[[Snapshot], None]) -> FirestoreSubscription:
        loop = self.loop or asyncio.get_running_loop()

        def _callback(docs, changes, read_time):
            loop.call_soon_threadsafe(on_snapshot, to_snapshot(docs, changes))

        return FirestoreSubscription(self._query().on_snapshot(_callback))
