from __future__ import annotations

from typing import Any, Dict, List, Optional

from models.notifications import NotificationPreferences, PushMessage, SendResult, TokenOutcome


class FakeSnap:
    def __init__(self, db: "FakeFirestore", path: str):
        self.reference = FakeDocRef(db, path)
        self.id = path.rsplit("/", 1)[-1]
        self._data = db.docs.get(path)

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class FakeDocRef:
    def __init__(self, db: "FakeFirestore", path: str):
        self.db = db
        self.path = path
        self.id = path.rsplit("/", 1)[-1]

    def get(self):
        self.db.reads.append(self.path)
        if self.path in self.db.fail_reads:
            raise RuntimeError(f"read failed: {self.path}")
        return FakeSnap(self.db, self.path)

    def set(self, data: Dict[str, Any], merge: bool = False) -> None:
        if merge and self.path in self.db.docs:
            self.db.docs[self.path] = {**self.db.docs[self.path], **data}
        else:
            self.db.docs[self.path] = dict(data)
        self.db.writes.append((self.path, dict(data), merge))

    def delete(self) -> None:
        if self.path in self.db.fail_deletes:
            raise RuntimeError(f"delete failed: {self.path}")
        self.db.docs.pop(self.path, None)
        self.db.deletes.append(self.path)

    def collection(self, name: str) -> "FakeCollection":
        return FakeCollection(self.db, f"{self.path}/{name}")


class FakeCollection:
    def __init__(self, db: "FakeFirestore", path: str):
        self.db = db
        self.path = path

    def document(self, doc_id: str) -> FakeDocRef:
        return FakeDocRef(self.db, f"{self.path}/{doc_id}")

    def stream(self):
        prefix = self.path + "/"
        for path in list(self.db.docs):
            rest = path[len(prefix):] if path.startswith(prefix) else None
            if rest and "/" not in rest:
                yield FakeSnap(self.db, path)


class FakeGroupQuery:
    def __init__(self, db: "FakeFirestore", name: str, filters=None):
        self.db = db
        self.name = name
        self.filters = filters or []

    def where(self, field: str, op: str, value: Any) -> "FakeGroupQuery":
        assert op == "=="
        return FakeGroupQuery(self.db, self.name, self.filters + [(field, value)])

    def stream(self):
        self.db.group_queries.append((self.name, tuple(self.filters)))
        for path, data in list(self.db.docs.items()):
            parts = path.split("/")
            if len(parts) < 2 or parts[-2] != self.name:
                continue
            if all(data.get(f) == v for f, v in self.filters):
                yield FakeSnap(self.db, path)


class FakeFirestore:
    """Path-keyed in-memory stand-in for google.cloud.firestore.Client."""

    def __init__(self, docs: Optional[Dict[str, Dict[str, Any]]] = None):
        self.docs: Dict[str, Dict[str, Any]] = dict(docs or {})
        self.reads: List[str] = []
        self.writes: List[tuple] = []
        self.deletes: List[str] = []
        self.group_queries: List[tuple] = []
        self.fail_reads: set = set()
        self.fail_deletes: set = set()

    def collection(self, name: str) -> FakeCollection:
        return FakeCollection(self, name)

    def document(self, path: str) -> FakeDocRef:
        return FakeDocRef(self, path)

    def collection_group(self, name: str) -> FakeGroupQuery:
        return FakeGroupQuery(self, name)


class FakeOrchestrator:
    def __init__(self, fail_for: Optional[set] = None):
        self.calls: List[tuple] = []
        self.fail_for = fail_for or set()

    async def notify(self, recipient_id, kind, message, invitation_id=None):
        if recipient_id in self.fail_for:
            raise RuntimeError(f"token read failed for {recipient_id}")
        self.calls.append((recipient_id, kind, message, invitation_id))
        return "sent"


class FakePreferences:
    def __init__(self, prefs: Optional[Dict[str, NotificationPreferences]] = None):
        self.prefs = prefs or {}

    def get(self, user_id):
        return self.prefs.get(user_id, NotificationPreferences())


class FakeTokens:
    def __init__(self, tokens: Optional[Dict[str, List[str]]] = None):
        self.tokens = tokens or {}
        self.deleted: List[str] = []

    def list_tokens(self, user_id):
        return list(self.tokens.get(user_id, []))

    def delete_by_token(self, token):
        self.deleted.append(token)
        return 1


class FakeInvitations:
    def __init__(self):
        self.marked: List[str] = []

    def mark_notified(self, invitation_id):
        self.marked.append(invitation_id)


class FakeDispatcher:
    def __init__(self, failed: Optional[set] = None, raise_error: bool = False):
        self.sent: List[tuple] = []
        self.failed = failed or set()
        self.raise_error = raise_error

    def send(self, tokens, message: PushMessage) -> SendResult:
        self.sent.append((list(tokens), message))
        if self.raise_error:
            return SendResult(ok=False, error_type="UnavailableError", message="fcm down")
        return SendResult(ok=True, outcomes=[TokenOutcome(token=t, success=t not in self.failed) for t in tokens])
