from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol

CHANGE_ADDED = "added"
CHANGE_MODIFIED = "modified"
CHANGE_REMOVED = "removed"


@dataclass(frozen=True)
class Document:
    id: str
    path: str
    data: Dict[str, Any] = field(default_factory=dict)

    @property
    def parent_path(self) -> Optional[str]:
        """Path of the document owning this one's collection, if nested."""
        parts = self.path.split("/")
        if len(parts) < 4:
            return None
        return "/".join(parts[:-2])


@dataclass(frozen=True)
class DocumentChange:
    type: str
    document: Document


@dataclass(frozen=True)
class Snapshot:
    documents: List[Document] = field(default_factory=list)
    changes: List[DocumentChange] = field(default_factory=list)


class Subscription(Protocol):
    def unsubscribe(self) -> None: ...

    def is_active(self) -> bool: ...


class ChangeFeed(Protocol):
    """Delivers a full snapshot first, then incremental snapshots, to on_snapshot."""

    def subscribe(self, on_snapshot: Callable[[Snapshot], None]) -> Subscription: ...
