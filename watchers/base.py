from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Optional, Set, Tuple

from fanout.orchestrator import FanoutOrchestrator
from models.notifications import NotificationKind, PushMessage
from watchers.feed import DocumentChange, Snapshot


def recipients_for(owner_id: Optional[str], shared_with: Iterable[str], author_id: Optional[str]) -> Tuple[str, ...]:
    """Owner plus sharedWith, without the author of the change, de-duplicated in order."""
    out: List[str] = []
    for uid in [owner_id, *(shared_with or [])]:
        if not uid or uid == author_id or uid in out:
            continue
        out.append(uid)
    return tuple(out)


class ChangeWatcher(ABC):
    """
    Turns snapshots of one change feed into notification tasks.

    apply() is the synchronous state transition (cache in, tasks out) and
    never awaits; handle() does the I/O for one task. Subclasses own their
    state; nothing is shared across watchers.
    """

    name = "watcher"
    collection = ""
    group = False

    def __init__(self, orchestrator: FanoutOrchestrator):
        self.orchestrator = orchestrator
        self.initialized = False
        self.log = logging.getLogger(f"listappi.watchers.{self.name}")
        self._pending: Set[asyncio.Task] = set()

    def reset(self) -> None:
        """Forget seeded state so the next snapshot is treated as initial."""
        self.initialized = False

    def seed(self, snapshot: Snapshot) -> None:
        pass

    @abstractmethod
    def classify_change(self, change: DocumentChange) -> Optional[Any]:
        """Update watcher state for one change; return its task, or None."""

    @abstractmethod
    async def handle(self, task: Any) -> None:
        """Perform the I/O for one task produced by classify_change()."""

    def classify(self, snapshot: Snapshot) -> List[Any]:
        tasks: List[Any] = []
        for change in snapshot.changes:
            try:
                task = self.classify_change(change)
            except Exception as e:
                # A bad document only loses its own event.
                self.log.error(
                    "change_error",
                    extra={
                        "extra": {
                            "event": "change_error",
                            "watcher": self.name,
                            "doc_id": change.document.id,
                            "change_type": change.type,
                            "error_type": type(e).__name__,
                            "message": str(e),
                        }
                    },
                    exc_info=True,
                )
                continue
            if task is not None:
                tasks.append(task)
        return tasks

    def apply(self, snapshot: Snapshot) -> List[Any]:
        self.log.info(
            "snapshot",
            extra={"extra": {"event": "snapshot", "watcher": self.name, "size": len(snapshot.documents), "changes": len(snapshot.changes)}},
        )
        if not self.initialized:
            self.seed(snapshot)
            self.initialized = True
            return []
        return self.classify(snapshot)

    def on_snapshot(self, snapshot: Snapshot) -> List[asyncio.Task]:
        """Feed callback: apply the snapshot, then run each task independently."""
        tasks = []
        for item in self.apply(snapshot):
            t = asyncio.get_running_loop().create_task(self._run(item))
            self._pending.add(t)
            t.add_done_callback(self._pending.discard)
            tasks.append(t)
        return tasks

    async def _run(self, task: Any) -> None:
        try:
            await self.handle(task)
        except Exception as e:
            self.log.error(
                "handler_error",
                extra={
                    "extra": {
                        "event": "handler_error",
                        "watcher": self.name,
                        "task": repr(task),
                        "error_type": type(e).__name__,
                        "message": str(e),
                    }
                },
                exc_info=True,
            )

    async def fan_out(self, recipients: Iterable[str], kind: NotificationKind, message: PushMessage) -> int:
        """Notify each recipient on its own; one failing recipient does not stop the rest."""
        failures = 0
        for recipient_id in recipients:
            try:
                await self.orchestrator.notify(recipient_id, kind, message)
            except Exception as e:
                failures += 1
                self.log.error(
                    "recipient_notify_failed",
                    extra={
                        "extra": {
                            "event": "recipient_notify_failed",
                            "watcher": self.name,
                            "recipient_id": recipient_id,
                            "error_type": type(e).__name__,
                            "message": str(e),
                        }
                    },
                    exc_info=True,
                )
        return failures

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def skip(self, reason: str, **fields: Any) -> None:
        self.log.info(reason, extra={"extra": {"event": reason, "watcher": self.name, **fields}})
