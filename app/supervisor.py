from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from watchers.base import ChangeWatcher
from watchers.feed import ChangeFeed, Snapshot, Subscription

log = logging.getLogger("listappi.supervisor")


class WatcherState(str, Enum):
    STARTING = "starting"
    RUNNING = "running"
    FAILED = "failed"
    STOPPED = "stopped"


@dataclass
class SupervisedWatcher:
    watcher: ChangeWatcher
    feed: ChangeFeed
    state: WatcherState = WatcherState.STOPPED
    subscription: Optional[Subscription] = None
    generation: int = 0
    restarts: int = 0
    last_error: str = ""
    started_at: Optional[float] = None
    retry_handle: Optional[asyncio.TimerHandle] = field(default=None, repr=False)

    @property
    def name(self) -> str:
        return self.watcher.name


class WatcherSupervisor:
    """
    Keeps every watcher subscribed.

    starting -> running -> failed -> (fixed delay) -> starting, forever.
    A start call that raises and a running subscription that goes inactive
    both take the failed path. Each restart reseeds the watcher from a fresh
    initial snapshot.
    """

    def __init__(self, entries: List[SupervisedWatcher], retry_delay_s: float = 5.0, liveness_interval_s: float = 30.0):
        self.entries = entries
        self.retry_delay_s = retry_delay_s
        self.liveness_interval_s = liveness_interval_s
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._liveness_task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        self._loop = asyncio.get_running_loop()
        for entry in self.entries:
            self._start(entry)
        if self.liveness_interval_s > 0:
            self._liveness_task = self._loop.create_task(self._liveness_loop())

    def _start(self, entry: SupervisedWatcher) -> None:
        entry.retry_handle = None
        entry.state = WatcherState.STARTING
        entry.generation += 1
        entry.watcher.reset()
        gen = entry.generation
        try:
            entry.subscription = entry.feed.subscribe(lambda snap: self._deliver(entry, gen, snap))
        except Exception as e:
            log.error(
                "watcher_start_failed",
                extra={"extra": {"event": "watcher_start_failed", "watcher": entry.name, "error_type": type(e).__name__, "message": str(e)}},
                exc_info=True,
            )
            self._fail(entry, f"{type(e).__name__}: {e}")
            return
        entry.state = WatcherState.RUNNING
        entry.started_at = time.time()
        log.info("watcher_started", extra={"extra": {"event": "watcher_started", "watcher": entry.name, "restarts": entry.restarts}})

    def _deliver(self, entry: SupervisedWatcher, gen: int, snapshot: Snapshot) -> None:
        # Late callbacks from a replaced subscription are dropped.
        if gen != entry.generation or entry.state != WatcherState.RUNNING:
            return
        try:
            entry.watcher.on_snapshot(snapshot)
        except Exception as e:
            log.error(
                "watcher_snapshot_error",
                extra={"extra": {"event": "watcher_snapshot_error", "watcher": entry.name, "error_type": type(e).__name__, "message": str(e)}},
                exc_info=True,
            )

    def _fail(self, entry: SupervisedWatcher, reason: str) -> None:
        entry.state = WatcherState.FAILED
        entry.last_error = reason
        entry.subscription = None
        entry.restarts += 1
        log.warning(
            "watcher_restart_scheduled",
            extra={"extra": {"event": "watcher_restart_scheduled", "watcher": entry.name, "delay_s": self.retry_delay_s, "restarts": entry.restarts}},
        )
        entry.retry_handle = self._loop.call_later(self.retry_delay_s, self._start, entry)

    def check(self) -> None:
        """Restart any running watcher whose subscription is no longer active."""
        for entry in self.entries:
            if entry.state != WatcherState.RUNNING or entry.subscription is None:
                continue
            try:
                active = entry.subscription.is_active()
            except Exception as e:
                active = False
                log.warning("watcher_liveness_probe_failed", extra={"extra": {"event": "watcher_liveness_probe_failed", "watcher": entry.name, "error_type": type(e).__name__}})
            if active:
                continue
            log.error("watcher_subscription_lost", extra={"extra": {"event": "watcher_subscription_lost", "watcher": entry.name}})
            entry.subscription.unsubscribe()
            self._fail(entry, "subscription_inactive")

    async def _liveness_loop(self) -> None:
        while True:
            await asyncio.sleep(self.liveness_interval_s)
            self.check()

    async def stop(self) -> None:
        if self._liveness_task:
            self._liveness_task.cancel()
            try:
                await self._liveness_task
            except asyncio.CancelledError:
                pass
            self._liveness_task = None
        for entry in self.entries:
            if entry.retry_handle:
                entry.retry_handle.cancel()
                entry.retry_handle = None
            if entry.subscription:
                entry.subscription.unsubscribe()
                entry.subscription = None
            entry.state = WatcherState.STOPPED
            await entry.watcher.drain()
        log.info("supervisor_stopped", extra={"extra": {"event": "supervisor_stopped"}})

    def status(self) -> List[Dict[str, Any]]:
        return [
            {
                "watcher": e.name,
                "state": e.state.value,
                "restarts": e.restarts,
                "last_error": e.last_error,
                "started_at": e.started_at,
            }
            for e in self.entries
        ]
