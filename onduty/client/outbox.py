"""Outbox of remote synchronization tasks.

Every local mutation enqueues one task. Draining hands each task to the
handler registered for its kind exactly once: a task whose remote call fails
is logged and dropped, and never holds up the tasks behind it. No ordering
between tasks is promised beyond the order in which a single drain visits
them.
"""
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
import logging
import threading
from typing import Any, Callable, Deque, Dict, List, Optional

from onduty.exceptions import RemoteUnavailableError
from onduty.models.base import utcnow


logger = logging.getLogger(__name__)


@dataclass
class SyncTask:
    """One pending remote call."""
    kind: str
    entity_id: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    enqueued_at: datetime = field(default_factory=utcnow)


@dataclass
class DrainReport:
    succeeded: List[SyncTask] = field(default_factory=list)
    failed: List[SyncTask] = field(default_factory=list)


class SyncOutbox:
    """Thread-safe FIFO of SyncTasks with per-kind handlers."""

    def __init__(self):
        self._tasks: Deque[SyncTask] = deque()
        self._handlers: Dict[str, Callable[[SyncTask], Any]] = {}
        self._lock = threading.Lock()
        self.on_enqueue: Optional[Callable[[], None]] = None

    def register(self, kind: str, handler: Callable[[SyncTask], Any]) -> None:
        self._handlers[kind] = handler

    def enqueue(self, kind: str, entity_id: Optional[str] = None, payload: Optional[Dict[str, Any]] = None) -> SyncTask:
        """
        Queue a remote call.

        Raises:
            ValueError: If no handler is registered for ``kind``
        """
        if kind not in self._handlers:
            raise ValueError(f"No sync handler registered for {kind}")

        task = SyncTask(kind=kind, entity_id=entity_id, payload=payload or {})
        with self._lock:
            self._tasks.append(task)
        logger.debug(f"Enqueued {kind} for {entity_id}")

        if self.on_enqueue is not None:
            self.on_enqueue()
        return task

    def pending(self) -> List[SyncTask]:
        with self._lock:
            return list(self._tasks)

    def size(self) -> int:
        with self._lock:
            return len(self._tasks)

    def remap(self, old_id: str, new_id: str) -> int:
        """
        Point queued tasks at an entity's new identifier.

        Returns:
            Number of tasks rewritten
        """
        count = 0
        with self._lock:
            for task in self._tasks:
                if task.entity_id == old_id:
                    task.entity_id = new_id
                    count += 1
        return count

    def _next(self) -> Optional[SyncTask]:
        with self._lock:
            if self._tasks:
                return self._tasks.popleft()
            return None

    def drain(self, limit: Optional[int] = None) -> DrainReport:
        """
        Attempt queued tasks once each.

        Args:
            limit: Maximum number of tasks to attempt, all when None

        Returns:
            DrainReport listing succeeded and failed tasks
        """
        report = DrainReport()
        while limit is None or len(report.succeeded) + len(report.failed) < limit:
            task = self._next()
            if task is None:
                break

            # Handler runs without the lock so it may remap or enqueue
            try:
                self._handlers[task.kind](task)
            except RemoteUnavailableError as e:
                logger.warning(f"Sync {task.kind} for {task.entity_id} failed: {e.message}")
                report.failed.append(task)
            else:
                report.succeeded.append(task)

        if report.succeeded or report.failed:
            logger.info(
                f"Outbox drained: {len(report.succeeded)} succeeded, {len(report.failed)} failed"
            )
        return report
