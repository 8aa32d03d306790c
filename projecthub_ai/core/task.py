"""Queue task definition for provider calls."""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional


class QueueTaskStatus(str, Enum):
    """Lifecycle of a queued operation."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(eq=False)
class QueueTask:
    """
    A deferred provider operation waiting for a concurrency slot.

    The task runs its operation exactly once and settles its future exactly
    once; it is never re-enqueued.
    """

    operation: Callable[[], Awaitable[Any]]
    future: "asyncio.Future[Any]"
    task_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    status: QueueTaskStatus = QueueTaskStatus.PENDING
    enqueued_at: float = field(default_factory=time.monotonic)
    started_at: Optional[float] = None
    finished_at: Optional[float] = None

    def mark_running(self) -> None:
        """Mark task as dequeued and executing."""
        self.status = QueueTaskStatus.RUNNING
        self.started_at = time.monotonic()

    def resolve(self, result: Any) -> None:
        """Settle the task successfully."""
        if self.settled:
            return
        self.status = QueueTaskStatus.COMPLETED
        self.finished_at = time.monotonic()
        if not self.future.done():
            self.future.set_result(result)

    def reject(self, error: BaseException) -> None:
        """Settle the task as a failure."""
        if self.settled:
            return
        self.status = QueueTaskStatus.FAILED
        self.finished_at = time.monotonic()
        if not self.future.done():
            self.future.set_exception(error)

    def cancel(self) -> None:
        """Settle the task as cancelled."""
        if self.settled:
            return
        self.status = QueueTaskStatus.FAILED
        self.finished_at = time.monotonic()
        if not self.future.done():
            self.future.cancel()

    @property
    def settled(self) -> bool:
        return self.status in (QueueTaskStatus.COMPLETED, QueueTaskStatus.FAILED)

    @property
    def wait_seconds(self) -> Optional[float]:
        """Time spent in the queue before a slot freed up."""
        if self.started_at is None:
            return None
        return self.started_at - self.enqueued_at

    def to_summary(self) -> Dict[str, Any]:
        """Get task summary for logging."""
        return {
            "task_id": self.task_id,
            "status": self.status.value,
            "wait_seconds": round(self.wait_seconds, 3) if self.wait_seconds is not None else None,
            "run_seconds": (
                round(self.finished_at - self.started_at, 3)
                if self.finished_at is not None and self.started_at is not None
                else None
            ),
        }
