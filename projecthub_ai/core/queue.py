"""Bounded FIFO request queue for provider calls."""

import asyncio
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, Optional, Set, TypeVar

from projecthub_ai.exceptions import TimeoutError
from projecthub_ai.logger import get_logger

from .task import QueueTask

logger = get_logger(__name__)

T = TypeVar("T")


class RequestQueue:
    """
    Concurrency limiter for calls to the model provider.

    Features:
    - FIFO dispatch: the earliest waiting operation starts first
    - Fixed ceiling on operations in flight
    - Every submitted operation settles exactly once
    - Optional per-operation timeout that fails the task and frees its slot

    Completion order is not guaranteed to match submission order once more
    than one operation is in flight.
    """

    def __init__(self, max_concurrent: int = 5, task_timeout: Optional[float] = None):
        """
        Initialize the request queue.

        Args:
            max_concurrent: Maximum number of operations executing at once
            task_timeout: Seconds before a running operation is failed (None disables)
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        self.max_concurrent = max_concurrent
        self.task_timeout = task_timeout
        self._pending: Deque[QueueTask] = deque()
        self._running: Set["asyncio.Task[None]"] = set()
        self._active = 0
        self._draining = False
        self._peak_active = 0
        self._total_submitted = 0
        self._total_completed = 0
        self._total_failed = 0
        self._total_timed_out = 0

    @property
    def active_count(self) -> int:
        return self._active

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def submit(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Queue an operation and wait for its result.

        Args:
            operation: Zero-argument callable returning an awaitable

        Returns:
            The operation's result

        Raises:
            Whatever the operation raised, or TimeoutError if it exceeded task_timeout
        """
        loop = asyncio.get_running_loop()
        task = QueueTask(operation=operation, future=loop.create_future())
        self._pending.append(task)
        self._total_submitted += 1

        logger.debug(
            f"Queued request {task.task_id}",
            extra={"queue_size": len(self._pending), "active": self._active}
        )

        self._drain()
        return await task.future

    def _drain(self) -> None:
        """Start queued operations while capacity allows."""
        if self._draining:
            return

        self._draining = True
        try:
            while self._pending and self._active < self.max_concurrent:
                task = self._pending.popleft()
                self._active += 1
                self._peak_active = max(self._peak_active, self._active)
                task.mark_running()

                runner = asyncio.ensure_future(self._execute(task))
                self._running.add(runner)
                runner.add_done_callback(self._running.discard)
        finally:
            self._draining = False

    async def _execute(self, task: QueueTask) -> None:
        """Run one operation and settle its future."""
        try:
            if self.task_timeout:
                result = await asyncio.wait_for(task.operation(), timeout=self.task_timeout)
            else:
                result = await task.operation()
        except asyncio.TimeoutError:
            self._total_timed_out += 1
            self._total_failed += 1
            logger.warning(
                f"Request {task.task_id} timed out after {self.task_timeout}s",
                extra=task.to_summary()
            )
            task.reject(TimeoutError(f"Model request timed out after {self.task_timeout} seconds"))
        except asyncio.CancelledError:
            self._total_failed += 1
            task.cancel()
            raise
        except Exception as e:
            self._total_failed += 1
            task.reject(e)
        else:
            self._total_completed += 1
            task.resolve(result)
        finally:
            self._active -= 1
            if self._pending:
                asyncio.get_running_loop().call_soon(self._drain)

    async def wait_idle(self) -> None:
        """Wait until nothing is queued or running."""
        while self._pending or self._running:
            if self._running:
                await asyncio.gather(*list(self._running), return_exceptions=True)
            else:
                await asyncio.sleep(0)

    def get_stats(self) -> Dict[str, Any]:
        """Get queue statistics."""
        return {
            "queue_size": len(self._pending),
            "active": self._active,
            "max_concurrent": self.max_concurrent,
            "peak_active": self._peak_active,
            "total_submitted": self._total_submitted,
            "total_completed": self._total_completed,
            "total_failed": self._total_failed,
            "total_timed_out": self._total_timed_out,
        }
