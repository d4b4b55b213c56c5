"""Scheduled tasks with cancellation handles.

A `TaskScope` owns every background coroutine and timer started on behalf
of one view. Closing the scope (view unmount) cancels whatever is still in
flight, so no callback fires into a discarded session.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Coroutine, Generator, Optional, Set

logger = logging.getLogger(__name__)


class TaskHandle:
    """Cancellation handle for a task started by a `TaskScope`.

    Awaiting the handle awaits the underlying task.
    """

    def __init__(self, task: "asyncio.Task[Any]") -> None:
        self._task = task

    @property
    def name(self) -> str:
        return self._task.get_name()

    @property
    def done(self) -> bool:
        return self._task.done()

    @property
    def cancelled(self) -> bool:
        return self._task.cancelled()

    def cancel(self) -> bool:
        """Request cancellation. Returns False if the task already finished."""
        return self._task.cancel()

    def result(self) -> Any:
        """Result of a finished task (raises like `asyncio.Task.result`)."""
        return self._task.result()

    def __await__(self) -> Generator[Any, None, Any]:
        return self._task.__await__()

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "done" if self.done else "pending"
        return f"TaskHandle({self.name!r}, {state})"


class TaskScope:
    """
    Owner of the asyncio tasks started for one capture view.

    Example:
        >>> async with TaskScope() as scope:
        ...     handle = scope.spawn(flow.capture(image), name="capture")
        ...     session = await handle
        >>> # leaving the block cancels anything still pending
    """

    def __init__(self) -> None:
        self._tasks: Set["asyncio.Task[Any]"] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def active_count(self) -> int:
        return sum(1 for t in self._tasks if not t.done())

    def spawn(
        self,
        coro: Coroutine[Any, Any, Any],
        name: Optional[str] = None,
    ) -> TaskHandle:
        """Schedule a coroutine in this scope.

        Raises:
            RuntimeError: If the scope is closed.
        """
        if self._closed:
            coro.close()
            raise RuntimeError("TaskScope is closed")

        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        logger.debug("Task scheduled", extra={"task": task.get_name()})
        return TaskHandle(task)

    def call_later(
        self,
        delay: float,
        callback: Callable[..., Optional[Awaitable[Any]]],
        *args: Any,
        name: Optional[str] = None,
    ) -> TaskHandle:
        """Run `callback(*args)` after `delay` seconds unless cancelled first.

        Async callbacks are awaited.
        """

        async def _delayed() -> Any:
            await asyncio.sleep(delay)
            outcome = callback(*args)
            if asyncio.iscoroutine(outcome):
                return await outcome
            return outcome

        return self.spawn(_delayed(), name=name)

    def cancel_all(self) -> int:
        """Cancel every pending task. Returns how many were cancelled."""
        count = 0
        for task in list(self._tasks):
            if task.cancel():
                count += 1
        if count:
            logger.info("Cancelled pending tasks", extra={"count": count})
        return count

    async def close(self) -> None:
        """Cancel pending tasks, wait for them to unwind, refuse new ones."""
        self._closed = True
        self.cancel_all()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def __aenter__(self) -> "TaskScope":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    def _on_done(self, task: "asyncio.Task[Any]") -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.debug("Task cancelled", extra={"task": task.get_name()})
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "Task failed",
                extra={"task": task.get_name(), "error": str(exc)},
                exc_info=exc,
            )
