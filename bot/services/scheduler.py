"""
Delayed task scheduling for deferred matchmaking work.

Wraps asyncio tasks in observable, cancellable handles so post-join triggers
and post-round requeues are not opaque timers.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from bot.database.models import utc_now

logger = logging.getLogger(__name__)


@dataclass
class ScheduledTask:
    """Handle for one delayed callback."""
    name: str
    delay_seconds: float
    due_at: datetime
    callback: Callable[..., Awaitable[Any]]
    args: Tuple[Any, ...] = ()
    task: Optional[asyncio.Task] = field(default=None, repr=False)
    cancelled: bool = False

    @property
    def done(self) -> bool:
        return self.task is not None and self.task.done()


class TaskScheduler:
    """Runs coroutine callbacks after a delay on the running event loop."""

    def __init__(self):
        self._tasks: List[ScheduledTask] = []

    def schedule(self, delay_seconds: float, callback: Callable[..., Awaitable[Any]],
                 *args, name: Optional[str] = None) -> ScheduledTask:
        """
        Schedule `await callback(*args)` to run after delay_seconds.

        Must be called from within a running event loop.
        """
        handle = ScheduledTask(
            name=name or getattr(callback, '__name__', 'task'),
            delay_seconds=delay_seconds,
            due_at=utc_now() + timedelta(seconds=delay_seconds),
            callback=callback,
            args=args
        )
        handle.task = asyncio.get_running_loop().create_task(
            self._run_later(handle), name=handle.name
        )
        handle.task.add_done_callback(lambda _: self._forget(handle))
        self._tasks.append(handle)
        logger.debug(f"Scheduled {handle.name} in {delay_seconds}s")
        return handle

    async def _run_later(self, handle: ScheduledTask):
        await asyncio.sleep(handle.delay_seconds)
        try:
            await handle.callback(*handle.args)
        except Exception as e:
            logger.error(f"Scheduled task {handle.name} failed: {e}", exc_info=True)

    def _forget(self, handle: ScheduledTask):
        if handle in self._tasks:
            self._tasks.remove(handle)

    @property
    def pending(self) -> List[ScheduledTask]:
        return [handle for handle in self._tasks if not handle.done]

    def cancel(self, handle: ScheduledTask) -> bool:
        if handle.task is None or handle.task.done():
            return False
        handle.cancelled = True
        handle.task.cancel()
        return True

    def cancel_all(self) -> int:
        count = 0
        for handle in list(self._tasks):
            if self.cancel(handle):
                count += 1
        return count
