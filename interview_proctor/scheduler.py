"""
Deferred Check Scheduler - Cancellable delayed callbacks bound to a session

AsyncioScheduler is used for live sessions driven from an event loop and
accepts calls from other threads. ThreadingScheduler covers synchronous
callers with no loop. ManualScheduler fires tasks when told what time it
is, for replaying recorded signal streams.
"""

import asyncio
import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


def _on_loop_thread(loop: asyncio.AbstractEventLoop) -> bool:
    try:
        return asyncio.get_running_loop() is loop
    except RuntimeError:
        return False


class ScheduledTask:
    """Handle for one deferred callback."""

    def __init__(self, session_id: str, callback: Callable[[], None]):
        self.session_id = session_id
        self._callback = callback
        self.cancelled = False
        self.done = False
        self._handle = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self.due_at: Optional[datetime] = None

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.done)

    def cancel(self):
        if not self.pending:
            return
        self.cancelled = True
        handle = self._handle
        if handle is None:
            return
        if self._loop is not None and not _on_loop_thread(self._loop):
            self._loop.call_soon_threadsafe(handle.cancel)
        else:
            handle.cancel()

    def run(self):
        if not self.pending:
            return
        self.done = True
        self._callback()

    def _arm(self, delay_ms: int):
        """Start the loop timer. Runs on the loop thread."""
        if self.pending:
            self._handle = self._loop.call_later(delay_ms / 1000, self.run)


class _BaseScheduler:
    def __init__(self):
        self._tasks: Dict[str, List[ScheduledTask]] = {}
        self._tasks_lock = threading.Lock()

    def _track(self, task: ScheduledTask) -> ScheduledTask:
        with self._tasks_lock:
            tasks = self._tasks.setdefault(task.session_id, [])
            tasks[:] = [t for t in tasks if t.pending]
            tasks.append(task)
        return task

    def pending(self, session_id: str) -> List[ScheduledTask]:
        with self._tasks_lock:
            return [t for t in self._tasks.get(session_id, []) if t.pending]

    def cancel_session(self, session_id: str) -> int:
        """
        Cancel every pending task of a session.

        Returns:
            Number of tasks cancelled
        """
        with self._tasks_lock:
            tasks = self._tasks.pop(session_id, [])

        cancelled = 0
        for task in tasks:
            if task.pending:
                task.cancel()
                cancelled += 1
        if cancelled:
            logger.debug(f"Cancelled {cancelled} deferred task(s) for session {session_id}")
        return cancelled


class AsyncioScheduler(_BaseScheduler):
    """
    Schedules callbacks on an asyncio event loop with call_later.

    Calls from threads other than the loop's are handed to the loop with
    call_soon_threadsafe.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        super().__init__()
        self._loop = loop

    def schedule(self, session_id: str, delay_ms: int, callback: Callable[[], None]) -> ScheduledTask:
        """
        Run callback after delay_ms on the event loop.

        Raises:
            RuntimeError: If no loop was given and none is running in this thread
        """
        loop = self._loop or asyncio.get_running_loop()
        task = ScheduledTask(session_id, callback)
        task._loop = loop
        if _on_loop_thread(loop):
            task._arm(delay_ms)
        else:
            loop.call_soon_threadsafe(task._arm, delay_ms)
        return self._track(task)


class ThreadingScheduler(_BaseScheduler):
    """Runs callbacks on threading.Timer threads; needs no event loop."""

    def schedule(self, session_id: str, delay_ms: int, callback: Callable[[], None]) -> ScheduledTask:
        task = ScheduledTask(session_id, callback)
        timer = threading.Timer(delay_ms / 1000, task.run)
        timer.daemon = True
        task._handle = timer
        self._track(task)
        timer.start()
        return task


class ManualScheduler(_BaseScheduler):
    """Fires tasks when run_due() is called with a time past their deadline."""

    def __init__(self, clock: Callable[[], datetime]):
        super().__init__()
        self._clock = clock

    def schedule(self, session_id: str, delay_ms: int, callback: Callable[[], None]) -> ScheduledTask:
        task = ScheduledTask(session_id, callback)
        task.due_at = self._clock() + timedelta(milliseconds=delay_ms)
        return self._track(task)

    def run_due(self, now: Optional[datetime] = None) -> int:
        """
        Run every pending task whose deadline is at or before now.

        Returns:
            Number of tasks run
        """
        now = now or self._clock()
        with self._tasks_lock:
            due = [
                task
                for tasks in self._tasks.values()
                for task in tasks
                if task.pending and task.due_at <= now
            ]

        due.sort(key=lambda t: t.due_at)
        for task in due:
            task.run()
        return len(due)


def default_scheduler():
    """AsyncioScheduler bound to the running loop, or ThreadingScheduler when there is none."""
    try:
        return AsyncioScheduler(asyncio.get_running_loop())
    except RuntimeError:
        return ThreadingScheduler()
