"""
Cancellable delayed execution on the asyncio event loop.

Gives the poller a ``schedule_after(delay, fn) -> handle`` / ``cancel(handle)``
pair.  Cancelling a handle only prevents a run that has not started yet; a
run that is already executing is left to finish.

CHANGELOG:
- 2026-10-05: Initial creation (STORY-114)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class Timers:
    """Schedule coroutine functions to run after a delay.

    Started runs are tracked as tasks so they are not garbage collected
    mid-flight and can be awaited with :meth:`drain`.
    """

    def __init__(self) -> None:
        self._handles: set[asyncio.TimerHandle] = set()
        self._tasks: set[asyncio.Task[None]] = set()

    def schedule_after(
        self,
        delay_s: float,
        fn: Callable[[], Awaitable[None]],
    ) -> asyncio.TimerHandle:
        """Run ``fn()`` as a task after *delay_s* seconds.

        Args:
            delay_s: Delay in seconds (negative values run immediately).
            fn: Coroutine function taking no arguments.

        Returns:
            A handle accepted by :meth:`cancel`.
        """
        loop = asyncio.get_running_loop()
        handle: asyncio.TimerHandle

        def _fire() -> None:
            self._handles.discard(handle)
            task = loop.create_task(fn())
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        handle = loop.call_later(max(0.0, delay_s), _fire)
        self._handles.add(handle)
        return handle

    def cancel(self, handle: asyncio.TimerHandle | None) -> None:
        """Cancel a pending run; a no-op for ``None`` or already-fired handles."""
        if handle is None:
            return
        handle.cancel()
        self._handles.discard(handle)

    def cancel_all(self) -> None:
        """Cancel every pending run."""
        for handle in list(self._handles):
            handle.cancel()
        self._handles.clear()

    @property
    def pending(self) -> int:
        """Number of scheduled runs that have not fired yet."""
        return len(self._handles)

    async def drain(self) -> None:
        """Wait for runs that have already started to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
