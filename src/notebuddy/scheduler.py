"""Trailing-edge debounce on the asyncio event loop."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class DebouncedTask:
    """Runs ``callback`` once, ``delay`` seconds after the last ``arm``.

    Every ``arm`` restarts the timer and replaces the captured arguments, so a
    burst of calls collapses into one invocation carrying the latest ones.
    """

    def __init__(
        self,
        callback: Callable[..., Awaitable[Any]],
        delay: float,
    ) -> None:
        """Debounce ``callback`` by ``delay`` seconds."""
        self.callback = callback
        self.delay = delay
        self._handle: asyncio.TimerHandle | None = None
        self._args: tuple[Any, ...] = ()
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> bool:
        """True while a fire is scheduled but has not happened yet."""
        return self._handle is not None

    def arm(self, *args: Any) -> None:  # noqa: ANN401
        """Schedule a fire ``delay`` seconds from now with ``args``."""
        self.cancel()
        self._args = args
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> bool:
        """Drop the scheduled fire, if any. Returns True if one was pending."""
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    def _fire(self) -> None:
        self._handle = None
        task = asyncio.ensure_future(self.callback(*self._args))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Debounced callback failed", exc_info=task.exception())

    async def flush(self) -> None:
        """Fire a pending call immediately and wait for it."""
        if self.cancel():
            await self.callback(*self._args)

    async def wait(self) -> None:
        """Wait for callbacks that are already running."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
