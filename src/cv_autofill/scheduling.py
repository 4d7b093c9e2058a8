"""Timer abstractions for mutation-driven and periodic rescans."""

import asyncio
import contextlib
from typing import Awaitable, Callable, Optional, Set

from cv_autofill.utils.logging import get_logger

logger = get_logger(__name__)

AsyncCallback = Callable[[], Awaitable[object]]


class Debouncer:
    """
    Arm on signal, collapse repeated signals, fire once.

    Every signal restarts the quiet window; the callback runs once the
    window elapses with no further signals.
    """

    def __init__(self, delay: float, callback: AsyncCallback):
        self.delay = delay
        self.callback = callback
        self.fire_count = 0
        self._handle: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()
        self.logger = logger.bind(component="debouncer")

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def signal(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def drain(self) -> None:
        """Wait for callbacks that already fired."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _fire(self) -> None:
        self._handle = None
        self.fire_count += 1
        task = asyncio.ensure_future(self._run())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self) -> None:
        try:
            await self.callback()
        except Exception as e:
            self.logger.error("Debounced callback failed", error=str(e))


class PeriodicTimer:
    """Runs a callback every ``interval`` seconds until stopped."""

    def __init__(self, interval: float, callback: AsyncCallback):
        self.interval = interval
        self.callback = callback
        self._task: Optional[asyncio.Task] = None
        self.logger = logger.bind(component="periodic_timer")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.ensure_future(self._loop())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.callback()
            except Exception as e:
                self.logger.error("Periodic callback failed", error=str(e))
