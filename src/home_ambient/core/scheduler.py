"""
Periodic task scheduling for the engine's timers.

Each Ticker runs one coroutine on a fixed interval. A Ticker never runs its
callback concurrently with itself: a fire() that arrives while the previous
invocation is still running is skipped. Exceptions raised by the callback are
logged and never stop the ticker.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

TickCallback = Callable[[], Awaitable[object]]


class Ticker:
    """Single-flight periodic runner for one async callback."""

    def __init__(
        self,
        name: str,
        callback: TickCallback,
        interval: float,
        run_immediately: bool = False,
    ) -> None:
        """
        Args:
            name: Name used in log messages
            callback: Coroutine function to run on each tick
            interval: Seconds between ticks
            run_immediately: If True, fire once as soon as the ticker starts
        """
        if interval <= 0:
            raise ValueError(f"Ticker {name}: interval must be positive")
        self.name = name
        self.interval = interval
        self._callback = callback
        self._run_immediately = run_immediately
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._in_flight = False
        self._idle: Optional[asyncio.Event] = None
        self.fire_count = 0
        self.skip_count = 0
        self.error_count = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def start(self) -> None:
        """Start the ticker on the running event loop."""
        if self.is_running:
            logger.debug(f"Ticker {self.name} already running")
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name=f"ticker:{self.name}")
        logger.info(f"Started ticker {self.name} (interval: {self.interval}s)")

    async def fire(self) -> bool:
        """
        Run the callback once unless a previous invocation is still running.

        Returns:
            True if the callback ran, False if it was skipped
        """
        if self._in_flight:
            self.skip_count += 1
            logger.warning(f"Ticker {self.name}: previous tick still running, skipping")
            return False

        self._in_flight = True
        if self._idle is None:
            self._idle = asyncio.Event()
        self._idle.clear()
        try:
            await self._callback()
        except Exception as e:
            self.error_count += 1
            logger.error(f"Ticker {self.name} error: {e}", exc_info=True)
        finally:
            self._in_flight = False
            self._idle.set()
            self.fire_count += 1
        return True

    async def stop(self) -> None:
        """
        Stop the ticker.

        Waits for an in-flight callback to finish instead of cancelling it.
        """
        if self._stop_event is not None:
            self._stop_event.set()

        if self._in_flight and self._idle is not None:
            await self._idle.wait()

        if self._task is not None:
            if not self._task.done():
                self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        logger.info(f"Stopped ticker {self.name}")

    async def _run(self) -> None:
        assert self._stop_event is not None
        if self._run_immediately:
            await self.fire()

        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass
            if self._stop_event.is_set():
                break
            await self.fire()
