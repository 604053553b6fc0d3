# core/services/periodic_task.py
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable


class PeriodicTask:
    """
    Runs an async callable every `every_s` seconds in a background task.

    - A failing tick is logged and the loop continues with the next tick.
    - stop() stops scheduling new ticks and waits for the in-flight one.
    """

    def __init__(
        self,
        *,
        name: str,
        every_s: float,
        fn: Callable[[], Awaitable[object]],
        run_immediately: bool = True,
        logger: logging.Logger | None = None,
    ):
        self._name = name
        self._every_s = float(every_s)
        self._fn = fn
        self._run_immediately = bool(run_immediately)
        self._logger = logger or logging.getLogger(self.__class__.__name__)

        self._task: asyncio.Task | None = None
        self._stop = asyncio.Event()
        self.ticks = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the loop in background."""
        if self._task is None:
            self._stop.clear()
            self._task = asyncio.create_task(self._run(), name=self._name)

    async def stop(self) -> None:
        """Stop the loop gracefully."""
        self._stop.set()
        if self._task is not None:
            await self._task
            self._task = None

    async def _run(self) -> None:
        if not self._run_immediately and await self._wait():
            return

        while not self._stop.is_set():
            try:
                await self._fn()
            except Exception as exc:
                self._logger.exception("Periodic task %s tick failed: %s", self._name, exc)
            self.ticks += 1

            if await self._wait():
                return

    async def _wait(self) -> bool:
        """Sleep until the next tick. Returns True if stop() was requested."""
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=self._every_s)
        except asyncio.TimeoutError:
            return False
        return True
