import asyncio
import inspect
from typing import Any, Callable


class TimerSlot:
    """
    A single named one-shot timer. Scheduling replaces any pending timer,
    so at most one is ever armed.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.scheduled = 0
        self._task: asyncio.Task | None = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def schedule(self, delay: float, callback: Callable[[], Any]) -> None:
        self.cancel()
        self.scheduled += 1
        self._task = asyncio.create_task(self._run(delay, callback))

    async def _run(self, delay: float, callback: Callable[[], Any]) -> None:
        await asyncio.sleep(delay)

        # Cleared first so the callback may re-arm this slot.
        self._task = None

        result = callback()
        if inspect.isawaitable(result):
            await result

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

        self._task = None


class IntervalSlot:
    """A repeating timer. Starting a running slot is a no-op."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, interval: float, callback: Callable[[], Any]) -> None:
        if self.running:
            return

        self._task = asyncio.create_task(self._loop(interval, callback))

    async def _loop(self, interval: float, callback: Callable[[], Any]) -> None:
        while True:
            await asyncio.sleep(interval)

            result = callback()
            if inspect.isawaitable(result):
                await result

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()

        self._task = None
