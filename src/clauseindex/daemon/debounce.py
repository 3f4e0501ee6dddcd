"""Per-key debouncing with cancellable asyncio tasks."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field

import structlog

logger = structlog.get_logger()


@dataclass
class KeyedDebouncer:
    """Delay the latest request per key; a newer request for a key supersedes the pending one.

    Must be used from within a running event loop.
    """

    delay_sec: float
    _tasks: dict[str, asyncio.Task[None]] = field(default_factory=dict, init=False)

    def debounce(self, key: str, callback: Callable[[], object]) -> None:
        """(Re)start the timer for ``key``; ``callback`` runs once it expires."""
        self.cancel(key)
        loop = asyncio.get_running_loop()
        self._tasks[key] = loop.create_task(self._fire(key, callback))

    async def _fire(self, key: str, callback: Callable[[], object]) -> None:
        try:
            await asyncio.sleep(self.delay_sec)
        except asyncio.CancelledError:
            return
        if self._tasks.get(key) is asyncio.current_task():
            del self._tasks[key]
        logger.debug("debounce_fired", key=key)
        callback()

    def cancel(self, key: str) -> None:
        task = self._tasks.pop(key, None)
        if task is not None and not task.done():
            task.cancel()

    def cancel_all(self) -> None:
        for key in list(self._tasks):
            self.cancel(key)

    def pending(self, key: str) -> bool:
        task = self._tasks.get(key)
        return task is not None and not task.done()
