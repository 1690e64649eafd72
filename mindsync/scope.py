"""Per-stage cancellation scope for in-flight service calls."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

T = TypeVar("T")

log = logging.getLogger("mindsync.scope")


class StageLeft(Exception):
    """The stage that issued a request is no longer mounted."""

    def __init__(self, stage: str):
        self.stage = stage
        super().__init__(f"Stage '{stage}' is no longer active")


class StageScope:
    """Tracks the tasks a mounted stage started.

    Once cancelled, pending tasks are cancelled and any result that still
    comes back is turned into StageLeft instead of reaching the stage.
    """

    def __init__(self, stage: str):
        self.stage = stage
        self.active = True
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, coro: Awaitable[T]) -> asyncio.Task:
        if not self.active:
            coro.close()
            raise StageLeft(self.stage)
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def call(self, coro: Awaitable[T]) -> T:
        """Run a request inside the scope and return its result."""
        task = self.spawn(coro)
        try:
            result = await task
        except asyncio.CancelledError:
            if self.active:
                raise
            raise StageLeft(self.stage) from None
        if not self.active:
            raise StageLeft(self.stage)
        return result

    @property
    def pending(self) -> int:
        return sum(1 for t in self._tasks if not t.done())

    async def settle(self, timeout: float | None = None) -> None:
        """Wait for the scope's pending tasks, up to timeout seconds."""
        current = asyncio.current_task()
        pending = [t for t in self._tasks if t is not current and not t.done()]
        if pending:
            await asyncio.wait(pending, timeout=timeout)

    def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        current = asyncio.current_task()
        cancelled = 0
        for t in list(self._tasks):
            if t is not current and not t.done():
                t.cancel()
                cancelled += 1
        if cancelled:
            log.info("Left %s with %d request(s) in flight, cancelled", self.stage, cancelled)
