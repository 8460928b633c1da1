"""
Detached background work.

Used for fire-and-forget writes (dedup TTL refresh). A failed task is logged
and never propagates into the request that submitted it.
"""

import asyncio
from typing import Coroutine, Set

from infra.logger import get_logger

log = get_logger("ingestor.background")


class BackgroundTasks:

    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    def submit(self, coro: Coroutine, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        # keep a strong reference until done
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            log.warning("background.task.failed", task=task.get_name(), error=str(error))

    async def drain(self) -> None:
        """Wait for everything submitted so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def __len__(self) -> int:
        return len(self._tasks)
