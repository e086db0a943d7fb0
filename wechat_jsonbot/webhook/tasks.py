"""Fire-and-forget task runner for work that outlives the HTTP response."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

logger = logging.getLogger(__name__)

ErrorReporter = Callable[[str, BaseException], None]


def _log_error(label: str, exc: BaseException) -> None:
    logger.error("wechat: %s: %s", label, exc)


class BackgroundTaskRunner:
    """Schedules coroutines on the running loop and reports their failures.

    Tasks are referenced until they finish so they are not garbage collected
    mid-flight. Errors never propagate; they go to ``on_error`` (or the
    module logger) with the label given at spawn time.
    """

    def __init__(self, on_error: ErrorReporter | None = None) -> None:
        self._on_error = on_error or _log_error
        self._tasks: set[asyncio.Task[Any]] = set()

    def spawn(
        self,
        coro: Coroutine[Any, Any, Any],
        label: str,
        on_error: ErrorReporter | None = None,
    ) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        reporter = on_error or self._on_error

        def _done(finished: asyncio.Task[Any]) -> None:
            self._tasks.discard(finished)
            if finished.cancelled():
                return
            exc = finished.exception()
            if exc is not None:
                reporter(label, exc)

        task.add_done_callback(_done)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait until every spawned task, including ones spawned meanwhile, is done."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
            # Done-callbacks run on the next loop iteration.
            await asyncio.sleep(0)
