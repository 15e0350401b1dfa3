"""Fire-and-forget background work.

Work submitted here is best effort: it runs on the current event loop after
the caller has moved on, failures are logged and never re-raised, and
nothing is retried. The runner keeps a strong reference to every pending
task so it cannot be garbage collected mid-flight, and ``drain`` lets the
hosting process wait for in-flight work before it exits. Blocking calls
inside that work go through ``run_sync`` so they never stall the loop.
"""

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_sync(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking call in the default thread pool executor."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, lambda: func(*args, **kwargs))


class BackgroundTaskRunner:
    """Tracks detached asyncio tasks and logs their failures."""

    def __init__(self, name: str = "background"):
        self.name = name
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, coro: Coroutine[Any, Any, Any], description: str) -> asyncio.Task[Any]:
        """Schedule ``coro`` without awaiting it.

        Must be called from within a running event loop.
        """
        task = asyncio.create_task(self._run(coro, description))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, coro: Coroutine[Any, Any, Any], description: str) -> Any:
        try:
            return await coro
        except Exception:
            logger.exception("[%s] %s failed", self.name, description)
            return None

    async def drain(self, timeout: float | None = None) -> int:
        """Wait for all pending tasks, including ones submitted while draining.

        Returns the number of tasks still pending when ``timeout`` expired.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout

        while True:
            running = {task for task in self._tasks if not task.done()}
            if not running:
                return 0
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                break
            await asyncio.wait(running, timeout=remaining)

        logger.warning(
            "[%s] %d background task(s) still running after drain timeout",
            self.name,
            len(running),
        )
        return len(running)
