"""Serialized task queue for link (group) mutations.

Link operations read distribution info, issue several device commands and
read it back.  Two such sequences running interleaved would act on each
other's half-applied state, so the group manager pushes every operation
through a :class:`TaskQueue` with a concurrency of one.

A failing task never reaches the code that pushed it.  The failure is logged,
kept in a short history and handed to an optional ``on_result`` hook; the
queue then continues with the next task.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

_LOGGER = logging.getLogger(__name__)

TaskFactory = Callable[[], Awaitable[Any]]

__all__ = ["TaskQueue", "TaskResult"]


@dataclass(frozen=True)
class TaskResult:
    """Outcome of one queued task."""

    name: str
    ok: bool
    error: Exception | None = None
    duration: float = 0.0


class TaskQueue:
    """FIFO queue running at most ``concurrency`` tasks at a time."""

    def __init__(
        self,
        concurrency: int = 1,
        on_result: Callable[[TaskResult], None] | None = None,
        history_size: int = 50,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.concurrency = concurrency
        self._on_result = on_result
        self._pending: deque[tuple[str, TaskFactory]] = deque()
        self._running: set[asyncio.Task[TaskResult]] = set()
        self._idle = asyncio.Event()
        self._idle.set()
        self._closed = False
        self._counter = 0
        self.results: deque[TaskResult] = deque(maxlen=history_size)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def push(self, factory: TaskFactory, name: str | None = None) -> None:
        """Run *factory* now if a slot is free, otherwise queue it."""
        if self._closed:
            _LOGGER.warning("Task queue is closed, dropping %s", name or factory)
            return
        self._counter += 1
        name = name or f"task-{self._counter}"
        if len(self._running) < self.concurrency:
            self._start(name, factory)
        else:
            _LOGGER.debug("Queueing %s (%d already pending)", name, len(self._pending))
            self._pending.append((name, factory))

    async def join(self) -> None:
        """Wait until no task is running or pending."""
        await self._idle.wait()

    async def close(self) -> None:
        """Drop pending tasks and cancel the running ones."""
        self._closed = True
        self._pending.clear()
        running = list(self._running)
        for task in running:
            task.cancel()
        if running:
            await asyncio.gather(*running, return_exceptions=True)
        self._idle.set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    @property
    def running(self) -> int:
        return len(self._running)

    @property
    def failures(self) -> list[TaskResult]:
        return [r for r in self.results if not r.ok]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _start(self, name: str, factory: TaskFactory) -> None:
        self._idle.clear()
        task = asyncio.get_running_loop().create_task(self._run(name, factory), name=name)
        self._running.add(task)
        task.add_done_callback(self._on_done)

    async def _run(self, name: str, factory: TaskFactory) -> TaskResult:
        started = time.monotonic()
        try:
            await factory()
        except asyncio.CancelledError:
            raise
        except Exception as err:  # noqa: BLE001 – queued tasks never propagate
            _LOGGER.error("Queued task %s failed: %s", name, err, exc_info=_LOGGER.isEnabledFor(logging.DEBUG))
            result = TaskResult(name=name, ok=False, error=err, duration=time.monotonic() - started)
        else:
            result = TaskResult(name=name, ok=True, duration=time.monotonic() - started)
        self._record(result)
        return result

    def _record(self, result: TaskResult) -> None:
        self.results.append(result)
        if self._on_result is None:
            return
        try:
            self._on_result(result)
        except Exception as err:  # noqa: BLE001 – hook must not stall the queue
            _LOGGER.warning("Task result hook failed for %s: %s", result.name, err)

    def _on_done(self, task: asyncio.Task[TaskResult]) -> None:
        self._running.discard(task)
        if self._pending and not self._closed:
            name, factory = self._pending.popleft()
            self._start(name, factory)
        elif not self._running:
            self._idle.set()
