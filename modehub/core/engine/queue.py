"""
Sequential job queue — the coordination primitive of the engine.

Tasks run one at a time, in order, against a bound context (the module or
the program the tasks belong to). A task is an async (or plain) callable
taking that context:

    returning          → the task is done, the next one starts
    raising            → the queue closes with that error, the rest is skipped
    returning tasks    → those run next, ahead of everything still pending

The queue reports its outcome exactly once, both through the future
returned by ``start()`` and through the optional ``on_done`` callback.

``incr()`` / ``decr()`` count work a task has fanned out into and left
running in the background; the queue only completes once the pending
tasks are exhausted and that counter is back at zero. The index scanner
uses this to test many manifests concurrently while still reporting one
aggregate completion.

Queues nest: an outer queue holding one task per module, each of which
runs an inner queue of install stages. An inner failure raises out of the
outer task and closes the outer queue, so later modules never start.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import deque
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

logger = logging.getLogger(__name__)

Task = Callable[[Any], "Awaitable[Iterable[Task] | None] | Iterable[Task] | None"]
DoneCallback = Callable[[BaseException | None], None]


class JobQueue:
    """Ordered, fail-fast task runner bound to an execution context."""

    def __init__(
        self,
        context: Any = None,
        on_done: DoneCallback | None = None,
        *,
        name: str = "",
    ) -> None:
        self.context = context
        self.name = name or (str(context) if context is not None else "queue")
        self._pending: deque[Task] = deque()
        self._on_done = on_done
        self._started = False
        self._closed = False
        self._error: BaseException | None = None
        self._outstanding = 0
        self._settled = asyncio.Event()
        self._settled.set()
        self._future: asyncio.Future[None] | None = None
        self._runner: asyncio.Task[None] | None = None

    # ── State ───────────────────────────────────────────────────

    @property
    def started(self) -> bool:
        return self._started

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def error(self) -> BaseException | None:
        """The error the queue closed with, if any."""
        return self._error

    @property
    def outstanding(self) -> int:
        return self._outstanding

    def __len__(self) -> int:
        return len(self._pending)

    def __repr__(self) -> str:
        return (
            f"<JobQueue {self.name!r} pending={len(self._pending)} "
            f"started={self._started} closed={self._closed}>"
        )

    # ── Enqueueing ──────────────────────────────────────────────

    def push(self, task: Task) -> JobQueue:
        """Append a task after everything already pending."""
        if self._closed:
            logger.debug("Queue %s is closed, dropping %r", self.name, task)
            return self
        self._pending.append(task)
        return self

    def push_prioritized(self, *tasks: Task) -> JobQueue:
        """Insert tasks, in the given order, ahead of everything pending."""
        if self._closed:
            logger.debug("Queue %s is closed, dropping %d task(s)", self.name, len(tasks))
            return self
        self._pending.extendleft(reversed(tasks))
        return self

    # ── Outstanding work ────────────────────────────────────────

    def incr(self, n: int = 1) -> None:
        """Register ``n`` units of background work the queue must wait for."""
        self._outstanding += n
        if self._outstanding > 0:
            self._settled.clear()

    def decr(self, n: int = 1) -> None:
        """Mark ``n`` units of background work as finished."""
        if n > self._outstanding:
            raise ValueError(
                f"Queue {self.name}: decr({n}) with only {self._outstanding} outstanding"
            )
        self._outstanding -= n
        if self._outstanding == 0:
            self._settled.set()

    # ── Running ─────────────────────────────────────────────────

    def start(self) -> asyncio.Future[None]:
        """Begin execution on the running loop if not already started.

        Returns the future that resolves (or raises) with the outcome.
        """
        if self._future is None:
            loop = asyncio.get_running_loop()
            self._future = loop.create_future()
            # the outcome is also delivered via on_done; don't warn when
            # nobody awaits the future
            self._future.add_done_callback(_consume)
            if self._closed:
                self._settle_future()
        if not self._started:
            self._started = True
            if not self._closed:
                self._runner = asyncio.get_running_loop().create_task(self._drain())
        return self._future

    async def run(self) -> None:
        """Start the queue and wait for it, raising the first task error."""
        await self.start()

    def close(self, error: BaseException | None = None) -> None:
        """Close the queue, skipping everything still pending.

        Idempotent: only the first call decides the outcome.
        """
        if self._closed:
            return
        self._closed = True
        self._error = error
        self._pending.clear()
        self._settled.set()
        if error is not None:
            logger.debug("Queue %s closed with error: %s", self.name, error)
        self._settle_future()
        if self._on_done is not None:
            self._on_done(error)

    def _settle_future(self) -> None:
        fut = self._future
        if fut is None or fut.done():
            return
        if isinstance(self._error, asyncio.CancelledError):
            fut.cancel()
        elif self._error is not None:
            fut.set_exception(self._error)
        else:
            fut.set_result(None)

    async def _drain(self) -> None:
        try:
            while self._pending and not self._closed:
                task = self._pending.popleft()
                try:
                    follow_ups = await _invoke(task, self.context)
                except Exception as exc:
                    self.close(exc)
                    return
                if self._closed:
                    # closed while the task was in flight; its result is void
                    return
                if follow_ups:
                    self.push_prioritized(*follow_ups)

            if not self._closed:
                await self._settled.wait()
                self.close()
        except asyncio.CancelledError as exc:
            self.close(exc)
            raise


async def _invoke(task: Task, context: Any) -> list[Task]:
    result = task(context)
    if inspect.isawaitable(result):
        result = await result
    if result is None:
        return []
    return list(result)


def _consume(fut: asyncio.Future[None]) -> None:
    if not fut.cancelled():
        fut.exception()
