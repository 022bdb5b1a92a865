"""
Request scheduler for provider calls.

A single FIFO queue with a global minimum interval between dispatch starts.
It is the only component that issues calls to the provider; every client
shares one instance per process.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from dashfeed.logging import get_logger, log_context
from dashfeed.types import EndpointKind, Request

logger = get_logger(__name__)

T = TypeVar("T")

# Free tier allows 5 requests per minute
DEFAULT_MIN_INTERVAL = 12.0


class RequestScheduler:
    """Serialize provider calls behind a strict cadence.

    Tasks dispatch in enqueue order. The start of one dispatch and the start
    of the next are never closer than `min_interval` seconds, however many
    producers enqueue concurrently. Each dispatched task is awaited before
    the next one starts, so at most one provider call is in flight and a
    hung task stalls the queue behind it.

    The scheduler never retries, never drops and never interprets results:
    whatever the task returns or raises is forwarded to its future as-is.
    """

    def __init__(
        self,
        min_interval: float = DEFAULT_MIN_INTERVAL,
        *,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            min_interval: Minimum seconds between dispatch starts.
            clock: Monotonic time source. Defaults to the running loop's clock.
            sleep: Coroutine used to wait. Defaults to asyncio.sleep.
        """
        if min_interval <= 0:
            raise ValueError("min_interval must be positive")

        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep or asyncio.sleep

        self._queue: deque[Request] = deque()
        self._last_dispatch: float | None = None
        self._busy = False
        self._worker: asyncio.Task[None] | None = None
        self._idle = asyncio.Event()
        self._idle.set()

        self.dispatch_times: list[float] = []

    def _now(self) -> float:
        if self._clock is not None:
            return self._clock()
        return asyncio.get_running_loop().time()

    @property
    def pending(self) -> int:
        """Number of requests waiting for their turn."""
        return len(self._queue)

    @property
    def busy(self) -> bool:
        """Whether the dispatch loop is running."""
        return self._busy

    @property
    def dispatched(self) -> int:
        """Total number of dispatches issued."""
        return len(self.dispatch_times)

    @property
    def last_dispatch(self) -> float | None:
        """Clock time of the most recent dispatch start."""
        return self._last_dispatch

    def enqueue(
        self,
        task: Callable[[], Awaitable[T]],
        *,
        endpoint: EndpointKind | None = None,
        params: dict[str, Any] | None = None,
    ) -> asyncio.Future[T]:
        """Queue a task and return a future for its outcome.

        Must be called from within a running event loop.

        Args:
            task: Zero-argument coroutine function issuing one provider call.
            endpoint: Provider endpoint, for logging.
            params: Request parameters, for logging.

        Returns:
            Future resolved with the task's result or its exception.
        """
        loop = asyncio.get_running_loop()
        request = Request(
            task=task,
            future=loop.create_future(),
            enqueued_at=self._now(),
            endpoint=endpoint,
            params=params or {},
        )
        self._queue.append(request)

        logger.debug(
            "Request enqueued",
            request_id=request.request_id,
            function=endpoint.value if endpoint else None,
            pending=len(self._queue),
        )

        if not self._busy:
            self._busy = True
            self._idle.clear()
            self._worker = loop.create_task(self._run())

        return request.future

    async def _run(self) -> None:
        """Drain the queue, one dispatch at a time."""
        try:
            while self._queue:
                if self._last_dispatch is not None:
                    wait = self._last_dispatch + self.min_interval - self._now()
                    if wait > 0:
                        logger.debug(
                            "Waiting for cadence slot",
                            wait_seconds=round(wait, 3),
                            pending=len(self._queue),
                        )
                        await self._sleep(wait)

                request = self._queue.popleft()
                self._last_dispatch = self._now()
                self.dispatch_times.append(self._last_dispatch)
                await self._dispatch(request)
        finally:
            self._busy = False
            self._worker = None
            self._idle.set()

    async def _dispatch(self, request: Request) -> None:
        endpoint = request.endpoint.value if request.endpoint else None
        with log_context(request_id=request.request_id, endpoint=endpoint):
            logger.info(
                "Dispatching request",
                queued_seconds=round(self._last_dispatch - request.enqueued_at, 3),
                pending=len(self._queue),
            )
            try:
                result = await request.task()
            except Exception as e:
                if not request.future.done():
                    request.future.set_exception(e)
                else:
                    logger.debug("Discarding failure for abandoned request", error=str(e))
                return

            if not request.future.done():
                request.future.set_result(result)
            else:
                logger.debug("Discarding result for abandoned request")

    async def aclose(self) -> None:
        """Wait until every queued request has been dispatched.

        Queued requests may still use the HTTP client, so call this before
        closing it.
        """
        await self._idle.wait()
