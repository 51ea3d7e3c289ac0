"""Rate-limited request scheduling.

Every outbound call goes through one ``RequestScheduler`` per wrapper. Callers
submit a descriptor and await its future; a single background task drains the
queue in arrival order, waits for rate budget, talks to the transport and
delivers exactly one result per descriptor.
"""

from __future__ import annotations

import asyncio
import contextlib
import itertools
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, List, Optional

from ..core.errors import (
    APIError,
    ClientError,
    RateLimited,
    SchedulerClosed,
    ServerError,
    TransportFailure,
)
from ..core.models import RequestKind
from ..core.rate_limit import RateBudget
from .transport import HTTPRequest, HTTPResponse, RateLimitHeaders, Transport, error_details

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RequestDescriptor:
    """One pending outbound call and the cell its result is delivered to."""

    target: HTTPRequest
    future: "asyncio.Future[HTTPResponse]"
    kind: RequestKind = RequestKind.READ
    sequence: int = -1
    failures: int = 0
    _cancelled: bool = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled or self.future.cancelled()

    def cancel(self) -> None:
        """Mark the descriptor abandoned; the scheduler will skip it."""

        self._cancelled = True
        if not self.future.done():
            self.future.cancel()

    def resolve(self, response: HTTPResponse) -> bool:
        if self.future.done():
            return False
        self.future.set_result(response)
        return True

    def fail(self, error: BaseException) -> bool:
        if self.future.done():
            return False
        self.future.set_exception(error)
        return True


class RequestQueue:
    """FIFO of pending descriptors ordered by arrival sequence."""

    def __init__(self) -> None:
        self._items: Deque[RequestDescriptor] = deque()
        self._sequence = itertools.count()
        self._ready = asyncio.Event()
        self._closed = False

    def __len__(self) -> int:
        return len(self._items)

    @property
    def closed(self) -> bool:
        return self._closed

    def enqueue(self, descriptor: RequestDescriptor) -> RequestDescriptor:
        if self._closed:
            raise SchedulerClosed()
        descriptor.sequence = next(self._sequence)
        self._items.append(descriptor)
        self._ready.set()
        return descriptor

    def requeue_front(self, descriptor: RequestDescriptor) -> None:
        """Put a descriptor back at the head without a new sequence number."""

        if self._closed:
            raise SchedulerClosed()
        self._items.appendleft(descriptor)
        self._ready.set()

    async def dequeue_next(self) -> RequestDescriptor:
        while not self._items:
            if self._closed:
                raise SchedulerClosed()
            self._ready.clear()
            await self._ready.wait()
        return self._items.popleft()

    def close(self) -> List[RequestDescriptor]:
        """Reject further enqueues and hand back everything still waiting."""

        self._closed = True
        drained = list(self._items)
        self._items.clear()
        self._ready.set()
        return drained


@dataclass(slots=True)
class SchedulerState:
    """Budgets and queue owned by a single scheduler instance."""

    budgets: Dict[RequestKind, RateBudget]
    queue: RequestQueue = field(default_factory=RequestQueue)

    @classmethod
    def create(
        cls,
        allowance: int,
        clock: Callable[[], float] = time.time,
        listener: Optional[Callable[[], None]] = None,
    ) -> "SchedulerState":
        return cls(budgets={kind: RateBudget(allowance, clock, listener) for kind in RequestKind})


class RequestScheduler:
    """Serializes transport calls against the server's rate budget."""

    def __init__(
        self,
        transport: Transport,
        *,
        max_attempts: int = 3,
        backoff_base: float = 0.5,
        backoff_max: float = 8.0,
        allowance: int = 60,
        headers: Optional[RateLimitHeaders] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._transport = transport
        self._max_attempts = max_attempts
        self._backoff_base = backoff_base
        self._backoff_max = backoff_max
        self._headers = headers or RateLimitHeaders()
        self._clock = clock
        self._state = SchedulerState.create(allowance, clock, listener=self._wake)
        self._task: Optional[asyncio.Task[None]] = None
        self._current: Optional[RequestDescriptor] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._wakeup = asyncio.Event()

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state.queue.closed

    def budget(self, kind: RequestKind) -> RateBudget:
        return self._state.budgets[kind]

    def submit(self, request: HTTPRequest) -> RequestDescriptor:
        """Queue a request and return its descriptor; await ``descriptor.future``."""

        loop = asyncio.get_running_loop()
        self._loop = loop
        descriptor = RequestDescriptor(
            target=request,
            future=loop.create_future(),
            kind=RequestKind.for_method(request.method),
        )
        self._state.queue.enqueue(descriptor)
        # Cancelling the future interrupts a budget stall on this descriptor.
        descriptor.future.add_done_callback(lambda _: self._wake())
        logger.debug("Queued #%s %s %s", descriptor.sequence, request.method, request.path)
        self._ensure_running()
        return descriptor

    def _wake(self) -> None:
        """Interrupt a pending budget stall so the loop re-checks it."""

        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._wakeup.set()
        else:
            loop.call_soon_threadsafe(self._wakeup.set)

    def _ensure_running(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="mcmapi-scheduler")

    async def _run(self) -> None:
        queue = self._state.queue
        while True:
            try:
                descriptor = await queue.dequeue_next()
            except SchedulerClosed:
                return
            if descriptor.cancelled:
                logger.debug("Skipping cancelled request #%s", descriptor.sequence)
                continue
            self._current = descriptor
            try:
                await self._execute(descriptor)
            except Exception as exc:
                logger.exception("Request #%s failed unexpectedly", descriptor.sequence)
                descriptor.fail(exc)
            finally:
                self._current = None

    async def _acquire(self, descriptor: RequestDescriptor) -> bool:
        """Wait for budget; False if the descriptor was cancelled meanwhile.

        The stall ends early when the descriptor is cancelled or a budget
        observation arrives, after which both are checked again.
        """

        budget = self._state.budgets[descriptor.kind]
        while True:
            self._wakeup.clear()
            if descriptor.cancelled:
                return False
            wait_until = budget.try_consume()
            if wait_until is None:
                return True
            delay = max(wait_until - self._clock(), 0.0)
            logger.info(
                "%s budget exhausted; stalling request #%s for %.3fs",
                descriptor.kind.value,
                descriptor.sequence,
                delay,
            )
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._wakeup.wait(), delay)

    async def _execute(self, descriptor: RequestDescriptor) -> None:
        request = descriptor.target
        budget = self._state.budgets[descriptor.kind]
        while True:
            if not await self._acquire(descriptor):
                logger.debug("Request #%s cancelled while waiting for budget", descriptor.sequence)
                return

            logger.debug("Issuing #%s %s %s", descriptor.sequence, request.method, request.path)
            error: APIError
            try:
                response = await self._transport.send(request)
            except TransportFailure as exc:
                error = exc
            else:
                receipt = budget.stamp()
                metadata = self._headers.budget(response)
                if metadata is not None:
                    budget.observe(*metadata, receipt=receipt)
                try:
                    self._classify(response)
                except RateLimited as exc:
                    budget.exhaust(exc.reset_at, receipt=receipt)
                    logger.warning(
                        "Rate limited on #%s %s %s; requeued until %.3f",
                        descriptor.sequence,
                        request.method,
                        request.path,
                        exc.reset_at,
                    )
                    self._state.queue.requeue_front(descriptor)
                    return
                except ClientError as exc:
                    descriptor.fail(exc)
                    return
                except ServerError as exc:
                    error = exc
                else:
                    if not descriptor.resolve(response):
                        logger.debug("Discarding result of abandoned request #%s", descriptor.sequence)
                    return

            descriptor.failures += 1
            if descriptor.failures >= self._max_attempts or descriptor.cancelled:
                descriptor.fail(error)
                return
            delay = self._backoff(descriptor.failures)
            logger.warning(
                "Attempt %s/%s of #%s failed (%s); retrying in %.2fs",
                descriptor.failures,
                self._max_attempts,
                descriptor.sequence,
                error,
                delay,
            )
            await asyncio.sleep(delay)

    def _classify(self, response: HTTPResponse) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return
        if status == 429:
            raise RateLimited(self._headers.reset_after_limit(response))
        code, message = error_details(response)
        if 500 <= status < 600:
            raise ServerError(status, message)
        raise ClientError(status, message, code)

    def _backoff(self, failures: int) -> float:
        return min(self._backoff_base * (2 ** (failures - 1)), self._backoff_max)

    async def aclose(self) -> None:
        """Stop the loop and fail everything still pending with SchedulerClosed."""

        pending = self._state.queue.close()
        if self._current is not None:
            pending.insert(0, self._current)
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        for descriptor in pending:
            descriptor.fail(SchedulerClosed("Wrapper closed before the request completed"))
