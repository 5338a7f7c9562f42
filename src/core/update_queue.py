"""Single-writer update queue (core domain).

Every store write goes through one FIFO drained by one worker task, so two
extractors touching the same address back-to-back can never interleave
their read-modify-write cycles.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

LOGGER = logging.getLogger(__name__)

Mutation = Callable[[], Any]


class QueueClosedError(RuntimeError):
    """Raised when work is enqueued after close()."""


@dataclass
class _PendingMutation:
    mutation: Mutation
    label: str
    future: Optional[asyncio.Future] = None


class UpdateQueue:
    """Ordered, retrying applier for store mutations."""

    def __init__(
        self,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._max_attempts = max_attempts
        self._backoff_seconds = backoff_seconds
        self._sleep = sleep
        self._pending: Deque[_PendingMutation] = deque()
        self._draining = False
        self._worker: Optional[asyncio.Task] = None
        self._closed = False
        self.applied = 0
        self.failed = 0

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def is_draining(self) -> bool:
        return self._draining

    def enqueue(self, mutation: Mutation, label: str = "") -> None:
        """Append a mutation and return immediately (fire-and-forget)."""

        self._push(_PendingMutation(mutation=mutation, label=label))

    async def submit(self, mutation: Mutation, label: str = "") -> Any:
        """Append a mutation and wait for its result.

        Raises the last error when every attempt failed.
        """

        future = asyncio.get_running_loop().create_future()
        self._push(_PendingMutation(mutation=mutation, label=label, future=future))
        return await future

    async def join(self) -> None:
        """Wait until everything queued so far has been applied or dropped."""

        while self._worker is not None and not self._worker.done():
            await asyncio.shield(self._worker)

    async def close(self) -> None:
        """Refuse new mutations and drain the ones already queued."""

        self._closed = True
        await self.join()

    def _push(self, item: _PendingMutation) -> None:
        if self._closed:
            raise QueueClosedError("update queue is closed")
        self._pending.append(item)
        if not self._draining:
            self._draining = True
            self._worker = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        try:
            while self._pending:
                item = self._pending.popleft()
                await self._apply(item)
        finally:
            self._draining = False

    def _log_retry(self, item: _PendingMutation) -> Callable[[RetryCallState], None]:
        def before_sleep(retry_state: RetryCallState) -> None:
            LOGGER.warning(
                "Update %s failed (attempt %s/%s), retrying in %.1fs: %s",
                item.label,
                retry_state.attempt_number,
                self._max_attempts,
                retry_state.next_action.sleep if retry_state.next_action else 0.0,
                retry_state.outcome.exception() if retry_state.outcome else None,
            )

        return before_sleep

    async def _apply(self, item: _PendingMutation) -> None:
        # Retries happen in place so later mutations never overtake this one.
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._backoff_seconds),
            retry=retry_if_exception_type(Exception),
            sleep=self._sleep,
            before_sleep=self._log_retry(item),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    result = await asyncio.to_thread(item.mutation)
        except Exception as exc:
            self.failed += 1
            LOGGER.error(
                "Update %s failed permanently after %s attempts",
                item.label,
                self._max_attempts,
                exc_info=exc,
            )
            if item.future is not None and not item.future.done():
                item.future.set_exception(exc)
            return
        self.applied += 1
        if item.future is not None and not item.future.done():
            item.future.set_result(result)
