"""
Batched Dispatch

Sends one notification per item in consecutive batches, so at most
``batch_size`` sends are in flight at once and the outbound channel sees a
pause between batches.

Within a batch every send runs concurrently and the batch only completes once
all of them have settled. A send fails if it raises or returns a falsy value;
failures are counted and logged, never retried, and never stop the remaining
sends.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

SendFunc = Callable[[T], Awaitable[Any]]


class DeliveryFailed(Exception):
    """A send reported failure without raising."""


@dataclass
class DispatchResult(Generic[T]):
    sent: int = 0
    errors: int = 0
    batches: int = 0
    failures: list[tuple[T, Exception]] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.sent + self.errors


class BatchedDispatcher(Generic[T]):
    """
    Dispatch items through ``send`` in paced batches.

    Args:
        send: Async callable delivering one item
        batch_size: Maximum concurrent sends
        inter_batch_delay: Seconds to pause between batches
        sleep: Awaitable sleep, replaceable in tests
        describe: Renders an item for failure logs
    """

    def __init__(
        self,
        send: SendFunc,
        *,
        batch_size: int = 5,
        inter_batch_delay: float = 0.2,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        describe: Callable[[T], str] = str,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        if inter_batch_delay < 0:
            raise ValueError(f"inter_batch_delay must not be negative, got {inter_batch_delay}")

        self.send = send
        self.batch_size = batch_size
        self.inter_batch_delay = inter_batch_delay
        self._sleep = sleep
        self._describe = describe

    async def _send_one(self, item: T) -> None:
        if not await self.send(item):
            raise DeliveryFailed(f"send returned failure for {self._describe(item)}")

    async def dispatch(self, items: Sequence[T]) -> DispatchResult[T]:
        result: DispatchResult[T] = DispatchResult()

        for start in range(0, len(items), self.batch_size):
            if start:
                await self._sleep(self.inter_batch_delay)

            batch = items[start : start + self.batch_size]
            outcomes = await asyncio.gather(
                *(self._send_one(item) for item in batch),
                return_exceptions=True,
            )
            result.batches += 1

            for item, outcome in zip(batch, outcomes, strict=True):
                if outcome is None:
                    result.sent += 1
                elif isinstance(outcome, Exception):
                    result.errors += 1
                    result.failures.append((item, outcome))
                    logger.error(f"Failed to send to {self._describe(item)}: {outcome}")
                else:
                    # CancelledError and other BaseExceptions end the run
                    raise outcome

        return result
