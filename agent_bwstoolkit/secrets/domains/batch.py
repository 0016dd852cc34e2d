"""Bounded batch execution for bulk updates.

Items are processed in consecutive chunks of at most ``batch_size``. All
operations in a chunk run concurrently and the next chunk starts only after
every operation in the current one has settled, so no more than
``batch_size`` requests are ever in flight. A failing item never cancels its
siblings or later chunks. Nothing is retried.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

# Keeps bulk moves under the Bitwarden API rate limit.
BATCH_SIZE = 5

T = TypeVar("T")


@dataclass
class BatchOutcome(Generic[T]):
    """Result of one item: ``ok`` with ``result``, or failed with ``error``."""
    item: T
    ok: bool
    result: Any = None
    error: Optional[BaseException] = None

    @property
    def reason(self) -> str:
        if self.error is None:
            return ""
        return str(self.error) or type(self.error).__name__


async def run_in_batches(
    items: Sequence[T],
    operation: Callable[[T], Awaitable[Any]],
    batch_size: int = BATCH_SIZE,
) -> List[BatchOutcome[T]]:
    """
    Apply ``operation`` to every item, at most ``batch_size`` at a time.

    Args:
        items: Items to process, in order
        operation: Async callable applied to each item
        batch_size: Maximum number of concurrent operations

    Returns:
        One BatchOutcome per item, aligned with ``items``

    Raises:
        ValueError: If batch_size is less than 1
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")

    outcomes: List[BatchOutcome[T]] = []
    for start in range(0, len(items), batch_size):
        chunk = items[start:start + batch_size]
        logger.debug(f"Dispatching items {start + 1}-{start + len(chunk)} of {len(items)}")
        results = await asyncio.gather(
            *(operation(item) for item in chunk),
            return_exceptions=True,
        )
        for item, result in zip(chunk, results):
            if isinstance(result, Exception):
                outcomes.append(BatchOutcome(item=item, ok=False, error=result))
            elif isinstance(result, BaseException):
                raise result
            else:
                outcomes.append(BatchOutcome(item=item, ok=True, result=result))
    return outcomes
