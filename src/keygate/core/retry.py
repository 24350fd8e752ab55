"""Bounded retry for storage reads.

Only reads go through ``retry_read``. A write that may already have
landed is never repeated.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from keygate.core.errors import TransientStorageError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterator

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class RetryConfig:
    """How many times to retry a read and how long to wait between tries."""

    max_retries: int = 3
    base_delay: float = 0.05
    max_delay: float = 1.0
    jitter: bool = True

    def delays(self) -> Iterator[float]:
        """Yield the wait before each retry.

        Doubles from ``base_delay`` up to ``max_delay``; with jitter each
        wait is scaled by a random factor in [0.5, 1.5).
        """
        for attempt in range(self.max_retries):
            delay = min(self.base_delay * 2**attempt, self.max_delay)
            yield delay * random.uniform(0.5, 1.5) if self.jitter else delay


async def retry_read(
    fn: Callable[[], Awaitable[T]], config: RetryConfig | None = None
) -> T:
    """Await ``fn()``, retrying while it raises ``TransientStorageError``.

    Any other error propagates on the first attempt. Once the retries
    are used up the last attempt's error propagates unchanged.
    """
    for delay in (config or RetryConfig()).delays():
        try:
            return await fn()
        except TransientStorageError as e:
            logger.warning("Storage busy, retrying read in %.3fs: %s", delay, e)
        await asyncio.sleep(delay)
    return await fn()
