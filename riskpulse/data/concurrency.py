"""
Concurrent fan-out helpers.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, Hashable, Iterable, Optional, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass
class FanOutResult(Generic[K, V]):
    """Collected results of a parallel map, split by outcome."""

    values: dict[K, V] = field(default_factory=dict)
    errors: dict[K, BaseException] = field(default_factory=dict)

    @property
    def succeeded(self) -> list[K]:
        return list(self.values)

    @property
    def failed(self) -> list[K]:
        return list(self.errors)


async def parallel_map(
    func: Callable[[K], Awaitable[V]],
    keys: Iterable[K],
    timeout: Optional[float] = None,
    max_concurrency: Optional[int] = None,
) -> FanOutResult[K, V]:
    """
    Run an async function for every key concurrently.

    A failure or timeout for one key is recorded in ``errors`` and never
    cancels the other calls. The result is only returned once every call
    has finished.

    Args:
        func: Coroutine function called once per key
        keys: Keys to fan out over (duplicates are called once)
        timeout: Per-call timeout in seconds
        max_concurrency: Upper bound on calls in flight

    Returns:
        FanOutResult with successful values and per-key errors
    """
    unique_keys = list(dict.fromkeys(keys))
    semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def _call(key: K) -> V:
        if semaphore is None:
            return await asyncio.wait_for(func(key), timeout=timeout)
        async with semaphore:
            return await asyncio.wait_for(func(key), timeout=timeout)

    tasks = [asyncio.create_task(_call(key)) for key in unique_keys]
    results = await asyncio.gather(*tasks, return_exceptions=True)

    outcome: FanOutResult[K, V] = FanOutResult()
    for key, result in zip(unique_keys, results):
        if isinstance(result, asyncio.TimeoutError):
            logger.warning(f"Timed out after {timeout}s: {key}")
            outcome.errors[key] = result
        elif isinstance(result, Exception):
            logger.warning(f"Call failed for {key}: {result}")
            outcome.errors[key] = result
        elif isinstance(result, BaseException):
            # Cancellation and interpreter exits are not per-item failures
            raise result
        else:
            outcome.values[key] = result

    return outcome
