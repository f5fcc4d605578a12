import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from core.exceptions import EntityFetchException

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class PoolResult(Generic[R]):
    """
    Fan-in of one ``BoundedWorkerPool.map`` call.

    Attributes
    ----------
    results : list[R]
        Results of successful workers, in input order
    errors : list[EntityFetchException]
        One error per failed worker
    """
    results: list[R] = field(default_factory=list)
    errors: list[EntityFetchException] = field(default_factory=list)


class BoundedWorkerPool:
    """
    Runs one coroutine per item with at most ``max_concurrency`` in flight.

    The semaphore is shared by every ``map`` call on the same pool, so
    concurrent ``map`` calls together stay under the ceiling.

    Parameters
    ----------
    max_concurrency : int
        Maximum number of workers holding a slot at once
    logger : logging.Logger | None
        Logger instance
    """

    def __init__(self, max_concurrency: int, logger: logging.Logger | None = None):
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be at least 1, got {max_concurrency}")
        self.max_concurrency = max_concurrency
        self.logger = logger or logging.getLogger(__name__)
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def map(
        self,
        items: Iterable[T],
        worker: Callable[[T], Awaitable[R]],
        describe: Callable[[T], str] = str
    ) -> PoolResult[R]:
        """
        Run ``worker`` for every item and wait for all of them.

        Cancelling the awaiting task cancels queued and in-flight workers.

        Parameters
        ----------
        items : Iterable[T]
            Work items
        worker : Callable[[T], Awaitable[R]]
            Coroutine function run once per item
        describe : Callable[[T], str]
            Identifier of an item for error reporting

        Returns
        -------
        PoolResult[R]
            Successful results and per-item errors
        """
        items = list(items)
        if not items:
            return PoolResult()

        async def run(item: T) -> R:
            async with self._semaphore:
                return await worker(item)

        outcomes = await asyncio.gather(*(run(item) for item in items), return_exceptions=True)

        result = PoolResult()
        for item, outcome in zip(items, outcomes):
            if isinstance(outcome, EntityFetchException):
                result.errors.append(outcome)
            elif isinstance(outcome, Exception):
                result.errors.append(EntityFetchException(describe(item), outcome))
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                result.results.append(outcome)

        self.logger.debug(
            f"Pool finished {len(items)} items: {len(result.results)} ok, {len(result.errors)} failed"
        )
        return result
