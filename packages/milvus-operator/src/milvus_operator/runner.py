"""
Bounded-concurrency fan-out runner.

GroupRunner schedules coroutines onto the event loop, never running more
than max_concurrency at once. Results always come back in submission order,
not completion order.

- run(): fail-fast; the first exception cancels the remaining tasks and
  is re-raised
- run_with_result(): every task runs to completion, each yields a Result
- run_diff_args(): one coroutine function applied to a list of arguments
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
A = TypeVar("A")


@dataclass
class Result(Generic[T]):
    """Outcome of one fanned-out task: data on success, error on failure."""

    data: T | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class GroupRunner:
    """
    Runs groups of coroutines with a shared concurrency bound.

    One runner is constructed at startup and injected into each loop that
    fans out; each call bounds its own group with a fresh semaphore so two
    loops cannot starve each other.

    Example:
        runner = GroupRunner(max_concurrency=10)
        etcd, ready = await runner.run([get_etcd(), get_ready()])
    """

    def __init__(self, max_concurrency: int = 10) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.max_concurrency = max_concurrency

    async def _bounded(self, semaphore: asyncio.Semaphore, aw: Awaitable[T]) -> T:
        async with semaphore:
            return await aw

    async def run(self, awaitables: Sequence[Awaitable[T]]) -> list[T]:
        """
        Run all awaitables, returning their values in submission order.

        Raises:
            Exception: The first error raised by any task. Pending tasks
                are cancelled before it propagates.
        """
        semaphore = asyncio.Semaphore(self.max_concurrency)
        tasks = [
            asyncio.ensure_future(self._bounded(semaphore, aw)) for aw in awaitables
        ]
        if not tasks:
            return []
        try:
            done, pending = await asyncio.wait(
                tasks, return_when=asyncio.FIRST_EXCEPTION
            )
            for task in tasks:
                if task in done and task.exception() is not None:
                    raise task.exception()
            return [task.result() for task in tasks]
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    async def run_with_result(
        self, awaitables: Sequence[Awaitable[T]]
    ) -> list[Result[T]]:
        """Run all awaitables to completion; errors are captured per task."""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def capture(aw: Awaitable[T]) -> Result[T]:
            try:
                return Result(data=await self._bounded(semaphore, aw))
            except Exception as e:
                return Result(error=e)

        return list(await asyncio.gather(*(capture(aw) for aw in awaitables)))

    async def run_diff_args(
        self, func: Callable[[A], Awaitable[T]], args: Sequence[A]
    ) -> list[Result[T]]:
        """Apply func to each argument, results in argument order."""
        return await self.run_with_result([func(arg) for arg in args])

