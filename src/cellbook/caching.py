"""Single-flight deduplication of concurrent async calls."""

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

T = TypeVar("T")


class SingleFlight:
    """Deduplicates concurrent calls to the same function with the same key.

    Only one call per key is in-flight at a time. Other callers wait for
    the result of the first call.

    Example:
        sf = SingleFlight()

        async def get_handle() -> SandboxHandle:
            return await sf.do("sandbox", lambda: backend.create(api_key))
    """

    def __init__(self) -> None:
        self._in_flight: dict[str, asyncio.Future[Any]] = {}
        # Strong references; the event loop only keeps weak ones
        self._tasks: set[asyncio.Task[None]] = set()
        self._lock = asyncio.Lock()

    async def do(
        self,
        key: str,
        func: Callable[[], Awaitable[T]],
    ) -> T:
        """Execute function, deduplicating concurrent calls.

        If another call with the same key is in progress, waits for
        that result instead of executing again.

        Args:
            key: Unique key for this operation
            func: Async function to execute

        Returns:
            Result from func (may be from another caller)
        """
        async with self._lock:
            if key in self._in_flight:
                future = self._in_flight[key]
            else:
                future = asyncio.get_running_loop().create_future()
                self._in_flight[key] = future

                # Execute in background, don't hold lock
                task = asyncio.create_task(self._execute(key, func, future))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)

        # shield: one cancelled waiter must not cancel the shared call
        return await asyncio.shield(future)

    def in_flight(self, key: str) -> bool:
        """Check whether a call for key is currently running."""
        return key in self._in_flight

    async def _execute(
        self,
        key: str,
        func: Callable[[], Awaitable[T]],
        future: asyncio.Future[T],
    ) -> None:
        """Execute function and settle the future, whatever way func ends.

        Cancellation of the call cancels the future, so waiters see
        CancelledError instead of waiting forever.
        """
        try:
            result = await func()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except BaseException as e:
            future.set_exception(e)
            if not isinstance(e, Exception):
                raise
        else:
            future.set_result(result)
        finally:
            async with self._lock:
                self._in_flight.pop(key, None)
