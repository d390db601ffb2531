"""Single-use handles for work running on a background executor."""

import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TaskHandle(Generic[T]):
    """
    One-shot, single-consumer handoff for a background unit of work.

    The foreground polls without blocking; the first successful poll returns
    the value and every later poll returns None. Discarding the handle drops
    interest in the result without stopping the work.
    """

    def __init__(self, future: "Future[T]",
                 on_error: Optional[Callable[[BaseException], T]] = None) -> None:
        self._future = future
        self._on_error = on_error
        self._consumed = False

    @property
    def done(self) -> bool:
        return self._future.done()

    @property
    def consumed(self) -> bool:
        return self._consumed

    def poll(self) -> Optional[T]:
        """Return the result if ready and not yet collected, else None."""
        if self._consumed or not self._future.done():
            return None
        self._consumed = True

        error = self._future.exception()
        if error is None:
            return self._future.result()
        if self._on_error is None:
            raise error
        logger.error("Background task failed: %s", error, exc_info=error)
        return self._on_error(error)

    def discard(self) -> None:
        """Stop caring about the result; the work itself keeps running."""
        self._consumed = True


def make_executor(max_workers: int = 2) -> Executor:
    return ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="canvas-bg")


def run_in_background(executor: Executor, fn: Callable[..., T], *args: Any,
                      on_error: Optional[Callable[[BaseException], T]] = None,
                      **kwargs: Any) -> TaskHandle[T]:
    """Submit ``fn`` to ``executor`` and wrap the future in a TaskHandle."""
    return TaskHandle(executor.submit(fn, *args, **kwargs), on_error=on_error)
