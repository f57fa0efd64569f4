"""Async utilities for safe task management.

Provides safe wrappers for asyncio.create_task with error handling,
and helpers for cancelling deferred work on teardown.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def create_safe_task(
    coro: Coroutine[Any, Any, T],
    *,
    name: str | None = None,
    on_error: Callable[[BaseException], None] | None = None,
) -> asyncio.Task[T]:
    """Create an asyncio task whose failure is logged instead of lost.

    Args:
        coro: The coroutine to run as a task
        name: Optional name for the task (for logging)
        on_error: Optional callback for exception handling

    Returns:
        The created task
    """
    task = asyncio.create_task(coro, name=name)

    def handle_exception(t: asyncio.Task) -> None:
        if t.cancelled():
            return

        exc = t.exception()
        if exc is None:
            return

        logger.error(
            f"Task {name or 'unnamed'} failed with {type(exc).__name__}: {exc}",
            exc_info=exc,
        )

        if on_error:
            try:
                on_error(exc)
            except Exception as handler_exc:
                logger.error(f"Error handler for task {name} also failed: {handler_exc}")

    task.add_done_callback(handle_exception)
    return task


async def cancel_task_safe(task: asyncio.Task | None, timeout: float = 5.0) -> bool:
    """Cancel a task and wait for it to finish.

    Args:
        task: The task to cancel
        timeout: Maximum time to wait for cancellation

    Returns:
        True if the task is finished, False if it did not stop in time
    """
    if task is None or task.done():
        return True

    # A task cannot wait for its own cancellation
    if task is asyncio.current_task():
        return False

    task.cancel()

    try:
        await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
    except asyncio.CancelledError:
        return True
    except asyncio.TimeoutError:
        logger.warning(f"Task cancellation timed out after {timeout}s")
        return False
    except Exception as e:
        logger.debug(f"Task raised exception during cancellation: {e}")
        return True

    return task.done()


def cancel_timer(handle: asyncio.TimerHandle | None) -> None:
    """Cancel a call_later handle if one is pending."""
    if handle is not None and not handle.cancelled():
        handle.cancel()
