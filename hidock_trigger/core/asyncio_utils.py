"""Asyncio helpers for fire-and-forget tasks."""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine, Optional

from .logging_utils import StructuredLogger, get_module_logger


def create_logged_task(
    coro: Coroutine[Any, Any, Any],
    *,
    logger: Optional[StructuredLogger] = None,
    context: Optional[str] = None,
    pending: Optional[set[asyncio.Task[Any]]] = None,
) -> asyncio.Task[Any]:
    """Create a task whose exception is logged instead of lost, optionally tracking it.

    Without the done callback, a failure in a task nobody awaits only shows up
    as "Task exception was never retrieved" when the task is collected.
    """
    task_logger = logger or get_module_logger("asyncio")
    task = asyncio.get_running_loop().create_task(coro, name=context)

    def _done(done_task: asyncio.Task[Any]) -> None:
        if done_task.cancelled():
            return
        if done_task.exception() is not None:
            task_logger.error(
                "Unhandled exception in %s",
                context or done_task.get_name(),
                exc_info=done_task.exception(),
            )

    task.add_done_callback(_done)

    if pending is not None:
        pending.add(task)
        task.add_done_callback(pending.discard)

    return task


__all__ = ["create_logged_task"]
