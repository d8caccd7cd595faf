"""Cooperative cancellation for workflow runs.

The scheduler checks the token before every dispatch. Once cancelled,
nodes still waiting stay idle; nodes already running are allowed to
finish and their outcome is recorded.
"""

from __future__ import annotations

import asyncio


class RunCancelledError(Exception):
    """Raised by CancellationToken.check() once the run is cancelled."""


class CancellationToken:
    """Token for cooperative cancellation.

    Example:
        >>> token = CancellationToken()
        >>> task = asyncio.create_task(execute_workflow(nodes, connections, cancellation=token))
        >>> token.cancel()
        >>> result = await task
        >>> result.cancelled
        True
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._event = asyncio.Event()

    def cancel(self) -> None:
        """Request cancellation. Safe to call multiple times."""
        self._cancelled = True
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def check(self) -> None:
        """Raise RunCancelledError if cancelled.

        Executors can call this at safe points in long-running work.
        """
        if self._cancelled:
            raise RunCancelledError()

    async def wait(self) -> None:
        """Block until cancel() is called."""
        await self._event.wait()

    def reset(self) -> None:
        """Clear the token for reuse between runs."""
        self._cancelled = False
        self._event.clear()
