"""Deferred-continuation schedulers.

The store never picks a timing primitive itself. Asynchronous drafts are
finalized through a ``Scheduler`` so hosts can run them on an asyncio
loop and tests can advance turns by hand.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable
from typing import Protocol

from stimmer.exceptions import SchedulerError

_logger = logging.getLogger(__name__)


class Scheduler(Protocol):
    def call_soon(self, callback: Callable[[], None]) -> None:
        """Run *callback* on the next scheduling turn."""


class AsyncioScheduler:
    """Schedule continuations with ``loop.call_soon``.

    Without an explicit loop, the loop running at scheduling time is used.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_soon(self, callback: Callable[[], None]) -> None:
        loop = self._loop
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as exc:
                raise SchedulerError("No running event loop to schedule draft finalization on") from exc
        loop.call_soon(callback)


class ManualScheduler:
    """Deterministic scheduler advanced explicitly.

    Each call to :meth:`run_pending` is one scheduling turn: it runs the
    callbacks queued before the call. Callbacks queued while the turn runs
    wait for the next one.
    """

    def __init__(self) -> None:
        self._queue: deque[Callable[[], None]] = deque()

    @property
    def pending(self) -> int:
        return len(self._queue)

    def call_soon(self, callback: Callable[[], None]) -> None:
        self._queue.append(callback)

    def run_pending(self) -> int:
        """Run one turn and return the number of callbacks executed."""
        count = len(self._queue)
        for _ in range(count):
            callback = self._queue.popleft()
            callback()
        return count

    def run_until_idle(self, max_turns: int = 100) -> int:
        """Run turns until the queue is empty; return the number of turns."""
        turns = 0
        while self._queue:
            if turns >= max_turns:
                raise SchedulerError(f"Scheduler still busy after {max_turns} turns")
            self.run_pending()
            turns += 1
        _logger.debug("Manual scheduler idle after %d turns", turns)
        return turns
