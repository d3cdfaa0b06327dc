"""Immutable state store with copy-on-write drafts.

This is the only component allowed to replace the current state. All
writes go through a draft; the outermost update commits it and notifies
observers exactly once.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from collections.abc import Callable
from typing import Any

from pyrsistent import PMap, PVector

from stimmer._redact import ActionDescription
from stimmer.config import StimmerConfig
from stimmer.exceptions import DraftActiveError, SchedulerError
from stimmer.state.draft import Draft, create_draft, discard_draft, finish_draft, freeze_state
from stimmer.state.events import ActionInfo
from stimmer.state.scheduling import AsyncioScheduler, Scheduler

_logger = logging.getLogger(__name__)

StateChangeHandler = Callable[[Any, ActionInfo], object]


def _same_handler(registered: StateChangeHandler, handler: StateChangeHandler) -> bool:
    if registered is handler:
        return True
    return inspect.ismethod(registered) and inspect.ismethod(handler) and registered == handler


class Store:
    """Holds one immutable state value and mediates every change to it.

    The initial state is frozen with pyrsistent (dicts become ``PMap``,
    lists ``PVector``). Readers get that frozen value from
    :meth:`get_state`; writers get a draft through :meth:`update` or
    :meth:`start_async_draft`. At most one draft is open at a time.
    """

    def __init__(
        self,
        initial_state: Any = None,
        *,
        scheduler: Scheduler | None = None,
        config: StimmerConfig | None = None,
    ) -> None:
        self._state: PMap | PVector = freeze_state(initial_state)
        self._scheduler = scheduler if scheduler is not None else AsyncioScheduler()
        self._config = config if config is not None else StimmerConfig()
        self._handlers: list[StateChangeHandler] = []
        self._current_draft: Draft | None = None

    @property
    def config(self) -> StimmerConfig:
        return self._config

    @property
    def current_draft(self) -> Draft | None:
        """The open draft, if any."""
        return self._current_draft

    def get_state(self) -> PMap | PVector:
        return self._state

    def subscribe(self, handler: StateChangeHandler) -> None:
        """Register *handler* to be called with ``(state, action_info)`` after each commit."""
        self._handlers.append(handler)

    def unsubscribe(self, handler: StateChangeHandler) -> None:
        """Remove every registration of *handler*; no-op if it is not registered.

        Handlers match by identity. Bound methods are created anew on each
        attribute access, so they match by equality (same function, same
        instance) instead.
        """
        self._handlers = [h for h in self._handlers if not _same_handler(h, handler)]

    def _describe(self, action_info: ActionInfo) -> ActionDescription:
        return ActionDescription(action_info, include_args=self._config.log_args)

    def _open_draft(self) -> Draft:
        draft = self._current_draft = create_draft(self._state)
        return draft

    def _discard(self, draft: Draft) -> None:
        discard_draft(draft)
        if self._current_draft is draft:
            self._current_draft = None

    def _commit(self, draft: Draft, action_info: ActionInfo) -> None:
        # The slot stays occupied while handlers run, so a handler cannot
        # start another transition in the middle of this notification round.
        try:
            state = self._state = finish_draft(draft)
            for handler in list(self._handlers):
                handler(state, action_info)
            _logger.debug("Committed %s", self._describe(action_info))
        finally:
            discard_draft(draft)
            if self._current_draft is draft:
                self._current_draft = None

    def _commit_quietly(self, draft: Draft, action_info: ActionInfo) -> None:
        try:
            self._commit(draft, action_info)
        except Exception:
            # State keeps whatever was committed before the failure.
            _logger.warning("Asynchronous commit of %s failed", self._describe(action_info), exc_info=True)

    def update(self, mutator: Callable[[Draft], Any], action_info: ActionInfo) -> Any:
        """Apply *mutator* to a draft and commit it.

        If no draft is open, this call opens one and owns it: the draft is
        committed (and observers notified) as soon as *mutator* returns, or
        discarded if it raises. If a draft is already open, *mutator* runs
        against it and the owner decides its fate.

        When *mutator* returns an awaitable, it is wrapped in a future. On
        success, any draft still open at that point is committed with
        ``is_async=True``; on failure or cancellation it is discarded. The
        future is returned so the caller can await it. Tracking it needs a
        running event loop; without one :class:`SchedulerError` is raised,
        but an owning call has already committed and notified by then.
        """
        draft = self._current_draft
        owner = draft is None
        if draft is None:
            draft = self._open_draft()

        try:
            result = mutator(draft)
        except BaseException:
            if owner:
                self._discard(draft)
                _logger.debug("Discarded draft of %s after mutator failure", self._describe(action_info))
            raise

        if owner:
            try:
                self._commit(draft, action_info)
            except BaseException:
                if inspect.iscoroutine(result):
                    result.close()
                raise

        if inspect.isawaitable(result):
            result = self._track_pending(result, action_info)

        return result

    def _track_pending(self, awaitable: Any, action_info: ActionInfo) -> asyncio.Future[Any]:
        if not asyncio.isfuture(awaitable):
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as exc:
                if inspect.iscoroutine(awaitable):
                    awaitable.close()
                raise SchedulerError(f"No running event loop for pending result of {action_info.label}") from exc
            awaitable = asyncio.ensure_future(awaitable, loop=loop)
        awaitable.add_done_callback(functools.partial(self._settle_pending, action_info))
        return awaitable

    def _settle_pending(self, action_info: ActionInfo, future: asyncio.Future[Any]) -> None:
        draft = self._current_draft
        if future.cancelled() or future.exception() is not None:
            exc = None if future.cancelled() else future.exception()
            _logger.debug("Pending result of %s failed", self._describe(action_info), exc_info=exc)
            if draft is not None:
                self._discard(draft)
            return
        if draft is not None:
            self._commit_quietly(draft, action_info.as_async())

    def start_async_draft(self, action_info: ActionInfo) -> Draft:
        """Open a draft for one leg of an asynchronous action.

        The draft is committed two scheduler turns later, which leaves
        room for the current synchronous segment and the continuation it
        resumes into. Raises :class:`DraftActiveError` if a draft is open.
        """
        if self._current_draft is not None:
            raise DraftActiveError("Cannot start a new draft while one is active")

        draft = self._open_draft()
        async_info = action_info.as_async()

        def finalize() -> None:
            if self._current_draft is draft:
                self._commit_quietly(draft, async_info)
            else:
                _logger.debug("Skipping superseded draft of %s", self._describe(async_info))

        try:
            self._scheduler.call_soon(lambda: self._scheduler.call_soon(finalize))
        except BaseException:
            self._discard(draft)
            raise

        _logger.debug("Opened async draft for %s", self._describe(async_info))
        return draft
