"""Named actions bound to a store.

A :class:`Feature` turns plain functions into actions: calling the action
runs the function against a draft and tags the resulting transition with
``[feature] name`` and the call arguments.
"""

from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Callable
from typing import Any

from stimmer.state.draft import Draft, DraftStatus
from stimmer.state.events import ActionInfo
from stimmer.state.store import Store

_logger = logging.getLogger(__name__)


class AsyncActionContext:
    """Gives an async action a draft for each leg between ``await`` points.

    The synchronous leg of an async action is committed before the
    coroutine body runs, so the body must fetch its draft through
    :attr:`draft`. A new draft is opened whenever the previous leg's draft
    has been committed or discarded.
    """

    def __init__(self, store: Store, action_info: ActionInfo) -> None:
        self._store = store
        self._action_info = action_info
        self._draft: Draft | None = None

    @property
    def action_info(self) -> ActionInfo:
        return self._action_info

    @property
    def draft(self) -> Draft:
        if self._draft is None or self._draft.status is not DraftStatus.OPEN:
            self._draft = self._store.start_async_draft(self._action_info)
        return self._draft

    def get_state(self) -> Any:
        return self._store.get_state()


class Feature:
    """Namespace for actions operating on one store."""

    def __init__(self, store: Store, name: str) -> None:
        self.store = store
        self.name = name
        self._actions: dict[str, Callable[..., Any]] = {}

    @property
    def actions(self) -> list[str]:
        return list(self._actions)

    def action(self, fn: Callable[..., Any] | None = None, *, name: str | None = None) -> Any:
        """Register *fn* as an action.

        Plain functions receive the draft as first argument. Coroutine
        functions receive an :class:`AsyncActionContext` instead and the
        action returns the task running them.
        """
        if fn is None:
            return functools.partial(self.action, name=name)

        action_name = name or fn.__name__
        if action_name in self._actions:
            _logger.debug("Replacing action %s of feature %s", action_name, self.name)

        if inspect.iscoroutinefunction(fn):

            @functools.wraps(fn)
            def run_async(*args: Any) -> Any:
                info = ActionInfo(feature_name=self.name, name=action_name, args=args)
                context = AsyncActionContext(self.store, info)
                return self.store.update(lambda _draft: fn(context, *args), info)

            wrapper = run_async
        else:

            @functools.wraps(fn)
            def run(*args: Any) -> Any:
                info = ActionInfo(feature_name=self.name, name=action_name, args=args)
                return self.store.update(lambda draft: fn(draft, *args), info)

            wrapper = run

        self._actions[action_name] = wrapper
        return wrapper
