"""Custom exception hierarchy for stimmer."""

from __future__ import annotations


class StimmerError(Exception):
    """Base exception for all stimmer errors."""


class StimmerConfigError(StimmerError):
    """Invalid or missing configuration."""


class StateTypeError(StimmerError, TypeError):
    """Root state is not a mapping or a sequence."""


class DraftError(StimmerError):
    """Draft lifecycle violation."""


class DraftActiveError(DraftError):
    """A draft is already open.

    Raised by ``Store.start_async_draft`` when another draft is in
    progress.  Synchronous updates reuse the open draft instead.
    """


class DraftRevokedError(DraftError):
    """Draft was already committed or discarded.

    Draft proxies stay reachable after their lifecycle ends (e.g. held
    by an async action across an ``await``), but every read or write on
    them raises this error.
    """

    def __init__(self, message: str, *, status: str = "") -> None:
        self.status = status
        super().__init__(message)


class SchedulerError(StimmerError):
    """No event loop available to schedule a deferred continuation."""
