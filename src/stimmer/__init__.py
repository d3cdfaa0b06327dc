"""stimmer - immutable state store with copy-on-write drafts."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("stimmer")
except PackageNotFoundError:
    __version__ = "0+local"
from stimmer.actions import AsyncActionContext, Feature
from stimmer.config import StimmerConfig
from stimmer.devtools import DevToolsBridge, get_extension, install_extension, uninstall_extension
from stimmer.exceptions import (
    DraftActiveError,
    DraftError,
    DraftRevokedError,
    SchedulerError,
    StateTypeError,
    StimmerConfigError,
    StimmerError,
)
from stimmer.state.draft import Draft, DraftList, DraftMap, DraftStatus
from stimmer.state.events import ActionInfo
from stimmer.state.scheduling import AsyncioScheduler, ManualScheduler, Scheduler
from stimmer.state.store import StateChangeHandler, Store

__all__ = [
    "__version__",
    "ActionInfo",
    "AsyncActionContext",
    "AsyncioScheduler",
    "DevToolsBridge",
    "Draft",
    "DraftActiveError",
    "DraftError",
    "DraftList",
    "DraftMap",
    "DraftRevokedError",
    "DraftStatus",
    "Feature",
    "ManualScheduler",
    "SchedulerError",
    "Scheduler",
    "StateChangeHandler",
    "StateTypeError",
    "StimmerConfig",
    "StimmerConfigError",
    "StimmerError",
    "Store",
    "get_extension",
    "install_extension",
    "uninstall_extension",
]
