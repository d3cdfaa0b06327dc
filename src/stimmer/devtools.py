"""Bridge from store notifications to an inspection (devtools) extension.

The extension is an optional, process-wide service. Hosts that have one
install it with :func:`install_extension`; without it the bridge still
subscribes but forwards nothing.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from pyrsistent import thaw

from stimmer.config import StimmerConfig
from stimmer.state.events import ActionInfo
from stimmer.state.store import Store

_logger = logging.getLogger(__name__)


class Connection(Protocol):
    def send(self, message: dict[str, Any], state: Any) -> None: ...

    def init(self, state: Any) -> None: ...


class Extension(Protocol):
    def connect(self, *, name: str, max_age: int) -> Connection: ...


_extension: Extension | None = None


def install_extension(extension: Extension) -> None:
    global _extension
    _extension = extension


def uninstall_extension() -> None:
    global _extension
    _extension = None


def get_extension() -> Extension | None:
    return _extension


class DevToolsBridge:
    """Forward every committed transition to the inspection extension.

    The extension is resolved once, here. Connection failures are logged
    and never propagate into the store's notification round.
    """

    def __init__(
        self,
        store: Store,
        *,
        extension: Extension | None = None,
        config: StimmerConfig | None = None,
    ) -> None:
        self._store = store
        self._config = config if config is not None else store.config
        self._connection: Connection | None = None

        if extension is None:
            extension = get_extension()
        if extension is None:
            _logger.debug("No inspection extension installed; devtools bridge is inactive")
        elif self._config.devtools_enabled:
            try:
                self._connection = extension.connect(
                    name=self._config.devtools_name,
                    max_age=self._config.devtools_max_age,
                )
            except Exception:
                _logger.debug("Connecting to inspection extension failed", exc_info=True)

        store.subscribe(self._on_state_change)

    @property
    def connected(self) -> bool:
        return self._connection is not None

    def init(self) -> None:
        """Send the current state as the extension's initial state."""
        if self._connection is None:
            return
        try:
            self._connection.init(thaw(self._store.get_state()))
        except Exception:
            _logger.debug("Inspection extension init failed", exc_info=True)

    def close(self) -> None:
        self._store.unsubscribe(self._on_state_change)

    def _on_state_change(self, state: Any, action_info: ActionInfo) -> None:
        if self._connection is None:
            return
        message = {"type": action_info.label, "args": list(action_info.args)}
        try:
            self._connection.send(message, thaw(state))
        except Exception:
            _logger.debug("Forwarding %s to inspection extension failed", action_info.label, exc_info=True)
