from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest

from stimmer.config import StimmerConfig
from stimmer.devtools import DevToolsBridge, get_extension, install_extension, uninstall_extension
from stimmer.state.events import ActionInfo
from stimmer.state.scheduling import ManualScheduler
from stimmer.state.store import Store


class _FakeConnection:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[tuple[dict[str, Any], Any]] = []
        self.inits: list[Any] = []

    def send(self, message: dict[str, Any], state: Any) -> None:
        if self.fail:
            raise ConnectionError("extension went away")
        self.sent.append((message, state))

    def init(self, state: Any) -> None:
        self.inits.append(state)


class _FakeExtension:
    def __init__(self, connection: _FakeConnection | None = None) -> None:
        self.connection = connection or _FakeConnection()
        self.connect_kwargs: list[dict[str, Any]] = []

    def connect(self, *, name: str, max_age: int) -> _FakeConnection:
        self.connect_kwargs.append({"name": name, "max_age": max_age})
        return self.connection


@pytest.fixture(autouse=True)
def _no_global_extension() -> Iterator[None]:
    uninstall_extension()
    yield
    uninstall_extension()


def _increment(draft: Any) -> None:
    draft["count"] += 1


def test_bridge_forwards_label_args_and_plain_state() -> None:
    store = Store({"count": 0, "tags": ["a"]}, scheduler=ManualScheduler())
    extension = _FakeExtension()
    bridge = DevToolsBridge(store, extension=extension)
    bridge.init()

    store.update(_increment, ActionInfo(feature_name="counter", name="increment", args=[1]))

    assert extension.connect_kwargs == [{"name": "Stimmer dev tools", "max_age": 50}]
    assert extension.connection.inits == [{"count": 0, "tags": ["a"]}]
    assert extension.connection.sent == [
        ({"type": "[counter] increment", "args": [1]}, {"count": 1, "tags": ["a"]}),
    ]
    state = extension.connection.sent[0][1]
    assert type(state) is dict
    assert type(state["tags"]) is list


def test_async_transitions_are_marked() -> None:
    scheduler = ManualScheduler()
    store = Store({"count": 0}, scheduler=scheduler)
    extension = _FakeExtension()
    DevToolsBridge(store, extension=extension)

    draft = store.start_async_draft(ActionInfo(feature_name="counter", name="load"))
    draft["count"] = 4
    scheduler.run_until_idle()

    assert extension.connection.sent == [({"type": "[counter] load (async)", "args": []}, {"count": 4})]


def test_bridge_uses_installed_extension() -> None:
    extension = _FakeExtension()
    install_extension(extension)
    assert get_extension() is extension

    store = Store({"count": 0}, scheduler=ManualScheduler())
    bridge = DevToolsBridge(store)
    store.update(_increment, ActionInfo(feature_name="counter", name="increment"))

    assert bridge.connected
    assert len(extension.connection.sent) == 1


def test_missing_extension_is_tolerated() -> None:
    store = Store({"count": 0}, scheduler=ManualScheduler())
    bridge = DevToolsBridge(store)
    bridge.init()

    store.update(_increment, ActionInfo(feature_name="counter", name="increment"))

    assert not bridge.connected
    assert store.get_state()["count"] == 1


def test_disabled_config_skips_connection() -> None:
    store = Store({"count": 0}, scheduler=ManualScheduler(), config=StimmerConfig(devtools_enabled=False))
    extension = _FakeExtension()
    bridge = DevToolsBridge(store, extension=extension)

    store.update(_increment, ActionInfo(feature_name="counter", name="increment"))

    assert not bridge.connected
    assert extension.connect_kwargs == []


def test_custom_connection_settings() -> None:
    store = Store(scheduler=ManualScheduler())
    extension = _FakeExtension()
    DevToolsBridge(store, extension=extension, config=StimmerConfig(devtools_name="app", devtools_max_age=10))

    assert extension.connect_kwargs == [{"name": "app", "max_age": 10}]


def test_connection_errors_do_not_reach_store() -> None:
    store = Store({"count": 0}, scheduler=ManualScheduler())
    calls: list[ActionInfo] = []
    DevToolsBridge(store, extension=_FakeExtension(_FakeConnection(fail=True)))
    store.subscribe(lambda state, info: calls.append(info))

    store.update(_increment, ActionInfo(feature_name="counter", name="increment"))

    assert store.get_state()["count"] == 1
    assert len(calls) == 1


def test_close_stops_forwarding() -> None:
    store = Store({"count": 0}, scheduler=ManualScheduler())
    extension = _FakeExtension()
    bridge = DevToolsBridge(store, extension=extension)

    bridge.close()
    store.update(_increment, ActionInfo(feature_name="counter", name="increment"))

    assert extension.connection.sent == []
