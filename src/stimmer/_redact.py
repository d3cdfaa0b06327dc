"""Helpers for safe debug logging of action arguments.

Actions are called with arbitrary user data (credentials typed into a
login form, large payloads fetched from an API). This module renders
those arguments for DEBUG logs with sensitive keys masked and long
values truncated.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence, Set
from typing import Any

from stimmer.state.draft import DraftList, DraftMap
from stimmer.state.events import ActionInfo

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "passphrase",
        "secret",
        "token",
        "accesstoken",
        "refreshtoken",
        "apikey",
        "authorization",
        "cookie",
        "pin",
    }
)


def _normalize_key(key: Any) -> str:
    return str(key).lower().replace("_", "").replace("-", "")


def redact_for_log(value: Any, *, max_string: int = 256, max_items: int = 20, _depth: int = 0) -> Any:
    """Return a redacted, size-bounded copy of *value* suitable for debug logs."""
    if _depth > 10:
        return "<max-depth>"

    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    # Draft proxies may already be revoked when the log line is built.
    if isinstance(value, (DraftMap, DraftList)):
        return f"<draft:{value.status}>"

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for index, (k, v) in enumerate(value.items()):
            if index >= max_items:
                redacted["…"] = f"<{len(value) - max_items} more>"
                break
            key = str(k)
            if _normalize_key(k) in _SENSITIVE_VALUE_KEYS:
                redacted[key] = "<redacted>"
            else:
                redacted[key] = redact_for_log(v, max_string=max_string, max_items=max_items, _depth=_depth + 1)
        return redacted

    if isinstance(value, (Sequence, Set)):
        items = list(value)
        rendered = [
            redact_for_log(v, max_string=max_string, max_items=max_items, _depth=_depth + 1)
            for v in items[:max_items]
        ]
        if len(items) > max_items:
            rendered.append(f"<{len(items) - max_items} more>")
        return rendered

    # Fallback: represent unknown objects without dumping internals.
    try:
        text = repr(value)
    except Exception:
        return f"<unrepresentable {type(value).__name__}>"
    if len(text) > max_string:
        return f"{text[:max_string]}…<truncated>"
    return text


def describe_action(action_info: ActionInfo, *, include_args: bool = True) -> str:
    """One-line description of an action for log messages."""
    if not include_args or not action_info.args:
        return action_info.label
    return f"{action_info.label} args={redact_for_log(list(action_info.args))!r}"


class ActionDescription:
    """Deferred :func:`describe_action`, rendered only if a log record is emitted."""

    __slots__ = ("_action_info", "_include_args")

    def __init__(self, action_info: ActionInfo, *, include_args: bool = True) -> None:
        self._action_info = action_info
        self._include_args = include_args

    def __str__(self) -> str:
        return describe_action(self._action_info, include_args=self._include_args)
