"""Copy-on-write drafts over immutable (pyrsistent) state.

A draft is a tree of lazily created proxies. Reading a nested mapping or
sequence hands out a child proxy that still points at the shared,
immutable value. The first write to a proxy materializes a shallow
mutable copy of that node only and marks every ancestor as changed, so
finalizing rebuilds exactly the path from the root to the touched nodes.
Everything else is reused by reference.
"""

from __future__ import annotations

from collections.abc import Iterator, MutableMapping, MutableSequence, Sequence
from enum import StrEnum
from typing import Any

from pyrsistent import PMap, PSet, PVector, freeze, pmap, pset, pvector

from stimmer.exceptions import DraftRevokedError, StateTypeError

_CONTAINERS = (PMap, PVector)
_UNSET: Any = object()


class DraftStatus(StrEnum):
    OPEN = "open"
    COMMITTED = "committed"
    DISCARDED = "discarded"


class _Scope:
    """Lifecycle shared by every proxy of one draft."""

    __slots__ = ("status",)

    def __init__(self) -> None:
        self.status = DraftStatus.OPEN

    def ensure_open(self) -> None:
        if self.status is not DraftStatus.OPEN:
            raise DraftRevokedError(f"Draft is already {self.status}", status=str(self.status))


def freeze_state(value: Any) -> PMap | PVector:
    """Convert a plain value into an immutable root state."""
    if value is None:
        return pmap()
    frozen = freeze(value)
    if not isinstance(frozen, _CONTAINERS):
        raise StateTypeError(f"Root state must be a mapping or a sequence, got {type(value).__name__}")
    return frozen


def _freeze_value(value: Any) -> Any:
    if isinstance(value, _DraftNode):
        return value._finalize()
    if isinstance(value, (PMap, PVector, PSet)):
        return value
    if isinstance(value, dict):
        return pmap({key: _freeze_value(item) for key, item in value.items()})
    if isinstance(value, list):
        return pvector(_freeze_value(item) for item in value)
    if isinstance(value, tuple):
        return tuple(_freeze_value(item) for item in value)
    if isinstance(value, (set, frozenset)):
        return pset(_freeze_value(item) for item in value)
    return value


class _DraftNode:
    __slots__ = ("_scope", "_base", "_parent", "_copy", "_children", "_modified", "_finalized")

    def __init__(self, scope: _Scope, base: Any, parent: _DraftNode | None) -> None:
        self._scope = scope
        self._base = base
        self._parent = parent
        self._copy: Any = None
        self._children: dict[Any, _DraftNode] = {}
        self._modified = False
        self._finalized: Any = _UNSET

    @property
    def status(self) -> DraftStatus:
        return self._scope.status

    @property
    def modified(self) -> bool:
        return self._modified

    def _wrap(self, value: Any) -> Any:
        if isinstance(value, PMap):
            return DraftMap(self._scope, value, self)
        if isinstance(value, PVector):
            return DraftList(self._scope, value, self)
        return value

    def _mark_changed(self) -> None:
        if self._modified:
            return
        self._modified = True
        self._prepare_copy()
        if self._parent is not None:
            self._parent._mark_changed()

    def _prepare_copy(self) -> None:
        raise NotImplementedError

    def _build(self) -> Any:
        raise NotImplementedError

    def _finalize(self) -> Any:
        if self._finalized is _UNSET:
            self._finalized = self._build() if self._modified else self._base
        return self._finalized


class DraftMap(_DraftNode, MutableMapping):
    """Mutable view over a ``PMap``."""

    __slots__ = ()

    def _prepare_copy(self) -> None:
        self._copy = dict(self._base)
        self._copy.update(self._children)
        self._children = {}

    def _peek(self, key: Any) -> Any:
        if self._copy is not None:
            return self._copy.get(key, _UNSET)
        child = self._children.get(key)
        if child is not None:
            return child
        return self._base.get(key, _UNSET)

    def __getitem__(self, key: Any) -> Any:
        self._scope.ensure_open()
        if self._copy is not None:
            value = self._copy[key]
            if isinstance(value, _CONTAINERS):
                value = self._copy[key] = self._wrap(value)
            return value
        child = self._children.get(key)
        if child is not None:
            return child
        value = self._base[key]
        if isinstance(value, _CONTAINERS):
            value = self._children[key] = self._wrap(value)
        return value

    def __setitem__(self, key: Any, value: Any) -> None:
        self._scope.ensure_open()
        if self._peek(key) is value:
            return
        self._mark_changed()
        self._copy[key] = value

    def __delitem__(self, key: Any) -> None:
        self._scope.ensure_open()
        if key not in self:
            raise KeyError(key)
        self._mark_changed()
        del self._copy[key]

    def __contains__(self, key: object) -> bool:
        self._scope.ensure_open()
        source = self._copy if self._copy is not None else self._base
        return key in source

    def __iter__(self) -> Iterator[Any]:
        self._scope.ensure_open()
        source = self._copy if self._copy is not None else self._base
        return iter(list(source))

    def __len__(self) -> int:
        self._scope.ensure_open()
        source = self._copy if self._copy is not None else self._base
        return len(source)

    def __repr__(self) -> str:
        if self._scope.status is not DraftStatus.OPEN:
            return f"<DraftMap {self._scope.status}>"
        return f"DraftMap({dict(self.items())!r})"

    def _build(self) -> PMap:
        evolver = self._base.evolver()
        for key in self._base:
            if key not in self._copy:
                evolver.remove(key)
        for key, value in self._copy.items():
            frozen = _freeze_value(value)
            if self._base.get(key, _UNSET) is not frozen:
                evolver[key] = frozen
        return evolver.persistent()


class DraftList(_DraftNode, MutableSequence):
    """Mutable view over a ``PVector``."""

    __slots__ = ()

    __hash__ = None  # type: ignore[assignment]

    def _prepare_copy(self) -> None:
        self._copy = list(self._base)
        for index, child in self._children.items():
            self._copy[index] = child
        self._children = {}

    def _index(self, index: int) -> int:
        size = len(self)
        normalized = index + size if index < 0 else index
        if not 0 <= normalized < size:
            raise IndexError("draft list index out of range")
        return normalized

    def __getitem__(self, index: Any) -> Any:
        self._scope.ensure_open()
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(len(self)))]
        index = self._index(index)
        if self._copy is not None:
            value = self._copy[index]
            if isinstance(value, _CONTAINERS):
                value = self._copy[index] = self._wrap(value)
            return value
        child = self._children.get(index)
        if child is not None:
            return child
        value = self._base[index]
        if isinstance(value, _CONTAINERS):
            value = self._children[index] = self._wrap(value)
        return value

    def __setitem__(self, index: Any, value: Any) -> None:
        self._scope.ensure_open()
        if isinstance(index, slice):
            self._mark_changed()
            self._copy[index] = value
            return
        index = self._index(index)
        if self._copy is None and self._children.get(index, self._base[index]) is value:
            return
        self._mark_changed()
        self._copy[index] = value

    def __delitem__(self, index: Any) -> None:
        self._scope.ensure_open()
        if not isinstance(index, slice):
            index = self._index(index)
        self._mark_changed()
        del self._copy[index]

    def __len__(self) -> int:
        self._scope.ensure_open()
        return len(self._copy if self._copy is not None else self._base)

    def __iter__(self) -> Iterator[Any]:
        for index in range(len(self)):
            yield self[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Sequence) or isinstance(other, (str, bytes)):
            return NotImplemented
        return list(self) == list(other)

    def insert(self, index: int, value: Any) -> None:
        self._scope.ensure_open()
        self._mark_changed()
        self._copy.insert(index, value)

    def __repr__(self) -> str:
        if self._scope.status is not DraftStatus.OPEN:
            return f"<DraftList {self._scope.status}>"
        return f"DraftList({list(self)!r})"

    def _build(self) -> PVector:
        items = [_freeze_value(value) for value in self._copy]
        if len(items) == len(self._base) and all(a is b for a, b in zip(items, self._base, strict=True)):
            return self._base
        return pvector(items)


Draft = DraftMap | DraftList


def create_draft(state: PMap | PVector) -> Draft:
    """Open a draft over an immutable root state."""
    if isinstance(state, PMap):
        return DraftMap(_Scope(), state, None)
    if isinstance(state, PVector):
        return DraftList(_Scope(), state, None)
    raise StateTypeError(f"Cannot draft a {type(state).__name__}")


def finish_draft(draft: Draft) -> PMap | PVector:
    """Freeze a draft into a new immutable state and revoke it.

    Untouched subtrees of the base state are reused by reference. If no
    write ended up changing anything, the base state itself is returned.
    """
    draft._scope.ensure_open()
    result = draft._finalize()
    draft._scope.status = DraftStatus.COMMITTED
    return result


def discard_draft(draft: Draft) -> None:
    """Revoke a draft without producing a new state."""
    if draft._scope.status is DraftStatus.OPEN:
        draft._scope.status = DraftStatus.DISCARDED
