from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Generic, Iterator, TypeVar

from .errors import InvalidHandle

logger = logging.getLogger(__name__)


T = TypeVar("T")


@dataclass(frozen=True, order=True)
class Handle:
    index: int
    generation: int = 0

    def __repr__(self):
        return f"Handle({self.index}, {self.generation})"


class _Slot:
    __slots__ = ["value", "generation", "alive"]

    def __init__(self, value, generation):
        self.value = value
        self.generation = generation
        self.alive = value is not None


class Arena(Mapping, Generic[T]):
    """Generation-checked storage for all identity-bearing entities.

    A handle stays "findable" for as long as its slot has the same generation.
    Removing an entity tombstones the slot: the handle then returns None from
    `get()`, but the slot is kept so that undo can revive the very same handle.
    Only `release()` makes a slot available for reuse, and it bumps the slot
    generation, so a stale handle can never alias a newer entity.

    The arena is a read-only Mapping from live handles to entities; `__getitem__`
    raises InvalidHandle, which is what the change application path uses.
    """

    def __init__(self):
        self._slots: list[_Slot] = []
        self._freeIndices: list[int] = []
        self._numAlive = 0

    # Mapping protocol

    def __getitem__(self, handle: Handle) -> T:
        slot = self._getSlot(handle)
        if slot is None or not slot.alive:
            raise InvalidHandle(f"invalid or deleted handle: {handle!r}")
        return slot.value

    def __iter__(self) -> Iterator[Handle]:
        for index, slot in enumerate(self._slots):
            if slot.alive:
                yield Handle(index, slot.generation)

    def __len__(self) -> int:
        return self._numAlive

    def __contains__(self, handle: Any) -> bool:
        return self.get(handle) is not None

    # Arena API

    def allocate(self, value: T) -> Handle:
        if value is None:
            raise ValueError("can't allocate None, use reserve() for an empty slot")
        handle = self.reserve()
        self.revive(handle, value)
        return handle

    def reserve(self) -> Handle:
        """Allocate a tombstoned slot; `revive()` brings it to life."""
        if self._freeIndices:
            index = self._freeIndices.pop()
            slot = self._slots[index]
        else:
            index = len(self._slots)
            slot = _Slot(None, 0)
            self._slots.append(slot)
        return Handle(index, slot.generation)

    def get(self, handle: Handle, default=None) -> T | None:
        slot = self._getSlot(handle)
        if slot is None or not slot.alive:
            return default
        return slot.value

    # Mutation goes through the change application path only (see changes.py)
    getMut = get

    def remove(self, handle: Handle) -> T | None:
        slot = self._getSlot(handle)
        if slot is None or not slot.alive:
            return None
        value = slot.value
        slot.value = None
        slot.alive = False
        self._numAlive -= 1
        return value

    def revive(self, handle: Handle, value: T) -> None:
        slot = self._getSlot(handle)
        if slot is None:
            raise InvalidHandle(f"can't revive released handle: {handle!r}")
        if slot.alive:
            raise InvalidHandle(f"can't revive live handle: {handle!r}")
        slot.value = value
        slot.alive = True
        self._numAlive += 1

    def isTombstoned(self, handle: Handle) -> bool:
        slot = self._getSlot(handle)
        return slot is not None and not slot.alive

    def release(self, handle: Handle) -> bool:
        slot = self._getSlot(handle)
        if slot is None or slot.alive:
            return False
        slot.generation += 1
        self._freeIndices.append(handle.index)
        return True

    def _getSlot(self, handle: Handle) -> _Slot | None:
        if not isinstance(handle, Handle):
            return None
        if not 0 <= handle.index < len(self._slots):
            return None
        slot = self._slots[handle.index]
        if slot.generation != handle.generation:
            return None
        return slot
