from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable

from .arena import Handle
from .changes import applyChange, iterChangeCalls
from .commands import Command, CommandFactory, combineCommands
from .errors import ComponentCycleError, FontDocError

logger = logging.getLogger(__name__)


CREATED = "created"
MODIFIED = "modified"
DELETED = "deleted"


@dataclass(frozen=True)
class ChangeNotification:
    # `handle` is None for document-level changes (layers, kerning, font
    # info, lib); `path` then says what changed.
    handle: Handle | None
    kind: str
    path: tuple = ()


def changeNotifications(change: dict[str, Any]) -> list[ChangeNotification]:
    kinds: dict[Any, ChangeNotification] = {}
    for path, functionName, args in iterChangeCalls(change):
        if path == ("arena",) and functionName in ("revive", "tombstone"):
            handle = args[0]
            kind = CREATED if functionName == "revive" else DELETED
            kinds[handle] = ChangeNotification(handle, kind)
        elif path[:1] == ("arena",) and len(path) >= 2:
            handle = path[1]
            if handle not in kinds:
                kinds[handle] = ChangeNotification(handle, MODIFIED)
        else:
            key = path[:2] if path else ((args[0],) if args else ())
            if key not in kinds:
                kinds[key] = ChangeNotification(None, MODIFIED, key)
    return list(kinds.values())


@dataclass(kw_only=True)
class History:
    """Linear undo/redo history.

    `entries[:cursor]` have been applied, `entries[cursor:]` are the redo
    branch. Every edit goes through `apply()`.
    """

    document: Any
    maxEntries: int | None = None
    entries: list[Command] = field(init=False, default_factory=list)
    cursor: int = field(init=False, default=0)

    def __post_init__(self):
        if self.maxEntries is not None and self.maxEntries < 1:
            raise ValueError("maxEntries must be at least 1")
        self._openGroups: list[tuple[str, list[Command]]] = []
        self._subscribers: list[Callable] = []

    # Subscribers

    def subscribe(self, callback: Callable[[list[ChangeNotification]], None]):
        self._subscribers.append(callback)

    def unsubscribe(self, callback) -> None:
        self._subscribers.remove(callback)

    def _notify(self, change):
        if not self._subscribers:
            return
        notifications = changeNotifications(change)
        for callback in list(self._subscribers):
            try:
                callback(notifications)
            except Exception as e:
                logger.error("exception in change subscriber: %r", e, exc_info=True)

    # State

    @property
    def canUndo(self) -> bool:
        return self.cursor > 0

    @property
    def canRedo(self) -> bool:
        return self.cursor < len(self.entries)

    @property
    def undoTitle(self) -> str | None:
        return self.entries[self.cursor - 1].title if self.canUndo else None

    @property
    def redoTitle(self) -> str | None:
        return self.entries[self.cursor].title if self.canRedo else None

    @property
    def isGrouping(self) -> bool:
        return bool(self._openGroups)

    # Editing

    def apply(self, factory: CommandFactory) -> Command:
        """Produce a command from `factory`, apply it and record it.

        If the factory raises, nothing is recorded and the document is
        untouched. If the result contains a component cycle, the command is
        rolled back and ComponentCycleError is raised.
        """
        command = factory(self.document)
        logger.debug("apply %r", command.title)
        applyChange(self.document, command.change)
        self._checkComponentCycles(command)
        self._notify(command.change)
        if self._openGroups:
            self._openGroups[-1][1].append(command)
        else:
            self._commit(command)
        return command

    def _checkComponentCycles(self, command):
        for glyphHandle in command.componentGlyphs:
            cycle = self.document.findComponentCycle(glyphHandle)
            if cycle is not None:
                applyChange(self.document, command.rollbackChange)
                self._releaseHandles([command])
                raise ComponentCycleError(
                    f"component cycle: {' -> '.join(cycle)}", cycle=cycle
                )

    def _commit(self, command):
        discarded = self.entries[self.cursor :]
        del self.entries[self.cursor :]
        self.entries.append(command)
        self.cursor += 1
        if self.maxEntries is not None:
            while len(self.entries) > self.maxEntries:
                discarded.append(self.entries.pop(0))
                self.cursor -= 1
        if discarded:
            self._releaseHandles(discarded)

    def _releaseHandles(self, discarded):
        """Release tombstoned slots that no remaining entry can revive."""
        candidates = set().union(*(command.revivableHandles() for command in discarded))
        if not candidates:
            return
        stillRevivable = set()
        for command in self.entries:
            stillRevivable.update(command.revivableHandles())
        for _, commands in self._openGroups:
            for command in commands:
                stillRevivable.update(command.revivableHandles())
        arena = self.document.arena
        for handle in candidates - stillRevivable:
            arena.release(handle)

    def undo(self) -> Command | None:
        if self._openGroups:
            raise FontDocError("can't undo while a group is open")
        if not self.cursor:
            return None
        command = self.entries[self.cursor - 1]
        logger.debug("undo %r", command.title)
        applyChange(self.document, command.rollbackChange)
        self.cursor -= 1
        self._notify(command.rollbackChange)
        return command

    def redo(self) -> Command | None:
        if self._openGroups:
            raise FontDocError("can't redo while a group is open")
        if self.cursor >= len(self.entries):
            return None
        command = self.entries[self.cursor]
        logger.debug("redo %r", command.title)
        applyChange(self.document, command.change)
        self.cursor += 1
        self._notify(command.change)
        return command

    def clear(self) -> None:
        discarded = self.entries
        self.entries = []
        self.cursor = 0
        self._releaseHandles(discarded)

    # Grouping

    def beginGroup(self, title: str) -> None:
        self._openGroups.append((title, []))

    def commitGroup(self) -> Command | None:
        """Close the innermost group. Its commands become a single entry, or
        part of the enclosing group."""
        title, commands = self._openGroups.pop()
        if not commands:
            return None
        command = combineCommands(title, commands)
        if self._openGroups:
            self._openGroups[-1][1].append(command)
        else:
            self._commit(command)
        return command

    def abortGroup(self) -> None:
        """Close the innermost group, rolling back what it applied."""
        title, commands = self._openGroups.pop()
        logger.debug("abort group %r", title)
        for command in reversed(commands):
            applyChange(self.document, command.rollbackChange)
            self._notify(command.rollbackChange)
        self._releaseHandles(commands)

    @contextmanager
    def group(self, title: str):
        self.beginGroup(title)
        try:
            yield self
        except BaseException:
            self.abortGroup()
            raise
        self.commitGroup()
