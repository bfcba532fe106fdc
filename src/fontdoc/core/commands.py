from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any, Callable

from .arena import Handle
from .changes import consolidateChanges, iterChangeCalls


@dataclass(kw_only=True)
class Command:
    title: str
    change: dict[str, Any]
    rollbackChange: dict[str, Any]
    # Glyphs whose component graph this command touched; checked for cycles
    componentGlyphs: frozenset[Handle] = field(default_factory=frozenset)

    def revivableHandles(self) -> set[Handle]:
        """Handles that applying or rolling back this command can bring back
        to life."""
        handles = set()
        for change in [self.change, self.rollbackChange]:
            for path, functionName, args in iterChangeCalls(change):
                if functionName == "revive":
                    handles.add(args[0])
        return handles


CommandFactory = Callable[[Any], Command]


def combineCommands(title: str, commands: list[Command]) -> Command:
    return Command(
        title=title,
        change=consolidateChanges([command.change for command in commands]),
        rollbackChange=consolidateChanges(
            [command.rollbackChange for command in reversed(commands)]
        ),
        componentGlyphs=frozenset().union(
            *(command.componentGlyphs for command in commands)
        ),
    )


class ChangeRecorder:
    """Accumulate matching change/rollback pairs for a single command.

    Each change is computed against the state left by the previous ones, and
    rollbacks are replayed in reverse order.
    """

    def __init__(self, title: str):
        self.title = title
        self.changes: list[dict] = []
        self.rollbackChanges: list[dict] = []
        self.componentGlyphs: set[Handle] = set()

    def record(self, change, rollbackChange):
        self.changes.append(change)
        self.rollbackChanges.insert(0, rollbackChange)

    def setValue(self, path, key, value, oldValue):
        self.record(
            {"p": list(path), "f": "=", "a": [key, deepcopy(value)]},
            {"p": list(path), "f": "=", "a": [key, deepcopy(oldValue)]},
        )

    def setPosition(self, path, x, y, oldX, oldY):
        self.record(
            {"p": list(path), "f": "=xy", "a": [x, y]},
            {"p": list(path), "f": "=xy", "a": [oldX, oldY]},
        )

    def insertItems(self, path, index, items):
        items = deepcopy(list(items))
        self.record(
            {"p": list(path), "f": "+", "a": [index, *items]},
            {"p": list(path), "f": "-", "a": [index, len(items)]},
        )

    def deleteItems(self, path, index, items):
        items = deepcopy(list(items))
        self.record(
            {"p": list(path), "f": "-", "a": [index, len(items)]},
            {"p": list(path), "f": "+", "a": [index, *items]},
        )

    def insertKey(self, path, index, key, value):
        self.record(
            {"p": list(path), "f": "insertKey", "a": [index, key, deepcopy(value)]},
            {"p": list(path), "f": "d", "a": [key]},
        )

    def deleteKey(self, path, index, key, oldValue):
        self.record(
            {"p": list(path), "f": "d", "a": [key]},
            {"p": list(path), "f": "insertKey", "a": [index, key, deepcopy(oldValue)]},
        )

    def renameKey(self, path, oldKey, newKey):
        self.record(
            {"p": list(path), "f": "renameKey", "a": [oldKey, newKey]},
            {"p": list(path), "f": "renameKey", "a": [newKey, oldKey]},
        )

    def createEntity(self, handle, value):
        self.record(
            {"p": ["arena"], "f": "revive", "a": [handle, deepcopy(value)]},
            {"p": ["arena"], "f": "tombstone", "a": [handle]},
        )

    def deleteEntity(self, handle, oldValue):
        self.record(
            {"p": ["arena"], "f": "tombstone", "a": [handle]},
            {"p": ["arena"], "f": "revive", "a": [handle, deepcopy(oldValue)]},
        )

    def getCommand(self) -> Command:
        return Command(
            title=self.title,
            change=consolidateChanges(self.changes),
            rollbackChange=consolidateChanges(self.rollbackChanges),
            componentGlyphs=frozenset(self.componentGlyphs),
        )
