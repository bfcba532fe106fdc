from __future__ import annotations

import logging
from copy import deepcopy
from typing import (
    Any,
    Callable,
    Generator,
    Mapping,
    MutableMapping,
    MutableSequence,
    Sequence,
)

logger = logging.getLogger(__name__)


# Values are copied on their way into the document, so that a change (which
# stays alive in the history) never aliases live document state.


def setItem(subject, key, item):
    item = deepcopy(item)
    if isinstance(subject, (MutableMapping, MutableSequence)):
        subject[key] = item
    else:
        setattr(subject, key, item)


def delAttr(subject, key):
    if isinstance(subject, Sequence):
        raise TypeError("can't call delattr on list")
    elif isinstance(subject, MutableMapping):
        del subject[key]
    else:
        delattr(subject, key)


def delItems(subject, index, deleteCount=1):
    spliceItems(subject, index, deleteCount)


def insertItems(subject, index, *items):
    spliceItems(subject, index, 0, *items)


def spliceItems(subject, index, deleteCount, *items):
    subject[index : index + deleteCount] = [deepcopy(item) for item in items]


def insertKey(subject, index, key, item):
    """Insert `key` into the dict `subject`, at position `index`."""
    if key in subject:
        raise ValueError(f"key already present: {key!r}")
    items = list(subject.items())
    items.insert(index, (key, deepcopy(item)))
    subject.clear()
    subject.update(items)


def renameKey(subject, oldKey, newKey):
    """Rename a dict key, keeping its position."""
    if newKey in subject:
        raise ValueError(f"key already present: {newKey!r}")
    items = [(newKey if k == oldKey else k, v) for k, v in subject.items()]
    subject.clear()
    subject.update(items)


def setPointPosition(point, x, y):
    point.x = x
    point.y = y


def reviveItem(arena, handle, item):
    arena.revive(handle, deepcopy(item))


def tombstoneItem(arena, handle):
    arena.remove(handle)


baseChangeFunctions: dict[str, Callable[..., None]] = {
    "=": setItem,
    "d": delAttr,
    "-": delItems,
    "+": insertItems,
    ":": spliceItems,
}


changeFunctions: dict[str, Callable[..., None]] = {
    **baseChangeFunctions,
    "=xy": setPointPosition,
    "insertKey": insertKey,
    "renameKey": renameKey,
    "revive": reviveItem,
    "tombstone": tombstoneItem,
}

#
# A "change" object is a simple dict containing several keys.
#
# "p": a list of path items, eg. ["arena", Handle(12, 0), "points"]
# Optional: can be omitted if empty.
#
# "f": function name, to be looked up in the changeFunctions dict
# Optional: can be omitted if the change has children
#
# "a": "arguments", a list of arguments for the change function
# Optional: if omitted, defaults to an empty list
#
# "c": List of child changes. Optional.
#
# Path items are resolved with item access for mappings and sequences (this
# includes the arena, which is a Mapping keyed by Handle), and with attribute
# access otherwise.
#


def applyChange(subject, change):
    """Apply `change` to `subject`."""
    _applyChange(subject, change)


def _applyChange(subject: Any, change: dict[str, Any]) -> None:
    path = change.get("p", [])
    functionName = change.get("f")
    children = change.get("c", [])

    for pathElement in path:
        if isinstance(subject, (Mapping, Sequence)):
            subject = subject[pathElement]
        else:
            subject = getattr(subject, pathElement)

    if functionName is not None:
        changeFunc: Callable[..., None] = changeFunctions[functionName]
        args = change.get("a", [])
        changeFunc(subject, *args)

    for subChange in children:
        _applyChange(subject, subChange)


def consolidateChanges(changes: list[dict[str, Any]], prefixPath=()):
    """Combine a list of changes into a single change, with an optional
    `prefixPath`."""
    change: dict[str, Any]
    if len(changes) == 1:
        change = {**changes[0]}
        path = list(prefixPath) + list(change.get("p", []))
        if path:
            change["p"] = path
        else:
            change.pop("p", None)
    else:
        change = {"c": list(changes)}
        if prefixPath:
            change["p"] = list(prefixPath)
    return change


def collectChangePaths(change: dict[str, Any], depth: int) -> list[tuple]:
    """Return a list of unique paths of the specified `depth` that the `change`
    includes, in order of appearance."""
    return list(dict.fromkeys(_iterateChangePaths(change, depth)))


def _iterateChangePaths(
    change: dict[str, Any], depth: int, prefix: tuple = ()
) -> Generator[tuple, None, None]:
    path = prefix + tuple(change.get("p", ()))
    if len(path) >= depth:
        yield path[:depth]
        return
    if change.get("f") is not None:
        yield path
    for childChange in change.get("c", []):
        yield from _iterateChangePaths(childChange, depth, path)


def iterChangeCalls(
    change: dict[str, Any], prefix: tuple = ()
) -> Generator[tuple[tuple, str, list], None, None]:
    """Yield (path, functionName, arguments) for every function call in the
    change tree, depth first."""
    path = prefix + tuple(change.get("p", ()))
    functionName = change.get("f")
    if functionName is not None:
        yield path, functionName, change.get("a", [])
    for childChange in change.get("c", []):
        yield from iterChangeCalls(childChange, path)
