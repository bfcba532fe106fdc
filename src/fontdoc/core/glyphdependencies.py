from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence


@dataclass(kw_only=True)
class GlyphDependencies:
    """Component graph of a single layer, by glyph name."""

    usedBy: dict[str, set[str]] = field(init=False, default_factory=dict)
    madeOf: dict[str, set[str]] = field(init=False, default_factory=dict)

    @classmethod
    def fromComponentNames(
        cls, items: Iterable[tuple[str, Sequence[str]]]
    ) -> GlyphDependencies:
        dependencies = cls()
        for glyphName, componentNames in items:
            dependencies.update(glyphName, componentNames)
        return dependencies

    def update(self, glyphName: str, componentNames: Sequence[str]) -> None:
        # Zap previous used-by data for this glyph, if any
        for componentName in self.madeOf.get(glyphName, ()):
            if componentName in self.usedBy:
                self.usedBy[componentName].discard(glyphName)
                if not self.usedBy[componentName]:
                    del self.usedBy[componentName]

        # Update made-of
        if componentNames:
            self.madeOf[glyphName] = set(componentNames)
        else:
            # Discard
            self.madeOf.pop(glyphName, None)

        # Update used-by
        for componentName in componentNames:
            if componentName not in self.usedBy:
                self.usedBy[componentName] = set()
            self.usedBy[componentName].add(glyphName)

    def findCycle(self, glyphName: str) -> list[str] | None:
        """Return a component cycle reachable from `glyphName` as a list of
        glyph names (first name repeated at the end), or None."""
        visiting = [glyphName]
        visitingSet = {glyphName}
        visited: set[str] = set()
        # One iterator over the remaining components per glyph on the path
        stack = [iter(sorted(self.madeOf.get(glyphName, ())))]
        while stack:
            name = next(stack[-1], None)
            if name is None:
                stack.pop()
                done = visiting.pop()
                visitingSet.discard(done)
                visited.add(done)
            elif name in visitingSet:
                return visiting[visiting.index(name) :] + [name]
            elif name not in visited:
                visiting.append(name)
                visitingSet.add(name)
                stack.append(iter(sorted(self.madeOf.get(name, ()))))
        return None

    def usedByRecursive(self, glyphName: str) -> set[str]:
        result = set()
        todo = [glyphName]
        while todo:
            for name in self.usedBy.get(todo.pop(), ()):
                if name not in result:
                    result.add(name)
                    todo.append(name)
        result.discard(glyphName)
        return result
