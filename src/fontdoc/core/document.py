from __future__ import annotations

import logging
from typing import Any, Iterator

from .arena import Arena, Handle
from .classes import (
    DEFAULT_LAYER_NAME,
    FontInfo,
    Glyph,
    Kerning,
    Layer,
    Point,
    fingerprint,
    unstructure,
)
from .errors import DanglingReference
from .glyphdependencies import GlyphDependencies
from .kerning import KerningGroupPolicy, isGroupReference, iterPairs, kerningValue
from .outline import Continuity, contourContinuities, drawContourPoints

logger = logging.getLogger(__name__)


class FontDocument:
    """The in-memory font source.

    All identity-bearing entities (glyphs and everything they own, and
    font-level guidelines) live in `arena` and are referenced by Handle.
    Mutations go through commands (see history.py); everything here is read
    access.
    """

    def __init__(
        self, *, kerningGroupPolicy=KerningGroupPolicy.FIRST_DECLARED
    ) -> None:
        self.arena: Arena = Arena()
        self.fontInfo = FontInfo()
        self.layers: dict[str, Layer] = {}
        self.defaultLayerName = DEFAULT_LAYER_NAME
        self.guidelines: list[Handle] = []
        self.kerning = Kerning()
        self.customData: dict[str, Any] = {}
        self.kerningGroupPolicy = kerningGroupPolicy
        # Codec bookkeeping, not part of the logical state
        self.metaInfo: dict[str, Any] = {}
        self.path = None
        self.savedState = None

    @classmethod
    def new(cls, **kwargs) -> FontDocument:
        document = cls(**kwargs)
        document.layers[document.defaultLayerName] = Layer(
            name=document.defaultLayerName
        )
        return document

    def __repr__(self):
        return (
            f"{self.__class__.__name__}(path={self.path!r}, "
            f"layers={list(self.layers)!r})"
        )

    # Layers and glyphs

    @property
    def defaultLayer(self) -> Layer:
        return self.layers[self.defaultLayerName]

    def _resolveLayerName(self, layerName):
        return self.defaultLayerName if layerName is None else layerName

    def getLayer(self, layerName: str | None = None) -> Layer | None:
        return self.layers.get(self._resolveLayerName(layerName))

    def glyphHandle(self, glyphName: str, layerName: str | None = None):
        layer = self.getLayer(layerName)
        if layer is None:
            return None
        return layer.glyphs.get(glyphName)

    def getGlyph(self, glyphName: str, layerName: str | None = None) -> Glyph | None:
        handle = self.glyphHandle(glyphName, layerName)
        if handle is None:
            return None
        return self.arena.get(handle)

    def glyphNames(self, layerName: str | None = None) -> list[str]:
        layer = self.getLayer(layerName)
        return [] if layer is None else list(layer.glyphs)

    def iterGlyphs(
        self, layerName: str | None = None
    ) -> Iterator[tuple[Handle, Glyph]]:
        layer = self.getLayer(layerName)
        if layer is None:
            return
        for handle in layer.glyphs.values():
            glyph = self.arena.get(handle)
            if glyph is not None:
                yield handle, glyph

    def findGlyphLayerName(self, glyphHandle: Handle) -> str | None:
        glyph = self.arena.get(glyphHandle)
        if glyph is None:
            return None
        for layerName, layer in self.layers.items():
            if layer.glyphs.get(glyph.name) == glyphHandle:
                return layerName
        return None

    def iterOwnedHandles(self, glyphHandle: Handle) -> Iterator[Handle]:
        """Yield the handles of all entities owned by a glyph, points after
        their contour."""
        glyph = self.arena[glyphHandle]
        yield from glyph.guidelines
        yield from glyph.anchors
        for contourHandle in glyph.contours:
            yield contourHandle
            contour = self.arena.get(contourHandle)
            if contour is not None:
                yield from contour.points
        yield from glyph.components

    # Components

    def componentNames(self, glyph: Glyph) -> list[str]:
        names = []
        for componentHandle in glyph.components:
            component = self.arena.get(componentHandle)
            if component is not None:
                names.append(component.baseGlyph)
        return names

    def glyphDependencies(self, layerName: str | None = None) -> GlyphDependencies:
        return GlyphDependencies.fromComponentNames(
            (glyph.name, self.componentNames(glyph))
            for _, glyph in self.iterGlyphs(layerName)
        )

    def usedBy(self, glyphName: str, layerName: str | None = None) -> list[str]:
        """Return the names of glyphs that use `glyphName` as a component,
        directly or indirectly, in the given layer."""
        return sorted(self.glyphDependencies(layerName).usedByRecursive(glyphName))

    def findComponentCycle(self, glyphHandle: Handle) -> list[str] | None:
        glyph = self.arena.get(glyphHandle)
        layerName = self.findGlyphLayerName(glyphHandle)
        if glyph is None or layerName is None:
            return None
        return self.glyphDependencies(layerName).findCycle(glyph.name)

    def findDanglingReferences(self) -> list[DanglingReference]:
        diagnostics = []
        for layerName, layer in self.layers.items():
            for _, glyph in self.iterGlyphs(layerName):
                for baseGlyph in self.componentNames(glyph):
                    if baseGlyph not in layer.glyphs:
                        diagnostics.append(
                            DanglingReference(
                                f"glyph {glyph.name!r} in layer {layerName!r} uses "
                                f"missing component base glyph {baseGlyph!r}",
                                source=glyph.name,
                                target=baseGlyph,
                                layerName=layerName,
                            )
                        )
        # Kerning is about the default layer's glyphs
        glyphNames = self.defaultLayer.glyphs
        groups = self.kerning.groups
        for groupName, members in groups.items():
            for member in members:
                if member not in glyphNames:
                    diagnostics.append(
                        DanglingReference(
                            f"kerning group {groupName!r} contains missing glyph "
                            f"{member!r}",
                            source=groupName,
                            target=member,
                        )
                    )
        reported = set()
        for left, right, _ in iterPairs(self.kerning):
            for name in [left, right]:
                if name in reported:
                    continue
                if isGroupReference(name):
                    if name in groups:
                        continue
                    message = f"kerning refers to undefined group {name!r}"
                elif name in glyphNames:
                    continue
                else:
                    message = f"kerning refers to missing glyph {name!r}"
                reported.add(name)
                diagnostics.append(
                    DanglingReference(message, source="kerning", target=name)
                )
        return diagnostics

    # Overview

    def glyphOverviewOrder(self, layerName: str | None = None) -> list[str]:
        """Glyphs with code points first, by lowest code point, then the
        unencoded ones by name."""
        encoded = []
        unencoded = []
        for _, glyph in self.iterGlyphs(layerName):
            if glyph.unicodes:
                encoded.append((min(glyph.unicodes), glyph.name))
            else:
                unencoded.append(glyph.name)
        return [name for _, name in sorted(encoded)] + sorted(unencoded)

    # Kerning

    def kerningValue(self, leftGlyph: str, rightGlyph: str) -> float:
        return kerningValue(
            self.kerning, leftGlyph, rightGlyph, self.kerningGroupPolicy
        )

    # Outlines

    def getContourPoints(self, contourHandle: Handle) -> list[Point]:
        contour = self.arena[contourHandle]
        return [self.arena[pointHandle] for pointHandle in contour.points]

    def contourContinuities(
        self, contourHandle: Handle
    ) -> list[tuple[Handle, Continuity]]:
        contour = self.arena[contourHandle]
        continuities = contourContinuities(
            self.getContourPoints(contourHandle), contour.isClosed
        )
        return [
            (pointHandle, continuity)
            for pointHandle, continuity in zip(contour.points, continuities)
            if continuity is not None
        ]

    def drawPoints(self, glyphHandle: Handle, pen) -> None:
        """Draw the glyph's contours and components to a fontTools point pen."""
        glyph = self.arena[glyphHandle]
        for contourHandle in glyph.contours:
            contour = self.arena[contourHandle]
            drawContourPoints(
                self.getContourPoints(contourHandle), contour.isClosed, pen
            )
        for componentHandle in glyph.components:
            component = self.arena[componentHandle]
            pen.addComponent(component.baseGlyph, component.transformation)

    # Plain data

    def glyphData(self, glyphHandle: Handle) -> dict[str, Any]:
        """Return the glyph with all owned entities resolved, as plain data."""
        glyph = self.arena[glyphHandle]
        data = unstructure(glyph)
        data["contours"] = [
            self._contourData(contourHandle) for contourHandle in glyph.contours
        ]
        for attrName in ["components", "anchors", "guidelines"]:
            data[attrName] = [
                unstructure(self.arena[handle]) for handle in getattr(glyph, attrName)
            ]
        return {k: v for k, v in data.items() if v != []}

    def _contourData(self, contourHandle):
        contour = self.arena[contourHandle]
        data = unstructure(contour)
        data["points"] = [
            unstructure(self.arena[pointHandle]) for pointHandle in contour.points
        ]
        data["isClosed"] = contour.isClosed
        return data

    def glyphFingerprint(self, glyphHandle: Handle) -> str:
        return fingerprint(self.glyphData(glyphHandle))

    def guidelineData(self) -> list[dict]:
        return [unstructure(self.arena[handle]) for handle in self.guidelines]

    def logicalState(self) -> dict[str, Any]:
        """All logical content as plain data, independent of handles. Glyph
        and kerning pair order carries no meaning and is ignored. Group order
        decides kerning lookups and is kept."""
        return {
            "fontInfo": unstructure(self.fontInfo),
            "defaultLayerName": self.defaultLayerName,
            "layers": [
                {
                    "name": layer.name,
                    "customData": layer.customData,
                    "glyphs": {
                        glyphName: self.glyphData(handle)
                        for glyphName, handle in layer.glyphs.items()
                    },
                }
                for layer in self.layers.values()
            ],
            "guidelines": self.guidelineData(),
            "kerning": {
                "groups": [list(item) for item in self.kerning.groups.items()],
                "pairs": self.kerning.pairs,
            },
            "customData": self.customData,
        }

    def fingerprint(self) -> str:
        return fingerprint(self.logicalState())
