"""Command factories for font-level edits: layers, glyphs, kerning, font info
and the font lib."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from .classes import Glyph, Layer, fontInfoFieldNames
from .commands import ChangeRecorder
from .errors import FontDocError

logger = logging.getLogger(__name__)

GLYPH_ORDER_KEY = "public.glyphOrder"


def _getLayer(document, layerName):
    layerName = document.defaultLayerName if layerName is None else layerName
    layer = document.layers.get(layerName)
    if layer is None:
        raise KeyError(f"no such layer: {layerName!r}")
    return layerName, layer


def _getGlyphHandle(layer, glyphName):
    glyphHandle = layer.glyphs.get(glyphName)
    if glyphHandle is None:
        raise KeyError(f"no such glyph in layer {layer.name!r}: {glyphName!r}")
    return glyphHandle


def _recordDeleteGlyphEntities(document, recorder, glyphHandle):
    ownedHandles = list(document.iterOwnedHandles(glyphHandle))
    recorder.deleteEntity(glyphHandle, document.arena[glyphHandle])
    for handle in ownedHandles:
        entity = document.arena.get(handle)
        if entity is not None:
            recorder.deleteEntity(handle, entity)


# Layers


def addLayer(layerName: str, index: int | None = None, customData=None):
    def factory(document):
        if layerName in document.layers:
            raise ValueError(f"layer already exists: {layerName!r}")
        recorder = ChangeRecorder("Add Layer")
        recorder.insertKey(
            ["layers"],
            len(document.layers) if index is None else index,
            layerName,
            Layer(name=layerName, customData=dict(customData or {})),
        )
        return recorder.getCommand()

    return factory


def removeLayer(layerName: str):
    """Delete a layer and tombstone all glyphs in it. The default layer can't
    be deleted."""

    def factory(document):
        _, layer = _getLayer(document, layerName)
        if layerName == document.defaultLayerName:
            raise FontDocError("can't delete the default layer")
        recorder = ChangeRecorder("Delete Layer")
        index = list(document.layers).index(layerName)
        recorder.deleteKey(["layers"], index, layerName, layer)
        for glyphHandle in layer.glyphs.values():
            _recordDeleteGlyphEntities(document, recorder, glyphHandle)
        return recorder.getCommand()

    return factory


def renameLayer(layerName: str, newLayerName: str):
    def factory(document):
        _getLayer(document, layerName)
        if newLayerName in document.layers:
            raise ValueError(f"layer already exists: {newLayerName!r}")
        recorder = ChangeRecorder("Rename Layer")
        recorder.setValue(["layers", layerName], "name", newLayerName, layerName)
        recorder.renameKey(["layers"], layerName, newLayerName)
        if document.defaultLayerName == layerName:
            recorder.setValue([], "defaultLayerName", newLayerName, layerName)
        return recorder.getCommand()

    return factory


def setDefaultLayer(layerName: str):
    def factory(document):
        _getLayer(document, layerName)
        recorder = ChangeRecorder("Set Default Layer")
        recorder.setValue(
            [], "defaultLayerName", layerName, document.defaultLayerName
        )
        return recorder.getCommand()

    return factory


def setLayerCustomData(layerName: str, customData: dict[str, Any]):
    def factory(document):
        layerName_, layer = _getLayer(document, layerName)
        recorder = ChangeRecorder("Set Layer Info")
        recorder.setValue(
            ["layers", layerName_], "customData", customData, layer.customData
        )
        return recorder.getCommand()

    return factory


# Glyphs


def addGlyph(
    glyphName: str,
    layerName: str | None = None,
    *,
    unicodes: Iterable[int] = (),
    xAdvance: float = 0,
):
    def factory(document):
        layerName_, layer = _getLayer(document, layerName)
        if glyphName in layer.glyphs:
            raise ValueError(f"glyph already exists: {glyphName!r}")
        recorder = ChangeRecorder("Add Glyph")
        glyphHandle = document.arena.reserve()
        recorder.createEntity(
            glyphHandle,
            Glyph(
                name=glyphName,
                xAdvance=xAdvance,
                unicodes=list(dict.fromkeys(unicodes)),
            ),
        )
        recorder.insertKey(
            ["layers", layerName_, "glyphs"], len(layer.glyphs), glyphName, glyphHandle
        )
        return recorder.getCommand()

    return factory


def removeGlyph(glyphName: str, layerName: str | None = None):
    """Delete a glyph and everything it owns. Glyphs that use it as a
    component are left alone; their references become dangling."""

    def factory(document):
        layerName_, layer = _getLayer(document, layerName)
        glyphHandle = _getGlyphHandle(layer, glyphName)
        recorder = ChangeRecorder("Delete Glyph")
        index = list(layer.glyphs).index(glyphName)
        recorder.deleteKey(
            ["layers", layerName_, "glyphs"], index, glyphName, glyphHandle
        )
        _recordDeleteGlyphEntities(document, recorder, glyphHandle)
        return recorder.getCommand()

    return factory


def renameGlyph(glyphName: str, newGlyphName: str, layerName: str | None = None):
    """Rename a glyph and update all references to it in the same command:
    components in the same layer and, for the default layer, kerning group
    members, kerning pairs and the glyph order."""

    def factory(document):
        layerName_, layer = _getLayer(document, layerName)
        glyphHandle = _getGlyphHandle(layer, glyphName)
        if newGlyphName in layer.glyphs:
            raise ValueError(f"glyph already exists: {newGlyphName!r}")
        recorder = ChangeRecorder("Rename Glyph")
        recorder.setValue(["arena", glyphHandle], "name", newGlyphName, glyphName)
        recorder.renameKey(["layers", layerName_, "glyphs"], glyphName, newGlyphName)
        recorder.componentGlyphs.add(glyphHandle)

        for otherHandle, otherGlyph in document.iterGlyphs(layerName_):
            for componentHandle in otherGlyph.components:
                component = document.arena.get(componentHandle)
                if component is not None and component.baseGlyph == glyphName:
                    recorder.setValue(
                        ["arena", componentHandle], "baseGlyph", newGlyphName, glyphName
                    )
                    recorder.componentGlyphs.add(otherHandle)

        if layerName_ == document.defaultLayerName:
            _recordKerningRename(document, recorder, glyphName, newGlyphName)
            glyphOrder = document.customData.get(GLYPH_ORDER_KEY)
            if glyphOrder and glyphName in glyphOrder:
                recorder.setValue(
                    ["customData"],
                    GLYPH_ORDER_KEY,
                    [newGlyphName if name == glyphName else name for name in glyphOrder],
                    glyphOrder,
                )
        return recorder.getCommand()

    return factory


def _recordKerningRename(document, recorder, glyphName, newGlyphName):
    kerning = document.kerning
    for groupName, members in kerning.groups.items():
        if glyphName in members:
            recorder.setValue(
                ["kerning", "groups"],
                groupName,
                [newGlyphName if name == glyphName else name for name in members],
                members,
            )
    if newGlyphName in kerning.pairs:
        raise ValueError(f"kerning already has pairs for {newGlyphName!r}")
    # Right side first, addressed by the not yet renamed left keys
    for left, row in kerning.pairs.items():
        if glyphName in row:
            if newGlyphName in row:
                raise ValueError(
                    f"kerning already has a pair {left!r}, {newGlyphName!r}"
                )
            recorder.renameKey(["kerning", "pairs", left], glyphName, newGlyphName)
    if glyphName in kerning.pairs:
        recorder.renameKey(["kerning", "pairs"], glyphName, newGlyphName)


# Kerning


def setGroup(groupName: str, members: Iterable[str]):
    """Set the members of a kerning group, creating it if needed."""
    members = list(dict.fromkeys(members))

    def factory(document):
        groups = document.kerning.groups
        recorder = ChangeRecorder("Set Group")
        if groupName in groups:
            recorder.setValue(
                ["kerning", "groups"], groupName, members, groups[groupName]
            )
        else:
            recorder.insertKey(["kerning", "groups"], len(groups), groupName, members)
        return recorder.getCommand()

    return factory


def removeGroup(groupName: str):
    """Delete a kerning group. Pairs referring to it are kept."""

    def factory(document):
        groups = document.kerning.groups
        if groupName not in groups:
            raise KeyError(f"no such group: {groupName!r}")
        recorder = ChangeRecorder("Delete Group")
        index = list(groups).index(groupName)
        recorder.deleteKey(["kerning", "groups"], index, groupName, groups[groupName])
        return recorder.getCommand()

    return factory


def setKerningPair(left: str, right: str, value: float):
    def factory(document):
        pairs = document.kerning.pairs
        recorder = ChangeRecorder("Set Kerning")
        row = pairs.get(left)
        if row is None:
            recorder.insertKey(["kerning", "pairs"], len(pairs), left, {right: value})
        elif right in row:
            recorder.setValue(["kerning", "pairs", left], right, value, row[right])
        else:
            recorder.insertKey(["kerning", "pairs", left], len(row), right, value)
        return recorder.getCommand()

    return factory


def removeKerningPair(left: str, right: str):
    def factory(document):
        pairs = document.kerning.pairs
        row = pairs.get(left)
        if row is None or right not in row:
            raise KeyError(f"no such kerning pair: {left!r}, {right!r}")
        recorder = ChangeRecorder("Delete Kerning")
        if len(row) == 1:
            index = list(pairs).index(left)
            recorder.deleteKey(["kerning", "pairs"], index, left, row)
        else:
            index = list(row).index(right)
            recorder.deleteKey(["kerning", "pairs", left], index, right, row[right])
        return recorder.getCommand()

    return factory


# Font info and lib


def setFontInfo(**values):
    """Set font info fields. Names that aren't modelled fields are stored in
    the font info's custom data, a None value deletes those."""

    def factory(document):
        fontInfo = document.fontInfo
        recorder = ChangeRecorder("Set Font Info")
        customData = dict(fontInfo.customData)
        for name, value in values.items():
            if name in fontInfoFieldNames:
                recorder.setValue(["fontInfo"], name, value, getattr(fontInfo, name))
            elif value is None:
                customData.pop(name, None)
            else:
                customData[name] = value
        if customData != fontInfo.customData:
            recorder.setValue(
                ["fontInfo"], "customData", customData, fontInfo.customData
            )
        return recorder.getCommand()

    return factory


def setFontLib(customData: dict[str, Any]):
    def factory(document):
        recorder = ChangeRecorder("Set Font Lib")
        recorder.setValue([], "customData", customData, document.customData)
        return recorder.getCommand()

    return factory
