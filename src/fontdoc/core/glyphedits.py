"""Command factories for editing glyph outlines and glyph attributes.

Every function here returns a factory: a callable taking the document and
returning a Command, to be passed to `History.apply()`. Factories validate
against the document state at the time they run, and raise (MalformedOutline,
InvalidHandle, ValueError) without touching the document if the edit is not
acceptable.
"""

from __future__ import annotations

import logging
from copy import deepcopy
from typing import Any, Callable, Iterable, Optional

from fontTools.misc.transform import Identity, Transform
from fontTools.pens.pointPen import ReverseContourPointPen
from fontTools.pens.recordingPen import RecordingPointPen

from .arena import Handle
from .classes import Anchor, Component, Contour, Guideline, Point
from .commands import ChangeRecorder, Command
from .errors import InvalidHandle, MalformedOutline
from .outline import (
    OutlinePointPen,
    quadraticToCubic,
    validateContour,
    validateContourPointTypes,
)

logger = logging.getLogger(__name__)

_unchanged = object()


def _makePoint(point) -> Point:
    if isinstance(point, Point):
        return deepcopy(point)
    if isinstance(point, dict):
        return Point(**point)
    x, y, *rest = point
    return Point(x=x, y=y, type=rest[0] if rest else None)


def _indexOf(items: list, handle: Handle, what: str) -> int:
    try:
        return items.index(handle)
    except ValueError:
        raise InvalidHandle(f"{what} {handle!r} not found") from None


def _pointTypes(document, contour) -> list[Optional[str]]:
    return [document.arena[pointHandle].type for pointHandle in contour.points]


def _recordNewContour(
    document, recorder, glyphHandle, points, isClosed, index, customData=None
):
    glyph = document.arena[glyphHandle]
    if index is None:
        index = len(glyph.contours)
    pointHandles = []
    for point in points:
        pointHandle = document.arena.reserve()
        recorder.createEntity(pointHandle, point)
        pointHandles.append(pointHandle)
    contourHandle = document.arena.reserve()
    recorder.createEntity(
        contourHandle,
        Contour(points=pointHandles, isClosed=isClosed, customData=customData or {}),
    )
    recorder.insertItems(["arena", glyphHandle, "contours"], index, [contourHandle])
    return contourHandle


def _recordNewComponent(document, recorder, glyphHandle, baseGlyph, transformation, index):
    glyph = document.arena[glyphHandle]
    if index is None:
        index = len(glyph.components)
    componentHandle = document.arena.reserve()
    recorder.createEntity(
        componentHandle,
        Component(baseGlyph=baseGlyph, transformation=tuple(Transform(*transformation))),
    )
    recorder.insertItems(["arena", glyphHandle, "components"], index, [componentHandle])
    recorder.componentGlyphs.add(glyphHandle)
    return componentHandle


# Contours


def addContour(
    glyphHandle: Handle,
    points: Iterable[Any],
    isClosed: bool = True,
    index: int | None = None,
) -> Callable[[Any], Command]:
    points = [_makePoint(point) for point in points]

    def factory(document):
        document.arena[glyphHandle]
        validateContour(points, isClosed)
        recorder = ChangeRecorder("Add Contour")
        _recordNewContour(document, recorder, glyphHandle, points, isClosed, index)
        return recorder.getCommand()

    return factory


def addQuadrilateral(glyphHandle: Handle, corners) -> Callable[[Any], Command]:
    """Add a closed contour of four line segments through the corner points."""
    corners = list(corners)
    if len(corners) != 4:
        raise ValueError("a quadrilateral needs four corner points")
    return addContour(
        glyphHandle, [Point(x=x, y=y, type="line") for x, y in corners], isClosed=True
    )


def addOutline(glyphHandle: Handle, drawPoints: Callable) -> Callable[[Any], Command]:
    """Add the contours and components drawn by `drawPoints(pointPen)`."""
    pen = OutlinePointPen()
    drawPoints(pen)

    def factory(document):
        document.arena[glyphHandle]
        recorder = ChangeRecorder("Add Outline")
        contourIndex = len(document.arena[glyphHandle].contours)
        for points, isClosed in pen.contours:
            _recordNewContour(
                document, recorder, glyphHandle, points, isClosed, contourIndex
            )
            contourIndex += 1
        componentIndex = len(document.arena[glyphHandle].components)
        for baseGlyph, transformation in pen.components:
            _recordNewComponent(
                document, recorder, glyphHandle, baseGlyph, transformation, componentIndex
            )
            componentIndex += 1
        return recorder.getCommand()

    return factory


def removeContour(glyphHandle: Handle, contourHandle: Handle):
    def factory(document):
        glyph = document.arena[glyphHandle]
        index = _indexOf(glyph.contours, contourHandle, "contour")
        contour = document.arena[contourHandle]
        recorder = ChangeRecorder("Delete Contour")
        recorder.deleteItems(["arena", glyphHandle, "contours"], index, [contourHandle])
        recorder.deleteEntity(contourHandle, contour)
        for pointHandle in contour.points:
            recorder.deleteEntity(pointHandle, document.arena[pointHandle])
        return recorder.getCommand()

    return factory


def reorderContour(glyphHandle: Handle, contourHandle: Handle, newIndex: int):
    def factory(document):
        glyph = document.arena[glyphHandle]
        index = _indexOf(glyph.contours, contourHandle, "contour")
        if not 0 <= newIndex < len(glyph.contours):
            raise IndexError(f"contour index out of range: {newIndex}")
        recorder = ChangeRecorder("Reorder Contour")
        path = ["arena", glyphHandle, "contours"]
        recorder.deleteItems(path, index, [contourHandle])
        recorder.insertItems(path, newIndex, [contourHandle])
        return recorder.getCommand()

    return factory


def setContourClosed(contourHandle: Handle, isClosed: bool):
    """Open or close a contour. Closing turns the leading move point into a
    line point, opening turns the first point into a move point."""

    def factory(document):
        contour = document.arena[contourHandle]
        pointTypes = _pointTypes(document, contour)
        recorder = ChangeRecorder("Close Contour" if isClosed else "Open Contour")
        if pointTypes and isClosed != contour.isClosed:
            firstHandle = contour.points[0]
            if isClosed and pointTypes[0] == "move":
                pointTypes[0] = "line"
                recorder.setValue(["arena", firstHandle], "type", "line", "move")
            elif not isClosed:
                if pointTypes[0] is None:
                    raise MalformedOutline("can't open a contour at an off-curve point")
                recorder.setValue(
                    ["arena", firstHandle], "type", "move", pointTypes[0]
                )
                pointTypes[0] = "move"
        validateContourPointTypes(pointTypes, isClosed)
        recorder.setValue(["arena", contourHandle], "isClosed", isClosed, contour.isClosed)
        return recorder.getCommand()

    return factory


# Points


def insertPoint(contourHandle: Handle, index: int, point):
    point = _makePoint(point)

    def factory(document):
        contour = document.arena[contourHandle]
        if not 0 <= index <= len(contour.points):
            raise IndexError(f"point index out of range: {index}")
        pointTypes = _pointTypes(document, contour)
        pointTypes.insert(index, point.type)
        validateContourPointTypes(pointTypes, contour.isClosed)
        recorder = ChangeRecorder("Insert Point")
        pointHandle = document.arena.reserve()
        recorder.createEntity(pointHandle, point)
        recorder.insertItems(["arena", contourHandle, "points"], index, [pointHandle])
        return recorder.getCommand()

    return factory


def deletePoints(contourHandle: Handle, pointHandles: Iterable[Handle]):
    pointHandles = list(pointHandles)

    def factory(document):
        contour = document.arena[contourHandle]
        indices = sorted(
            {_indexOf(contour.points, handle, "point") for handle in pointHandles},
            reverse=True,
        )
        pointTypes = _pointTypes(document, contour)
        for index in indices:
            del pointTypes[index]
        validateContourPointTypes(pointTypes, contour.isClosed)
        recorder = ChangeRecorder("Delete Points" if len(indices) > 1 else "Delete Point")
        for index in indices:
            pointHandle = contour.points[index]
            recorder.deleteItems(["arena", contourHandle, "points"], index, [pointHandle])
            recorder.deleteEntity(pointHandle, document.arena[pointHandle])
        return recorder.getCommand()

    return factory


def deletePoint(contourHandle: Handle, pointHandle: Handle):
    return deletePoints(contourHandle, [pointHandle])


def movePoints(pointHandles: Iterable[Handle], dx: float, dy: float):
    pointHandles = list(pointHandles)

    def factory(document):
        recorder = ChangeRecorder("Move Points" if len(pointHandles) > 1 else "Move Point")
        for pointHandle in pointHandles:
            point = document.arena[pointHandle]
            recorder.setPosition(
                ["arena", pointHandle], point.x + dx, point.y + dy, point.x, point.y
            )
        return recorder.getCommand()

    return factory


def setPointPosition(pointHandle: Handle, x: float, y: float):
    def factory(document):
        point = document.arena[pointHandle]
        recorder = ChangeRecorder("Move Point")
        recorder.setPosition(["arena", pointHandle], x, y, point.x, point.y)
        return recorder.getCommand()

    return factory


def setPointType(
    contourHandle: Handle,
    pointHandle: Handle,
    pointType: str | None,
    smooth: bool | None = None,
):
    def factory(document):
        contour = document.arena[contourHandle]
        index = _indexOf(contour.points, pointHandle, "point")
        point = document.arena[pointHandle]
        pointTypes = _pointTypes(document, contour)
        pointTypes[index] = pointType
        validateContourPointTypes(pointTypes, contour.isClosed)
        recorder = ChangeRecorder("Set Point Type")
        recorder.setValue(["arena", pointHandle], "type", pointType, point.type)
        newSmooth = point.smooth if smooth is None else smooth
        if pointType is None:
            newSmooth = False
        if newSmooth != point.smooth:
            recorder.setValue(["arena", pointHandle], "smooth", newSmooth, point.smooth)
        return recorder.getCommand()

    return factory


def transformPoints(pointHandles: Iterable[Handle], transformation):
    """Apply an affine transformation, a fontTools Transform or its six
    values, to the given points."""
    pointHandles = list(pointHandles)
    transform = Transform(*transformation)

    def factory(document):
        recorder = ChangeRecorder("Transform Points")
        for pointHandle in pointHandles:
            point = document.arena[pointHandle]
            x, y = transform.transformPoint((point.x, point.y))
            recorder.setPosition(["arena", pointHandle], x, y, point.x, point.y)
        return recorder.getCommand()

    return factory


# Whole contours


def reverseContour(contourHandle: Handle):
    """Reverse the direction of a contour. A closed contour keeps its first
    point; the points keep their handles."""

    def factory(document):
        contour = document.arena[contourHandle]
        recordingPen = RecordingPointPen()
        reversePen = ReverseContourPointPen(recordingPen)
        reversePen.beginPath()
        for pointHandle in contour.points:
            point = document.arena[pointHandle]
            reversePen.addPoint(
                (point.x, point.y),
                segmentType=point.type,
                smooth=point.smooth,
                pointHandle=pointHandle,
            )
        reversePen.endPath()

        recorder = ChangeRecorder("Reverse Contour")
        newPointHandles = []
        for method, args, kwargs in recordingPen.value:
            if method != "addPoint":
                continue
            pointHandle = kwargs["pointHandle"]
            newPointHandles.append(pointHandle)
            point = document.arena[pointHandle]
            segmentType = args[1]
            if segmentType != point.type:
                recorder.setValue(
                    ["arena", pointHandle], "type", segmentType, point.type
                )
        if newPointHandles != contour.points:
            recorder.setValue(
                ["arena", contourHandle], "points", newPointHandles, contour.points
            )
        return recorder.getCommand()

    return factory


def convertToCubic(contourHandle: Handle):
    """Replace the quadratic segments of a contour by cubic ones drawing the
    same curve."""

    def factory(document):
        contour = document.arena[contourHandle]
        points = [document.arena[pointHandle] for pointHandle in contour.points]
        recorder = ChangeRecorder("Convert to Cubic")
        newPointHandles = []
        kept = set()
        for index, value in quadraticToCubic(points, contour.isClosed):
            if index is None:
                pointHandle = document.arena.reserve()
                recorder.createEntity(pointHandle, value)
            else:
                pointHandle = contour.points[index]
                kept.add(index)
                point = points[index]
                if value is not None and value != point.type:
                    recorder.setValue(
                        ["arena", pointHandle], "type", value, point.type
                    )
            newPointHandles.append(pointHandle)
        if newPointHandles != contour.points:
            recorder.setValue(
                ["arena", contourHandle], "points", newPointHandles, contour.points
            )
        for index, pointHandle in enumerate(contour.points):
            if index not in kept:
                recorder.deleteEntity(pointHandle, points[index])
        return recorder.getCommand()

    return factory


# Components


def addComponent(
    glyphHandle: Handle,
    baseGlyph: str,
    transformation=Identity,
    index: int | None = None,
):
    def factory(document):
        document.arena[glyphHandle]
        recorder = ChangeRecorder("Add Component")
        _recordNewComponent(
            document, recorder, glyphHandle, baseGlyph, transformation, index
        )
        return recorder.getCommand()

    return factory


def removeComponent(glyphHandle: Handle, componentHandle: Handle):
    def factory(document):
        glyph = document.arena[glyphHandle]
        index = _indexOf(glyph.components, componentHandle, "component")
        recorder = ChangeRecorder("Delete Component")
        recorder.deleteItems(
            ["arena", glyphHandle, "components"], index, [componentHandle]
        )
        recorder.deleteEntity(componentHandle, document.arena[componentHandle])
        recorder.componentGlyphs.add(glyphHandle)
        return recorder.getCommand()

    return factory


def setComponentBaseGlyph(glyphHandle: Handle, componentHandle: Handle, baseGlyph: str):
    def factory(document):
        glyph = document.arena[glyphHandle]
        _indexOf(glyph.components, componentHandle, "component")
        component = document.arena[componentHandle]
        recorder = ChangeRecorder("Set Component Base Glyph")
        recorder.setValue(
            ["arena", componentHandle], "baseGlyph", baseGlyph, component.baseGlyph
        )
        recorder.componentGlyphs.add(glyphHandle)
        return recorder.getCommand()

    return factory


def setComponentTransformation(componentHandle: Handle, transformation):
    transformation = tuple(Transform(*transformation))

    def factory(document):
        component = document.arena[componentHandle]
        recorder = ChangeRecorder("Transform Component")
        recorder.setValue(
            ["arena", componentHandle],
            "transformation",
            transformation,
            component.transformation,
        )
        return recorder.getCommand()

    return factory


# Anchors and guidelines


def addAnchor(glyphHandle: Handle, name: str | None, x: float, y: float):
    def factory(document):
        glyph = document.arena[glyphHandle]
        recorder = ChangeRecorder("Add Anchor")
        anchorHandle = document.arena.reserve()
        recorder.createEntity(anchorHandle, Anchor(name=name, x=x, y=y))
        recorder.insertItems(
            ["arena", glyphHandle, "anchors"], len(glyph.anchors), [anchorHandle]
        )
        return recorder.getCommand()

    return factory


def removeAnchor(glyphHandle: Handle, anchorHandle: Handle):
    def factory(document):
        glyph = document.arena[glyphHandle]
        index = _indexOf(glyph.anchors, anchorHandle, "anchor")
        recorder = ChangeRecorder("Delete Anchor")
        recorder.deleteItems(["arena", glyphHandle, "anchors"], index, [anchorHandle])
        recorder.deleteEntity(anchorHandle, document.arena[anchorHandle])
        return recorder.getCommand()

    return factory


def moveAnchor(anchorHandle: Handle, x: float, y: float):
    def factory(document):
        anchor = document.arena[anchorHandle]
        recorder = ChangeRecorder("Move Anchor")
        recorder.setPosition(["arena", anchorHandle], x, y, anchor.x, anchor.y)
        return recorder.getCommand()

    return factory


def _guidelineOwnerPath(document, ownerHandle):
    # A None owner means a font-level guideline
    if ownerHandle is None:
        return ["guidelines"], document.guidelines
    return ["arena", ownerHandle, "guidelines"], document.arena[ownerHandle].guidelines


def addGuideline(
    ownerHandle: Handle | None,
    name: str | None = None,
    x: float | None = None,
    y: float | None = None,
    angle: float | None = None,
):
    if x is None and y is None:
        raise ValueError("a guideline needs at least an x or a y coordinate")
    if (x is None or y is None) and angle is not None:
        raise ValueError("an axis-aligned guideline can't have an angle")

    def factory(document):
        path, guidelines = _guidelineOwnerPath(document, ownerHandle)
        recorder = ChangeRecorder("Add Guideline")
        guidelineHandle = document.arena.reserve()
        recorder.createEntity(
            guidelineHandle, Guideline(name=name, x=x, y=y, angle=angle)
        )
        recorder.insertItems(path, len(guidelines), [guidelineHandle])
        return recorder.getCommand()

    return factory


def removeGuideline(ownerHandle: Handle | None, guidelineHandle: Handle):
    def factory(document):
        path, guidelines = _guidelineOwnerPath(document, ownerHandle)
        index = _indexOf(guidelines, guidelineHandle, "guideline")
        recorder = ChangeRecorder("Delete Guideline")
        recorder.deleteItems(path, index, [guidelineHandle])
        recorder.deleteEntity(guidelineHandle, document.arena[guidelineHandle])
        return recorder.getCommand()

    return factory


# Glyph attributes


def setAdvance(glyphHandle: Handle, xAdvance=_unchanged, yAdvance=_unchanged):
    def factory(document):
        glyph = document.arena[glyphHandle]
        recorder = ChangeRecorder("Set Advance")
        if xAdvance is not _unchanged:
            recorder.setValue(["arena", glyphHandle], "xAdvance", xAdvance, glyph.xAdvance)
        if yAdvance is not _unchanged:
            recorder.setValue(["arena", glyphHandle], "yAdvance", yAdvance, glyph.yAdvance)
        return recorder.getCommand()

    return factory


def setUnicodes(glyphHandle: Handle, unicodes: Iterable[int]):
    # Duplicates are dropped, the first occurrence wins
    unicodes = list(dict.fromkeys(unicodes))

    def factory(document):
        glyph = document.arena[glyphHandle]
        recorder = ChangeRecorder("Set Unicodes")
        recorder.setValue(["arena", glyphHandle], "unicodes", unicodes, glyph.unicodes)
        return recorder.getCommand()

    return factory


def setNote(glyphHandle: Handle, note: str | None):
    def factory(document):
        glyph = document.arena[glyphHandle]
        recorder = ChangeRecorder("Set Note")
        recorder.setValue(["arena", glyphHandle], "note", note, glyph.note)
        return recorder.getCommand()

    return factory


def setCustomData(handle: Handle, customData: dict[str, Any]):
    """Replace the foreign-data bag of any arena entity."""

    def factory(document):
        entity = document.arena[handle]
        recorder = ChangeRecorder("Set Custom Data")
        recorder.setValue(["arena", handle], "customData", customData, entity.customData)
        return recorder.getCommand()

    return factory
