from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from fontTools.pens.basePen import decomposeQuadraticSegment
from fontTools.pens.pointPen import AbstractPointPen

from .classes import POINT_TYPES, Point
from .errors import MalformedOutline

logger = logging.getLogger(__name__)


def validateContourPointTypes(pointTypes: list[Optional[str]], isClosed: bool) -> None:
    """Raise MalformedOutline if the sequence of point types (None for
    off-curve points) is not a valid UFO contour."""
    if not pointTypes:
        return

    for pointType in pointTypes:
        if pointType is not None and pointType not in POINT_TYPES:
            raise MalformedOutline(f"unknown point type: {pointType!r}")

    numPoints = len(pointTypes)

    if isClosed:
        if "move" in pointTypes:
            raise MalformedOutline("closed contour can't contain a move point")
        if all(pointType is None for pointType in pointTypes):
            # A closed quadratic blob without on-curve points
            return
    else:
        if pointTypes[0] != "move":
            raise MalformedOutline("open contour must start with a move point")
        if "move" in pointTypes[1:]:
            raise MalformedOutline("move point can only start an open contour")
        if pointTypes[-1] is None:
            raise MalformedOutline("open contour can't end with off-curve points")

    # Count the off-curve run preceding each on-curve point, wrapping
    # around for closed contours.
    if isClosed:
        firstOnCurve = next(i for i, tp in enumerate(pointTypes) if tp is not None)
        indices = [(firstOnCurve + 1 + i) % numPoints for i in range(numPoints)]
    else:
        indices = range(numPoints)

    offCurveRun = 0
    for index in indices:
        pointType = pointTypes[index]
        if pointType is None:
            offCurveRun += 1
            continue
        if offCurveRun:
            if pointType in ("move", "line"):
                raise MalformedOutline(
                    f"{pointType} point at index {index} is preceded by off-curve points"
                )
            if pointType == "curve" and offCurveRun > 2:
                raise MalformedOutline(
                    f"curve point at index {index} is preceded by "
                    f"{offCurveRun} off-curve points"
                )
        offCurveRun = 0


def validateContour(points: list[Point], isClosed: bool) -> None:
    validateContourPointTypes([point.type for point in points], isClosed)


# Continuity analysis


@dataclass(frozen=True)
class Continuity:
    kind: str  # "positional", "tangent" or "velocity"
    beta: Optional[float] = None


POSITIONAL = Continuity("positional")
VELOCITY = Continuity("velocity", 1.0)

_collinearTolerance = 1e-6
_velocityTolerance = 0.005


def classifyJoin(previous, current, following) -> Continuity:
    """Classify the join at `current` between the handle coming in from
    `previous` and the handle going out to `following`. Arguments are
    (x, y) tuples."""
    ax = current[0] - previous[0]
    ay = current[1] - previous[1]
    bx = following[0] - current[0]
    by = following[1] - current[1]
    lengthA = math.hypot(ax, ay)
    lengthB = math.hypot(bx, by)
    if not lengthA or not lengthB:
        return POSITIONAL
    cross = (ax * by - ay * bx) / (lengthA * lengthB)
    dot = ax * bx + ay * by
    if abs(cross) > _collinearTolerance or dot <= 0:
        return POSITIONAL
    beta = lengthB / lengthA
    if abs(beta - 1) < _velocityTolerance:
        return VELOCITY
    return Continuity("tangent", beta)


def contourContinuities(points: list[Point], isClosed: bool) -> list[Continuity | None]:
    """Return one entry per point: None for off-curve points and for on-curve
    points that don't join two segments, else the join's Continuity."""
    numPoints = len(points)
    result: list[Continuity | None] = []
    for index, point in enumerate(points):
        if point.type is None:
            result.append(None)
            continue
        if not isClosed and (index == 0 or index == numPoints - 1):
            result.append(None)
            continue
        if numPoints < 3:
            result.append(None)
            continue
        previous = points[index - 1]
        following = points[(index + 1) % numPoints]
        result.append(
            classifyJoin(
                (previous.x, previous.y), (point.x, point.y), (following.x, following.y)
            )
        )
    return result


# Quadratic to cubic conversion


def _cubicPoints(start, offCurves, end) -> list[Point]:
    """Return the points following `start` of the cubic segments that draw
    the same curve as a quadratic segment, except the final on-curve point.
    Implied on-curve points become smooth curve points."""
    quadSegments = decomposeQuadraticSegment([*offCurves, end])
    points = []
    current = start
    for segmentIndex, (control, onCurve) in enumerate(quadSegments):
        for anchor in [current, onCurve]:
            points.append(
                Point(
                    x=anchor[0] + 2 / 3 * (control[0] - anchor[0]),
                    y=anchor[1] + 2 / 3 * (control[1] - anchor[1]),
                )
            )
        if segmentIndex < len(quadSegments) - 1:
            points.append(Point(x=onCurve[0], y=onCurve[1], type="curve", smooth=True))
        current = onCurve
    return points


def quadraticToCubic(points: list[Point], isClosed: bool) -> list[tuple]:
    """Describe a contour with its qcurve segments converted to curve segments.

    Returns one `(index, value)` tuple per output point. For a point of the
    original contour `index` is its index and `value` its new point type (None
    for off-curve points); new points have index None and a Point as value.
    The off-curve points of converted segments are not kept.
    """
    onCurveIndices = [i for i, point in enumerate(points) if point.isOnCurve]
    if not onCurveIndices:
        if not points:
            return []
        # A closed all off-curve quadratic contour starts at an implied point
        first, last = points[0], points[-1]
        start = ((first.x + last.x) / 2, (first.y + last.y) / 2)
        newPoints = _cubicPoints(start, [(p.x, p.y) for p in points], start)
        newPoints.append(Point(x=start[0], y=start[1], type="curve", smooth=True))
        return [(None, point) for point in newPoints]

    result = []
    tail = []
    for segmentIndex, index in enumerate(onCurveIndices):
        point = points[index]
        if segmentIndex:
            offCurveIndices = list(range(onCurveIndices[segmentIndex - 1] + 1, index))
        elif isClosed:
            offCurveIndices = list(range(onCurveIndices[-1] + 1, len(points)))
            offCurveIndices += list(range(index))
        else:
            offCurveIndices = []

        if point.type != "qcurve":
            if segmentIndex or not isClosed:
                result.extend((i, None) for i in offCurveIndices)
            else:
                # Off-curve points wrapping around the start stay in place
                result.extend((i, None) for i in range(index))
                tail.extend(
                    (i, None) for i in range(onCurveIndices[-1] + 1, len(points))
                )
            result.append((index, point.type))
            continue

        if not offCurveIndices:
            result.append((index, "line"))
            continue
        start = points[onCurveIndices[segmentIndex - 1]]
        newPoints = _cubicPoints(
            (start.x, start.y),
            [(points[i].x, points[i].y) for i in offCurveIndices],
            (point.x, point.y),
        )
        entries = [(None, newPoint) for newPoint in newPoints]
        if segmentIndex == 0 and index == 0:
            tail.extend(entries)
        else:
            result.extend(entries)
        result.append((index, "curve"))
    return result + tail


# Point pen support


def drawContourPoints(points: list[Point], isClosed: bool, pen) -> None:
    if not points:
        return
    pen.beginPath()
    for point in points:
        pen.addPoint(
            (point.x, point.y),
            segmentType=point.type,
            smooth=point.smooth,
            name=point.name,
        )
    pen.endPath()


class OutlinePointPen(AbstractPointPen):
    """Collect contours (as lists of Point) and components (as
    (baseGlyph, transformation) tuples) drawn by a point pen client."""

    def __init__(self):
        self.contours: list[tuple[list[Point], bool]] = []
        self.components: list[tuple[str, tuple]] = []
        self._currentContour = None

    def beginPath(self, identifier=None, **kwargs) -> None:
        self._currentContour = []

    def addPoint(
        self, pt, segmentType=None, smooth=False, name=None, identifier=None, **kwargs
    ) -> None:
        x, y = pt
        self._currentContour.append(
            Point(x=x, y=y, type=segmentType, smooth=bool(smooth), name=name)
        )

    def endPath(self) -> None:
        points = self._currentContour
        self._currentContour = None
        if not points:
            return
        isClosed = points[0].type != "move"
        validateContour(points, isClosed)
        self.contours.append((points, isClosed))

    def addComponent(self, baseGlyphName, transformation, identifier=None, **kwargs):
        self.components.append((baseGlyphName, tuple(transformation)))
