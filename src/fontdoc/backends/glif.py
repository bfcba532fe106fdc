"""Reading and writing .glif data as plain glyph data (the unstructured form
of a glyph with its owned entities resolved, see FontDocument.glyphData).

Attributes and child elements this module does not interpret are kept in the
custom data of the owning entity, under XML_ATTRIBUTES_KEY and
XML_ELEMENTS_KEY, and written back in place.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from fontTools.misc import etree, plistlib
from fontTools.ufoLib.filenames import userNameToFileName

from ..core.classes import POINT_TYPES, XML_ATTRIBUTES_KEY, XML_ELEMENTS_KEY
from ..core.errors import GlyphParseError, MalformedOutline
from ..core.outline import validateContourPointTypes

logger = logging.getLogger(__name__)


VERTICAL_ORIGIN_LIB_KEY = "public.verticalOrigin"

DEFAULT_GLIF_FORMAT = "2"

# Known glyph child elements, in the order they are written
_elementOrder = ["advance", "unicode", "note", "guideline", "anchor", "outline", "lib"]

_transformationAttributes = [
    ("xScale", 1),
    ("xyScale", 0),
    ("yxScale", 0),
    ("yScale", 1),
    ("xOffset", 0),
    ("yOffset", 0),
]


_glyphNamePat = re.compile(rb'<glyph\s+name\s*=\s*"([^"]+)"')


def peekGlyphName(data: bytes, fileName: str | None = None) -> str:
    """Find the glyph name without parsing the whole file."""
    m = _glyphNamePat.search(data)
    if m is None:
        raise GlyphParseError(
            f"invalid .glif file, glyph name not found ({fileName})", fileName=fileName
        )
    glyphName = m.group(1).decode("utf-8")
    if fileName is not None:
        refFileName = userNameToFileName(glyphName, suffix=".glif")
        if refFileName.lower() != fileName.lower():
            logger.debug(
                "actual file name does not match predicted file name: "
                f"{refFileName} {fileName} {glyphName}"
            )
    return glyphName


# Reading


def _number(value: str, what: str):
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        raise GlyphParseError(f"invalid number for {what}: {value!r}") from None


def _splitAttributes(element, known) -> tuple[dict, dict]:
    knownAttrs = {}
    extraAttrs = {}
    for key, value in element.attrib.items():
        if key in known:
            knownAttrs[key] = value
        else:
            extraAttrs[key] = value
    return knownAttrs, extraAttrs


def _customData(extraAttrs) -> dict[str, Any]:
    return {XML_ATTRIBUTES_KEY: extraAttrs} if extraAttrs else {}


def _childElements(element):
    # lxml reports comments and processing instructions as children
    return [child for child in element if isinstance(child.tag, str)]


def parseGLIF(data: bytes, fileName: str | None = None) -> dict[str, Any]:
    try:
        root = etree.fromstring(data)
    except Exception as e:
        raise GlyphParseError(f"can't parse XML: {e}", fileName=fileName) from e
    if root.tag != "glyph":
        raise GlyphParseError(
            f"root element is {root.tag!r}, expected 'glyph'", fileName=fileName
        )
    attrs, extraAttrs = _splitAttributes(root, {"name"})
    glyphName = attrs.get("name")
    if not glyphName:
        raise GlyphParseError("glyph has no name", fileName=fileName)
    # The default format is written back anyway
    if extraAttrs.get("format") == DEFAULT_GLIF_FORMAT:
        del extraAttrs["format"]

    try:
        glyphData = _parseGlyphElement(root, glyphName, extraAttrs)
    except (GlyphParseError, MalformedOutline) as e:
        raise GlyphParseError(
            f"glyph {glyphName!r}: {e}", glyphName=glyphName, fileName=fileName
        ) from e
    return glyphData


def _parseGlyphElement(root, glyphName, extraAttrs):
    glyphData: dict[str, Any] = {"name": glyphName}
    customData = _customData(extraAttrs)
    unicodes = []
    contours = []
    components = []
    anchors = []
    guidelines = []
    unknownElements = []
    precedingTag = None

    for child in _childElements(root):
        tag = child.tag
        if tag not in _elementOrder:
            # <image> and anything we don't know about, with the known element
            # it followed
            unknownElements.append([precedingTag, _elementToString(child)])
            continue
        precedingTag = tag
        if tag == "advance":
            if "width" in child.attrib:
                glyphData["xAdvance"] = _number(child.attrib["width"], "advance width")
            if "height" in child.attrib:
                glyphData["yAdvance"] = _number(
                    child.attrib["height"], "advance height"
                )
        elif tag == "unicode":
            try:
                codePoint = int(child.attrib["hex"], 16)
            except (KeyError, ValueError):
                raise GlyphParseError("invalid unicode element") from None
            unicodes.append(codePoint)
        elif tag == "note":
            glyphData["note"] = child.text or ""
        elif tag == "guideline":
            guidelines.append(_parseGuideline(child))
        elif tag == "anchor":
            anchors.append(_parseAnchor(child))
        elif tag == "outline":
            for outlineChild in _childElements(child):
                if outlineChild.tag == "contour":
                    contours.append(_parseContour(outlineChild))
                elif outlineChild.tag == "component":
                    components.append(_parseComponent(outlineChild))
                else:
                    raise GlyphParseError(
                        f"unknown outline element: {outlineChild.tag!r}"
                    )
        elif tag == "lib":
            lib = _parseLib(child)
            if VERTICAL_ORIGIN_LIB_KEY in lib:
                glyphData["verticalOrigin"] = lib.pop(VERTICAL_ORIGIN_LIB_KEY)
            customData.update(lib)

    if unicodes:
        glyphData["unicodes"] = unicodes
    if guidelines:
        glyphData["guidelines"] = guidelines
    if anchors:
        glyphData["anchors"] = anchors
    if contours:
        glyphData["contours"] = contours
    if components:
        glyphData["components"] = components
    if unknownElements:
        customData[XML_ELEMENTS_KEY] = unknownElements
    if customData:
        glyphData["customData"] = customData
    return glyphData


def _parseGuideline(element):
    attrs, extraAttrs = _splitAttributes(element, {"x", "y", "angle", "name"})
    guideline: dict[str, Any] = {}
    for key in ["x", "y", "angle"]:
        if key in attrs:
            guideline[key] = _number(attrs[key], f"guideline {key}")
    if "x" not in guideline and "y" not in guideline:
        raise GlyphParseError("guideline needs an x or a y attribute")
    if "name" in attrs:
        guideline["name"] = attrs["name"]
    customData = _customData(extraAttrs)
    if customData:
        guideline["customData"] = customData
    return guideline


def _parseAnchor(element):
    attrs, extraAttrs = _splitAttributes(element, {"x", "y", "name"})
    if "x" not in attrs or "y" not in attrs:
        raise GlyphParseError("anchor needs x and y attributes")
    anchor: dict[str, Any] = {
        "x": _number(attrs["x"], "anchor x"),
        "y": _number(attrs["y"], "anchor y"),
    }
    if "name" in attrs:
        anchor["name"] = attrs["name"]
    customData = _customData(extraAttrs)
    if customData:
        anchor["customData"] = customData
    return anchor


def _parseContour(element):
    _, extraAttrs = _splitAttributes(element, set())
    points = []
    for pointElement in _childElements(element):
        if pointElement.tag != "point":
            raise GlyphParseError(f"unknown contour element: {pointElement.tag!r}")
        points.append(_parsePoint(pointElement))
    pointTypes = [point.get("type") for point in points]
    isClosed = not pointTypes or pointTypes[0] != "move"
    validateContourPointTypes(pointTypes, isClosed)
    contour: dict[str, Any] = {"points": points, "isClosed": isClosed}
    customData = _customData(extraAttrs)
    if customData:
        contour["customData"] = customData
    return contour


def _parsePoint(element):
    attrs, extraAttrs = _splitAttributes(
        element, {"x", "y", "type", "smooth", "name"}
    )
    if "x" not in attrs or "y" not in attrs:
        raise GlyphParseError("point needs x and y attributes")
    point: dict[str, Any] = {
        "x": _number(attrs["x"], "point x"),
        "y": _number(attrs["y"], "point y"),
    }
    pointType = attrs.get("type", "offcurve")
    if pointType != "offcurve":
        if pointType not in POINT_TYPES:
            raise GlyphParseError(f"unknown point type: {pointType!r}")
        point["type"] = pointType
    if attrs.get("smooth") == "yes":
        point["smooth"] = True
    if "name" in attrs:
        point["name"] = attrs["name"]
    customData = _customData(extraAttrs)
    if customData:
        point["customData"] = customData
    return point


def _parseComponent(element):
    attrs, extraAttrs = _splitAttributes(
        element, {"base"} | {name for name, _ in _transformationAttributes}
    )
    if not attrs.get("base"):
        raise GlyphParseError("component has no base glyph")
    component: dict[str, Any] = {"baseGlyph": attrs["base"]}
    transformation = [
        _number(attrs[name], name) if name in attrs else default
        for name, default in _transformationAttributes
    ]
    if transformation != [default for _, default in _transformationAttributes]:
        component["transformation"] = transformation
    customData = _customData(extraAttrs)
    if customData:
        component["customData"] = customData
    return component


def _parseLib(element):
    children = _childElements(element)
    if len(children) != 1:
        raise GlyphParseError("lib element must contain a single dict")
    try:
        lib = plistlib.fromtree(children[0])
    except Exception as e:
        raise GlyphParseError(f"invalid glyph lib: {e}") from e
    if not isinstance(lib, dict):
        raise GlyphParseError("glyph lib is not a dict")
    return lib


def _elementToString(element) -> str:
    element.tail = None
    return etree.tostring(element, encoding="unicode")


# Writing


def formatNumber(value) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return repr(value)


def _setAttributes(element, attrs, customData):
    for key, value in attrs.items():
        if value is not None:
            element.set(key, value)
    for key, value in (customData or {}).get(XML_ATTRIBUTES_KEY, {}).items():
        if key not in attrs:
            element.set(key, value)


def buildGLIF(glyphData: dict[str, Any]) -> bytes:
    customData = glyphData.get("customData", {})
    root = etree.Element("glyph")
    rootAttrs = {"name": glyphData["name"]}
    extraRootAttrs = customData.get(XML_ATTRIBUTES_KEY, {})
    if "format" not in extraRootAttrs:
        rootAttrs["format"] = DEFAULT_GLIF_FORMAT
    _setAttributes(root, rootAttrs, customData)

    unknownElements: dict[str | None, list[str]] = {}
    for precedingTag, elementString in customData.get(XML_ELEMENTS_KEY, ()):
        unknownElements.setdefault(precedingTag, []).append(elementString)

    def appendUnknownElements(precedingTag):
        for elementString in unknownElements.pop(precedingTag, ()):
            root.append(etree.fromstring(elementString))

    appendUnknownElements(None)
    _buildAdvance(root, glyphData)
    appendUnknownElements("advance")
    for codePoint in glyphData.get("unicodes", ()):
        etree.SubElement(root, "unicode", {"hex": "%04X" % codePoint})
    appendUnknownElements("unicode")
    note = glyphData.get("note")
    if note is not None:
        etree.SubElement(root, "note").text = note
    appendUnknownElements("note")

    for guideline in glyphData.get("guidelines", ()):
        element = etree.SubElement(root, "guideline")
        _setAttributes(
            element,
            {
                "x": _optionalNumber(guideline.get("x")),
                "y": _optionalNumber(guideline.get("y")),
                "angle": _optionalNumber(guideline.get("angle")),
                "name": guideline.get("name"),
            },
            guideline.get("customData"),
        )
    appendUnknownElements("guideline")
    for anchor in glyphData.get("anchors", ()):
        element = etree.SubElement(root, "anchor")
        _setAttributes(
            element,
            {
                "x": formatNumber(anchor.get("x", 0)),
                "y": formatNumber(anchor.get("y", 0)),
                "name": anchor.get("name"),
            },
            anchor.get("customData"),
        )
    appendUnknownElements("anchor")

    contours = glyphData.get("contours", ())
    components = glyphData.get("components", ())
    if contours or components:
        outline = etree.SubElement(root, "outline")
        for contour in contours:
            _buildContour(outline, contour)
        for component in components:
            _buildComponent(outline, component)
    appendUnknownElements("outline")

    lib = {
        k: v
        for k, v in customData.items()
        if k not in (XML_ATTRIBUTES_KEY, XML_ELEMENTS_KEY)
    }
    if glyphData.get("verticalOrigin") is not None:
        lib[VERTICAL_ORIGIN_LIB_KEY] = glyphData["verticalOrigin"]
    if lib:
        libElement = etree.SubElement(root, "lib")
        libElement.append(plistlib.totree(lib, indent_level=2))
    for precedingTag in list(unknownElements):
        appendUnknownElements(precedingTag)

    return etree.tostring(
        root, encoding="UTF-8", xml_declaration=True, pretty_print=True
    )


def _optionalNumber(value):
    return None if value is None else formatNumber(value)


def _buildAdvance(root, glyphData):
    width = glyphData.get("xAdvance") or None
    height = glyphData.get("yAdvance") or None
    attrs = {}
    if height is not None:
        attrs["height"] = formatNumber(height)
    if width is not None:
        attrs["width"] = formatNumber(width)
    if attrs:
        etree.SubElement(root, "advance", attrs)


def _buildContour(outline, contour):
    contourElement = etree.SubElement(outline, "contour")
    _setAttributes(contourElement, {}, contour.get("customData"))
    for point in contour["points"]:
        pointElement = etree.SubElement(contourElement, "point")
        _setAttributes(
            pointElement,
            {
                "x": formatNumber(point["x"]),
                "y": formatNumber(point["y"]),
                "type": point.get("type"),
                "smooth": "yes" if point.get("smooth") else None,
                "name": point.get("name"),
            },
            point.get("customData"),
        )


def _buildComponent(outline, component):
    element = etree.SubElement(outline, "component")
    attrs = {"base": component["baseGlyph"]}
    transformation = component.get("transformation", ())
    for (name, default), value in zip(_transformationAttributes, transformation):
        if value != default:
            attrs[name] = formatNumber(value)
    _setAttributes(element, attrs, component.get("customData"))
