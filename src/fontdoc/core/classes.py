from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from typing import Any, Optional

import cattrs
from fontTools.misc.transform import Identity

from .arena import Handle

CustomData = dict[str, Any]

# Reserved foreign-bag keys for GLIF content this model does not interpret
XML_ATTRIBUTES_KEY = "fontdoc.xmlAttributes"
XML_ELEMENTS_KEY = "fontdoc.xmlElements"

POINT_TYPES = ("move", "line", "curve", "qcurve")

DEFAULT_LAYER_NAME = "public.default"

Transformation = tuple[float, float, float, float, float, float]


@dataclass(kw_only=True)
class FontInfo:
    familyName: Optional[str] = None
    styleName: Optional[str] = None
    versionMajor: Optional[int] = None
    versionMinor: Optional[int] = None
    unitsPerEm: Optional[float] = None
    ascender: Optional[float] = None
    descender: Optional[float] = None
    xHeight: Optional[float] = None
    capHeight: Optional[float] = None
    italicAngle: Optional[float] = None
    copyright: Optional[str] = None
    trademark: Optional[str] = None
    customData: CustomData = field(default_factory=dict)


fontInfoFieldNames = [
    "familyName",
    "styleName",
    "versionMajor",
    "versionMinor",
    "unitsPerEm",
    "ascender",
    "descender",
    "xHeight",
    "capHeight",
    "italicAngle",
    "copyright",
    "trademark",
]


@dataclass(kw_only=True)
class Kerning:
    groups: dict[str, list[str]] = field(default_factory=dict)
    # left glyph/group -> right glyph/group -> value
    pairs: dict[str, dict[str, float]] = field(default_factory=dict)


@dataclass(kw_only=True)
class Layer:
    name: str
    glyphs: dict[str, Handle] = field(default_factory=dict)
    customData: CustomData = field(default_factory=dict)


@dataclass(kw_only=True)
class Point:
    x: float
    y: float
    type: Optional[str] = None
    smooth: bool = False
    name: Optional[str] = None
    customData: CustomData = field(default_factory=dict)

    @property
    def isOnCurve(self):
        return self.type is not None


@dataclass(kw_only=True)
class Contour:
    points: list[Handle] = field(default_factory=list)
    isClosed: bool = True
    customData: CustomData = field(default_factory=dict)


@dataclass(kw_only=True)
class Component:
    baseGlyph: str
    transformation: Transformation = tuple(Identity)
    customData: CustomData = field(default_factory=dict)


@dataclass(kw_only=True)
class Anchor:
    name: Optional[str] = None
    x: float = 0
    y: float = 0
    customData: CustomData = field(default_factory=dict)


@dataclass(kw_only=True)
class Guideline:
    name: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None
    angle: Optional[float] = None
    customData: CustomData = field(default_factory=dict)


@dataclass(kw_only=True)
class Glyph:
    name: str
    xAdvance: float = 0
    yAdvance: Optional[float] = None
    verticalOrigin: Optional[float] = None
    unicodes: list[int] = field(default_factory=list)
    note: Optional[str] = None
    contours: list[Handle] = field(default_factory=list)
    components: list[Handle] = field(default_factory=list)
    anchors: list[Handle] = field(default_factory=list)
    guidelines: list[Handle] = field(default_factory=list)
    customData: CustomData = field(default_factory=dict)


# cattrs hooks + structure/unstructure support


def _unstructureFloat(v):
    try:
        if v.is_integer():
            return int(v)
    except AttributeError:
        pass
    return v


def _structureNumber(d, tp):
    assert isinstance(d, (float, int))
    return d


def _structureHandle(d, tp):
    index, generation = d
    return Handle(index, generation)


def _unstructureHandle(v):
    return [v.index, v.generation]


def _structureTransformation(d, tp):
    if len(d) != 6:
        raise ValueError(f"a transformation has 6 values, got {len(d)}")
    return tuple(d)


def _unstructureDictSortedRecursively(v):
    if isinstance(v, dict):
        return unstructure(
            dict(
                sorted((k, _unstructureDictSortedRecursively(v)) for k, v in v.items())
            )
        )
    elif isinstance(v, (list, tuple)):
        return [_unstructureDictSortedRecursively(item) for item in v]
    return v


_cattrsConverter = cattrs.Converter()

_cattrsConverter.register_unstructure_hook(float, _unstructureFloat)
_cattrsConverter.register_structure_hook(float, _structureNumber)
_cattrsConverter.register_structure_hook(bool, lambda x, y: x)
_cattrsConverter.register_structure_hook(Handle, _structureHandle)
_cattrsConverter.register_unstructure_hook(Handle, _unstructureHandle)
# A parametrized tuple is not a class, so it needs a predicate hook
_cattrsConverter.register_structure_hook_func(
    lambda tp: tp == Transformation, _structureTransformation
)


def registerHook(cls, omitIfDefault=True, **fieldHooks):
    fieldHooks = {
        k: cattrs.gen.override(unstruct_hook=v) for k, v in fieldHooks.items()
    }
    _hook = cattrs.gen.make_dict_unstructure_fn(
        cls,
        _cattrsConverter,
        _cattrs_omit_if_default=omitIfDefault,
        **fieldHooks,
    )
    _cattrsConverter.register_unstructure_hook(cls, _hook)


registerHook(Point, customData=_unstructureDictSortedRecursively)
registerHook(Contour, customData=_unstructureDictSortedRecursively)
registerHook(
    Component,
    transformation=lambda t: [_unstructureFloat(v) for v in t],
    customData=_unstructureDictSortedRecursively,
)
registerHook(Anchor, customData=_unstructureDictSortedRecursively)
registerHook(Guideline, customData=_unstructureDictSortedRecursively)
registerHook(Glyph, customData=_unstructureDictSortedRecursively)
registerHook(FontInfo, customData=_unstructureDictSortedRecursively)
registerHook(Layer, customData=_unstructureDictSortedRecursively)
registerHook(Kerning, omitIfDefault=False)


def structure(obj, cls):
    return _cattrsConverter.structure(obj, cls)


def unstructure(obj):
    return _cattrsConverter.unstructure(obj)


def fingerprint(data) -> str:
    """Return a content hash of the unstructured form of `data`.

    Lib data may hold plist values that JSON can't express (bytes, datetime),
    those are hashed by their repr.
    """
    data = _unstructureDictSortedRecursively(unstructure(data))
    blob = json.dumps(data, sort_keys=True, separators=(",", ":"), default=repr)
    return hashlib.sha1(blob.encode("utf-8")).hexdigest()
