from __future__ import annotations

import logging
import os
import pathlib
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Any

from fontTools.misc import plistlib
from fontTools.ufoLib.filenames import userNameToFileName

from ..core.arena import Handle
from ..core.classes import (
    DEFAULT_LAYER_NAME,
    XML_ATTRIBUTES_KEY,
    Anchor,
    Component,
    Contour,
    FontInfo,
    Glyph,
    Guideline,
    Kerning,
    Layer,
    Point,
    fingerprint,
    fontInfoFieldNames,
    structure,
)
from ..core.document import FontDocument
from ..core.errors import FontDocError, GlyphParseError, MalformedSource
from ..core.kerning import KerningGroupPolicy
from ..core.threading import OperationCancelled
from .filesystem import LocalFileSystem
from .glif import buildGLIF, parseGLIF

logger = logging.getLogger(__name__)


METAINFO_FILENAME = "metainfo.plist"
FONTINFO_FILENAME = "fontinfo.plist"
GROUPS_FILENAME = "groups.plist"
KERNING_FILENAME = "kerning.plist"
LIB_FILENAME = "lib.plist"
LAYERCONTENTS_FILENAME = "layercontents.plist"
CONTENTS_FILENAME = "contents.plist"
LAYERINFO_FILENAME = "layerinfo.plist"
DEFAULT_GLYPHS_DIRNAME = "glyphs"

topLevelFileNames = {
    METAINFO_FILENAME,
    FONTINFO_FILENAME,
    GROUPS_FILENAME,
    KERNING_FILENAME,
    LIB_FILENAME,
    LAYERCONTENTS_FILENAME,
}

# Group order decides which group wins a kerning lookup, so these files keep
# the document's key order
orderedPlistFileNames = {GROUPS_FILENAME, KERNING_FILENAME}

CREATOR = "org.fontdoc"
UFO_FORMAT_VERSION = 3


@dataclass(kw_only=True)
class SavedGlyph:
    layerName: str
    glyphName: str
    fileName: str
    fingerprint: str


@dataclass(kw_only=True)
class SavedState:
    """What is on disk at `path`, as of the last load or save."""

    path: pathlib.Path
    layerDirectories: dict[str, str] = field(default_factory=dict)
    glyphs: dict[Handle, SavedGlyph] = field(default_factory=dict)
    # relative path -> fingerprint of the content, for plist files
    files: dict[str, str] = field(default_factory=dict)
    # directory name -> file names of the glyphs written or loaded from it
    glyphFiles: dict[str, set[str]] = field(default_factory=dict)
    # layer name -> glyph name -> file name, for glyphs that failed to load.
    # Their files are kept and stay listed in contents.plist.
    unparsedGlyphs: dict[str, dict[str, str]] = field(default_factory=dict)

    def isSameLocation(self, path) -> bool:
        return os.path.abspath(self.path) == os.path.abspath(path)


@dataclass(kw_only=True)
class SaveReport:
    written: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    savedState: SavedState | None = None


# Snapshots: immutable plain data copies of the document, so that writing can
# happen away from the live document.


@dataclass(frozen=True)
class SnapshotGlyph:
    handle: Handle
    name: str
    data: dict[str, Any]
    fingerprint: str


@dataclass(frozen=True)
class SnapshotLayer:
    name: str
    customData: dict[str, Any]
    glyphs: tuple[SnapshotGlyph, ...]


@dataclass(frozen=True, kw_only=True)
class DocumentSnapshot:
    defaultLayerName: str
    layers: tuple[SnapshotLayer, ...]
    metaInfo: dict[str, Any]
    fontInfo: dict[str, Any]
    groups: dict[str, list[str]]
    kerning: dict[str, dict[str, float]]
    lib: dict[str, Any]


def takeSnapshot(document: FontDocument) -> DocumentSnapshot:
    layers = []
    for layerName, layer in document.layers.items():
        glyphs = []
        for glyphName, glyphHandle in layer.glyphs.items():
            data = document.glyphData(glyphHandle)
            glyphs.append(
                SnapshotGlyph(glyphHandle, glyphName, data, fingerprint(data))
            )
        layers.append(
            SnapshotLayer(layerName, deepcopy(layer.customData), tuple(glyphs))
        )
    return DocumentSnapshot(
        defaultLayerName=document.defaultLayerName,
        layers=tuple(layers),
        metaInfo=deepcopy(document.metaInfo),
        fontInfo=_packFontInfo(document),
        groups=deepcopy(document.kerning.groups),
        kerning=deepcopy(document.kerning.pairs),
        lib=deepcopy(document.customData),
    )


# Font info


def _packFontInfo(document) -> dict[str, Any]:
    fontInfo = document.fontInfo
    infoDict = deepcopy(fontInfo.customData)
    for name in fontInfoFieldNames:
        value = getattr(fontInfo, name)
        if value is not None:
            infoDict[name] = value
    guidelines = []
    for guidelineHandle in document.guidelines:
        guideline = document.arena[guidelineHandle]
        guidelineDict = deepcopy(guideline.customData.get(XML_ATTRIBUTES_KEY, {}))
        for name in ["x", "y", "angle", "name"]:
            value = getattr(guideline, name)
            if value is not None:
                guidelineDict[name] = value
        guidelines.append(guidelineDict)
    if guidelines:
        infoDict["guidelines"] = guidelines
    return infoDict


def _unpackFontInfo(document, infoDict) -> None:
    infoDict = dict(infoDict)
    for guidelineDict in infoDict.pop("guidelines", []):
        if not isinstance(guidelineDict, dict):
            raise MalformedSource("fontinfo guidelines must be dicts")
        guidelineDict = dict(guidelineDict)
        attrs = {
            name: guidelineDict.pop(name)
            for name in ["x", "y", "angle", "name"]
            if name in guidelineDict
        }
        customData = {XML_ATTRIBUTES_KEY: guidelineDict} if guidelineDict else {}
        document.guidelines.append(
            document.arena.allocate(Guideline(**attrs, customData=customData))
        )
    fieldValues = {
        name: infoDict.pop(name) for name in fontInfoFieldNames if name in infoDict
    }
    document.fontInfo = FontInfo(**fieldValues, customData=infoDict)


# Loading


def _readPlist(fileSystem, path, what, required=True):
    if not fileSystem.exists(path):
        if required:
            raise MalformedSource(f"{what} is missing: {os.fspath(path)}")
        return None
    data = fileSystem.readBytes(path)
    try:
        return plistlib.loads(data)
    except Exception as e:
        raise MalformedSource(f"{what} is malformed: {e}") from e


def _readLayerContents(fileSystem, ufoPath, formatVersion):
    if formatVersion < 3:
        return [(DEFAULT_LAYER_NAME, DEFAULT_GLYPHS_DIRNAME)]
    layerContents = _readPlist(
        fileSystem, ufoPath / LAYERCONTENTS_FILENAME, LAYERCONTENTS_FILENAME
    )
    if not isinstance(layerContents, list):
        raise MalformedSource(f"{LAYERCONTENTS_FILENAME} must contain a list")
    seenNames = set()
    seenDirs = set()
    result = []
    for item in layerContents:
        if (
            not isinstance(item, (list, tuple))
            or len(item) != 2
            or not all(isinstance(s, str) for s in item)
        ):
            raise MalformedSource(f"invalid {LAYERCONTENTS_FILENAME} entry: {item!r}")
        layerName, dirName = item
        if layerName in seenNames or dirName in seenDirs:
            raise MalformedSource(f"duplicate layer in {LAYERCONTENTS_FILENAME}: {item!r}")
        seenNames.add(layerName)
        seenDirs.add(dirName)
        result.append((layerName, dirName))
    if DEFAULT_GLYPHS_DIRNAME not in seenDirs:
        raise MalformedSource(f"{LAYERCONTENTS_FILENAME} has no default layer")
    return result


def _readGlyphContents(fileSystem, layerPath, layerName):
    contents = _readPlist(
        fileSystem, layerPath / CONTENTS_FILENAME, f"{CONTENTS_FILENAME} of {layerName!r}"
    )
    if not isinstance(contents, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in contents.items()
    ):
        raise MalformedSource(f"{CONTENTS_FILENAME} of layer {layerName!r} is malformed")
    return contents


def _allocateGlyph(arena, glyphName, glyphData) -> Handle:
    glyphData = dict(glyphData)
    contourHandles = []
    for contourData in glyphData.pop("contours", []):
        contourData = dict(contourData)
        pointHandles = [
            arena.allocate(structure(pointData, Point))
            for pointData in contourData.pop("points")
        ]
        contourHandles.append(
            arena.allocate(Contour(points=pointHandles, **contourData))
        )
    ownedHandles = {"contours": contourHandles}
    for attrName, cls in [
        ("components", Component),
        ("anchors", Anchor),
        ("guidelines", Guideline),
    ]:
        ownedHandles[attrName] = [
            arena.allocate(structure(itemData, cls))
            for itemData in glyphData.pop(attrName, [])
        ]
    glyphData["name"] = glyphName
    glyph = structure(glyphData, Glyph)
    for attrName, handles in ownedHandles.items():
        setattr(glyph, attrName, handles)
    return arena.allocate(glyph)


def readUFO(
    path,
    *,
    fileSystem=None,
    kerningGroupPolicy=KerningGroupPolicy.FIRST_DECLARED,
    cancelEvent=None,
) -> tuple[FontDocument, list[FontDocError]]:
    """Load a UFO into a new document. Returns the document and a list of
    diagnostics (GlyphParseError for glyphs that were skipped,
    DanglingReference for unresolved references)."""
    if fileSystem is None:
        fileSystem = LocalFileSystem()
    ufoPath = pathlib.Path(path)
    logger.info(f"loading {ufoPath.name}...")
    if not fileSystem.isDirectory(ufoPath):
        raise MalformedSource(f"not a UFO directory: {os.fspath(ufoPath)}")

    metaInfo = _readPlist(fileSystem, ufoPath / METAINFO_FILENAME, METAINFO_FILENAME)
    if not isinstance(metaInfo, dict) or not isinstance(
        metaInfo.get("formatVersion"), int
    ):
        raise MalformedSource(f"{METAINFO_FILENAME} has no valid formatVersion")
    formatVersion = metaInfo["formatVersion"]
    if not 1 <= formatVersion <= 3:
        raise MalformedSource(f"unsupported UFO format version: {formatVersion}")

    document = FontDocument(kerningGroupPolicy=kerningGroupPolicy)
    document.metaInfo = metaInfo
    diagnostics: list[FontDocError] = []
    savedState = SavedState(path=ufoPath)
    existingFiles = set()

    for layerName, dirName in _readLayerContents(fileSystem, ufoPath, formatVersion):
        if cancelEvent is not None and cancelEvent.is_set():
            raise OperationCancelled()
        layerPath = ufoPath / dirName
        contents = _readGlyphContents(fileSystem, layerPath, layerName)
        layerInfo = _readPlist(
            fileSystem, layerPath / LAYERINFO_FILENAME, LAYERINFO_FILENAME, False
        )
        if layerInfo is not None:
            existingFiles.add(f"{dirName}/{LAYERINFO_FILENAME}")
        existingFiles.add(f"{dirName}/{CONTENTS_FILENAME}")
        if layerInfo is not None and not isinstance(layerInfo, dict):
            raise MalformedSource(f"{LAYERINFO_FILENAME} of {layerName!r} is malformed")
        layer = Layer(name=layerName, customData=layerInfo or {})
        document.layers[layerName] = layer
        if dirName == DEFAULT_GLYPHS_DIRNAME:
            document.defaultLayerName = layerName
        savedState.layerDirectories[layerName] = dirName
        savedState.glyphFiles[dirName] = set()

        for glyphName, fileName in contents.items():
            if cancelEvent is not None and cancelEvent.is_set():
                raise OperationCancelled()
            try:
                data = fileSystem.readBytes(layerPath / fileName)
                glyphData = parseGLIF(data, fileName)
            except FontDocError as e:
                error = GlyphParseError(
                    f"can't load glyph {glyphName!r} from layer {layerName!r}: {e}",
                    glyphName=glyphName,
                    layerName=layerName,
                    fileName=fileName,
                )
                logger.warning(str(error))
                diagnostics.append(error)
                unparsed = savedState.unparsedGlyphs.setdefault(layerName, {})
                unparsed[glyphName] = fileName
                continue
            if glyphData["name"] != glyphName:
                logger.warning(
                    f"glyph name in {fileName} ({glyphData['name']!r}) does not match "
                    f"{CONTENTS_FILENAME} ({glyphName!r})"
                )
            layer.glyphs[glyphName] = _allocateGlyph(document.arena, glyphName, glyphData)
            savedState.glyphFiles[dirName].add(fileName)
            savedState.glyphs[layer.glyphs[glyphName]] = SavedGlyph(
                layerName=layerName,
                glyphName=glyphName,
                fileName=fileName,
                fingerprint="",
            )

    infoDict = _readPlist(fileSystem, ufoPath / FONTINFO_FILENAME, FONTINFO_FILENAME, False)
    if infoDict is not None:
        if not isinstance(infoDict, dict):
            raise MalformedSource(f"{FONTINFO_FILENAME} must contain a dict")
        _unpackFontInfo(document, infoDict)

    groups = _readPlist(fileSystem, ufoPath / GROUPS_FILENAME, GROUPS_FILENAME, False)
    pairs = _readPlist(fileSystem, ufoPath / KERNING_FILENAME, KERNING_FILENAME, False)
    lib = _readPlist(fileSystem, ufoPath / LIB_FILENAME, LIB_FILENAME, False)
    for fileName, value in [
        (GROUPS_FILENAME, groups),
        (KERNING_FILENAME, pairs),
        (LIB_FILENAME, lib),
    ]:
        if value is not None and not isinstance(value, dict):
            raise MalformedSource(f"{fileName} must contain a dict")
    try:
        document.kerning = structure(
            {"groups": groups or {}, "pairs": pairs or {}}, Kerning
        )
    except Exception as e:
        raise MalformedSource(f"malformed kerning data: {e}") from e
    document.customData = lib or {}

    for fileName in topLevelFileNames:
        if fileSystem.exists(ufoPath / fileName):
            existingFiles.add(fileName)

    document.path = ufoPath
    document.savedState = _completeSavedState(
        takeSnapshot(document), savedState, existingFiles
    )

    for diagnostic in document.findDanglingReferences():
        logger.warning(str(diagnostic))
        diagnostics.append(diagnostic)

    logger.info(f"done loading {ufoPath.name}")
    return document, diagnostics


def _completeSavedState(snapshot, savedState, existingFiles):
    glyphFingerprints = {
        glyph.handle: glyph.fingerprint
        for layer in snapshot.layers
        for glyph in layer.glyphs
    }
    for handle, savedGlyph in savedState.glyphs.items():
        savedGlyph.fingerprint = glyphFingerprints[handle]
    for fileName, data in _plistFiles(
        snapshot, savedState.layerDirectories, _savedContents(savedState)
    ).items():
        if fileName in existingFiles:
            savedState.files[fileName] = _plistFingerprint(fileName, data)
    # What is on disk, which differs from what we write for older UFO versions
    savedState.files[METAINFO_FILENAME] = fingerprint(snapshot.metaInfo)
    return savedState


def _savedContents(savedState):
    contents = {layerName: {} for layerName in savedState.layerDirectories}
    for savedGlyph in savedState.glyphs.values():
        contents[savedGlyph.layerName][savedGlyph.glyphName] = savedGlyph.fileName
    for layerName, unparsed in savedState.unparsedGlyphs.items():
        contents[layerName].update(unparsed)
    return contents


# Saving


def _metaInfo(snapshot):
    metaInfo = dict(snapshot.metaInfo) or {"creator": CREATOR}
    metaInfo["formatVersion"] = UFO_FORMAT_VERSION
    return metaInfo


def _plistFiles(snapshot, layerDirectories, contents) -> dict[str, Any]:
    """Return relative path -> plist data for all plist files. None means the
    file should not exist."""
    files = {
        METAINFO_FILENAME: _metaInfo(snapshot),
        FONTINFO_FILENAME: snapshot.fontInfo or None,
        GROUPS_FILENAME: snapshot.groups or None,
        KERNING_FILENAME: snapshot.kerning or None,
        LIB_FILENAME: snapshot.lib or None,
        LAYERCONTENTS_FILENAME: [
            [layer.name, layerDirectories[layer.name]] for layer in snapshot.layers
        ],
    }
    for layer in snapshot.layers:
        dirName = layerDirectories[layer.name]
        files[f"{dirName}/{CONTENTS_FILENAME}"] = dict(
            sorted(contents[layer.name].items())
        )
        files[f"{dirName}/{LAYERINFO_FILENAME}"] = layer.customData or None
    return files


def _orderedItems(data):
    if isinstance(data, dict):
        return [[key, _orderedItems(value)] for key, value in data.items()]
    return data


def _plistFingerprint(relativePath, data):
    if relativePath in orderedPlistFileNames:
        data = _orderedItems(data)
    return fingerprint(data)


def _assignLayerDirectories(snapshot, previous: dict[str, str]) -> dict[str, str]:
    result = {snapshot.defaultLayerName: DEFAULT_GLYPHS_DIRNAME}
    taken = {DEFAULT_GLYPHS_DIRNAME}
    for layer in snapshot.layers:
        dirName = previous.get(layer.name)
        if layer.name in result or dirName is None or dirName.lower() in taken:
            continue
        result[layer.name] = dirName
        taken.add(dirName.lower())
    for layer in snapshot.layers:
        if layer.name not in result:
            dirName = userNameToFileName(layer.name, taken, prefix="glyphs.")
            result[layer.name] = dirName
            taken.add(dirName.lower())
    return result


def _keptUnparsedGlyphs(layer, savedState) -> dict[str, str]:
    """Glyphs of `layer` that failed to load, minus those that have been
    replaced by a glyph of the same name since."""
    if savedState is None:
        return {}
    glyphNames = {glyph.name for glyph in layer.glyphs}
    unparsed = savedState.unparsedGlyphs.get(layer.name, {})
    return {
        glyphName: fileName
        for glyphName, fileName in unparsed.items()
        if glyphName not in glyphNames
    }


def _copyUnparsedGlyphs(writer, unparsed, sourceDir, dirName):
    for fileName in sorted(unparsed.values()):
        if writer.fileSystem.exists(sourceDir / fileName):
            writer.copy(sourceDir / fileName, f"{dirName}/{fileName}")


def _assignGlyphFileNames(layer, savedState, reserved=()):
    previous = savedState.glyphs if savedState is not None else {}
    fileNames = {}
    taken = {fileName.lower() for fileName in reserved}
    for glyph in layer.glyphs:
        savedGlyph = previous.get(glyph.handle)
        if (
            savedGlyph is not None
            and savedGlyph.glyphName == glyph.name
            and savedGlyph.fileName.lower() not in taken
        ):
            fileNames[glyph.name] = savedGlyph.fileName
            taken.add(savedGlyph.fileName.lower())
    for glyph in layer.glyphs:
        if glyph.name not in fileNames:
            fileName = userNameToFileName(glyph.name, taken, suffix=".glif")
            fileNames[glyph.name] = fileName
            taken.add(fileName.lower())
    return fileNames


class _Writer:
    def __init__(self, path, fileSystem, cancelEvent):
        self.path = path
        self.fileSystem = fileSystem
        self.cancelEvent = cancelEvent
        self.report = SaveReport()

    def checkCancelled(self):
        if self.cancelEvent is not None and self.cancelEvent.is_set():
            raise OperationCancelled()

    def write(self, relativePath, data: bytes):
        self.checkCancelled()
        self.fileSystem.writeBytesAtomic(self.path / relativePath, data)
        self.report.written.append(relativePath)

    def copy(self, sourcePath, relativePath):
        self.checkCancelled()
        self.fileSystem.copyFile(sourcePath, self.path / relativePath)
        self.report.written.append(relativePath)

    def remove(self, relativePath, tree=False):
        self.checkCancelled()
        if tree:
            self.fileSystem.removeTree(self.path / relativePath)
        else:
            self.fileSystem.remove(self.path / relativePath)
        self.report.removed.append(relativePath)


def writeUFO(
    snapshot: DocumentSnapshot,
    path,
    savedState: SavedState | None,
    *,
    fileSystem=None,
    cancelEvent=None,
) -> SaveReport:
    """Write `snapshot` as a UFO at `path`.

    Only files whose content changed since `savedState` are written when
    saving in place. Saving elsewhere writes everything, copying unchanged
    files from the previous location, along with any files this codec does not
    interpret (features.fea, data/, images/...).
    """
    if fileSystem is None:
        fileSystem = LocalFileSystem()
    path = pathlib.Path(path)
    sameLocation = savedState is not None and savedState.isSameLocation(path)
    sourcePath = None
    if (
        savedState is not None
        and not sameLocation
        and fileSystem.isDirectory(savedState.path)
    ):
        sourcePath = pathlib.Path(savedState.path)
    previousFiles = savedState.files if savedState is not None else {}
    previousDirectories = savedState.layerDirectories if savedState is not None else {}

    logger.info(f"saving {path.name}...")
    writer = _Writer(path, fileSystem, cancelEvent)
    fileSystem.makeDirectories(path)

    layerDirectories = _assignLayerDirectories(snapshot, previousDirectories)
    newState = SavedState(path=path, layerDirectories=layerDirectories)
    contents = {}

    for layer in snapshot.layers:
        dirName = layerDirectories[layer.name]
        previousDirName = previousDirectories.get(layer.name)
        fileSystem.makeDirectories(path / dirName)
        unparsed = _keptUnparsedGlyphs(layer, savedState)
        fileNames = _assignGlyphFileNames(layer, savedState, unparsed.values())
        contents[layer.name] = {**fileNames, **unparsed}
        if unparsed:
            newState.unparsedGlyphs[layer.name] = unparsed
            if sourcePath is not None:
                unparsedSourceDir = sourcePath / previousDirName
            elif sameLocation and previousDirName != dirName:
                unparsedSourceDir = path / previousDirName
            else:
                unparsedSourceDir = None
            if unparsedSourceDir is not None:
                _copyUnparsedGlyphs(writer, unparsed, unparsedSourceDir, dirName)
        newState.glyphFiles[dirName] = set(fileNames.values())
        for glyph in layer.glyphs:
            fileName = fileNames[glyph.name]
            relativePath = f"{dirName}/{fileName}"
            savedGlyph = savedState.glyphs.get(glyph.handle) if savedState else None
            isClean = (
                savedGlyph is not None
                and savedGlyph.fingerprint == glyph.fingerprint
                and savedGlyph.layerName in previousDirectories
            )
            previousRelativePath = (
                f"{previousDirectories[savedGlyph.layerName]}/{savedGlyph.fileName}"
                if isClean
                else None
            )
            if sameLocation and isClean and previousRelativePath == relativePath:
                pass
            elif (
                sourcePath is not None
                and isClean
                and fileSystem.exists(sourcePath / previousRelativePath)
            ):
                writer.copy(sourcePath / previousRelativePath, relativePath)
            else:
                writer.write(relativePath, buildGLIF(glyph.data))
            newState.glyphs[glyph.handle] = SavedGlyph(
                layerName=layer.name,
                glyphName=glyph.name,
                fileName=fileName,
                fingerprint=glyph.fingerprint,
            )
        if previousDirName is not None and previousDirName != dirName:
            logger.debug(f"layer {layer.name!r} moved from {previousDirName} to {dirName}")

    for relativePath, data in _plistFiles(snapshot, layerDirectories, contents).items():
        dataFingerprint = _plistFingerprint(relativePath, data)
        if sameLocation and previousFiles.get(relativePath) == dataFingerprint:
            newState.files[relativePath] = dataFingerprint
        elif (
            sourcePath is not None
            and previousFiles.get(relativePath) == dataFingerprint
            and fileSystem.exists(sourcePath / relativePath)
        ):
            writer.copy(sourcePath / relativePath, relativePath)
            newState.files[relativePath] = dataFingerprint
        elif data is None:
            if sameLocation and relativePath in previousFiles:
                writer.remove(relativePath)
        else:
            writer.write(
                relativePath,
                plistlib.dumps(
                    data, sort_keys=relativePath not in orderedPlistFileNames
                ),
            )
            newState.files[relativePath] = dataFingerprint

    if sameLocation:
        _removeStaleGlyphFiles(writer, savedState, newState)
    elif sourcePath is not None:
        _copyUninterpretedFiles(writer, sourcePath, previousDirectories)

    logger.info(
        f"done saving {path.name} ({len(writer.report.written)} written, "
        f"{len(writer.report.removed)} removed)"
    )
    writer.report.savedState = newState
    return writer.report


def _removeStaleGlyphFiles(writer, savedState, newState):
    for dirName, previousFileNames in savedState.glyphFiles.items():
        currentFileNames = newState.glyphFiles.get(dirName)
        if currentFileNames is None:
            if writer.fileSystem.exists(writer.path / dirName):
                writer.remove(dirName, tree=True)
            continue
        for fileName in sorted(previousFileNames - currentFileNames):
            if writer.fileSystem.exists(writer.path / dirName / fileName):
                writer.remove(f"{dirName}/{fileName}")


def _copyUninterpretedFiles(writer, sourcePath, previousDirectories):
    fileSystem = writer.fileSystem
    layerDirNames = set(previousDirectories.values())
    for name in fileSystem.listDirectory(sourcePath):
        if name in topLevelFileNames or name in layerDirNames:
            continue
        writer.checkCancelled()
        if fileSystem.isDirectory(sourcePath / name):
            fileSystem.copyTree(sourcePath / name, writer.path / name)
        else:
            fileSystem.copyFile(sourcePath / name, writer.path / name)
        writer.report.written.append(name)


def saveDocument(
    document: FontDocument,
    path=None,
    *,
    fileSystem=None,
    versionControl=None,
) -> SaveReport:
    """Save `document` to `path` (default: where it was loaded from or last
    saved to) and make that the document's saved state."""
    if path is None:
        path = document.path
    if path is None:
        raise ValueError("document has no path, a path must be given")
    report = writeUFO(
        takeSnapshot(document), path, document.savedState, fileSystem=fileSystem
    )
    commitSave(document, report, versionControl)
    return report


def commitSave(document, report, versionControl=None):
    document.savedState = report.savedState
    document.path = report.savedState.path
    if versionControl is not None:
        versionControl.filesSaved(report.savedState.path, report.written, report.removed)


def isDirty(document: FontDocument) -> bool:
    """Return True if saving in place would write or remove anything."""
    savedState = document.savedState
    if savedState is None:
        return True
    snapshot = takeSnapshot(document)
    if _assignLayerDirectories(snapshot, savedState.layerDirectories) != dict(
        savedState.layerDirectories
    ):
        return True
    for layer in snapshot.layers:
        for glyph in layer.glyphs:
            savedGlyph = savedState.glyphs.get(glyph.handle)
            if savedGlyph is None or (
                savedGlyph.fingerprint,
                savedGlyph.glyphName,
                savedGlyph.layerName,
            ) != (glyph.fingerprint, glyph.name, layer.name):
                return True
    numGlyphs = sum(len(layer.glyphs) for layer in snapshot.layers)
    if numGlyphs != len(savedState.glyphs):
        return True
    plistFiles = _plistFiles(
        snapshot, savedState.layerDirectories, _savedContents(savedState)
    )
    for relativePath, data in plistFiles.items():
        if relativePath in savedState.files:
            if savedState.files[relativePath] != _plistFingerprint(relativePath, data):
                return True
        elif data is not None:
            return True
    return False
