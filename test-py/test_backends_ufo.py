import logging
import pathlib
import threading

import pytest
from fontTools.misc import plistlib
from testSupport import (
    copyTestFont,
    directoryModificationTimes,
    directoryTreeToList,
    testFontPath,
)

from fontdoc.backends import isDirty, openDocument, saveDocument
from fontdoc.backends.filesystem import LocalFileSystem
from fontdoc.backends.ufo import readUFO, takeSnapshot, writeUFO
from fontdoc.core.document import FontDocument
from fontdoc.core.errors import (
    DanglingReference,
    GlyphParseError,
    IOFailure,
    MalformedSource,
)
from fontdoc.core.fontedits import (
    addGlyph,
    removeGlyph,
    removeGroup,
    renameGlyph,
    renameLayer,
    setGroup,
    setKerningPair,
)
from fontdoc.core.glyphedits import addContour, movePoints
from fontdoc.core.history import History
from fontdoc.core.protocols import FileSystem, VersionControl
from fontdoc.core.threading import OperationCancelled


@pytest.fixture
def ufoPath(tmpdir):
    return copyTestFont(tmpdir)


def openWithHistory(path):
    document, diagnostics = openDocument(path)
    assert [] == diagnostics
    return History(document=document)


def moveFirstPoint(history, glyphName="A"):
    document = history.document
    contourHandle = document.getGlyph(glyphName).contours[0]
    pointHandle = document.arena[contourHandle].points[0]
    history.apply(movePoints([pointHandle], 5, 0))


def test_saveUnchanged(ufoPath):
    expectedTree = directoryTreeToList(testFontPath)
    history = openWithHistory(ufoPath)
    assert not isDirty(history.document)
    times = directoryModificationTimes(ufoPath)

    report = saveDocument(history.document)

    assert [] == report.written
    assert [] == report.removed
    assert expectedTree == directoryTreeToList(ufoPath)
    assert times == directoryModificationTimes(ufoPath)


def test_saveOnlyDirtyFiles(ufoPath):
    history = openWithHistory(ufoPath)
    times = directoryModificationTimes(ufoPath)
    moveFirstPoint(history)
    assert isDirty(history.document)

    report = saveDocument(history.document)

    assert ["glyphs/A_.glif"] == report.written
    assert [] == report.removed
    assert not isDirty(history.document)
    newTimes = directoryModificationTimes(ufoPath)
    changed = sorted(name for name in times if times[name] != newTimes[name])
    assert ["glyphs/A_.glif"] == changed

    reopened, diagnostics = openDocument(ufoPath)
    assert [] == diagnostics
    assert history.document.fingerprint() == reopened.fingerprint()
    point = reopened.getContourPoints(reopened.getGlyph("A").contours[0])[0]
    assert (25, 0) == (point.x, point.y)

    # Undoing makes the document dirty again; saving writes the file back
    history.undo()
    assert isDirty(history.document)
    assert ["glyphs/A_.glif"] == saveDocument(history.document).written
    reopened, _ = openDocument(ufoPath)
    point = reopened.getContourPoints(reopened.getGlyph("A").contours[0])[0]
    assert (20, 0) == (point.x, point.y)


def test_rewrittenGlyphKeepsForeignData(ufoPath):
    history = openWithHistory(ufoPath)
    moveFirstPoint(history)
    saveDocument(history.document)
    data = (ufoPath / "glyphs" / "A_.glif").read_text(encoding="utf-8")
    assert '<image fileName="sketch.png" xOffset="10" color="1,0,0,0.5"/>' in data
    assert '<contour identifier="outer">' in data
    assert 'color="0,0,1,1"' in data
    assert "<key>com.example.glyphKey</key>" in data


def test_renameGlyph(ufoPath):
    history = openWithHistory(ufoPath)
    history.apply(renameGlyph("A", "A.ss01"))

    report = saveDocument(history.document)

    assert [
        "glyphs/A_.ss01.glif",
        "glyphs/A_acute.glif",
        "glyphs/contents.plist",
        "groups.plist",
        "kerning.plist",
        "lib.plist",
    ] == sorted(report.written)
    assert ["glyphs/A_.glif"] == report.removed
    assert not (ufoPath / "glyphs" / "A_.glif").exists()
    # The background layer's A is a different glyph
    assert (ufoPath / "glyphs.public.background" / "A_.glif").exists()

    contents = plistlib.loads((ufoPath / "glyphs" / "contents.plist").read_bytes())
    assert "A_.ss01.glif" == contents["A.ss01"]
    assert "A" not in contents

    reopened, diagnostics = openDocument(ufoPath)
    assert [] == diagnostics
    assert history.document.fingerprint() == reopened.fingerprint()
    assert 10 == reopened.kerningValue("A.ss01", "V")


def test_addAndRemoveGlyphs(ufoPath):
    history = openWithHistory(ufoPath)
    history.apply(removeGlyph("space"))
    history.apply(addGlyph("B", unicodes=[0x42], xAdvance=520))
    glyphHandle = history.document.glyphHandle("B")
    history.apply(
        addContour(glyphHandle, [(0, 0, "line"), (500, 0, "line"), (250, 700, "line")])
    )

    report = saveDocument(history.document)

    assert ["glyphs/B_.glif", "glyphs/contents.plist"] == sorted(report.written)
    assert ["glyphs/space.glif"] == report.removed
    reopened, _ = openDocument(ufoPath)
    assert ["A", "Aacute", "B", "O", "V", "acute"] == reopened.glyphNames()
    assert history.document.fingerprint() == reopened.fingerprint()


def test_renameLayer(ufoPath):
    history = openWithHistory(ufoPath)
    history.apply(renameLayer("public.background", "sketches"))

    report = saveDocument(history.document)

    assert [
        "glyphs.sketches/A_.glif",
        "glyphs.sketches/contents.plist",
        "glyphs.sketches/layerinfo.plist",
        "layercontents.plist",
    ] == sorted(report.written)
    assert ["glyphs.public.background"] == report.removed
    assert not (ufoPath / "glyphs.public.background").exists()
    reopened, _ = openDocument(ufoPath)
    assert ["public.default", "sketches"] == list(reopened.layers)
    assert history.document.fingerprint() == reopened.fingerprint()


def test_saveAs(ufoPath, tmpdir):
    history = openWithHistory(ufoPath)
    destPath = pathlib.Path(tmpdir) / "Copy.ufo"

    report = saveDocument(history.document, destPath)

    assert directoryTreeToList(ufoPath) == directoryTreeToList(destPath)
    assert "features.fea" in report.written
    assert "data" in report.written
    assert destPath == history.document.path
    assert not isDirty(history.document)
    assert [] == saveDocument(history.document).written


def test_saveAsWithChanges(ufoPath, tmpdir):
    history = openWithHistory(ufoPath)
    moveFirstPoint(history, "V")
    destPath = pathlib.Path(tmpdir) / "Copy.ufo"

    saveDocument(history.document, destPath)

    # The source is untouched
    assert directoryTreeToList(testFontPath) == directoryTreeToList(ufoPath)
    sourceTree = directoryTreeToList(ufoPath)
    destTree = directoryTreeToList(destPath)
    assert sourceTree != destTree
    assert (ufoPath / "glyphs" / "A_.glif").read_bytes() == (
        destPath / "glyphs" / "A_.glif"
    ).read_bytes()
    assert (ufoPath / "features.fea").read_bytes() == (
        destPath / "features.fea"
    ).read_bytes()
    reopened, _ = openDocument(destPath)
    assert history.document.fingerprint() == reopened.fingerprint()


def test_saveNewDocument(tmpdir):
    document = FontDocument.new()
    history = History(document=document)
    history.apply(addGlyph("a", unicodes=[0x61], xAdvance=500))
    history.apply(
        addContour(
            document.glyphHandle("a"),
            [(0, 0, "line"), (500, 0, "line"), (250, 500, "line")],
        )
    )
    destPath = pathlib.Path(tmpdir) / "New.ufo"

    with pytest.raises(ValueError):
        saveDocument(document)
    report = saveDocument(document, destPath)

    assert [
        "glyphs/a.glif",
        "glyphs/contents.plist",
        "layercontents.plist",
        "metainfo.plist",
    ] == sorted(report.written)
    metaInfo = plistlib.loads((destPath / "metainfo.plist").read_bytes())
    assert {"creator": "org.fontdoc", "formatVersion": 3} == metaInfo
    reopened, diagnostics = openDocument(destPath)
    assert [] == diagnostics
    assert document.fingerprint() == reopened.fingerprint()


def test_glyphParseErrorIsolated(ufoPath):
    brokenData = b"<glyph name='V'><outline><contour>garbage"
    (ufoPath / "glyphs" / "V_.glif").write_bytes(brokenData)

    document, diagnostics = openDocument(ufoPath)

    assert [GlyphParseError, DanglingReference, DanglingReference] == [
        type(diagnostic) for diagnostic in diagnostics
    ]
    # V is a kerning group member and a kerning pair side
    assert ["V", "V"] == [diagnostic.target for diagnostic in diagnostics[1:]]
    error = diagnostics[0]
    assert isinstance(error, GlyphParseError)
    assert ("V", "public.default", "V_.glif") == (
        error.glyphName,
        error.layerName,
        error.fileName,
    )
    assert ["A", "Aacute", "O", "acute", "space"] == document.glyphNames()

    history = History(document=document)
    moveFirstPoint(history)
    report = saveDocument(document)
    assert ["glyphs/A_.glif"] == report.written
    assert brokenData == (ufoPath / "glyphs" / "V_.glif").read_bytes()
    assert (testFontPath / "glyphs" / "contents.plist").read_bytes() == (
        ufoPath / "glyphs" / "contents.plist"
    ).read_bytes()


def test_unparsedGlyphStaysListed(ufoPath):
    goodData = (ufoPath / "glyphs" / "space.glif").read_bytes()
    (ufoPath / "glyphs" / "space.glif").write_bytes(b"not a glyph")
    document, diagnostics = openDocument(ufoPath)
    assert 1 == len(diagnostics)

    History(document=document).apply(addGlyph("B"))
    report = saveDocument(document)
    assert ["glyphs/B_.glif", "glyphs/contents.plist"] == sorted(report.written)
    contents = plistlib.loads((ufoPath / "glyphs" / "contents.plist").read_bytes())
    assert "space.glif" == contents["space"]
    assert not isDirty(document)

    (ufoPath / "glyphs" / "space.glif").write_bytes(goodData)
    reopened, diagnostics = openDocument(ufoPath)
    assert [] == diagnostics
    assert ["A", "Aacute", "B", "O", "V", "acute", "space"] == reopened.glyphNames()


def test_unparsedGlyphCopiedOnSaveAs(ufoPath):
    brokenData = b"not a glyph"
    (ufoPath / "glyphs" / "space.glif").write_bytes(brokenData)
    document, _ = openDocument(ufoPath)
    destPath = ufoPath.parent / "Copy.ufo"

    report = saveDocument(document, destPath)

    assert "glyphs/space.glif" in report.written
    assert brokenData == (destPath / "glyphs" / "space.glif").read_bytes()
    contents = plistlib.loads((destPath / "glyphs" / "contents.plist").read_bytes())
    assert "space.glif" == contents["space"]


def test_unparsedGlyphReplaced(ufoPath):
    (ufoPath / "glyphs" / "space.glif").write_bytes(b"not a glyph")
    document, _ = openDocument(ufoPath)
    History(document=document).apply(addGlyph("space", xAdvance=500))

    saveDocument(document)

    reopened, diagnostics = openDocument(ufoPath)
    assert [] == diagnostics
    assert 500 == reopened.getGlyph("space").xAdvance


def test_groupOrderSurvivesSave(ufoPath):
    history = openWithHistory(ufoPath)
    document = history.document
    history.apply(setGroup("public.kern1.Z", ["space"]))
    history.apply(setGroup("public.kern1.B", ["space"]))
    history.apply(setKerningPair("public.kern1.Z", "V", -10))
    history.apply(setKerningPair("public.kern1.B", "V", -50))
    assert -10 == document.kerningValue("space", "V")

    saveDocument(document)
    assert not isDirty(document)

    reopened, _ = openDocument(ufoPath)
    assert ["public.kern1.Z", "public.kern1.B"] == list(reopened.kerning.groups)[-2:]
    assert -10 == reopened.kerningValue("space", "V")
    assert document.fingerprint() == reopened.fingerprint()


def test_groupOrderMakesDirty(ufoPath):
    history = openWithHistory(ufoPath)
    document = history.document
    before = document.fingerprint()
    members = document.kerning.groups["public.kern1.A"]
    # Deleting and re-adding a group moves it to the end
    history.apply(removeGroup("public.kern1.A"))
    history.apply(setGroup("public.kern1.A", members))
    assert isDirty(document)
    assert before != document.fingerprint()

    report = saveDocument(document)
    assert ["groups.plist"] == report.written
    groups = plistlib.loads((ufoPath / "groups.plist").read_bytes())
    assert "public.kern1.A" == list(groups)[-1]


def test_danglingReferenceDiagnostics(ufoPath):
    (ufoPath / "glyphs" / "acute.glif").unlink()
    contents = plistlib.loads((ufoPath / "glyphs" / "contents.plist").read_bytes())
    del contents["acute"]
    (ufoPath / "glyphs" / "contents.plist").write_bytes(plistlib.dumps(contents))

    document, diagnostics = openDocument(ufoPath)

    assert ["acute"] == [d.target for d in diagnostics]
    assert "acute" not in document.glyphNames()


def _removeFile(ufoPath, fileName):
    (ufoPath / fileName).unlink()


def _writeFile(ufoPath, fileName, data):
    (ufoPath / fileName).write_bytes(data)


def _writePlist(ufoPath, fileName, value):
    _writeFile(ufoPath, fileName, plistlib.dumps(value))


@pytest.mark.parametrize(
    "breakSource",
    [
        lambda p: _removeFile(p, "metainfo.plist"),
        lambda p: _writePlist(p, "metainfo.plist", {"formatVersion": 99}),
        lambda p: _writePlist(p, "metainfo.plist", {"creator": "nobody"}),
        lambda p: _removeFile(p, "layercontents.plist"),
        lambda p: _writeFile(p, "layercontents.plist", b"garbage"),
        lambda p: _writePlist(p, "layercontents.plist", [["public.default", "x"]]),
        lambda p: _writePlist(
            p, "layercontents.plist", [["a", "glyphs"], ["a", "glyphs.a"]]
        ),
        lambda p: _removeFile(p, "glyphs/contents.plist"),
        lambda p: _writePlist(p, "glyphs/contents.plist", ["A_.glif"]),
        lambda p: _writePlist(p, "kerning.plist", ["A", "V"]),
        lambda p: _writePlist(p, "kerning.plist", {"A": {"V": "ten"}}),
        lambda p: _writePlist(p, "fontinfo.plist", {"guidelines": [1]}),
    ],
)
def test_malformedSource(ufoPath, breakSource):
    breakSource(ufoPath)
    with pytest.raises(MalformedSource):
        openDocument(ufoPath)


def test_notADirectory(tmpdir):
    with pytest.raises(MalformedSource):
        openDocument(pathlib.Path(tmpdir) / "Missing.ufo")


def test_openDocumentWarnsAboutSuffix(ufoPath, tmpdir, caplog):
    otherPath = pathlib.Path(tmpdir) / "TestFont.notufo"
    ufoPath.rename(otherPath)
    with caplog.at_level(logging.WARNING):
        openDocument(otherPath)
    assert "does not have a .ufo extension" in caplog.text


def test_ufo2(ufoPath):
    _removeFile(ufoPath, "layercontents.plist")
    _writePlist(
        ufoPath,
        "metainfo.plist",
        {"creator": "com.github.fonttools.ufoLib", "formatVersion": 2},
    )
    history = openWithHistory(ufoPath)
    assert ["public.default"] == list(history.document.layers)
    assert isDirty(history.document)

    report = saveDocument(history.document)

    assert ["layercontents.plist", "metainfo.plist"] == sorted(report.written)
    metaInfo = plistlib.loads((ufoPath / "metainfo.plist").read_bytes())
    assert 3 == metaInfo["formatVersion"]
    assert not isDirty(history.document)


class FailingFileSystem(LocalFileSystem):
    def __init__(self, failingName):
        self.failingName = failingName

    def writeBytesAtomic(self, path, data):
        if pathlib.Path(path).name == self.failingName:
            raise IOFailure(f"disk full: {path}", path=path)
        super().writeBytesAtomic(path, data)


def test_saveFailureKeepsPreviousFile(ufoPath):
    history = openWithHistory(ufoPath)
    savedState = history.document.savedState
    originalData = (ufoPath / "glyphs" / "A_.glif").read_bytes()
    moveFirstPoint(history)

    fileSystem = FailingFileSystem("A_.glif")
    assert isinstance(fileSystem, FileSystem)
    with pytest.raises(IOFailure):
        saveDocument(history.document, fileSystem=fileSystem)

    assert originalData == (ufoPath / "glyphs" / "A_.glif").read_bytes()
    assert savedState is history.document.savedState
    assert isDirty(history.document)


def test_atomicWriteCleansUp(ufoPath, monkeypatch):
    def failingReplace(source, dest):
        raise OSError("can't replace")

    history = openWithHistory(ufoPath)
    originalData = (ufoPath / "glyphs" / "A_.glif").read_bytes()
    moveFirstPoint(history)
    monkeypatch.setattr("fontdoc.backends.filesystem.os.replace", failingReplace)

    with pytest.raises(IOFailure):
        saveDocument(history.document)

    assert originalData == (ufoPath / "glyphs" / "A_.glif").read_bytes()
    assert not [
        p for p in (ufoPath / "glyphs").iterdir() if p.name.endswith(".tmp")
    ]


class RecordingVersionControl:
    def __init__(self):
        self.calls = []

    def filesSaved(self, path, written, removed):
        self.calls.append((path, list(written), list(removed)))


def test_versionControlNotified(ufoPath):
    versionControl = RecordingVersionControl()
    assert isinstance(versionControl, VersionControl)
    history = openWithHistory(ufoPath)
    history.apply(renameGlyph("acute", "acutecomb"))

    saveDocument(history.document, versionControl=versionControl)

    assert 1 == len(versionControl.calls)
    path, written, removed = versionControl.calls[0]
    assert ufoPath == path
    assert "glyphs/acutecomb.glif" in written
    assert ["glyphs/acute.glif"] == removed


def test_writeCancelled(ufoPath):
    history = openWithHistory(ufoPath)
    moveFirstPoint(history)
    document = history.document
    cancelEvent = threading.Event()
    cancelEvent.set()

    with pytest.raises(OperationCancelled):
        writeUFO(
            takeSnapshot(document),
            ufoPath,
            document.savedState,
            cancelEvent=cancelEvent,
        )

    assert directoryTreeToList(testFontPath) == directoryTreeToList(ufoPath)
    assert isDirty(document)


def test_readCancelled():
    cancelEvent = threading.Event()
    cancelEvent.set()
    with pytest.raises(OperationCancelled):
        readUFO(testFontPath, cancelEvent=cancelEvent)
