import pytest
from fontTools.pens.recordingPen import RecordingPointPen
from testSupport import testFontPath

from fontdoc.backends.ufo import readUFO
from fontdoc.core.classes import XML_ATTRIBUTES_KEY, XML_ELEMENTS_KEY
from fontdoc.core.document import FontDocument
from fontdoc.core.errors import DanglingReference
from fontdoc.core.fontedits import addGlyph, removeGlyph, setGroup, setKerningPair
from fontdoc.core.history import History
from fontdoc.core.outline import VELOCITY


@pytest.fixture
def testDocument():
    document, diagnostics = readUFO(testFontPath)
    assert [] == diagnostics
    return document


def test_newDocument():
    document = FontDocument.new()
    assert ["public.default"] == list(document.layers)
    assert "public.default" == document.defaultLayer.name
    assert [] == document.glyphNames()
    assert document.getGlyph("A") is None
    assert document.glyphHandle("A", "no such layer") is None


def test_layersAndGlyphs(testDocument):
    assert ["public.default", "public.background"] == list(testDocument.layers)
    assert [
        "A",
        "Aacute",
        "O",
        "V",
        "acute",
        "space",
    ] == testDocument.glyphNames()
    assert ["A"] == testDocument.glyphNames("public.background")
    glyph = testDocument.getGlyph("A")
    assert "A" == glyph.name
    assert 600 == glyph.xAdvance
    assert [0x41] == glyph.unicodes
    assert "Capital A" == glyph.note

    backgroundHandle = testDocument.glyphHandle("A", "public.background")
    assert backgroundHandle != testDocument.glyphHandle("A")
    assert "public.background" == testDocument.findGlyphLayerName(backgroundHandle)
    assert "public.default" == testDocument.findGlyphLayerName(
        testDocument.glyphHandle("A")
    )


def test_iterOwnedHandles(testDocument):
    glyphHandle = testDocument.glyphHandle("A")
    ownedHandles = list(testDocument.iterOwnedHandles(glyphHandle))
    assert 10 == len(ownedHandles)
    assert len(set(ownedHandles)) == len(ownedHandles)
    assert glyphHandle not in ownedHandles


def test_glyphOverviewOrder(testDocument):
    assert [
        "space",
        "A",
        "O",
        "V",
        "acute",
        "Aacute",
    ] == testDocument.glyphOverviewOrder()

    History(document=testDocument).apply(addGlyph("a.alt"))
    History(document=testDocument).apply(addGlyph("B.alt"))
    assert ["B.alt", "a.alt"] == testDocument.glyphOverviewOrder()[-2:]


def test_usedBy(testDocument):
    assert ["Aacute"] == testDocument.usedBy("A")
    assert ["Aacute"] == testDocument.usedBy("acute")
    assert [] == testDocument.usedBy("Aacute")
    assert [] == testDocument.usedBy("A", "public.background")


def test_findDanglingReferences(testDocument):
    assert [] == testDocument.findDanglingReferences()

    history = History(document=testDocument)
    history.apply(removeGlyph("acute"))
    history.apply(setKerningPair("public.kern1.missing", "V", 12))
    diagnostics = testDocument.findDanglingReferences()
    assert 2 == len(diagnostics)
    assert all(isinstance(d, DanglingReference) for d in diagnostics)
    assert ("Aacute", "acute", "public.default") == (
        diagnostics[0].source,
        diagnostics[0].target,
        diagnostics[0].layerName,
    )
    assert "public.kern1.missing" == diagnostics[1].target

    history.undo()
    history.undo()
    assert [] == testDocument.findDanglingReferences()


def test_kerningValue(testDocument):
    assert 10 == testDocument.kerningValue("A", "V")
    assert -5 == testDocument.kerningValue("Aacute", "V")
    assert 0 == testDocument.kerningValue("space", "V")


def test_drawPoints(testDocument):
    pen = RecordingPointPen()
    testDocument.drawPoints(testDocument.glyphHandle("V"), pen)
    assert [
        ("beginPath", (), {}),
        ("addPoint", ((20, 700), "line", False, None), {}),
        ("addPoint", ((290, 0), "line", False, None), {}),
        ("addPoint", ((560, 700), "line", False, None), {}),
        ("endPath", (), {}),
    ] == pen.value

    pen = RecordingPointPen()
    testDocument.drawPoints(testDocument.glyphHandle("Aacute"), pen)
    assert [
        ("addComponent", ("A", (1, 0, 0, 1, 0, 0)), {}),
        ("addComponent", ("acute", (1, 0, 0, 1, 200, 100)), {}),
    ] == pen.value


def test_contourContinuities(testDocument):
    glyph = testDocument.getGlyph("O")
    contourHandle = glyph.contours[0]
    continuities = testDocument.contourContinuities(contourHandle)
    points = testDocument.getContourPoints(contourHandle)
    assert 12 == len(points)
    assert 4 == len(continuities)
    assert all(continuity == VELOCITY for _, continuity in continuities)
    contour = testDocument.arena[contourHandle]
    assert [contour.points[i] for i in (0, 3, 6, 9)] == [
        pointHandle for pointHandle, _ in continuities
    ]


def test_glyphData(testDocument):
    glyphData = testDocument.glyphData(testDocument.glyphHandle("A"))
    assert "A" == glyphData["name"]
    assert [{"name": "top", "x": 300, "y": 700}] == glyphData["anchors"]
    assert 2 == len(glyphData["contours"])
    firstContour = glyphData["contours"][0]
    assert {XML_ATTRIBUTES_KEY: {"identifier": "outer"}} == firstContour["customData"]
    assert {"x": 300, "y": 700, "type": "line", "name": "apex"} == firstContour[
        "points"
    ][1]
    customData = glyphData["customData"]
    assert XML_ATTRIBUTES_KEY not in customData
    assert 1 == len(customData[XML_ELEMENTS_KEY])
    precedingTag, elementString = customData[XML_ELEMENTS_KEY][0]
    assert "note" == precedingTag
    assert elementString.startswith("<image")
    assert 1 == customData["com.example.glyphKey"]
    assert "components" not in glyphData


def test_fingerprint(testDocument):
    otherDocument, _ = readUFO(testFontPath)
    assert testDocument.fingerprint() == otherDocument.fingerprint()
    assert testDocument.glyphFingerprint(
        testDocument.glyphHandle("A")
    ) == otherDocument.glyphFingerprint(otherDocument.glyphHandle("A"))
    assert testDocument.glyphFingerprint(
        testDocument.glyphHandle("A")
    ) != testDocument.glyphFingerprint(
        testDocument.glyphHandle("A", "public.background")
    )


def test_fontLevelData(testDocument):
    assert "Test Font" == testDocument.fontInfo.familyName
    assert 1000 == testDocument.fontInfo.unitsPerEm
    assert {"openTypeNameDesigner": "Jane Doe"} == testDocument.fontInfo.customData
    assert [{"name": "overshoot", "y": -12}] == testDocument.guidelineData()
    assert "font value" == testDocument.customData["com.example.fontKey"]
    assert {"color": "0,0.5,1,0.7"} == testDocument.layers[
        "public.background"
    ].customData


def test_danglingKerningGlyphs(testDocument):
    history = History(document=testDocument)
    history.apply(setGroup("public.kern1.A", ["A", "missing"]))
    history.apply(setKerningPair("V", "gone", 5))
    diagnostics = testDocument.findDanglingReferences()
    assert [
        ("public.kern1.A", "missing"),
        ("kerning", "gone"),
    ] == [(d.source, d.target) for d in diagnostics]


def test_danglingKerningAfterRemoveGlyph(testDocument):
    history = History(document=testDocument)
    history.apply(removeGlyph("V"))
    diagnostics = testDocument.findDanglingReferences()
    assert [("public.kern2.V", "V"), ("kerning", "V")] == [
        (d.source, d.target) for d in diagnostics
    ]
