class FontDocError(Exception):
    pass


class MalformedSource(FontDocError):
    """A structural file of the source (metainfo, layer contents, glyph
    contents) is missing or corrupt. Fatal for a load."""


class GlyphParseError(FontDocError):
    def __init__(self, message, *, glyphName=None, layerName=None, fileName=None):
        super().__init__(message)
        self.glyphName = glyphName
        self.layerName = layerName
        self.fileName = fileName


class MalformedOutline(FontDocError):
    pass


class ComponentCycleError(MalformedOutline):
    def __init__(self, message, *, cycle=()):
        super().__init__(message)
        self.cycle = list(cycle)


class DanglingReference(FontDocError):
    def __init__(self, message, *, source=None, target=None, layerName=None):
        super().__init__(message)
        self.source = source
        self.target = target
        self.layerName = layerName


class IOFailure(FontDocError):
    def __init__(self, message, *, path=None):
        super().__init__(message)
        self.path = path


class InvalidHandle(FontDocError, KeyError):
    def __str__(self):
        return Exception.__str__(self)
