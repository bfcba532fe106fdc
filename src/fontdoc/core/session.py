from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from functools import partial
from os import PathLike
from typing import Callable

from ..backends.filesystem import LocalFileSystem
from ..backends.ufo import SaveReport, commitSave, readUFO, takeSnapshot, writeUFO
from .commands import Command, CommandFactory
from .document import FontDocument
from .errors import FontDocError
from .history import History
from .kerning import KerningGroupPolicy
from .protocols import FileSystem, VersionControl
from .threading import runInThread

logger = logging.getLogger(__name__)


@dataclass(kw_only=True)
class DocumentSession:
    """An editing session: one document, its history, and background load
    and save.

    Loading and saving run the codec in a worker thread. Edits wait while a
    load or save is in flight. A load only replaces the current document once
    it has completed, and a save writes from a snapshot taken before the
    worker starts, so cancelling either leaves the document as it was.
    """

    fileSystem: FileSystem = field(default_factory=LocalFileSystem)
    versionControl: VersionControl | None = None
    maxHistory: int | None = None
    kerningGroupPolicy: KerningGroupPolicy = KerningGroupPolicy.FIRST_DECLARED

    def __post_init__(self):
        self.document: FontDocument | None = None
        self.history: History | None = None
        self.diagnostics: list[FontDocError] = []
        self._ioLock = asyncio.Lock()
        self._subscribers: list[Callable] = []

    @property
    def isBusy(self) -> bool:
        return self._ioLock.locked()

    def subscribe(self, callback: Callable) -> None:
        self._subscribers.append(callback)
        if self.history is not None:
            self.history.subscribe(callback)

    def unsubscribe(self, callback: Callable) -> None:
        self._subscribers.remove(callback)
        if self.history is not None:
            self.history.unsubscribe(callback)

    def _setDocument(self, document, diagnostics):
        self.document = document
        self.diagnostics = diagnostics
        self.history = History(document=document, maxEntries=self.maxHistory)
        for callback in self._subscribers:
            self.history.subscribe(callback)

    def new(self) -> FontDocument:
        self._setDocument(
            FontDocument.new(kerningGroupPolicy=self.kerningGroupPolicy), []
        )
        return self.document

    async def open(self, path: PathLike) -> list[FontDocError]:
        async with self._ioLock:
            document, diagnostics = await runInThread(
                partial(
                    readUFO,
                    path,
                    fileSystem=self.fileSystem,
                    kerningGroupPolicy=self.kerningGroupPolicy,
                ),
            )
            self._setDocument(document, diagnostics)
        return diagnostics

    async def save(self, path: PathLike | None = None) -> SaveReport:
        async with self._ioLock:
            # Resolved after any open queued before this save
            document = self._requireDocument()
            if path is None:
                path = document.path
            if path is None:
                raise ValueError("document has no path, a path must be given")
            snapshot = takeSnapshot(document)
            report = await runInThread(
                partial(
                    writeUFO,
                    snapshot,
                    path,
                    document.savedState,
                    fileSystem=self.fileSystem,
                ),
            )
            commitSave(document, report, self.versionControl)
        return report

    async def issue(self, factory: CommandFactory) -> Command:
        self._requireDocument()
        async with self._ioLock:
            return self.history.apply(factory)

    async def undo(self) -> Command | None:
        self._requireDocument()
        async with self._ioLock:
            return self.history.undo()

    async def redo(self) -> Command | None:
        self._requireDocument()
        async with self._ioLock:
            return self.history.redo()

    def _requireDocument(self) -> FontDocument:
        if self.document is None:
            raise FontDocError("no document is open")
        return self.document
