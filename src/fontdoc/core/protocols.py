from __future__ import annotations

import os
from typing import Iterable, Protocol, runtime_checkable

PathLike = str | os.PathLike


@runtime_checkable
class FileSystem(Protocol):
    """The file operations the UFO codec needs. Implementations raise
    IOFailure for anything that goes wrong."""

    def exists(self, path: PathLike) -> bool:
        pass

    def isDirectory(self, path: PathLike) -> bool:
        pass

    def listDirectory(self, path: PathLike) -> list[str]:
        pass

    def readBytes(self, path: PathLike) -> bytes:
        pass

    def writeBytesAtomic(self, path: PathLike, data: bytes) -> None:
        pass

    def makeDirectories(self, path: PathLike) -> None:
        pass

    def remove(self, path: PathLike) -> None:
        pass

    def removeTree(self, path: PathLike) -> None:
        pass

    def copyFile(self, sourcePath: PathLike, destPath: PathLike) -> None:
        pass

    def copyTree(self, sourcePath: PathLike, destPath: PathLike) -> None:
        pass


@runtime_checkable
class VersionControl(Protocol):
    def filesSaved(
        self, path: PathLike, written: Iterable[str], removed: Iterable[str]
    ) -> None:
        pass
