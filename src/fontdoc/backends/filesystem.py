from __future__ import annotations

import logging
import os
import pathlib
import shutil
import tempfile
from contextlib import contextmanager

from ..core.errors import IOFailure

logger = logging.getLogger(__name__)


@contextmanager
def _wrapOSError(action, path):
    try:
        yield
    except OSError as e:
        raise IOFailure(f"can't {action} {os.fspath(path)}: {e}", path=path) from e


class LocalFileSystem:
    def exists(self, path) -> bool:
        return os.path.exists(path)

    def isDirectory(self, path) -> bool:
        return os.path.isdir(path)

    def listDirectory(self, path) -> list[str]:
        with _wrapOSError("list", path):
            return sorted(os.listdir(path))

    def readBytes(self, path) -> bytes:
        with _wrapOSError("read", path):
            return pathlib.Path(path).read_bytes()

    def writeBytesAtomic(self, path, data: bytes) -> None:
        """Write to a temporary file next to `path`, then rename it into
        place. On failure the previous file (if any) is left untouched."""
        path = pathlib.Path(path)
        with _wrapOSError("write", path):
            fd, tempPath = tempfile.mkstemp(
                dir=path.parent, prefix="." + path.name + ".", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                os.replace(tempPath, path)
            except BaseException:
                os.unlink(tempPath)
                raise

    def makeDirectories(self, path) -> None:
        with _wrapOSError("create", path):
            os.makedirs(path, exist_ok=True)

    def remove(self, path) -> None:
        with _wrapOSError("remove", path):
            os.remove(path)

    def removeTree(self, path) -> None:
        with _wrapOSError("remove", path):
            shutil.rmtree(path)

    def copyFile(self, sourcePath, destPath) -> None:
        destPath = pathlib.Path(destPath)
        with _wrapOSError("copy", sourcePath):
            self.writeBytesAtomic(destPath, pathlib.Path(sourcePath).read_bytes())

    def copyTree(self, sourcePath, destPath) -> None:
        with _wrapOSError("copy", sourcePath):
            shutil.copytree(sourcePath, destPath, dirs_exist_ok=True)
