import hashlib
import os
import pathlib
import shutil

dataDir = pathlib.Path(__file__).resolve().parent / "data"
testFontPath = dataDir / "TestFont.ufo"

binarySuffixes = {".png", ".jpg", ".jpeg"}


def copyTestFont(destDir, name="TestFont.ufo"):
    destPath = pathlib.Path(destDir) / name
    shutil.copytree(testFontPath, destPath)
    return destPath


def directoryTreeToList(path):
    path = pathlib.Path(path).resolve()
    prefixLength = len(os.fspath(path))

    paths = sorted(_allPaths(path))
    lines = []

    for path in paths:
        lines.append(os.fspath(path)[prefixLength:])
        if not path.is_dir():
            if path.suffix in binarySuffixes:
                h = hashlib.sha1()
                h.update(path.read_bytes())
                lines.append(f"SHA-1: {h.hexdigest()}")
            else:
                for line in path.read_text().splitlines():
                    lines.append(line)

    return lines


def directoryModificationTimes(path):
    path = pathlib.Path(path)
    return {
        os.fspath(childPath.relative_to(path)): childPath.stat().st_mtime_ns
        for childPath in _allPaths(path)
    }


ignore = {".DS_Store"}


def _allPaths(path):
    for childPath in path.iterdir():
        if childPath.name in ignore:
            continue
        if childPath.is_dir():
            yield from _allPaths(childPath)
        else:
            yield childPath
