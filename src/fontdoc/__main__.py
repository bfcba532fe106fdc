import argparse
import logging
import pathlib
import sys

from . import __version__ as fontdocVersion
from .backends import openDocument, saveDocument
from .core.errors import FontDocError
from .core.fontedits import renameGlyph
from .core.history import History
from .core.kerning import KerningGroupPolicy

logger = logging.getLogger(__name__)

if hasattr(logging, "getLevelNamesMapping"):
    levelNamesMapping = logging.getLevelNamesMapping()
else:
    # Python < 3.11
    levelNamesMapping = {
        "CRITICAL": 50,
        "FATAL": 50,
        "ERROR": 40,
        "WARN": 30,
        "WARNING": 30,
        "INFO": 20,
        "DEBUG": 10,
        "NOTSET": 0,
    }

sortedlevelNames = [
    name for name, value in sorted(levelNamesMapping.items(), key=lambda item: item[1])
]


def existing_folder(path):
    path = pathlib.Path(path)
    if not path.is_dir():
        raise argparse.ArgumentTypeError(f"Folder not found: {path!r}")
    return path


def checkCommand(args) -> int:
    document, diagnostics = openDocument(
        args.source, kerningGroupPolicy=args.kerning_group_policy
    )
    for diagnostic in diagnostics:
        print(f"{type(diagnostic).__name__}: {diagnostic}")
    numGlyphs = sum(len(layer.glyphs) for layer in document.layers.values())
    print(
        f"{args.source}: {len(document.layers)} layers, {numGlyphs} glyphs, "
        f"{len(diagnostics)} problems"
    )
    return 1 if diagnostics else 0


def resaveCommand(args) -> int:
    document, _ = openDocument(
        args.source, kerningGroupPolicy=args.kerning_group_policy
    )
    history = History(document=document)
    for oldName, newName in args.rename_glyph or ():
        history.apply(renameGlyph(oldName, newName))
    report = saveDocument(document, args.destination or args.source)
    logger.info(
        f"{len(report.written)} files written, {len(report.removed)} files removed"
    )
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(prog="fontdoc")
    parser.add_argument(
        "--logging-level",
        choices=sortedlevelNames,
        default="WARNING",
        help="The logging level for stderr output",
    )
    parser.add_argument(
        "--kerning-group-policy",
        type=KerningGroupPolicy,
        choices=list(KerningGroupPolicy),
        default=KerningGroupPolicy.FIRST_DECLARED,
        help="How to resolve glyphs that are members of several kerning groups",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=fontdocVersion,
        help="Show fontdoc's version number and exit",
    )

    subParsers = parser.add_subparsers(required=True)

    checkParser = subParsers.add_parser(
        "check", help="Load a UFO and report problems"
    )
    checkParser.add_argument("source", type=existing_folder)
    checkParser.set_defaults(command=checkCommand)

    resaveParser = subParsers.add_parser(
        "resave",
        help="Load a UFO and save it, in place or to a new location",
    )
    resaveParser.add_argument("source", type=existing_folder)
    resaveParser.add_argument("destination", type=pathlib.Path, nargs="?")
    resaveParser.add_argument(
        "--rename-glyph",
        nargs=2,
        action="append",
        metavar=("OLD", "NEW"),
        help="Rename a glyph, updating components and kerning, before saving",
    )
    resaveParser.set_defaults(command=resaveCommand)

    args = parser.parse_args()

    logging.basicConfig(
        format="%(asctime)s %(name)-17s %(levelname)-8s %(message)s",
        level=levelNamesMapping[args.logging_level],
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        sys.exit(args.command(args))
    except FontDocError as e:
        logger.error(str(e))
        sys.exit(2)


if __name__ == "__main__":
    main()
