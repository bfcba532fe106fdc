import logging
import pathlib
from os import PathLike

from ..core.document import FontDocument
from ..core.errors import FontDocError
from ..core.kerning import KerningGroupPolicy
from .ufo import SaveReport, isDirty, readUFO, saveDocument

logger = logging.getLogger(__name__)

__all__ = ["isDirty", "openDocument", "saveDocument", "SaveReport"]


def openDocument(
    path: PathLike,
    *,
    fileSystem=None,
    kerningGroupPolicy: KerningGroupPolicy = KerningGroupPolicy.FIRST_DECLARED,
) -> tuple[FontDocument, list[FontDocError]]:
    path = pathlib.Path(path)
    if path.suffix.lower() != ".ufo":
        logger.warning(f"{path.name} does not have a .ufo extension")
    return readUFO(path, fileSystem=fileSystem, kerningGroupPolicy=kerningGroupPolicy)
