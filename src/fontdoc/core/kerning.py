from __future__ import annotations

import logging
from enum import Enum
from typing import Iterator

from .classes import Kerning

logger = logging.getLogger(__name__)


LEFT_GROUP_PREFIX = "public.kern1."
RIGHT_GROUP_PREFIX = "public.kern2."


class KerningGroupPolicy(Enum):
    """How a glyph that is a member of several groups is resolved."""

    # Any group may be used on either side; the first group in declaration
    # order that has a matching pair wins.
    FIRST_DECLARED = "firstDeclared"
    # Only public.kern1. groups are left groups and only public.kern2. groups
    # are right groups; otherwise like FIRST_DECLARED.
    UFO_PREFIX = "ufoPrefix"


def isSideGroup(groupName: str, side: str, policy: KerningGroupPolicy) -> bool:
    if policy == KerningGroupPolicy.FIRST_DECLARED:
        return True
    prefix = LEFT_GROUP_PREFIX if side == "left" else RIGHT_GROUP_PREFIX
    return groupName.startswith(prefix)


def iterContainingGroups(
    kerning: Kerning, glyphName: str, side: str, policy: KerningGroupPolicy
) -> Iterator[str]:
    for groupName, members in kerning.groups.items():
        if glyphName in members and isSideGroup(groupName, side, policy):
            yield groupName


def kerningValue(
    kerning: Kerning,
    leftGlyph: str,
    rightGlyph: str,
    policy: KerningGroupPolicy = KerningGroupPolicy.FIRST_DECLARED,
) -> float:
    """Look up the kerning between two glyphs.

    Precedence: glyph/glyph, glyph/group, group/glyph, group/group, else 0.
    """
    pairs = kerning.pairs

    value = pairs.get(leftGlyph, {}).get(rightGlyph)
    if value is not None:
        return value

    rightGroups = list(iterContainingGroups(kerning, rightGlyph, "right", policy))
    leftGroups = list(iterContainingGroups(kerning, leftGlyph, "left", policy))

    glyphRow = pairs.get(leftGlyph, {})
    for rightGroup in rightGroups:
        value = glyphRow.get(rightGroup)
        if value is not None:
            return value

    for leftGroup in leftGroups:
        value = pairs.get(leftGroup, {}).get(rightGlyph)
        if value is not None:
            return value

    for leftGroup in leftGroups:
        groupRow = pairs.get(leftGroup, {})
        for rightGroup in rightGroups:
            value = groupRow.get(rightGroup)
            if value is not None:
                return value

    return 0


def iterPairs(kerning: Kerning) -> Iterator[tuple[str, str, float]]:
    for left, row in kerning.pairs.items():
        for right, value in row.items():
            yield left, right, value


def isGroupReference(name: str) -> bool:
    return name.startswith(LEFT_GROUP_PREFIX) or name.startswith(RIGHT_GROUP_PREFIX)
