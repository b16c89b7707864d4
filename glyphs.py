from __future__ import annotations
from typing import Dict, List

import numpy as np

from sandpile_errors import UnknownGlyphError

GLYPHS = " .:&#"
GLYPH_COUNTS: Dict[str, int] = {g: i for i, g in enumerate(GLYPHS)}


def parse_glyphs(text: str) -> List[List[int]]:
    """One row per line, one cell per character. Row lengths are not checked here.

    Only '\\n' (or '\\r\\n') ends a line; any other control character is an
    unknown glyph.
    """
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    grid: List[List[int]] = []
    for line in lines:
        if line.endswith("\r"):
            line = line[:-1]
        row = []
        for ch in line:
            if ch not in GLYPH_COUNTS:
                raise UnknownGlyphError(ch)
            row.append(GLYPH_COUNTS[ch])
        grid.append(row)
    return grid


def render_glyphs(cells) -> str:
    # anything at or above 4 shows as '#'
    clipped = np.minimum(np.asarray(cells), len(GLYPHS) - 1)
    return "".join("".join(GLYPHS[int(v)] for v in row) + "\n" for row in clipped)
