from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from asciipipe.errors import EmptyPaletteError, OutOfDomainError
from asciipipe.palettes import Palette
from asciipipe.sampling import LUMINANCE_MAX, LUMINANCE_MIN

_SPAN = LUMINANCE_MAX - LUMINANCE_MIN


@dataclass(frozen=True)
class CharacterGrid:
    rows: tuple[str, ...]  # one string per row

    @property
    def width(self) -> int:
        return len(self.rows[0]) if self.rows else 0

    @property
    def height(self) -> int:
        return len(self.rows)

    def to_text(self, palette: Palette) -> str:
        """Plain-text rendering: a caption naming the palette, then one line per row."""
        return "".join(line + "\n" for line in (palette.caption(), *self.rows))


def palette_index(value: int, length: int) -> int:
    """Map a luminance value linearly onto ``0..length-1``, rounding halves up."""
    if length < 1:
        raise EmptyPaletteError("Cannot map onto an empty palette")
    if not LUMINANCE_MIN <= value <= LUMINANCE_MAX:
        raise OutOfDomainError(f"Luminance {value} outside [{LUMINANCE_MIN}, {LUMINANCE_MAX}]")
    return math.floor((value - LUMINANCE_MIN) / _SPAN * (length - 1) + 0.5)


def map_luminance(luminance: np.ndarray, palette: Palette) -> CharacterGrid:
    """Map every luminance sample to a palette character."""
    if luminance.size and (luminance.min() < LUMINANCE_MIN or luminance.max() > LUMINANCE_MAX):
        raise OutOfDomainError(
            f"Luminance range [{luminance.min()}, {luminance.max()}] outside [{LUMINANCE_MIN}, {LUMINANCE_MAX}]"
        )
    scaled = (luminance.astype(np.float64) - LUMINANCE_MIN) / _SPAN * (len(palette) - 1)
    indices = np.floor(scaled + 0.5).astype(np.intp)
    chars = np.array(palette.characters, dtype=object)
    return CharacterGrid(rows=tuple("".join(row) for row in chars[indices]))


def effective_palette(palette: Palette, on_dark_background: bool) -> Palette:
    """The palette as used for mapping: mirrored when drawing on a dark background."""
    return palette.reversed() if on_dark_background else palette
