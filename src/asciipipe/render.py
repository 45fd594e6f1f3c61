from __future__ import annotations

from functools import cache

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from asciipipe.buffer import PixelBuffer
from asciipipe.mapping import CharacterGrid
from asciipipe.palettes import Palette
from asciipipe.resize import check_dimensions
from asciipipe.sampling import gray_levels

FONT_SIZE = 15
CHAR_SPACING_X = 10
CHAR_SPACING_Y = 15

WHITE = (255, 255, 255)
BLACK = (0, 0, 0)


@cache
def default_font(size: int = FONT_SIZE) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
    return ImageFont.load_default(size=size)


class _CentredText:
    """Draws text centred on a point, caching each string's bounding-box midpoint."""

    def __init__(self, draw: ImageDraw.ImageDraw, font):
        self.draw = draw
        self.font = font
        self._midpoints: dict[str, tuple[float, float]] = {}

    def __call__(self, cx: float, cy: float, text: str, fill) -> None:
        mid = self._midpoints.get(text)
        if mid is None:
            left, top, right, bottom = self.draw.textbbox((0, 0), text, font=self.font)
            mid = self._midpoints[text] = ((left + right) / 2, (top + bottom) / 2)
        self.draw.text((cx - mid[0], cy - mid[1]), text, fill=fill, font=self.font)


def render_glyphs(
    grid: CharacterGrid,
    luminance: np.ndarray,
    palette: Palette,
    font=None,
    page_width: int = 2000,
    page_height: int = 2000,
    background_color: tuple[int, int, int] = WHITE,
    on_dark_background: bool = False,
) -> PixelBuffer:
    """Draw ``grid`` centred on a page_width x page_height canvas.

    A caption listing ``palette`` sits one row above the grid. Each glyph is
    drawn in the gray level of the source pixel it stands for, so ``luminance``
    must have the grid's shape.
    """
    check_dimensions(page_width, page_height, "page")
    if luminance.shape != (grid.height, grid.width):
        raise ValueError(f"Luminance shape {luminance.shape} does not match grid {grid.height}x{grid.width}")

    canvas = Image.new("RGB", (page_width, page_height), tuple(background_color))
    centred = _CentredText(ImageDraw.Draw(canvas), font if font is not None else default_font())

    delta_x = (page_width - grid.width * CHAR_SPACING_X) / 2
    delta_y = (page_height - grid.height * CHAR_SPACING_Y) / 2

    caption_fill = WHITE if on_dark_background else BLACK
    centred(page_width / 2, delta_y - CHAR_SPACING_Y / 2, palette.caption(), caption_fill)

    levels = gray_levels(luminance)
    for r, row in enumerate(grid.rows):
        y = (r + 0.5) * CHAR_SPACING_Y + delta_y
        for c, char in enumerate(row):
            if char.isspace():
                continue
            level = int(levels[r, c])
            centred((c + 0.5) * CHAR_SPACING_X + delta_x, y, char, (level, level, level))

    return PixelBuffer.from_image(canvas)
