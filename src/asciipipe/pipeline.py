from __future__ import annotations

import dataclasses
import logging
import threading
from dataclasses import dataclass
from typing import Any

import numpy as np
from PIL import Image, ImageColor

from asciipipe.buffer import PixelBuffer
from asciipipe.graph import RecomputeGraph, derived, source
from asciipipe.grayscale import to_grayscale
from asciipipe.mapping import CharacterGrid, effective_palette, map_luminance
from asciipipe.palettes import STANDARD, Palette
from asciipipe.render import WHITE, render_glyphs
from asciipipe.resize import check_dimensions, resize
from asciipipe.sampling import sample_luminance

logger = logging.getLogger(__name__)


def _parse_colour(colour) -> tuple[int, int, int]:
    if isinstance(colour, str):
        colour = ImageColor.getrgb(colour)
    rgb = tuple(int(v) for v in colour)[:3]
    if len(rgb) != 3 or not all(0 <= v <= 255 for v in rgb):
        raise ValueError(f"Background colour must be an RGB triple in 0-255, got {colour!r}")
    return rgb


@dataclass(frozen=True)
class PipelineConfig:
    render_width: int = 100
    render_height: int = 100
    page_width: int = 2000
    page_height: int = 2000
    palette: Palette = STANDARD
    font: Any = None  # any Pillow font; None selects the default font
    background_color: tuple[int, int, int] = WHITE
    on_dark_background: bool = False

    def __post_init__(self):
        check_dimensions(self.render_width, self.render_height, "render")
        check_dimensions(self.page_width, self.page_height, "page")
        if not isinstance(self.palette, Palette):
            raise TypeError(f"palette must be a Palette, got {type(self.palette).__name__}")
        object.__setattr__(self, "background_color", _parse_colour(self.background_color))
        object.__setattr__(self, "on_dark_background", bool(self.on_dark_background))


def _resized(image: PixelBuffer | None, width: int, height: int) -> PixelBuffer | None:
    return None if image is None else resize(image, width, height)


def _grayscale(resized: PixelBuffer | None) -> PixelBuffer | None:
    return None if resized is None else to_grayscale(resized)


def _luminance(gray: PixelBuffer | None) -> np.ndarray | None:
    return None if gray is None else sample_luminance(gray)


def _characters(luminance: np.ndarray | None, palette: Palette) -> CharacterGrid | None:
    return None if luminance is None else map_luminance(luminance, palette)


def _raster(characters, luminance, palette, font, page_width, page_height, background_color, on_dark_background):
    if characters is None:
        return None
    return render_glyphs(
        characters,
        luminance,
        palette,
        font=font,
        page_width=page_width,
        page_height=page_height,
        background_color=background_color,
        on_dark_background=on_dark_background,
    )


def _text(characters: CharacterGrid | None, palette: Palette) -> str | None:
    return None if characters is None else characters.to_text(palette)


_CONFIG_FIELDS = tuple(f.name for f in dataclasses.fields(PipelineConfig))


class AsciiPipeline:
    """Image to character-art pipeline that recomputes only what a change affects.

    Every configuration field and the source image is a source cell of a
    :class:`RecomputeGraph`; every stage is a derived cell. Reads are safe from
    any thread. Writes (``update``, ``set_image``) are meant to come from a
    single owner but serialize safely if they do not.
    """

    def __init__(self, config: PipelineConfig | None = None, image: PixelBuffer | Image.Image | None = None):
        config = config or PipelineConfig()
        cells = [source(name, getattr(config, name)) for name in _CONFIG_FIELDS]
        cells += [
            source("image", self._coerce_image(image)),
            derived("effective_palette", ["palette", "on_dark_background"], effective_palette),
            derived("resized", ["image", "render_width", "render_height"], _resized),
            derived("grayscale", ["resized"], _grayscale),
            derived("luminance", ["grayscale"], _luminance),
            derived("characters", ["luminance", "effective_palette"], _characters),
            derived(
                "raster",
                [
                    "characters",
                    "luminance",
                    "effective_palette",
                    "font",
                    "page_width",
                    "page_height",
                    "background_color",
                    "on_dark_background",
                ],
                _raster,
            ),
            derived("text", ["characters", "effective_palette"], _text),
        ]
        self.graph = RecomputeGraph(cells)
        self._config = config
        self._update_lock = threading.Lock()

    @staticmethod
    def _coerce_image(image):
        if isinstance(image, Image.Image):
            return PixelBuffer.from_image(image)
        if image is not None and not isinstance(image, PixelBuffer):
            raise TypeError(f"image must be a PixelBuffer or PIL image, got {type(image).__name__}")
        return image

    @property
    def config(self) -> PipelineConfig:
        return self._config

    @property
    def image(self) -> PixelBuffer | None:
        return self.graph.get("image")

    def set_image(self, image: PixelBuffer | Image.Image | None) -> None:
        image = self._coerce_image(image)
        self.graph.set("image", image)
        if image is None:
            logger.debug("Cleared source image")
        else:
            logger.debug("Source image set to %dx%d", image.width, image.height)

    def update(self, **changes) -> PipelineConfig:
        """Change configuration fields. All changes are validated before any is applied."""
        unknown = set(changes) - set(_CONFIG_FIELDS)
        if unknown:
            raise TypeError(f"Unknown configuration fields: {', '.join(sorted(unknown))}")
        with self._update_lock:
            old = self._config
            config = dataclasses.replace(old, **changes)
            changed = {name: getattr(config, name) for name in changes if getattr(config, name) != getattr(old, name)}
            self.graph.set_many(changed)
            self._config = config
        if changed:
            logger.debug("Configuration updated: %s", ", ".join(f"{k}={v!r}" for k, v in changed.items()))
        return config

    def effective_palette(self) -> Palette:
        return self.graph.get("effective_palette")

    def resized(self) -> PixelBuffer | None:
        return self.graph.get("resized")

    def grayscale(self) -> PixelBuffer | None:
        return self.graph.get("grayscale")

    def luminance(self) -> np.ndarray | None:
        return self.graph.get("luminance")

    def characters(self) -> CharacterGrid | None:
        return self.graph.get("characters")

    def render(self) -> PixelBuffer | None:
        """The rendered page, or None while no source image is set."""
        return self.graph.get("raster")

    def to_text(self) -> str | None:
        return self.graph.get("text")
