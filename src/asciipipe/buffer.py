from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from PIL import Image

MAX_DIMENSION = 10000


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr.flags.writeable = False
    return arr


@dataclass(frozen=True, eq=False)
class PixelBuffer:
    """Immutable grid of RGB or RGBA samples.

    ``pixels`` is a read-only uint8 array of shape (height, width, channels)
    with 3 or 4 channels. Use the ``from_*`` constructors, which copy their
    input so the caller's data is never aliased.
    """

    pixels: np.ndarray

    def __post_init__(self):
        if self.pixels.ndim != 3 or self.pixels.shape[2] not in (3, 4):
            raise ValueError(f"Expected (height, width, 3|4) pixels, got shape {self.pixels.shape}")
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"Expected uint8 pixels, got {self.pixels.dtype}")
        if self.pixels.flags.writeable:
            raise ValueError("PixelBuffer pixels must be read-only; use PixelBuffer.from_array")

    @classmethod
    def from_array(cls, data) -> "PixelBuffer":
        arr = np.asarray(data)
        if arr.ndim == 2:
            arr = np.repeat(arr[:, :, None], 3, axis=2)
        if arr.ndim != 3 or arr.shape[2] not in (3, 4):
            raise ValueError(f"Expected (height, width), (height, width, 3) or (height, width, 4), got {arr.shape}")
        if arr.dtype != np.uint8:
            if arr.size and (arr.min() < 0 or arr.max() > 255):
                raise ValueError("Sample values must be in 0-255")
            if np.issubdtype(arr.dtype, np.inexact) and not np.array_equal(arr, np.round(arr)):
                raise ValueError("Sample values must be whole numbers")
        return cls(_readonly(np.array(arr, dtype=np.uint8, copy=True)))

    @classmethod
    def from_image(cls, image: Image.Image) -> "PixelBuffer":
        has_alpha = image.mode in ("RGBA", "LA", "PA") or (image.mode == "P" and "transparency" in image.info)
        image = image.convert("RGBA" if has_alpha else "RGB")
        return cls(_readonly(np.array(image, dtype=np.uint8)))

    @classmethod
    def blank(cls, width: int, height: int, channels: int = 3) -> "PixelBuffer":
        return cls(_readonly(np.zeros((height, width, channels), dtype=np.uint8)))

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    @property
    def has_alpha(self) -> bool:
        return self.pixels.shape[2] == 4

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def to_image(self) -> Image.Image:
        if self.is_empty:
            raise ValueError("Cannot convert an empty PixelBuffer to an image")
        return Image.fromarray(np.ascontiguousarray(self.pixels))

    def __eq__(self, other):
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return self.pixels.shape == other.pixels.shape and np.array_equal(self.pixels, other.pixels)

    __hash__ = None
