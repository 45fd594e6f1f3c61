import numpy as np

from asciipipe.buffer import PixelBuffer

# Kept as-is for parity with existing renderings; the blue weight is not the usual 0.114.
RED_WEIGHT = 0.299
GREEN_WEIGHT = 0.587
BLUE_WEIGHT = 0.1114


def to_grayscale(buffer: PixelBuffer) -> PixelBuffer:
    """Return a copy of ``buffer`` with R, G and B set to the weighted brightness of each sample.

    Alpha, when present, is carried over unchanged.
    """
    rgb = buffer.pixels[:, :, :3].astype(np.float64)
    gray = np.floor(rgb[:, :, 0] * RED_WEIGHT + rgb[:, :, 1] * GREEN_WEIGHT + rgb[:, :, 2] * BLUE_WEIGHT)

    out = np.array(buffer.pixels, copy=True)
    out[:, :, :3] = gray.astype(np.uint8)[:, :, None]
    return PixelBuffer.from_array(out)
