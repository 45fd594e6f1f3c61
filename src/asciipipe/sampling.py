import numpy as np

from asciipipe.buffer import PixelBuffer

# Grayscale samples are read as opaque ARGB words (0xFFgggggg) in a signed
# 32-bit integer, which places every level between -2**24 and 0.
LUMINANCE_MIN = -(2**24)
LUMINANCE_MAX = 0

_GRAY_TO_RGB = 0x010101


def pack_gray(level: int) -> int:
    """Signed colour word of an opaque gray pixel with the given 0-255 level."""
    return level * _GRAY_TO_RGB + LUMINANCE_MIN


def sample_luminance(gray: PixelBuffer) -> np.ndarray:
    """Sample every pixel of a grayscale buffer. Returns a read-only int32 array of shape (height, width)."""
    levels = gray.pixels[:, :, 0].astype(np.int32)
    result = levels * _GRAY_TO_RGB + LUMINANCE_MIN
    result.flags.writeable = False
    return result


def gray_levels(luminance: np.ndarray) -> np.ndarray:
    """Recover the 0-255 gray level from packed luminance samples."""
    return (luminance & 0xFF).astype(np.uint8)
