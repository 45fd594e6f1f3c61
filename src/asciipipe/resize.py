from PIL import Image

from asciipipe.buffer import MAX_DIMENSION, PixelBuffer
from asciipipe.errors import InvalidDimensionsError


def check_dimensions(width: int, height: int, what: str = "size") -> None:
    for name, value in (("width", width), ("height", height)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidDimensionsError(f"{what} {name} must be an integer, got {value!r}")
        if not 1 <= value <= MAX_DIMENSION:
            raise InvalidDimensionsError(f"{what} {name} must be between 1 and {MAX_DIMENSION}, got {value}")


def resize(
    buffer: PixelBuffer,
    width: int,
    height: int,
    resample: Image.Resampling = Image.Resampling.BILINEAR,
) -> PixelBuffer:
    """Resample ``buffer`` to exactly ``width`` x ``height``.

    Pillow's bilinear filter widens its support when shrinking, so downscaling
    averages over each target cell's area rather than point sampling.
    """
    check_dimensions(width, height)
    if buffer.is_empty:
        return PixelBuffer.blank(width, height, buffer.pixels.shape[2])
    image = buffer.to_image().resize((width, height), resample)
    return PixelBuffer.from_image(image)
