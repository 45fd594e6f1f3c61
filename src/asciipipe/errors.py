class AsciiPipeError(ValueError):
    """Base class for errors raised by the character-art pipeline."""


class InvalidDimensionsError(AsciiPipeError):
    """A width or height is zero or outside the supported range."""


class OutOfDomainError(AsciiPipeError):
    """A luminance value lies outside the mapping domain."""


class CyclicDependencyError(AsciiPipeError):
    """Declared cell dependencies form a cycle."""


class EmptyPaletteError(AsciiPipeError):
    """A palette was given no characters."""
