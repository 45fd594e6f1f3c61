from __future__ import annotations

from dataclasses import dataclass

from asciipipe.errors import EmptyPaletteError


@dataclass(frozen=True)
class Palette:
    """Ordered character ramp. Position encodes brightness rank, from dark to light."""

    name: str
    characters: tuple[str, ...]

    def __post_init__(self):
        if not self.characters:
            raise EmptyPaletteError(f"Palette {self.name!r} has no characters")
        for char in self.characters:
            if not isinstance(char, str) or len(char) != 1:
                raise ValueError(f"Palette {self.name!r} entries must be single characters, got {char!r}")

    @classmethod
    def from_string(cls, name: str, characters: str) -> "Palette":
        return cls(name=name, characters=tuple(characters))

    def __len__(self) -> int:
        return len(self.characters)

    def reversed(self) -> "Palette":
        return Palette(name=self.name, characters=self.characters[::-1])

    def caption(self) -> str:
        return f"Palette used: [{', '.join(self.characters)}]"

    def __str__(self) -> str:
        return self.name


ALPHABET = Palette.from_string("Alphabet", "WBRHKASVCyoi ")
BINARY = Palette.from_string("Binary", "01")
BLOCKS = Palette.from_string("Blocks", "██▓▒░ ")
STANDARD = Palette.from_string("Standard", "#$o{+~:-. ")
STANDARD_2 = Palette.from_string("Standard 2", "&#{$#o+~:-.  ")
STANDARD_3 = Palette.from_string("Standard 3", "B@#S%?*+;:,. ")

PALETTES = {p.name: p for p in (ALPHABET, BINARY, BLOCKS, STANDARD, STANDARD_2, STANDARD_3)}


def get_palette(name: str) -> Palette:
    """Look up a named palette, ignoring case and treating ``-``/``_`` as spaces."""
    wanted = name.replace("-", " ").replace("_", " ").casefold()
    for palette in PALETTES.values():
        if palette.name.casefold() == wanted:
            return palette
    raise KeyError(f"Unknown palette {name!r}; choose from {', '.join(PALETTES)}")
