import numpy as np
import pytest

from asciipipe.errors import EmptyPaletteError, OutOfDomainError
from asciipipe.mapping import CharacterGrid, effective_palette, map_luminance, palette_index
from asciipipe.palettes import STANDARD, Palette
from asciipipe.sampling import LUMINANCE_MAX, LUMINANCE_MIN, pack_gray


def _domain_values(count=257):
    return np.linspace(LUMINANCE_MIN, LUMINANCE_MAX, count).round().astype(np.int64)


@pytest.mark.parametrize("length", [1, 2, 10, 13])
def test_domain_boundaries(length):
    assert palette_index(LUMINANCE_MIN, length) == 0
    assert palette_index(LUMINANCE_MAX, length) == length - 1


@pytest.mark.parametrize("length", [2, 10, 13])
def test_monotonic(length):
    indices = [palette_index(int(v), length) for v in _domain_values()]
    assert indices == sorted(indices)


def test_halves_round_up():
    midpoint = (LUMINANCE_MIN + LUMINANCE_MAX) // 2
    assert palette_index(midpoint, 2) == 1


@pytest.mark.parametrize("value", [LUMINANCE_MIN - 1, LUMINANCE_MAX + 1, 2**31 - 1])
def test_out_of_domain(value):
    with pytest.raises(OutOfDomainError):
        palette_index(value, 10)


def test_empty_palette_length():
    with pytest.raises(EmptyPaletteError):
        palette_index(0, 0)


def test_reversed_palette_mirrors_index():
    palette = Palette.from_string("digits", "0123456789")
    rev = palette.reversed()
    n = len(palette)
    values = _domain_values()
    forward = map_luminance(values.reshape(1, -1), palette).rows[0]
    backward = map_luminance(values.reshape(1, -1), rev).rows[0]
    for v, f, b in zip(values, forward, backward):
        index = palette_index(int(v), n)
        assert f == palette.characters[index]
        assert b == palette.characters[n - 1 - index]


def test_grid_matches_scalar_mapping():
    levels = np.arange(256, dtype=np.int32).reshape(16, 16)
    luminance = levels * 0x010101 + LUMINANCE_MIN
    grid = map_luminance(luminance, STANDARD)
    for r in range(16):
        for c in range(16):
            assert grid.rows[r][c] == STANDARD.characters[palette_index(int(luminance[r, c]), len(STANDARD))]


def test_grid_dimensions():
    grid = map_luminance(np.full((3, 5), LUMINANCE_MIN, dtype=np.int32), STANDARD)
    assert grid.height == 3
    assert grid.width == 5
    assert grid.rows == ("#####",) * 3


def test_grid_out_of_domain():
    with pytest.raises(OutOfDomainError):
        map_luminance(np.array([[0, 1]]), STANDARD)


def test_gray_levels_on_two_character_palette():
    palette = Palette.from_string("pair", "# ")
    luminance = np.array([[pack_gray(0), pack_gray(127), pack_gray(128), pack_gray(255)]])
    # 127 * 0x010101 / 2**24 is just under one half, 128 just over.
    assert map_luminance(luminance, palette).rows == ("##  ",)


def test_single_character_palette():
    grid = map_luminance(np.array([[pack_gray(0), pack_gray(200)]]), Palette.from_string("one", "x"))
    assert grid.rows == ("xx",)


def test_effective_palette_polarity():
    assert effective_palette(STANDARD, False) is STANDARD
    assert effective_palette(STANDARD, True).characters == STANDARD.characters[::-1]


def test_to_text():
    grid = CharacterGrid(rows=("ab", "cd"))
    text = grid.to_text(Palette.from_string("pair", "# "))
    assert text == "Palette used: [#,  ]\nab\ncd\n"
