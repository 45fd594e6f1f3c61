import logging

import pytest
from PIL import Image

from asciipipe.cli import default_height, load_font, main, terminal_columns
from asciipipe.render import FONT_SIZE, default_font


@pytest.fixture
def image_path(tmp_path):
    img = Image.new("RGB", (40, 20), (255, 255, 255))
    for x in range(20):
        for y in range(20):
            img.putpixel((x, y), (0, 0, 0))
    path = tmp_path / "half.png"
    img.save(path)
    return path


def test_prints_text(image_path, capsys):
    main([str(image_path), "-W", "4", "-H", "2", "-p", "binary"])
    out = capsys.readouterr().out
    assert out == "Palette used: [0, 1]\n0011\n0011\n"


def test_dark_background_reverses(image_path, capsys):
    main([str(image_path), "-W", "2", "-H", "1", "-p", "binary", "--dark"])
    assert capsys.readouterr().out.splitlines()[1] == "10"


def test_saves_raster(image_path, tmp_path):
    out_path = tmp_path / "out.png"
    main([str(image_path), "-W", "4", "-H", "2", "--page", "120x80", "-o", str(out_path)])
    with Image.open(out_path) as saved:
        assert saved.size == (120, 80)


def test_default_height_keeps_aspect(image_path):
    with Image.open(image_path) as img:
        assert default_height(img, 30) == 10  # 20 / 40 * 30 * (10 / 15)


def test_missing_file(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        main([str(tmp_path / "nope.png")])
    assert exc.value.code == 1
    assert "File not found" in capsys.readouterr().err


def test_unknown_palette(image_path, capsys):
    with pytest.raises(SystemExit) as exc:
        main([str(image_path), "-p", "nope"])
    assert exc.value.code == 2
    assert "Unknown palette" in capsys.readouterr().err


def test_zero_width_rejected(image_path, capsys):
    with pytest.raises(SystemExit) as exc:
        main([str(image_path), "-W", "0", "-H", "3"])
    assert exc.value.code == 2
    assert "width" in capsys.readouterr().err


def test_bad_font_falls_back(tmp_path, caplog):
    with caplog.at_level(logging.WARNING, logger="asciipipe.cli"):
        assert load_font(str(tmp_path / "missing.ttf")) is default_font(FONT_SIZE)
    assert "default font" in caplog.text


def test_font_size_applies_to_default_font():
    small = load_font(None, 10)
    large = load_font(None, 30)
    assert small is default_font(10)
    assert small.getbbox("M")[3] < large.getbbox("M")[3]


def test_font_size_option_without_font(image_path, tmp_path):
    small_path, large_path = tmp_path / "small.png", tmp_path / "large.png"
    for size, path in (("8", small_path), ("30", large_path)):
        main([str(image_path), "-W", "4", "-H", "2", "--page", "300x100", "--font-size", size, "-o", str(path)])
    with Image.open(small_path) as small, Image.open(large_path) as large:
        assert small.tobytes() != large.tobytes()


def test_loads_truetype_font(font_path):
    assert load_font(font_path, 12) is not None


def test_terminal_columns_without_tty(capsys):
    # capsys replaces stdout with a non-tty stream
    assert terminal_columns() == 80
