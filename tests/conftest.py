import os
import shutil
import subprocess

import numpy as np
import pytest

from asciipipe.buffer import PixelBuffer

_FONT_CANDIDATES = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationMono-Regular.ttf",
    "/usr/share/fonts/TTF/DejaVuSansMono.ttf",
    "/usr/share/fonts/dejavu-sans-mono-fonts/DejaVuSansMono.ttf",
]


def _find_monospace_font():
    """Find a monospace font on the system."""
    for path in _FONT_CANDIDATES:
        if os.path.exists(path):
            return path
    if shutil.which("fc-match"):
        out = subprocess.run(["fc-match", "-f", "%{file}", "monospace"], capture_output=True, text=True)
        if out.returncode == 0 and out.stdout.strip():
            return out.stdout.strip()
    return None


FONT_PATH = _find_monospace_font()


@pytest.fixture
def font_path():
    if FONT_PATH is None:
        pytest.skip("No monospace font found on system")
    return FONT_PATH


@pytest.fixture
def four_pixels():
    """2x2 image: white, black on the top row; red, green below."""
    return PixelBuffer.from_array(
        np.array(
            [
                [[255, 255, 255], [0, 0, 0]],
                [[255, 0, 0], [0, 255, 0]],
            ],
            dtype=np.uint8,
        )
    )
