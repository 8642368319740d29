"""Shared fixtures: synthetic pages built with numpy and Pillow."""

import numpy as np
import pytest
from PIL import Image

WHITE = (255, 255, 255, 255)
INK = (60, 60, 60, 255)


def make_page(
    width: int,
    height: int,
    content: tuple[int, int, int, int] | None = None,
    background=WHITE,
    color=INK,
) -> Image.Image:
    """RGBA page filled with background, with an optional (x, y, w, h) block of color."""
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[:, :] = background
    if content is not None:
        x, y, w, h = content
        pixels[y:y + h, x:x + w] = color
    return Image.fromarray(pixels, "RGBA")


def make_pixels(width: int, height: int, fill=WHITE) -> np.ndarray:
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[:, :] = fill
    return pixels


@pytest.fixture
def page():
    """200x100 white page with a 100x60 block of ink at (50, 20)."""
    return make_page(200, 100, content=(50, 20, 100, 60))


@pytest.fixture
def page_file(tmp_path, page):
    path = tmp_path / "page.png"
    page.save(path)
    return path
