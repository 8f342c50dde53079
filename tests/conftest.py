"""Pytest configuration and fixtures."""
import io

import numpy as np
import pytest
from PIL import Image

RED = (220, 30, 30)
BLUE = (20, 40, 200)
WHITE = (255, 255, 255)


def encode_png(pixels: np.ndarray) -> bytes:
    """Encode a uint8 array as PNG bytes."""
    buffer = io.BytesIO()
    Image.fromarray(pixels).save(buffer, format="PNG")
    return buffer.getvalue()


def squares_image() -> np.ndarray:
    """
    White 24x25 canvas with a red square and a blue square inside it.

    With k=3 the palette seeds are pixels 0, 200 and 400, i.e. (0, 0),
    (8, 8) and (16, 16): one per color.
    """
    image = np.full((25, 24, 3), WHITE, dtype=np.uint8)
    image[4:20, 4:20] = RED
    image[13:18, 13:18] = BLUE
    return image


@pytest.fixture
def squares():
    return squares_image()


@pytest.fixture
def squares_png(squares):
    return encode_png(squares)


@pytest.fixture
def squares_file(tmp_path, squares_png):
    path = tmp_path / "squares.png"
    path.write_bytes(squares_png)
    return path


@pytest.fixture
def transparent_png():
    """RGBA image: opaque red disc-ish block on a fully transparent field."""
    rgba = np.zeros((16, 16, 4), dtype=np.uint8)
    rgba[4:12, 4:12] = (200, 0, 0, 255)
    return encode_png(rgba)


@pytest.fixture
def noise():
    rng = np.random.default_rng(7)
    return rng.integers(0, 256, (20, 20, 3), dtype=np.uint8)
