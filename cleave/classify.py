"""Nearest-palette classification of every pixel."""
import numpy as np

from cleave.palette import nearest_centroid
from cleave.types import LabelMap, Palette

# Pixels per distance-matrix chunk
CHUNK_PIXELS = 1 << 16


def classify_pixels(pixels: np.ndarray, palette: Palette) -> LabelMap:
    """
    Map every pixel to the index of its nearest palette color.

    Uses the full Euclidean RGB distance on every pixel (no sampling); ties
    go to the lowest palette index.

    Args:
        pixels: Pixel buffer (H, W, 3|4) uint8. Alpha is ignored.
        palette: (k, 3) palette

    Returns:
        (H, W) label map with values in [0, k)
    """
    h, w = pixels.shape[:2]
    flat = pixels[..., :3].reshape(-1, 3)
    dtype = np.uint8 if len(palette) <= 256 else np.int32
    labels = np.empty(len(flat), dtype=dtype)

    for start in range(0, len(flat), CHUNK_PIXELS):
        stop = start + CHUNK_PIXELS
        labels[start:stop] = nearest_centroid(flat[start:stop], palette)

    return labels.reshape(h, w)


def label_to_image(labels: LabelMap, palette: Palette) -> np.ndarray:
    """Paint a label map with its palette colors."""
    return np.asarray(palette, dtype=np.uint8)[labels]
