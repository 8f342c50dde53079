"""Deterministic palette extraction by iterative clustering."""
import logging

import numpy as np
from scipy.spatial.distance import cdist

from cleave.types import Palette, QuantizationError, MIN_COLORS, MAX_COLORS

logger = logging.getLogger(__name__)

# Fixed to bound latency on large images; not configurable.
PALETTE_ITERATIONS = 5
SAMPLE_STRIDE = 4


def _flat_rgb(pixels: np.ndarray) -> np.ndarray:
    """Flatten an (H, W, C) buffer to (N, 3) RGB, dropping alpha."""
    if pixels.ndim == 3 and pixels.shape[2] >= 3:
        return pixels[..., :3].reshape(-1, 3)
    raise QuantizationError(f"Expected (H, W, 3|4) pixel buffer, got shape {pixels.shape}")


def nearest_centroid(samples: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """
    Index of the closest centroid for every sample.

    Squared Euclidean distance preserves the ordering of the true distance,
    and argmin keeps the first (lowest) index on ties.
    """
    distances = cdist(samples.astype(np.float64), centroids.astype(np.float64), "sqeuclidean")
    return np.argmin(distances, axis=1)


def initial_centroids(pixels: np.ndarray, k: int) -> np.ndarray:
    """
    Seed k centroids from evenly spaced pixels.

    Centroid i is the pixel at flat index i * floor(pixel_count / k), so
    identical input always yields identical seeds.

    Args:
        pixels: Pixel buffer (H, W, 3|4) uint8
        k: Palette size

    Returns:
        (k, 3) uint8 array
    """
    flat = _flat_rgb(pixels)
    step = len(flat) // k
    return flat[np.arange(k) * step].astype(np.uint8)


def extract_palette(pixels: np.ndarray, k: int) -> Palette:
    """
    Derive an ordered palette of exactly k colors from a pixel buffer.

    Runs a fixed number of k-means style iterations over a sparse sample
    (every SAMPLE_STRIDE-th pixel). Centroids are recomputed as the floored
    channel mean of their members; a centroid with no members keeps its
    previous value, so duplicate or unused entries can survive.

    Args:
        pixels: Pixel buffer (H, W, 3|4) uint8. Alpha is ignored.
        k: Palette size in [2, 64]

    Returns:
        (k, 3) uint8 palette in cluster-index order

    Raises:
        ValueError: If k is out of range
        QuantizationError: If the buffer is empty or malformed
    """
    if not MIN_COLORS <= k <= MAX_COLORS:
        raise ValueError(f"k must be in [{MIN_COLORS}, {MAX_COLORS}], got {k}")

    if pixels.size == 0:
        raise QuantizationError("Cannot extract palette from empty image")

    flat = _flat_rgb(pixels)
    centroids = initial_centroids(pixels, k)
    samples = flat[::SAMPLE_STRIDE]

    for iteration in range(PALETTE_ITERATIONS):
        assignment = nearest_centroid(samples, centroids)
        counts = np.bincount(assignment, minlength=k)
        sums = np.stack(
            [np.bincount(assignment, weights=samples[:, ch], minlength=k) for ch in range(3)],
            axis=1,
        )

        filled = counts > 0
        centroids[filled] = np.floor(sums[filled] / counts[filled, None]).astype(np.uint8)

        logger.debug(
            f"Palette iteration {iteration + 1}/{PALETTE_ITERATIONS}: "
            f"{int(np.count_nonzero(~filled))} empty clusters"
        )

    return centroids
