"""Vector tracing pipeline and single-image conversion."""
import logging
import time
from pathlib import Path
from typing import List, Optional, Tuple, Union

import cv2
import numpy as np
from PIL import Image

from cleave.classify import classify_pixels, label_to_image
from cleave.contour import trace_contours
from cleave.palette import extract_palette
from cleave.raster import convert_raster, load_image, resize_image, target_size
from cleave.smooth import smooth_contours
from cleave.svg import build_document, render_svg, save_svg
from cleave.types import (
    Contour,
    ConversionSettings,
    ImageSource,
    PathDocument,
    PipelineConfig,
)

logger = logging.getLogger(__name__)


class VectorPipeline:
    """Raster-to-SVG tracer: palette, labels, contours, curves, document."""

    def __init__(self, config: Optional[PipelineConfig] = None):
        """
        Initialize pipeline with configuration.

        Args:
            config: Pipeline configuration. Uses defaults if None.
        """
        self.config = config or PipelineConfig()
        self.debug_stages: List[Tuple[str, np.ndarray]] = []

    def trace_image(self, pixels: np.ndarray, debug: bool = False) -> PathDocument:
        """
        Trace a pixel buffer into a PathDocument.

        Pure function of the pixels and the configured color count; the
        buffer is never modified.

        Args:
            pixels: (H, W, 3|4) uint8 buffer
            debug: If True, collect intermediate stage images

        Returns:
            PathDocument with one layer per color that produced paths
        """
        height, width = pixels.shape[:2]
        self.debug_stages = []

        palette = extract_palette(pixels, self.config.n_colors)
        labels = classify_pixels(pixels, palette)

        if debug:
            self.debug_stages.append(("1_original", np.ascontiguousarray(pixels[..., :3])))
            self.debug_stages.append(("2_quantized", label_to_image(labels, palette)))

        paths = []
        traced: List[Tuple[np.ndarray, List[Contour]]] = []
        for index, color in enumerate(palette):
            contours = trace_contours(labels, index)
            paths.append(smooth_contours(contours))
            logger.debug(f"Color {index}: {len(contours)} contours")
            if debug:
                traced.append((color, contours))

        if debug:
            self.debug_stages.append(("3_contours", draw_contours(traced, width, height)))

        return build_document(width, height, palette, paths)

    def process_image(self, img: Image.Image, scale: float = 1.0, debug: bool = False) -> str:
        """
        Resize a decoded image within the vector bound and trace it to SVG.

        Args:
            img: Decoded image
            scale: Uniform scale factor
            debug: If True, collect intermediate stage images

        Returns:
            SVG string
        """
        size = target_size(img.width, img.height, scale, vector=True)
        resized = resize_image(img.convert('RGBA'), size, high_quality=False)
        pixels = np.asarray(resized)
        logger.info(
            f"Tracing {size[0]}x{size[1]} image with {self.config.n_colors} colors"
        )

        start_time = time.time()
        document = self.trace_image(pixels, debug=debug)
        logger.info(
            f"Traced {len(document.layers)} color layers in {time.time() - start_time:.2f}s"
        )
        return render_svg(document)

    def process(
        self,
        source: ImageSource,
        output_path: Optional[Union[str, Path]] = None,
        scale: float = 1.0,
        debug: bool = False,
    ) -> str:
        """
        Load an image, trace it and optionally save the SVG.

        Args:
            source: Path or encoded bytes of the input image
            output_path: Optional path to save SVG output
            scale: Uniform scale factor
            debug: If True, collect intermediate stage images

        Returns:
            SVG string

        Raises:
            FileNotFoundError: If input file doesn't exist
            DecodeError: If the image cannot be decoded
        """
        svg = self.process_image(load_image(source), scale=scale, debug=debug)
        if output_path:
            save_svg(svg, output_path)
        return svg


def draw_contours(
    traced: List[Tuple[np.ndarray, List[Contour]]],
    width: int,
    height: int,
) -> np.ndarray:
    """Render traced contours as colored polylines for inspection."""
    canvas = np.zeros((height, width, 3), dtype=np.uint8)
    for color, contours in traced:
        line_color = tuple(int(c) for c in color[:3])
        for contour in contours:
            if len(contour) < 2:
                continue
            pts = np.round(np.asarray(contour)).astype(np.int32).reshape(-1, 1, 2)
            cv2.polylines(canvas, [pts], True, line_color, 1)
    return canvas


def save_debug_stages(stages: List[Tuple[str, np.ndarray]], debug_dir: Union[str, Path]) -> None:
    """
    Save debug stage images as PNG files.

    Args:
        stages: (name, image) pairs collected by VectorPipeline
        debug_dir: Directory for the stage images
    """
    debug_dir = Path(debug_dir)
    debug_dir.mkdir(parents=True, exist_ok=True)

    for stage_name, stage_image in stages:
        debug_file = debug_dir / f"{stage_name}.png"
        Image.fromarray(stage_image).save(debug_file)
        logger.info(f"Saved debug stage: {debug_file}")


def convert_image(
    source: ImageSource,
    settings: ConversionSettings,
    debug_dir: Optional[Path] = None,
) -> bytes:
    """
    Convert one image according to the batch settings.

    Vector formats go through the tracer; everything else is resized and
    handed to the raster codec.

    Args:
        source: Path or encoded bytes of the input image
        settings: Conversion settings
        debug_dir: Where to save tracer stages (vector output only)

    Returns:
        Encoded output bytes

    Raises:
        DecodeError: If the source cannot be decoded
        CodecError: If raster encoding fails
    """
    img = load_image(source)

    if not settings.is_vector:
        return convert_raster(img, settings)

    pipeline = VectorPipeline(PipelineConfig(n_colors=settings.color_count))
    svg = pipeline.process_image(img, scale=settings.resize_ratio, debug=debug_dir is not None)
    if debug_dir is not None:
        save_debug_stages(pipeline.debug_stages, debug_dir)
    return svg.encode('utf-8')
