"""SVG composition for layered color paths."""
import logging
from pathlib import Path
from typing import Sequence, Union

import numpy as np

from cleave.types import Color, ColorLayer, Palette, PathDocument

logger = logging.getLogger(__name__)

SVG_NAMESPACE = "http://www.w3.org/2000/svg"


def color_to_hex(color: Union[Color, np.ndarray]) -> str:
    """
    Format an RGB color as a lowercase #rrggbb string.

    Args:
        color: (R, G, B) with values 0-255; extra channels are ignored

    Returns:
        Hex color string
    """
    r, g, b = (int(c) for c in tuple(color)[:3])
    return f"#{r:02x}{g:02x}{b:02x}"


def build_document(
    width: int,
    height: int,
    palette: Palette,
    paths: Sequence[str],
) -> PathDocument:
    """
    Assemble the vector document for a traced image.

    Palette index 0 is the background. Layers keep ascending palette order,
    so later colors paint over earlier ones; colors with no surviving path
    data are left out.

    Args:
        width: Canvas width
        height: Canvas height
        palette: (k, 3) palette
        paths: Path data per palette index (same length as palette)

    Returns:
        PathDocument
    """
    if len(paths) != len(palette):
        raise ValueError(f"Expected {len(palette)} path strings, got {len(paths)}")

    background = tuple(int(c) for c in palette[0][:3])
    layers = []
    for index, (color, path_data) in enumerate(zip(palette, paths)):
        if not path_data:
            continue
        layers.append(ColorLayer(index=index, color=tuple(int(c) for c in color[:3]), path_data=path_data))

    return PathDocument(width=width, height=height, background=background, layers=layers)


def render_svg(document: PathDocument) -> str:
    """Serialize a PathDocument to SVG markup."""
    parts = [
        f'<svg xmlns="{SVG_NAMESPACE}" viewBox="0 0 {document.width} {document.height}">',
        f'<rect width="100%" height="100%" fill="{color_to_hex(document.background)}"/>',
    ]
    for layer in document.layers:
        parts.append(f'<path d="{layer.path_data}" fill="{color_to_hex(layer.color)}"/>')
    parts.append('</svg>')
    return ''.join(parts)


def compose_svg(width: int, height: int, palette: Palette, paths: Sequence[str]) -> str:
    """Build and serialize the document in one call."""
    return render_svg(build_document(width, height, palette, paths))


def save_svg(svg_string: str, output_path: Union[str, Path]) -> None:
    """
    Save SVG string to file.

    Args:
        svg_string: SVG content
        output_path: Output file path
    """
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(svg_string)
    logger.info(f"SVG saved to {output_path}")
