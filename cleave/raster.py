"""Image decoding, resizing, alpha flattening and raster encoding."""
import io
import logging
import math
from pathlib import Path
from typing import BinaryIO, Tuple, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from cleave.types import CodecError, ConversionSettings, DecodeError

logger = logging.getLogger(__name__)

# Tracer runtime bound; applies to vector output only.
MAX_VECTOR_DIMENSION = 1024

# MIME identifier -> Pillow format name
PIL_FORMATS = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
    "image/avif": "AVIF",
}

# Formats without an alpha channel
OPAQUE_FORMATS = {"image/jpeg"}

LOSSY_FORMATS = {"image/jpeg", "image/webp", "image/avif"}


def load_image(source: Union[str, Path, bytes, BinaryIO]) -> Image.Image:
    """
    Decode an image from a path, raw bytes or a file object.

    EXIF orientation is applied so the pixels match what viewers show.

    Raises:
        FileNotFoundError: If a path does not exist
        DecodeError: If the data cannot be decoded
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Image file not found: {path}")
        fp = path
    elif isinstance(source, bytes):
        fp = io.BytesIO(source)
    else:
        fp = source

    try:
        with Image.open(fp) as img:
            img.load()
            return ImageOps.exif_transpose(img)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
        raise DecodeError(f"Failed to load image: {e}") from e


def target_size(width: int, height: int, scale: float, vector: bool = False) -> Tuple[int, int]:
    """
    Output dimensions for a uniform scale factor.

    For vector output the result is additionally clamped so neither side
    exceeds MAX_VECTOR_DIMENSION, keeping the aspect ratio.
    """
    target_w = max(1, math.floor(width * scale))
    target_h = max(1, math.floor(height * scale))

    if vector and (target_w > MAX_VECTOR_DIMENSION or target_h > MAX_VECTOR_DIMENSION):
        ratio = min(MAX_VECTOR_DIMENSION / target_w, MAX_VECTOR_DIMENSION / target_h)
        target_w = max(1, math.floor(target_w * ratio))
        target_h = max(1, math.floor(target_h * ratio))

    return target_w, target_h


def resize_image(img: Image.Image, size: Tuple[int, int], high_quality: bool = True) -> Image.Image:
    """Resize with Lanczos for raster output, bilinear otherwise."""
    if img.size == size:
        return img
    resample = Image.Resampling.LANCZOS if high_quality else Image.Resampling.BILINEAR
    return img.resize(size, resample=resample)


def has_alpha(img: Image.Image) -> bool:
    return img.mode in ('RGBA', 'LA', 'PA') or (img.mode == 'P' and 'transparency' in img.info)


def flatten_alpha(img: Image.Image, background=(255, 255, 255)) -> Image.Image:
    """Composite an image onto an opaque canvas, returning RGB."""
    if not has_alpha(img):
        return img.convert('RGB')

    rgba = img.convert('RGBA')
    canvas = Image.new('RGB', rgba.size, background)
    canvas.paste(rgba, mask=rgba.split()[3])
    return canvas


def prepare_raster(img: Image.Image, settings: ConversionSettings) -> Image.Image:
    """
    Resize and, for formats without alpha, flatten onto white.

    Other formats keep their transparency; palette and grayscale-alpha
    images are widened to RGBA so encoders accept them.
    """
    size = target_size(img.width, img.height, settings.resize_ratio)
    img = resize_image(img, size, high_quality=True)

    if settings.format in OPAQUE_FORMATS:
        return flatten_alpha(img)
    if has_alpha(img):
        return img.convert('RGBA')
    if img.mode not in ('RGB', 'L'):
        return img.convert('RGB')
    return img


def encode_image(img: Image.Image, mime_type: str, quality: float) -> bytes:
    """
    Compress pixels with Pillow.

    Args:
        img: Prepared image
        mime_type: Target MIME identifier
        quality: Quality scalar in [0.1, 1.0], used by lossy formats

    Returns:
        Encoded bytes

    Raises:
        CodecError: If the format is unsupported or encoding produced nothing
    """
    pil_format = PIL_FORMATS.get(mime_type)
    if pil_format is None:
        raise CodecError(f"No raster codec for {mime_type}")

    params = {}
    if mime_type in LOSSY_FORMATS:
        params['quality'] = int(round(quality * 100))

    buffer = io.BytesIO()
    try:
        img.save(buffer, format=pil_format, **params)
    except (OSError, KeyError, ValueError) as e:
        raise CodecError(f"{pil_format} encoding failed: {e}") from e

    data = buffer.getvalue()
    if not data:
        raise CodecError(f"{pil_format} encoder returned no output")
    return data


def convert_raster(img: Image.Image, settings: ConversionSettings) -> bytes:
    """Resize, flatten if needed, and encode for a raster format."""
    prepared = prepare_raster(img, settings)
    logger.info(
        f"Encoding {img.width}x{img.height} -> {prepared.width}x{prepared.height} "
        f"as {settings.format} (quality {settings.quality})"
    )
    return encode_image(prepared, settings.format, settings.quality)
