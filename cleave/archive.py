"""Output naming and ZIP packaging of converted files."""
import io
import logging
import zipfile
from pathlib import Path
from typing import Mapping, Union

logger = logging.getLogger(__name__)

ARCHIVE_NAME = "cleave_batch_converted.zip"


def format_extension(mime_type: str) -> str:
    """File extension for a MIME identifier ("image/svg+xml" -> "svg")."""
    ext = mime_type.split('/')[-1]
    if ext == 'svg+xml':
        ext = 'svg'
    return ext


def output_filename(original_name: str, mime_type: str) -> str:
    """
    Name of a converted file: <base>_converted.<ext>.

    The base is everything before the first dot of the original file name.
    """
    base = Path(original_name).name.split('.')[0] or 'image'
    return f"{base}_converted.{format_extension(mime_type)}"


def build_archive(files: Mapping[str, bytes]) -> bytes:
    """
    Pack output files into one ZIP archive.

    A repeated name overwrites the earlier entry, so the last one wins.
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w', compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return buffer.getvalue()


def save_archive(files: Mapping[str, bytes], output_path: Union[str, Path]) -> Path:
    output_path = Path(output_path)
    output_path.write_bytes(build_archive(files))
    logger.info(f"Archive with {len(files)} files saved to {output_path}")
    return output_path


def format_bytes(num_bytes: int, decimals: int = 2) -> str:
    """Human-readable size: 0 Bytes, 512 Bytes, 1.5 KB, 2 MB."""
    if not num_bytes:
        return '0 Bytes'
    k = 1024
    decimals = max(0, decimals)
    sizes = ['Bytes', 'KB', 'MB', 'GB']
    i = 0
    value = float(num_bytes)
    while value >= k and i < len(sizes) - 1:
        value /= k
        i += 1
    formatted = f"{value:.{decimals}f}"
    if '.' in formatted:
        formatted = formatted.rstrip('0').rstrip('.')
    return f"{formatted} {sizes[i]}"
