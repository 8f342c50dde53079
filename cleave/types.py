"""Core types, settings and exceptions for cleave."""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np

# Type aliases
Color = Tuple[int, int, int]
Palette = np.ndarray  # (k, 3) uint8, row order is paint order
LabelMap = np.ndarray  # (H, W) palette indices
Point = Tuple[float, float]
Contour = List[Point]
ImageSource = Union[str, Path, bytes]

SVG_MIME = "image/svg+xml"

SUPPORTED_FORMATS = (
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/avif",
    SVG_MIME,
)

MIN_COLORS = 2
MAX_COLORS = 64


class ItemStatus(Enum):
    """Lifecycle of a queued conversion."""
    IDLE = "IDLE"
    PROCESSING = "PROCESSING"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"


@dataclass
class ConversionSettings:
    """Settings shared by every item of a batch."""
    format: str = "image/jpeg"
    quality: float = 0.7  # 0.1 to 1.0
    resize_ratio: float = 1.0  # 0.1 to 1.0
    use_ai_analysis: bool = False
    color_count: int = 16  # 2 to 64

    def __post_init__(self):
        if self.format not in SUPPORTED_FORMATS:
            raise ValueError(
                f"Unsupported format {self.format!r}, expected one of {', '.join(SUPPORTED_FORMATS)}"
            )
        if not 0.1 <= self.quality <= 1.0:
            raise ValueError(f"quality must be in [0.1, 1.0], got {self.quality}")
        if not 0.1 <= self.resize_ratio <= 1.0:
            raise ValueError(f"resize_ratio must be in [0.1, 1.0], got {self.resize_ratio}")
        if not MIN_COLORS <= self.color_count <= MAX_COLORS:
            raise ValueError(
                f"color_count must be in [{MIN_COLORS}, {MAX_COLORS}], got {self.color_count}"
            )

    @property
    def is_vector(self) -> bool:
        return self.format == SVG_MIME


@dataclass
class PipelineConfig:
    """Configuration for the vector tracing pipeline."""
    n_colors: int = 16

    def __post_init__(self):
        if not MIN_COLORS <= self.n_colors <= MAX_COLORS:
            raise ValueError(
                f"n_colors must be in [{MIN_COLORS}, {MAX_COLORS}], got {self.n_colors}"
            )


@dataclass
class ColorLayer:
    """All smoothed contours of one palette color."""
    index: int
    color: Color
    path_data: str


@dataclass
class PathDocument:
    """Semantic content of a vector output: canvas, background and layers."""
    width: int
    height: int
    background: Color
    layers: List[ColorLayer] = field(default_factory=list)


@dataclass
class Annotation:
    """Short description and keyword tags for an image."""
    description: str = ""
    tags: List[str] = field(default_factory=list)


@dataclass
class ProcessedResult:
    """Output of one successful conversion."""
    data: bytes
    mime_type: str
    description: str = ""
    tags: List[str] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class QueueItem:
    """One image waiting in (or done with) a batch."""
    id: str
    name: str
    source: ImageSource
    original_size: int = 0
    status: ItemStatus = ItemStatus.IDLE
    result: Optional[ProcessedResult] = None
    error: Optional[str] = None

    def read_bytes(self) -> bytes:
        if isinstance(self.source, bytes):
            return self.source
        return Path(self.source).read_bytes()


class ConversionError(Exception):
    """Base exception for conversion errors."""
    pass


class DecodeError(ConversionError):
    """Source image could not be loaded or decoded."""
    pass


class CodecError(ConversionError):
    """Raster encoder produced no output."""
    pass


class QuantizationError(ConversionError):
    """Exception raised during palette extraction."""
    pass


class AnnotationError(ConversionError):
    """Annotation service failed or returned an unusable response."""
    pass
