"""cleave: batch image conversion with a raster-to-SVG tracer.

Images are either resized and re-encoded as raster output, or traced into
layered SVG: palette extraction, pixel classification, marching-squares
contour tracing, and corner-cutting curve smoothing.
"""
from cleave.types import (
    Annotation,
    CodecError,
    ConversionError,
    ConversionSettings,
    DecodeError,
    ItemStatus,
    PathDocument,
    PipelineConfig,
    QueueItem,
)

__version__ = "0.1.0"
__all__ = [
    "Annotation",
    "CodecError",
    "ConversionError",
    "ConversionSettings",
    "DecodeError",
    "ItemStatus",
    "PathDocument",
    "PipelineConfig",
    "QueueItem",
]
