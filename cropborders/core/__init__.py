"""Core logic - data models, downsampling and content scanning."""

from .models import CropBordersError, CropResult, PixelBuffer, PixelBufferError, Rect, ScanBounds, Thresholds
from .downsampler import DEFAULT_DOWNSCALE, downsample, target_max_dimension
from .scanner import BoundingBoxScanner

__all__ = [
    "CropBordersError",
    "CropResult",
    "PixelBuffer",
    "PixelBufferError",
    "Rect",
    "ScanBounds",
    "Thresholds",
    "DEFAULT_DOWNSCALE",
    "downsample",
    "target_max_dimension",
    "BoundingBoxScanner",
]
