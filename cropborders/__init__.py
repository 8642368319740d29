"""Crop Borders - trim uniform margins off page images.

Package structure:
    cropborders/
    ├── cli.py              # Command-line interface
    ├── config.py           # Thresholds and scale (YAML / environment)
    ├── cropper.py          # Downsample -> scan -> crop pipeline
    └── core/               # Image-independent building blocks
        ├── models.py       # Rect, ScanBounds, PixelBuffer, Thresholds
        ├── downsampler.py  # Scan thumbnails
        └── scanner.py      # Content bounding box
"""

from .core.models import (
    CropBordersError,
    CropResult,
    PixelBuffer,
    PixelBufferError,
    Rect,
    ScanBounds,
    Thresholds,
)
from .core.downsampler import DEFAULT_DOWNSCALE, downsample
from .core.scanner import BoundingBoxScanner
from .config import CropConfig, CropConfigError
from .cropper import CropBordersProcessor, crop_borders

__all__ = [
    # Core
    "CropBordersError",
    "CropResult",
    "PixelBuffer",
    "PixelBufferError",
    "Rect",
    "ScanBounds",
    "Thresholds",
    "DEFAULT_DOWNSCALE",
    "downsample",
    "BoundingBoxScanner",
    # Pipeline
    "CropConfig",
    "CropConfigError",
    "CropBordersProcessor",
    "crop_borders",
]
