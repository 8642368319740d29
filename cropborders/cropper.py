"""Border cropping pipeline: downsample, scan, rescale, crop.

Every stage either produces a value or gives up; giving up at any stage
means the original image is returned untouched.
"""

import logging
import math
from typing import Optional

from PIL import Image

from .config import CropConfig
from .core.downsampler import downsample
from .core.models import CropResult, PixelBuffer, PixelBufferError, Rect
from .core.scanner import BoundingBoxScanner

logger = logging.getLogger(__name__)

Box = tuple[int, int, int, int]


def effective_scale(source: Image.Image, thumbnail: Image.Image) -> float:
    """Scale actually achieved by the downsampler (1.0 when it failed open)."""
    return max(thumbnail.size) / max(source.size)


def source_box(rect: Rect, scale: float, width: int, height: int) -> Optional[Box]:
    """
    Map a scan rect to a (left, top, right, bottom) crop box in source space.

    The rect's far edge is the last content pixel, so the box extends one
    thumbnail pixel past it. The result is clamped to the source bounds.

    Returns:
        The clamped box, or None if nothing of it lies inside the image
    """
    left = math.floor(rect.x / scale)
    top = math.floor(rect.y / scale)
    right = math.ceil((rect.x + rect.width + 1) / scale)
    bottom = math.ceil((rect.y + rect.height + 1) / scale)

    left = max(0, min(left, width))
    top = max(0, min(top, height))
    right = max(left, min(right, width))
    bottom = max(top, min(bottom, height))

    if right - left <= 0 or bottom - top <= 0:
        return None
    return left, top, right, bottom


class CropBordersProcessor:
    """Crops uniform transparent, near-white or near-black margins off images.

    Usable as an image pipeline step: call it, or its process() method,
    with a PIL image and get a PIL image back. It never raises for image
    content; anything that prevents a crop yields the input image.
    """

    def __init__(self, config: Optional[CropConfig] = None):
        self.config = config or CropConfig()
        self.scanner = BoundingBoxScanner(self.config.thresholds, workers=self.config.workers)

    @property
    def identifier(self) -> str:
        """Stable key for caching processed images."""
        return (
            "cropborders.cropBorders"
            f"?white={self.config.white_threshold}"
            f"&black={self.config.black_threshold}"
            f"&downscale={self.config.downscale}"
        )

    def _buffer(self, thumbnail: Image.Image) -> Optional[PixelBuffer]:
        try:
            return PixelBuffer.from_image(thumbnail)
        except (PixelBufferError, OSError, ValueError, MemoryError) as e:
            logger.warning("No pixel data for %dx%d thumbnail: %s", *thumbnail.size, e)
            return None

    def _scan(self, buffer: PixelBuffer, cancel=None) -> Optional[Rect]:
        rect = self.scanner.scan(buffer, cancel)
        if rect.is_empty:
            logger.debug("Empty content box %s, leaving image uncropped", rect)
            return None
        return rect

    def detect(self, image: Image.Image, cancel=None) -> CropResult:
        """
        Find the crop box for image without cropping it.

        Args:
            image: Decoded PIL image
            cancel: Optional threading.Event that aborts the scan

        Returns:
            CropResult whose box is None when no crop applies
        """
        if image.width <= 0 or image.height <= 0:
            return CropResult(image=image, cropped=False, reason="image has no pixels")

        # Falls back to the full-size image; effective_scale() then reads 1.0
        thumbnail = downsample(image, self.config.downscale)

        buffer = self._buffer(thumbnail)
        if buffer is None:
            return CropResult(image=image, cropped=False, reason="no pixel data")

        rect = self._scan(buffer, cancel)
        if rect is None:
            return CropResult(image=image, cropped=False, reason="no content found")

        scale = effective_scale(image, thumbnail)
        source_rect = rect.scaled(1 / scale)
        box = source_box(rect, scale, image.width, image.height)
        if box is None:
            return CropResult(
                image=image,
                cropped=False,
                scan_rect=rect,
                source_rect=source_rect,
                reason="crop box outside image",
            )

        cropped = box != (0, 0, image.width, image.height)
        return CropResult(
            image=image,
            cropped=cropped,
            scan_rect=rect,
            source_rect=source_rect,
            box=box,
            reason="" if cropped else "content fills image",
        )

    def crop_borders(self, image: Image.Image, cancel=None) -> Image.Image:
        """Return image cropped to its content, or image itself if no crop applies."""
        try:
            result = self.detect(image, cancel)
            if result.box is None or not result.cropped:
                return image
            cropped = image.crop(result.box)
            cropped.info = dict(image.info)
        except Exception:
            logger.exception("Border crop failed, keeping original %dx%d image", image.width, image.height)
            return image

        logger.debug("Cropped %dx%d -> %dx%d at box %s", image.width, image.height, *cropped.size, result.box)
        return cropped

    def process(self, image: Image.Image) -> Image.Image:
        return self.crop_borders(image)

    def __call__(self, image: Image.Image) -> Image.Image:
        return self.crop_borders(image)


def crop_borders(image: Image.Image, config: Optional[CropConfig] = None) -> Image.Image:
    """Crop uniform borders off image with the given (or default) configuration."""
    return CropBordersProcessor(config).crop_borders(image)
