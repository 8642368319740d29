"""Reduced-resolution copies of source images for border scanning."""

import logging
import math

from PIL import Image

from .models import to_8bit

logger = logging.getLogger(__name__)

# Default linear scale for the scan thumbnail (16% of the pixel count)
DEFAULT_DOWNSCALE = 0.4


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (for non-negative input)."""
    return int(math.floor(value + 0.5))


def target_max_dimension(width: int, height: int, scale: float) -> int:
    """Longest side of the thumbnail: round(max(width, height) * scale)."""
    return max(1, round_half_up(max(width, height) * scale))


def thumbnail_size(width: int, height: int, scale: float) -> tuple[int, int]:
    """Compute the thumbnail size, keeping the aspect ratio.

    The longest side gets the target dimension; the other side is scaled
    by the same ratio and kept at least one pixel.
    """
    target = target_max_dimension(width, height, scale)
    if width >= height:
        return target, max(1, round_half_up(height * target / width))
    return max(1, round_half_up(width * target / height)), target


def downsample(img: Image.Image, scale: float = DEFAULT_DOWNSCALE) -> Image.Image:
    """Produce a LANCZOS-resampled thumbnail of img.

    Args:
        img: PIL Image with positive width and height
        scale: Linear scale factor in (0, 1]

    Returns:
        A new image whose longest side is round(max(w, h) * scale), carrying
        img.info (orientation and other metadata). If resampling fails, img
        itself is returned; callers compare sizes to detect this.
    """
    if not 0 < scale <= 1:
        raise ValueError(f"scale must be in (0, 1], got {scale}")

    width, height = img.size
    new_size = thumbnail_size(width, height, scale)
    if new_size == (width, height):
        return img

    try:
        source = to_8bit(img)
        # Pillow cannot resample palette or 1-bit images with LANCZOS
        if source.mode not in ("RGB", "RGBA", "L", "LA", "RGBa", "La"):
            source = source.convert("RGBA")
        small = source.resize(new_size, Image.Resampling.LANCZOS)
    except (OSError, ValueError, MemoryError) as e:
        logger.warning("Could not downsample %dx%d image (%s), scanning full size", width, height, e)
        return img

    small.info = dict(img.info)
    logger.debug("Downsampled %dx%d -> %dx%d (scale %.2f)", width, height, *small.size, scale)
    return small
