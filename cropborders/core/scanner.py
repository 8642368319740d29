"""Content bounding box detection over RGBA pixel buffers."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import numpy as np

from .models import PixelBuffer, Rect, ScanBounds, Thresholds

logger = logging.getLogger(__name__)

# Rows classified per step; cancellation is checked between bands
BAND_ROWS = 256


class BoundingBoxScanner:
    """Finds the smallest rectangle enclosing every content pixel.

    A pixel is background when it is fully transparent, or when all of
    R, G, B are above the white threshold, or all are below the black
    threshold. Everything else is content.
    """

    def __init__(self, thresholds: Optional[Thresholds] = None, workers: int = 1):
        self.thresholds = thresholds or Thresholds()
        self.workers = max(1, workers)

    def is_background(self, r: int, g: int, b: int, a: int) -> bool:
        """Classify a single premultiplied pixel."""
        if a == 0:
            return True
        white = self.thresholds.white
        if r > white and g > white and b > white:
            return True
        black = self.thresholds.black
        return r < black and g < black and b < black

    def classify(self, pixels: np.ndarray) -> np.ndarray:
        """Boolean content mask for an (rows, cols, 4) RGBA array."""
        rgb = pixels[..., :3]
        transparent = pixels[..., 3] == 0
        near_white = (rgb > self.thresholds.white).all(axis=-1)
        near_black = (rgb < self.thresholds.black).all(axis=-1)
        return ~(transparent | near_white | near_black)

    def _scan_band(self, buffer: PixelBuffer, start: int, stop: int) -> ScanBounds:
        content = self.classify(buffer.rows(start, stop))
        rows = np.flatnonzero(content.any(axis=1))
        if rows.size == 0:
            return ScanBounds.initial(buffer.width, buffer.height)
        cols = np.flatnonzero(content.any(axis=0))
        return ScanBounds(
            low_x=int(cols[0]),
            low_y=start + int(rows[0]),
            high_x=int(cols[-1]),
            high_y=start + int(rows[-1]),
            hits=int(np.count_nonzero(content)),
        )

    def scan_bounds(
        self,
        buffer: PixelBuffer,
        cancel: Optional[threading.Event] = None,
    ) -> ScanBounds:
        """
        Reduce the buffer to the min/max coordinates of its content pixels.

        Args:
            buffer: Pixels to scan (not modified)
            cancel: Optional event; once set, scanning stops and the
                sentinel (nothing found) is returned

        Returns:
            ScanBounds, still at the sentinel if no content pixel exists
        """
        bands = [
            (start, min(start + BAND_ROWS, buffer.height))
            for start in range(0, buffer.height, BAND_ROWS)
        ]
        bounds = ScanBounds.initial(buffer.width, buffer.height)

        if self.workers == 1 or len(bands) == 1:
            for start, stop in bands:
                if cancel is not None and cancel.is_set():
                    logger.debug("Scan cancelled at row %d", start)
                    return ScanBounds.initial(buffer.width, buffer.height)
                bounds = bounds.merge(self._scan_band(buffer, start, stop))
            return bounds

        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = [
                executor.submit(self._scan_band, buffer, start, stop)
                for start, stop in bands
            ]
            for future in futures:
                if cancel is not None and cancel.is_set():
                    for pending in futures:
                        pending.cancel()
                    logger.debug("Scan cancelled with %d worker(s)", self.workers)
                    return ScanBounds.initial(buffer.width, buffer.height)
                bounds = bounds.merge(future.result())
        return bounds

    def scan(self, buffer: PixelBuffer, cancel: Optional[threading.Event] = None) -> Rect:
        """Bounding rect of content pixels in the buffer's own coordinates.

        Width and height are high - low, so a lone content pixel gives a
        zero-size rect. With no content the sentinel yields a negative size.
        """
        bounds = self.scan_bounds(buffer, cancel)
        rect = bounds.to_rect()
        logger.debug(
            "Scanned %dx%d buffer: %d content pixel(s), rect %s",
            buffer.width, buffer.height, bounds.hits, rect,
        )
        return rect
