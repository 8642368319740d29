"""Data models for border cropping: rectangles, pixel buffers, thresholds."""

from dataclasses import dataclass
from typing import Optional

import numpy as np
from PIL import Image


CANONICAL_ORDER = "RGBA"


class CropBordersError(Exception):
    """Base class for errors raised by this package."""
    pass


class PixelBufferError(CropBordersError, ValueError):
    """Raised when a raw pixel buffer cannot be interpreted."""
    pass


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle with a top-left origin.

    A rect with zero or negative width or height is empty and means
    "no content found".
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def scaled(self, factor: float) -> "Rect":
        """Multiply every field by factor (e.g. 1 / scale to reach source space)."""
        return Rect(
            x=self.x * factor,
            y=self.y * factor,
            width=self.width * factor,
            height=self.height * factor,
        )

    def to_dict(self) -> dict:
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Rect":
        return cls(
            x=data["x"],
            y=data["y"],
            width=data["width"],
            height=data["height"],
        )


@dataclass
class ScanBounds:
    """Running min/max of content pixel coordinates.

    Starts at the sentinel (width, height, 0, 0); merging two accumulators
    is order independent, so row bands can be scanned separately.
    """

    low_x: int
    low_y: int
    high_x: int = 0
    high_y: int = 0
    hits: int = 0  # content pixels seen

    @classmethod
    def initial(cls, width: int, height: int) -> "ScanBounds":
        return cls(low_x=width, low_y=height)

    @property
    def found(self) -> bool:
        return self.hits > 0 and self.low_x <= self.high_x and self.low_y <= self.high_y

    def include(self, x: int, y: int) -> None:
        self.low_x = min(self.low_x, x)
        self.high_x = max(self.high_x, x)
        self.low_y = min(self.low_y, y)
        self.high_y = max(self.high_y, y)
        self.hits += 1

    def merge(self, other: "ScanBounds") -> "ScanBounds":
        return ScanBounds(
            low_x=min(self.low_x, other.low_x),
            low_y=min(self.low_y, other.low_y),
            high_x=max(self.high_x, other.high_x),
            high_y=max(self.high_y, other.high_y),
            hits=self.hits + other.hits,
        )

    def to_rect(self) -> Rect:
        return Rect(
            x=self.low_x,
            y=self.low_y,
            width=self.high_x - self.low_x,
            height=self.high_y - self.low_y,
        )


@dataclass(frozen=True)
class Thresholds:
    """Channel cut-offs for background pixels (both comparisons are strict)."""

    white: int = 0xAA
    black: int = 0x05

    def __post_init__(self):
        for name in ("white", "black"):
            value = getattr(self, name)
            if not 0 <= value <= 255:
                raise ValueError(f"{name} threshold must be in [0, 255], got {value}")


class PixelBuffer:
    """Read-only RGBA grid, 8 bits per channel, premultiplied alpha.

    Pixels are stored as a (height, width, 4) uint8 array in R, G, B, A
    order whatever order the source bytes used.
    """

    def __init__(self, pixels: np.ndarray):
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise PixelBufferError(f"Expected a (height, width, 4) array, got shape {pixels.shape}")
        if pixels.dtype != np.uint8:
            raise PixelBufferError(f"Expected uint8 channels, got {pixels.dtype}")
        # A view, so locking it leaves the caller's array writeable
        self._pixels = np.ascontiguousarray(pixels).view()
        self._pixels.flags.writeable = False

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def pixels(self) -> np.ndarray:
        return self._pixels

    def __len__(self) -> int:
        return self._pixels.size

    def pixel(self, x: int, y: int) -> tuple[int, int, int, int]:
        """Return (r, g, b, a) at (x, y)."""
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height} buffer")
        r, g, b, a = self._pixels[y, x]
        return int(r), int(g), int(b), int(a)

    def rows(self, start: int, stop: int) -> np.ndarray:
        return self._pixels[start:stop]

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        width: int,
        height: int,
        channel_order: str = "ARGB",
        premultiplied: bool = True,
    ) -> "PixelBuffer":
        """
        Build a buffer from raw interleaved bytes.

        Args:
            data: width * height * 4 bytes, row-major, top-left origin
            width: Pixels per row
            height: Number of rows
            channel_order: Byte order of each pixel, any arrangement of A, R, G, B
            premultiplied: False to premultiply straight-alpha input here

        Returns:
            PixelBuffer in canonical RGBA order
        """
        if width <= 0 or height <= 0:
            raise PixelBufferError(f"Buffer dimensions must be positive, got {width}x{height}")

        expected = width * height * 4
        if len(data) != expected:
            raise PixelBufferError(
                f"Buffer holds {len(data)} bytes, expected {expected} for {width}x{height}"
            )

        order = channel_order.upper()
        if sorted(order) != sorted(CANONICAL_ORDER):
            raise PixelBufferError(f"Unsupported channel order: {channel_order}")

        raw = np.frombuffer(data, dtype=np.uint8).reshape(height, width, 4)
        # Index of each canonical channel within the source layout
        permutation = [order.index(channel) for channel in CANONICAL_ORDER]
        pixels = raw[:, :, permutation]

        if not premultiplied:
            pixels = premultiply(pixels)
        return cls(pixels)

    @classmethod
    def from_image(cls, image: Image.Image) -> "PixelBuffer":
        """Rasterize a PIL image into a premultiplied RGBA buffer."""
        if image.width <= 0 or image.height <= 0:
            raise PixelBufferError(f"Image has no pixels ({image.width}x{image.height})")
        image = to_8bit(image)
        rgba = image if image.mode == "RGBA" else image.convert("RGBA")
        return cls(premultiply(np.asarray(rgba, dtype=np.uint8)))


WIDE_MODES = ("I;16", "I;16L", "I;16B", "I;16N", "I")


def to_8bit(image: Image.Image) -> Image.Image:
    """Map 16-bit grayscale images onto 8-bit L by dropping the low byte.

    Pillow's own conversion clips wide samples at 255 instead of scaling
    them, which would turn every non-black pixel white. Other modes are
    returned unchanged.
    """
    if image.mode not in WIDE_MODES:
        return image
    samples = np.asarray(image).astype(np.uint32)
    # 2-D uint8 arrays come back as mode L
    narrow = Image.fromarray((np.clip(samples, 0, 0xFFFF) >> 8).astype(np.uint8))
    narrow.info = dict(image.info)
    return narrow


def premultiply(pixels: np.ndarray) -> np.ndarray:
    """Scale RGB by alpha, rounding to nearest, for an (..., 4) RGBA array."""
    alpha = pixels[..., 3:4].astype(np.uint16)
    color = (pixels[..., :3].astype(np.uint16) * alpha + 127) // 255
    return np.concatenate([color.astype(np.uint8), pixels[..., 3:4]], axis=-1)


@dataclass
class CropResult:
    """Outcome of border detection on one image."""

    image: Image.Image
    cropped: bool
    scan_rect: Optional[Rect] = None  # downsampled space
    source_rect: Optional[Rect] = None  # source space, before clamping
    box: Optional[tuple[int, int, int, int]] = None  # (left, top, right, bottom) applied to the source
    reason: str = ""

    def to_dict(self) -> dict:
        if self.box is not None:
            left, top, right, bottom = self.box
            bounds = {"x": left, "y": top, "w": right - left, "h": bottom - top}
        else:
            bounds = {"x": 0, "y": 0, "w": self.image.width, "h": self.image.height}
        return {**bounds, "cropped": self.cropped, "reason": self.reason}
