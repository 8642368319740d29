"""Tests for content bounding box detection."""

import threading

import numpy as np
import pytest

from cropborders.core.models import PixelBuffer, Rect, Thresholds
from cropborders.core.scanner import BAND_ROWS, BoundingBoxScanner

from conftest import WHITE, make_pixels


@pytest.fixture
def scanner():
    return BoundingBoxScanner()


def test_lone_black_pixel_is_background(scanner):
    pixels = make_pixels(10, 10)
    pixels[4, 4] = (0, 0, 0, 255)
    rect = scanner.scan(PixelBuffer(pixels))
    assert rect.is_empty
    assert rect == Rect(10, 10, -10, -10)


def test_lone_gray_pixel_gives_single_pixel_box(scanner):
    pixels = make_pixels(10, 10)
    pixels[4, 4] = (128, 128, 128, 255)
    assert scanner.scan(PixelBuffer(pixels)) == Rect(4, 4, 0, 0)


@pytest.mark.parametrize("value", [170, 5])
def test_threshold_values_are_content(scanner, value):
    pixels = make_pixels(10, 10)
    pixels[2, 7] = (value, value, value, 255)
    assert scanner.scan(PixelBuffer(pixels)) == Rect(7, 2, 0, 0)


@pytest.mark.parametrize("color", [(171, 171, 171, 255), (4, 4, 4, 255), (0, 0, 0, 0)])
def test_beyond_threshold_values_are_background(scanner, color):
    pixels = make_pixels(10, 10)
    pixels[2, 7] = color
    assert scanner.scan(PixelBuffer(pixels)).is_empty


def test_one_dark_channel_makes_content(scanner):
    pixels = make_pixels(10, 10)
    pixels[3, 3] = (255, 255, 100, 255)
    assert scanner.scan(PixelBuffer(pixels)) == Rect(3, 3, 0, 0)


def test_transparent_pixels_ignore_color(scanner):
    pixels = make_pixels(8, 8, fill=(200, 30, 30, 0))
    assert scanner.scan(PixelBuffer(pixels)).is_empty


def test_all_white_is_empty(scanner):
    assert scanner.scan(PixelBuffer(make_pixels(12, 7))).is_empty


def test_full_content_spans_buffer(scanner):
    pixels = make_pixels(12, 7, fill=(100, 100, 100, 255))
    assert scanner.scan(PixelBuffer(pixels)) == Rect(0, 0, 11, 6)


def test_content_touching_every_edge(scanner):
    pixels = make_pixels(9, 6)
    pixels[0, 4] = (50, 50, 50, 255)
    pixels[5, 4] = (50, 50, 50, 255)
    pixels[3, 0] = (50, 50, 50, 255)
    pixels[3, 8] = (50, 50, 50, 255)
    assert scanner.scan(PixelBuffer(pixels)) == Rect(0, 0, 8, 5)


def test_single_pixel_buffer(scanner):
    assert scanner.scan(PixelBuffer(make_pixels(1, 1, fill=(90, 90, 90, 255)))) == Rect(0, 0, 0, 0)
    assert scanner.scan(PixelBuffer(make_pixels(1, 1))).is_empty


def test_centered_block_matches_within_one_pixel(scanner):
    x0, y0, w0, h0 = 20, 30, 40, 25
    pixels = make_pixels(100, 80)
    pixels[y0:y0 + h0, x0:x0 + w0] = (60, 60, 60, 255)
    rect = scanner.scan(PixelBuffer(pixels))
    assert (rect.x, rect.y) == (x0, y0)
    assert abs(rect.width - w0) <= 1
    assert abs(rect.height - h0) <= 1


def test_bounds_are_ordered_when_content_exists(scanner):
    rng = np.random.default_rng(7)
    pixels = rng.integers(0, 256, size=(40, 30, 4), dtype=np.uint8)
    bounds = scanner.scan_bounds(PixelBuffer(pixels))
    assert bounds.found
    assert bounds.low_x <= bounds.high_x
    assert bounds.low_y <= bounds.high_y


def test_custom_thresholds():
    pixels = make_pixels(5, 5, fill=(200, 200, 200, 255))
    pixels[1, 1] = (230, 230, 230, 255)
    strict = BoundingBoxScanner(Thresholds(white=220, black=5))
    assert strict.scan(PixelBuffer(pixels)) == Rect(0, 0, 4, 4)
    lenient = BoundingBoxScanner(Thresholds(white=190, black=5))
    assert lenient.scan(PixelBuffer(pixels)).is_empty


def test_is_background_matches_mask(scanner):
    samples = [
        (255, 255, 255, 255),
        (170, 171, 171, 255),
        (0, 0, 0, 255),
        (5, 0, 0, 255),
        (40, 200, 90, 0),
        (128, 128, 128, 255),
    ]
    pixels = np.array([samples], dtype=np.uint8)
    mask = scanner.classify(pixels)[0]
    for content, sample in zip(mask, samples):
        assert scanner.is_background(*sample) == (not content)


def test_parallel_scan_matches_serial():
    height = BAND_ROWS * 3 + 17
    pixels = make_pixels(64, height)
    pixels[10, 5] = (80, 80, 80, 255)
    pixels[height - 3, 60] = (80, 80, 80, 255)
    buffer = PixelBuffer(pixels)

    serial = BoundingBoxScanner(workers=1).scan_bounds(buffer)
    parallel = BoundingBoxScanner(workers=4).scan_bounds(buffer)
    assert parallel == serial
    assert serial.to_rect() == Rect(5, 10, 55, height - 13)


def test_parallel_scan_of_blank_buffer_is_empty():
    buffer = PixelBuffer(make_pixels(16, BAND_ROWS * 2))
    assert BoundingBoxScanner(workers=2).scan(buffer).is_empty


@pytest.mark.parametrize("workers", [1, 3])
def test_cancelled_scan_is_empty(workers):
    pixels = make_pixels(16, BAND_ROWS * 2, fill=(90, 90, 90, 255))
    cancel = threading.Event()
    cancel.set()
    rect = BoundingBoxScanner(workers=workers).scan(PixelBuffer(pixels), cancel=cancel)
    assert rect.is_empty


def test_scan_does_not_modify_pixels(scanner):
    pixels = make_pixels(6, 6)
    pixels[2, 2] = (90, 90, 90, 255)
    before = pixels.copy()
    scanner.scan(PixelBuffer(pixels))
    assert np.array_equal(pixels, before)
    assert tuple(pixels[0, 0]) == WHITE
