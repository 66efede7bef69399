"""Shared fixtures for the test suite.

Image fixtures are real Pillow-encoded bytes so tests exercise the actual
decode / encode paths rather than hand-crafted stubs.
"""

import io
from pathlib import Path

import numpy as np
import pytest
from click.testing import CliRunner
from PIL import Image

from amharic_ocr.imaging import PixelBuffer


def encode_png(width: int, height: int, color=(255, 0, 0)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color=color).save(buf, format="PNG")
    return buf.getvalue()


def random_buffer(rng: np.random.Generator, width: int, height: int) -> PixelBuffer:
    """A buffer of uniformly random RGBA bytes."""
    data = rng.integers(0, 256, size=width * height * 4, dtype=np.uint8)
    return PixelBuffer(width=width, height=height, data=data)


def gray_buffer(values) -> PixelBuffer:
    """An opaque grayscale buffer from a 2-D list / array of intensities."""
    values = np.asarray(values, dtype=np.uint8)
    height, width = values.shape
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[:, :, :3] = values[:, :, np.newaxis]
    pixels[:, :, 3] = 255
    return PixelBuffer.from_array(pixels)


# ── CLI runner ─────────────────────────────────────────────────────────────


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


# ── Image fixtures ─────────────────────────────────────────────────────────


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture
def png_bytes() -> bytes:
    """A real, valid 10×10 red PNG image as raw bytes."""
    return encode_png(10, 10)


@pytest.fixture
def jpeg_bytes() -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (10, 10), color=(200, 200, 200)).save(buf, format="JPEG")
    return buf.getvalue()


@pytest.fixture
def png_file(tmp_path: Path, png_bytes: bytes) -> Path:
    """The PNG written to a temporary file on disk."""
    path = tmp_path / "test.png"
    path.write_bytes(png_bytes)
    return path
