"""Raster buffers and the Pillow-backed decode / resample / encode steps.

A :class:`PixelBuffer` is the in-memory image every pixel stage works on:
``width * height`` pixels stored as interleaved RGBA bytes in a flat numpy
``uint8`` array.  Stages mutate ``buffer.data`` in place; :attr:`PixelBuffer.pixels`
is a ``(height, width, 4)`` view over the same memory for 2-D indexing.

Decoding, resampling and encoding are delegated to Pillow.  Failures there
are reported as :class:`~amharic_ocr.errors.DecodeError` /
:class:`~amharic_ocr.errors.EncodeError` so the orchestrator can fall back to
the untouched input.
"""

import io
import logging
from dataclasses import dataclass

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from amharic_ocr.config import UPSCALE_FACTOR, UPSCALE_FLOOR
from amharic_ocr.errors import DecodeError, EncodeError

logger = logging.getLogger(__name__)

CHANNELS = 4


@dataclass
class PixelBuffer:
    width: int
    height: int
    data: np.ndarray

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"PixelBuffer dimensions must be positive, got {self.width}x{self.height}"
            )
        if not isinstance(self.data, np.ndarray) or self.data.dtype != np.uint8:
            raise ValueError("PixelBuffer data must be a numpy uint8 array")
        if self.data.ndim != 1:
            raise ValueError(f"PixelBuffer data must be flat, got shape {self.data.shape}")
        expected = self.width * self.height * CHANNELS
        if self.data.size != expected:
            raise ValueError(
                f"PixelBuffer data has {self.data.size} values, expected {expected} "
                f"({self.width}x{self.height}x{CHANNELS})"
            )

    @classmethod
    def from_array(cls, pixels: np.ndarray) -> "PixelBuffer":
        """Build a buffer from a ``(height, width, 4)`` array (copied)."""
        if pixels.ndim != 3 or pixels.shape[2] != CHANNELS:
            raise ValueError(f"Expected (height, width, 4) array, got shape {pixels.shape}")
        height, width = pixels.shape[:2]
        data = np.ascontiguousarray(pixels, dtype=np.uint8).reshape(-1).copy()
        return cls(width=width, height=height, data=data)

    @property
    def pixels(self) -> np.ndarray:
        return self.data.reshape(self.height, self.width, CHANNELS)

    @property
    def intensity(self) -> np.ndarray:
        """The first colour channel as a ``(height, width)`` view."""
        return self.pixels[:, :, 0]

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.width, self.height, self.data.copy())

    def to_image(self) -> Image.Image:
        return Image.fromarray(self.pixels)


def decode_image(image_bytes: bytes) -> Image.Image:
    """Open encoded bytes with Pillow and apply any EXIF orientation."""
    try:
        img = Image.open(io.BytesIO(image_bytes))
        img.load()
        return ImageOps.exif_transpose(img)
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        ValueError,
        SyntaxError,
    ) as e:
        raise DecodeError(f"Cannot decode image: {e}") from e


def upscale_image(
    img: Image.Image,
    floor: int = UPSCALE_FLOOR,
    factor: int = UPSCALE_FACTOR,
) -> Image.Image:
    """Resample small images by ``factor`` so glyph strokes get more pixels.

    Images whose longest side already reaches ``floor`` are returned as-is.
    """
    width, height = img.size
    if max(width, height) >= floor:
        return img
    size = (width * factor, height * factor)
    logger.debug("Upscaling %dx%d -> %dx%d", width, height, *size)
    # Resample in a mode Lanczos supports; palette images would otherwise
    # be resized by nearest neighbour.
    if img.mode not in ("RGB", "RGBA", "L"):
        img = img.convert("RGBA")
    return img.resize(size, Image.Resampling.LANCZOS)


def rasterize(img: Image.Image) -> PixelBuffer:
    """Draw ``img`` into a fresh RGBA :class:`PixelBuffer`."""
    try:
        rgba = img.convert("RGBA")
    except (OSError, ValueError) as e:
        raise DecodeError(f"Cannot rasterise image: {e}") from e
    return PixelBuffer.from_array(np.asarray(rgba, dtype=np.uint8))


def encode_buffer(buffer: PixelBuffer, fmt: str = "PNG") -> bytes:
    """Serialise ``buffer`` to encoded image bytes (PNG by default)."""
    buf = io.BytesIO()
    try:
        buffer.to_image().save(buf, format=fmt)
    except (OSError, ValueError, KeyError) as e:
        raise EncodeError(f"Cannot encode image as {fmt}: {e}") from e
    return buf.getvalue()


def media_type(image_bytes: bytes, default: str = "image/png") -> str:
    """MIME type of encoded image bytes, e.g. ``image/jpeg``."""
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            return Image.MIME.get(img.format or "", default)
    except (UnidentifiedImageError, OSError):
        return default
