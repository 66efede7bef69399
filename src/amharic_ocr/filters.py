"""Pixel-level transforms that turn a photograph into a clean binary page.

Every function here takes a :class:`~amharic_ocr.imaging.PixelBuffer`,
rewrites it in place and returns it, so stages can be chained.  All of them
run synchronously over whole-image numpy arrays.

Stages
------
1. Grayscale          luminance ``0.299 R + 0.587 G + 0.114 B`` written to all
                        three colour channels.  Required before the two
                        stages below, which read only the first channel.

2. Median denoise      3×3 median over a snapshot of the buffer.  Removes
                        salt-and-pepper specks without softening stroke
                        edges.  The outermost 1-pixel ring is left untouched.

3. Adaptive threshold  each pixel is compared with the mean of a
                        ``window_size`` square around it (clamped at the
                        image border).  Pixels brighter than
                        ``mean - constant`` become white, the rest black.
                        Local means come from a summed-area table, so the
                        cost per pixel does not depend on the window size.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from amharic_ocr.imaging import PixelBuffer

WHITE = 255
BLACK = 0
OPAQUE = 255


def to_grayscale(buffer: PixelBuffer) -> PixelBuffer:
    """Replace R, G and B with the pixel's luminance; alpha is untouched."""
    pixels = buffer.pixels
    r = pixels[:, :, 0].astype(np.float64)
    g = pixels[:, :, 1].astype(np.float64)
    b = pixels[:, :, 2].astype(np.float64)
    luminance = 0.299 * r + 0.587 * g + 0.114 * b
    # Clamped 8-bit store: round half to even, then saturate.
    gray = np.clip(np.rint(luminance), 0, 255).astype(np.uint8)
    pixels[:, :, :3] = gray[:, :, np.newaxis]
    return buffer


@dataclass(frozen=True)
class IntegralImage:
    """Summed-area table over the first colour channel of a buffer.

    ``table[y, x]`` is the sum of all intensities in the rectangle
    ``(0, 0)`` to ``(x, y)`` inclusive.
    """

    width: int
    height: int
    table: np.ndarray

    @property
    def values(self) -> np.ndarray:
        """The table as a flat, row-major array of ``width * height`` sums."""
        return self.table.reshape(-1)

    def at(self, x: int, y: int) -> int:
        """Table value at ``(x, y)``; coordinates left of or above the image are 0."""
        if x < 0 or y < 0:
            return 0
        return int(self.table[y, x])

    def rect_sum(self, x1: int, y1: int, x2: int, y2: int) -> int:
        """Sum of intensities in the inclusive rectangle ``(x1, y1)`` to ``(x2, y2)``."""
        if not (0 <= x1 <= x2 < self.width and 0 <= y1 <= y2 < self.height):
            raise ValueError(
                f"Rectangle ({x1}, {y1})-({x2}, {y2}) is outside "
                f"the {self.width}x{self.height} image"
            )
        d = self.at(x2, y2)
        a = self.at(x1 - 1, y1 - 1)
        b = self.at(x2, y1 - 1)
        c = self.at(x1 - 1, y2)
        return d + a - b - c

    def rect_mean(self, x1: int, y1: int, x2: int, y2: int) -> float:
        count = (x2 - x1 + 1) * (y2 - y1 + 1)
        return self.rect_sum(x1, y1, x2, y2) / count

    def padded(self) -> np.ndarray:
        """The table with a leading row and column of zeros.

        ``padded()[y + 1, x + 1] == table[y, x]``, so the out-of-bounds corners
        of a rectangle touching the top or left edge read as 0.
        """
        out = np.zeros((self.height + 1, self.width + 1), dtype=np.int64)
        out[1:, 1:] = self.table
        return out


def build_integral_image(buffer: PixelBuffer) -> IntegralImage:
    """Build the summed-area table for ``buffer``.

    Each row is a running horizontal sum, added to the finished row above it.
    The buffer must already be grayscale; only the first channel is read.
    """
    row_sums = np.cumsum(buffer.intensity, axis=1, dtype=np.int64)
    table = np.cumsum(row_sums, axis=0, dtype=np.int64)
    return IntegralImage(width=buffer.width, height=buffer.height, table=table)


def _window_bounds(length: int, half: int) -> tuple[np.ndarray, np.ndarray]:
    centres = np.arange(length)
    lo = np.maximum(centres - half, 0)
    hi = np.minimum(centres + half, length - 1)
    return lo, hi


def local_means(integral: IntegralImage, window_size: int) -> np.ndarray:
    """Mean intensity of the clamped ``window_size`` square around every pixel."""
    half = window_size // 2
    x1, x2 = _window_bounds(integral.width, half)
    y1, y2 = _window_bounds(integral.height, half)

    padded = integral.padded()
    # D + A - B - C, with A, B, C one step above / left of the window.
    sums = padded[np.ix_(y2 + 1, x2 + 1)]
    sums += padded[np.ix_(y1, x1)]
    sums -= padded[np.ix_(y1, x2 + 1)]
    sums -= padded[np.ix_(y2 + 1, x1)]

    counts = np.outer(y2 - y1 + 1, x2 - x1 + 1)
    return sums / counts


def adaptive_threshold(
    buffer: PixelBuffer,
    window_size: int,
    constant: int,
    integral: Optional[IntegralImage] = None,
) -> PixelBuffer:
    """Binarise ``buffer`` against its local mean.

    A pixel becomes white when its intensity is strictly greater than
    ``mean - constant``; equality goes to black.  All three colour channels
    get the binary value and alpha is set to fully opaque.
    """
    if integral is None:
        integral = build_integral_image(buffer)
    means = local_means(integral, window_size)

    binary = np.where(buffer.intensity > means - constant, WHITE, BLACK).astype(np.uint8)

    pixels = buffer.pixels
    pixels[:, :, :3] = binary[:, :, np.newaxis]
    pixels[:, :, 3] = OPAQUE
    return buffer


def median_denoise(buffer: PixelBuffer) -> PixelBuffer:
    """Apply a 3×3 median filter to every interior pixel."""
    height, width = buffer.height, buffer.width
    if height < 3 or width < 3:
        return buffer

    # Neighbours are read from a snapshot so updated pixels never feed back.
    snapshot = buffer.intensity.copy()
    neighbourhood = np.stack([
        snapshot[1 + dy:height - 1 + dy, 1 + dx:width - 1 + dx]
        for dy in (-1, 0, 1)
        for dx in (-1, 0, 1)
    ])
    median = np.partition(neighbourhood, 4, axis=0)[4]

    buffer.pixels[1:-1, 1:-1, :3] = median[:, :, np.newaxis]
    return buffer
