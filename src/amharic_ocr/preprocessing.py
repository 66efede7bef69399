"""Image preprocessing to improve OCR accuracy on Ethiopic-script documents.

The pipeline turns an arbitrary photograph of a page into a clean, binary PNG
for the recognition engine.  Stage order is fixed by what each stage needs
from the previous one:

Pipeline
--------
1. Decode     Pillow rasterises the input bytes (EXIF orientation applied).
2. Upscale    pages whose longest side is under 1500 px are resampled 2x;
              small glyphs recognise much better at a higher resolution.
3. Grayscale  luminance reduction.  Runs whenever denoising or binarisation
              is enabled, since both read one effective channel.
4. Denoise    optional 3×3 median.  Must precede thresholding so isolated
              specks are removed before they are classified.
5. Threshold  mean-based adaptive binarisation; tolerates uneven lighting
              across a photographed page.
6. Encode     PNG.

Failure policy
--------------
An invalid :class:`~amharic_ocr.config.ProcessingConfig` raises
:class:`~amharic_ocr.errors.ConfigError` before any pixel work.  Decode and
encode failures do not raise: the result carries the original input bytes
so recognition can still run on them.
"""

import logging
import time
from dataclasses import dataclass
from typing import Iterator, Optional

from amharic_ocr.config import ProcessingConfig
from amharic_ocr.errors import DecodeError, EncodeError, OcrError
from amharic_ocr.filters import (
    adaptive_threshold,
    build_integral_image,
    median_denoise,
    to_grayscale,
)
from amharic_ocr.imaging import (
    PixelBuffer,
    decode_image,
    encode_buffer,
    rasterize,
    upscale_image,
)
from amharic_ocr.progress import ProgressEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreprocessResult:
    """Everything one preprocessing run produced.

    Attributes:
        generation: Sequence number assigned by the :class:`Preprocessor`.
        image:      Encoded output image, or the untouched input on fallback.
        config:     The configuration the run was validated against.
        buffer:     Final pixel buffer (``None`` on fallback).
        events:     Progress events, one per completed stage.
        error:      The decode / encode error that triggered the fallback.
    """

    generation: int
    image: bytes
    config: ProcessingConfig
    buffer: Optional[PixelBuffer] = None
    events: tuple[ProgressEvent, ...] = ()
    error: Optional[OcrError] = None

    @property
    def fallback(self) -> bool:
        return self.error is not None

    @property
    def size(self) -> Optional[tuple[int, int]]:
        if self.buffer is None:
            return None
        return self.buffer.width, self.buffer.height

    def progress(self) -> Iterator[ProgressEvent]:
        """Iterate over the recorded events; each call starts from the beginning."""
        return iter(self.events)


def _planned_stages(config: ProcessingConfig) -> list[str]:
    stages = ["decode"]
    if config.upscale:
        stages.append("upscale")
    if config.needs_grayscale:
        stages.append("grayscale")
    if config.denoise:
        stages.append("denoise")
    if config.binarize:
        stages.append("threshold")
    stages.append("encode")
    return stages


class Preprocessor:
    """Runs the pipeline and numbers each run.

    Runs are synchronous and never cancelled.  When a newer image arrives
    while an older result is still pending, :meth:`is_current` tells the
    caller whether a result belongs to the latest run; stale results are
    for the caller to drop.
    """

    def __init__(self) -> None:
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def is_current(self, result: PreprocessResult) -> bool:
        return result.generation == self._generation

    def run(self, image_bytes: bytes, config: ProcessingConfig) -> PreprocessResult:
        config.validate()
        self._generation += 1
        generation = self._generation

        stages = _planned_stages(config)
        events: list[ProgressEvent] = []

        def completed(stage: str, started: float) -> None:
            events.append(ProgressEvent(stage, (len(events) + 1) / len(stages)))
            logger.debug(
                "[%d] %s done in %.3fs", generation, stage, time.perf_counter() - started
            )

        try:
            started = time.perf_counter()
            img = decode_image(image_bytes)
            completed("decode", started)

            if config.upscale:
                started = time.perf_counter()
                img = upscale_image(img)
                completed("upscale", started)

            buffer = rasterize(img)
            img.close()

            if config.needs_grayscale:
                started = time.perf_counter()
                to_grayscale(buffer)
                completed("grayscale", started)

            if config.denoise:
                started = time.perf_counter()
                median_denoise(buffer)
                completed("denoise", started)

            if config.binarize:
                started = time.perf_counter()
                integral = build_integral_image(buffer)
                adaptive_threshold(
                    buffer,
                    window_size=config.window_size,
                    constant=config.threshold_constant,
                    integral=integral,
                )
                completed("threshold", started)

            started = time.perf_counter()
            encoded = encode_buffer(buffer)
            completed("encode", started)
        except (DecodeError, EncodeError) as e:
            logger.warning("Preprocessing failed, using the original image: %s", e)
            return PreprocessResult(
                generation=generation,
                image=image_bytes,
                config=config,
                events=tuple(events),
                error=e,
            )

        logger.info(
            "Preprocessed image to %dx%d (%s)",
            buffer.width, buffer.height, ", ".join(stages),
        )
        return PreprocessResult(
            generation=generation,
            image=encoded,
            config=config,
            buffer=buffer,
            events=tuple(events),
        )


def preprocess_for_ocr(image_bytes: bytes, config: ProcessingConfig) -> bytes:
    """Run the pipeline once and return the image to hand to the recogniser."""
    return Preprocessor().run(image_bytes, config).image
