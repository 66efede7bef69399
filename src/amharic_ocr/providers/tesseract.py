"""Tesseract provider (pytesseract), the default offline engine."""

import io
import logging
from typing import Optional

import pytesseract
from PIL import Image, UnidentifiedImageError

from amharic_ocr.errors import RecognitionError
from amharic_ocr.progress import ProgressEvent
from amharic_ocr.providers.base import BaseProvider, RecognitionResult

logger = logging.getLogger(__name__)


def mean_word_confidence(confidences) -> float:
    """Average Tesseract word confidence, ignoring the ``-1`` non-word rows."""
    scores = []
    for value in confidences:
        try:
            score = float(value)
        except (TypeError, ValueError):
            continue
        if score >= 0:
            scores.append(score)
    if not scores:
        return 0.0
    return sum(scores) / len(scores)


class TesseractProvider(BaseProvider):
    def __init__(self, tessdata_dir: Optional[str] = None, psm: int = 3) -> None:
        self.tessdata_dir = tessdata_dir
        self.psm = psm

    @property
    def tesseract_config(self) -> str:
        config = f"--psm {self.psm}"
        if self.tessdata_dir:
            config += f' --tessdata-dir "{self.tessdata_dir}"'
        return config

    def ocr(self, image: bytes, languages: str = "amh") -> RecognitionResult:
        events = [ProgressEvent("initializing", 0.0)]
        try:
            img = Image.open(io.BytesIO(image))
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            raise RecognitionError(f"Tesseract cannot read the image: {e}") from e

        events.append(ProgressEvent("recognizing text", 0.0))
        try:
            text = pytesseract.image_to_string(img, lang=languages, config=self.tesseract_config)
            data = pytesseract.image_to_data(
                img,
                lang=languages,
                config=self.tesseract_config,
                output_type=pytesseract.Output.DICT,
            )
        except pytesseract.TesseractNotFoundError as e:
            raise RecognitionError(
                "Tesseract is not installed or not on PATH."
            ) from e
        except pytesseract.TesseractError as e:
            raise RecognitionError(f"Tesseract failed ({languages}): {e.message}") from e
        events.append(ProgressEvent("recognizing text", 1.0))

        confidence = mean_word_confidence(data.get("conf", []))
        logger.debug("Tesseract recognised %d characters at %.1f%%", len(text), confidence)
        return RecognitionResult(
            text=text.strip(),
            confidence=confidence,
            events=tuple(events),
        )
