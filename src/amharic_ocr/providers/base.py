"""Abstract base for recognition engines."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from amharic_ocr.progress import ProgressEvent


@dataclass(frozen=True)
class RecognitionResult:
    text: str
    confidence: float
    events: tuple[ProgressEvent, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "confidence", min(100.0, max(0.0, float(self.confidence))))


class BaseProvider(ABC):
    @abstractmethod
    def ocr(self, image: bytes, languages: str = "amh") -> RecognitionResult:
        """Recognise the text in one encoded image and score it from 0 to 100."""
        ...
