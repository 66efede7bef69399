"""Progress events reported by the preprocessing pipeline and recognition engines."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ProgressEvent:
    stage: str
    progress: float

    def __str__(self) -> str:
        return f"{self.stage} {round(self.progress * 100)}%"
