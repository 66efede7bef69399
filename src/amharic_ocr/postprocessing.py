"""Post-processing for recognition output.

Vision LLMs are asked to close their transcription with a
``CONFIDENCE: <0-100>`` line.  :func:`split_confidence` removes that line and
returns the score separately so LLM output has the same shape as a
Tesseract result.
"""

import re

from amharic_ocr.prompt import CONFIDENCE_LABEL

# The footer must be the last non-blank line of the reply.
_CONFIDENCE_FOOTER = re.compile(
    rf"\n?[ \t]*{CONFIDENCE_LABEL}[ \t]*[:=][ \t]*(-?\d+(?:\.\d+)?)[ \t]*%?\s*\Z",
    re.IGNORECASE,
)


def split_confidence(reply: str) -> tuple[str, float]:
    """Return ``(text, confidence)`` from an LLM reply.

    A missing or unparsable footer gives a confidence of 0.  The score is
    clamped to [0, 100].
    """
    m = _CONFIDENCE_FOOTER.search(reply)
    if not m:
        return normalize_text(reply), 0.0
    confidence = min(100.0, max(0.0, float(m.group(1))))
    return normalize_text(reply[:m.start()]), confidence


def normalize_text(text: str) -> str:
    """Strip trailing whitespace per line and collapse runs of 3+ blank lines."""
    lines = [line.rstrip() for line in text.replace("\r\n", "\n").split("\n")]
    text = "\n".join(lines).strip("\n")
    return re.sub(r"\n{3,}", "\n\n", text)
