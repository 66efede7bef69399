"""Anthropic Claude vision provider."""

import base64
from typing import Any

import anthropic

from amharic_ocr.errors import RecognitionError
from amharic_ocr.imaging import media_type
from amharic_ocr.postprocessing import split_confidence
from amharic_ocr.progress import ProgressEvent
from amharic_ocr.prompt import TRANSCRIPTION_PROMPT, language_instruction
from amharic_ocr.providers.base import BaseProvider, RecognitionResult

SYSTEM_PROMPT = TRANSCRIPTION_PROMPT


class AnthropicProvider(BaseProvider):
    def __init__(self, api_key: str, model: str) -> None:
        self.client = anthropic.Anthropic(api_key=api_key)
        self.model = model

    def ocr(self, image: bytes, languages: str = "amh") -> RecognitionResult:
        events = [ProgressEvent("initializing", 0.0)]
        b64 = base64.standard_b64encode(image).decode("utf-8")
        content: list[Any] = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": media_type(image),
                    "data": b64,
                },
            },
            {
                "type": "text",
                "text": f"Transcribe the image above. {language_instruction(languages)}",
            },
        ]

        events.append(ProgressEvent("recognizing text", 0.0))
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=8192,
                system=SYSTEM_PROMPT,
                messages=[{"role": "user", "content": content}],
            )
        except anthropic.APIError as e:
            raise RecognitionError(f"Anthropic request failed: {e}") from e
        events.append(ProgressEvent("recognizing text", 1.0))

        text, confidence = split_confidence(response.content[0].text)
        return RecognitionResult(text=text, confidence=confidence, events=tuple(events))
