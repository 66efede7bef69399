"""OpenAI GPT-4o vision provider."""

import base64
from typing import Any

import openai
from openai import OpenAI

from amharic_ocr.errors import RecognitionError
from amharic_ocr.imaging import media_type
from amharic_ocr.postprocessing import split_confidence
from amharic_ocr.progress import ProgressEvent
from amharic_ocr.prompt import TRANSCRIPTION_PROMPT, language_instruction
from amharic_ocr.providers.base import BaseProvider, RecognitionResult

SYSTEM_PROMPT = TRANSCRIPTION_PROMPT


class OpenAIProvider(BaseProvider):
    def __init__(self, api_key: str, model: str) -> None:
        self.client = OpenAI(api_key=api_key)
        self.model = model

    def ocr(self, image: bytes, languages: str = "amh") -> RecognitionResult:
        events = [ProgressEvent("initializing", 0.0)]
        b64 = base64.standard_b64encode(image).decode("utf-8")
        content: list[Any] = [
            {
                "type": "image_url",
                "image_url": {
                    "url": f"data:{media_type(image)};base64,{b64}",
                    "detail": "high",
                },
            },
            {
                "type": "text",
                "text": f"Transcribe the image above. {language_instruction(languages)}",
            },
        ]

        events.append(ProgressEvent("recognizing text", 0.0))
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                max_tokens=4096,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": content},
                ],
            )
        except openai.OpenAIError as e:
            raise RecognitionError(f"OpenAI request failed: {e}") from e
        events.append(ProgressEvent("recognizing text", 1.0))

        text, confidence = split_confidence(response.choices[0].message.content or "")
        return RecognitionResult(text=text, confidence=confidence, events=tuple(events))
