"""Configuration: preprocessing parameters and engine settings from the environment."""

import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from amharic_ocr.errors import ConfigError

# Images whose longest side is below the floor are resampled by the factor.
UPSCALE_FLOOR = 1500
UPSCALE_FACTOR = 2


class Preset(str, Enum):
    GENERAL = "general"
    DOCUMENT = "document"


# (window_size, threshold_constant)
PRESETS = {
    Preset.GENERAL: (21, 10),
    Preset.DOCUMENT: (41, 15),
}


@dataclass(frozen=True)
class ProcessingConfig:
    """Options for one preprocessing run.

    ``window_size`` and ``threshold_constant`` have no defaults: pick them
    explicitly or go through :meth:`from_preset`.
    """

    window_size: int
    threshold_constant: int
    grayscale: bool = True
    binarize: bool = True
    denoise: bool = False
    upscale: bool = True

    @classmethod
    def from_preset(cls, preset: Preset, **overrides) -> "ProcessingConfig":
        window_size, constant = PRESETS[Preset(preset)]
        config = cls(window_size=window_size, threshold_constant=constant)
        return replace(config, **overrides) if overrides else config

    @property
    def needs_grayscale(self) -> bool:
        # Denoising and thresholding both read a single effective channel.
        return self.grayscale or self.binarize or self.denoise

    def validate(self) -> None:
        """Raise ConfigError if the configuration cannot be applied safely."""
        for name in ("grayscale", "binarize", "denoise", "upscale"):
            if not isinstance(getattr(self, name), bool):
                raise ConfigError(f"{name} must be a bool, got {getattr(self, name)!r}")

        ws = self.window_size
        if isinstance(ws, bool) or not isinstance(ws, int):
            raise ConfigError(f"window_size must be an int, got {ws!r}")
        if ws <= 0:
            raise ConfigError(f"window_size must be positive, got {ws}")
        if ws % 2 == 0:
            raise ConfigError(f"window_size must be odd, got {ws}")

        c = self.threshold_constant
        if isinstance(c, bool) or not isinstance(c, int):
            raise ConfigError(f"threshold_constant must be an int, got {c!r}")
        if abs(c) >= 255:
            raise ConfigError(
                f"threshold_constant={c} leaves every pixel in one class; "
                "use a value strictly between -255 and 255"
            )


class Provider(str, Enum):
    TESSERACT = "tesseract"
    ANTHROPIC = "anthropic"
    OPENAI = "openai"


DEFAULTS = {
    Provider.ANTHROPIC: "claude-sonnet-4-6",
    Provider.OPENAI: "gpt-4o",
}

ENV_KEYS = {
    Provider.ANTHROPIC: "ANTHROPIC_API_KEY",
    Provider.OPENAI: "OPENAI_API_KEY",
}

TESSDATA_ENV = "TESSDATA_PREFIX"


@dataclass
class EngineConfig:
    provider: Provider
    model: Optional[str] = None
    api_key: Optional[str] = None
    tessdata_dir: Optional[str] = None

    @classmethod
    def from_env(
        cls,
        provider: Provider,
        model_override: Optional[str] = None,
        api_key_override: Optional[str] = None,
    ) -> "EngineConfig":
        if provider == Provider.TESSERACT:
            return cls(
                provider=provider,
                tessdata_dir=os.environ.get(TESSDATA_ENV) or None,
            )

        model = model_override or DEFAULTS[provider]
        api_key = api_key_override or os.environ.get(ENV_KEYS[provider], "")
        if not api_key:
            raise ConfigError(
                f"No API key for {provider.value}. "
                f"Set {ENV_KEYS[provider]} in your environment or .env file."
            )
        return cls(provider=provider, model=model, api_key=api_key)
