"""Exception types raised by the OCR pipeline."""


class OcrError(Exception):
    """Base class for every error this package raises on purpose."""


class ConfigError(OcrError):
    """Invalid processing or engine configuration."""


class DecodeError(OcrError):
    """Input bytes could not be rasterised."""


class EncodeError(OcrError):
    """A processed buffer could not be serialised."""


class RecognitionError(OcrError):
    """The recognition engine failed to produce text."""


class RelayError(OcrError):
    """Recognised text could not be forwarded to the storage backend."""
