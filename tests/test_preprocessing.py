"""Tests for amharic_ocr.preprocessing: the pipeline orchestrator."""

import io
from unittest.mock import patch

import numpy as np
import pytest
from PIL import Image

from amharic_ocr.config import Preset, ProcessingConfig
from amharic_ocr.errors import ConfigError, DecodeError, EncodeError
from amharic_ocr.preprocessing import Preprocessor, preprocess_for_ocr
from conftest import encode_png

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
MALFORMED = b"\x89PNG\r\n\x1a\nthis is not really a png"


def _config(**overrides) -> ProcessingConfig:
    return ProcessingConfig.from_preset(Preset.DOCUMENT, **overrides)


def _open(image_bytes: bytes) -> Image.Image:
    return Image.open(io.BytesIO(image_bytes))


# ── Output format ──────────────────────────────────────────────────────────


class TestOutputFormat:
    def test_returns_png_bytes(self, png_bytes):
        result = preprocess_for_ocr(png_bytes, _config())
        assert isinstance(result, bytes)
        assert result[:8] == PNG_MAGIC

    def test_jpeg_input_becomes_png(self, jpeg_bytes):
        assert preprocess_for_ocr(jpeg_bytes, _config(upscale=False))[:8] == PNG_MAGIC

    def test_binarized_output_is_black_and_white(self, png_bytes):
        img = _open(preprocess_for_ocr(png_bytes, _config())).convert("RGBA")
        px = np.asarray(img)
        assert set(np.unique(px[:, :, :3]).tolist()) <= {0, 255}
        assert np.all(px[:, :, 3] == 255)

    def test_grayscale_only_keeps_intermediate_tones(self):
        data = encode_png(4, 4, color=(200, 100, 50))
        config = _config(binarize=False, upscale=False)
        px = np.asarray(_open(preprocess_for_ocr(data, config)).convert("RGB"))
        # 0.299*200 + 0.587*100 + 0.114*50 = 124.2
        assert np.all(px == 124)


# ── Upscaling ──────────────────────────────────────────────────────────────


class TestUpscale:
    def test_small_image_is_doubled(self):
        result = Preprocessor().run(encode_png(100, 100), _config())
        assert result.size == (200, 200)
        assert _open(result.image).size == (200, 200)

    def test_large_image_keeps_its_size(self):
        config = _config(grayscale=False, binarize=False)
        result = Preprocessor().run(encode_png(1800, 900), config)
        assert result.size == (1800, 900)

    def test_upscale_disabled(self):
        result = Preprocessor().run(encode_png(100, 100), _config(upscale=False))
        assert result.size == (100, 100)


# ── Worked example ─────────────────────────────────────────────────────────


class TestUniformGray:
    def test_positive_constant_gives_white(self):
        config = ProcessingConfig(window_size=3, threshold_constant=10, upscale=False)
        result = Preprocessor().run(encode_png(3, 3, color=(128, 128, 128)), config)
        assert np.all(result.buffer.pixels[:, :, :3] == 255)

    def test_negative_constant_gives_black(self):
        config = ProcessingConfig(window_size=3, threshold_constant=-10, upscale=False)
        result = Preprocessor().run(encode_png(3, 3, color=(128, 128, 128)), config)
        assert np.all(result.buffer.pixels[:, :, :3] == 0)


# ── Failure policy ─────────────────────────────────────────────────────────


class TestFallback:
    def test_malformed_bytes_returned_unchanged(self):
        assert preprocess_for_ocr(MALFORMED, _config(binarize=True)) == MALFORMED

    def test_fallback_result_records_the_error(self):
        result = Preprocessor().run(MALFORMED, _config())
        assert result.fallback
        assert isinstance(result.error, DecodeError)
        assert result.buffer is None
        assert result.size is None

    def test_encode_failure_returns_original(self, png_bytes):
        with patch(
            "amharic_ocr.preprocessing.encode_buffer",
            side_effect=EncodeError("disk full"),
        ):
            result = Preprocessor().run(png_bytes, _config())
        assert result.image == png_bytes
        assert isinstance(result.error, EncodeError)

    def test_successful_run_is_not_a_fallback(self, png_bytes):
        result = Preprocessor().run(png_bytes, _config())
        assert not result.fallback
        assert result.error is None


class TestConfigValidation:
    def test_invalid_config_raises_before_decoding(self, png_bytes):
        config = ProcessingConfig(window_size=4, threshold_constant=10)
        with patch("amharic_ocr.preprocessing.decode_image") as mock_decode:
            with pytest.raises(ConfigError, match="odd"):
                Preprocessor().run(png_bytes, config)
        mock_decode.assert_not_called()

    def test_invalid_config_raises_even_for_malformed_input(self):
        config = ProcessingConfig(window_size=0, threshold_constant=10)
        with pytest.raises(ConfigError):
            preprocess_for_ocr(MALFORMED, config)

    def test_invalid_config_does_not_advance_generation(self, png_bytes):
        preprocessor = Preprocessor()
        with pytest.raises(ConfigError):
            preprocessor.run(png_bytes, ProcessingConfig(window_size=2, threshold_constant=0))
        assert preprocessor.generation == 0


# ── Progress events ────────────────────────────────────────────────────────


class TestProgressEvents:
    def test_one_event_per_stage_in_order(self, png_bytes):
        result = Preprocessor().run(png_bytes, _config(denoise=True))
        stages = [event.stage for event in result.events]
        assert stages == ["decode", "upscale", "grayscale", "denoise", "threshold", "encode"]

    def test_progress_ends_at_one(self, png_bytes):
        result = Preprocessor().run(png_bytes, _config())
        fractions = [event.progress for event in result.events]
        assert fractions == sorted(fractions)
        assert fractions[-1] == pytest.approx(1.0)

    def test_skipped_stages_emit_nothing(self, png_bytes):
        config = _config(grayscale=False, binarize=False, upscale=False)
        result = Preprocessor().run(png_bytes, config)
        assert [event.stage for event in result.events] == ["decode", "encode"]

    def test_denoise_implies_grayscale(self, png_bytes):
        config = _config(grayscale=False, binarize=False, denoise=True)
        result = Preprocessor().run(png_bytes, config)
        assert "grayscale" in [event.stage for event in result.events]

    def test_progress_is_restartable(self, png_bytes):
        result = Preprocessor().run(png_bytes, _config())
        assert list(result.progress()) == list(result.progress())
        assert len(list(result.progress())) == len(result.events)

    def test_fallback_keeps_events_up_to_failure(self):
        result = Preprocessor().run(MALFORMED, _config())
        assert result.events == ()


# ── Generations ────────────────────────────────────────────────────────────


class TestGenerations:
    def test_each_run_gets_a_new_generation(self, png_bytes):
        preprocessor = Preprocessor()
        first = preprocessor.run(png_bytes, _config())
        second = preprocessor.run(png_bytes, _config())
        assert (first.generation, second.generation) == (1, 2)

    def test_only_latest_run_is_current(self, png_bytes):
        preprocessor = Preprocessor()
        first = preprocessor.run(png_bytes, _config())
        second = preprocessor.run(png_bytes, _config())
        assert not preprocessor.is_current(first)
        assert preprocessor.is_current(second)

    def test_fallback_runs_are_numbered_too(self, png_bytes):
        preprocessor = Preprocessor()
        preprocessor.run(png_bytes, _config())
        failed = preprocessor.run(MALFORMED, _config())
        assert failed.generation == 2
        assert preprocessor.is_current(failed)

    def test_independent_runs_share_no_buffers(self, png_bytes):
        preprocessor = Preprocessor()
        first = preprocessor.run(png_bytes, _config())
        second = preprocessor.run(png_bytes, _config())
        assert first.buffer is not second.buffer
        assert not np.shares_memory(first.buffer.data, second.buffer.data)
