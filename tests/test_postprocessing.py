"""Tests for amharic_ocr.postprocessing: confidence footer parsing."""

import pytest

from amharic_ocr.postprocessing import normalize_text, split_confidence


class TestSplitConfidence:
    def test_footer_is_removed_and_parsed(self):
        text, confidence = split_confidence("ሰላም ለዓለም\nCONFIDENCE: 87")
        assert text == "ሰላም ለዓለም"
        assert confidence == 87.0

    def test_case_insensitive_and_percent_sign(self):
        text, confidence = split_confidence("ሰላም\nConfidence: 72%\n")
        assert text == "ሰላም"
        assert confidence == 72.0

    def test_decimal_score(self):
        assert split_confidence("x\nCONFIDENCE: 64.5")[1] == 64.5

    def test_missing_footer_gives_zero(self):
        text, confidence = split_confidence("ሰላም ለዓለም")
        assert text == "ሰላም ለዓለም"
        assert confidence == 0.0

    @pytest.mark.parametrize("raw, expected", [("150", 100.0), ("-5", 0.0)])
    def test_score_is_clamped(self, raw, expected):
        assert split_confidence(f"x\nCONFIDENCE: {raw}")[1] == expected

    def test_footer_must_be_last_line(self):
        reply = "CONFIDENCE: 90\nሰላም"
        text, confidence = split_confidence(reply)
        assert confidence == 0.0
        assert text == reply

    def test_reply_with_only_footer(self):
        assert split_confidence("CONFIDENCE: 40") == ("", 40.0)


class TestNormalizeText:
    def test_strips_trailing_whitespace(self):
        assert normalize_text("ሀ  \nለ\t") == "ሀ\nለ"

    def test_keeps_single_blank_line_between_stanzas(self):
        assert normalize_text("ሀ\n\nለ") == "ሀ\n\nለ"

    def test_collapses_long_blank_runs(self):
        assert normalize_text("ሀ\n\n\n\nለ") == "ሀ\n\nለ"

    def test_windows_newlines(self):
        assert normalize_text("ሀ\r\nለ\r\n") == "ሀ\nለ"
