"""Tests for the OCR quality gate."""
import random
import string

import pytest

from ocr.quality_gate import assess_ocr_quality, needs_retry


def test_random_alphanumeric_run_scores_below_retry_threshold():
    """Test that an unsegmented 500 character run triggers a retry."""
    rng = random.Random(42)
    text = ''.join(rng.choice(string.ascii_letters + string.digits) for _ in range(500))

    report = assess_ocr_quality(text)

    assert report.score < 5
    assert 'low valid word ratio' in report.issues
    assert needs_retry(report)


def test_receipt_like_text_scores_high(sample_receipt_text):
    """Test that well-formed multi-line receipt text passes."""
    report = assess_ocr_quality(sample_receipt_text)

    assert report.score >= 7
    assert report.issues == []
    assert not needs_retry(report)


def test_short_text_penalized():
    report = assess_ocr_quality("TOTAL 5.00")
    assert 'too short' in report.issues
    assert 'too few lines' in report.issues


def test_special_character_noise_penalized():
    """Test that symbol-heavy OCR garbage is flagged."""
    text = "~~^^**{{}}||\n<<>>!!??\n%%^^&&**\n@@##~~``"
    report = assess_ocr_quality(text)

    assert 'too many special characters' in report.issues
    assert report.score < 5


@pytest.mark.parametrize("text", ["", "   ", "\n\n"])
def test_empty_text_never_negative(text):
    report = assess_ocr_quality(text)
    assert 0 <= report.score < 5
    assert 'too short' in report.issues


def test_receipt_punctuation_is_not_noise():
    """Test that characters the OCR whitelist emits do not count as special."""
    text = "ORDER #(1042) & CO\nCONTACT @STORE\n(2) ITEMS 45%\nTOTAL: $5.00"
    report = assess_ocr_quality(text)

    assert 'too many special characters' not in report.issues
    assert report.score == 10
