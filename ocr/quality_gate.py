"""Structural plausibility scoring for raw OCR text."""

import re
from dataclasses import dataclass, field
from typing import List

BASE_SCORE = 10
RETRY_THRESHOLD = 5

# Punctuation the OCR whitelist can emit is not counted as noise
SPECIAL_CHAR_PATTERN = re.compile(r"[^A-Za-z0-9\s$.,:/\-()#&@%']")
VALID_WORD_PATTERN = re.compile(r"^[A-Za-z0-9$.,:/\-()#&@%']{1,25}$")

MIN_TEXT_LENGTH = 20
MAX_SPECIAL_RATIO = 0.3
MIN_VALID_WORD_RATIO = 0.6
MAX_MEAN_WORD_LENGTH = 15
MIN_LINES = 3


@dataclass
class OCRQualityReport:
    """Score in [0, 10] plus the names of the rules the text violated."""
    score: int
    issues: List[str] = field(default_factory=list)

    @property
    def needs_retry(self) -> bool:
        return self.score < RETRY_THRESHOLD


def assess_ocr_quality(text: str) -> OCRQualityReport:
    """
    Score OCR output for how much it looks like real receipt text.

    Args:
        text: Raw OCR text

    Returns:
        OCRQualityReport with the score and violated rules
    """
    text = text or ''
    score = BASE_SCORE
    issues = []

    if len(text.strip()) < MIN_TEXT_LENGTH:
        score -= 3
        issues.append('too short')

    if text and len(SPECIAL_CHAR_PATTERN.findall(text)) / len(text) > MAX_SPECIAL_RATIO:
        score -= 4
        issues.append('too many special characters')

    tokens = text.split()
    valid_ratio = (sum(1 for t in tokens if VALID_WORD_PATTERN.match(t)) / len(tokens)) if tokens else 0.0
    if valid_ratio < MIN_VALID_WORD_RATIO:
        score -= 2
        issues.append('low valid word ratio')

    # Unsegmented character runs look like valid words but are not
    if tokens and sum(len(t) for t in tokens) / len(tokens) > MAX_MEAN_WORD_LENGTH:
        score -= 3
        issues.append('implausible word lengths')

    if len([line for line in text.splitlines() if line.strip()]) < MIN_LINES:
        score -= 1
        issues.append('too few lines')

    return OCRQualityReport(score=max(0, score), issues=issues)


def needs_retry(report: OCRQualityReport) -> bool:
    """Whether OCR should be re-run with the alternate segmentation mode."""
    return report.needs_retry
