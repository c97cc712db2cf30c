"""OCR module for receipt processing.

This module provides the OCR engine interface, the Tesseract engine and the
quality gate used to decide whether recognition should be retried.
"""

import logging
from typing import Optional

from .base_ocr import BaseOCR, OCRResult, OCRError, OCREngineType, PageSegmentationMode
from .tesseract_ocr import TesseractOCR
from .quality_gate import OCRQualityReport, assess_ocr_quality, needs_retry

logger = logging.getLogger(__name__)


def create_ocr_engine(
    engine_type: OCREngineType = OCREngineType.TESSERACT,
    tesseract_cmd: Optional[str] = None,
    language: str = 'eng',
    timeout: int = 30
) -> BaseOCR:
    """
    Create an OCR engine.

    Args:
        engine_type: OCR engine to use
        tesseract_cmd: Path to Tesseract executable
        language: Recognition language
        timeout: Per-call timeout in seconds

    Returns:
        Configured OCR engine

    Raises:
        OCRError: If engine creation fails
    """
    if engine_type != OCREngineType.TESSERACT:
        raise OCRError(
            f"Unsupported OCR engine: {engine_type}",
            engine_type,
            {'error_type': 'engine_creation'}
        )

    engine = TesseractOCR(tesseract_cmd=tesseract_cmd, language=language, timeout=timeout)
    logger.info("Created Tesseract engine")
    return engine


__all__ = [
    'BaseOCR', 'OCRResult', 'OCRError', 'OCREngineType', 'PageSegmentationMode',
    'TesseractOCR', 'OCRQualityReport', 'assess_ocr_quality', 'needs_retry',
    'create_ocr_engine'
]
