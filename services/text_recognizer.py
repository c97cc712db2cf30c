"""
Image-to-text stage: preprocessing, OCR and a single quality-driven retry.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, List

from ocr.base_ocr import BaseOCR, OCRError, PageSegmentationMode
from ocr.quality_gate import OCRQualityReport, assess_ocr_quality
from utils.image_preprocessor import ImagePreprocessor

logger = logging.getLogger(__name__)


@dataclass
class RecognitionResult:
    """Text read from one image and how it was obtained."""
    text: str
    confidence: float
    processed_image_path: str
    quality: OCRQualityReport
    mode: PageSegmentationMode = PageSegmentationMode.SINGLE_BLOCK
    retried: bool = False
    preprocessing_steps: List[str] = field(default_factory=list)


class TextRecognizer:
    """Runs preprocessing and OCR over a receipt image."""

    def __init__(self, ocr_engine: BaseOCR, preprocessor: Optional[ImagePreprocessor] = None):
        self.ocr_engine = ocr_engine
        self.preprocessor = preprocessor or ImagePreprocessor()

    def recognize(self, image_path: str, output_path: Optional[str] = None) -> RecognitionResult:
        """
        Preprocess an image and read its text.

        OCR runs in single-block mode first. When the quality gate rejects the
        text, OCR is re-run once in sparse-text mode and the better-scoring
        text is kept.

        Args:
            image_path: Source image
            output_path: Where the preprocessed PNG should be written

        Returns:
            RecognitionResult

        Raises:
            ImagePreprocessingError: If the image cannot be preprocessed at all
            OCRError: If OCR fails even with minimal configuration
        """
        processed_path = self.preprocessor.preprocess(image_path, output_path)
        steps = self.preprocessor.get_applied_steps()

        primary = self.ocr_engine.recognize(processed_path, PageSegmentationMode.SINGLE_BLOCK)
        primary_quality = assess_ocr_quality(primary.text)
        logger.debug(f"OCR quality {primary_quality.score}/10 for {image_path}: {primary_quality.issues}")

        result = RecognitionResult(
            text=primary.text,
            confidence=primary.confidence,
            processed_image_path=processed_path,
            quality=primary_quality,
            mode=primary.mode,
            preprocessing_steps=steps
        )
        if not primary_quality.needs_retry:
            return result

        logger.info(f"Low OCR quality ({primary_quality.score}/10), retrying with sparse text segmentation")
        try:
            retry = self.ocr_engine.recognize(processed_path, PageSegmentationMode.SPARSE_TEXT)
        except OCRError as e:
            logger.warning(f"Sparse text retry failed, keeping first OCR pass: {str(e)}")
            result.retried = True
            return result

        retry_quality = assess_ocr_quality(retry.text)
        result.retried = True
        if retry_quality.score > primary_quality.score:
            logger.info(f"Sparse text retry improved OCR quality to {retry_quality.score}/10")
            result.text = retry.text
            result.confidence = retry.confidence
            result.quality = retry_quality
            result.mode = retry.mode

        return result
