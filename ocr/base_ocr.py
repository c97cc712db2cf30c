"""Base OCR engine interface."""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Any
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class OCREngineType(Enum):
    """Supported OCR engine types."""
    TESSERACT = "tesseract"


class PageSegmentationMode(Enum):
    """Page layout assumptions passed to the OCR engine."""
    AUTO = 3
    SINGLE_BLOCK = 6
    SPARSE_TEXT = 11


@dataclass
class OCRResult:
    """Container for OCR results."""
    text: str
    confidence: float
    engine: OCREngineType = None
    mode: PageSegmentationMode = PageSegmentationMode.SINGLE_BLOCK


class OCRError(Exception):
    """Base exception for OCR errors."""
    def __init__(self, message: str, engine: OCREngineType, details: Dict[str, Any] = None):
        super().__init__(message)
        self.engine = engine
        self.details = details or {}


class BaseOCR(ABC):
    """Abstract base class for OCR engines."""

    engine_type: OCREngineType = None

    @abstractmethod
    def _recognize(self, image_path: str, mode: PageSegmentationMode) -> OCRResult:
        """
        Run text recognition with the engine's full receipt configuration.

        Raises:
            OCRError: If the engine fails
        """
        pass

    @abstractmethod
    def _recognize_minimal(self, image_path: str) -> OCRResult:
        """
        Run text recognition with the engine's default configuration.

        Raises:
            OCRError: If the engine fails
        """
        pass

    def recognize(self, image_path: str,
                  mode: PageSegmentationMode = PageSegmentationMode.SINGLE_BLOCK) -> OCRResult:
        """
        Extract text from a preprocessed image.

        On engine failure the call is retried once with minimal configuration.

        Args:
            image_path: Path to the image file
            mode: Page segmentation mode

        Returns:
            OCRResult with the recognized text and a 0-1 confidence

        Raises:
            OCRError: If both the configured and the minimal run fail
        """
        try:
            return self._recognize(image_path, mode)
        except OCRError as e:
            logger.warning(f"{self.engine_type.value} failed in {mode.name} mode, retrying with minimal configuration: {str(e)}")
            try:
                return self._recognize_minimal(image_path)
            except Exception as retry_error:
                raise OCRError(
                    f"OCR failed after retry with minimal configuration: {str(retry_error)}",
                    self.engine_type,
                    {'primary_error': str(e), 'retry_error': str(retry_error)}
                ) from retry_error
