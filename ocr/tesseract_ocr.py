"""
Tesseract OCR engine implementation.
"""

import logging
import shlex
from collections import OrderedDict
from typing import Dict, Any, Optional

import pytesseract
from PIL import Image

from .base_ocr import BaseOCR, OCRResult, OCRError, OCREngineType, PageSegmentationMode

logger = logging.getLogger(__name__)

# Characters that appear on receipts: alphanumerics, currency and price/date punctuation
RECEIPT_CHAR_WHITELIST = (
    "0123456789"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "abcdefghijklmnopqrstuvwxyz"
    "$.,/:-()#&@"
)


class TesseractOCR(BaseOCR):
    """
    OCR engine using Tesseract's LSTM recognizer.
    """

    engine_type = OCREngineType.TESSERACT

    def __init__(self,
                 tesseract_cmd: Optional[str] = None,
                 language: str = 'eng',
                 timeout: int = 30,
                 whitelist: str = RECEIPT_CHAR_WHITELIST):
        """
        Initialize Tesseract OCR.

        Args:
            tesseract_cmd: Path to Tesseract executable (optional)
            language: Tesseract language pack
            timeout: Seconds before a single recognition call is aborted
            whitelist: Characters the recognizer may emit

        Raises:
            OCRError: If the Tesseract binary is not available
        """
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

        self.language = language
        self.timeout = timeout
        self.whitelist = whitelist

        try:
            self.version = str(pytesseract.get_tesseract_version())
            logger.info(f"Initialized Tesseract OCR {self.version}")
        except Exception as e:
            logger.error(f"Failed to initialize Tesseract OCR: {str(e)}")
            raise OCRError(
                "Tesseract not properly installed or configured",
                self.engine_type,
                {'error_type': 'initialization', 'error': str(e)}
            ) from e

    def build_config(self, mode: PageSegmentationMode) -> str:
        """Tesseract command-line options for a page segmentation mode."""
        whitelist = shlex.quote(f"tessedit_char_whitelist={self.whitelist}")
        return (
            f"--oem 1 --psm {mode.value} "
            f"-c preserve_interword_spaces=1 -c {whitelist}"
        )

    def _recognize(self, image_path: str, mode: PageSegmentationMode) -> OCRResult:
        return self._run(image_path, self.build_config(mode), mode)

    def _recognize_minimal(self, image_path: str) -> OCRResult:
        return self._run(image_path, f"--psm {PageSegmentationMode.AUTO.value}", PageSegmentationMode.AUTO)

    def _run(self, image_path: str, config: str, mode: PageSegmentationMode) -> OCRResult:
        try:
            with Image.open(image_path) as image:
                data = pytesseract.image_to_data(
                    image,
                    lang=self.language,
                    config=config,
                    output_type=pytesseract.Output.DICT,
                    timeout=self.timeout
                )
        except Exception as e:
            raise OCRError(
                f"Error extracting text with Tesseract: {str(e)}",
                self.engine_type,
                {'error_type': 'processing', 'config': config}
            ) from e

        text, confidence = self._assemble(data)
        logger.debug(f"Tesseract {mode.name}: {len(text)} chars, confidence {confidence:.2f}")
        return OCRResult(text=text, confidence=confidence, engine=self.engine_type, mode=mode)

    @staticmethod
    def _assemble(data: Dict[str, Any]):
        """Rebuild line-broken text and a mean word confidence from image_to_data output."""
        lines = OrderedDict()
        confidences = []

        for i, raw_word in enumerate(data.get('text', [])):
            word = (raw_word or '').strip()
            if not word:
                continue
            key = (data['block_num'][i], data['par_num'][i], data['line_num'][i])
            lines.setdefault(key, []).append(word)

            conf = float(data['conf'][i])
            if conf > -1:
                confidences.append(conf)

        text = '\n'.join(' '.join(words) for words in lines.values())
        confidence = (sum(confidences) / len(confidences) / 100.0) if confidences else 0.0
        return text, round(confidence, 4)

    def get_debug_info(self) -> Dict[str, Any]:
        """Get engine settings for health reporting."""
        return {
            'engine_type': self.engine_type.value,
            'version': self.version,
            'language': self.language,
            'timeout': self.timeout
        }
