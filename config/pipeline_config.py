"""Configuration settings for the receipt processing pipeline."""
import os
from typing import Optional

DEFAULT_MAX_UPLOAD_MB = 10


def _env_flag(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class PipelineConfig:
    """Configuration class for storage, OCR and PDF settings."""

    def __init__(self):
        """Initialize pipeline configuration from the environment."""
        self.data_dir: str = os.getenv('RECEIPT_DATA_DIR', 'data')
        self.upload_dir: str = os.getenv('RECEIPT_UPLOAD_DIR', os.path.join(self.data_dir, 'incoming'))
        self.log_dir: str = os.getenv('RECEIPT_LOG_DIR', 'logs')
        self.max_upload_mb: int = int(os.getenv('RECEIPT_MAX_UPLOAD_MB', str(DEFAULT_MAX_UPLOAD_MB)))
        self.debug_output: bool = _env_flag('RECEIPT_DEBUG_OUTPUT')
        self.tesseract_cmd: Optional[str] = os.getenv('TESSERACT_CMD')
        self.ocr_language: str = os.getenv('OCR_LANGUAGE', 'eng')
        self.ocr_timeout: int = int(os.getenv('OCR_TIMEOUT', '30'))
        self.pdf_max_pages: int = int(os.getenv('PDF_MAX_PAGES', '5'))
        self.pdf_dpi: int = int(os.getenv('PDF_DPI', '200'))
        self.pdf_min_text_length: int = int(os.getenv('PDF_MIN_TEXT_LENGTH', '50'))

    @property
    def max_upload_size(self) -> int:
        """Maximum accepted file size in bytes."""
        return self.max_upload_mb * 1024 * 1024

    def validate(self) -> None:
        """Validate the configuration settings."""
        if self.max_upload_mb < 1:
            raise ValueError("Maximum upload size must be at least 1 MB")

        if self.ocr_timeout < 1:
            raise ValueError("OCR timeout must be at least 1 second")

        if self.pdf_max_pages < 1:
            raise ValueError("PDF page limit must be at least 1")

        if self.pdf_dpi < 72:
            raise ValueError("PDF rendering DPI must be at least 72")

        if self.tesseract_cmd and not os.path.exists(self.tesseract_cmd):
            raise FileNotFoundError(f"Tesseract executable not found at: {self.tesseract_cmd}")

    def to_dict(self) -> dict:
        """Convert configuration to dictionary."""
        return {
            'data_dir': self.data_dir,
            'upload_dir': self.upload_dir,
            'log_dir': self.log_dir,
            'max_upload_mb': self.max_upload_mb,
            'debug_output': self.debug_output,
            'tesseract_cmd': self.tesseract_cmd,
            'ocr_language': self.ocr_language,
            'ocr_timeout': self.ocr_timeout,
            'pdf_max_pages': self.pdf_max_pages,
            'pdf_dpi': self.pdf_dpi,
            'pdf_min_text_length': self.pdf_min_text_length
        }

    @classmethod
    def from_dict(cls, config_dict: dict) -> 'PipelineConfig':
        """Create configuration from dictionary, falling back to the environment for missing keys."""
        instance = cls()
        known = instance.to_dict()
        for key, value in config_dict.items():
            if key in known and value is not None:
                setattr(instance, key, value)
        if config_dict.get('data_dir') and not config_dict.get('upload_dir'):
            instance.upload_dir = os.path.join(instance.data_dir, 'incoming')
        return instance
