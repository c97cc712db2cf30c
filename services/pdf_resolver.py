"""
PDF handling: embedded text layer first, page rasterization and OCR otherwise.
"""

import logging
from dataclasses import dataclass

import fitz  # PyMuPDF
from PIL import Image

from ocr.base_ocr import OCRError
from services.text_recognizer import TextRecognizer
from storage.storage_manager import StorageManager
from utils.image_preprocessor import ImagePreprocessingError

logger = logging.getLogger(__name__)


class PDFExtractionError(Exception):
    """Raised when a PDF yields no usable text."""


@dataclass
class PDFResolution:
    """Text recovered from a PDF and the image that best represents it."""
    text: str
    representative_image_path: str
    source: str
    pages_processed: int


class PDFResolver:
    """Extracts receipt text from PDFs."""

    def __init__(self,
                 text_recognizer: TextRecognizer,
                 file_store: StorageManager,
                 max_pages: int = 5,
                 dpi: int = 200,
                 max_width: int = 1200,
                 max_height: int = 1600,
                 min_text_length: int = 50):
        """
        Args:
            text_recognizer: Image OCR path used for scanned pages
            file_store: Provides locations for rendered pages
            max_pages: Maximum number of pages rasterized per document
            dpi: Rendering resolution
            max_width: Rendered pages are fitted inside max_width x max_height
            max_height: See max_width
            min_text_length: Text layers longer than this are used without OCR
        """
        self.text_recognizer = text_recognizer
        self.file_store = file_store
        self.max_pages = max_pages
        self.dpi = dpi
        self.max_width = max_width
        self.max_height = max_height
        self.min_text_length = min_text_length

    def resolve(self, pdf_path: str) -> PDFResolution:
        """
        Get the text of a PDF receipt.

        Args:
            pdf_path: Path to the PDF

        Returns:
            PDFResolution

        Raises:
            PDFExtractionError: If the file cannot be opened or no page yields text
        """
        try:
            document = fitz.open(pdf_path)
        except Exception as e:
            raise PDFExtractionError(f"Could not open PDF {pdf_path}: {str(e)}") from e

        with document:
            text = self._extract_text_layer(document)
            if len(text) > self.min_text_length:
                logger.info(f"Using embedded text layer of {pdf_path} ({len(text)} chars)")
                return PDFResolution(
                    text=text,
                    representative_image_path=pdf_path,
                    source='text_layer',
                    pages_processed=document.page_count
                )

            logger.info(f"No usable text layer in {pdf_path}, rasterizing pages for OCR")
            return self._ocr_pages(document, pdf_path)

    def _extract_text_layer(self, document) -> str:
        parts = []
        for page in document:
            try:
                parts.append(page.get_text())
            except Exception as e:
                logger.warning(f"Could not read text layer of page {page.number + 1}: {str(e)}")
        return '\n'.join(parts).strip()

    def _ocr_pages(self, document, pdf_path: str) -> PDFResolution:
        page_count = min(document.page_count, self.max_pages)
        if document.page_count > self.max_pages:
            logger.info(f"PDF has {document.page_count} pages, processing the first {self.max_pages}")

        sections = []
        representative = None

        for index in range(page_count):
            page_number = index + 1
            try:
                image_path = self._render_page(document, index, pdf_path)
            except Exception as e:
                logger.warning(f"Skipping page {page_number}: rendering failed: {str(e)}")
                continue

            if representative is None:
                representative = image_path

            try:
                result = self.text_recognizer.recognize(
                    image_path, self.file_store.processed_path_for(image_path)
                )
            except (OCRError, ImagePreprocessingError) as e:
                logger.warning(f"Skipping page {page_number}: OCR failed: {str(e)}")
                continue

            if not result.text.strip():
                logger.warning(f"Skipping page {page_number}: no text recognized")
                continue

            sections.append(f"--- Page {page_number} ---\n{result.text}\n\n")

        if not sections:
            raise PDFExtractionError("No extractable text found in any page of the PDF")

        return PDFResolution(
            text=''.join(sections),
            representative_image_path=representative,
            source='ocr',
            pages_processed=len(sections)
        )

    def _render_page(self, document, index: int, pdf_path: str) -> str:
        page = document.load_page(index)
        zoom = self.dpi / 72
        pixmap = page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
        image = Image.frombytes('RGB', (pixmap.width, pixmap.height), pixmap.samples)
        image.thumbnail((self.max_width, self.max_height), Image.Resampling.LANCZOS)

        image_path = self.file_store.page_image_path(pdf_path, index + 1)
        image.save(image_path, format='PNG')
        logger.debug(f"Rendered page {index + 1} to {image_path} at {image.size}")
        return image_path
