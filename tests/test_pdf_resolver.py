"""Tests for PDF text resolution."""

import os
from unittest.mock import Mock

import fitz
import pytest
from PIL import Image

from ocr.base_ocr import OCRError, OCREngineType
from ocr.quality_gate import OCRQualityReport
from services.pdf_resolver import PDFResolver, PDFExtractionError
from services.text_recognizer import TextRecognizer, RecognitionResult


def make_pdf(path, pages):
    """Write a PDF with one page per entry; None leaves a page blank."""
    document = fitz.open()
    for text in pages:
        page = document.new_page()
        if text:
            for i, line in enumerate(text.splitlines()):
                page.insert_text((72, 72 + i * 14), line)
    document.save(str(path))
    document.close()
    return str(path)


def recognition(text):
    return RecognitionResult(text=text, confidence=0.9, processed_image_path="p.png",
                             quality=OCRQualityReport(score=10))


@pytest.fixture
def recognizer():
    return Mock(spec=TextRecognizer)


def test_text_layer_used_without_ocr(tmp_path, file_store, recognizer):
    """Test that an embedded text layer skips rasterization entirely."""
    text = "CORNER BOOKSHOP\n01/20/2024\nNOVEL 14.99\nMAP 6.50\nTOTAL 21.49"
    pdf_path = make_pdf(tmp_path / "invoice.pdf", [text])

    resolution = PDFResolver(recognizer, file_store).resolve(pdf_path)

    assert resolution.source == 'text_layer'
    assert "TOTAL 21.49" in resolution.text
    assert resolution.representative_image_path == pdf_path
    recognizer.recognize.assert_not_called()


def test_scanned_pages_ocr_skips_failed_page(tmp_path, file_store, recognizer):
    """Test that a failing page is skipped and later pages still count."""
    pdf_path = make_pdf(tmp_path / "scan.pdf", [None, None])
    recognizer.recognize.side_effect = [
        OCRError("unreadable", OCREngineType.TESSERACT),
        recognition("TARGET\nTOTAL 9.99"),
    ]

    resolution = PDFResolver(recognizer, file_store).resolve(pdf_path)

    assert resolution.source == 'ocr'
    assert resolution.text == "--- Page 2 ---\nTARGET\nTOTAL 9.99\n\n"
    assert resolution.pages_processed == 1
    assert resolution.representative_image_path.endswith("scan_page1.png")
    assert os.path.exists(resolution.representative_image_path)


def test_page_limit(tmp_path, file_store, recognizer):
    pdf_path = make_pdf(tmp_path / "long.pdf", [None] * 4)
    recognizer.recognize.return_value = recognition("PAGE TEXT")

    resolution = PDFResolver(recognizer, file_store, max_pages=2).resolve(pdf_path)

    assert recognizer.recognize.call_count == 2
    assert resolution.text.count("--- Page") == 2


def test_rendered_pages_fit_bounds(tmp_path, file_store, recognizer):
    pdf_path = make_pdf(tmp_path / "big.pdf", [None])
    recognizer.recognize.return_value = recognition("TEXT")

    resolution = PDFResolver(recognizer, file_store, dpi=300).resolve(pdf_path)

    with Image.open(resolution.representative_image_path) as img:
        assert img.size[0] <= 1200
        assert img.size[1] <= 1600


def test_no_text_anywhere_raises(tmp_path, file_store, recognizer):
    pdf_path = make_pdf(tmp_path / "blank.pdf", [None, None])
    recognizer.recognize.return_value = recognition("   ")

    with pytest.raises(PDFExtractionError, match="No extractable text found in any page of the PDF"):
        PDFResolver(recognizer, file_store).resolve(pdf_path)


def test_unopenable_pdf_raises(tmp_path, file_store, recognizer):
    broken = tmp_path / "broken.pdf"
    broken.write_bytes(b"this is not a pdf document")

    with pytest.raises(PDFExtractionError):
        PDFResolver(recognizer, file_store).resolve(str(broken))
