"""Test configuration and fixtures."""
import pytest
from unittest.mock import Mock
from PIL import Image, ImageDraw

from ocr.base_ocr import BaseOCR, OCRResult, OCREngineType, PageSegmentationMode
from services.llm_client import BaseLLMClient
from storage.json_storage import JSONStorage
from storage.storage_manager import StorageManager

SAMPLE_RECEIPT_TEXT = "WALMART SUPERCENTER\n01/15/2024\nMILK 3.50\nBREAD 2.25\nTOTAL: $5.75"


class FakeOCR(BaseOCR):
    """OCR engine returning canned text per segmentation mode."""

    engine_type = OCREngineType.TESSERACT

    def __init__(self, texts=None, errors=None):
        self.texts = texts or {}
        self.errors = errors or {}
        self.calls = []

    def _recognize(self, image_path, mode):
        self.calls.append((image_path, mode))
        if mode in self.errors:
            raise self.errors[mode]
        return OCRResult(text=self.texts.get(mode, ''), confidence=0.9, engine=self.engine_type, mode=mode)

    def _recognize_minimal(self, image_path):
        self.calls.append((image_path, PageSegmentationMode.AUTO))
        if PageSegmentationMode.AUTO in self.errors:
            raise self.errors[PageSegmentationMode.AUTO]
        return OCRResult(text=self.texts.get(PageSegmentationMode.AUTO, ''), confidence=0.5,
                         engine=self.engine_type, mode=PageSegmentationMode.AUTO)


class FakeLLMClient(BaseLLMClient):
    """Language model client with a fixed health status and reply."""

    def __init__(self, healthy=True, response=None):
        self.healthy = healthy
        self.response = response
        self.prompts = []

    def health_check(self):
        return self.healthy

    def extract(self, prompt):
        self.prompts.append(prompt)
        return self.response


@pytest.fixture
def sample_receipt_text():
    """Minimal receipt text with vendor, date, items and total."""
    return SAMPLE_RECEIPT_TEXT


@pytest.fixture
def storage(tmp_path):
    """JSON storage in a temporary directory."""
    return JSONStorage(str(tmp_path / "data"))


@pytest.fixture
def file_store(tmp_path):
    """File store in a temporary directory."""
    return StorageManager(str(tmp_path / "files"))


@pytest.fixture
def receipt_image(tmp_path):
    """A small synthetic receipt photo."""
    image_path = tmp_path / "receipt.png"
    image = Image.new('RGB', (400, 600), color=(235, 230, 220))
    draw = ImageDraw.Draw(image)
    for i, line in enumerate(SAMPLE_RECEIPT_TEXT.splitlines()):
        draw.text((20, 20 + i * 30), line, fill=(20, 20, 20))
    image.save(image_path)
    return str(image_path)


@pytest.fixture
def fake_ocr():
    """OCR engine that reads the sample receipt in single-block mode."""
    return FakeOCR(texts={PageSegmentationMode.SINGLE_BLOCK: SAMPLE_RECEIPT_TEXT})


@pytest.fixture
def mock_preprocessor(tmp_path):
    """Preprocessor that skips image work and returns a fixed path."""
    preprocessor = Mock()
    preprocessor.preprocess.side_effect = lambda image_path, output_path=None: output_path or image_path
    preprocessor.get_applied_steps.return_value = []
    return preprocessor


@pytest.fixture
def make_fake_ocr():
    """Factory for FakeOCR engines."""
    return FakeOCR


@pytest.fixture
def make_llm_client():
    """Factory for FakeLLMClient instances."""
    return FakeLLMClient
