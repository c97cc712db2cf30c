"""Image preprocessing module for OCR optimization."""

import os
import cv2
import numpy as np
import logging
from PIL import Image, ImageEnhance, ImageFilter, ImageOps
from typing import Optional

logger = logging.getLogger(__name__)

TARGET_WIDTH = 1800
FALLBACK_MAX_WIDTH = 1600


class ImagePreprocessingError(Exception):
    """Raised when neither the full nor the simplified pipeline can process an image."""


class ImagePreprocessor:
    """Turns receipt photos and scans into high-contrast black and white PNGs for OCR."""

    def __init__(self,
                 debug_mode: bool = False,
                 debug_output_dir: str = 'debug_output',
                 target_width: int = TARGET_WIDTH,
                 threshold: int = 120,
                 fallback_threshold: int = 130):
        """
        Initialize the image preprocessor.

        Args:
            debug_mode: Whether to save intermediate processing steps
            debug_output_dir: Directory to save debug output
            target_width: Width small images are upscaled towards and large ones reduced to
            threshold: Binarization threshold of the full pipeline
            fallback_threshold: Binarization threshold of the simplified pipeline
        """
        self.debug_mode = debug_mode
        self.debug_output_dir = debug_output_dir
        self.target_width = target_width
        self.threshold = threshold
        self.fallback_threshold = fallback_threshold
        self.applied_steps = []

        if debug_mode:
            os.makedirs(debug_output_dir, exist_ok=True)

    def preprocess(self, image_path: str, output_path: Optional[str] = None) -> str:
        """
        Preprocess an image for better OCR results.

        Args:
            image_path: Path to the source image
            output_path: Where to write the PNG, defaults to ``<name>_processed.png`` beside the source

        Returns:
            str: Path to the preprocessed PNG

        Raises:
            ImagePreprocessingError: If the simplified pipeline fails as well
        """
        output_path = output_path or self._default_output_path(image_path)
        os.makedirs(os.path.dirname(os.path.abspath(output_path)), exist_ok=True)
        self.applied_steps = []

        try:
            processed = self._advanced_pipeline(image_path)
            processed.save(output_path, format='PNG')
            return output_path
        except Exception as e:
            logger.warning(f"Advanced preprocessing failed for {image_path}, using simplified pipeline: {str(e)}")

        self.applied_steps = []
        try:
            processed = self._fallback_pipeline(image_path)
            processed.save(output_path, format='PNG')
        except Exception as e:
            logger.error(f"Simplified preprocessing failed for {image_path}: {str(e)}")
            raise ImagePreprocessingError(f"Could not preprocess image {image_path}: {str(e)}") from e

        return output_path

    def get_applied_steps(self):
        """Names of the stages applied by the last call to preprocess."""
        return list(self.applied_steps)

    def choose_target_width(self, width: int) -> int:
        """Double narrow images up to the target width; reduce wider ones to it."""
        if width < self.target_width:
            return min(width * 2, self.target_width)
        return self.target_width

    def _advanced_pipeline(self, image_path: str) -> Image.Image:
        with Image.open(image_path) as source:
            img = ImageOps.exif_transpose(source).convert('RGB')
        self._record(img, 'original')

        width, height = img.size
        new_width = self.choose_target_width(width)
        if new_width != width:
            new_height = max(1, round(height * new_width / width))
            img = img.resize((new_width, new_height), Image.Resampling.LANCZOS)
        self._record(img, 'resized')

        img = img.filter(ImageFilter.MedianFilter(size=3))
        self._record(img, 'median')

        img = ImageEnhance.Brightness(img).enhance(1.1)
        img = ImageEnhance.Color(img).enhance(0.8)
        self._record(img, 'modulated')

        pixels = self._normalize_percentiles(np.asarray(img, dtype=np.float32), 5, 95)
        # Linear contrast around mid-grey
        pixels = np.clip(pixels * 1.3 + (128 - 128 * 1.3), 0, 255).astype(np.uint8)
        img = Image.fromarray(pixels)
        self._record(img, 'contrast')

        gray = img.convert('L')
        self._record(gray, 'grayscale')

        gray = gray.filter(ImageFilter.UnsharpMask(radius=1.5, percent=150, threshold=2))
        self._record(gray, 'sharpened')

        _, binary = cv2.threshold(np.asarray(gray), self.threshold, 255, cv2.THRESH_BINARY)
        result = Image.fromarray(binary)
        self._record(result, 'threshold')
        return result

    def _fallback_pipeline(self, image_path: str) -> Image.Image:
        with Image.open(image_path) as source:
            img = source.convert('L')

        width, height = img.size
        if width > FALLBACK_MAX_WIDTH:
            img = img.resize(
                (FALLBACK_MAX_WIDTH, max(1, round(height * FALLBACK_MAX_WIDTH / width))),
                Image.Resampling.LANCZOS
            )
        self._record(img, 'fallback_resized')

        img = ImageOps.autocontrast(img)
        img = ImageEnhance.Contrast(img).enhance(1.2)
        img = img.filter(ImageFilter.SHARPEN)
        self._record(img, 'fallback_enhanced')

        result = img.point(lambda p: 255 if p > self.fallback_threshold else 0)
        self._record(result, 'fallback_threshold')
        return result

    @staticmethod
    def _normalize_percentiles(pixels: np.ndarray, low: float, high: float) -> np.ndarray:
        """Stretch intensities so the given percentiles map to 0 and 255."""
        lo, hi = np.percentile(pixels, (low, high))
        if hi - lo < 1:
            return pixels
        return np.clip((pixels - lo) * 255.0 / (hi - lo), 0, 255)

    def _record(self, image: Image.Image, step: str) -> None:
        self.applied_steps.append(step)
        if self.debug_mode:
            self._save_debug_image(image, f"{len(self.applied_steps):02d}_{step}.png")

    def _save_debug_image(self, image: Image.Image, filename: str) -> None:
        """Save an intermediate image for debugging."""
        image.save(os.path.join(self.debug_output_dir, filename))

    @staticmethod
    def _default_output_path(image_path: str) -> str:
        stem, _ = os.path.splitext(image_path)
        return f"{stem}_processed.png"
