"""Utility functions for receipt processing.

This package contains image preprocessing, upload validation, date parsing,
vendor matching and logging helpers used by the receipt pipeline.
"""

from .image_preprocessor import ImagePreprocessor, ImagePreprocessingError
from .vendor_matcher import VendorMatcher, VendorMatch

__all__ = [
    'ImagePreprocessor',
    'ImagePreprocessingError',
    'VendorMatcher',
    'VendorMatch'
]
