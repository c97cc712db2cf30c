"""
Storage manager for receipt files and the artifacts produced while processing them.
"""

import shutil
import logging
from pathlib import Path
from typing import Optional, Union
from uuid import UUID

from werkzeug.utils import secure_filename

from storage.base import StorageError

logger = logging.getLogger(__name__)


class StorageManager:
    """
    Manages durable copies of receipt files and derived artifacts.

    Layout under the data directory:
    - uploads/    copies of accepted source files, prefixed with the job id
    - processed/  preprocessed PNGs and rendered PDF pages
    - debug/      raw text dumps
    """

    def __init__(self,
                 data_dir: str = "data",
                 uploads_dir: str = "uploads",
                 processed_dir: str = "processed",
                 debug_dir: str = "debug"):
        """
        Initialize the storage manager.

        Args:
            data_dir: Base directory for all stored files
            uploads_dir: Directory for durable source copies
            processed_dir: Directory for preprocessed artifacts
            debug_dir: Directory for raw text dumps
        """
        self.data_dir = Path(data_dir)
        self.uploads_dir = self.data_dir / uploads_dir
        self.processed_dir = self.data_dir / processed_dir
        self.debug_dir = self.data_dir / debug_dir

        for directory in (self.data_dir, self.uploads_dir, self.processed_dir, self.debug_dir):
            directory.mkdir(parents=True, exist_ok=True)

        logger.info(f"Storage manager initialized with data directory: {data_dir}")

    def store_source(self, receipt_id: UUID, file_path: Union[str, Path],
                     filename: Optional[str] = None) -> str:
        """
        Copy an incoming receipt file into durable storage.

        Args:
            receipt_id: Id of the receipt job
            file_path: Path of the caller's file, which may be deleted afterwards
            filename: Original filename, defaults to the file's own name

        Returns:
            str: Path to the durable copy

        Raises:
            StorageError: If the file cannot be copied
        """
        name = secure_filename(filename or Path(file_path).name) or "receipt"
        target = self.uploads_dir / f"{receipt_id}_{name}"
        try:
            shutil.copy2(str(file_path), str(target))
        except OSError as e:
            raise StorageError(f"Could not copy receipt file into storage: {str(e)}") from e

        logger.debug(f"Stored receipt source: {target}")
        return str(target)

    def processed_path_for(self, source_path: Union[str, Path]) -> str:
        """Path of the preprocessed PNG for a source image."""
        return str(self.processed_dir / f"{Path(source_path).stem}_processed.png")

    def page_image_path(self, pdf_path: Union[str, Path], page_number: int) -> str:
        """Path of a rendered PDF page."""
        return str(self.processed_dir / f"{Path(pdf_path).stem}_page{page_number}.png")

    def save_raw_text(self, receipt_id: UUID, text: str) -> str:
        """
        Write the raw recognized text of a receipt to the debug directory.

        Raises:
            StorageError: If the file cannot be written
        """
        text_path = self.debug_dir / f"{receipt_id}_raw.txt"
        try:
            text_path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Could not write raw text dump: {str(e)}") from e

        logger.debug(f"Saved raw receipt text: {text_path}")
        return str(text_path)
