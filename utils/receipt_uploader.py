import os
import uuid
import logging
from typing import Optional

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif', 'bmp', 'pdf'}
ALLOWED_MIME_TYPES = {'image/jpeg', 'image/png', 'image/gif', 'application/pdf'}
MAX_UPLOAD_SIZE = 10 * 1024 * 1024


class UnsupportedFileError(ValueError):
    """Raised for files whose type the pipeline does not accept."""


class FileTooLargeError(ValueError):
    """Raised for files over the upload size limit."""


def file_extension(filename: str) -> str:
    return os.path.splitext(filename)[1].lower().lstrip('.')


def is_pdf(file_path: str) -> bool:
    return file_extension(file_path) == 'pdf'


def validate_receipt_file(file_path: str, max_size: int = MAX_UPLOAD_SIZE) -> str:
    """
    Check that a receipt file can be processed.

    Args:
        file_path: Path to the receipt image or PDF
        max_size: Maximum size in bytes

    Returns:
        The lower-cased file extension

    Raises:
        FileNotFoundError: If the file does not exist
        UnsupportedFileError: If the extension is not accepted
        FileTooLargeError: If the file exceeds max_size
    """
    if not os.path.isfile(file_path):
        raise FileNotFoundError(f"Receipt file not found: {file_path}")

    extension = file_extension(file_path)
    if extension not in ALLOWED_EXTENSIONS:
        raise UnsupportedFileError(f"Unsupported file format: .{extension or '?'}")

    size = os.path.getsize(file_path)
    if size > max_size:
        raise FileTooLargeError(f"File is {size} bytes, the limit is {max_size} bytes")
    if size == 0:
        raise UnsupportedFileError("Receipt file is empty")

    return extension


class ReceiptUploader:
    """Utility for accepting receipt uploads over HTTP."""

    def __init__(self, upload_dir: str = "uploads/incoming", max_size: int = MAX_UPLOAD_SIZE):
        self.upload_dir = upload_dir
        self.max_size = max_size
        self._ensure_upload_dir()

    def _ensure_upload_dir(self) -> None:
        """Ensure that the upload directory exists."""
        if not os.path.exists(self.upload_dir):
            os.makedirs(self.upload_dir)

    def validate_upload(self, upload: FileStorage) -> str:
        """
        Check an uploaded file's name and MIME type.

        Returns:
            The sanitized filename

        Raises:
            UnsupportedFileError: If the name or MIME type is not accepted
        """
        filename = secure_filename(upload.filename or '')
        if not filename:
            raise UnsupportedFileError("No file name provided")

        if file_extension(filename) not in ALLOWED_EXTENSIONS:
            raise UnsupportedFileError(f"Unsupported file format: {filename}")

        mimetype = (upload.mimetype or '').lower()
        if mimetype not in ALLOWED_MIME_TYPES:
            raise UnsupportedFileError(f"Unsupported content type: {mimetype or 'unknown'}")

        return filename

    def save_upload(self, upload: FileStorage) -> str:
        """
        Save an upload to a temporary location for processing.

        Returns:
            Path of the saved file

        Raises:
            UnsupportedFileError: If the upload is rejected
            FileTooLargeError: If the saved file exceeds the size limit
        """
        filename = self.validate_upload(upload)
        target_path = os.path.join(self.upload_dir, f"{uuid.uuid4().hex[:8]}_{filename}")
        upload.save(target_path)

        if os.path.getsize(target_path) > self.max_size:
            self.discard(target_path)
            raise FileTooLargeError(f"Upload exceeds {self.max_size} bytes")

        logger.debug(f"Saved upload {filename} to {target_path}")
        return target_path

    def discard(self, file_path: Optional[str]) -> None:
        """Remove a temporary upload once it has been copied into storage."""
        if file_path and os.path.exists(file_path):
            os.remove(file_path)
