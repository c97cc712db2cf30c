"""Receipt job model tracking one ingestion attempt."""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any
from uuid import UUID, uuid4
from pydantic import BaseModel, Field
import logging

from models.extracted_fields import ExtractedFields

logger = logging.getLogger(__name__)


class ReceiptStatus(str, Enum):
    """Lifecycle states of a receipt job."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class InvalidStatusTransition(Exception):
    """Raised when a job is moved to a status its current status does not allow."""

    def __init__(self, current: ReceiptStatus, requested: ReceiptStatus):
        super().__init__(f"Cannot move receipt job from {current.value} to {requested.value}")
        self.current = current
        self.requested = requested


class ReceiptJob(BaseModel):
    """A receipt file accepted for processing and the results of processing it."""

    id: UUID = Field(default_factory=uuid4)
    filename: str
    source_path: str = ""
    status: ReceiptStatus = ReceiptStatus.PENDING
    raw_text: Optional[str] = None
    extracted_data: Optional[ExtractedFields] = None
    processed_image_path: Optional[str] = None
    error: Optional[str] = None
    expense_id: Optional[UUID] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    def _move_to(self, status: ReceiptStatus, allowed_from: tuple) -> None:
        if self.status not in allowed_from:
            raise InvalidStatusTransition(self.status, status)
        logger.debug(f"Receipt job {self.id}: {self.status.value} -> {status.value}")
        self.status = status
        self.updated_at = datetime.now()

    def start_processing(self) -> None:
        """Mark the job as picked up by the pipeline."""
        self._move_to(ReceiptStatus.PROCESSING, (ReceiptStatus.PENDING,))

    def complete(self,
                 raw_text: str,
                 extracted_data: ExtractedFields,
                 processed_image_path: Optional[str] = None,
                 expense_id: Optional[UUID] = None) -> None:
        """
        Record extraction results and mark the job completed.

        Args:
            raw_text: Full OCR or PDF text
            extracted_data: Normalized extraction output
            processed_image_path: Artifact the text was read from
            expense_id: Id of the expense created from this receipt, if any
        """
        self._move_to(ReceiptStatus.COMPLETED, (ReceiptStatus.PROCESSING,))
        self.raw_text = raw_text
        self.extracted_data = extracted_data
        self.processed_image_path = processed_image_path
        self.expense_id = expense_id

    def fail(self, error: str) -> None:
        """Mark the job failed, keeping the error message."""
        self._move_to(ReceiptStatus.FAILED, (ReceiptStatus.PENDING, ReceiptStatus.PROCESSING))
        self.error = error

    def to_dict(self) -> Dict[str, Any]:
        """Convert the job to a JSON-friendly dictionary."""
        return self.model_dump(mode='json')
