from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from models.expense import Expense, Category
from models.receipt import ReceiptJob


class StorageError(Exception):
    """Raised when a record cannot be read or written."""


class StorageBase(ABC):
    """Base class for storage implementations used by the receipt pipeline."""

    @abstractmethod
    def save_receipt_job(self, job: ReceiptJob) -> None:
        """Insert or update a receipt job by id."""
        pass

    @abstractmethod
    def get_receipt_job(self, job_id: UUID) -> Optional[ReceiptJob]:
        """Retrieve a receipt job by id."""
        pass

    @abstractmethod
    def save_expense(self, expense: Expense) -> None:
        """Insert an expense linked to a receipt."""
        pass

    @abstractmethod
    def get_expenses_for_receipt(self, receipt_id: UUID) -> List[Expense]:
        """Get every expense created from a receipt job."""
        pass

    @abstractmethod
    def get_category_by_name(self, name: str) -> Optional[Category]:
        """Look up a category by name, case-insensitively."""
        pass

    @abstractmethod
    def save_category(self, category: Category) -> None:
        """Insert a new category."""
        pass

    @abstractmethod
    def list_categories(self) -> List[Category]:
        """Get all categories."""
        pass
