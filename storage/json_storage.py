import json
import os
import threading
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional, Union
from uuid import UUID
import logging

from pydantic import ValidationError

from models.expense import Expense, Category
from models.receipt import ReceiptJob
from storage.base import StorageBase, StorageError

logger = logging.getLogger(__name__)


class JSONStorage(StorageBase):
    """Storage implementation using JSON files."""

    def __init__(self, data_dir: str = "data"):
        self.data_dir = data_dir
        self.receipts_dir = os.path.join(data_dir, "receipts")
        self.expenses_file = os.path.join(data_dir, "expenses.json")
        self.categories_file = os.path.join(data_dir, "categories.json")
        self._lock = threading.RLock()
        self._ensure_data_dirs()

    def _ensure_data_dirs(self) -> None:
        """Ensure that all required directories exist."""
        for directory in [self.data_dir, self.receipts_dir]:
            if not os.path.exists(directory):
                os.makedirs(directory)

    def _get_receipt_path(self, job_id: UUID) -> str:
        """Get the file path for a specific receipt job's data."""
        return os.path.join(self.receipts_dir, f"{str(job_id)}.json")

    def _json_serialize(self, obj: object) -> Union[str, dict]:
        """Custom serializer for objects that aren't JSON serializable."""
        if isinstance(obj, (UUID, date, datetime)):
            return str(obj)

        if isinstance(obj, Enum):
            return obj.value

        # For pydantic models, use their dump method
        if hasattr(obj, "model_dump"):
            return obj.model_dump(mode="json")

        raise TypeError(f"Type {type(obj)} not serializable")

    def _read_json(self, file_path: str, default):
        if not os.path.exists(file_path):
            return default
        try:
            with open(file_path, "r") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupted data file {file_path}: {str(e)}") from e
        except OSError as e:
            raise StorageError(f"Could not read {file_path}: {str(e)}") from e

    def _write_json(self, file_path: str, data) -> None:
        # Write to a sibling temp file first so readers never see a partial document
        tmp_path = f"{file_path}.tmp"
        try:
            with open(tmp_path, "w") as f:
                json.dump(data, f, default=self._json_serialize, indent=2)
            os.replace(tmp_path, file_path)
        except (OSError, TypeError) as e:
            raise StorageError(f"Could not write {file_path}: {str(e)}") from e

    def save_receipt_job(self, job: ReceiptJob) -> None:
        """Save a receipt job, replacing any previous version."""
        with self._lock:
            self._write_json(self._get_receipt_path(job.id), job.model_dump(mode="json"))
        logger.debug(f"Saved receipt job {job.id} ({job.status.value})")

    def get_receipt_job(self, job_id: UUID) -> Optional[ReceiptJob]:
        """Retrieve a receipt job by ID."""
        with self._lock:
            data = self._read_json(self._get_receipt_path(job_id), None)
        if data is None:
            return None
        try:
            return ReceiptJob.model_validate(data)
        except ValidationError as e:
            raise StorageError(f"Invalid receipt job record {job_id}: {str(e)}") from e

    def save_expense(self, expense: Expense) -> None:
        """Append an expense to the expense file."""
        with self._lock:
            expenses = self._read_json(self.expenses_file, [])
            expenses.append(expense.model_dump(mode="json"))
            self._write_json(self.expenses_file, expenses)
        logger.info(f"Saved expense {expense.id} for receipt {expense.receipt_id}")

    def get_expenses_for_receipt(self, receipt_id: UUID) -> List[Expense]:
        """Get every expense linked to a receipt job."""
        with self._lock:
            expenses = self._read_json(self.expenses_file, [])
        return [
            Expense.model_validate(data)
            for data in expenses
            if data.get("receipt_id") == str(receipt_id)
        ]

    def _read_categories(self) -> Dict[str, Dict]:
        return self._read_json(self.categories_file, {})

    def get_category_by_name(self, name: str) -> Optional[Category]:
        """Look up a category by name, ignoring case."""
        with self._lock:
            categories = self._read_categories()
        data = categories.get(name.strip().lower())
        return Category.model_validate(data) if data else None

    def save_category(self, category: Category) -> None:
        """Insert a category keyed by its lower-cased name."""
        with self._lock:
            categories = self._read_categories()
            key = category.name.strip().lower()
            if key in categories:
                logger.debug(f"Category {category.name} already stored")
                return
            categories[key] = category.model_dump(mode="json")
            self._write_json(self.categories_file, categories)
        logger.info(f"Created category {category.name} ({category.category_type.value})")

    def list_categories(self) -> List[Category]:
        """Get all categories sorted by name."""
        with self._lock:
            categories = self._read_categories()
        return sorted(
            (Category.model_validate(data) for data in categories.values()),
            key=lambda c: c.name.lower()
        )
