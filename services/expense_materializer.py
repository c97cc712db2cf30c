"""
Creates expenses from validated receipt extractions.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional
from uuid import UUID

from models.expense import Expense, RECEIPT_EXPENSE_TAGS
from models.extracted_fields import ExtractedFields
from services.category_resolver import CategoryResolver
from storage.base import StorageBase

logger = logging.getLogger(__name__)


@dataclass
class MaterializationResult:
    """Either the created expense or the reason none was created."""
    expense: Optional[Expense] = None
    skipped_reason: Optional[str] = None

    @property
    def created(self) -> bool:
        return self.expense is not None


class ExpenseMaterializer:
    """Persists an expense for each receipt whose total was extracted."""

    def __init__(self, storage: StorageBase, category_resolver: Optional[CategoryResolver] = None):
        self.storage = storage
        self.category_resolver = category_resolver or CategoryResolver(storage)

    def build_expense(self, fields: ExtractedFields, receipt_id: UUID) -> Expense:
        """Expense record for validated fields that include an amount."""
        vendor = fields.vendor or "Unknown"
        return Expense(
            amount=fields.amount,
            description=f"Purchase at {fields.vendor}" if fields.vendor else "Receipt purchase",
            category_id=self.category_resolver.resolve_category_id(fields.vendor),
            date=date.fromisoformat(fields.date) if fields.date else date.today(),
            vendor=vendor,
            tags=list(RECEIPT_EXPENSE_TAGS),
            receipt_id=receipt_id
        )

    def materialize(self, fields: ExtractedFields, receipt_id: UUID) -> MaterializationResult:
        """
        Create and store an expense if the receipt total is known.

        Missing vendor or date never block creation. Reprocessing the same
        receipt creates another expense.

        Args:
            fields: Normalized extraction output
            receipt_id: Receipt job the expense comes from

        Returns:
            MaterializationResult

        Raises:
            StorageError: If the category or expense cannot be persisted
        """
        if not fields.has_amount:
            logger.info(f"No expense created for receipt {receipt_id}: no valid amount")
            return MaterializationResult(skipped_reason="no valid amount extracted")

        expense = self.build_expense(fields, receipt_id)
        self.storage.save_expense(expense)
        logger.info(f"Created expense {expense.id} of {expense.amount:.2f} for receipt {receipt_id}")
        return MaterializationResult(expense=expense)
