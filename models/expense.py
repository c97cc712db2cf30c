from datetime import date as Date, datetime
from enum import Enum
from typing import List, Optional, Dict, Any
from uuid import UUID, uuid4
from pydantic import BaseModel, Field

RECEIPT_EXPENSE_TAGS = ["receipt-import", "auto-created"]


class CategoryType(str, Enum):
    TRADITIONAL = "traditional"
    VENDOR = "vendor"


class Category(BaseModel):
    id: str
    name: str
    color: str = "#6c757d"
    icon: str = "tag"
    category_type: CategoryType = CategoryType.TRADITIONAL


class Expense(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    amount: float = Field(..., gt=0)
    description: str
    category_id: str
    date: Date
    vendor: str = "Unknown"
    tags: List[str] = Field(default_factory=lambda: list(RECEIPT_EXPENSE_TAGS))
    receipt_id: Optional[UUID] = None
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def is_auto_created(self) -> bool:
        """Whether this expense came from receipt import rather than manual entry."""
        return all(tag in self.tags for tag in RECEIPT_EXPENSE_TAGS)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode='json')
