"""Structured fields extracted from receipt text."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from models.receipt_item import LineItem

MAX_LINE_ITEMS = 8


class ExtractionStrategy(str, Enum):
    """Extraction strategy chosen once per receipt job."""
    HEURISTIC = "heuristic"
    DELEGATED = "delegated"


class ExtractionMethod(str, Enum):
    """Which path actually produced a set of fields."""
    HEURISTIC = "heuristic"
    DELEGATED = "delegated"
    HEURISTIC_FALLBACK = "heuristic_fallback"


class ExtractedFields(BaseModel):
    """Vendor, date, total and line items found on a receipt."""

    vendor: Optional[str] = None
    date: Optional[str] = None
    amount: Optional[float] = None
    items: List[LineItem] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    method: Optional[ExtractionMethod] = None

    @field_validator('items')
    @classmethod
    def cap_items(cls, v):
        """Keep at most MAX_LINE_ITEMS items in discovery order."""
        return v[:MAX_LINE_ITEMS]

    @property
    def has_amount(self) -> bool:
        return self.amount is not None

    def field_count(self) -> int:
        """Number of top-level fields that were found."""
        return sum(1 for value in (self.vendor, self.date, self.amount) if value is not None)
