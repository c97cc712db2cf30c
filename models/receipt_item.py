"""
Line item model for individual purchases found on a receipt.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Any


def round_currency(value: float) -> float:
    """Round a money value half-up to cents."""
    return float(Decimal(str(value)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))


@dataclass
class LineItem:
    """
    Represents a single priced line on a receipt.
    """
    description: str
    price: float
    quantity: int = 1

    def __post_init__(self):
        """Normalize whitespace in the description and round the price to cents."""
        self.description = ' '.join(str(self.description).split())
        self.price = round_currency(self.price)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the item to a dictionary."""
        return {
            'description': self.description,
            'price': self.price,
            'quantity': self.quantity
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LineItem':
        """Create a LineItem from a dictionary."""
        return cls(
            description=data['description'],
            price=data['price'],
            quantity=data.get('quantity', 1)
        )
