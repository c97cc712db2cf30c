"""
Maps vendor names to expense categories, creating categories on demand.
"""

import re
import logging
import threading
from typing import Dict, Any, List, Optional, Tuple
from uuid import NAMESPACE_URL, uuid5

from models.expense import Category, CategoryType
from storage.base import StorageBase

logger = logging.getLogger(__name__)

DEFAULT_COLOR = "#6c757d"
VENDOR_ICON = "store"
OTHER_CATEGORY = "Other"

CATEGORY_DEFINITIONS: Dict[str, Dict[str, Any]] = {
    'Groceries': {
        'color': '#28a745', 'icon': 'shopping-cart',
        'vendors': ['walmart', 'target', 'kroger', 'aldi', 'costco', 'whole foods',
                    'trader joes', 'safeway', 'publix'],
    },
    'Restaurants': {
        'color': '#fd7e14', 'icon': 'utensils',
        'vendors': ['mcdonalds', 'burger king', 'kfc', 'taco bell', 'subway', 'chipotle',
                    'starbucks', 'dunkin', 'panera'],
    },
    'Food Delivery': {
        'color': '#dc3545', 'icon': 'motorcycle',
        'vendors': ['doordash', 'uber eats', 'grubhub', 'postmates', 'instacart'],
    },
    'Gas & Fuel': {
        'color': '#ffc107', 'icon': 'gas-pump',
        'vendors': ['shell', 'exxon', 'chevron', 'bp', 'mobil', 'texaco', 'arco'],
    },
    'Transportation': {
        'color': '#6f42c1', 'icon': 'car',
        'vendors': ['uber', 'lyft', 'taxi', 'metro', 'bus'],
    },
    'Online Shopping': {
        'color': '#ff9900', 'icon': 'box',
        'vendors': ['amazon', 'ebay', 'etsy', 'ali express'],
    },
    'Home & Garden': {
        'color': '#e67e22', 'icon': 'hammer',
        'vendors': ['home depot', 'lowes', 'menards', 'home improvement'],
    },
    'Electronics': {
        'color': '#3498db', 'icon': 'laptop',
        'vendors': ['best buy', 'apple', 'microsoft', 'gamestop', 'electronics'],
    },
    'Pharmacy & Health': {
        'color': '#e74c3c', 'icon': 'prescription-bottle',
        'vendors': ['cvs', 'walgreens', 'rite aid', 'pharmacy'],
    },
    'Entertainment': {
        'color': '#9b59b6', 'icon': 'film',
        'vendors': ['netflix', 'spotify', 'hulu', 'disney', 'amazon prime', 'youtube'],
    },
    'Bills & Utilities': {
        'color': '#34495e', 'icon': 'file-invoice',
        'vendors': ['electric', 'gas', 'water', 'internet', 'phone', 'cable',
                    'at&t', 'verizon', 't-mobile'],
    },
}

# Traditional categories that no vendor maps to but are offered for manual entry
EXTRA_CATEGORIES: Dict[str, Dict[str, str]] = {
    'Personal Care': {'color': '#17a2b8', 'icon': 'spa'},
    'Travel': {'color': '#20c997', 'icon': 'plane'},
    'Education': {'color': '#6610f2', 'icon': 'graduation-cap'},
    OTHER_CATEGORY: {'color': DEFAULT_COLOR, 'icon': 'tag'},
}


def category_id_for(name: str) -> str:
    """Deterministic category id derived from the lower-cased name."""
    return str(uuid5(NAMESPACE_URL, f"category:{name.strip().lower()}"))


def normalize_vendor_key(vendor: str) -> str:
    """Lowercase and strip apostrophes and dots so "Lowe's" and "lowes" compare equal."""
    return ' '.join(re.sub(r"['.]", '', vendor.lower()).split())


def display_name(vendor: str) -> str:
    """Capitalize each word of a vendor name."""
    return ' '.join(word[:1].upper() + word[1:] for word in vendor.split())


class CategoryResolver:
    """Resolves vendors to stored categories."""

    def __init__(self, storage: StorageBase):
        self.storage = storage
        self._lock = threading.Lock()
        self._keywords: List[Tuple[str, str]] = sorted(
            ((keyword, name) for name, definition in CATEGORY_DEFINITIONS.items() for keyword in definition['vendors']),
            key=lambda pair: len(pair[0]),
            reverse=True
        )

    def lookup(self, vendor: Optional[str]) -> Category:
        """
        Work out which category a vendor belongs to, without touching storage.

        Exact keyword matches win; otherwise the longest keyword contained in
        the vendor name as whole words is used. Unmatched vendors get their
        own vendor-type category.
        """
        if not vendor or not vendor.strip():
            return self._traditional(OTHER_CATEGORY)

        key = normalize_vendor_key(vendor)
        for keyword, name in self._keywords:
            if key == keyword:
                return self._traditional(name)

        for keyword, name in self._keywords:
            if re.search(rf'(?<![a-z0-9]){re.escape(keyword)}(?![a-z0-9])', key):
                return self._traditional(name)

        name = display_name(vendor.strip())
        return Category(
            id=category_id_for(name),
            name=name,
            color=DEFAULT_COLOR,
            icon=VENDOR_ICON,
            category_type=CategoryType.VENDOR
        )

    def resolve(self, vendor: Optional[str]) -> Category:
        """
        Get the stored category for a vendor, creating it if needed.

        Repeated calls with the same vendor return the same category and
        never create duplicates.

        Args:
            vendor: Normalized vendor name, or None

        Returns:
            The stored Category

        Raises:
            StorageError: If the category cannot be read or written
        """
        category = self.lookup(vendor)
        with self._lock:
            existing = self.storage.get_category_by_name(category.name)
            if existing is not None:
                return existing
            self.storage.save_category(category)
        logger.info(f"Created {category.category_type.value} category '{category.name}' for vendor {vendor!r}")
        return category

    def resolve_category_id(self, vendor: Optional[str]) -> str:
        return self.resolve(vendor).id

    def seed_default_categories(self) -> List[Category]:
        """Store every traditional category that does not exist yet."""
        created = []
        names = list(CATEGORY_DEFINITIONS) + list(EXTRA_CATEGORIES)
        with self._lock:
            for name in names:
                if self.storage.get_category_by_name(name) is None:
                    category = self._traditional(name)
                    self.storage.save_category(category)
                    created.append(category)
        if created:
            logger.info(f"Seeded {len(created)} default categories")
        return created

    @staticmethod
    def _traditional(name: str) -> Category:
        definition = CATEGORY_DEFINITIONS.get(name) or EXTRA_CATEGORIES[name]
        return Category(
            id=category_id_for(name),
            name=name,
            color=definition['color'],
            icon=definition['icon'],
            category_type=CategoryType.TRADITIONAL
        )
