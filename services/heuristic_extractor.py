"""
Rule-based extraction of vendor, date, total and line items from receipt text.
"""

import re
import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple

from models.extracted_fields import ExtractedFields, ExtractionMethod, MAX_LINE_ITEMS
from models.receipt_item import LineItem
from utils.date_utils import canonicalize_date
from utils.vendor_matcher import VendorMatcher

logger = logging.getLogger(__name__)

HEURISTIC_CONFIDENCE = 0.7
MAX_AMOUNT = 10000.0
MAX_ITEM_PRICE = 100.0
MIN_ITEM_PRICE = 0.01

_AMOUNT = r'(?:\d{1,3}(?:,\d{3})+|\d+)\.\d{2}'

MONEY_PATTERN = re.compile(r'(?<![\d.,])\$?\s*(' + _AMOUNT + r')(?!\.?\d)')
EXPLICIT_TOTAL_PATTERN = re.compile(
    r'\b(grand\s+total|total|amount\s+due|balance\s+due)\b[\s:]*\$?\s*(' + _AMOUNT + r')(?!\.?\d)',
    re.IGNORECASE
)
TOTAL_KEYWORD_PATTERN = re.compile(r'total|amount due|balance', re.IGNORECASE)
DATE_PATTERN = re.compile(r'(?<!\d)(\d{4}-\d{2}-\d{2}|\d{1,2}[-/]\d{1,2}[-/](?:\d{4}|\d{2}))(?!\d)')

BOILERPLATE_PATTERN = re.compile(
    r'^(thank you|visit|www|http|store #|receipt #|transaction|card #|auth #|ref #|shipping|contact|email|phone)',
    re.IGNORECASE
)
ITEM_EXCLUDE_PATTERN = re.compile(
    r'\b(subtotal|total|amount due|tax|payment|card|auth|approved|thank|visit|www|change|cash|balance|'
    r'tend(?:er)?|visa|mastercard|amex|debit|credit)\b',
    re.IGNORECASE
)
ITEM_LINE_PATTERN = re.compile(r"^\s*([A-Za-z][A-Za-z0-9\s&'.\-]*?)\s+\$?(\d{1,3}\.\d{2})\s*$")
ITEM_PREFIX_EXCLUDE = re.compile(r'^(store|receipt|thank|visit|total|subtotal)', re.IGNORECASE)
REAL_WORD_PATTERN = re.compile(r'[A-Za-z]{3,}')


def parse_amount(token: str) -> Optional[float]:
    """Parse a money token such as ``1,234.56`` into a float."""
    try:
        return float(Decimal(token.replace(',', '')))
    except (InvalidOperation, ValueError):
        return None


def amount_in_range(value: Optional[float]) -> bool:
    return value is not None and 0 < value <= MAX_AMOUNT


class HeuristicExtractor:
    """Regex and fuzzy-match extraction that needs no external services."""

    def __init__(self, vendor_matcher: Optional[VendorMatcher] = None, max_items: int = MAX_LINE_ITEMS):
        self.vendor_matcher = vendor_matcher or VendorMatcher()
        self.max_items = max_items

    def extract(self, text: str) -> ExtractedFields:
        """
        Extract receipt fields from raw text.

        Args:
            text: OCR or PDF text

        Returns:
            ExtractedFields with base confidence 0.7
        """
        lines = [line.strip() for line in (text or '').splitlines() if line.strip()]
        content_lines = [line for line in lines if not BOILERPLATE_PATTERN.match(line)]

        vendor_match = self.vendor_matcher.match(lines)
        fields = ExtractedFields(
            vendor=vendor_match.name if vendor_match else None,
            date=self.extract_date(lines),
            amount=self.extract_amount(content_lines),
            items=self.extract_items(content_lines),
            confidence=HEURISTIC_CONFIDENCE,
            method=ExtractionMethod.HEURISTIC
        )
        logger.debug(
            f"Heuristic extraction: vendor={fields.vendor} date={fields.date} "
            f"amount={fields.amount} items={len(fields.items)}"
        )
        return fields

    def extract_amount(self, lines: List[str]) -> Optional[float]:
        """
        Pick the receipt total.

        Explicitly labelled totals win outright, preferring a grand total and
        then the last labelled line. Without one, amounts on lines mentioning
        a total or balance are preferred, and finally the largest amount in
        the document is used.
        """
        explicit = self._explicit_total(lines)
        if explicit is not None:
            logger.debug(f"Using explicit total {explicit}")
            return explicit

        keyword_amounts = []
        all_amounts = []
        for line in lines:
            amounts = [a for a in (parse_amount(t) for t in MONEY_PATTERN.findall(line)) if amount_in_range(a)]
            all_amounts.extend(amounts)
            if TOTAL_KEYWORD_PATTERN.search(line):
                keyword_amounts.extend(amounts)

        if keyword_amounts:
            logger.debug(f"Using largest amount on a total line: {max(keyword_amounts)}")
            return max(keyword_amounts)
        if all_amounts:
            logger.debug(f"No total line found, using largest amount {max(all_amounts)}")
            return max(all_amounts)
        return None

    def _explicit_total(self, lines: List[str]) -> Optional[float]:
        best: Optional[Tuple[bool, int, float]] = None
        for index, line in enumerate(lines):
            for match in EXPLICIT_TOTAL_PATTERN.finditer(line):
                value = parse_amount(match.group(2))
                if not amount_in_range(value):
                    continue
                is_grand = match.group(1).lower().startswith('grand')
                candidate = (is_grand, index, value)
                if best is None or candidate[:2] > best[:2]:
                    best = candidate
        return best[2] if best else None

    def extract_date(self, lines: List[str]) -> Optional[str]:
        """First real calendar date in document order, as YYYY-MM-DD."""
        for line in lines:
            for token in DATE_PATTERN.findall(line):
                canonical = canonicalize_date(token)
                if canonical:
                    return canonical
        return None

    def extract_items(self, lines: List[str]) -> List[LineItem]:
        """Description-and-price lines, deduplicated and capped."""
        items: List[LineItem] = []
        for line in lines:
            if ITEM_EXCLUDE_PATTERN.search(line):
                continue
            match = ITEM_LINE_PATTERN.match(line)
            if not match:
                continue

            description = ' '.join(match.group(1).split())
            price = parse_amount(match.group(2))
            if not (3 <= len(description) <= 40):
                continue
            if not REAL_WORD_PATTERN.search(description) or ITEM_PREFIX_EXCLUDE.match(description):
                continue
            if price is None or not (MIN_ITEM_PRICE < price <= MAX_ITEM_PRICE):
                continue
            if any(item.description.lower() == description.lower() and abs(item.price - price) < 0.01
                   for item in items):
                continue

            items.append(LineItem(description=description, price=price, quantity=1))
            if len(items) >= self.max_items:
                break
        return items
