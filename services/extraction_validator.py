"""
Validation and normalization of extracted receipt fields.
"""

import math
import re
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from models.extracted_fields import ExtractedFields
from utils.date_utils import ISO_DATE_PATTERN, in_supported_range

logger = logging.getLogger(__name__)

MAX_AMOUNT = 10000

VENDOR_BLOCKLIST = [
    re.compile(r'^(null|none|unknown|n/?a)$', re.IGNORECASE),
    re.compile(r'^order details?$', re.IGNORECASE),
    re.compile(r'^ship to\b', re.IGNORECASE),
    re.compile(r'^bill to\b', re.IGNORECASE),
    re.compile(r'^invoice$', re.IGNORECASE),
    re.compile(r'^receipt$', re.IGNORECASE),
    re.compile(r'^thank you\b', re.IGNORECASE),
    re.compile(r'^customer copy$', re.IGNORECASE),
    re.compile(r'^page \d+', re.IGNORECASE),
]

BASE_CONFIDENCE = 0.5
AMOUNT_WEIGHT = 0.3
VENDOR_WEIGHT = 0.2
DATE_WEIGHT = 0.1


class ExtractionValidator:
    """Cleans each extracted field independently and recomputes confidence."""

    def normalize(self, fields: ExtractedFields) -> ExtractedFields:
        """
        Validate and canonicalize extracted fields.

        Invalid fields are dropped rather than reported as errors. Applying
        this twice gives the same result as applying it once.

        Args:
            fields: Output of an extraction strategy

        Returns:
            New ExtractedFields with the authoritative confidence
        """
        vendor = self.normalize_vendor(fields.vendor)
        receipt_date = self.normalize_date(fields.date)
        amount = self.normalize_amount(fields.amount)

        for name, before, after in (('vendor', fields.vendor, vendor),
                                    ('date', fields.date, receipt_date),
                                    ('amount', fields.amount, amount)):
            if before is not None and after is None:
                logger.info(f"Rejected extracted {name}: {before!r}")

        return fields.model_copy(update={
            'vendor': vendor,
            'date': receipt_date,
            'amount': amount,
            'confidence': self.compute_confidence(vendor, receipt_date, amount)
        })

    @staticmethod
    def normalize_vendor(value) -> Optional[str]:
        """Trimmed vendor name, or None for short or structural false positives."""
        if value is None:
            return None
        vendor = ' '.join(str(value).split())
        if len(vendor) < 2:
            return None
        if any(pattern.search(vendor) for pattern in VENDOR_BLOCKLIST):
            return None
        return vendor

    @staticmethod
    def normalize_date(value) -> Optional[str]:
        """
        Canonical YYYY-MM-DD date, or None.

        Strings must already be ISO dates naming a real day. Dates reached
        by coercion (date objects, ISO timestamps) must fall in 2000-2050.
        """
        if value is None:
            return None

        if isinstance(value, datetime):
            value = value.date()
        if isinstance(value, date):
            return value.isoformat() if in_supported_range(value) else None

        text = str(value).strip()
        if ISO_DATE_PATTERN.match(text):
            try:
                return date.fromisoformat(text).isoformat()
            except ValueError:
                return None

        try:
            coerced = datetime.fromisoformat(text).date()
        except ValueError:
            return None
        return coerced.isoformat() if in_supported_range(coerced) else None

    @staticmethod
    def normalize_amount(value) -> Optional[float]:
        """Amount in (0, 10000] rounded half-up to cents, or None."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, str):
            value = value.replace('$', '').replace(',', '').strip()
        try:
            number = float(value)
        except (TypeError, ValueError):
            return None
        if math.isnan(number) or math.isinf(number):
            return None
        try:
            rounded = Decimal(str(number)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
        except InvalidOperation:
            return None
        # Range is checked on the rounded value so a second pass keeps it
        if rounded <= 0 or rounded > MAX_AMOUNT:
            return None
        return float(rounded)

    @staticmethod
    def compute_confidence(vendor: Optional[str], receipt_date: Optional[str], amount: Optional[float]) -> float:
        """0.5 base plus weights for each present field, capped at 1.0."""
        confidence = BASE_CONFIDENCE
        if amount is not None:
            confidence += AMOUNT_WEIGHT
        if vendor is not None:
            confidence += VENDOR_WEIGHT
        if receipt_date is not None:
            confidence += DATE_WEIGHT
        return round(min(1.0, confidence), 2)
