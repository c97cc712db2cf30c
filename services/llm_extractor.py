"""
Delegated extraction: ask a language model for the receipt fields and parse its reply.
"""

import json
import re
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Dict, Any

from models.extracted_fields import ExtractedFields, ExtractionMethod
from services.llm_client import BaseLLMClient
from utils.date_utils import canonicalize_date

logger = logging.getLogger(__name__)

DELEGATED_CONFIDENCE = 0.9

PROMPT_TEMPLATE = """Extract vendor, date, and total amount from this receipt.

{text}

Find:
- vendor: The store name (not the customer, not the shipping address)
- date: Order date in format YYYY-MM-DD
- amount: Grand Total (the final price after tax)

Return JSON: {{"vendor": "store name", "date": "YYYY-MM-DD", "amount": 99.99}}"""

VENDOR_FIELD_PATTERN = re.compile(r'"vendor"\s*:\s*"([^"]+)"')
DATE_FIELD_PATTERN = re.compile(r'"date"\s*:\s*"([^"]+)"')
AMOUNT_FIELD_PATTERN = re.compile(r'"amount"\s*:\s*"?\$?([0-9][0-9,]*(?:\.[0-9]+)?)')


def find_json_object(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` span in text, ignoring braces inside strings."""
    start = text.find('{')
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == '\\':
                    escaped = True
                elif char == '"':
                    in_string = False
            elif char == '"':
                in_string = True
            elif char == '{':
                depth += 1
            elif char == '}':
                depth -= 1
                if depth == 0:
                    return text[start:index + 1]
        # Unbalanced from this brace; try the next one
        start = text.find('{', start + 1)
    return None


def coerce_amount(value) -> Optional[float]:
    """Convert a model-supplied amount to a positive two-decimal float."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).replace('$', '').replace(',', '').strip())
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    try:
        return float(amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return None


def coerce_vendor(value) -> Optional[str]:
    if value is None:
        return None
    vendor = ' '.join(str(value).split())
    return vendor or None


class DelegatedExtractor:
    """Builds prompts for a language model and turns replies into ExtractedFields."""

    def __init__(self, client: BaseLLMClient, max_prompt_chars: int = 1500):
        self.client = client
        self.max_prompt_chars = max_prompt_chars

    def build_prompt(self, text: str) -> str:
        """Prompt asking for a single JSON object, with the receipt text truncated."""
        text = text or ''
        if len(text) > self.max_prompt_chars:
            text = text[:self.max_prompt_chars] + '...'
        return PROMPT_TEMPLATE.format(text=text)

    def parse_response(self, response: str) -> Optional[Dict[str, Any]]:
        """
        Read vendor, date and amount from a model reply.

        The first balanced JSON object is decoded; if that fails, the fields
        are pulled out with key/value regexes. Absent or null fields are left
        out of the result, so a decoded object with only nulls yields an
        empty dict.

        Returns:
            Dict of the fields found, or None if the reply held no JSON object
            and no recognisable key/value pair
        """
        span = find_json_object(response or '')
        if span:
            try:
                parsed = json.loads(span)
            except json.JSONDecodeError as e:
                logger.debug(f"Could not decode model JSON, falling back to regex: {str(e)}")
                parsed = None
            if isinstance(parsed, dict):
                return {key: parsed.get(key) for key in ('vendor', 'date', 'amount') if parsed.get(key) is not None}

        fields = {}
        for key, pattern in (('vendor', VENDOR_FIELD_PATTERN),
                             ('date', DATE_FIELD_PATTERN),
                             ('amount', AMOUNT_FIELD_PATTERN)):
            match = pattern.search(response or '')
            if match:
                fields[key] = match.group(1)
        return fields or None

    def extract(self, text: str) -> Optional[ExtractedFields]:
        """
        Extract receipt fields through the language model.

        Returns:
            ExtractedFields with confidence 0.9, or None if the model was
            unreachable or its reply could not be parsed
        """
        response = self.client.extract(self.build_prompt(text))
        if not response:
            return None

        parsed = self.parse_response(response)
        if parsed is None:
            logger.warning("Language model reply contained no parseable fields")
            return None

        fields = ExtractedFields(
            vendor=coerce_vendor(parsed.get('vendor')),
            date=canonicalize_date(parsed.get('date')),
            amount=coerce_amount(parsed.get('amount')),
            confidence=DELEGATED_CONFIDENCE,
            method=ExtractionMethod.DELEGATED
        )
        logger.debug(f"Delegated extraction: vendor={fields.vendor} date={fields.date} amount={fields.amount}")
        return fields
