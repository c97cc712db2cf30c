"""Tests for extracted field validation."""

import math
from datetime import date, datetime

import pytest

from models.extracted_fields import ExtractedFields, ExtractionMethod
from models.receipt_item import LineItem
from services.extraction_validator import ExtractionValidator


@pytest.fixture
def validator():
    return ExtractionValidator()


def test_normalize_is_idempotent(validator):
    """Test that validating twice equals validating once."""
    fields = ExtractedFields(
        vendor="  Trader   Joe's ",
        date="2024-03-09",
        amount=12.345,
        items=[LineItem("BANANAS", 0.99)],
        confidence=0.9,
        method=ExtractionMethod.DELEGATED,
    )

    once = validator.normalize(fields)
    twice = validator.normalize(once)

    assert once == twice
    assert once.vendor == "Trader Joe's"
    assert once.amount == 12.35
    assert once.items == fields.items
    assert once.method == ExtractionMethod.DELEGATED


@pytest.mark.parametrize("amount,expected", [
    (0.004, None),
    (0.005, 0.01),
    (10000.004, 10000.0),
    (10000.006, None),
])
def test_normalize_is_idempotent_at_amount_bounds(validator, amount, expected):
    """Test that rounding never moves an accepted amount out of range."""
    once = validator.normalize(ExtractedFields(amount=amount))
    twice = validator.normalize(once)

    assert once.amount == expected
    assert once == twice


def test_normalize_does_not_mutate_input(validator):
    fields = ExtractedFields(vendor="Receipt", amount=-4.0, confidence=0.7)
    validator.normalize(fields)
    assert fields.vendor == "Receipt"
    assert fields.amount == -4.0


@pytest.mark.parametrize("vendor", [
    "null", "None", "N/A", "unknown", "Order Details", "Ship to: 12 Elm St",
    "Bill To", "RECEIPT", "Thank you for shopping", "Page 2 of 3", "X", " ",
])
def test_structural_vendors_rejected(validator, vendor):
    assert validator.normalize_vendor(vendor) is None


def test_real_vendor_kept(validator):
    assert validator.normalize_vendor("Corner Deli") == "Corner Deli"


@pytest.mark.parametrize("value,expected", [
    ("2024-01-15", "2024-01-15"),
    ("2024-02-29", "2024-02-29"),
    ("2023-02-29", None),
    ("2024-13-01", None),
    ("01/15/2024", None),
    ("yesterday", None),
    ("2024-01-15T10:30:00", "2024-01-15"),
    ("1999-12-31T23:59:00", None),
    (date(2030, 6, 1), "2030-06-01"),
    (datetime(2024, 1, 15, 9, 0), "2024-01-15"),
    (date(1998, 6, 1), None),
    (date(2051, 1, 1), None),
    (None, None),
])
def test_normalize_date(validator, value, expected):
    assert validator.normalize_date(value) == expected


@pytest.mark.parametrize("value,expected", [
    (5.75, 5.75),
    (2.005, 2.01),
    ("$1,249.99", 1249.99),
    ("12", 12.0),
    (10000, 10000.0),
    (10000.01, None),
    (0, None),
    (0.004, None),
    (0.005, 0.01),
    (10000.004, 10000.0),
    (1e30, None),
    (math.inf, None),
    (-3.5, None),
    (math.nan, None),
    ("abc", None),
    (True, None),
    (None, None),
])
def test_normalize_amount(validator, value, expected):
    assert validator.normalize_amount(value) == expected


@pytest.mark.parametrize("vendor,receipt_date,amount,expected", [
    (None, None, None, 0.5),
    (None, None, 5.0, 0.8),
    ("Target", None, None, 0.7),
    (None, "2024-01-15", None, 0.6),
    ("Target", None, 5.0, 1.0),
    ("Target", "2024-01-15", 5.0, 1.0),
])
def test_compute_confidence(validator, vendor, receipt_date, amount, expected):
    assert validator.compute_confidence(vendor, receipt_date, amount) == expected


def test_confidence_replaces_strategy_confidence(validator):
    """Test that the validator's confidence is authoritative."""
    fields = ExtractedFields(vendor="ok", amount=0, confidence=0.9)
    normalized = validator.normalize(fields)

    assert normalized.amount is None
    assert normalized.confidence == 0.7
