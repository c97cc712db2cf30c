"""Receipt date parsing helpers."""

import re
from datetime import date, datetime
from typing import Optional

MIN_YEAR = 2000
MAX_YEAR = 2050

ISO_DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')
NUMERIC_DATE_PATTERN = re.compile(r'^(\d{1,2})[-/.](\d{1,2})[-/.](\d{2}|\d{4})$')
YEAR_FIRST_PATTERN = re.compile(r'^(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})$')

# Month-name forms are only trusted inside MIN_YEAR..MAX_YEAR
TEXT_DATE_FORMATS = [
    '%B %d, %Y',
    '%b %d, %Y',
    '%B %d %Y',
    '%b %d %Y',
    '%d %B %Y',
    '%d %b %Y',
    '%b. %d, %Y',
]


def _build(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def in_supported_range(value: date) -> bool:
    return MIN_YEAR <= value.year <= MAX_YEAR


def canonicalize_date(value) -> Optional[str]:
    """
    Convert a receipt date to ``YYYY-MM-DD``.

    Numeric dates are read month first; two-digit years are taken as 20xx.

    Args:
        value: Date string, ``date`` or ``datetime``

    Returns:
        ISO date string, or None if the value is not a real calendar date
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.isoformat() if in_supported_range(value) else None

    text = str(value).strip()
    if not text:
        return None

    if ISO_DATE_PATTERN.match(text):
        return _build(int(text[0:4]), int(text[5:7]), int(text[8:10]))

    match = YEAR_FIRST_PATTERN.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _build(year, month, day)

    match = NUMERIC_DATE_PATTERN.match(text)
    if match:
        month, day, year = match.groups()
        full_year = 2000 + int(year) if len(year) == 2 else int(year)
        return _build(full_year, int(month), int(day))

    for fmt in TEXT_DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt).date()
        except ValueError:
            continue
        return parsed.isoformat() if in_supported_range(parsed) else None

    return None
