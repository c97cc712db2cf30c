"""Fuzzy matching of receipt header lines against known vendor names."""

import re
import logging
from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import Dict, List, Optional, Iterable

logger = logging.getLogger(__name__)

KNOWN_VENDORS: Dict[str, List[str]] = {
    'Walmart': ['walmart', 'wal-mart', 'wal mart', 'walmart supercenter', 'walmart.com'],
    'Target': ['target', 'target.com', 'target corporation'],
    'Amazon': ['amazon', 'amazon.com', 'amazon prime', 'amzn', 'amazon marketplace'],
    'Kroger': ['kroger', 'kroger co', 'kroger family', 'kroger.com'],
    'Aldi': ['aldi', 'aldi inc', 'aldi foods', 'aldi store'],
    'Costco': ['costco', 'costco wholesale', 'costco.com'],
    'Instacart': ['instacart', 'instacart.com'],
    'DoorDash': ['doordash', 'door dash', 'doordash.com'],
    'Uber Eats': ['uber eats', 'uber', 'ubereats'],
    'Starbucks': ['starbucks', 'starbucks coffee', 'starbucks corporation'],
    'Home Depot': ['home depot', 'the home depot', 'homedepot.com'],
    'Lowes': ['lowes', 'lowes home improvement'],
    'Best Buy': ['best buy', 'bestbuy.com'],
    'CVS': ['cvs', 'cvs pharmacy', 'cvs health'],
    'Walgreens': ['walgreens', 'walgreens pharmacy'],
    'Shell': ['shell', 'shell oil', 'shell station'],
    'Exxon': ['exxon', 'exxonmobil', 'exxon mobil'],
    'McDonalds': ['mcdonalds', 'mc donalds'],
    'Subway': ['subway', 'subway sandwiches'],
    'Chipotle': ['chipotle', 'chipotle mexican grill'],
    'Whole Foods': ['whole foods', 'whole foods market', 'wholefoods'],
}

IRRELEVANT_LINE_PATTERNS = [
    re.compile(r'^(show order|order #|thank you|shipping|contact|total|subtotal|tax|order details)', re.IGNORECASE),
    re.compile(r'^(receipt|transaction|card|auth|approved|declined)', re.IGNORECASE),
    re.compile(r'^(date|time|address|phone|email|website)', re.IGNORECASE),
    re.compile(r'^(ship to|shipped to|redeem|offer|coupon)', re.IGNORECASE),
    re.compile(r'^\$\d+'),
    re.compile(r'^\d+\s*$'),
    re.compile(r'^[^a-zA-Z]*$'),
    re.compile(r'^.{0,2}$'),
]


@dataclass
class VendorMatch:
    """Best vendor candidate for a receipt."""
    name: str
    confidence: float
    line: str
    variation: str


def clean_text(text: str) -> str:
    """Lowercase, turn punctuation into spaces and collapse whitespace."""
    return ' '.join(re.sub(r'[^a-z0-9]+', ' ', text.lower()).split())


def is_irrelevant_line(line: str) -> bool:
    stripped = line.strip()
    return any(pattern.match(stripped) for pattern in IRRELEVANT_LINE_PATTERNS)


class VendorMatcher:
    """
    Finds the vendor named near the top of a receipt.

    A line containing a known variation as whole words matches with
    confidence 1.0. Otherwise single words longer than two characters are
    compared to single-word variations and must score above
    ``word_threshold``. A whole line is compared to a variation only when
    one of its words resembles the vendor's own name, and must score above
    ``line_threshold``. On equal confidence the earliest line wins.
    """

    def __init__(self,
                 known_vendors: Optional[Dict[str, List[str]]] = None,
                 line_threshold: float = 0.5,
                 word_threshold: float = 0.6,
                 max_lines: int = 20):
        self.line_threshold = line_threshold
        self.word_threshold = word_threshold
        self.max_lines = max_lines
        vendors = known_vendors or KNOWN_VENDORS
        self._variations = [
            (name, clean_text(variation))
            for name, variations in vendors.items()
            for variation in variations
        ]
        self._name_words = {
            name: [word for word in clean_text(name).split() if len(word) > 2]
            for name in vendors
        }

    def candidate_lines(self, lines: Iterable[str]) -> List[str]:
        """Non-empty, vendor-plausible lines from the top of the receipt."""
        candidates = [line.strip() for line in lines if line.strip() and not is_irrelevant_line(line)]
        return candidates[:self.max_lines]

    def match(self, lines: Iterable[str]) -> Optional[VendorMatch]:
        """
        Match receipt lines against the known vendor table.

        Args:
            lines: Receipt text split into lines

        Returns:
            The highest-confidence VendorMatch, or None if nothing passes the thresholds
        """
        best: Optional[VendorMatch] = None
        best_key = None

        for index, line in enumerate(self.candidate_lines(lines)):
            cleaned = clean_text(line)
            if not cleaned:
                continue
            for candidate in self._score_line(line, cleaned):
                # Higher confidence wins, then the earlier line, then the longer variation
                key = (candidate.confidence, -index, len(candidate.variation))
                if best_key is None or key > best_key:
                    best, best_key = candidate, key

        if best:
            logger.debug(f"Vendor match {best.name} ({best.confidence:.2f}) from line '{best.line}'")
        return best

    def _score_line(self, line: str, cleaned: str) -> List[VendorMatch]:
        matches = []
        words = [w for w in cleaned.split() if len(w) > 2]
        padded = f" {cleaned} "

        for name, variation in self._variations:
            if f" {variation} " in padded:
                matches.append(VendorMatch(name, 1.0, line, variation))
                continue

            if self._names_vendor(words, name):
                line_ratio = SequenceMatcher(None, cleaned, variation).ratio()
                if line_ratio > self.line_threshold:
                    matches.append(VendorMatch(name, round(line_ratio, 4), line, variation))

            if ' ' in variation:
                continue
            for word in words:
                word_ratio = SequenceMatcher(None, word, variation).ratio()
                if word_ratio > self.word_threshold:
                    matches.append(VendorMatch(name, round(word_ratio, 4), line, variation))

        return matches

    def _names_vendor(self, words: List[str], name: str) -> bool:
        """True if a line word resembles a word of the vendor's own name."""
        for name_word in self._name_words[name]:
            for word in words:
                if SequenceMatcher(None, word, name_word).ratio() > self.word_threshold:
                    return True
        return False
