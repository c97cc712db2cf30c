"""
Chooses between heuristic and delegated extraction and falls back between them.
"""

import logging
from typing import Optional

from models.extracted_fields import ExtractedFields, ExtractionStrategy, ExtractionMethod
from services.heuristic_extractor import HeuristicExtractor
from services.llm_extractor import DelegatedExtractor

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 0.3


class FieldExtractionEngine:
    """Produces ExtractedFields from raw receipt text."""

    def __init__(self,
                 heuristic: Optional[HeuristicExtractor] = None,
                 delegated: Optional[DelegatedExtractor] = None):
        """
        Args:
            heuristic: Rule-based extractor, always available
            delegated: Language-model extractor, None when no service is configured
        """
        self.heuristic = heuristic or HeuristicExtractor()
        self.delegated = delegated

    def select_strategy(self) -> ExtractionStrategy:
        """Probe the language model once and pick the strategy for a job."""
        if self.delegated is None:
            return ExtractionStrategy.HEURISTIC

        if self.delegated.client.health_check():
            logger.info("Language model available, using delegated extraction")
            return ExtractionStrategy.DELEGATED

        logger.info("Language model unavailable, using heuristic extraction")
        return ExtractionStrategy.HEURISTIC

    def extract(self, text: str, strategy: ExtractionStrategy) -> ExtractedFields:
        """
        Extract fields with the selected strategy.

        A delegated attempt that yields nothing switches the whole document
        to heuristic extraction at reduced confidence.

        Args:
            text: Raw receipt text
            strategy: Strategy chosen for the job

        Returns:
            ExtractedFields
        """
        if strategy is ExtractionStrategy.HEURISTIC or self.delegated is None:
            return self.heuristic.extract(text)

        fields = self.delegated.extract(text)
        if fields is not None:
            return fields

        logger.warning("Delegated extraction failed, falling back to heuristic extraction")
        fallback = self.heuristic.extract(text)
        return fallback.model_copy(update={
            'confidence': FALLBACK_CONFIDENCE,
            'method': ExtractionMethod.HEURISTIC_FALLBACK
        })
