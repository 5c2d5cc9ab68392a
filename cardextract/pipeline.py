"""
Business Card Text Pipeline
Parses OCR text into contact records and decorates them for API consumers:
legacy single-phone contact, E.164, WhatsApp and display phone
numbers, timing.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .parser import CardTextParser, RawText, as_text, to_legacy_contact
from .patterns import DEFAULT_WEIGHTS, ScoringWeights
from .phone_format import (
    DEFAULT_COUNTRY_CODE,
    format_phone_for_display,
    format_phone_for_whatsapp,
    normalize_phone_number,
)
from .segmenter import segment_lines
from .strategies import STRATEGIES

logger = logging.getLogger(__name__)


class CardTextPipeline:
    """Text-to-contact pipeline shared by the API and the batch processor."""

    def __init__(
        self,
        strategy: Optional[str] = None,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
        default_country_code: str = DEFAULT_COUNTRY_CODE,
        parallel_processing: bool = False,
        parallel_workers: int = 2
    ):
        self.weights = weights
        self.parser = CardTextParser(strategy, weights=weights)
        self.default_country_code = default_country_code
        self.parallel_processing = parallel_processing
        self.parallel_workers = max(1, parallel_workers)
        self._parsers: Dict[str, CardTextParser] = {self.parser.strategy_name: self.parser}

        logger.info(f"CardTextPipeline initialized (strategy={self.parser.strategy_name})")

    def _parser_for(self, strategy: Optional[str]) -> CardTextParser:
        if not strategy:
            return self.parser
        key = strategy.strip().lower()
        if key not in self._parsers:
            self._parsers[key] = CardTextParser(key, weights=self.weights)
        return self._parsers[key]

    # ======================================================
    # SINGLE TEXT
    # ======================================================

    def process_text(self, text: RawText, strategy: Optional[str] = None) -> Dict:
        """
        Parse one business card's OCR text.

        Args:
            text: Raw OCR text
            strategy: Optional strategy override for this call

        Raises:
            ValueError: If ``strategy`` is unknown
        """
        parser = self._parser_for(strategy)
        start_time = time.time()

        try:
            card = parser.parse(text)
            phones = {slot: number for slot, number in card.phones.to_dict().items() if number}
            country_code = self.default_country_code
            normalized_phones = {}
            whatsapp_phones = {}
            display_phones = {}
            for slot, number in phones.items():
                e164 = normalize_phone_number(number, country_code)
                if e164:
                    normalized_phones[slot] = e164
                    whatsapp_phones[slot] = format_phone_for_whatsapp(e164, country_code)
                display_phones[slot] = format_phone_for_display(number, country_code)
            total_time = time.time() - start_time
            line_count = len(segment_lines(as_text(text)))

            logger.info(
                f"Parsed card text ({line_count} lines, {parser.strategy_name}) "
                f"in {total_time * 1000:.1f}ms"
            )

            return {
                "success": True,
                "contact_data": card.to_dict(),
                "field_confidence": card.confidence.to_dict(),
                "legacy_contact": to_legacy_contact(card),
                "normalized_phones": normalized_phones,
                "whatsapp_phones": whatsapp_phones,
                "display_phones": display_phones,
                "strategy": parser.strategy_name,
                "line_count": line_count,
                "processing_time_ms": int(total_time * 1000),
                "processed_at": datetime.now(timezone.utc).isoformat()
            }

        except Exception as e:
            logger.exception("Pipeline error")
            return {
                "success": False,
                "error": str(e)
            }

    # ======================================================
    # BATCH
    # ======================================================

    def process_batch(self, texts: List[RawText], strategy: Optional[str] = None) -> Dict:
        """Parse several card texts, optionally on a thread pool.

        Results keep the order of ``texts``.
        """
        parser = self._parser_for(strategy)

        if self.parallel_processing and len(texts) > 1:
            with ThreadPoolExecutor(max_workers=self.parallel_workers) as executor:
                results = list(executor.map(lambda t: self.process_text(t, parser.strategy_name), texts))
        else:
            results = [self.process_text(t, parser.strategy_name) for t in texts]

        success_count = sum(1 for r in results if r.get("success"))

        return {
            "success": True,
            "total": len(texts),
            "successful": success_count,
            "failed": len(texts) - success_count,
            "results": results
        }

    # ======================================================
    # STATUS
    # ======================================================

    def get_status(self) -> Dict:
        """Get pipeline status information."""
        return {
            "strategy": self.parser.strategy_name,
            "available_strategies": sorted(STRATEGIES),
            "default_country_code": self.default_country_code,
            "parallel_processing": self.parallel_processing,
            "parallel_workers": self.parallel_workers
        }

