"""
Public entry points for business card text parsing.

Segments the OCR text, runs the selected extraction strategy and resolves
the candidate pool into a ParsedBusinessCard.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from .models import ParsedBusinessCard
from .patterns import DEFAULT_PATTERNS, DEFAULT_WEIGHTS, PatternTable, ScoringWeights
from .resolver import resolve
from .segmenter import segment_lines
from .strategies import ExtractionStrategy, get_strategy

logger = logging.getLogger(__name__)

RawText = Union[str, bytes, None]


def as_text(raw: RawText) -> str:
    if raw is None:
        return ""
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw


# =========================
# PARSER
# =========================

class CardTextParser:
    """Reusable parser bound to one extraction strategy.

    Holds no per-call state, so one instance can serve concurrent callers.
    """

    def __init__(self, strategy: Union[str, ExtractionStrategy, None] = None,
                 patterns: PatternTable = DEFAULT_PATTERNS,
                 weights: ScoringWeights = DEFAULT_WEIGHTS):
        if isinstance(strategy, ExtractionStrategy):
            self.strategy = strategy
        else:
            self.strategy = get_strategy(strategy, patterns=patterns, weights=weights)
        self.patterns = self.strategy.patterns
        self.weights = self.strategy.weights

    @property
    def strategy_name(self) -> str:
        return self.strategy.name

    def parse(self, raw_ocr_text: RawText) -> ParsedBusinessCard:
        lines = segment_lines(as_text(raw_ocr_text))
        if not lines:
            return ParsedBusinessCard()

        pool = self.strategy.extract(lines)
        card = resolve(pool, self.patterns, self.weights)

        logger.debug(
            f"Parsed {len(lines)} lines with {self.strategy_name}: "
            f"overall confidence {card.confidence.overall:.2f}"
        )
        return card

    def parse_batch(self, texts: Iterable[RawText]) -> List[ParsedBusinessCard]:
        return [self.parse(text) for text in texts]


_default_parser: Optional[CardTextParser] = None


def parse_business_card(raw_ocr_text: RawText, strategy: Optional[str] = None) -> ParsedBusinessCard:
    """Parse raw OCR text into a structured business card.

    Args:
        raw_ocr_text: Newline-delimited OCR output (str, UTF-8 bytes or None)
        strategy: Extraction strategy name; the default two-pass strategy
            when omitted

    Returns:
        ParsedBusinessCard with empty strings for fields that were not found

    Raises:
        ValueError: If ``strategy`` names no known strategy
    """
    global _default_parser

    if strategy is not None:
        return CardTextParser(strategy).parse(raw_ocr_text)
    if _default_parser is None:
        _default_parser = CardTextParser()
    return _default_parser.parse(raw_ocr_text)


# =========================
# COMPATIBILITY
# =========================

def primary_phone(card: ParsedBusinessCard) -> str:
    """Single phone for consumers that only keep one: mobile1, office, mobile2, fax."""
    phones = card.phones
    return phones.mobile1 or phones.office or phones.mobile2 or phones.fax


def to_legacy_contact(card: ParsedBusinessCard) -> Dict[str, Any]:
    """Flatten a card into the single-phone contact shape with a percent confidence."""
    return {
        "name": card.name,
        "company": card.company,
        "phone": primary_phone(card),
        "email": card.email,
        "address": card.address,
        "confidence": round(card.confidence.overall * 100),
    }
