"""
Business card text extraction engine.
"""

from .models import (
    FieldCandidate,
    FieldConfidence,
    FieldKind,
    Line,
    ParsedBusinessCard,
    PhoneNumbers,
    PhoneSlot,
)
from .patterns import DEFAULT_PATTERNS, DEFAULT_WEIGHTS, PatternTable, ScoringWeights
from .strategies import CandidateScoringStrategy, ExtractionStrategy, TwoPassStrategy, get_strategy
from .parser import CardTextParser, parse_business_card, to_legacy_contact
from .pipeline import CardTextPipeline

__all__ = [
    "FieldCandidate",
    "FieldConfidence",
    "FieldKind",
    "Line",
    "ParsedBusinessCard",
    "PhoneNumbers",
    "PhoneSlot",
    "DEFAULT_PATTERNS",
    "DEFAULT_WEIGHTS",
    "PatternTable",
    "ScoringWeights",
    "ExtractionStrategy",
    "TwoPassStrategy",
    "CandidateScoringStrategy",
    "get_strategy",
    "CardTextParser",
    "parse_business_card",
    "to_legacy_contact",
    "CardTextPipeline"
]
