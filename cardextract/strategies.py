"""
Extraction strategies.

Both strategies share Pass 1 (classifier) and the resolver; they differ only
in how Pass 2 proposes and scores name, job title, company and address
candidates.
"""

import logging
from typing import Dict, List, Optional, Sequence, Type

from .classifier import classify_definite_fields
from .generator import (
    apply_regional_weighting,
    generate_address_candidates,
    generate_company_candidates,
    generate_job_title_candidates,
    generate_name_candidates,
    has_cjk,
    looks_like_name,
    rescore_cross_fields,
)
from .models import CandidatePool, FieldCandidate, FieldKind, Line
from .normalize import clean_name
from .patterns import DEFAULT_PATTERNS, DEFAULT_WEIGHTS, PatternTable, ScoringWeights

logger = logging.getLogger(__name__)

DEFAULT_STRATEGY = "two_pass"


class ExtractionStrategy:
    """Turns segmented lines into a populated candidate pool."""

    name = ""

    def __init__(self, patterns: PatternTable = DEFAULT_PATTERNS,
                 weights: ScoringWeights = DEFAULT_WEIGHTS):
        self.patterns = patterns
        self.weights = weights

    def extract(self, lines: Sequence[Line]) -> CandidatePool:
        pool = CandidatePool()
        classify_definite_fields(list(lines), pool, self.patterns, self.weights)
        remaining = [line for line in lines if line.index not in pool.consumed]
        self.generate(lines, remaining, pool)
        return pool

    def generate(self, lines: Sequence[Line], remaining: List[Line], pool: CandidatePool) -> None:
        raise NotImplementedError


class TwoPassStrategy(ExtractionStrategy):
    """Default strategy: top-region name search, then context rules."""

    name = "two_pass"

    def generate(self, lines, remaining, pool):
        patterns, weights = self.patterns, self.weights

        pool.replace_all(FieldKind.NAME, generate_name_candidates(remaining, patterns, weights))
        name_lines = pool.line_indexes(FieldKind.NAME)

        # A line may stand for several fields; the resolver keeps the chosen
        # name, title and company apart.
        pool.replace_all(FieldKind.JOB_TITLE, generate_job_title_candidates(
            remaining, set(), weights.job_title, patterns,
        ))
        title_lines = pool.line_indexes(FieldKind.JOB_TITLE)

        pool.replace_all(FieldKind.COMPANY, generate_company_candidates(
            remaining, set(), weights.company, patterns,
        ))

        pool.replace_all(FieldKind.ADDRESS, generate_address_candidates(
            lines,
            pool.consumed,
            closing=name_lines | title_lines,
            skipped=pool.line_indexes(FieldKind.COMPANY),
            confidence=weights.address,
            patterns=patterns,
        ))

        rescore_cross_fields(pool, lines, patterns, weights)


class CandidateScoringStrategy(ExtractionStrategy):
    """Every line may propose several candidates; position adds weight."""

    name = "candidate_scoring"

    def _name_candidate(self, line: Line) -> Optional[FieldCandidate]:
        patterns = self.patterns
        text = line.text
        if (patterns.company_suffix.search(text)
                or patterns.job_title.search(text)
                or patterns.address_keyword.search(text)
                or not looks_like_name(text, patterns)):
            return None

        value = text.strip() if has_cjk(text, patterns) else clean_name(text)
        if not value:
            return None
        top = line.index < 3
        return FieldCandidate(
            value=value,
            confidence=self.weights.scoring_name_top if top else self.weights.scoring_name,
            source_tags=("name_pattern_top" if top else "name_pattern",),
            line_index=line.index,
        )

    def generate(self, lines, remaining, pool):
        patterns, weights = self.patterns, self.weights

        for line in remaining:
            candidate = self._name_candidate(line)
            if candidate:
                pool.add(FieldKind.NAME, candidate)

        pool.replace_all(FieldKind.JOB_TITLE, generate_job_title_candidates(
            remaining, set(), weights.scoring_job_title, patterns,
        ))
        pool.replace_all(FieldKind.COMPANY, generate_company_candidates(
            remaining, set(), weights.scoring_company, patterns, include_prefix=True,
        ))

        for line in remaining:
            if patterns.is_address(line.text) and not patterns.is_phone_related(line.text):
                pool.add(FieldKind.ADDRESS, FieldCandidate(
                    value=line.text,
                    confidence=weights.address,
                    source_tags=("pattern_address",),
                    line_index=line.index,
                ))

        rescore_cross_fields(pool, lines, patterns, weights)
        apply_regional_weighting(pool, len(lines), weights)


STRATEGIES: Dict[str, Type[ExtractionStrategy]] = {
    TwoPassStrategy.name: TwoPassStrategy,
    CandidateScoringStrategy.name: CandidateScoringStrategy,
}


def get_strategy(name: Optional[str] = None,
                 patterns: PatternTable = DEFAULT_PATTERNS,
                 weights: ScoringWeights = DEFAULT_WEIGHTS) -> ExtractionStrategy:
    """Build a strategy by name.

    Raises:
        ValueError: If ``name`` is not a registered strategy
    """
    key = (name or DEFAULT_STRATEGY).strip().lower()
    if key not in STRATEGIES:
        raise ValueError(
            f"Unknown extraction strategy '{name}'. Available: {', '.join(sorted(STRATEGIES))}"
        )
    return STRATEGIES[key](patterns=patterns, weights=weights)
