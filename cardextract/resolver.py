"""
Resolver: choose one winner per field and aggregate confidences.
"""

import logging
import re
from dataclasses import replace
from typing import Iterable, List, Optional, Sequence

from .generator import boost_names_by_email, email_local_part
from .models import (
    CandidatePool,
    FieldCandidate,
    FieldConfidence,
    FieldKind,
    ParsedBusinessCard,
    PhoneNumbers,
    PhoneSlot,
)
from .normalize import (
    collapse_whitespace,
    format_address,
    normalize_company,
    normalize_job_title,
    normalize_name,
    normalize_phone,
)
from .patterns import DEFAULT_PATTERNS, DEFAULT_WEIGHTS, PatternTable, ScoringWeights

logger = logging.getLogger(__name__)


_PUNCTUATION = re.compile(r"[^\w\s]")


def _key(value: str) -> str:
    return collapse_whitespace(_PUNCTUATION.sub("", value)).casefold()


def rank(candidates: Iterable[FieldCandidate]) -> List[FieldCandidate]:
    """Highest confidence first; ties keep discovery order."""
    return sorted(candidates, key=lambda c: c.confidence, reverse=True)


def select_best(candidates: Iterable[FieldCandidate],
                exclude: Sequence[str] = ()) -> Optional[FieldCandidate]:
    """Return the strongest candidate whose value is not already taken."""
    taken = {_key(value) for value in exclude if value}
    for candidate in rank(candidates):
        if _key(candidate.value) not in taken:
            return candidate
    return None


def group_address_runs(fragments: Iterable[FieldCandidate]) -> List[List[FieldCandidate]]:
    """Group fragments, in line order, into runs with a line gap of at most one."""
    ordered = sorted(
        (f for f in fragments if f.line_index is not None),
        key=lambda f: f.line_index,
    )
    runs: List[List[FieldCandidate]] = []
    for fragment in ordered:
        if runs and fragment.line_index - runs[-1][-1].line_index <= 1:
            runs[-1].append(fragment)
        else:
            runs.append([fragment])
    return runs


def merge_address_runs(fragments: Iterable[FieldCandidate],
                       weights: ScoringWeights = DEFAULT_WEIGHTS) -> Optional[FieldCandidate]:
    """Merge the strongest run of address fragments into one candidate.

    The run holding the highest confidence wins, then the longest run, then
    the earliest. Each extra fragment adds a small bonus, capped so a long
    address can never outscore its best line by more than the cap allows.
    """
    runs = group_address_runs(fragments)
    if not runs:
        return None

    def strength(run: List[FieldCandidate]):
        return max(f.confidence for f in run), len(run)

    best_run = runs[0]
    for run in runs[1:]:
        if strength(run) > strength(best_run):
            best_run = run

    best = max(f.confidence for f in best_run)
    confidence = min(
        best + weights.address_line_bonus * len(best_run),
        max(weights.address_confidence_cap, best),
    )
    tags = tuple(dict.fromkeys(tag for f in best_run for tag in f.source_tags))
    return FieldCandidate(
        value=format_address([f.value for f in best_run]),
        confidence=confidence,
        source_tags=tags + ("address_merge",),
        line_index=best_run[0].line_index,
    )


def overall_confidence(confidence: FieldConfidence) -> float:
    scores = [s for s in confidence.field_scores() if s > 0]
    return sum(scores) / len(scores) if scores else 0.0


def resolve(pool: CandidatePool,
            patterns: PatternTable = DEFAULT_PATTERNS,
            weights: ScoringWeights = DEFAULT_WEIGHTS) -> ParsedBusinessCard:
    """Pick one value per field from ``pool`` and build the parsed card.

    Selection order is email, name, job title, company, address, so the
    later fields can exclude values already taken. Winners are normalized
    here and nowhere else.
    """
    email = select_best(pool.get(FieldKind.EMAIL))

    names = pool.get(FieldKind.NAME)
    local_part = email_local_part(email.value) if email else None
    if local_part:
        names = boost_names_by_email(
            names, local_part, weights.name_email_resolution_boost, "email_resolution_match",
        )
    name = select_best(names)

    taken = [name.value] if name else []
    job_title = select_best(pool.get(FieldKind.JOB_TITLE), exclude=taken)
    if job_title:
        taken.append(job_title.value)

    company = select_best(pool.get(FieldKind.COMPANY), exclude=taken)
    if company:
        taken.append(company.value)

    taken_keys = {_key(value) for value in taken}
    fragments = [f for f in pool.get(FieldKind.ADDRESS) if _key(f.value) not in taken_keys]
    address = merge_address_runs(fragments, weights)

    slots = {}
    for slot in PhoneSlot:
        best = select_best(pool.phones[slot])
        slots[slot.value] = normalize_phone(best.value) if best else ""
    phones = PhoneNumbers(**slots)

    confidence = FieldConfidence(
        name=name.confidence if name else 0.0,
        job_title=job_title.confidence if job_title else 0.0,
        company=company.confidence if company else 0.0,
        phones=weights.phones if phones.any() else 0.0,
        email=email.confidence if email else 0.0,
        address=address.confidence if address else 0.0,
    )
    confidence = replace(confidence, overall=overall_confidence(confidence))

    if name:
        logger.debug(f"Name resolved from line {name.line_index} via {', '.join(name.source_tags)}")

    return ParsedBusinessCard(
        name=normalize_name(name.value, patterns) if name else "",
        job_title=normalize_job_title(job_title.value) if job_title else "",
        company=normalize_company(company.value, patterns) if company else "",
        phones=phones,
        email=email.value if email else "",
        address=address.value if address else "",
        confidence=confidence,
    )
