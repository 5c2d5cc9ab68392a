"""
Pass 1: lift out fields with unambiguous lexical signatures.

Emails, phone numbers and URLs are recorded in the candidate pool and their
lines are marked consumed so that Pass 2 never mistakes a phone line for part
of a name or an address.
"""

import logging
from typing import List, Optional, Set

from .models import CandidatePool, FieldCandidate, FieldKind, Line, PhoneSlot
from .normalize import clean_phone_number
from .patterns import DEFAULT_PATTERNS, DEFAULT_WEIGHTS, PatternTable, ScoringWeights

logger = logging.getLogger(__name__)


def _search_number(text: str, patterns: PatternTable) -> Optional[str]:
    match = patterns.phone_international.search(text) or patterns.phone_standard.search(text)
    return match.group(1) if match else None


def _mobile_slot(pool: CandidatePool, forced: Optional[str] = None) -> PhoneSlot:
    if forced == "2":
        return PhoneSlot.MOBILE2
    if forced == "1":
        return PhoneSlot.MOBILE1
    return PhoneSlot.MOBILE2 if pool.has_phone(PhoneSlot.MOBILE1) else PhoneSlot.MOBILE1


def _classify_labelled_phone(line: Line, pool: CandidatePool, patterns: PatternTable,
                             confidence: float) -> bool:
    text = line.text

    numbered = patterns.numbered_mobile.search(text)
    if numbered:
        number = _search_number(text[numbered.end():], patterns)
        if number:
            slot = _mobile_slot(pool, forced=numbered.group(1))
            pool.add_phone(slot, FieldCandidate(
                value=clean_phone_number(number),
                confidence=confidence,
                source_tags=("numbered_mobile_label",),
                line_index=line.index,
            ))
            return True
        return False

    roles = (
        (patterns.mobile_keyword, None, "mobile_label"),
        (patterns.office_keyword, PhoneSlot.OFFICE, "office_label"),
        (patterns.fax_keyword, PhoneSlot.FAX, "fax_label"),
    )
    for keyword, slot, tag in roles:
        label = keyword.search(text)
        if not label:
            continue
        number = _search_number(text[label.end():], patterns)
        if not number:
            return False
        pool.add_phone(slot or _mobile_slot(pool), FieldCandidate(
            value=clean_phone_number(number),
            confidence=confidence,
            source_tags=(tag,),
            line_index=line.index,
        ))
        return True

    return False


def _classify_unlabelled_phone(line: Line, pool: CandidatePool, patterns: PatternTable,
                               confidence: float) -> bool:
    if patterns.looks_like_address(line.text):
        return False

    mobile = patterns.mobile_standalone.search(line.text)
    if mobile:
        pool.add_phone(_mobile_slot(pool), FieldCandidate(
            value=clean_phone_number(mobile.group(1)),
            confidence=confidence,
            source_tags=("mobile_shape",),
            line_index=line.index,
        ))
        return True

    landline = patterns.landline_standalone.search(line.text)
    if landline:
        pool.add_phone(PhoneSlot.OFFICE, FieldCandidate(
            value=clean_phone_number(landline.group(1)),
            confidence=confidence,
            source_tags=("landline_shape",),
            line_index=line.index,
        ))
        return True

    return False


def classify_line(line: Line, pool: CandidatePool,
                  patterns: PatternTable = DEFAULT_PATTERNS,
                  weights: ScoringWeights = DEFAULT_WEIGHTS) -> Optional[FieldKind]:
    """Classify a single line, recording any match in ``pool``.

    Returns:
        The category that consumed the line, or None when the line is left
        for Pass 2
    """
    email = patterns.email.search(line.text)
    if email:
        pool.add(FieldKind.EMAIL, FieldCandidate(
            value=email.group(0).lower(),
            confidence=weights.email,
            source_tags=("pattern_email",),
            line_index=line.index,
        ))
        return FieldKind.EMAIL

    if (_classify_labelled_phone(line, pool, patterns, weights.phones)
            or _classify_unlabelled_phone(line, pool, patterns, weights.phones)):
        return FieldKind.PHONE

    url = patterns.url.search(line.text)
    if url:
        pool.add(FieldKind.URL, FieldCandidate(
            value=url.group(0),
            confidence=1.0,
            source_tags=("pattern_url",),
            line_index=line.index,
        ))
        return FieldKind.URL

    return None


def classify_definite_fields(lines: List[Line], pool: CandidatePool,
                             patterns: PatternTable = DEFAULT_PATTERNS,
                             weights: ScoringWeights = DEFAULT_WEIGHTS) -> Set[int]:
    """Run Pass 1 over every line.

    Args:
        lines: Segmented OCR lines
        pool: Candidate pool of the current parse call
        patterns: Pattern table
        weights: Scoring weights

    Returns:
        Indexes of the consumed lines (also stored on ``pool.consumed``)
    """
    for line in lines:
        kind = classify_line(line, pool, patterns, weights)
        if kind is not None:
            pool.consumed.add(line.index)
            logger.debug(f"Line {line.index} consumed as {kind.value}")

    return pool.consumed
