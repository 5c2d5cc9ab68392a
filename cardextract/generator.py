"""
Pass 2: contextual candidate generation and cross-field re-scoring.

Generation only ever looks at lines Pass 1 left unconsumed. Re-scoring rules
are pure functions: they take candidate lists and return new lists, so each
rule can be exercised on its own with fixed fixtures.
"""

import math
import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple
from urllib.parse import urlparse

from .models import CandidatePool, FieldCandidate, FieldKind, Line
from .normalize import clean_name
from .patterns import (
    DEFAULT_PATTERNS,
    DEFAULT_WEIGHTS,
    PERSONAL_EMAIL_DOMAINS,
    PatternTable,
    ScoringWeights,
)

logger = logging.getLogger(__name__)

_TOKEN_SPLIT = re.compile(r"[\s,]+")


# =========================
# LINE HEURISTICS
# =========================

def has_cjk(text: str, patterns: PatternTable = DEFAULT_PATTERNS) -> bool:
    return bool(patterns.cjk_char.search(text))


def letter_ratio(text: str, patterns: PatternTable = DEFAULT_PATTERNS) -> float:
    if not text:
        return 0.0
    return len(patterns.letter.findall(text)) / len(text)


def tokens(text: str) -> List[str]:
    return [t for t in _TOKEN_SPLIT.split(text) if t]


def looks_like_name(text: str, patterns: PatternTable = DEFAULT_PATTERNS) -> bool:
    """Decide whether a line reads like a personal name.

    Accepts 2-6 CJK characters, "Last, First" pairs, and digit-free Western
    lines of one to five tokens that are mostly letters with at least one
    Title-Case or ALL-CAPS token. Company and address lines never qualify.
    """
    if has_cjk(text, patterns):
        cjk_count = len(patterns.cjk_char.findall(text))
        if (2 <= cjk_count <= 6
                and not patterns.address_keyword.search(text)
                and not patterns.company_suffix.search(text)):
            return True

    if "," in text:
        parts = [p.strip() for p in text.split(",")]
        if len(parts) == 2 and all(parts) and re.fullmatch(r"[A-Za-z\s]+", " ".join(parts)):
            return True

    words = tokens(text)
    if not 1 <= len(words) <= 5 or any(ch.isdigit() for ch in text):
        return False
    if letter_ratio(text, patterns) < 0.6:
        return False
    if patterns.address_keyword.search(text) or patterns.company_suffix.search(text):
        return False

    if len(words) == 1:
        return bool(patterns.name_token.match(words[0])) and len(words[0]) >= 2
    return any(patterns.name_token.match(word) for word in words)


def looks_like_lenient_name(text: str, patterns: PatternTable = DEFAULT_PATTERNS) -> bool:
    """Relaxed name test: word count and letter density only."""
    if (patterns.company_suffix.search(text)
            or patterns.address_keyword.search(text)
            or patterns.job_title.search(text)
            or patterns.phone_label_start.match(text)):
        return False
    words = tokens(text)
    return 1 <= len(words) <= 5 and letter_ratio(text, patterns) >= 0.5


def top_region(lines: Sequence[Line], ratio: float) -> List[Line]:
    return list(lines[:math.ceil(len(lines) * ratio)])


# =========================
# CANDIDATE GENERATION
# =========================

def generate_name_candidates(remaining: Sequence[Line],
                             patterns: PatternTable = DEFAULT_PATTERNS,
                             weights: ScoringWeights = DEFAULT_WEIGHTS) -> List[FieldCandidate]:
    """Propose names from the top of the card, falling back to the whole card.

    Western candidates win outright: CJK candidates are only returned when
    the top region holds no Western-looking name.
    """
    western: List[FieldCandidate] = []
    cjk: List[FieldCandidate] = []

    for line in top_region(remaining, weights.name_region_ratio):
        if patterns.job_title.search(line.text) or not looks_like_name(line.text, patterns):
            continue
        if has_cjk(line.text, patterns):
            cjk.append(FieldCandidate(
                value=line.text.strip(),
                confidence=weights.name_cjk,
                source_tags=("name_region", "cjk_name"),
                line_index=line.index,
            ))
        elif not patterns.company_suffix.search(line.text):
            value = clean_name(line.text)
            if value:
                western.append(FieldCandidate(
                    value=value,
                    confidence=weights.name_primary,
                    source_tags=("name_region",),
                    line_index=line.index,
                ))

    if western:
        return western
    if cjk:
        return cjk

    for line in remaining:
        if looks_like_lenient_name(line.text, patterns):
            value = clean_name(line.text)
            if value:
                logger.debug(f"Name found by lenient fallback on line {line.index}")
                return [FieldCandidate(
                    value=value,
                    confidence=weights.name_fallback,
                    source_tags=("name_fallback",),
                    line_index=line.index,
                )]

    return []


def generate_job_title_candidates(remaining: Sequence[Line], excluded: Set[int],
                                  confidence: float,
                                  patterns: PatternTable = DEFAULT_PATTERNS,
                                  tag: str = "pattern_title") -> List[FieldCandidate]:
    return [
        FieldCandidate(value=line.text, confidence=confidence, source_tags=(tag,), line_index=line.index)
        for line in remaining
        if line.index not in excluded and patterns.job_title.search(line.text)
    ]


def generate_company_candidates(remaining: Sequence[Line], excluded: Set[int],
                                confidence: float,
                                patterns: PatternTable = DEFAULT_PATTERNS,
                                include_prefix: bool = False,
                                tag: str = "pattern_company") -> List[FieldCandidate]:
    candidates = []
    for line in remaining:
        if line.index in excluded:
            continue
        matched = patterns.is_company(line.text) or (
            include_prefix and patterns.company_prefix.search(line.text)
        )
        if matched:
            candidates.append(FieldCandidate(
                value=line.text, confidence=confidence, source_tags=(tag,), line_index=line.index,
            ))
    return candidates


def generate_address_candidates(lines: Sequence[Line], consumed: Set[int],
                                closing: Set[int], skipped: Set[int],
                                confidence: float,
                                patterns: PatternTable = DEFAULT_PATTERNS) -> List[FieldCandidate]:
    """Collect address fragments with an address-block state machine.

    An address marker opens a block. Following lines join the block until a
    consumed line, a phone-related line, a name-like line or a job title
    closes it. A fragment ending with a comma always carries the block onto
    the next line unless that line is consumed or phone-related.

    Args:
        lines: All segmented lines, in order
        consumed: Lines claimed by Pass 1
        closing: Lines that close an open block and are never fragments
            (name and job title candidates)
        skipped: Lines that are never fragments but leave the block open
            (company candidates)
        confidence: Base confidence for every fragment
    """
    fragments: List[FieldCandidate] = []
    in_block = False
    continues = False

    for line in lines:
        text = line.text
        if line.index in consumed or line.index in closing or patterns.is_phone_related(text):
            in_block = False
            continue
        if line.index in skipped:
            continue

        if patterns.is_address(text):
            fragments.append(FieldCandidate(
                value=text, confidence=confidence, source_tags=("address_marker",), line_index=line.index,
            ))
            in_block = True
        elif in_block and (continues or (
                not looks_like_name(text, patterns) and not patterns.job_title.search(text))):
            fragments.append(FieldCandidate(
                value=text, confidence=confidence, source_tags=("address_block",), line_index=line.index,
            ))
        else:
            in_block = False

        continues = in_block and text.rstrip().endswith(",")

    return fragments


# =========================
# CROSS-FIELD RE-SCORING
# =========================

def email_domain_token(email: str) -> Optional[str]:
    """'rachel@psg.com.my' -> 'psg'. Free mail providers give no token."""
    if not email or "@" not in email:
        return None
    token = email.split("@", 1)[1].split(".", 1)[0].lower()
    if len(token) < 2 or token in PERSONAL_EMAIL_DOMAINS:
        return None
    return token


def url_domain_token(url: str) -> Optional[str]:
    if not url:
        return None
    parsed = urlparse(url if "://" in url else f"https://{url}")
    host = (parsed.netloc or parsed.path.split("/")[0]).lower()
    if host.startswith("www."):
        host = host[4:]
    token = host.split(".", 1)[0]
    if len(token) < 2 or token in PERSONAL_EMAIL_DOMAINS:
        return None
    return token


def email_local_part(email: str) -> Optional[str]:
    if not email or "@" not in email:
        return None
    return email.split("@", 1)[0].lower() or None


def boost_companies_by_domain(companies: Iterable[FieldCandidate], token: str,
                              boost: float) -> List[FieldCandidate]:
    return [
        c.adjusted(boost, "email_domain_match") if token in c.value.lower() else c
        for c in companies
    ]


def correlate_domain_lines(lines: Sequence[Line], consumed: Set[int], excluded: Set[int],
                           token: str, confidence: float) -> List[FieldCandidate]:
    """New company candidates from unflagged lines that contain the domain token."""
    return [
        FieldCandidate(
            value=line.text,
            confidence=confidence,
            source_tags=("email_domain_correlation",),
            line_index=line.index,
        )
        for line in lines
        if line.index not in consumed and line.index not in excluded and token in line.text.lower()
    ]


def boost_names_by_email(names: Iterable[FieldCandidate], local_part: str, boost: float,
                         tag: str = "email_prefix_match") -> List[FieldCandidate]:
    """Boost names sharing a token with the email local-part (either direction)."""
    boosted = []
    for name in names:
        parts = [p for p in tokens(name.value.lower()) if len(p) >= 2]
        if any(p in local_part or local_part in p for p in parts):
            boosted.append(name.adjusted(boost, tag))
        else:
            boosted.append(name)
    return boosted


def apply_title_adjacency(names: Iterable[FieldCandidate], titles: Iterable[FieldCandidate],
                          lines_by_index: Dict[int, Line], consumed: Set[int],
                          patterns: PatternTable = DEFAULT_PATTERNS,
                          weights: ScoringWeights = DEFAULT_WEIGHTS
                          ) -> Tuple[List[FieldCandidate], List[FieldCandidate]]:
    """Reward name/title pairs on neighbouring lines.

    A title with no neighbouring name proposes the line above it as a name,
    unless that line is consumed, a company or another title.
    """
    names = list(names)
    titles = list(titles)

    for ti, title in enumerate(titles):
        if title.line_index is None:
            continue

        adjacent = False
        for ni, name in enumerate(names):
            if name.line_index is not None and abs(name.line_index - title.line_index) == 1:
                names[ni] = name.adjusted(weights.name_title_adjacency_boost, "title_proximity")
                titles[ti] = titles[ti].adjusted(weights.title_name_adjacency_boost, "name_proximity")
                adjacent = True

        if adjacent:
            continue

        previous = lines_by_index.get(title.line_index - 1)
        if previous is None or previous.index in consumed:
            continue
        if patterns.company_suffix.search(previous.text) or patterns.job_title.search(previous.text):
            continue
        if any(n.line_index == previous.index for n in names):
            continue
        value = clean_name(previous.text)
        if value:
            names.append(FieldCandidate(
                value=value,
                confidence=weights.name_adjacent_to_title,
                source_tags=("adjacent_to_title",),
                line_index=previous.index,
            ))

    return names, titles


def apply_regional_weighting(pool: CandidatePool, line_count: int,
                             weights: ScoringWeights = DEFAULT_WEIGHTS) -> None:
    """Top band favours names, middle band companies, bottom band addresses."""
    top_end = math.floor(line_count * weights.name_region_ratio)
    middle_end = math.floor(line_count * weights.middle_region_end_ratio)

    def weigh(kind: FieldKind, in_band, boost: float, tag: str) -> None:
        pool.replace_all(kind, [
            c.adjusted(boost, tag) if c.line_index is not None and in_band(c.line_index) else c
            for c in pool.get(kind)
        ])

    weigh(FieldKind.NAME, lambda i: i < top_end, weights.top_region_name_boost, "top_region")
    weigh(FieldKind.COMPANY, lambda i: top_end <= i < middle_end,
          weights.middle_region_company_boost, "middle_region")
    weigh(FieldKind.ADDRESS, lambda i: i >= middle_end,
          weights.bottom_region_address_boost, "bottom_region")


def domain_token_for(pool: CandidatePool) -> Optional[str]:
    emails = pool.get(FieldKind.EMAIL)
    if emails:
        return email_domain_token(emails[0].value)
    urls = pool.get(FieldKind.URL)
    if urls:
        return url_domain_token(urls[0].value)
    return None


def rescore_cross_fields(pool: CandidatePool, lines: Sequence[Line],
                         patterns: PatternTable = DEFAULT_PATTERNS,
                         weights: ScoringWeights = DEFAULT_WEIGHTS) -> None:
    """Apply the email-domain, email-prefix and title-adjacency rules to ``pool``."""
    token = domain_token_for(pool)
    if token:
        companies = boost_companies_by_domain(pool.get(FieldKind.COMPANY), token, weights.company_domain_boost)
        excluded = (pool.line_indexes(FieldKind.COMPANY)
                    | pool.line_indexes(FieldKind.JOB_TITLE)
                    | pool.line_indexes(FieldKind.ADDRESS))
        companies += correlate_domain_lines(
            lines, pool.consumed, excluded, token, weights.company_domain_correlation,
        )
        pool.replace_all(FieldKind.COMPANY, companies)

    emails = pool.get(FieldKind.EMAIL)
    local_part = email_local_part(emails[0].value) if emails else None
    if local_part:
        pool.replace_all(FieldKind.NAME, boost_names_by_email(
            pool.get(FieldKind.NAME), local_part, weights.name_email_boost,
        ))

    names, titles = apply_title_adjacency(
        pool.get(FieldKind.NAME),
        pool.get(FieldKind.JOB_TITLE),
        {line.index: line for line in lines},
        pool.consumed,
        patterns,
        weights,
    )
    pool.replace_all(FieldKind.NAME, names)
    pool.replace_all(FieldKind.JOB_TITLE, titles)
