"""
Pattern tables and scoring weights for business card text extraction.

Everything here is built once at import time and shared read-only by every
parse call. Malaysian card conventions (Sdn Bhd, Jalan/Taman addresses,
01x mobile prefixes) are first-class citizens.
"""

import re
import logging
from dataclasses import dataclass, fields
from typing import Tuple

logger = logging.getLogger(__name__)

CJK_RANGES = "\u4e00-\u9fff\u3040-\u309f\u30a0-\u30ff\uac00-\ud7af"


@dataclass(frozen=True)
class PatternTable:
    """Compiled regular expressions used by every extraction stage.

    Attributes:
        email: local@domain.tld shape
        url: http(s):// or www. addresses
        phone_international: optional +, country code and up to three groups
        phone_standard: 2-3 digit prefix followed by two groups
        mobile_standalone: unlabelled mobile (01x, 601x, +601x)
        landline_standalone: unlabelled landline (0[2-9], 60[2-9])
        mobile_keyword / office_keyword / fax_keyword: role labels
        numbered_mobile: "Mobile 2", "HP 1" style labels
        phone_label_start: line starts with a contact label
        phone_related: any phone/fax keyword anywhere in the line
        trailing_phone_label: "Fax No." style remnants at the end of a line
        job_title: role vocabulary
        company_suffix / company_keyword / company_prefix: company markers
        address_keyword / postcode / state / building: address markers
        cjk_char: a single CJK ideograph/kana/hangul
        letter: a single latin or CJK letter
        honorific: leading honorific before a personal name
    """

    email: re.Pattern
    url: re.Pattern
    phone_international: re.Pattern
    phone_standard: re.Pattern
    mobile_standalone: re.Pattern
    landline_standalone: re.Pattern
    mobile_keyword: re.Pattern
    office_keyword: re.Pattern
    fax_keyword: re.Pattern
    numbered_mobile: re.Pattern
    phone_label_start: re.Pattern
    phone_related: re.Pattern
    trailing_phone_label: re.Pattern
    job_title: re.Pattern
    company_suffix: re.Pattern
    company_keyword: re.Pattern
    company_prefix: re.Pattern
    address_keyword: re.Pattern
    postcode: re.Pattern
    state: re.Pattern
    building: re.Pattern
    cjk_char: re.Pattern
    letter: re.Pattern
    name_token: re.Pattern
    honorific: re.Pattern
    company_acronyms: Tuple[str, ...] = ("SDN", "BHD", "LLC", "LTD", "INC", "CORP", "CO", "LLP")

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "company_acronyms":
                if not all(isinstance(a, str) and a for a in value):
                    raise ValueError("company_acronyms must be non-empty strings")
                continue
            if not isinstance(value, re.Pattern):
                raise ValueError(f"Pattern table entry '{f.name}' is not a compiled pattern")

    def is_company(self, text: str) -> bool:
        return bool(self.company_suffix.search(text) or self.company_keyword.search(text))

    def is_address(self, text: str) -> bool:
        return bool(
            self.address_keyword.search(text)
            or self.postcode.search(text)
            or self.state.search(text)
            or self.building.search(text)
        )

    def looks_like_address(self, text: str) -> bool:
        """Address markers present and the line is not a labelled phone line.

        Used to keep postcodes and lot numbers out of unlabelled phone
        detection.
        """
        has_marker = bool(
            self.address_keyword.search(text)
            or self.postcode.search(text)
            or self.state.search(text)
        )
        return has_marker and not self.phone_label_start.match(text.strip())

    def is_phone_related(self, text: str) -> bool:
        return bool(self.phone_related.search(text) or self.trailing_phone_label.search(text))


def _build_default_patterns() -> PatternTable:
    i = re.IGNORECASE
    return PatternTable(
        email=re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
        url=re.compile(
            r"(?:https?://|\bwww\.)[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b"
            r"(?:[-a-zA-Z0-9()@:%_+.~#?&/=]*)",
            i,
        ),
        phone_international=re.compile(r"(\+?\d{1,3}[-.\s]?\d{2,4}[-.\s]?\d{3,4}[-.\s]?\d{3,4})"),
        phone_standard=re.compile(r"([0-9]{2,3}[-.\s]?[0-9]{3,4}[-.\s]?[0-9]{4})"),
        mobile_standalone=re.compile(
            r"(?<![\w+])((?:\+?60[-.\s]?|0)?1[0-9][-.\s]?[0-9]{3,4}[-.\s]?[0-9]{4})\b"
        ),
        landline_standalone=re.compile(
            r"(?<![\w+])((?:\+?60[-.\s]?|0)?[2-9][-.\s]?[0-9]{3,4}[-.\s]?[0-9]{4})\b"
        ),
        mobile_keyword=re.compile(r"\b(?:mobile|handphone|cell|h/p|hp)\b", i),
        office_keyword=re.compile(r"\b(?:telephone|tel|office|direct)\b", i),
        fax_keyword=re.compile(r"\bfax\b|\bf\s*:", i),
        numbered_mobile=re.compile(r"\b(?:mobile|hp)\s*([12])(?!\d)", i),
        phone_label_start=re.compile(r"^(?:mobile|hp|h/p|tel|telephone|fax|phone|cell|email)", i),
        phone_related=re.compile(
            r"\b(?:mobile|hp|h/p|tel|telephone|fax|phone|cell|handphone|direct|whatsapp|wa)\b", i
        ),
        trailing_phone_label=re.compile(
            r"\b(?:fax|telephone|tel|mobile|hp|phone)\s*(?:no\.?|number)?\s*\.?\s*$", i
        ),
        job_title=re.compile(
            r"\b(?:manager|director|executive|officer|ceo|cto|cfo|president|vp|vice president|"
            r"engineer|developer|consultant|analyst|coordinator|specialist|supervisor|lead|head|"
            r"chief|founder|owner|partner|associate|assistant|secretary|accountant|designer|"
            r"architect|advisor|administrator)\b",
            i,
        ),
        company_suffix=re.compile(
            r"\b(?:sdn[\s.]?bhd|bhd|berhad|inc|incorporated|ltd|limited|llc|llp|corp|corporation|"
            r"company|enterprise|enterprises|group|holdings|partners|associates|consultancy|"
            r"consulting|services|solutions|technologies|international|global|trading|industries|"
            r"ventures)\b",
            i,
        ),
        company_keyword=re.compile(
            r"\b(?:company|corporation|enterprise|firm|agency|studio|lab|workshop|factory|manufacturer)\b",
            i,
        ),
        company_prefix=re.compile(r"\b(?:pt|cv|pte|pvt)\b\.?\s", i),
        address_keyword=re.compile(
            r"\b(?:lot|no\.?|jalan|jln|lorong|lrg|persiaran|psn|lebuh|lbh|taman|tmn|kampung|kg|"
            r"bandar|bdr|seksyen|section|block|blok|tingkat|level|floor|suite|unit)\b",
            i,
        ),
        postcode=re.compile(r"\b[0-9]{5}\b"),
        state=re.compile(
            r"\b(?:selangor|kuala lumpur|kl|putrajaya|penang|pulau pinang|johor|jb|kedah|kelantan|"
            r"melaka|malacca|negeri sembilan|pahang|perak|perlis|sabah|sarawak|terengganu|labuan|"
            r"wilayah persekutuan)\b",
            i,
        ),
        building=re.compile(
            r"\b(?:plaza|tower|menara|building|bangunan|kompleks|center|centre|mall|square|place|"
            r"court|heights|residency|condominium|apartment|flat)\b",
            i,
        ),
        cjk_char=re.compile(f"[{CJK_RANGES}]"),
        letter=re.compile(f"[a-zA-Z{CJK_RANGES}]"),
        name_token=re.compile(r"[A-Z][a-z]+|[A-Z]+$"),
        honorific=re.compile(
            r"^(?:(?:mr|mrs|ms|dr|prof|ir)\.?|dato'?|datuk|tan\s+sri)\s+", i
        ),
    )


DEFAULT_PATTERNS = _build_default_patterns()


@dataclass(frozen=True)
class ScoringWeights:
    """Base confidences and boosts applied while scoring candidates.

    These were hand-tuned against a small set of real cards, so every value
    can be overridden (see ``Config.scoring_weights``).
    """

    email: float = 0.95
    phones: float = 0.9

    # two-pass base confidences
    name_primary: float = 0.85
    name_cjk: float = 0.8
    name_fallback: float = 0.6
    name_adjacent_to_title: float = 0.65
    job_title: float = 0.85
    company: float = 0.8
    company_domain_correlation: float = 0.7
    address: float = 0.7

    # candidate-scoring base confidences
    scoring_name_top: float = 0.8
    scoring_name: float = 0.6
    scoring_job_title: float = 0.8
    scoring_company: float = 0.85

    # cross-field boosts
    company_domain_boost: float = 0.2
    name_email_boost: float = 0.15
    name_email_resolution_boost: float = 0.2
    name_title_adjacency_boost: float = 0.2
    title_name_adjacency_boost: float = 0.1

    # regional weighting (candidate-scoring strategy)
    top_region_name_boost: float = 0.15
    middle_region_company_boost: float = 0.1
    bottom_region_address_boost: float = 0.1

    # address runs
    address_line_bonus: float = 0.05
    address_confidence_cap: float = 0.9

    # region boundaries, as fractions of the line count
    name_region_ratio: float = 0.4
    middle_region_end_ratio: float = 0.7

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
                raise ValueError(f"Scoring weight '{f.name}' must be within [0, 1], got {value!r}")
        if self.name_region_ratio > self.middle_region_end_ratio:
            raise ValueError("name_region_ratio must not exceed middle_region_end_ratio")


DEFAULT_WEIGHTS = ScoringWeights()

# Free mail providers never say anything about the employer.
PERSONAL_EMAIL_DOMAINS = frozenset({
    "gmail", "yahoo", "hotmail", "outlook", "aol", "icloud", "mail", "protonmail",
    "zoho", "yandex", "live", "msn", "me", "mac", "inbox", "streamyx", "ymail",
})
