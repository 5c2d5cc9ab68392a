"""
Data model for business card text extraction.

Lines and candidates are immutable values. The CandidatePool is the only
mutable object in a parse call and is owned by that call alone.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple


class FieldKind(str, Enum):
    NAME = "name"
    JOB_TITLE = "job_title"
    COMPANY = "company"
    EMAIL = "email"
    ADDRESS = "address"
    URL = "url"
    PHONE = "phone"


class PhoneSlot(str, Enum):
    MOBILE1 = "mobile1"
    MOBILE2 = "mobile2"
    OFFICE = "office"
    FAX = "fax"


def clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass(frozen=True)
class Line:
    """A trimmed, non-empty line of OCR text and its position."""

    text: str
    index: int


@dataclass(frozen=True)
class FieldCandidate:
    """A proposed value for one field.

    Attributes:
        value: Candidate text
        confidence: Score in [0, 1]
        source_tags: Names of the rules that produced or adjusted it
        line_index: Source line, when the value came from a single line
    """

    value: str
    confidence: float
    source_tags: Tuple[str, ...] = ()
    line_index: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, "confidence", clamp(self.confidence))

    def adjusted(self, delta: float, tag: str) -> "FieldCandidate":
        """Return a copy with ``delta`` added to the confidence and ``tag`` recorded."""
        return replace(
            self,
            confidence=clamp(self.confidence + delta),
            source_tags=self.source_tags + (tag,),
        )


@dataclass
class CandidatePool:
    """All candidates generated for one parse call, keyed by field."""

    candidates: Dict[FieldKind, List[FieldCandidate]] = field(
        default_factory=lambda: {
            kind: [] for kind in FieldKind if kind is not FieldKind.PHONE
        }
    )
    phones: Dict[PhoneSlot, List[FieldCandidate]] = field(
        default_factory=lambda: {slot: [] for slot in PhoneSlot}
    )
    consumed: Set[int] = field(default_factory=set)

    def get(self, kind: FieldKind) -> List[FieldCandidate]:
        return self.candidates[kind]

    def add(self, kind: FieldKind, candidate: FieldCandidate) -> None:
        self.candidates[kind].append(candidate)

    def replace_all(self, kind: FieldKind, candidates: List[FieldCandidate]) -> None:
        self.candidates[kind] = list(candidates)

    def add_phone(self, slot: PhoneSlot, candidate: FieldCandidate) -> None:
        self.phones[slot].append(candidate)

    def has_phone(self, slot: PhoneSlot) -> bool:
        return bool(self.phones[slot])

    def line_indexes(self, kind: FieldKind) -> Set[int]:
        return {c.line_index for c in self.candidates[kind] if c.line_index is not None}


@dataclass(frozen=True)
class PhoneNumbers:
    mobile1: str = ""
    mobile2: str = ""
    office: str = ""
    fax: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "mobile1": self.mobile1,
            "mobile2": self.mobile2,
            "office": self.office,
            "fax": self.fax,
        }

    def any(self) -> bool:
        return any([self.mobile1, self.mobile2, self.office, self.fax])


@dataclass(frozen=True)
class FieldConfidence:
    """Per-field confidence scores for one parsed card."""

    overall: float = 0.0
    name: float = 0.0
    job_title: float = 0.0
    company: float = 0.0
    phones: float = 0.0
    email: float = 0.0
    address: float = 0.0

    def field_scores(self) -> List[float]:
        return [self.name, self.job_title, self.company, self.phones, self.email, self.address]

    def to_dict(self) -> Dict[str, float]:
        return {
            "overall": self.overall,
            "name": self.name,
            "jobTitle": self.job_title,
            "company": self.company,
            "phones": self.phones,
            "email": self.email,
            "address": self.address,
        }


@dataclass(frozen=True)
class ParsedBusinessCard:
    """Structured contact record. Absent fields are empty strings."""

    name: str = ""
    job_title: str = ""
    company: str = ""
    phones: PhoneNumbers = field(default_factory=PhoneNumbers)
    email: str = ""
    address: str = ""
    confidence: FieldConfidence = field(default_factory=FieldConfidence)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "jobTitle": self.job_title,
            "company": self.company,
            "phones": self.phones.to_dict(),
            "email": self.email,
            "address": self.address,
            "confidence": self.confidence.to_dict(),
        }

    def is_empty(self) -> bool:
        return not any([
            self.name, self.job_title, self.company, self.email, self.address,
            self.phones.any(),
        ])
