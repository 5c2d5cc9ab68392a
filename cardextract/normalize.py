"""
Output normalization for extracted business card fields.

Cleans values after the resolver has chosen them: casing, phone delimiters,
honorifics, address punctuation.
"""

import re
from typing import List

from .patterns import DEFAULT_PATTERNS, PatternTable

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")
_PHONE_DELIMITERS = re.compile(r"[\s.]")
_REPEATED_DASH = re.compile(r"-{2,}")
_PHONE_LABEL = re.compile(
    r"^(?:telephone|tel|phone|mobile|handphone|h/p|hp|cell|fax|office|direct)\s*(?:no\.?)?[\s:.]*",
    re.IGNORECASE,
)
_TRAILING_PUNCTUATION = re.compile(r"[,.]+$")
_LEADING_TRAILING_COMMA = re.compile(r"^,+|,+$")
_REPEATED_COMMA = re.compile(r",+")
_SPACE_BEFORE_COMMA = re.compile(r"\s+,")
_DUPLICATE_COMMA = re.compile(r",\s*,+")
_TRAILING_LABEL = re.compile(
    r"(?:,\s*)?\b(?:fax|telephone|tel|mobile|hp)\s*(?:no\.?|number)?\s*\.?\s*$",
    re.IGNORECASE,
)


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


def title_case(text: str) -> str:
    return " ".join(word[:1].upper() + word[1:].lower() for word in text.split(" ") if word)


def clean_phone_number(phone: str) -> str:
    """Use '-' as the only delimiter: '017-334 7211' -> '017-334-7211'."""
    cleaned = _PHONE_DELIMITERS.sub("-", phone.strip())
    return _REPEATED_DASH.sub("-", cleaned).strip("-")


def normalize_phone(phone: str) -> str:
    """Strip a leading role label and standardize delimiters."""
    if not phone:
        return ""
    return clean_phone_number(_PHONE_LABEL.sub("", phone.strip()))


def clean_name(name: str) -> str:
    """Drop punctuation while keeping the original capitalization."""
    return collapse_whitespace(_NON_WORD.sub(" ", name))


def normalize_name(name: str, patterns: PatternTable = DEFAULT_PATTERNS) -> str:
    """Strip an honorific prefix and title-case every word."""
    if not name:
        return ""
    stripped = patterns.honorific.sub("", name.strip())
    return title_case(collapse_whitespace(stripped))


def normalize_job_title(title: str) -> str:
    """ALL-CAPS titles become Title Case, anything else is left alone."""
    cleaned = title.strip()
    if cleaned and cleaned == cleaned.upper():
        return title_case(cleaned)
    return cleaned


def normalize_company(company: str, patterns: PatternTable = DEFAULT_PATTERNS) -> str:
    """Collapse whitespace and restore known acronyms (SDN, BHD, LLC, ...)."""
    if not company:
        return ""
    cleaned = collapse_whitespace(company)
    for acronym in patterns.company_acronyms:
        cleaned = re.sub(rf"\b{re.escape(acronym)}\b", acronym, cleaned, flags=re.IGNORECASE)
    return cleaned


def clean_address_line(line: str) -> str:
    cleaned = _TRAILING_PUNCTUATION.sub("", line.strip())
    cleaned = _TRAILING_LABEL.sub("", cleaned)
    return _REPEATED_COMMA.sub(",", cleaned).strip()


def format_address(lines: List[str]) -> str:
    """Join address fragments into one comma separated string.

    Trailing phone/fax labels that slipped into a fragment are removed, and
    no comma is added where one side already carries one.
    """
    cleaned = [c for c in (clean_address_line(line) for line in lines) if c]

    address = ""
    for line in cleaned:
        if not address:
            address = line
        elif address.endswith(",") or line.startswith(","):
            address += " " + line
        else:
            address += ", " + line

    address = _SPACE_BEFORE_COMMA.sub(",", address)
    address = _DUPLICATE_COMMA.sub(",", address)
    address = _LEADING_TRAILING_COMMA.sub("", collapse_whitespace(address))
    return address.strip()
