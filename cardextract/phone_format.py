"""
Phone number formatting for parsed contacts.

Numbers are parsed with ``phonenumbers``. Local numbers (leading trunk 0 or
no prefix at all) are read in the region of the default country code,
Malaysia (+60) unless configured otherwise.
"""

import re
from typing import Optional

import phonenumbers
from phonenumbers import NumberParseException, PhoneNumberFormat

_NON_DIAL = re.compile(r"[^+\d]")

DEFAULT_COUNTRY_CODE = "+60"


def region_for_country_code(country_code: str) -> str:
    """'+60' -> 'MY'. Unknown codes give 'ZZ'."""
    digits = country_code.lstrip("+")
    if not digits.isdigit():
        return "ZZ"
    return phonenumbers.region_code_for_country_code(int(digits))


def parse_phone_number(phone_number: str,
                       default_country_code: str = DEFAULT_COUNTRY_CODE
                       ) -> Optional[phonenumbers.PhoneNumber]:
    """Parse to a valid ``PhoneNumber``, or None when the number is not valid."""
    if not phone_number:
        return None

    clean = _NON_DIAL.sub("", phone_number)
    if not clean.lstrip("+"):
        return None

    try:
        if clean.startswith("+"):
            number = phonenumbers.parse(clean, None)
        else:
            number = phonenumbers.parse(clean, region_for_country_code(default_country_code))
    except NumberParseException:
        return None

    return number if phonenumbers.is_valid_number(number) else None


def normalize_phone_number(phone_number: str, default_country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """Normalize to E.164: '016-303 8028' -> '+60163038028'.

    Returns an empty string for numbers that are not valid.
    """
    number = parse_phone_number(phone_number, default_country_code)
    if number is None:
        return ""
    return phonenumbers.format_number(number, PhoneNumberFormat.E164)


def format_phone_for_whatsapp(phone_number: str, default_country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """Digits only with country code, as used in wa.me links."""
    return normalize_phone_number(phone_number, default_country_code).lstrip("+")


def format_phone_for_display(phone_number: str, default_country_code: str = DEFAULT_COUNTRY_CODE) -> str:
    """Human friendly layout.

    Numbers from the default region use the national layout
    ('012-345 6789'), foreign numbers the international one. Invalid
    numbers are returned unchanged.
    """
    number = parse_phone_number(phone_number, default_country_code)
    if number is None:
        return phone_number or ""

    home_region = region_for_country_code(default_country_code)
    if phonenumbers.region_code_for_number(number) == home_region:
        return phonenumbers.format_number(number, PhoneNumberFormat.NATIONAL)
    return phonenumbers.format_number(number, PhoneNumberFormat.INTERNATIONAL)


def is_valid_phone_number(phone_number: str, default_country_code: str = DEFAULT_COUNTRY_CODE) -> bool:
    return parse_phone_number(phone_number, default_country_code) is not None
