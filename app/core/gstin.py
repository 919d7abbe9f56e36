"""
GSTIN (GST identification number) formatting and validation.

A GSTIN is 15 characters:

    positions 0-1    state code, digits
    positions 2-6    PAN letters
    positions 7-10   PAN digits
    position 11      PAN check letter
    position 12      entity code, 1-9 or A-Z
    position 13      always "Z"
    position 14      checksum, digit or letter

format_gstin() is applied on every keystroke: it uppercases, drops anything that
does not fit the next position, and stops at 15 characters. An empty value is
allowed; a partial one (1-14 characters) is an error.
"""
import re
from typing import Optional


GSTIN_LENGTH = 15
GSTIN_INCOMPLETE_MESSAGE = "Please complete the 15-digit GST number or leave it empty"

GSTIN_PATTERN = re.compile(r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z][1-9A-Z]Z[0-9A-Z]$")

_NON_ALNUM = re.compile(r"[^A-Z0-9]")


def _accepts(position: int, char: str) -> bool:
    if position < 2:
        return char.isdigit()
    if position < 7:
        return char.isalpha()
    if position < 11:
        return char.isdigit()
    if position == 11:
        return char.isalpha()
    if position == 12:
        return char != "0"
    # 13 is rewritten to "Z"; 14 takes any alphanumeric
    return True


def format_gstin(value: Optional[str]) -> str:
    """
    Normalize raw input into the longest valid GSTIN prefix.

    Characters are judged against the position they would occupy in the output,
    so a rejected character never shifts later ones out of place.
    """
    if not value:
        return ""

    cleaned = _NON_ALNUM.sub("", value.upper())
    formatted: list[str] = []

    for char in cleaned:
        position = len(formatted)
        if position >= GSTIN_LENGTH:
            break
        if position == 13:
            formatted.append("Z")
        elif _accepts(position, char):
            formatted.append(char)

    return "".join(formatted)


def is_partial_gstin(value: Optional[str]) -> bool:
    """True for 1-14 characters, the state that blocks a form step."""
    return bool(value) and len(value) < GSTIN_LENGTH


def is_valid_gstin(value: Optional[str]) -> bool:
    """Empty is valid (GSTIN is optional); otherwise the full format must match."""
    if not value:
        return True
    return bool(GSTIN_PATTERN.match(value))


def gstin_error(value: Optional[str]) -> Optional[str]:
    """Human readable error for a GSTIN field, or None when it is acceptable."""
    if is_valid_gstin(value):
        return None
    return GSTIN_INCOMPLETE_MESSAGE
