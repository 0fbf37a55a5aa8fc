"""Handle and name normalisation.

Handles arrive from untrusted input and may carry invisible code points
(``"elon\\u200bmusk"``) that would otherwise create look-alike records. Everything
is normalised here before any lookup or insert.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Final

from soulsmith.domain.errors import ValidationError
from soulsmith.domain.model import Category

_INVISIBLE: Final[re.Pattern[str]] = re.compile(
    "[\u200b-\u200f\u202a-\u202e\u2060-\u2069\ufeff\u00ad\u034f\u061c\u180e]"
)
_HANDLE: Final[re.Pattern[str]] = re.compile(r"^[a-z0-9_]{1,15}$")
_SUBMITTER_NAME: Final[re.Pattern[str]] = re.compile(r"^[\w .\-]{1,100}$")
_TEXT_WHITESPACE: Final = frozenset("\n\r\t")


def strip_invisible(value: str) -> str:
    """Drop zero-width, bidi and other format/control characters."""

    cleaned = _INVISIBLE.sub("", value)
    return "".join(ch for ch in cleaned if unicodedata.category(ch) not in {"Cc", "Cf"})


def clean_content(value: str) -> str:
    """Drop invisible format characters from free text, keeping line breaks and tabs."""

    cleaned = _INVISIBLE.sub("", value)
    return "".join(
        ch
        for ch in cleaned
        if ch in _TEXT_WHITESPACE or unicodedata.category(ch) not in {"Cc", "Cf"}
    ).strip()


def sanitize_handle(value: str) -> str:
    normalized = unicodedata.normalize("NFKC", strip_invisible(value))
    return normalized.strip().lstrip("@").lower()


def normalize_handle(value: str) -> str:
    """Sanitise and validate a handle, raising ``ValidationError`` when malformed."""

    handle = sanitize_handle(value)
    if not _HANDLE.fullmatch(handle):
        raise ValidationError(
            f"Invalid handle {value!r}: expected 1-15 letters, digits or underscores"
        )
    return handle


def normalize_submitter_name(value: str) -> str:
    name = strip_invisible(value).strip()
    if not _SUBMITTER_NAME.fullmatch(name):
        raise ValidationError(f"Invalid submitter name {value!r}")
    return name


def parse_category(value: str | Category) -> Category:
    if isinstance(value, Category):
        return value
    try:
        return Category(strip_invisible(value).strip().lower())
    except ValueError:
        allowed = ", ".join(category.value for category in Category)
        raise ValidationError(f"Unknown category {value!r} (expected one of: {allowed})") from None
