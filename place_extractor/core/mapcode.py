"""Mapcode canonicalization and validation.

A Japan mapcode is written as three digit groups and a two digit check
suffix, e.g. ``12 345 678*90``. Text pasted from web pages or typed on a
Japanese keyboard tends to carry full-width digits, decorative stars and
stray punctuation; ``normalise_mapcode`` cleans that up without ever
inventing digits, and ``validate_mapcode`` checks the canonical shape.
"""

import re

from place_extractor.core.constants import (
    FULLWIDTH_DIGITS,
    MAPCODE_PARTS_PATTERN,
    MAPCODE_PATTERN,
    STAR_GLYPHS,
)

_STAR_TRANSLATION = str.maketrans({glyph: "*" for glyph in STAR_GLYPHS})
_DISALLOWED = re.compile(r"[^0-9*\s]")
_WHITESPACE = re.compile(r"\s+")


def normalise_mapcode(value: str | None) -> str:
    """Return the canonical form of ``value`` when it has the mapcode shape.

    Input that does not reduce to the canonical shape is returned in its
    semi-cleaned form (digits, ``*`` and single spaces only).

    Args:
        value: Raw mapcode text

    Returns:
        Normalized mapcode, or an empty string for empty input
    """
    if not value:
        return ""

    cleaned = value.translate(FULLWIDTH_DIGITS).translate(_STAR_TRANSLATION)
    cleaned = _DISALLOWED.sub("", cleaned)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()

    match = MAPCODE_PARTS_PATTERN.fullmatch(cleaned)
    if not match:
        return cleaned

    first, second, third, check = match.groups()
    return f"{int(first)} {second} {third}*{check}"


def validate_mapcode(value: str | None) -> bool:
    """Check a mapcode against the canonical shape.

    An empty or missing mapcode is valid: a place without one is not an error.
    """
    if not value:
        return True
    return bool(MAPCODE_PATTERN.fullmatch(value))
