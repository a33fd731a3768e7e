"""Candidate place-name extraction from free text.

The filter favours precision over recall: a line only becomes a candidate
when it ends in a point-of-interest word or reads as a Title Case phrase.
Missing a place is acceptable, inventing one is not.
"""

import re

from place_extractor.core.constants import (
    DECORATIVE_CHARACTERS,
    LINE_SEPARATORS,
    POI_SUFFIXES,
)
from place_extractor.core.logging import get_logger
from place_extractor.models import Candidate

logger = get_logger().bind(module="candidate_extractor")

MIN_NAME_LENGTH = 3
MAX_HINT_LENGTH = 20

_POI_SUFFIXES_LOWER = frozenset(suffix.lower() for suffix in POI_SUFFIXES)
_BRACKETS_AND_QUOTES = re.compile(r"[\[\]\"']")
_TRAILING_PUNCTUATION = re.compile(r"[.,!?;:]+$")
_WHITESPACE = re.compile(r"\s+")
_TITLE_CASE_PHRASE = re.compile(r"[A-Z][a-z']*\s*([A-Z][a-z']*\s*)*")
_NON_ALNUM = re.compile(r"[^a-z0-9]")


def split_lines(raw_text: str) -> list[str]:
    """Split text into cleaned, non-empty lines.

    Args:
        raw_text: Text pasted by the operator

    Returns:
        Lines with decorative characters and surrounding whitespace removed
    """
    lines = []
    for segment in LINE_SEPARATORS.split(raw_text):
        line = DECORATIVE_CHARACTERS.sub("", segment).strip()
        if line:
            lines.append(line)
    return lines


def split_location_hint(line: str) -> tuple[str, str | None]:
    """Separate a short trailing ", City" qualifier from the name."""
    if "," not in line:
        return line, None
    parts = [part.strip() for part in line.split(",")]
    if len(parts) == 2 and 0 < len(parts[1]) < MAX_HINT_LENGTH:
        return parts[0], parts[1]
    return line, None


def normalize_name(name: str) -> str:
    name = _BRACKETS_AND_QUOTES.sub("", name)
    name = _TRAILING_PUNCTUATION.sub("", name)
    return _WHITESPACE.sub(" ", name).strip()


def has_poi_suffix(name: str) -> bool:
    return name.split(" ")[-1].lower() in _POI_SUFFIXES_LOWER


def is_title_case_phrase(name: str) -> bool:
    return _TITLE_CASE_PHRASE.fullmatch(name) is not None


def looks_like_place(name: str) -> bool:
    """Heuristic acceptance test for a normalized name."""
    if len(name) < MIN_NAME_LENGTH:
        return False
    return has_poi_suffix(name) or is_title_case_phrase(name)


def dedup_key(main_name: str, hint_city: str | None) -> str:
    name_key = _NON_ALNUM.sub("", main_name.lower())
    return f"{name_key}|{(hint_city or '').lower()}"


def deduplicate(candidates: list[Candidate]) -> list[Candidate]:
    """Drop repeated candidates, keeping the first occurrence.

    A later duplicate that carries a hint city fills in the hint of a kept
    candidate that has none. The kept candidate stays reachable under its
    original key as well, so further hintless repeats are still dropped.

    Args:
        candidates: Accepted candidates in position order

    Returns:
        Unique candidates sorted by position
    """
    kept: list[Candidate] = []
    slots: dict[str, int] = {}
    hintless: dict[str, int] = {}

    for candidate in candidates:
        key = dedup_key(candidate.main_name, candidate.hint_city)
        if key in slots:
            continue

        name_key = dedup_key(candidate.main_name, None)
        if candidate.hint_city and name_key in hintless:
            slot = hintless.pop(name_key)
            kept[slot] = kept[slot].model_copy(update={"hint_city": candidate.hint_city})
            slots[key] = slot
            logger.debug(
                "Merged hint city into duplicate candidate",
                main_name=kept[slot].main_name,
                hint_city=candidate.hint_city,
            )
            continue

        slots[key] = len(kept)
        if not candidate.hint_city:
            hintless[name_key] = len(kept)
        kept.append(candidate)

    return sorted(kept, key=lambda c: c.position)


def extract_candidates(raw_text: str) -> list[Candidate]:
    """Turn free text into an ordered list of unique place candidates.

    Args:
        raw_text: Text pasted by the operator

    Returns:
        Candidates sorted by ``position``
    """
    accepted: list[Candidate] = []
    for line in split_lines(raw_text):
        name, hint_city = split_location_hint(line)
        main_name = normalize_name(name)
        if not looks_like_place(main_name):
            continue
        accepted.append(
            Candidate(
                raw=line,
                main_name=main_name,
                hint_city=hint_city,
                position=len(accepted),
            )
        )

    unique = deduplicate(accepted)
    logger.info(
        "Extracted candidates",
        accepted=len(accepted),
        unique=len(unique),
    )
    return unique
