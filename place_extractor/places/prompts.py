"""Prompts and response schemas for the LLM-backed place services."""

from typing import Any

from place_extractor.models import Candidate

FIND_MATCHES_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "matches": {
            "type": "array",
            "description": "Potential matches, most relevant first.",
            "items": {
                "type": "object",
                "properties": {
                    "external_id": {"type": "string"},
                    "name": {"type": "string"},
                    "address": {"type": "string"},
                },
                "required": ["external_id", "name", "address"],
                "additionalProperties": False,
            },
        },
        "error": {
            "type": "string",
            "description": "Why no places could be found; empty on success.",
        },
    },
    "required": ["matches", "error"],
    "additionalProperties": False,
}

PLACE_DETAILS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "name_en": {"type": "string", "description": "Place name in English"},
        "name_ja": {"type": "string", "description": "Place name in Japanese"},
        "mapcode": {
            "type": "string",
            "description": "The Japan mapcode, e.g. '224 489 815*64'",
        },
        "telephone": {"type": "string", "description": "International phone number"},
        "address": {"type": "string", "description": "Formatted address"},
        "error": {
            "type": "string",
            "description": "Why the details could not be found; empty on success.",
        },
    },
    "required": ["name_en", "name_ja", "mapcode", "telephone", "address", "error"],
    "additionalProperties": False,
}


def find_matches_prompt(candidate: Candidate, max_matches: int) -> str:
    query = f"{candidate.main_name} {candidate.hint_city or ''}".strip()
    return f"""
You are an expert at finding places in Japan. Use Google Places Text Search to
find potential matches for a place name.

Input place:
- Main Name: "{candidate.main_name}"
- Hint City: "{candidate.hint_city or ''}"

Instructions:
1. Search Google Places in Japan (region=jp) for: "{query}".
2. Return up to {max_matches} of the most relevant results as "matches". Each
   match needs its Google place_id as "external_id", plus "name" and "address".
3. If nothing is found, return an empty "matches" list and explain in "error".
4. Return only the JSON object.
"""


def place_details_prompt(external_id: str, context_name: str) -> str:
    return f"""
You are a data enrichment API. Given a Google Place ID for a location in Japan,
find its details and its mapcode.

Input:
- Place ID: "{external_id}"
- Original Name: "{context_name}" (for context)

Steps:
1. Get Google Place Details for language=en (name, formatted_address,
   international_phone_number) and language=ja (name).
2. Look up the mapcode for the English place name on japanmapcode.com and
   choose the most likely match.
3. Return one JSON object. Use an empty string for any unavailable field and
   leave "error" empty unless a step failed.
"""
