"""Fixed vocabularies and patterns used across the extractor."""

import re

# Last words that mark a phrase as naming a point of interest
POI_SUFFIXES: tuple[str, ...] = (
    "Hotel",
    "Guesthouse",
    "Inn",
    "Ryokan",
    "Onsen",
    "Station",
    "Mall",
    "Shrine",
    "Temple",
    "Park",
    "Museum",
    "Castle",
    "Garden",
    "House",
    "Cottage",
    "Residence",
    "Rakuen",
    "Tenmangu",
)

# Newline plus list separators: semicolon, bullet, en dash, em dash
LINE_SEPARATORS = re.compile(r"[\n;•–—]")

# Dingbats, private use area, general punctuation through misc symbols,
# arrows and stars, the emoji variation selector, emoji planes and
# guillemet-style markers
DECORATIVE_CHARACTERS = re.compile(
    "[\u2700-\u27bf\ue000-\uf8ff\u2011-\u26ff\u2b00-\u2bff\ufe0f"
    "\U0001f000-\U0001f7ff\U0001f910-\U0001f9ff\U0001fa70-\U0001faff]"
    "|<<|>>"
)

# Glyphs people paste in place of the mapcode "*": full-width asterisk,
# heavy and open-centre stars, asterisk operators, white star, bullets
STAR_GLYPHS = "＊✱✲✳∗⁎⭐•·"

FULLWIDTH_DIGITS = str.maketrans("０１２３４５６７８９", "0123456789")

MAPCODE_PATTERN = re.compile(r"[0-9]{1,3} [0-9]{3} [0-9]{3}\*[0-9]{2}")
MAPCODE_PARTS_PATTERN = re.compile(r"([0-9]{1,3}) ([0-9]{3}) ([0-9]{3})\*([0-9]{2})")

DEMO_TEXT = """
Itoshima Guesthouse Tomo
Ambicia Sasebo
Nagasaki House Burabura
Obama Business Hotel, Unzen
Tap Stay Hotel Saga
Hiiragi Cottage, Hita
Hotel New Tsuruta, Beppu
The Grand Residence Hotel Hakata
"""
