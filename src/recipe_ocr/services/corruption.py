"""
Corruption Classifier: is raw OCR text unusable for structural parsing?

Corruption is judged by the absence of any recoverable structure, not by
noise alone: a short clean fragment with no structure is corrupted, a long
noisy page with clear section cues is not.
"""

import re

from ..constants import CORRUPTION_ANOMALY_RATIO, CORRUPTION_MIN_LENGTH

# Outside letters/digits/underscore (\w covers diacritics), whitespace,
# common punctuation and bullet glyphs
CORRUPTION_ANOMALY_RE = re.compile(r"[^\w\s\-.,:;!?()/%'\"•·▪●]")

INGREDIENT_KEYWORD_RE = re.compile(r"\b(?:zutaten|ingredients|ingredientes)\b", re.IGNORECASE)
QUANTITY_UNIT_RE = re.compile(
    r"\d+\s*(?:g|kg|ml|l|tasse|tassen|löffel|esslöffel|teelöffel|paket|pakete|packung|cups?|tbsp|tsp)\b",
    re.IGNORECASE,
)
BULLET_RE = re.compile(r"[•·▪●]|^\s*[-*]\s", re.MULTILINE)

STEP_KEYWORD_RE = re.compile(
    r"\b(?:schritt|zubereitung|steps?|instructions|preparación|pasos?)\b", re.IGNORECASE
)
NUMBERED_RE = re.compile(r"\d+[.)]")
COOKING_VERB_RE = re.compile(
    r"\b(?:aufbrühen|legen|mischen|rühren|verrühren|backen|kochen|braten|schneiden|"
    r"verteilen|streuen|servieren|mix|stir|bake|cook|mezclar|hornear)\b",
    re.IGNORECASE,
)


def has_ingredient_signal(text: str) -> bool:
    return bool(
        INGREDIENT_KEYWORD_RE.search(text)
        or QUANTITY_UNIT_RE.search(text)
        or BULLET_RE.search(text)
    )


def has_step_signal(text: str) -> bool:
    return bool(
        STEP_KEYWORD_RE.search(text)
        or NUMBERED_RE.search(text)
        or COOKING_VERB_RE.search(text)
    )


def corruption_ratio(text: str) -> float:
    if not text:
        return 0.0
    return len(CORRUPTION_ANOMALY_RE.findall(text)) / len(text)


def is_corrupted(text: str) -> bool:
    """True when the text cannot be parsed into a recipe structure."""
    if not text or len(text) < CORRUPTION_MIN_LENGTH:
        return True

    if corruption_ratio(text) > CORRUPTION_ANOMALY_RATIO:
        return True

    return not (has_ingredient_signal(text) or has_step_signal(text))
