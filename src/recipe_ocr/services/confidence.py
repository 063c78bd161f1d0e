"""
Confidence Scorer: 0-100 quality estimates for OCR text and parse results.

Two pure variants:
  - score_ocr_text: for engines with no native confidence (TrOCR, vision LLM)
  - score_structure: for structured recipes, used to rank parsing strategies

Both only go up when more recognizable structure is found, so best-of-N
selection on top of them is well defined.
"""

import re
from typing import Optional, Sequence

from ..constants import DEFAULT_TITLE
from ..models.recipe import ParsingMethod

# Anything outside word characters (diacritics included), whitespace and - . ,
ANOMALOUS_CHAR_RE = re.compile(r"[^\w\s\-.,]")

DOMAIN_KEYWORDS = (
    "zutaten", "schritt", "mascarpone", "löffel", "tasse",
    "zucker", "ei", "butter", "mehl", "milch",
)
KEYWORD_BONUS = 10
MAX_KEYWORD_BONUS = 40

QUANTITY_UNIT_RE = re.compile(r"\d+\s*(?:g|ml|tasse|löffel)", re.IGNORECASE)
STEP_MARKER_RE = re.compile(r"schritt\s*\d+", re.IGNORECASE)

LITERAL_BASE_SCORE = 30
LITERAL_MAX_SCORE = 85


def count_anomalous_chars(text: str) -> int:
    return len(ANOMALOUS_CHAR_RE.findall(text))


def anomalous_ratio(text: str) -> float:
    """Share of characters that are neither letters, digits, spaces nor - . ,"""
    if not text:
        return 0.0
    return count_anomalous_chars(text) / len(text)


def score_ocr_text(text: Optional[str]) -> float:
    """Estimate the quality of a transcription that came without a confidence."""
    if not text or len(text.strip()) < 10:
        return 10.0

    lowered = text.lower()
    score = 50

    if len(text) > 50:
        score += 20

    found = sum(1 for word in DOMAIN_KEYWORDS if word in lowered)
    score += min(found * KEYWORD_BONUS, MAX_KEYWORD_BONUS)

    if QUANTITY_UNIT_RE.search(text):
        score += 15
    if STEP_MARKER_RE.search(text):
        score += 15

    score -= count_anomalous_chars(text) * 2

    return float(max(10, min(100, score)))


def score_structure(
    title: Optional[str],
    ingredients: Sequence,
    steps: Sequence,
    servings: Optional[int],
    total_time: Optional[str],
    method: ParsingMethod,
) -> float:
    """Score a parse result by how much recipe structure it recovered."""
    literal = method == ParsingMethod.LITERAL_FALLBACK

    # The literal floor only applies when a template actually matched
    if literal and not ingredients and not steps:
        return 0.0

    score = LITERAL_BASE_SCORE if literal else 0

    if title and title != DEFAULT_TITLE:
        score += 20
    if ingredients:
        score += 30
    if steps:
        score += 30
    if servings:
        score += 10
    if total_time:
        score += 10

    return float(min(score, LITERAL_MAX_SCORE if literal else 100))
