"""
Ingredient line parser.

Splits a single ingredient line ("• 2 Esslöffel Zucker (fein)") into
quantity, unit, item and notes. Quantities and units are best-effort:
a unit is only recognized when it belongs to the unit vocabulary, so
"4 Eier" keeps "Eier" as the item instead of reading it as a unit.
"""

import logging
import re
from typing import Optional

from ..models.recipe import ParsedIngredient

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════
# UNIT VOCABULARY
# ═══════════════════════════════════════════════════════════════════

UNIT_NORMALIZE = {
    # German
    "esslöffel": "tbsp", "el": "tbsp",
    "teelöffel": "tsp", "tl": "tsp",
    "löffel": "tbsp",
    "tasse": "cup", "tassen": "cup",
    "prise": "pinch", "prisen": "pinch",
    "packung": "package", "packungen": "package",
    "paket": "package", "pakete": "package", "päckchen": "package",
    "stück": "piece", "stk": "piece",
    "scheibe": "slice", "scheiben": "slice",
    "zehe": "clove", "zehen": "clove",
    "bund": "bunch",
    "becher": "cup",
    "dose": "can", "dosen": "can",
    "msp": "pinch",
    "gramm": "g", "liter": "l",
    # English
    "tablespoons": "tbsp", "tablespoon": "tbsp", "tbsp": "tbsp",
    "teaspoons": "tsp", "teaspoon": "tsp", "tsp": "tsp",
    "cups": "cup", "cup": "cup",
    "grams": "g", "gram": "g",
    "pinch": "pinch", "pinches": "pinch",
    "cloves": "clove", "clove": "clove",
    "cans": "can", "can": "can",
    "slices": "slice", "slice": "slice",
    "pieces": "piece", "piece": "piece",
    "oz": "oz", "lb": "lb",
    # Spanish
    "taza": "cup", "tazas": "cup",
    "cucharada": "tbsp", "cucharadas": "tbsp",
    "cucharadita": "tsp", "cucharaditas": "tsp",
    "pizca": "pinch",
    "gr": "g", "gramos": "g",
    # Metric
    "g": "g", "kg": "kg", "mg": "mg",
    "ml": "ml", "cl": "cl", "dl": "dl", "l": "l",
}

KNOWN_UNITS = frozenset(UNIT_NORMALIZE)

FRACTION_CHARS = "½¼¾⅓⅔⅛"

BULLET_PREFIX_RE = re.compile(r"^\s*[•·▪●\-*+]\s*")
NOTES_RE = re.compile(r"\(([^)]+)\)")
QUANTITY_RE = re.compile(
    rf"^(?P<quantity>\d+\s?[{FRACTION_CHARS}]|[{FRACTION_CHARS}]|\d+\s*/\s*\d+"
    r"|\d+(?:[.,]\d+)?(?:\s*[-–]\s*\d+(?:[.,]\d+)?)?)"
)
UNIT_RE = re.compile(r"^\s*(?P<unit>[A-Za-zÄÖÜäöüß]+)\.?(?=\s|$)")


def normalize_unit(raw_unit: Optional[str]) -> Optional[str]:
    """Normalize a unit spelling to its canonical short form."""
    if raw_unit is None:
        return None
    clean = str(raw_unit).strip().rstrip(".").lower()
    if not clean:
        return None
    return UNIT_NORMALIZE.get(clean, clean)


def is_known_unit(word: str) -> bool:
    return word.strip().rstrip(".").lower() in KNOWN_UNITS


def strip_bullet(line: str) -> str:
    return BULLET_PREFIX_RE.sub("", line, count=1).strip()


def parse_ingredient_line(line: str) -> Optional[ParsedIngredient]:
    """
    Parse one ingredient line into a ParsedIngredient.

    Examples:
      "2 Esslöffel Zucker"          -> quantity="2", unit="Esslöffel", item="Zucker"
      "• 250g Mehl"                 -> quantity="250", unit="g", item="Mehl"
      "Kakaopulver (herb, nicht süß)" -> item="Kakaopulver", notes="herb, nicht süß"

    Returns None when nothing usable is left for the item.
    """
    text = strip_bullet(line or "")
    if not text:
        return None

    notes = None
    notes_match = NOTES_RE.search(text)
    if notes_match:
        notes = notes_match.group(1).strip() or None
        text = (text[:notes_match.start()] + text[notes_match.end():]).strip()
        text = re.sub(r"\s{2,}", " ", text)

    quantity = None
    unit = None
    rest = text

    quantity_match = QUANTITY_RE.match(text)
    if quantity_match:
        quantity = re.sub(r"\s+", "", quantity_match.group("quantity"))
        rest = text[quantity_match.end():]

        unit_match = UNIT_RE.match(rest)
        if unit_match and is_known_unit(unit_match.group("unit")):
            after_unit = rest[unit_match.end():].strip()
            if after_unit:
                unit = unit_match.group("unit")
                rest = after_unit

    item = rest.strip(" ,;:-")
    if not item:
        logger.debug(f"No ingredient item left in line '{line}'")
        return None

    return ParsedIngredient(
        quantity=quantity,
        unit=unit,
        canonical_unit=normalize_unit(unit),
        item=item,
        notes=notes,
    )
