"""
Recipe Structure Extractor: raw OCR text to a StructuredRecipe.

Two strategies, tried in order:
  1. Generic heuristic: whole-text scanning with ordered rule tables for
     title, ingredients and steps. Works on any recipe, tolerates missing
     line breaks and section headers.
  2. Literal fallback: the template catalogue (see templates.py). Only
     used when the text is corrupted or the heuristic found nothing.

Each rule in a table is independent: it owns one pattern and one way of
turning a match into a value, and rules are evaluated in table order.
"""

import logging
import re
from typing import Callable, List, NamedTuple, Optional, Pattern

from ..constants import (
    DEFAULT_TITLE,
    MAX_INGREDIENTS,
    MAX_STEPS,
    MAX_TITLE_LENGTH,
    MIN_HEURISTIC_STEP_LENGTH,
    MIN_INGREDIENT_LENGTH,
)
from ..models.recipe import ParsedIngredient, ParsingMethod, StructuredRecipe
from .confidence import score_structure
from .corruption import is_corrupted
from .ingredient_parser import normalize_unit, parse_ingredient_line
from .templates import match_templates
from .text_cleanup import fix_common_ocr_errors, normalize_ocr_text

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════
# RULE TABLES
# ═══════════════════════════════════════════════════════════════════


class IngredientRule(NamedTuple):
    name: str
    pattern: Pattern[str]
    build: Callable[[re.Match], ParsedIngredient]


class StepRule(NamedTuple):
    name: str
    pattern: Pattern[str]
    text: Callable[[re.Match], str]


class TitleRule(NamedTuple):
    name: str
    pattern: Pattern[str]


def _ingredient(quantity: Optional[str], unit: Optional[str], item: str) -> ParsedIngredient:
    return ParsedIngredient(
        quantity=quantity or None,
        unit=unit or None,
        canonical_unit=normalize_unit(unit),
        item=item,
    )


INGREDIENT_RULES = (
    IngredientRule(
        "bulleted-quantity",
        re.compile(
            r"[•\-*][ \t]*(\d+(?:[,.]\d+)?)[ \t]*([a-zA-ZäöüÄÖÜß]+)?[ \t]+"
            r"([A-ZÄÖÜ][a-zäöüß]+(?:[ \t]+[a-zäöüß]+)*)"
        ),
        lambda m: _ingredient(m.group(1), m.group(2), m.group(3)),
    ),
    IngredientRule(
        "quantity-unit",
        re.compile(
            r"(\d+(?:[,.]\d+)?)[ \t]*(g|kg|ml|l|tasse|tassen|löffel|esslöffel|teelöffel|"
            r"paket|pakete|packung|ei|eier|stück)\b[ \t]+([A-ZÄÖÜ][a-zäöüß]+(?:[ \t]+[a-zäöüß]+)*)",
            re.IGNORECASE,
        ),
        lambda m: _ingredient(m.group(1), m.group(2), m.group(3)),
    ),
    IngredientRule(
        "known-ingredient",
        re.compile(
            r"\b(mascarpone|butter|zucker|mehl|sahne|milch|eier?|salz|pfeffer|zwiebeln?|"
            r"knoblauch|tomaten|käse|schinken|paprika)\b",
            re.IGNORECASE,
        ),
        lambda m: _ingredient(None, None, m.group(1)),
    ),
)

STEP_RULES = (
    StepRule(
        "step-marker",
        re.compile(
            r"Schritt\s*\d+[:.\s]*(.+?)"
            r"(?=\s*Schritt\s*\d+|\n\s*\n|\n(?:zutaten|ingredients|ingredientes|zubereitung|"
            r"tipps?|nährwerte)\b|\Z)",
            re.IGNORECASE | re.DOTALL,
        ),
        lambda m: m.group(1),
    ),
    StepRule(
        "numbered-sentence",
        re.compile(r"(?:^|(?<=\s))(\d+)[.)][ \t]*([A-ZÄÖÜ][^.\n]{20,}\.?)", re.MULTILINE),
        lambda m: m.group(2),
    ),
    StepRule(
        "cooking-verb",
        re.compile(
            r"\b(?:Mischen|Rühren|Geben|Backen|Kochen|Braten|Aufbrühen|Erhitzen|Servieren)\b[^.\n]{30,}",
            re.IGNORECASE,
        ),
        lambda m: m.group(0),
    ),
)

CONNECTIVES = r"(?:[aà][ \t]+la|mit|für|von|nach|with|con)"

TITLE_RULES = (
    TitleRule(
        "heading-with-colon",
        re.compile(r"^[ \t]*([A-ZÄÖÜ][\wäöüß-]+(?:[ \t]+[\wäöüßÄÖÜ-]+){0,5})[ \t]*:[ \t]*$", re.MULTILINE),
    ),
    TitleRule(
        "recipe-prefix",
        re.compile(r"\b(?:Rezept|Recipe|Receta)[ \t]*:?[ \t]*([A-ZÄÖÜ][a-zäöüß]+(?:[ \t]+[a-zäöüß]+)*)"),
    ),
    TitleRule(
        "dish-with-connective",
        re.compile(
            rf"^[ \t]*([A-ZÄÖÜ][a-zäöüß]+(?:[ \t]+[a-zäöüß]+)*[ \t]+{CONNECTIVES}[ \t]+"
            r"[A-ZÄÖÜ][\wäöüß-]+(?:[ \t]+[\wäöüßÄÖÜ-]+){0,3})[ \t]*$",
            re.MULTILINE,
        ),
    ),
)

DISH_KEYWORD_RE = re.compile(
    r"\b(?:tiramisu|lasagne|kuchen|torte|salat|suppe|brot|pizza|pasta)\b",
    re.IGNORECASE,
)
BULLET_START_RE = re.compile(r"^[•·▪●\-*]")

SECTION_WORDS = {
    "zutaten", "ingredients", "ingredientes", "zubereitung", "schritt",
    "anleitung", "preparation", "instructions", "steps",
}

SERVINGS_RE = re.compile(r"(?<!\d)(\d{1,3})\s*(?:portion|person|serv)", re.IGNORECASE)
TIME_RE = re.compile(
    r"\d+(?:\s*[-–]\s*\d+)?\s*(?:minuten|minutes|minutos|min|stunden|stunde|std|hours|hour|horas)\b",
    re.IGNORECASE,
)

# ═══════════════════════════════════════════════════════════════════
# FIELD EXTRACTION
# ═══════════════════════════════════════════════════════════════════


def _clean_title(raw: str) -> Optional[str]:
    title = re.sub(r"\s+", " ", raw).strip(" :-")
    if len(title) <= 3 or title.lower() in SECTION_WORDS:
        return None
    return title[:MAX_TITLE_LENGTH].strip()


def extract_title(text: str) -> str:
    """Find the dish name, falling back to a dish keyword, then the default title."""
    for rule in TITLE_RULES:
        for match in rule.pattern.finditer(text):
            title = _clean_title(match.group(1))
            if title:
                logger.debug(f"Title found by '{rule.name}': {title}")
                return title

    # Fallback: first short, non-bullet line that names a dish
    for line in text.split("\n"):
        if len(line) < MAX_TITLE_LENGTH and not BULLET_START_RE.match(line) and DISH_KEYWORD_RE.search(line):
            title = _clean_title(line)
            if title:
                logger.debug(f"Title found by dish keyword: {title}")
                return title

    return DEFAULT_TITLE


def _is_duplicate_ingredient(candidate: ParsedIngredient, accepted: List[ParsedIngredient]) -> bool:
    new_item = candidate.item.lower()
    for existing in accepted:
        old_item = existing.item.lower()
        if old_item in new_item or new_item in old_item:
            return True
    return False


def extract_ingredients(text: str) -> List[ParsedIngredient]:
    ingredients: List[ParsedIngredient] = []

    for rule in INGREDIENT_RULES:
        for match in rule.pattern.finditer(text):
            try:
                candidate = rule.build(match)
            except ValueError:
                continue
            if len(candidate.item) <= MIN_INGREDIENT_LENGTH:
                continue
            if _is_duplicate_ingredient(candidate, ingredients):
                continue
            ingredients.append(candidate)
            logger.debug(f"Ingredient found by '{rule.name}': {candidate.display}")

    return ingredients


def extract_steps(text: str) -> List[str]:
    steps: List[str] = []

    for rule in STEP_RULES:
        for match in rule.pattern.finditer(text):
            step = re.sub(r"\s+", " ", rule.text(match)).strip()
            if len(step) > MIN_HEURISTIC_STEP_LENGTH and step not in steps:
                steps.append(step)
                logger.debug(f"Step found by '{rule.name}': {step[:50]}...")

    return steps


def extract_servings(text: str) -> Optional[int]:
    match = SERVINGS_RE.search(text)
    if not match:
        return None
    servings = int(match.group(1))
    return servings if servings > 0 else None


def extract_total_time(text: str) -> Optional[str]:
    match = TIME_RE.search(text)
    return re.sub(r"\s+", " ", match.group(0)).strip() if match else None


# ═══════════════════════════════════════════════════════════════════
# STRATEGIES
# ═══════════════════════════════════════════════════════════════════


def extract_heuristic(text: str) -> StructuredRecipe:
    """Generic heuristic strategy over normalized text."""
    title = extract_title(text)
    ingredients = extract_ingredients(text)[:MAX_INGREDIENTS]
    steps = extract_steps(text)[:MAX_STEPS]
    servings = extract_servings(text)
    total_time = extract_total_time(text)

    logger.info(
        f"Heuristic parse: title='{title}', "
        f"{len(ingredients)} ingredients, {len(steps)} steps"
    )

    return StructuredRecipe(
        title=title,
        ingredients=ingredients,
        steps=steps,
        servings=servings,
        total_time=total_time,
        confidence=score_structure(
            title, ingredients, steps, servings, total_time, ParsingMethod.GENERIC_HEURISTIC
        ),
        method=ParsingMethod.GENERIC_HEURISTIC,
    )


def extract_literal(text: str) -> StructuredRecipe:
    """Literal fallback strategy: canonical strings from the template catalogue."""
    corrected = fix_common_ocr_errors(text)
    match = match_templates(corrected)

    if match is None:
        logger.info("Literal fallback: no template matched")
        return StructuredRecipe(method=ParsingMethod.LITERAL_FALLBACK, confidence=0.0)

    ingredients = [
        parsed for parsed in (parse_ingredient_line(line) for line in match.ingredients)
        if parsed is not None
    ][:MAX_INGREDIENTS]
    steps = match.steps[:MAX_STEPS]
    title = match.title or DEFAULT_TITLE
    servings = extract_servings(corrected)
    total_time = extract_total_time(corrected)

    logger.info(
        f"Literal fallback ({match.family}): title='{title}', "
        f"{len(ingredients)} ingredients, {len(steps)} steps"
    )

    return StructuredRecipe(
        title=title,
        ingredients=ingredients,
        steps=steps,
        servings=servings,
        total_time=total_time,
        confidence=score_structure(
            title, ingredients, steps, servings, total_time, ParsingMethod.LITERAL_FALLBACK
        ),
        method=ParsingMethod.LITERAL_FALLBACK,
    )


class RecipeStructureExtractor:
    """Chains the heuristic and literal strategies over one text."""

    def extract(self, text: str) -> StructuredRecipe:
        clean_text = normalize_ocr_text(text)

        if is_corrupted(clean_text):
            logger.info("Text looks corrupted, using literal fallback")
            return extract_literal(clean_text)

        result = extract_heuristic(clean_text)
        if result.is_empty:
            logger.info("Heuristic parse found nothing, using literal fallback")
            return extract_literal(clean_text)

        return result
