"""
Line-oriented section parser.

Last-resort parser for recipe pages laid out as
"Zutaten / • ingredient lines / Schritt N / step text". It walks the lines
once, as a fold over an immutable ParserState, and hands each line to the
first rule of SECTION_RULES whose predicate accepts it.

Steps may span several physical lines: step text accumulates in a buffer
that is flushed when the next step marker (or the end of input) is seen.
"""

import logging
import re
from dataclasses import dataclass, replace
from functools import reduce
from typing import Callable, NamedTuple, Optional, Tuple

from ..constants import (
    MAX_INGREDIENTS,
    MAX_STEPS,
    MAX_TITLE_LENGTH,
    MIN_INGREDIENT_LENGTH,
    MIN_SECTION_STEP_LENGTH,
)
from ..models.recipe import ParsingMethod, Section, SectionParse, StructuredRecipe
from .confidence import score_structure
from .ingredient_parser import parse_ingredient_line

logger = logging.getLogger(__name__)

EARLY_TITLE_LINES = 5
MAX_PROMOTED_TITLE_LENGTH = 50

NOISE_RE = re.compile(
    r"^(?:kochbücher|wochenplaner|anpassen|teilen|bewertungen|hinzugefügt|zur einkaufsliste)",
    re.IGNORECASE,
)
DISH_RE = re.compile(r"tiramisu|lasagne|kuchen|torte|salat|suppe|brot|pizza|auflauf", re.IGNORECASE)
BULLET_LINE_RE = re.compile(r"^[•·▪●\-*]")
SERVINGS_LINE_RE = re.compile(r"^(\d{1,3})\s*(?:portionen?|personen?|serviert)", re.IGNORECASE)
INGREDIENTS_HEADER_RE = re.compile(r"^(?:zutaten|ingredients|ingredientes)\s*:?\s*$", re.IGNORECASE)
STEP_MARKER_RE = re.compile(r"^(?:schritt|step|paso)\s*\d+\s*[:.)]?\s*(?P<rest>.*)$", re.IGNORECASE)

INGREDIENT_QUANTITY_RE = re.compile(
    r"\d+\s*(?:pakete?|packung|tassen?|esslöffel|teelöffel|eier|g|kg|ml|l)\b", re.IGNORECASE
)
KNOWN_INGREDIENT_RE = re.compile(
    r"\b(?:mascarpone|löffelbisquits|kaffee|zucker|eigelb|eiwei[ßs]|kakaopulver|amaretto|cognac|"
    r"mehl|butter|milch|sahne|eier)\b",
    re.IGNORECASE,
)

# Loose ingredients before any header: OCR often reads the bullet as "O" or "(O)"
LOOSE_BULLET_RE = re.compile(r"^(?:\(O\)|OO|O(?=\s)|[•·▪●\-*])\s*")
LOOSE_INGREDIENT_RE = re.compile(
    r"\b(?:pakete?|tassen?|esslöffel|löffel|eier|zucker|kaffee|mascarpone)\b", re.IGNORECASE
)
STEP_VERB_RE = re.compile(
    r"\b(?:aufbrühen|lassen|legen|beträufeln|verrühren|verteilen|streuen|durchziehen|servieren)\b",
    re.IGNORECASE,
)
STEP_PREFIX_RE = re.compile(r"^[\d.)\-,]+\s*")


@dataclass(frozen=True)
class ParserState:
    """Accumulator of the fold. A new state is returned for every line."""

    section: Section = Section.NONE
    buffer: str = ""
    steps: Tuple[str, ...] = ()
    ingredients: Tuple[str, ...] = ()
    title: Optional[str] = None
    servings: Optional[int] = None
    saw_ingredients_header: bool = False
    sections_visited: Tuple[Section, ...] = (Section.NONE,)

    def enter(self, section: Section) -> "ParserState":
        visited = self.sections_visited
        if visited[-1] != section:
            visited = visited + (section,)
        return replace(self, section=section, sections_visited=visited)

    def flush(self) -> "ParserState":
        if not self.buffer:
            return self
        return replace(self, steps=self.steps + (self.buffer,), buffer="")


class SectionRule(NamedTuple):
    name: str
    predicate: Callable[[ParserState, int, str], bool]
    action: Callable[[ParserState, int, str], ParserState]


# ═══════════════════════════════════════════════════════════════════
# RULE ACTIONS
# ═══════════════════════════════════════════════════════════════════


def _looks_like_ingredient(line: str) -> bool:
    return bool(
        BULLET_LINE_RE.match(line)
        or INGREDIENT_QUANTITY_RE.search(line)
        or KNOWN_INGREDIENT_RE.search(line)
    )


def _add_ingredient(state: ParserState, raw: str) -> ParserState:
    if len(raw) <= MIN_INGREDIENT_LENGTH:
        return state
    return replace(state, ingredients=state.ingredients + (raw,))


def _start_step(state: ParserState, index: int, line: str) -> ParserState:
    rest = STEP_MARKER_RE.match(line).group("rest").strip()
    state = state.flush().enter(Section.STEPS)
    return replace(state, buffer=rest if len(rest) > 3 else "")


def _append_to_step(state: ParserState, index: int, line: str) -> ParserState:
    buffer = f"{state.buffer} {line}" if state.buffer else line
    return replace(state, buffer=buffer)


def _take_loose_step(state: ParserState, index: int, line: str) -> ParserState:
    step = STEP_PREFIX_RE.sub("", line).strip()
    if len(step) <= 10:
        return state
    return replace(state, steps=state.steps + (step,))


SECTION_RULES: Tuple[SectionRule, ...] = (
    SectionRule(
        "ui-noise",
        lambda state, index, line: bool(NOISE_RE.match(line)),
        lambda state, index, line: state,
    ),
    SectionRule(
        "early-title",
        lambda state, index, line: (
            state.title is None
            and index < EARLY_TITLE_LINES
            and len(line) < MAX_TITLE_LENGTH
            and not BULLET_LINE_RE.match(line)
            and bool(DISH_RE.search(line))
        ),
        lambda state, index, line: replace(state, title=line),
    ),
    SectionRule(
        "servings",
        lambda state, index, line: bool(SERVINGS_LINE_RE.match(line)),
        lambda state, index, line: replace(state, servings=int(SERVINGS_LINE_RE.match(line).group(1)) or None),
    ),
    SectionRule(
        "ingredients-header",
        lambda state, index, line: bool(INGREDIENTS_HEADER_RE.match(line)),
        lambda state, index, line: replace(
            state.flush().enter(Section.INGREDIENTS), saw_ingredients_header=True
        ),
    ),
    SectionRule(
        "step-marker",
        lambda state, index, line: bool(STEP_MARKER_RE.match(line)),
        _start_step,
    ),
    SectionRule(
        "ingredient-line",
        lambda state, index, line: state.section == Section.INGREDIENTS and _looks_like_ingredient(line),
        lambda state, index, line: _add_ingredient(state, BULLET_LINE_RE.sub("", line).strip()),
    ),
    SectionRule(
        "step-text",
        lambda state, index, line: state.section == Section.STEPS and len(line) > 3,
        _append_to_step,
    ),
    SectionRule(
        "loose-ingredient",
        lambda state, index, line: (
            state.section == Section.NONE
            and state.title is None
            and bool(LOOSE_BULLET_RE.match(line))
            and bool(LOOSE_INGREDIENT_RE.search(line))
        ),
        lambda state, index, line: _add_ingredient(state, LOOSE_BULLET_RE.sub("", line, count=1).strip()),
    ),
    SectionRule(
        "loose-step",
        lambda state, index, line: (
            state.section == Section.NONE
            and state.title is None
            and len(line) > 20
            and bool(STEP_VERB_RE.search(line))
        ),
        _take_loose_step,
    ),
)


def _apply_rules(state: ParserState, numbered_line: Tuple[int, str]) -> ParserState:
    index, line = numbered_line
    for rule in SECTION_RULES:
        if rule.predicate(state, index, line):
            logger.debug(f"Line {index} handled by '{rule.name}': {line[:40]}")
            return rule.action(state, index, line)
    return state


def _fallback_title(lines, state: ParserState) -> Tuple[Optional[str], Tuple[str, ...]]:
    """First plausible short line, else the first ingredient of a headerless list."""
    for line in lines:
        if (
            3 < len(line) < MAX_TITLE_LENGTH
            and not LOOSE_BULLET_RE.match(line)
            and not SERVINGS_LINE_RE.match(line)
            and not NOISE_RE.match(line)
            and not INGREDIENTS_HEADER_RE.match(line)
            and not STEP_MARKER_RE.match(line)
            and line not in state.ingredients
            and not any(STEP_PREFIX_RE.sub("", line).strip() in step for step in state.steps)
        ):
            return line, state.ingredients

    ingredients = state.ingredients
    if ingredients and not state.saw_ingredients_header and len(ingredients[0]) <= MAX_PROMOTED_TITLE_LENGTH:
        return ingredients[0], ingredients[1:]

    return None, ingredients


def parse_sections(text: str) -> SectionParse:
    """Parse text line by line, tracking which section each line belongs to."""
    lines = [line.strip() for line in (text or "").replace("\r", "").split("\n")]
    lines = [line for line in lines if line]

    state = reduce(_apply_rules, enumerate(lines), ParserState()).flush()

    title = state.title
    ingredients = state.ingredients
    if title is None:
        title, ingredients = _fallback_title(lines, state)

    steps = tuple(step for step in state.steps if len(step) > MIN_SECTION_STEP_LENGTH)

    logger.info(
        f"Section parse: {len(ingredients)} ingredients, {len(steps)} steps, "
        f"sections {' -> '.join(s.value for s in state.sections_visited)}"
    )

    return SectionParse(
        title=title,
        ingredients=ingredients,
        steps=steps,
        servings=state.servings,
        sections_visited=state.sections_visited,
    )


def to_structured_recipe(parse: SectionParse) -> StructuredRecipe:
    ingredients = [
        parsed for parsed in (parse_ingredient_line(line) for line in parse.ingredients)
        if parsed is not None
    ][:MAX_INGREDIENTS]
    steps = list(parse.steps[:MAX_STEPS])

    return StructuredRecipe(
        title=parse.title,
        ingredients=ingredients,
        steps=steps,
        servings=parse.servings,
        confidence=score_structure(
            parse.title, ingredients, steps, parse.servings, None, ParsingMethod.SECTION_BASED
        ),
        method=ParsingMethod.SECTION_BASED,
    )
