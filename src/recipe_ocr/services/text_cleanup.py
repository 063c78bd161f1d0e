"""
Text cleanup for raw OCR output.

Two passes live here:
  - normalize_ocr_text: glyph and whitespace normalization applied before
    structure extraction. Keeps line breaks, they carry section boundaries.
  - fix_common_ocr_errors: word-level corrections for recurring German
    recognition errors, applied before the section-based parser.
"""

import re

# OCR reads bullet glyphs on recipe cards as "O", "(O)" or "OO"
BULLET_FIXES = [
    (re.compile(r"\(O\)\s*"), "• "),
    (re.compile(r"\bOO\b\s*"), "• "),
    (re.compile(r"(?m)(^|\s)O\s+(?=\S)"), r"\1• "),
]

# Misreadings seen on German recipe pages (left: OCR output, right: intended word)
WORD_FIXES = {
    "LoLöffelbisquits": "Löffelbisquits",
    "Loffelbisquits": "Löffelbisquits",
    "Lffelbisquits": "Löffelbisquits",
    "Laffelbienuite": "Löffelbisquits",
    "ffelbtsquiks": "Löffelbisquits",
    "magcarplna": "Mascarpone",
    "kokmopulver": "Kakaopulver",
    "tiromtsu": "Tiramisu",
    "amaretb0": "Amaretto",
    "nebenEinander": "nebeneinander",
    "gleichmli9tg": "gleichmäßig",
    "Gleichmig": "Gleichmäßig",
    "versühren": "verrühren",
    "sbelfgeschlagen": "steif geschlagen",
    "steifgeschlagen": "steif geschlagen",
    "Schiissel": "Schüssel",
    "25og": "250g",
}

UNIT_ABBREVIATIONS = {
    "EL": "Esslöffel",
    "TL": "Teelöffel",
}


def normalize_ocr_text(text: str) -> str:
    """Normalize bullets and whitespace, keeping one line per physical line."""
    if not text:
        return ""

    processed = text.replace("\r", "")
    for pattern, replacement in BULLET_FIXES:
        processed = pattern.sub(replacement, processed)

    lines = [re.sub(r"[ \t\u00a0]+", " ", line).strip() for line in processed.split("\n")]
    return "\n".join(line for line in lines if line)


def fix_common_ocr_errors(text: str) -> str:
    """Apply word-bounded corrections for common OCR misreadings."""
    if not text:
        return ""

    t = text.replace("−", "-")
    t = re.sub(r"[ ]{2,}", " ", t)

    # Detached punctuation
    t = re.sub(r"[ \t]+([.,;:])", r"\1", t)

    # Zero read inside a word ("C0gnac")
    t = re.sub(r"(?<=[A-Za-zäöüß])0(?=[a-zäöüß])", "o", t)

    for wrong, right in WORD_FIXES.items():
        t = re.sub(rf"\b{re.escape(wrong)}\b", right, t)

    for abbreviation, unit in UNIT_ABBREVIATIONS.items():
        t = re.sub(rf"\b{abbreviation}\b", unit, t)

    # Drop single-character garbage lines
    return "\n".join(line for line in t.split("\n") if len(line.strip()) > 1)
