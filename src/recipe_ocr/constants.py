"""Constants for the recipe OCR package."""

import os
import shlex
from typing import Literal

from dotenv import load_dotenv

load_dotenv()

# ── Recognition engines ─────────────────────────────────────────────

# Primary engine: tesseract, German first with English/Spanish for stray words
TESSERACT_LANG = os.getenv("TESSERACT_LANG", "deu+eng+spa")
TESSERACT_CMD = os.getenv("TESSERACT_CMD")
# Characters tesseract may emit, accents of Spanish and French dish names
# and the space between words included
TESSERACT_WHITELIST = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZÄÖÜÀÁÈÉÍÑÓÚ"
    "abcdefghijklmnopqrstuvwxyzäöüßàáçèéíñóú"
    "0123456789-–.,;:()/%+°\"' "
)
# OEM 1 = LSTM only, PSM 6 = a single uniform block of text (works best for recipe cards).
# pytesseract shell-splits the config, so the whitelist is quoted as one argument.
TESSERACT_CONFIG = (
    "--oem 1 --psm 6 -c preserve_interword_spaces=1 "
    f"-c tessedit_char_whitelist={shlex.quote(TESSERACT_WHITELIST)}"
)

TROCR_PRINTED_MODEL = os.getenv("TROCR_PRINTED_MODEL", "microsoft/trocr-base-printed")
TROCR_HANDWRITTEN_MODEL = os.getenv("TROCR_HANDWRITTEN_MODEL", "microsoft/trocr-base-handwritten")

# Backend for the two secondary engines, fallback to local TrOCR if not set
SECONDARY_ENGINE: Literal["trocr", "openrouter"] = os.getenv("SECONDARY_ENGINE", "trocr")

if SECONDARY_ENGINE not in ["trocr", "openrouter"]:
    raise ValueError(f"Unsupported secondary engine: {SECONDARY_ENGINE}. Must be one of: trocr, openrouter")

VISION_MODEL = os.getenv("VISION_MODEL", "google/gemini-2.0-flash-001")
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

# ── Cascade thresholds ──────────────────────────────────────────────

PRIMARY_CONFIDENCE_THRESHOLD = 70
MIN_CANDIDATE_LENGTH = 10
LOW_QUALITY_MIN_LENGTH = 20
LOW_QUALITY_ANOMALY_RATIO = 0.3
LOW_QUALITY_MIN_WORDS = 5

# ── Structure extraction ────────────────────────────────────────────

DEFAULT_TITLE = "Rezept"
MAX_TITLE_LENGTH = 60
MAX_INGREDIENTS = 15
MAX_STEPS = 10
MIN_HEURISTIC_STEP_LENGTH = 15
MIN_INGREDIENT_LENGTH = 2
MIN_SECTION_STEP_LENGTH = 5

CORRUPTION_MIN_LENGTH = 30
CORRUPTION_ANOMALY_RATIO = 0.6

# ── Images ──────────────────────────────────────────────────────────

MAX_IMAGE_BYTES = 10 * 1024 * 1024
SUPPORTED_IMAGE_FORMATS = {"JPEG", "PNG", "WEBP", "GIF"}
TARGET_WIDTH = 2200
BINARY_THRESHOLD = 165
