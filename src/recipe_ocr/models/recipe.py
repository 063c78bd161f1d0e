"""
Recipe OCR models.

Everything here is request-scoped: a pipeline call creates these objects,
returns them to the caller and keeps no reference afterwards.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..constants import DEFAULT_TITLE


class OCRMethod(str, Enum):
    """Recognition engine that produced a candidate."""

    TESSERACT = "tesseract"
    TROCR_PRINTED = "trocr-printed"
    TROCR_HANDWRITTEN = "trocr-handwritten"
    VISION_PRINTED = "vision-printed"
    VISION_HANDWRITTEN = "vision-handwritten"


class ParsingMethod(str, Enum):
    """Strategy that produced a structured recipe."""

    GENERIC_HEURISTIC = "generic-heuristic"
    LITERAL_FALLBACK = "literal-fallback"
    SECTION_BASED = "section-based"


class Section(str, Enum):
    """Cursor of the line-oriented parser."""

    NONE = "none"
    INGREDIENTS = "ingredients"
    STEPS = "steps"


class EngineOutput(BaseModel):
    """Raw output of a single recognition engine call."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(default="", description="Recognized text")
    confidence: Optional[float] = Field(
        default=None,
        ge=0,
        le=100,
        description="Engine-native confidence, None when the engine has none",
    )


class OCRCandidate(BaseModel):
    """One engine's transcription attempt plus its confidence."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Recognized text")
    confidence: float = Field(ge=0, le=100, description="Quality estimate (0-100)")
    method: OCRMethod = Field(description="Engine that produced the text")
    elapsed_ms: float = Field(default=0.0, ge=0, description="Wall-clock time in milliseconds")


class ParsedIngredient(BaseModel):
    """A single ingredient line split into quantity, unit and item."""

    quantity: Optional[str] = Field(default=None, description="Raw quantity as written (e.g. '2', '1/2')")
    unit: Optional[str] = Field(default=None, description="Unit as written (e.g. 'Esslöffel', 'g')")
    canonical_unit: Optional[str] = Field(default=None, description="Normalized unit (e.g. 'tbsp', 'g')")
    item: str = Field(description="Ingredient name, never empty")
    notes: Optional[str] = Field(default=None, description="Parenthesized remark (e.g. 'herb, nicht süß')")

    @field_validator("item")
    @classmethod
    def item_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("ingredient item cannot be empty")
        return value

    @property
    def display(self) -> str:
        """Reassemble the ingredient as a single readable line."""
        parts = [p for p in (self.quantity, self.unit, self.item) if p]
        text = " ".join(parts)
        if self.notes:
            text += f" ({self.notes})"
        return text


class StructuredRecipe(BaseModel):
    """Typed recipe recovered from OCR text."""

    title: str = Field(default=DEFAULT_TITLE, description="Recipe title, defaulted when not found")
    ingredients: List[ParsedIngredient] = Field(default_factory=list)
    steps: List[str] = Field(default_factory=list)
    servings: Optional[int] = Field(default=None, ge=1)
    total_time: Optional[str] = Field(default=None, description="Total time as written (e.g. '30 Minuten')")
    confidence: float = Field(default=0.0, ge=0, le=100)
    method: ParsingMethod = Field(default=ParsingMethod.GENERIC_HEURISTIC)

    @field_validator("title", mode="before")
    @classmethod
    def default_title(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_TITLE
        return value.strip() if isinstance(value, str) else value

    @property
    def is_empty(self) -> bool:
        """No ingredients and no steps: valid but uninformative."""
        return not self.ingredients and not self.steps

    @property
    def has_default_title(self) -> bool:
        return self.title == DEFAULT_TITLE

    def to_create_payload(self) -> Dict[str, Any]:
        """Payload accepted by the recipe persistence layer."""
        return {
            "title": self.title,
            "servings": self.servings,
            "totalTime": self.total_time,
            "ingredients": [
                {
                    "sortOrder": index,
                    "quantityRaw": ingredient.quantity or "",
                    "unit": ingredient.unit,
                    "unitCanonical": ingredient.canonical_unit,
                    "item": ingredient.item,
                    "notes": ingredient.notes,
                }
                for index, ingredient in enumerate(self.ingredients)
            ],
            "steps": [
                {"sortOrder": index, "text": step}
                for index, step in enumerate(self.steps)
            ],
        }


@dataclass(frozen=True)
class SectionParse:
    """Raw output of the line-oriented section parser."""

    title: Optional[str]
    ingredients: tuple
    steps: tuple
    servings: Optional[int]
    sections_visited: tuple


class RecipeOCRResult(BaseModel):
    """Result of a full image-to-recipe pipeline call."""

    text: str = Field(description="Text of the winning OCR candidate")
    ocr: OCRCandidate = Field(description="Winning candidate, elapsed_ms covers the whole cascade")
    recipe: StructuredRecipe
    used_section_fallback: bool = Field(
        default=False,
        description="True when the last-resort section-based parser supplied ingredients or steps",
    )
