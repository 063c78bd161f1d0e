"""
Recipe OCR pipeline: photo bytes in, StructuredRecipe out.

    validate_image → preprocess_for_ocr → OCRCascade → parse_text

parse_text chains the structure strategies in one fixed order:

    generic heuristic → literal fallback → section-based parser

The section parser only runs when the first two found nothing, and its
result is merged field by field with theirs instead of replacing it.
"""

import asyncio
import logging
from typing import Callable, Optional

from .constants import DEFAULT_TITLE
from .models.recipe import ParsingMethod, RecipeOCRResult, StructuredRecipe
from .observability import langfuse_context, observe
from .services.cascade import OCRCascade, build_default_cascade
from .services.confidence import score_structure
from .services.preprocessing import preprocess_for_ocr, validate_image
from .services.section_parser import parse_sections, to_structured_recipe
from .services.structure_extractor import RecipeStructureExtractor
from .services.text_cleanup import fix_common_ocr_errors

logger = logging.getLogger(__name__)


def merge_recipes(primary: StructuredRecipe, fallback: StructuredRecipe) -> StructuredRecipe:
    """
    Merge the primary chain's result with the section parser's, per field.

    Title and time come from the primary chain when it has them, ingredients
    and steps from the section parser when it found any.
    """
    title = primary.title
    if title == DEFAULT_TITLE and fallback.title != DEFAULT_TITLE:
        title = fallback.title

    ingredients = fallback.ingredients or primary.ingredients
    steps = fallback.steps or primary.steps
    servings = primary.servings or fallback.servings
    total_time = primary.total_time

    contributed = bool(fallback.ingredients or fallback.steps)
    method = ParsingMethod.SECTION_BASED if contributed else primary.method

    return StructuredRecipe(
        title=title,
        ingredients=ingredients,
        steps=steps,
        servings=servings,
        total_time=total_time,
        confidence=score_structure(title, ingredients, steps, servings, total_time, method),
        method=method,
    )


class RecipePipeline:
    """Image or text to StructuredRecipe. Holds no per-request state."""

    def __init__(
        self,
        cascade: Optional[OCRCascade] = None,
        preprocessor: Callable[[bytes], bytes] = preprocess_for_ocr,
    ):
        self._cascade = cascade
        self.preprocessor = preprocessor
        self.extractor = RecipeStructureExtractor()

    @property
    def cascade(self) -> OCRCascade:
        # Built on first image so text-only use never loads an engine
        if self._cascade is None:
            self._cascade = build_default_cascade()
        return self._cascade

    def parse_text(self, text: str) -> StructuredRecipe:
        """Structure raw OCR text. Never raises for 'no recipe found'."""
        recipe = self.extractor.extract(text)
        if not recipe.is_empty:
            return recipe

        logger.info("Primary strategies found nothing, running section-based parser")
        section_recipe = to_structured_recipe(parse_sections(fix_common_ocr_errors(text)))
        return merge_recipes(recipe, section_recipe)

    @observe(name="recipe_ocr_pipeline")
    async def process_image(self, image_bytes: bytes) -> RecipeOCRResult:
        """
        Run the whole pipeline on one uploaded photo.

        Raises:
            ImageValidationError: unsupported or oversized image
            ImagePreprocessingError: the image could not be preprocessed
            EngineInitializationError: a secondary engine could not be loaded
        """
        image_format = validate_image(image_bytes)
        logger.info(f"Processing {image_format} image ({len(image_bytes)} bytes)")

        processed = await asyncio.to_thread(self.preprocessor, image_bytes)
        candidate = await self.cascade.resolve(processed)

        recipe = self.parse_text(candidate.text)

        logger.info(
            f"Recipe '{recipe.title}': {len(recipe.ingredients)} ingredients, "
            f"{len(recipe.steps)} steps via {recipe.method.value} "
            f"(confidence {recipe.confidence:.0f})"
        )
        langfuse_context.update_current_trace(
            metadata={
                "ocr_method": candidate.method.value,
                "ocr_confidence": candidate.confidence,
                "parsing_method": recipe.method.value,
                "parsing_confidence": recipe.confidence,
            }
        )

        return RecipeOCRResult(
            text=candidate.text.strip(),
            ocr=candidate,
            recipe=recipe,
            used_section_fallback=recipe.method == ParsingMethod.SECTION_BASED,
        )
