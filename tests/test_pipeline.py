"""
End-to-end tests for the recipe OCR pipeline, with fake recognition engines.
"""

import pytest

from recipe_ocr.constants import DEFAULT_TITLE
from recipe_ocr.exceptions import ImagePreprocessingError, ImageValidationError
from recipe_ocr.models.recipe import OCRMethod, ParsedIngredient, ParsingMethod, StructuredRecipe
from recipe_ocr.pipeline import RecipePipeline, merge_recipes
from recipe_ocr.services.cascade import OCRCascade

from conftest import FakeEngine

PESTO_PAGE = "Pesto Genovese\nZutaten\n• Olivenöl\n• Basilikum\nSchritt 1\nAlles mischen."


def make_pipeline(primary_text, primary_confidence=90.0, preprocessor=lambda b: b):
    cascade = OCRCascade(
        FakeEngine(OCRMethod.TESSERACT, primary_text, confidence=primary_confidence),
        FakeEngine(OCRMethod.TROCR_PRINTED),
        FakeEngine(OCRMethod.TROCR_HANDWRITTEN),
    )
    return RecipePipeline(cascade=cascade, preprocessor=preprocessor)


# ── Text only ─────────────────────────────────────────────────────────

class TestParseText:

    def test_clean_page_uses_heuristic(self, clean_text):
        recipe = RecipePipeline().parse_text(clean_text)

        assert recipe.method == ParsingMethod.GENERIC_HEURISTIC
        assert recipe.servings == 1
        assert len(recipe.steps) >= 5

    def test_empty_text_is_not_an_error(self):
        for text in ("", "   \n  "):
            recipe = RecipePipeline().parse_text(text)

            assert recipe.ingredients == []
            assert recipe.steps == []
            assert recipe.title == DEFAULT_TITLE
            assert recipe.confidence == 0.0

    def test_literal_fallback(self):
        text = "Eine ausreichende Packung Löffelbisquits\nDie Löffelbisquits nebeneinander in die Form legen."
        recipe = RecipePipeline().parse_text(text)

        assert recipe.method == ParsingMethod.LITERAL_FALLBACK
        assert recipe.confidence == 85.0

    def test_section_parser_as_last_resort(self):
        recipe = RecipePipeline().parse_text(PESTO_PAGE)

        assert recipe.method == ParsingMethod.SECTION_BASED
        assert recipe.title == "Pesto Genovese"
        assert [i.item for i in recipe.ingredients] == ["Olivenöl", "Basilikum"]
        assert recipe.steps == ["Alles mischen."]
        assert recipe.confidence == 80.0

    def test_overlong_servings_number_is_ignored(self):
        recipe = RecipePipeline().parse_text("Zutaten\n• 2 Eier\n" + "9" * 5000 + " Portionen")

        assert recipe.servings is None
        assert [i.item for i in recipe.ingredients] == ["Eier"]

    def test_text_pipeline_never_builds_engines(self, clean_text):
        pipeline = RecipePipeline()
        pipeline.parse_text(clean_text)
        assert pipeline._cascade is None


class TestMergeRecipes:

    def test_fields_are_merged(self):
        primary = StructuredRecipe(
            title="Tiramisu",
            ingredients=[ParsedIngredient(item="Kaffee")],
            total_time="30 Minuten",
            method=ParsingMethod.LITERAL_FALLBACK,
        )
        fallback = StructuredRecipe(
            title="Anderer Titel",
            steps=["Alles gut verrühren."],
            servings=4,
            method=ParsingMethod.SECTION_BASED,
        )

        merged = merge_recipes(primary, fallback)

        assert merged.title == "Tiramisu"
        assert [i.item for i in merged.ingredients] == ["Kaffee"]
        assert merged.steps == ["Alles gut verrühren."]
        assert merged.servings == 4
        assert merged.total_time == "30 Minuten"
        assert merged.method == ParsingMethod.SECTION_BASED
        assert merged.confidence == 100.0

    def test_default_title_is_replaced(self):
        merged = merge_recipes(StructuredRecipe(), StructuredRecipe(title="Pesto Genovese"))
        assert merged.title == "Pesto Genovese"

    def test_empty_fallback_keeps_primary_method(self):
        primary = StructuredRecipe(method=ParsingMethod.LITERAL_FALLBACK)
        merged = merge_recipes(primary, StructuredRecipe(method=ParsingMethod.SECTION_BASED))

        assert merged.method == ParsingMethod.LITERAL_FALLBACK
        assert merged.confidence == 0.0


# ── Image ─────────────────────────────────────────────────────────────

class TestProcessImage:

    @pytest.mark.asyncio
    async def test_clean_photo(self, png_bytes, clean_text):
        pipeline = make_pipeline(clean_text)

        result = await pipeline.process_image(png_bytes)

        assert result.text == clean_text.strip()
        assert result.ocr.method == OCRMethod.TESSERACT
        assert result.ocr.confidence == 90.0
        assert result.recipe.method == ParsingMethod.GENERIC_HEURISTIC
        assert not result.used_section_fallback
        assert pipeline.cascade.printed.calls == []

    @pytest.mark.asyncio
    async def test_preprocessed_bytes_reach_the_engine(self, png_bytes, clean_text):
        pipeline = make_pipeline(clean_text, preprocessor=lambda b: b"preprocessed")

        await pipeline.process_image(png_bytes)

        assert pipeline.cascade.primary.calls == [b"preprocessed"]

    @pytest.mark.asyncio
    async def test_section_fallback_is_reported(self, png_bytes):
        result = await make_pipeline(PESTO_PAGE).process_image(png_bytes)

        assert result.used_section_fallback
        assert result.recipe.title == "Pesto Genovese"

    @pytest.mark.asyncio
    async def test_unreadable_photo_returns_empty_recipe(self, png_bytes):
        result = await make_pipeline("", primary_confidence=0.0).process_image(png_bytes)

        assert result.ocr.confidence == 0.0
        assert result.recipe.is_empty
        assert result.recipe.title == DEFAULT_TITLE
        assert not result.used_section_fallback

    @pytest.mark.asyncio
    async def test_invalid_image_is_rejected_before_ocr(self):
        pipeline = make_pipeline("Zutaten")

        with pytest.raises(ImageValidationError):
            await pipeline.process_image(b"not an image")

        assert pipeline.cascade.primary.calls == []

    @pytest.mark.asyncio
    async def test_preprocessing_failure_propagates(self, png_bytes):
        def broken(image_bytes):
            raise ImagePreprocessingError("Failed to preprocess image: broken")

        pipeline = make_pipeline("Zutaten", preprocessor=broken)

        with pytest.raises(ImagePreprocessingError):
            await pipeline.process_image(png_bytes)

        assert pipeline.cascade.primary.calls == []
