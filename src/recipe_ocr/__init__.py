"""
recipe_ocr package: turns photographed recipe pages into structured recipes.
"""

from .models.recipe import RecipeOCRResult, StructuredRecipe
from .pipeline import RecipePipeline

__all__ = ["RecipePipeline", "RecipeOCRResult", "StructuredRecipe"]
