"""Exceptions for recipe OCR package."""


class RecipeOCRError(Exception):
    """Base class for errors raised by the recipe OCR core."""
    pass


class EngineInitializationError(RecipeOCRError):
    """Raised when a recognition engine cannot be constructed on first use."""
    pass


class ImageValidationError(RecipeOCRError):
    """Raised when an uploaded image is too large or not a supported format."""
    pass


class ImagePreprocessingError(RecipeOCRError):
    """Raised when the image cannot be normalized for OCR."""
    pass
