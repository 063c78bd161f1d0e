"""
OCR Resolution Cascade: pick a transcription without paying for every engine.

    primary (tesseract)
        │ confidence >= 70 ──────────────────────────────► done
        ▼
    secondary printed
        │ text looks fine ──► best of {primary, printed}
        ▼
    secondary handwritten ──► best of {primary, printed, handwritten}

Engines run one after the other, never concurrently: the cheap engine
usually suffices and the expensive ones are only paid for when needed.
A failing engine becomes a zero-confidence candidate; it never stops the
cascade. Only EngineInitializationError propagates.
"""

import logging
import time
from typing import List, Optional, Protocol

from ..constants import (
    LOW_QUALITY_ANOMALY_RATIO,
    LOW_QUALITY_MIN_LENGTH,
    LOW_QUALITY_MIN_WORDS,
    MIN_CANDIDATE_LENGTH,
    PRIMARY_CONFIDENCE_THRESHOLD,
    SECONDARY_ENGINE,
)
from ..exceptions import EngineInitializationError
from ..models.recipe import EngineOutput, OCRCandidate, OCRMethod
from ..observability import langfuse_context, observe
from .confidence import anomalous_ratio, score_ocr_text

logger = logging.getLogger(__name__)


class RecognitionEngine(Protocol):
    method: OCRMethod

    async def recognize(self, image: bytes) -> EngineOutput:
        ...


def is_low_quality_text(text: Optional[str]) -> bool:
    """True when a secondary transcription is too thin to trust on its own."""
    if not text or len(text) < LOW_QUALITY_MIN_LENGTH:
        return True

    if anomalous_ratio(text) > LOW_QUALITY_ANOMALY_RATIO:
        return True

    words = [w for w in text.split() if len(w) > 3]
    return len(words) < LOW_QUALITY_MIN_WORDS


def select_best(candidates: List[OCRCandidate]) -> OCRCandidate:
    """
    Highest-confidence candidate with more than 10 characters of text.

    Ties go to the earliest candidate. When every candidate is too short,
    the first one is returned with its confidence forced to 0.
    """
    if not candidates:
        raise ValueError("select_best needs at least one candidate")

    valid = [c for c in candidates if c.text and len(c.text) > MIN_CANDIDATE_LENGTH]
    if not valid:
        return candidates[0].model_copy(update={"confidence": 0.0})

    best = valid[0]
    for candidate in valid[1:]:
        if candidate.confidence > best.confidence:
            best = candidate
    return best


class OCRCascade:
    """Tries the primary engine, then the printed and handwritten secondaries."""

    def __init__(
        self,
        primary: RecognitionEngine,
        printed: RecognitionEngine,
        handwritten: RecognitionEngine,
        threshold: float = PRIMARY_CONFIDENCE_THRESHOLD,
    ):
        self.primary = primary
        self.printed = printed
        self.handwritten = handwritten
        self.threshold = threshold

    async def _attempt(self, engine: RecognitionEngine, image: bytes) -> OCRCandidate:
        started = time.perf_counter()
        try:
            output = await engine.recognize(image)
        except EngineInitializationError:
            raise
        except Exception as e:
            logger.error(f"Error in {engine.method.value}: {e}")
            return OCRCandidate(
                text="",
                confidence=0.0,
                method=engine.method,
                elapsed_ms=(time.perf_counter() - started) * 1000,
            )

        confidence = output.confidence
        if confidence is None:
            confidence = score_ocr_text(output.text)

        candidate = OCRCandidate(
            text=output.text,
            confidence=confidence,
            method=engine.method,
            elapsed_ms=(time.perf_counter() - started) * 1000,
        )
        logger.info(
            f"{candidate.method.value}: {len(candidate.text)} chars, "
            f"confidence {candidate.confidence:.1f}"
        )
        return candidate

    @observe(name="ocr_cascade")
    async def resolve(self, image: bytes) -> OCRCandidate:
        started = time.perf_counter()

        primary = await self._attempt(self.primary, image)
        candidates = [primary]

        if primary.confidence < self.threshold:
            logger.info(
                f"{primary.method.value} confidence low ({primary.confidence:.1f}), "
                f"trying {self.printed.method.value}..."
            )
            printed = await self._attempt(self.printed, image)
            candidates.append(printed)

            if is_low_quality_text(printed.text):
                logger.info(f"{printed.method.value} result is low quality, trying {self.handwritten.method.value}...")
                candidates.append(await self._attempt(self.handwritten, image))

        best = select_best(candidates)
        elapsed_ms = (time.perf_counter() - started) * 1000
        result = best.model_copy(update={"elapsed_ms": elapsed_ms})

        logger.info(
            f"Best OCR result: {result.method.value} ({result.confidence:.1f}% confidence, "
            f"{len(candidates)} engine(s), {elapsed_ms:.0f} ms)"
        )
        langfuse_context.update_current_span(
            metadata={
                "ocr_method": result.method.value,
                "confidence": result.confidence,
                "engines_tried": [c.method.value for c in candidates],
            }
        )
        return result


def build_default_cascade() -> OCRCascade:
    """Tesseract first, then TrOCR or the vision API depending on SECONDARY_ENGINE."""
    from .engines import TesseractEngine, TrOCREngine, VisionLLMEngine

    if SECONDARY_ENGINE == "openrouter":
        printed = VisionLLMEngine(OCRMethod.VISION_PRINTED)
        handwritten = VisionLLMEngine(OCRMethod.VISION_HANDWRITTEN)
    else:
        printed = TrOCREngine(OCRMethod.TROCR_PRINTED)
        handwritten = TrOCREngine(OCRMethod.TROCR_HANDWRITTEN)

    return OCRCascade(TesseractEngine(), printed, handwritten)
