"""
Recognition engines used by the OCR cascade.

  - TesseractEngine:  primary engine, fast, returns a native confidence
  - TrOCREngine:      secondary engines (printed / handwritten), local
                      transformers models, no native confidence
  - VisionLLMEngine:  secondary engines through the OpenRouter vision API,
                      selected with SECONDARY_ENGINE=openrouter

Every engine takes preprocessed PNG bytes and returns an EngineOutput.
Blocking work (tesseract subprocess, model inference) runs in a worker
thread so the event loop stays free.
"""

import asyncio
import base64
import io
import logging
import os
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytesseract
import torch
from PIL import Image
from pytesseract import Output
from transformers import TrOCRProcessor, VisionEncoderDecoderModel

from ..constants import (
    OPENROUTER_BASE_URL,
    TESSERACT_CMD,
    TESSERACT_CONFIG,
    TESSERACT_LANG,
    TROCR_HANDWRITTEN_MODEL,
    TROCR_PRINTED_MODEL,
    VISION_MODEL,
)
from ..exceptions import EngineInitializationError
from ..models.recipe import EngineOutput, OCRMethod

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════
# TESSERACT (primary)
# ═══════════════════════════════════════════════════════════════════


def configure_tesseract(cmd: Optional[str] = TESSERACT_CMD) -> None:
    """Point pytesseract at a specific tesseract binary, if one is configured."""
    if cmd and os.path.isfile(cmd):
        pytesseract.pytesseract.tesseract_cmd = cmd


def _word_confidences(data: Dict[str, List[Any]]) -> List[float]:
    confidences = []
    for word, conf in zip(data.get("text", []), data.get("conf", [])):
        try:
            value = float(conf)
        except (TypeError, ValueError):
            continue
        if str(word).strip() and value >= 0:
            confidences.append(value)
    return confidences


def words_to_text(data: Dict[str, List[Any]]) -> str:
    """Rebuild text from tesseract word boxes, one output line per detected line."""
    lines: Dict[Tuple[int, int, int], List[str]] = {}
    texts = data.get("text", [])

    for i, word in enumerate(texts):
        word = str(word).strip()
        if not word:
            continue
        key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
        lines.setdefault(key, []).append(word)

    return "\n".join(" ".join(words) for words in lines.values())


def mean_confidence(data: Dict[str, List[Any]]) -> float:
    confidences = _word_confidences(data)
    if not confidences:
        return 0.0
    return round(sum(confidences) / len(confidences), 2)


class TesseractEngine:
    """Primary engine: tesseract with the German/English/Spanish language pack."""

    method = OCRMethod.TESSERACT

    def __init__(self, lang: str = TESSERACT_LANG, config: str = TESSERACT_CONFIG):
        self.lang = lang
        self.config = config
        configure_tesseract()

    def _recognize_sync(self, image: bytes) -> EngineOutput:
        with Image.open(io.BytesIO(image)) as img:
            data = pytesseract.image_to_data(
                img, lang=self.lang, config=self.config, output_type=Output.DICT
            )
        return EngineOutput(text=words_to_text(data), confidence=mean_confidence(data))

    async def recognize(self, image: bytes) -> EngineOutput:
        return await asyncio.to_thread(self._recognize_sync, image)


# ═══════════════════════════════════════════════════════════════════
# TROCR (secondary, local models)
# ═══════════════════════════════════════════════════════════════════

TROCR_MAX_NEW_TOKENS = 256

ModelBundle = Tuple[TrOCRProcessor, VisionEncoderDecoderModel]


def choose_device() -> Tuple[torch.device, torch.dtype]:
    """GPU if available, CPU otherwise."""
    if torch.cuda.is_available():
        return torch.device("cuda"), torch.float16
    return torch.device("cpu"), torch.float32


def load_trocr_model(model_name: str, device: torch.device, dtype: torch.dtype) -> ModelBundle:
    processor = TrOCRProcessor.from_pretrained(model_name)
    model = VisionEncoderDecoderModel.from_pretrained(model_name)
    model.to(device=device, dtype=dtype)
    model.eval()
    return processor, model


class TrOCRPipelines:
    """
    Process-wide registry of the TrOCR models.

    Models are loaded on first use and shared read-only by every request.
    Concurrent first use loads them once: the `initialized` flag is checked
    before and after taking the lock. `cleanup()` drops the models and
    resets the flag so the next request loads them again.
    """

    def __init__(
        self,
        printed_model: str = TROCR_PRINTED_MODEL,
        handwritten_model: str = TROCR_HANDWRITTEN_MODEL,
        loader: Callable[[str, torch.device, torch.dtype], ModelBundle] = load_trocr_model,
    ):
        self.model_names = {
            OCRMethod.TROCR_PRINTED: printed_model,
            OCRMethod.TROCR_HANDWRITTEN: handwritten_model,
        }
        self._loader = loader
        self._bundles: Dict[OCRMethod, ModelBundle] = {}
        self._lock = asyncio.Lock()
        self.initialized = False
        self.device, self.dtype = choose_device()

    def _load_all(self) -> Dict[OCRMethod, ModelBundle]:
        return {
            method: self._loader(name, self.device, self.dtype)
            for method, name in self.model_names.items()
        }

    async def ensure_initialized(self) -> None:
        if self.initialized:
            return

        async with self._lock:
            if self.initialized:
                return

            logger.info("Initializing TrOCR pipelines...")
            try:
                bundles = await asyncio.to_thread(self._load_all)
            except Exception as e:
                logger.error(f"Error initializing TrOCR: {e}")
                raise EngineInitializationError(f"Failed to initialize TrOCR pipelines: {e}") from e

            self._bundles = bundles
            self.initialized = True
            logger.info("TrOCR pipelines initialized")

    def get(self, method: OCRMethod) -> ModelBundle:
        if not self.initialized or method not in self._bundles:
            raise EngineInitializationError(f"TrOCR pipeline {method.value} not initialized")
        return self._bundles[method]

    def cleanup(self) -> None:
        """Release the model handles. The next use initializes again."""
        self._bundles = {}
        self.initialized = False
        if torch.cuda.is_available():
            torch.cuda.empty_cache()
        logger.info("TrOCR pipelines released")


trocr_pipelines = TrOCRPipelines()


class TrOCREngine:
    """Secondary engine backed by a local TrOCR model. Returns text only."""

    def __init__(self, method: OCRMethod, pipelines: Optional[TrOCRPipelines] = None):
        if method not in (OCRMethod.TROCR_PRINTED, OCRMethod.TROCR_HANDWRITTEN):
            raise ValueError(f"Not a TrOCR method: {method}")
        self.method = method
        self.pipelines = pipelines or trocr_pipelines

    def _infer(self, image: bytes, bundle: ModelBundle) -> str:
        processor, model = bundle
        with Image.open(io.BytesIO(image)) as img:
            rgb = img.convert("RGB")

        with torch.inference_mode():
            pixel_values = processor(images=rgb, return_tensors="pt").pixel_values.to(
                device=self.pipelines.device, dtype=self.pipelines.dtype
            )
            generated = model.generate(
                pixel_values,
                max_new_tokens=TROCR_MAX_NEW_TOKENS,
                num_beams=1,
                do_sample=False,
                no_repeat_ngram_size=3,
                repetition_penalty=1.12,
            )
        return processor.batch_decode(generated, skip_special_tokens=True)[0].strip()

    async def recognize(self, image: bytes) -> EngineOutput:
        await self.pipelines.ensure_initialized()
        bundle = self.pipelines.get(self.method)
        text = await asyncio.to_thread(self._infer, image, bundle)
        return EngineOutput(text=text)


# ═══════════════════════════════════════════════════════════════════
# VISION LLM (secondary, OpenRouter)
# ═══════════════════════════════════════════════════════════════════

MAX_TOKENS = 4096

VISION_SYSTEM_PROMPT = """You are a precise OCR assistant specialized in extracting recipe text from images.
Extract ALL text from the image exactly as written, line by line. Include the title,
ingredients with exact quantities, numbered steps, servings and times.

Return the raw text faithfully. Do not add formatting, comments, or interpretation.
Keep the original language (usually German)."""

VISION_USER_PROMPTS = {
    OCRMethod.VISION_PRINTED: (
        "This is a printed recipe page or screenshot. "
        "Extract all recipe text exactly as written."
    ),
    OCRMethod.VISION_HANDWRITTEN: (
        "This is a handwritten recipe card. Transcribe the handwriting exactly as written, "
        "keeping one output line per written line."
    ),
}


class VisionLLMEngine:
    """Secondary engine backed by a vision model on OpenRouter. Returns text only."""

    def __init__(self, method: OCRMethod, api_key: Optional[str] = None, model: str = VISION_MODEL):
        if method not in VISION_USER_PROMPTS:
            raise ValueError(f"Not a vision method: {method}")
        self.method = method
        self.model = model
        self._api_key = api_key

    @property
    def api_key(self) -> str:
        """Checked on first use: the engine is only built into the cascade, not necessarily called."""
        key = self._api_key or os.getenv("OPENROUTER_API_KEY")
        if not key:
            raise EngineInitializationError(
                "OPENROUTER_API_KEY is required for the vision OCR engine. "
                "Set the env var or pass api_key."
            )
        return key

    def _build_payload(self, image: bytes) -> dict:
        b64 = base64.b64encode(image).decode("utf-8")
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": VISION_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": VISION_USER_PROMPTS[self.method]},
                        {"type": "image_url", "image_url": {"url": f"data:image/png;base64,{b64}"}},
                    ],
                },
            ],
            "max_tokens": MAX_TOKENS,
            "temperature": 0.1,
        }

    async def recognize(self, image: bytes) -> EngineOutput:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "X-Title": "Recipe OCR",
            "Content-Type": "application/json",
        }

        logger.info(f"Calling vision OCR API ({self.model}, {self.method.value})...")

        async with httpx.AsyncClient(timeout=60.0) as client:
            response = await client.post(
                f"{OPENROUTER_BASE_URL}/chat/completions",
                headers=headers,
                json=self._build_payload(image),
            )

        if response.status_code != 200:
            error_detail = response.text
            logger.error(f"Vision OCR API error {response.status_code}: {error_detail}")
            raise RuntimeError(f"Vision OCR API failed ({response.status_code}): {error_detail}")

        data = response.json()

        if "choices" not in data or not data["choices"]:
            raise RuntimeError(f"Vision OCR API returned unexpected response: {data}")

        text = data["choices"][0]["message"]["content"] or ""

        usage = data.get("usage", {})
        logger.info(
            f"Vision OCR complete: {len(text)} chars extracted "
            f"({usage.get('prompt_tokens', 0)} input + {usage.get('completion_tokens', 0)} output tokens)"
        )

        return EngineOutput(text=text)
