"""Langfuse observability for the OCR pipeline.

Thin wrapper around Langfuse's `@observe()` decorator. Without the Langfuse
environment variables every decorator is a no-op and every context call is
ignored, so the pipeline runs the same with or without tracing.

Required env vars for activation:
    LANGFUSE_PUBLIC_KEY
    LANGFUSE_SECRET_KEY
    LANGFUSE_HOST          (default: http://localhost:3000)

Usage in other modules:
    from recipe_ocr.observability import observe, langfuse_context

    @observe(name="ocr_cascade")
    async def resolve(...):
        langfuse_context.update_current_span(metadata={"method": "tesseract"})
        ...
"""

import logging
import os
from typing import Any, Callable, Optional

from langfuse import get_client as _lf_get_client
from langfuse import observe as _lf_observe

logger = logging.getLogger(__name__)

# ── Check if Langfuse is configured ─────────────────────────────────

_LANGFUSE_ENABLED = bool(
    os.getenv("LANGFUSE_PUBLIC_KEY") and os.getenv("LANGFUSE_SECRET_KEY")
)

if _LANGFUSE_ENABLED:
    try:
        _lf_get_client()
        logger.info(
            "Langfuse observability ENABLED (host=%s)",
            os.getenv("LANGFUSE_HOST", "http://localhost:3000"),
        )
    except Exception as e:
        logger.warning(f"Langfuse initialization failed: {e}, observability disabled")
        _LANGFUSE_ENABLED = False
else:
    logger.debug("Langfuse observability disabled (no LANGFUSE_PUBLIC_KEY/SECRET_KEY)")


# ── Public API ──────────────────────────────────────────────────────


def observe(name: Optional[str] = None, **kwargs) -> Callable:
    """Decorator that wraps Langfuse @observe() if enabled, otherwise no-op."""
    if _LANGFUSE_ENABLED:
        return _lf_observe(name=name, **kwargs)

    def noop_decorator(fn: Callable) -> Callable:
        return fn
    return noop_decorator


class _NoOpContext:
    """Ignores all span/trace updates when tracing is off."""

    def update_current_span(self, **kwargs: Any) -> None:
        pass

    def update_current_trace(self, **kwargs: Any) -> None:
        pass


class _LangfuseContextProxy:
    """Delegates to the Langfuse v3 client.

    Tracing must never break OCR, so client errors are logged and dropped.
    """

    def update_current_span(self, **kwargs: Any) -> None:
        try:
            _lf_get_client().update_current_span(**kwargs)
        except Exception as e:
            logger.debug(f"Langfuse span update failed: {e}")

    def update_current_trace(self, **kwargs: Any) -> None:
        try:
            _lf_get_client().update_current_trace(**kwargs)
        except Exception as e:
            logger.debug(f"Langfuse trace update failed: {e}")


langfuse_context = _LangfuseContextProxy() if _LANGFUSE_ENABLED else _NoOpContext()
