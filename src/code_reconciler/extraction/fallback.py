"""Optional "ask the model again" fallback for responses local extraction cannot read."""

import json
import logging
import os
from collections.abc import Callable
from typing import Any, Literal

from anthropic import Anthropic
import openai

from code_reconciler.config import ReconcilerSettings
from code_reconciler.extraction.exceptions import FallbackError
from code_reconciler.extraction.extractor import StructuredExtractor
from code_reconciler.models import (
    ExtractionFailure,
    ExtractionOutcome,
    ReconciliationResult,
    StrategyMetrics,
)

logger = logging.getLogger(__name__)

# Constants
MODEL_FALLBACK = "model-fallback"
MAX_API_TOKENS = 8192  # Max tokens for the re-extraction reply
MAX_PROMPT_RESPONSE_CHARS = 100_000  # Max chars of the original response echoed back

EXTRACTION_PROMPT = """Extract the file changes JSON from this response. Return ONLY valid JSON in this exact format:
{
  "files": [
    {
      "path": "path/to/file",
      "content": "file content",
      "operation": "create"
    }
  ],
  "summary": "description"
}

Response to extract from:
"""


def build_extraction_prompt(response: Any) -> str:
    """Render the re-extraction prompt for an opaque response value."""
    if isinstance(response, str):
        body = response
    else:
        try:
            body = json.dumps(response, indent=2, default=str)
        except (TypeError, ValueError):
            body = repr(response)
    return EXTRACTION_PROMPT + body[:MAX_PROMPT_RESPONSE_CHARS]


def extract_with_fallback(
    response: Any,
    ask: Callable[[str], str],
    extractor: StructuredExtractor | None = None,
    metrics: StrategyMetrics | None = None,
) -> ExtractionOutcome:
    """Extract locally, then ask the model once to re-emit the JSON on failure.

    Any exception raised by ``ask`` (timeouts included) is logged and turned
    into an ordinary ``ExtractionFailure``; it never propagates.

    Args:
        response: The original model response.
        ask: Caller-owned ``prompt -> reply`` function. It carries the
            caller's timeout and cancellation policy.
        extractor: Extractor to reuse; a default one is built otherwise.
        metrics: Optional sink, shared by both extraction passes.
    """
    extractor = extractor or StructuredExtractor()
    outcome = extractor.extract(response, metrics)
    if isinstance(outcome, ReconciliationResult):
        return outcome

    attempted = [*outcome.attempted_strategies, MODEL_FALLBACK]
    if metrics is not None:
        metrics.record_attempt(MODEL_FALLBACK)

    try:
        reply = ask(build_extraction_prompt(response))
    except Exception as error:
        logger.warning("Model fallback failed: %s: %s", type(error).__name__, error)
        return outcome.model_copy(
            update={
                "attempted_strategies": attempted,
                "message": f"{outcome.message}; model fallback failed: {error}",
            }
        )

    if not reply:
        return outcome.model_copy(update={"attempted_strategies": attempted})

    retried = extractor.extract(reply, metrics)
    if isinstance(retried, ReconciliationResult):
        logger.info("Model fallback recovered %d file edit(s)", len(retried.files))
        return retried

    merged = list(attempted)
    for name in retried.attempted_strategies:
        if name not in merged:
            merged.append(name)
    return ExtractionFailure(
        kind=outcome.kind,
        attempted_strategies=merged,
        sample=outcome.sample,
        message=f"{outcome.message}; model fallback reply was also unreadable",
    )


class ModelReextractor:
    """A ready-made ``ask`` callable backed by the Anthropic or OpenAI SDK."""

    def __init__(
        self,
        settings: ReconcilerSettings | None = None,
        api_key: str | None = None,
        llm_fallback_provider: str | None = None,
        allow_fallback: bool = False,
    ) -> None:
        """Initialize the SDK clients.

        Args:
            settings: Supplies model, primary provider and request timeout.
            api_key: Anthropic API key. Falls back to ANTHROPIC_API_KEY env var.
            llm_fallback_provider: Second provider tried when the first raises.
            allow_fallback: Whether ``llm_fallback_provider`` is used at all.

        Raises:
            FallbackError: If no API key is found.
        """
        self.settings = settings or ReconcilerSettings()
        self.model: str = self.settings.fallback_model
        self.api_key: str | None = api_key or os.getenv("ANTHROPIC_API_KEY")
        self.openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
        self._anthropic_client: Anthropic | None = None
        self._openai_client: openai.OpenAI | None = None

        if self.api_key:
            self._anthropic_client = Anthropic(
                api_key=self.api_key, timeout=self.settings.fallback_timeout
            )
        if self.openai_api_key:
            self._openai_client = openai.OpenAI(
                api_key=self.openai_api_key, timeout=self.settings.fallback_timeout
            )

        if not (self._anthropic_client or self._openai_client):
            raise FallbackError(
                "No Anthropic or OpenAI API key found. "
                "Provide via parameter, ANTHROPIC_API_KEY or OPENAI_API_KEY env vars."
            )

        self.llm_provider = self._normalize_provider(self.settings.fallback_provider)
        self.llm_fallback_provider = (
            self._normalize_provider(llm_fallback_provider) if llm_fallback_provider else None
        )
        self.allow_fallback = bool(allow_fallback)

        if self.llm_provider == "anthropic" and self._anthropic_client is None:
            raise FallbackError("No Anthropic API key found for provider=anthropic.")
        if self.llm_provider == "openai" and self._openai_client is None:
            raise FallbackError("No OpenAI API key found for provider=openai.")

    def _normalize_provider(self, value: str) -> Literal["anthropic", "openai", "auto"]:
        if value not in {"auto", "anthropic", "openai"}:
            raise FallbackError(f"Unsupported provider: {value}")
        return value

    def _primary_provider(self) -> Literal["anthropic", "openai"]:
        if self.llm_provider == "auto":
            if self._anthropic_client is not None:
                return "anthropic"
            return "openai"
        return self.llm_provider

    def _resolve_model(self, provider: str) -> str:
        if provider == "openai" and self.model.startswith("claude-"):
            return "gpt-4o-mini"
        return self.model

    def _provider_chain(self) -> list[str]:
        chain: list[str] = [self._primary_provider()]
        if self.allow_fallback and self.llm_fallback_provider:
            fallback = self.llm_fallback_provider
            if fallback != chain[0]:
                chain.append(fallback)
        return chain

    def ask(self, prompt: str) -> str:
        """Send ``prompt`` and return the reply text.

        Raises:
            FallbackError: If every provider in the chain fails.
        """
        last_error: Exception | None = None
        for provider in self._provider_chain():
            try:
                if provider == "anthropic":
                    if not self._anthropic_client:
                        raise FallbackError("Anthropic client unavailable")
                    response = self._anthropic_client.messages.create(
                        model=self._resolve_model("anthropic"),
                        max_tokens=MAX_API_TOKENS,
                        messages=[{"role": "user", "content": prompt}],
                    )
                    return "".join(
                        block.text
                        for block in response.content
                        if getattr(block, "type", None) == "text"
                    )
                if not self._openai_client:
                    raise FallbackError("OpenAI client unavailable")
                response = self._openai_client.chat.completions.create(
                    model=self._resolve_model("openai"),
                    max_tokens=MAX_API_TOKENS,
                    messages=[{"role": "user", "content": prompt}],
                )
                return response.choices[0].message.content or ""
            except Exception as error:
                logger.debug("Provider %s failed: %s", provider, error)
                last_error = error
        raise FallbackError(f"Failed to call LLM: {last_error}") from last_error

    __call__ = ask
