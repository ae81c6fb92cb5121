"""Structured extractor: model response -> ReconciliationResult or a typed failure."""

import json
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from code_reconciler.config import ReconcilerSettings
from code_reconciler.extraction.envelope import decode_envelope
from code_reconciler.extraction.exceptions import ExtractionError, MalformedEnvelopeError
from code_reconciler.extraction.strategies import TEXT_STRATEGIES, TextStrategy
from code_reconciler.models import (
    ExtractionFailure,
    ExtractionOutcome,
    FailureKind,
    ReconciliationResult,
    StrategyMetrics,
)

logger = logging.getLogger(__name__)

# Probed in this order on objects that are not themselves a result
PAYLOAD_FIELDS = ("text", "result", "raw", "content", "stdout")

ENVELOPE_UNWRAP = "envelope-unwrap"
DIRECT_SHAPE = "direct-shape"


class _Attempts:
    """Ordered, duplicate-free record of the strategies tried in one call."""

    def __init__(self, metrics: StrategyMetrics | None) -> None:
        self.names: list[str] = []
        self._metrics = metrics

    def add(self, name: str) -> None:
        if name not in self.names:
            self.names.append(name)
        if self._metrics is not None:
            self._metrics.record_attempt(name)


class StructuredExtractor:
    """Turns an opaque model response into a ``ReconciliationResult``.

    Stateless: the same instance may be shared across threads. Per-call
    counters go into the optional ``StrategyMetrics`` passed to ``extract``.
    """

    def __init__(
        self,
        settings: ReconcilerSettings | None = None,
        strategies: tuple[TextStrategy, ...] = TEXT_STRATEGIES,
    ) -> None:
        self.settings = settings or ReconcilerSettings()
        self.strategies = strategies

    def extract(
        self,
        response: Any,
        metrics: StrategyMetrics | None = None,
    ) -> ExtractionOutcome:
        """Extract file edits from ``response``.

        Args:
            response: A plain string, a mapping, or any object exposing one
                of the payload fields (text, result, raw, content, stdout).
            metrics: Optional sink recording attempts and the winning strategy.

        Returns:
            ReconciliationResult on success, otherwise an ExtractionFailure
            with the attempted strategies and a bounded input sample.
        """
        attempts = _Attempts(metrics)
        try:
            found = self._extract_value(response, 0, attempts)
        except MalformedEnvelopeError as exc:
            logger.debug("Envelope bound exceeded: %s", exc)
            return self._fail(response, attempts, FailureKind.MALFORMED_ENVELOPE, str(exc), metrics)

        if found is None:
            return self._fail(
                response,
                attempts,
                FailureKind.EXTRACTION_FAILED,
                "No extraction strategy produced a {files, summary} object",
                metrics,
            )

        result, strategy = found
        if metrics is not None:
            metrics.record_success(strategy)
        logger.debug(
            "Extracted %d file edit(s) using strategy: %s", len(result.files), strategy
        )
        return result

    def _fail(
        self,
        response: Any,
        attempts: _Attempts,
        kind: FailureKind,
        message: str,
        metrics: StrategyMetrics | None,
    ) -> ExtractionFailure:
        if metrics is not None:
            metrics.record_failure()
        logger.debug("Extraction failed after strategies: %s", ", ".join(attempts.names))
        return ExtractionFailure(
            kind=kind,
            attempted_strategies=list(attempts.names),
            sample=_sample(response, self.settings.sample_chars),
            message=message,
        )

    def _extract_value(
        self,
        value: Any,
        depth: int,
        attempts: _Attempts,
    ) -> tuple[ReconciliationResult, str] | None:
        if depth > self.settings.max_envelope_depth:
            raise MalformedEnvelopeError(
                f"Envelope nesting exceeds {self.settings.max_envelope_depth} levels"
            )
        if value is None:
            return None

        if isinstance(value, str):
            if not value.strip():
                return None
            decoded = _try_loads(value)
            if isinstance(decoded, str):
                # A stringified string is one more wrapping hop
                return self._extract_value(decoded, depth + 1, attempts)
            if isinstance(decoded, Mapping):
                found = self._extract_mapping(decoded, depth, attempts, serialize=False)
                if found is not None:
                    return found
            return self._extract_text(value, attempts)

        mapping = _as_mapping(value)
        if mapping is not None:
            return self._extract_mapping(mapping, depth, attempts, serialize=True)
        return self._extract_text(_to_text(value), attempts)

    def _extract_mapping(
        self,
        mapping: Mapping[str, Any],
        depth: int,
        attempts: _Attempts,
        serialize: bool,
    ) -> tuple[ReconciliationResult, str] | None:
        consumed: str | None = None
        envelope = decode_envelope(mapping)
        if envelope is not None:
            attempts.add(ENVELOPE_UNWRAP)
            consumed = envelope.payload_field
            found = self._extract_value(envelope.payload, depth + 1, attempts)
            if found is not None:
                return found[0], ENVELOPE_UNWRAP

        attempts.add(DIRECT_SHAPE)
        if isinstance(mapping.get("files"), list):
            result = self._coerce(mapping)
            if result is not None:
                return result, DIRECT_SHAPE

        probed = False
        for field in PAYLOAD_FIELDS:
            if field == consumed or mapping.get(field) is None:
                continue
            probed = True
            name = f"payload:{field}"
            attempts.add(name)
            found = self._extract_value(mapping[field], depth + 1, attempts)
            if found is not None:
                return found

        if serialize and not probed:
            return self._extract_text(_to_text(mapping), attempts)
        return None

    def _extract_text(
        self,
        text: str,
        attempts: _Attempts,
    ) -> tuple[ReconciliationResult, str] | None:
        for strategy in self.strategies:
            attempts.add(strategy.name)
            try:
                for candidate in strategy.apply(text, self.settings):
                    result = self._coerce(candidate)
                    if result is not None:
                        return result, strategy.name
            except Exception as exc:
                logger.debug("Strategy %s raised %s: %s", strategy.name, type(exc).__name__, exc)
        return None

    def _coerce(self, candidate: Mapping[str, Any]) -> ReconciliationResult | None:
        """Validate a candidate; synthesize the summary when it is missing."""
        files = candidate.get("files")
        if not isinstance(files, list):
            return None
        summary = candidate.get("summary")
        if not isinstance(summary, str) or not summary.strip():
            summary = f"Generated {len(files)} file(s)"
        try:
            return ReconciliationResult(files=files, summary=summary)
        except ValidationError as exc:
            logger.debug("Candidate rejected by schema: %s", exc.errors()[:3])
            return None


def _try_loads(text: str) -> Any:
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        return None


def _as_mapping(value: Any) -> Mapping[str, Any] | None:
    if isinstance(value, Mapping):
        return value
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, (list, tuple, int, float, bool)):
        return None
    attributes = getattr(value, "__dict__", None)
    if isinstance(attributes, dict):
        return {k: v for k, v in attributes.items() if not k.startswith("_")}
    return None


def _to_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError, RecursionError):
        pass
    try:
        return repr(value)
    except RecursionError:
        return f"<unrenderable {type(value).__name__}>"


def _sample(response: Any, limit: int) -> str:
    return _to_text(response)[:limit]


def require_result(outcome: ExtractionOutcome) -> ReconciliationResult:
    """Return the result or raise ``ExtractionError`` carrying the failure."""
    if isinstance(outcome, ReconciliationResult):
        return outcome
    if outcome.kind == FailureKind.MALFORMED_ENVELOPE:
        raise MalformedEnvelopeError(outcome.message, failure=outcome)
    raise ExtractionError(
        f"{outcome.message} (tried: {', '.join(outcome.attempted_strategies)})",
        failure=outcome,
    )


def extract(
    response: Any,
    metrics: StrategyMetrics | None = None,
    settings: ReconcilerSettings | None = None,
) -> ExtractionOutcome:
    """Module-level shortcut for ``StructuredExtractor(settings).extract(...)``."""
    return StructuredExtractor(settings).extract(response, metrics)
