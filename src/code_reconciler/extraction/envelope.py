"""Known envelope shapes emitted by agent runtimes around the real payload.

Envelopes are decoded as an explicit tagged union: each variant is a
pydantic model tried in priority order, and the first that validates wins.
"""

from collections.abc import Mapping
from typing import Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator


class ResultEnvelope(BaseModel):
    """``{"type": "result", "result": ...}`` (``kind`` is accepted for ``type``)."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    discriminant: Literal["result"] = Field(validation_alias=AliasChoices("type", "kind"))
    result: Any

    @field_validator("result")
    @classmethod
    def _require_payload(cls, value: Any) -> Any:
        if value is None or value == "":
            raise ValueError("envelope has an empty result")
        return value

    @property
    def payload(self) -> Any:
        return self.result

    @property
    def payload_field(self) -> str:
        return "result"


class RawEnvelope(BaseModel):
    """``{"raw": {"type": "result", "result": ...}}`` as produced by background agents."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    raw: ResultEnvelope

    @property
    def payload(self) -> Any:
        return self.raw.result

    @property
    def payload_field(self) -> str:
        return "raw"


Envelope = Union[ResultEnvelope, RawEnvelope]

ENVELOPE_VARIANTS: tuple[type[BaseModel], ...] = (ResultEnvelope, RawEnvelope)


def decode_envelope(value: Mapping[str, Any]) -> Envelope | None:
    """Return the first envelope variant ``value`` validates as, or None."""
    for variant in ENVELOPE_VARIANTS:
        try:
            return variant.model_validate(dict(value))
        except ValidationError:
            continue
    return None
