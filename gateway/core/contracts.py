"""Canonical data contracts shared by every gateway stage.

Architectural role:
    Defines the request/response shapes that flow between validation,
    credential resolution, capability lookup, adapter dispatch and envelope
    building. Adapters and the HTTP layer only exchange these types.

Lifecycle:
    Every object defined here is created per call and discarded once the
    response is sent. None of them are mutated after construction.

Invariants:
    - `CanonicalResponse` carries exactly one of `result` / `error`.
    - `ErrorEnvelope.status` always matches the HTTP status of its kind unless
      an adapter explicitly overrides it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class RequestKind(str, Enum):
    """Synthesis request kinds accepted on the wire `type` field."""

    TEXT = "text"
    IMAGE = "image"
    ROADMAP = "roadmap"


class ProviderId(str, Enum):
    """Closed set of canonical upstream provider identifiers."""

    OPENAI = "OpenAI"
    GEMINI = "Gemini"
    STABILITY = "Stability AI"
    HUGGING_FACE = "Hugging Face"
    DEEPAI = "DeepAI"
    RUNWAY = "RunwayML"
    MIDJOURNEY = "Midjourney"
    NANOBANANA = "NanoBanana"
    DREAMSTUDIO = "DreamStudio"
    ARTBREEDER = "Artbreeder"
    LLAMA = "LLaMA"
    REPLICATE = "Replicate"
    GEMINI_LIST_MODELS = "GeminiListModels"


class ErrorKind(str, Enum):
    """Machine-checkable failure tags returned as the wire `status` field."""

    INVALID_JSON = "invalid_json"
    INVALID_REQUEST = "invalid_request"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    UNSUPPORTED = "unsupported"
    UPSTREAM_FAILURE = "upstream_failure"
    FATAL = "fatal"


DEFAULT_STATUS = {
    ErrorKind.INVALID_JSON: 400,
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.METHOD_NOT_ALLOWED: 405,
    ErrorKind.UNSUPPORTED: 501,
    ErrorKind.UPSTREAM_FAILURE: 502,
    ErrorKind.FATAL: 500,
}


@dataclass(frozen=True)
class ErrorEnvelope:
    """Failure description carried by a `CanonicalResponse`.

    Attributes:
        message: Human-readable summary, safe to show to end users.
        kind: Failure taxonomy tag.
        status: HTTP status code used by the envelope builder.
        details: Optional diagnostic text (already redacted of credentials).
    """

    message: str
    kind: ErrorKind
    status: int
    details: str | None = None

    @classmethod
    def of(cls, kind: ErrorKind, message: str, details: str | None = None) -> "ErrorEnvelope":
        return cls(message=message, kind=kind, status=DEFAULT_STATUS[kind], details=details)


@dataclass(frozen=True)
class SynthesisRequest:
    """Validated, canonical synthesis request.

    Attributes:
        provider: Canonical provider resolved by the alias normalizer.
        kind: Requested generation kind.
        prompt: Non-empty prompt text.
        auxiliary: Every `payload` field other than `prompt`, read-only.
        credential: Credential supplied on the request, if any.
    """

    provider: ProviderId
    kind: RequestKind
    prompt: str
    auxiliary: Mapping[str, Any] = field(default_factory=dict)
    credential: str | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "auxiliary", MappingProxyType(dict(self.auxiliary)))


@dataclass(frozen=True)
class CanonicalResponse:
    """Uniform gateway outcome: either a result string or an error envelope."""

    result: str | None = None
    error: ErrorEnvelope | None = None
    source: str | None = None

    def __post_init__(self) -> None:
        if (self.result is None) == (self.error is None):
            raise ValueError("CanonicalResponse requires exactly one of result or error")

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, result: str, source: str | None = None) -> "CanonicalResponse":
        return cls(result=result, source=source)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        details: str | None = None,
        status: int | None = None,
    ) -> "CanonicalResponse":
        envelope = ErrorEnvelope.of(kind, message, details)
        if status is not None:
            envelope = ErrorEnvelope(message=message, kind=kind, status=status, details=details)
        return cls(error=envelope)


class GatewayError(Exception):
    """Stage failure raised before adapter dispatch (validation, credentials, capability)."""

    def __init__(self, envelope: ErrorEnvelope) -> None:
        self.envelope = envelope
        super().__init__(envelope.message)

    @classmethod
    def of(cls, kind: ErrorKind, message: str, details: str | None = None) -> "GatewayError":
        return cls(ErrorEnvelope.of(kind, message, details))

    def as_response(self) -> CanonicalResponse:
        return CanonicalResponse(error=self.envelope)
