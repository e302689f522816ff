"""Inbound request validation.

Turns a decoded JSON body into a canonical `SynthesisRequest`, or raises a
`GatewayError` describing why it cannot be served. Nothing here touches
credentials, the capability registry or the network.

Wire shape:
    {
        "provider": "Gemini",
        "type": "text" | "image" | "roadmap",
        "apiKey": "...",              (optional)
        "payload": {"prompt": "...", ...auxiliary}
    }

Check order:
    1. Body is a JSON object with correctly typed fields.
    2. `provider`, `type` and `payload.prompt` are present and non-empty.
    3. `type` names a known request kind.
    4. `provider` resolves through the alias normalizer.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ValidationError

from gateway.core.aliases import UnknownProviderError, normalize_provider
from gateway.core.contracts import ErrorKind, GatewayError, RequestKind, SynthesisRequest


class InboundBody(BaseModel):
    """Loose schema for the POST body; presence is checked separately."""

    provider: str | None = None
    type: str | None = None
    apiKey: str | None = None
    payload: dict[str, Any] | None = None


def _describe_validation_error(err: ValidationError) -> str:
    parts = []
    for item in err.errors():
        location = ".".join(str(p) for p in item.get("loc", ())) or "$"
        parts.append(f"{location}: {item.get('msg', 'invalid value')}")
    return "; ".join(parts)


def _missing_fields(body: InboundBody) -> list[str]:
    missing = []
    if not (body.provider or "").strip():
        missing.append("provider")
    if not (body.type or "").strip():
        missing.append("type")
    prompt = (body.payload or {}).get("prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        missing.append("payload.prompt")
    return missing


def validate_request(data: Any) -> SynthesisRequest:
    """Validate a decoded request body and build the canonical request.

    Args:
        data: Result of JSON-decoding the request body.

    Returns:
        Immutable `SynthesisRequest` bound to a canonical provider.

    Raises:
        GatewayError: `invalid_request` for shape/presence/kind problems,
            `unsupported` when the provider string is unknown.
    """
    if not isinstance(data, dict):
        raise GatewayError.of(ErrorKind.INVALID_REQUEST, "Request body must be a JSON object.")

    try:
        body = InboundBody.model_validate(data)
    except ValidationError as err:
        raise GatewayError.of(
            ErrorKind.INVALID_REQUEST,
            "Request body has invalid field types.",
            details=_describe_validation_error(err),
        ) from err

    missing = _missing_fields(body)
    if missing:
        raise GatewayError.of(
            ErrorKind.INVALID_REQUEST,
            "Missing provider, request type, or prompt.",
            details="missing: " + ", ".join(missing),
        )

    kind_text = body.type.strip().lower()
    try:
        kind = RequestKind(kind_text)
    except ValueError:
        allowed = ", ".join(k.value for k in RequestKind)
        raise GatewayError.of(
            ErrorKind.INVALID_REQUEST,
            f"Unknown request type '{body.type}'. Expected one of: {allowed}.",
        ) from None

    try:
        provider = normalize_provider(body.provider)
    except UnknownProviderError:
        raise GatewayError.of(
            ErrorKind.UNSUPPORTED,
            f"{body.provider.strip()} is not yet supported.",
        ) from None

    payload = dict(body.payload or {})
    prompt = payload.pop("prompt").strip()
    credential = (body.apiKey or "").strip() or None

    return SynthesisRequest(
        provider=provider,
        kind=kind,
        prompt=prompt,
        auxiliary=payload,
        credential=credential,
    )
