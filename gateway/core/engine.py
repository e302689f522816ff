"""Core synthesis pipeline and the dispatch isolation boundary.

Architectural role:
    Provides the single entrypoint used by the HTTP and CLI layers to turn one
    inbound request body into one `CanonicalResponse`.

Control-flow model:
    1. Decode the JSON body (`invalid_json` on failure).
    2. Validate and normalize the request (`gateway.core.validation`).
    3. Resolve the credential (`gateway.core.credentials`).
    4. Check the capability registry; unsupported pairs fail before any I/O.
    5. Demo mode short-circuits here with a synthetic payload.
    6. Dispatch exactly one adapter through `dispatch`.

Error handling strategy:
    - Stage failures are `GatewayError`s converted to responses locally.
    - `dispatch` is the one place adapter faults are caught; every failure it
      produces is redacted of the credential.
    - A top-level guard converts anything else into `fatal`.

Concurrency:
    The pipeline holds no per-request state on the instance. The registry and
    resolver are read-only, so one `SynthesisGateway` serves all requests.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote, quote_plus

from gateway.core.contracts import (
    CanonicalResponse,
    ErrorEnvelope,
    ErrorKind,
    GatewayError,
    SynthesisRequest,
)
from gateway.core.credentials import CredentialResolver
from gateway.core.demo import demo_response
from gateway.core.validation import validate_request
from gateway.providers.base import REDACTED, UpstreamTransport
from gateway.providers.provider_config import DEFAULT_TIMEOUT_SECONDS, GatewaySettings
from gateway.providers.registry import ProviderRegistry, RegistryEntry, build_default_registry

logger = logging.getLogger(__name__)


def redact(text: str | None, credential: str | None) -> str | None:
    """Remove every plain or URL-encoded occurrence of the credential."""
    if not text or not credential:
        return text
    for form in {credential, quote(credential, safe=""), quote_plus(credential)}:
        text = text.replace(form, REDACTED)
    return text


def _redact_response(response: CanonicalResponse, credential: str) -> CanonicalResponse:
    if response.error is None:
        return response
    error = response.error
    return CanonicalResponse(
        error=ErrorEnvelope(
            message=redact(error.message, credential),
            kind=error.kind,
            status=error.status,
            details=redact(error.details, credential),
        )
    )


def dispatch(
    entry: RegistryEntry,
    credential: str,
    request: SynthesisRequest,
    transport: UpstreamTransport,
) -> CanonicalResponse:
    """Invoke one adapter exactly once and never let its faults escape.

    Args:
        entry: Registry entry selected for the request's provider.
        credential: Resolved secret for the upstream call.
        request: Validated canonical request.
        transport: Timeout-bounded HTTP transport for this request.

    Returns:
        The adapter's response with credentials redacted, or an
        `upstream_failure` built from whatever the adapter raised.
    """
    provider = entry.descriptor.provider.value
    try:
        response = entry.adapter.generate(credential, request, transport)
    except Exception as err:
        reason = redact(str(err), credential) or err.__class__.__name__
        logger.warning("%s adapter raised %s: %s", provider, err.__class__.__name__, reason)
        return CanonicalResponse.failure(
            ErrorKind.UPSTREAM_FAILURE,
            f"{provider} request failed.",
            details=reason,
        )

    if not isinstance(response, CanonicalResponse):
        logger.warning("%s adapter returned %s instead of a response", provider, type(response).__name__)
        return CanonicalResponse.failure(
            ErrorKind.UPSTREAM_FAILURE,
            f"{provider} request failed.",
            details="adapter returned a malformed response",
        )

    if response.error is not None:
        logger.info("%s returned %s (status=%d)", provider, response.error.kind.value, response.error.status)
    return _redact_response(response, credential)


class SynthesisGateway:
    """Stateless request pipeline bound to a registry and a credential resolver."""

    def __init__(
        self,
        registry: ProviderRegistry,
        resolver: CredentialResolver,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        debug: bool = False,
    ) -> None:
        self.registry = registry
        self.resolver = resolver
        self.timeout = timeout
        self.debug = debug

    @classmethod
    def from_settings(
        cls,
        settings: GatewaySettings,
        registry: ProviderRegistry | None = None,
    ) -> "SynthesisGateway":
        return cls(
            registry=registry or build_default_registry(),
            resolver=CredentialResolver(settings.default_credentials, demo_mode=settings.demo_mode),
            timeout=settings.timeout_seconds,
            debug=settings.debug,
        )

    @property
    def demo_mode(self) -> bool:
        return self.resolver.demo_mode

    def handle_body(self, raw: bytes | str, transport: UpstreamTransport | None = None) -> CanonicalResponse:
        """Run the pipeline on a raw request body."""
        try:
            try:
                data = json.loads(raw) if raw else None
            except ValueError as err:
                return CanonicalResponse.failure(
                    ErrorKind.INVALID_JSON,
                    "Invalid JSON in request body.",
                    details=str(err),
                )
            if data is None:
                return CanonicalResponse.failure(ErrorKind.INVALID_JSON, "Request body is empty.")
            return self._run(data, transport)
        except Exception as err:
            return self._fatal(err)

    def handle(self, data: Any, transport: UpstreamTransport | None = None) -> CanonicalResponse:
        """Run the pipeline on an already decoded request body."""
        try:
            return self._run(data, transport)
        except Exception as err:
            return self._fatal(err)

    def _run(self, data: Any, transport: UpstreamTransport | None) -> CanonicalResponse:
        try:
            request = validate_request(data)
            credential = self.resolver.resolve(request)
            entry = self.registry.check(request.provider, request.kind)
        except GatewayError as err:
            return err.as_response()

        if self.debug:
            logger.debug(
                "Dispatching provider=%s kind=%s prompt_chars=%d aux_keys=%s",
                request.provider.value,
                request.kind.value,
                len(request.prompt),
                sorted(request.auxiliary),
            )

        if self.demo_mode:
            return demo_response(request)

        if transport is not None:
            return dispatch(entry, credential, request, transport)
        with UpstreamTransport(timeout=self.timeout) as owned:
            return dispatch(entry, credential, request, owned)

    def _fatal(self, err: Exception) -> CanonicalResponse:
        logger.error("Gateway fatal error: %s", err.__class__.__name__)
        return CanonicalResponse.failure(
            ErrorKind.FATAL,
            "Gateway fatal error.",
            details=err.__class__.__name__,
        )
