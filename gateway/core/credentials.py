"""Credential resolution for upstream calls.

Resolution order (first match wins):
    1. Credential supplied on the request (`apiKey`).
    2. Provider default taken from process configuration.
    3. `DEMO_CREDENTIAL` when demo mode is enabled. The placeholder only
       satisfies presence checks; demo mode bypasses every adapter, so it is
       never sent upstream.
    4. Otherwise `invalid_request`.

The resolver holds only the configuration handed to its constructor and
never reads the environment itself.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from gateway.core.contracts import ErrorKind, GatewayError, ProviderId, SynthesisRequest

DEMO_CREDENTIAL = "demo-mode-placeholder"


class CredentialResolver:
    """Select the secret used for one request by fixed priority."""

    def __init__(self, defaults: Mapping[ProviderId, str] | None = None, demo_mode: bool = False) -> None:
        cleaned = {
            provider: value.strip()
            for provider, value in (defaults or {}).items()
            if value and value.strip()
        }
        self._defaults = MappingProxyType(cleaned)
        self._demo_mode = demo_mode

    @property
    def demo_mode(self) -> bool:
        return self._demo_mode

    def resolve(self, request: SynthesisRequest) -> str:
        if request.credential and request.credential.strip():
            return request.credential.strip()

        default = self._defaults.get(request.provider)
        if default:
            return default

        if self._demo_mode:
            return DEMO_CREDENTIAL

        raise GatewayError.of(
            ErrorKind.INVALID_REQUEST,
            f"Missing API key for {request.provider.value} (check env variables).",
        )
