"""Test doubles and builders shared by the gateway tests."""

from __future__ import annotations

from typing import Any

from gateway.core.contracts import CanonicalResponse, ProviderId, RequestKind, SynthesisRequest
from gateway.core.credentials import CredentialResolver
from gateway.core.engine import SynthesisGateway
from gateway.providers.base import ProviderAdapter, UpstreamTransport
from gateway.providers.registry import (
    CapabilityDescriptor,
    ProviderRegistry,
    RegistryEntry,
    build_default_registry,
)


GEMINI_STUB_TEXT = "ok"


class CountingAdapter(ProviderAdapter):
    """Adapter double that records calls instead of doing network I/O."""

    def __init__(self, provider: ProviderId, result: Any = "ok", raises: Exception | None = None) -> None:
        self.provider = provider
        self.result = result
        self.raises = raises
        self.calls: list[tuple[str, SynthesisRequest]] = []

    def generate(self, credential: str, request: SynthesisRequest, transport: UpstreamTransport) -> Any:
        self.calls.append((credential, request))
        if self.raises is not None:
            raise self.raises
        if isinstance(self.result, str):
            return CanonicalResponse.success(self.result, source=self.provider.value)
        return self.result


class SpyResolver(CredentialResolver):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.calls = 0

    def resolve(self, request: SynthesisRequest) -> str:
        self.calls += 1
        return super().resolve(request)


def counting_registry(
    adapter: CountingAdapter,
    kinds: frozenset[RequestKind] = frozenset(RequestKind),
) -> ProviderRegistry:
    descriptor = CapabilityDescriptor(provider=adapter.provider, kinds=kinds)
    return ProviderRegistry({adapter.provider: RegistryEntry(descriptor, adapter)})


def make_gateway(
    registry: ProviderRegistry | None = None,
    defaults: dict[ProviderId, str] | None = None,
    demo_mode: bool = False,
    resolver: CredentialResolver | None = None,
) -> SynthesisGateway:
    return SynthesisGateway(
        registry=registry or build_default_registry(),
        resolver=resolver or CredentialResolver(defaults or {}, demo_mode=demo_mode),
        timeout=5,
    )


def body(provider: str = "Gemini", kind: str = "text", prompt: str | None = "hello", **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    if prompt is not None:
        payload["prompt"] = prompt
    payload.update(extra.pop("payload", {}))
    data: dict[str, Any] = {"provider": provider, "type": kind, "payload": payload}
    data.update(extra)
    return data
