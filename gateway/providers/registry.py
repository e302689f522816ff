"""Provider registry: capability descriptors and their adapters.

The registry is built once at process start and exposed read-only. Adding a
provider means adding one adapter and one entry in `build_default_registry`;
dispatch code never branches on provider names.

Providers that cannot be served in one request/response call (an async job
to poll, a browser session, a private chat channel) are registered without an
adapter. Their descriptor carries the reason and a capable alternative for
the `unsupported` message.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterator, Mapping

from gateway.core.contracts import ErrorKind, GatewayError, ProviderId, RequestKind
from gateway.providers.base import ProviderAdapter
from gateway.providers.deepai import DeepAIAdapter
from gateway.providers.gemini import GeminiAdapter, GeminiListModelsAdapter, NanoBananaAdapter
from gateway.providers.huggingface import HuggingFaceAdapter
from gateway.providers.openai import LlamaAdapter, OpenAIAdapter
from gateway.providers.stability import DreamStudioAdapter, StabilityAdapter

ALL_KINDS = frozenset(RequestKind)
TEXT_KINDS = frozenset({RequestKind.TEXT, RequestKind.ROADMAP})
IMAGE_ONLY = frozenset({RequestKind.IMAGE})


def unsupported_message(provider: ProviderId, reason: str, alternative: ProviderId | None) -> str:
    message = f"{provider.value} is not supported in this execution model: {reason}."
    if alternative is not None:
        message += f" Try {alternative.value} instead."
    return message


@dataclass(frozen=True)
class CapabilityDescriptor:
    """Static capability metadata for one provider.

    Attributes:
        provider: Canonical provider identifier.
        kinds: Request kinds the provider serves.
        synchronous: False for providers that cannot be served in a single
            request/response call; such providers are unsupported for every kind.
        reason: Why a non-synchronous provider is rejected.
        alternative: Provider suggested in its place.
    """

    provider: ProviderId
    kinds: frozenset[RequestKind]
    synchronous: bool = True
    reason: str | None = None
    alternative: ProviderId | None = None

    def supports(self, kind: RequestKind) -> bool:
        return self.synchronous and kind in self.kinds


@dataclass(frozen=True)
class RegistryEntry:
    """Capability metadata plus the adapter serving it.

    Non-synchronous providers carry no adapter; `check` rejects them before
    dispatch.
    """

    descriptor: CapabilityDescriptor
    adapter: ProviderAdapter | None


class ProviderRegistry:
    """Read-only lookup table from `ProviderId` to capability and adapter."""

    def __init__(self, entries: Mapping[ProviderId, RegistryEntry]) -> None:
        self._entries = MappingProxyType(dict(entries))

    def __contains__(self, provider: object) -> bool:
        return provider in self._entries

    def __iter__(self) -> Iterator[ProviderId]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def entry(self, provider: ProviderId) -> RegistryEntry:
        entry = self._entries.get(provider)
        if entry is None:
            raise GatewayError.of(ErrorKind.UNSUPPORTED, f"{provider.value} is not yet supported.")
        return entry

    def check(self, provider: ProviderId, kind: RequestKind) -> RegistryEntry:
        """Return the entry for a provider/kind pair or raise `unsupported`.

        No adapter is touched here; this is the zero-I/O gate in front of
        dispatch.
        """
        entry = self.entry(provider)
        descriptor = entry.descriptor
        if not descriptor.synchronous:
            raise GatewayError.of(
                ErrorKind.UNSUPPORTED,
                unsupported_message(provider, descriptor.reason or "not available", descriptor.alternative),
            )
        if kind not in descriptor.kinds:
            supported = ", ".join(sorted(k.value for k in descriptor.kinds))
            raise GatewayError.of(
                ErrorKind.UNSUPPORTED,
                f"{provider.value} does not support {kind.value} requests. Supported: {supported}.",
            )
        return entry


def _supported(adapter: ProviderAdapter, kinds: frozenset[RequestKind]) -> RegistryEntry:
    return RegistryEntry(CapabilityDescriptor(provider=adapter.provider, kinds=kinds), adapter)


def _unsupported(provider: ProviderId, reason: str, alternative: ProviderId) -> RegistryEntry:
    descriptor = CapabilityDescriptor(
        provider=provider,
        kinds=frozenset(),
        synchronous=False,
        reason=reason,
        alternative=alternative,
    )
    return RegistryEntry(descriptor, None)


def build_default_registry() -> ProviderRegistry:
    """Build the process-wide registry of every canonical provider."""
    entries = [
        _supported(OpenAIAdapter(), ALL_KINDS),
        _supported(GeminiAdapter(), ALL_KINDS),
        _supported(NanoBananaAdapter(), IMAGE_ONLY),
        _supported(GeminiListModelsAdapter(), frozenset({RequestKind.TEXT})),
        _supported(HuggingFaceAdapter(), ALL_KINDS),
        _supported(LlamaAdapter(), TEXT_KINDS),
        _supported(StabilityAdapter(), IMAGE_ONLY),
        _supported(DreamStudioAdapter(), IMAGE_ONLY),
        _supported(DeepAIAdapter(), IMAGE_ONLY),
        _unsupported(
            ProviderId.MIDJOURNEY,
            "it has no public API and is only reachable through a private chat channel",
            ProviderId.STABILITY,
        ),
        _unsupported(
            ProviderId.RUNWAY,
            "generation runs as an asynchronous task that must be polled",
            ProviderId.STABILITY,
        ),
        _unsupported(
            ProviderId.REPLICATE,
            "predictions run as asynchronous jobs that must be polled",
            ProviderId.HUGGING_FACE,
        ),
        _unsupported(
            ProviderId.ARTBREEDER,
            "it requires an interactive session bound to a browser login",
            ProviderId.OPENAI,
        ),
    ]
    return ProviderRegistry({entry.descriptor.provider: entry for entry in entries})
