from __future__ import annotations

import pytest

from gateway.core.contracts import ErrorKind, GatewayError, ProviderId, RequestKind
from gateway.providers.registry import ProviderRegistry, build_default_registry, unsupported_message

UNSUPPORTED = {
    ProviderId.MIDJOURNEY,
    ProviderId.RUNWAY,
    ProviderId.REPLICATE,
    ProviderId.ARTBREEDER,
}


def test_default_registry_covers_every_provider() -> None:
    registry = build_default_registry()

    assert set(registry) == set(ProviderId)
    assert len(registry) == len(ProviderId)


def test_registry_is_read_only() -> None:
    registry = build_default_registry()

    with pytest.raises(TypeError):
        registry._entries[ProviderId.OPENAI] = None


@pytest.mark.parametrize("provider", sorted(UNSUPPORTED, key=lambda p: p.value))
@pytest.mark.parametrize("kind", list(RequestKind))
def test_non_synchronous_providers_are_unsupported_for_every_kind(
    provider: ProviderId, kind: RequestKind
) -> None:
    registry = build_default_registry()

    with pytest.raises(GatewayError) as exc_info:
        registry.check(provider, kind)

    envelope = exc_info.value.envelope
    assert envelope.kind is ErrorKind.UNSUPPORTED
    assert envelope.status == 501
    assert "not supported in this execution model" in envelope.message
    assert "Try " in envelope.message


@pytest.mark.parametrize(
    ("provider", "kind"),
    [
        (ProviderId.STABILITY, RequestKind.TEXT),
        (ProviderId.STABILITY, RequestKind.ROADMAP),
        (ProviderId.DEEPAI, RequestKind.TEXT),
        (ProviderId.DREAMSTUDIO, RequestKind.ROADMAP),
        (ProviderId.NANOBANANA, RequestKind.TEXT),
        (ProviderId.LLAMA, RequestKind.IMAGE),
        (ProviderId.GEMINI_LIST_MODELS, RequestKind.IMAGE),
    ],
)
def test_kind_outside_capability_set_is_unsupported(provider: ProviderId, kind: RequestKind) -> None:
    with pytest.raises(GatewayError) as exc_info:
        build_default_registry().check(provider, kind)

    assert exc_info.value.envelope.kind is ErrorKind.UNSUPPORTED
    assert f"does not support {kind.value} requests" in exc_info.value.envelope.message


@pytest.mark.parametrize(
    ("provider", "kind"),
    [
        (ProviderId.OPENAI, RequestKind.ROADMAP),
        (ProviderId.GEMINI, RequestKind.IMAGE),
        (ProviderId.HUGGING_FACE, RequestKind.TEXT),
        (ProviderId.STABILITY, RequestKind.IMAGE),
        (ProviderId.LLAMA, RequestKind.ROADMAP),
    ],
)
def test_supported_pairs_return_their_entry(provider: ProviderId, kind: RequestKind) -> None:
    entry = build_default_registry().check(provider, kind)

    assert entry.descriptor.provider is provider
    assert entry.adapter.provider is provider


def test_missing_entry_is_unsupported() -> None:
    with pytest.raises(GatewayError) as exc_info:
        ProviderRegistry({}).entry(ProviderId.OPENAI)

    assert exc_info.value.envelope.kind is ErrorKind.UNSUPPORTED


def test_non_synchronous_entries_carry_no_adapter() -> None:
    registry = build_default_registry()

    for provider in UNSUPPORTED:
        entry = registry.entry(provider)
        assert entry.adapter is None
        assert entry.descriptor.alternative is not None


def test_unsupported_message_names_alternative() -> None:
    assert unsupported_message(ProviderId.MIDJOURNEY, "no public API", ProviderId.STABILITY) == (
        "Midjourney is not supported in this execution model: no public API. Try Stability AI instead."
    )
    assert unsupported_message(ProviderId.RUNWAY, "async only", None) == (
        "RunwayML is not supported in this execution model: async only."
    )
