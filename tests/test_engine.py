from __future__ import annotations

import dataclasses
import json

import pytest

from gateway.core.contracts import (
    CanonicalResponse,
    ErrorEnvelope,
    ErrorKind,
    ProviderId,
    RequestKind,
    SynthesisRequest,
)
from gateway.core.credentials import CredentialResolver
from gateway.core.demo import DEMO_IMAGE_DATA_URI, DEMO_SOURCE
from gateway.core.engine import REDACTED, redact
from tests.support import SpyResolver, CountingAdapter, body, counting_registry, make_gateway


def _assert_exactly_one(response: CanonicalResponse) -> None:
    assert (response.result is None) != (response.error is None)


def test_canonical_response_rejects_both_or_neither() -> None:
    with pytest.raises(ValueError):
        CanonicalResponse()
    with pytest.raises(ValueError):
        CanonicalResponse(result="x", error=ErrorEnvelope.of(ErrorKind.FATAL, "boom"))


def test_invalid_json_body() -> None:
    response = make_gateway().handle_body(b"{not json")

    assert response.error.kind is ErrorKind.INVALID_JSON
    assert response.error.status == 400
    assert response.error.details


def test_empty_body_is_invalid_json() -> None:
    response = make_gateway().handle_body(b"")

    assert response.error.kind is ErrorKind.INVALID_JSON


def test_missing_prompt_never_reaches_credential_resolver() -> None:
    resolver = SpyResolver({ProviderId.OPENAI: "env-key"})
    gateway = make_gateway(resolver=resolver)

    response = gateway.handle({"provider": "OpenAI", "type": "roadmap", "apiKey": "k", "payload": {}})

    assert response.error.kind is ErrorKind.INVALID_REQUEST
    assert response.error.status == 400
    assert resolver.calls == 0


def test_missing_credential_is_invalid_request() -> None:
    adapter = CountingAdapter(ProviderId.OPENAI)
    response = make_gateway(registry=counting_registry(adapter)).handle(body("OpenAI"))

    assert response.error.kind is ErrorKind.INVALID_REQUEST
    assert adapter.calls == []


def test_unsupported_kind_makes_zero_adapter_calls() -> None:
    adapter = CountingAdapter(ProviderId.STABILITY)
    registry = counting_registry(adapter, kinds=frozenset({RequestKind.IMAGE}))

    response = make_gateway(registry=registry).handle(body("Stability AI", "text", apiKey="k"))

    assert response.error.kind is ErrorKind.UNSUPPORTED
    assert response.error.status == 501
    assert adapter.calls == []


def test_midjourney_is_unsupported_regardless_of_credential() -> None:
    for api_key in ("valid-looking-key", "x"):
        response = make_gateway().handle(body("Midjourney", "image", "a cat", apiKey=api_key))

        assert response.error.kind is ErrorKind.UNSUPPORTED
        assert response.error.status == 501
        assert "Stability AI" in response.error.message


def test_successful_dispatch_passes_credential_and_request() -> None:
    adapter = CountingAdapter(ProviderId.GEMINI, result="a poem")
    gateway = make_gateway(registry=counting_registry(adapter))

    response = gateway.handle(body("Gemini", "text", "hello", apiKey="secret"))

    assert response.result == "a poem"
    assert response.error is None
    credential, request = adapter.calls[0]
    assert credential == "secret"
    assert request.prompt == "hello"


def test_default_credential_used_when_request_has_none() -> None:
    adapter = CountingAdapter(ProviderId.GEMINI)
    gateway = make_gateway(registry=counting_registry(adapter), defaults={ProviderId.GEMINI: "env-key"})

    gateway.handle(body("Gemini"))

    assert adapter.calls[0][0] == "env-key"


def test_lowercase_alias_routes_to_same_adapter() -> None:
    adapter = CountingAdapter(ProviderId.GEMINI, result="same")
    gateway = make_gateway(registry=counting_registry(adapter))

    first = gateway.handle(body("gemini", apiKey="k"))
    second = gateway.handle(body("Gemini", apiKey="k"))

    assert first == second
    assert adapter.calls[0] == adapter.calls[1]


def test_adapter_exception_becomes_upstream_failure() -> None:
    adapter = CountingAdapter(ProviderId.OPENAI, raises=KeyError("choices"))
    gateway = make_gateway(registry=counting_registry(adapter))

    response = gateway.handle(body("OpenAI", apiKey="k"))

    assert response.error.kind is ErrorKind.UPSTREAM_FAILURE
    assert response.error.status == 502
    assert response.error.message == "OpenAI request failed."
    assert "choices" in response.error.details
    assert len(adapter.calls) == 1


def test_malformed_adapter_return_becomes_upstream_failure() -> None:
    adapter = CountingAdapter(ProviderId.OPENAI, result={"choices": []})
    gateway = make_gateway(registry=counting_registry(adapter))

    response = gateway.handle(body("OpenAI", apiKey="k"))

    assert response.error.kind is ErrorKind.UPSTREAM_FAILURE
    assert response.error.details == "adapter returned a malformed response"


def test_credentials_are_redacted_from_adapter_failures() -> None:
    secret = "sk-very/secret+key"
    raising = CountingAdapter(
        ProviderId.GEMINI,
        raises=RuntimeError(f"400 Client Error for url: https://x/models?key={secret}"),
    )
    response = make_gateway(registry=counting_registry(raising)).handle(body("Gemini", apiKey=secret))

    assert secret not in json.dumps(dataclasses.asdict(response.error), default=str)
    assert REDACTED in response.error.details

    failing = CountingAdapter(
        ProviderId.GEMINI,
        result=CanonicalResponse.failure(ErrorKind.UPSTREAM_FAILURE, f"bad key {secret}", details=secret),
    )
    response = make_gateway(registry=counting_registry(failing)).handle(body("Gemini", apiKey=secret))

    assert response.error.message == f"bad key {REDACTED}"
    assert response.error.details == REDACTED


def test_redact_handles_url_encoded_forms() -> None:
    assert redact("key=a%2Fb%2Bc", "a/b+c") == f"key={REDACTED}"
    assert redact("nothing here", None) == "nothing here"
    assert redact(None, "secret") is None


def test_unexpected_pipeline_error_is_fatal() -> None:
    class BrokenResolver(CredentialResolver):
        def resolve(self, request: SynthesisRequest) -> str:
            raise RuntimeError("configuration corrupted")

    gateway = make_gateway(resolver=BrokenResolver())

    response = gateway.handle_body(json.dumps(body(apiKey="k")))

    assert response.error.kind is ErrorKind.FATAL
    assert response.error.status == 500
    assert response.error.details == "RuntimeError"


@pytest.mark.parametrize("kind", list(RequestKind))
def test_demo_mode_never_calls_adapters(kind: RequestKind) -> None:
    adapter = CountingAdapter(ProviderId.OPENAI)
    gateway = make_gateway(registry=counting_registry(adapter), demo_mode=True)

    first = gateway.handle(body("OpenAI", kind.value, "draw"))
    second = gateway.handle(body("OpenAI", kind.value, "draw"))

    assert adapter.calls == []
    assert first == second
    assert first.source == DEMO_SOURCE
    _assert_exactly_one(first)


def test_demo_mode_payloads_per_kind() -> None:
    gateway = make_gateway(demo_mode=True)

    roadmap = gateway.handle(body("OpenAI", "roadmap", "fox"))
    image = gateway.handle(body("Stability AI", "image", "fox"))
    text = gateway.handle(body("Gemini", "text", "fox"))

    assert json.loads(roadmap.result)["steps"]
    assert image.result == DEMO_IMAGE_DATA_URI
    assert text.result == "[demo:Gemini] fox"


def test_demo_mode_still_rejects_unsupported_providers() -> None:
    response = make_gateway(demo_mode=True).handle(body("Midjourney", "image"))

    assert response.error.kind is ErrorKind.UNSUPPORTED


@pytest.mark.parametrize(
    "data",
    [
        body("OpenAI", "roadmap", None),
        body("Foo"),
        body("Stability AI", "text", apiKey="k"),
        body("Gemini", "text"),
    ],
)
def test_every_failure_path_sets_exactly_one_field(data: dict) -> None:
    _assert_exactly_one(make_gateway().handle(data))
