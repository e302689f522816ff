from __future__ import annotations

import pytest

from gateway.core.contracts import ErrorKind, GatewayError, ProviderId, RequestKind
from gateway.core.validation import validate_request
from tests.support import body


def test_valid_body_builds_canonical_request() -> None:
    request = validate_request(
        body("gemini", "Roadmap", "sketch a fox", apiKey=" key-1 ", payload={"temperature": 0.2})
    )

    assert request.provider is ProviderId.GEMINI
    assert request.kind is RequestKind.ROADMAP
    assert request.prompt == "sketch a fox"
    assert request.credential == "key-1"
    assert dict(request.auxiliary) == {"temperature": 0.2}


def test_auxiliary_is_read_only() -> None:
    request = validate_request(body(payload={"size": "512x512"}))

    with pytest.raises(TypeError):
        request.auxiliary["size"] = "1024x1024"


@pytest.mark.parametrize(
    "data",
    [
        body(provider=""),
        body(kind="  "),
        body(prompt=None),
        body(prompt="   "),
        {"provider": "OpenAI", "type": "roadmap"},
        {"type": "text", "payload": {"prompt": "hi"}},
    ],
)
def test_missing_fields_are_invalid_requests(data: dict) -> None:
    with pytest.raises(GatewayError) as exc_info:
        validate_request(data)

    assert exc_info.value.envelope.kind is ErrorKind.INVALID_REQUEST
    assert exc_info.value.envelope.status == 400


def test_missing_fields_are_named_in_details() -> None:
    with pytest.raises(GatewayError) as exc_info:
        validate_request({"provider": "OpenAI", "type": "roadmap", "payload": {}})

    assert exc_info.value.envelope.details == "missing: payload.prompt"


def test_non_object_body_is_invalid_request() -> None:
    with pytest.raises(GatewayError) as exc_info:
        validate_request(["provider", "type"])

    assert exc_info.value.envelope.kind is ErrorKind.INVALID_REQUEST


def test_wrongly_typed_field_is_invalid_request() -> None:
    with pytest.raises(GatewayError) as exc_info:
        validate_request({"provider": "Gemini", "type": "text", "payload": "hello"})

    assert exc_info.value.envelope.kind is ErrorKind.INVALID_REQUEST
    assert "payload" in exc_info.value.envelope.details


def test_unknown_kind_is_invalid_request() -> None:
    with pytest.raises(GatewayError) as exc_info:
        validate_request(body(kind="video"))

    assert exc_info.value.envelope.kind is ErrorKind.INVALID_REQUEST
    assert "video" in exc_info.value.envelope.message


def test_unknown_provider_is_unsupported() -> None:
    with pytest.raises(GatewayError) as exc_info:
        validate_request(body(provider="Foo AI"))

    assert exc_info.value.envelope.kind is ErrorKind.UNSUPPORTED
    assert exc_info.value.envelope.status == 501
    assert exc_info.value.envelope.message == "Foo AI is not yet supported."


def test_blank_api_key_counts_as_absent() -> None:
    request = validate_request(body(apiKey="   "))

    assert request.credential is None
