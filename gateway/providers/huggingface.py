"""Hugging Face Inference API adapter.

Upstream protocol (bearer `Authorization` header):
    `POST https://api-inference.huggingface.co/models/{model}`
    - text/roadmap request  {"inputs": str, "parameters": {"max_new_tokens",
                             "return_full_text": false, "temperature"?}}
      response              [{"generated_text": str}] or {"generated_text": str}
    - image request         {"inputs": str, "parameters"?: {"negative_prompt",
                             "width", "height"}}
      response              raw image bytes with an `image/*` content type
    - errors                {"error": str, "estimated_time"?: float}

Image bytes are returned to the caller as a base64 data URI.
"""

from __future__ import annotations

from typing import Any

from gateway.core.contracts import ProviderId, RequestKind, SynthesisRequest
from gateway.providers.base import (
    ProviderAdapter,
    UpstreamError,
    UpstreamTransport,
    dig,
    to_data_uri,
)
from gateway.providers.provider_config import (
    HUGGING_FACE_IMAGE_MODEL,
    HUGGING_FACE_TEXT_MODEL,
    HUGGING_FACE_URL_TEMPLATE,
    ROADMAP_SYSTEM_MESSAGE,
)

MAX_NEW_TOKENS = 1024


def huggingface_error_message(body: Any) -> Any:
    message = dig(body, "error")
    if isinstance(message, list):
        message = "; ".join(str(item) for item in message)
    estimated = dig(body, "estimated_time")
    if message and isinstance(estimated, (int, float)):
        return f"{message} (estimated_time={estimated:.0f}s)"
    return message


class HuggingFaceAdapter(ProviderAdapter):
    provider = ProviderId.HUGGING_FACE

    def _synthesize(self, credential: str, request: SynthesisRequest, transport: UpstreamTransport) -> str:
        if request.kind is RequestKind.IMAGE:
            return self._image(credential, request, transport)
        return self._text(credential, request, transport)

    def _url(self, request: SynthesisRequest, default_model: str) -> str:
        override = request.auxiliary.get("model")
        model = override.strip() if isinstance(override, str) and override.strip() else default_model
        return HUGGING_FACE_URL_TEMPLATE.format(model=model)

    def _text(self, credential: str, request: SynthesisRequest, transport: UpstreamTransport) -> str:
        inputs = request.prompt
        if request.kind is RequestKind.ROADMAP:
            inputs = f"{ROADMAP_SYSTEM_MESSAGE}\n\n{request.prompt}"
        parameters: dict[str, Any] = {"max_new_tokens": MAX_NEW_TOKENS, "return_full_text": False}
        temperature = request.auxiliary.get("temperature")
        if isinstance(temperature, (int, float)) and not isinstance(temperature, bool):
            parameters["temperature"] = temperature

        response = transport.post(
            self._url(request, HUGGING_FACE_TEXT_MODEL),
            headers={"Authorization": f"Bearer {credential}"},
            json={"inputs": inputs, "parameters": parameters},
        )
        self._ensure_ok(response, huggingface_error_message)
        data = self._read_json(response)

        if isinstance(data, dict) and data.get("error"):
            raise UpstreamError(str(huggingface_error_message(data)))
        text = dig(data, 0, "generated_text") if isinstance(data, list) else dig(data, "generated_text")
        return self._text_result(text, request)

    def _image(self, credential: str, request: SynthesisRequest, transport: UpstreamTransport) -> str:
        parameters = {
            key: request.auxiliary[key]
            for key in ("negative_prompt", "width", "height")
            if request.auxiliary.get(key) not in (None, "")
        }
        body: dict[str, Any] = {"inputs": request.prompt}
        if parameters:
            body["parameters"] = parameters

        response = transport.post(
            self._url(request, HUGGING_FACE_IMAGE_MODEL),
            headers={"Authorization": f"Bearer {credential}", "Accept": "image/png"},
            json=body,
        )
        self._ensure_ok(response, huggingface_error_message)

        content_type = response.headers.get("Content-Type", "").split(";")[0].strip().lower()
        if not content_type.startswith("image/"):
            data = self._read_json(response)
            message = huggingface_error_message(data) if isinstance(data, dict) else None
            raise UpstreamError(message or f"expected image bytes, got {content_type or 'unknown content'}")
        if not response.content:
            raise UpstreamError("image response was empty")
        return to_data_uri(response.content, content_type)
