"""Google Gemini adapters (Gemini, NanoBanana, model listing).

Upstream protocol (API key in the `key` query-string parameter):
    - generate: `POST /v1beta/models/{model}:generateContent`
        request  {"contents": [{"role": "user", "parts": [{"text"}]}],
                  "systemInstruction"?: {"parts": [{"text"}]},
                  "generationConfig"?: {"temperature", "responseMimeType",
                                        "responseModalities"}}
        response {"candidates": [{"content": {"parts": [
                     {"text": str} | {"inlineData": {"mimeType", "data"}}]}}],
                  "promptFeedback"?: {"blockReason": str}}
    - list models: `GET /v1beta/models`
        response {"models": [{"name": "models/<id>", "supportedGenerationMethods"}]}
    - errors: {"error": {"code": int, "message": str, "status": str}}

Image requests go to the image-capable model and must come back with
`inlineData`. A text-only answer to an image request is reported as an
upstream failure rather than passed off as a result.
"""

from __future__ import annotations

import json
from typing import Any

from gateway.core.contracts import ProviderId, RequestKind, SynthesisRequest
from gateway.providers.base import (
    ProviderAdapter,
    UpstreamError,
    UpstreamTransport,
    base64_data_uri,
    dig,
)
from gateway.providers.provider_config import (
    GEMINI_GENERATE_URL_TEMPLATE,
    GEMINI_IMAGE_MODEL,
    GEMINI_MODELS_URL,
    GEMINI_ROADMAP_MODEL,
    GEMINI_TEXT_MODEL,
    ROADMAP_SYSTEM_MESSAGE,
)

TEXT_PREVIEW_CHARS = 160


def gemini_error_message(body: Any) -> Any:
    return dig(body, "error", "message") or dig(body, "error", "status")


class GeminiAdapter(ProviderAdapter):
    provider = ProviderId.GEMINI

    def _synthesize(self, credential: str, request: SynthesisRequest, transport: UpstreamTransport) -> str:
        if request.kind is RequestKind.IMAGE:
            return self._image(credential, request, transport)
        return self._text(credential, request, transport)

    def _model_for(self, request: SynthesisRequest) -> str:
        override = request.auxiliary.get("model")
        if isinstance(override, str) and override.strip():
            return override.strip()
        if request.kind is RequestKind.IMAGE:
            return GEMINI_IMAGE_MODEL
        if request.kind is RequestKind.ROADMAP:
            return GEMINI_ROADMAP_MODEL
        return GEMINI_TEXT_MODEL

    def _build_payload(self, request: SynthesisRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": request.prompt}]}],
        }
        system = request.auxiliary.get("system")
        system = system.strip() if isinstance(system, str) else ""
        if request.kind is RequestKind.ROADMAP:
            system = f"{system}\n\n{ROADMAP_SYSTEM_MESSAGE}".strip()
        if system:
            payload["systemInstruction"] = {"parts": [{"text": system}]}

        generation_config: dict[str, Any] = {}
        temperature = request.auxiliary.get("temperature")
        if isinstance(temperature, (int, float)) and not isinstance(temperature, bool):
            generation_config["temperature"] = temperature
        if request.kind is RequestKind.ROADMAP:
            generation_config["responseMimeType"] = "application/json"
        if request.kind is RequestKind.IMAGE:
            generation_config["responseModalities"] = ["TEXT", "IMAGE"]
        if generation_config:
            payload["generationConfig"] = generation_config
        return payload

    def _generate_content(self, credential: str, request: SynthesisRequest, transport: UpstreamTransport) -> list:
        response = transport.post(
            GEMINI_GENERATE_URL_TEMPLATE.format(model=self._model_for(request)),
            params={"key": credential},
            headers={"Content-Type": "application/json"},
            json=self._build_payload(request),
        )
        self._ensure_ok(response, gemini_error_message)
        data = self._read_json(response)

        block_reason = dig(data, "promptFeedback", "blockReason")
        if block_reason:
            raise UpstreamError(f"prompt blocked ({block_reason})")

        parts = dig(data, "candidates", 0, "content", "parts")
        if not isinstance(parts, list) or not parts:
            finish = dig(data, "candidates", 0, "finishReason")
            suffix = f" (finishReason={finish})" if finish else ""
            raise UpstreamError(f"response contained no content parts{suffix}")
        return parts

    def _text(self, credential: str, request: SynthesisRequest, transport: UpstreamTransport) -> str:
        parts = self._generate_content(credential, request, transport)
        texts = [part["text"] for part in parts if isinstance(part, dict) and isinstance(part.get("text"), str)]
        return self._text_result("".join(texts), request)

    def _image(self, credential: str, request: SynthesisRequest, transport: UpstreamTransport) -> str:
        parts = self._generate_content(credential, request, transport)
        texts = []
        for part in parts:
            if not isinstance(part, dict):
                continue
            inline = part.get("inlineData") or part.get("inline_data")
            data = dig(inline, "data")
            if isinstance(data, str) and data:
                mime_type = dig(inline, "mimeType") or dig(inline, "mime_type") or "image/png"
                return base64_data_uri(data, mime_type)
            if isinstance(part.get("text"), str):
                texts.append(part["text"])

        text = " ".join(t.strip() for t in texts if t.strip())
        if text:
            preview = text[:TEXT_PREVIEW_CHARS]
            raise UpstreamError(f"image request returned text instead of image data: {preview}")
        raise UpstreamError("image response did not contain image data")


class NanoBananaAdapter(GeminiAdapter):
    """Gemini's image model, exposed under its own provider name."""

    provider = ProviderId.NANOBANANA


class GeminiListModelsAdapter(ProviderAdapter):
    """Lists the Gemini models available to the credential as a JSON array."""

    provider = ProviderId.GEMINI_LIST_MODELS

    def _synthesize(self, credential: str, request: SynthesisRequest, transport: UpstreamTransport) -> str:
        response = transport.get(GEMINI_MODELS_URL, params={"key": credential})
        self._ensure_ok(response, gemini_error_message)
        data = self._read_json(response)

        models = dig(data, "models")
        if not isinstance(models, list):
            raise UpstreamError("model listing did not contain a models array")
        names = []
        for model in models:
            name = dig(model, "name")
            if isinstance(name, str) and name:
                names.append(name.removeprefix("models/"))
        return json.dumps(names)
