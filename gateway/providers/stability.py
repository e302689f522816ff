"""Stability AI adapters (Stable Image Core and the DreamStudio v1 API).

Stability AI, `POST /v2beta/stable-image/generate/core` (bearer header):
    request   multipart form {"prompt", "output_format": "png",
              "aspect_ratio"?, "negative_prompt"?, "seed"?}
    response  raw image bytes (`Accept: image/*`)
    errors    {"id": str, "name": str, "errors": [str]}

DreamStudio, `POST /v1/generation/{engine}/text-to-image` (bearer header):
    request   {"text_prompts": [{"text", "weight"}], "cfg_scale", "width",
               "height", "samples": 1, "steps"}
    response  {"artifacts": [{"base64": str, "finishReason": str, "seed": int}]}
    errors    {"id": str, "name": str, "message": str}
"""

from __future__ import annotations

from typing import Any

from gateway.core.contracts import ProviderId, SynthesisRequest
from gateway.providers.base import (
    ProviderAdapter,
    UpstreamError,
    UpstreamTransport,
    base64_data_uri,
    dig,
    to_data_uri,
)
from gateway.providers.provider_config import (
    DREAMSTUDIO_ENGINE,
    DREAMSTUDIO_URL_TEMPLATE,
    STABILITY_CORE_URL,
)


def stability_error_message(body: Any) -> Any:
    errors = dig(body, "errors")
    if isinstance(errors, list) and errors:
        return "; ".join(str(e) for e in errors)
    return dig(body, "message") or dig(body, "name")


class StabilityAdapter(ProviderAdapter):
    provider = ProviderId.STABILITY

    def _synthesize(self, credential: str, request: SynthesisRequest, transport: UpstreamTransport) -> str:
        form = {"prompt": request.prompt, "output_format": "png"}
        for key in ("aspect_ratio", "negative_prompt", "seed", "style_preset"):
            value = request.auxiliary.get(key)
            if value not in (None, ""):
                form[key] = str(value)

        response = transport.post(
            STABILITY_CORE_URL,
            headers={"Authorization": f"Bearer {credential}", "Accept": "image/*"},
            # The endpoint only accepts multipart bodies; an empty file part forces that encoding.
            files={"none": ""},
            data=form,
        )
        self._ensure_ok(response, stability_error_message)

        content_type = response.headers.get("Content-Type", "").split(";")[0].strip().lower()
        if not content_type.startswith("image/"):
            raise UpstreamError(f"expected image bytes, got {content_type or 'unknown content'}")
        if not response.content:
            raise UpstreamError("image response was empty")
        return to_data_uri(response.content, content_type)


class DreamStudioAdapter(ProviderAdapter):
    provider = ProviderId.DREAMSTUDIO

    def _synthesize(self, credential: str, request: SynthesisRequest, transport: UpstreamTransport) -> str:
        text_prompts = [{"text": request.prompt, "weight": 1}]
        negative = request.auxiliary.get("negative_prompt")
        if isinstance(negative, str) and negative.strip():
            text_prompts.append({"text": negative.strip(), "weight": -1})

        payload = {
            "text_prompts": text_prompts,
            "cfg_scale": 7,
            "width": _int_or(request.auxiliary.get("width"), 1024),
            "height": _int_or(request.auxiliary.get("height"), 1024),
            "samples": 1,
            "steps": _int_or(request.auxiliary.get("steps"), 30),
        }
        engine = request.auxiliary.get("engine") or DREAMSTUDIO_ENGINE

        response = transport.post(
            DREAMSTUDIO_URL_TEMPLATE.format(engine=engine),
            headers={
                "Authorization": f"Bearer {credential}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            json=payload,
        )
        self._ensure_ok(response, stability_error_message)
        data = self._read_json(response)

        artifact = dig(data, "artifacts", 0)
        if not isinstance(artifact, dict):
            raise UpstreamError("response did not contain any artifacts")
        if artifact.get("finishReason") == "CONTENT_FILTERED":
            raise UpstreamError("image was blocked by the content filter")
        encoded = artifact.get("base64")
        if not isinstance(encoded, str) or not encoded:
            raise UpstreamError("artifact did not contain image data")
        return base64_data_uri(encoded, "image/png")


def _int_or(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
