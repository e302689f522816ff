"""OpenAI and OpenAI-compatible chat adapters.

Upstream protocol (bearer `Authorization` header):
    - text/roadmap: `POST /v1/chat/completions`
        request  {"model", "messages": [{"role", "content"}], "temperature"?,
                  "max_tokens"?, "response_format"?}
        response {"choices": [{"message": {"content": str}}]}
    - image: `POST /v1/images/generations` (OpenAI only)
        request  {"model", "prompt", "n": 1, "size", "response_format": "b64_json"}
        response {"data": [{"b64_json": str} | {"url": str}]}
    - errors: {"error": {"message": str, "type": str}}

Roadmap requests use a larger model and ask for a JSON object response.
The LLaMA adapter speaks the same chat protocol against Groq's
OpenAI-compatible endpoint.
"""

from __future__ import annotations

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
    GROQ_CHAT_URL,
    LLAMA_ROADMAP_MODEL,
    LLAMA_TEXT_MODEL,
    OPENAI_CHAT_URL,
    OPENAI_IMAGE_MODEL,
    OPENAI_IMAGES_URL,
    OPENAI_ROADMAP_MODEL,
    OPENAI_TEXT_MODEL,
    ROADMAP_SYSTEM_MESSAGE,
)


def openai_error_message(body: Any) -> Any:
    return dig(body, "error", "message") or dig(body, "error")


def build_chat_messages(request: SynthesisRequest) -> list[dict[str, str]]:
    """Map a canonical request onto chat `messages`.

    Roadmap requests always carry the structured-output instruction; a caller
    `system` auxiliary value is used for text requests and prepended for
    roadmap requests.
    """
    system = request.auxiliary.get("system")
    system = system.strip() if isinstance(system, str) else ""
    if request.kind is RequestKind.ROADMAP:
        system = f"{system}\n\n{ROADMAP_SYSTEM_MESSAGE}".strip()

    messages = []
    if system:
        messages.append({"role": "system", "content": system})
    messages.append({"role": "user", "content": request.prompt})
    return messages


class OpenAICompatibleChatAdapter(ProviderAdapter):
    """Chat-completions adapter shared by OpenAI-compatible hosts."""

    chat_url: str
    text_model: str
    roadmap_model: str

    def _chat_payload(self, request: SynthesisRequest) -> dict[str, Any]:
        roadmap = request.kind is RequestKind.ROADMAP
        payload: dict[str, Any] = {
            "model": request.auxiliary.get("model") or (self.roadmap_model if roadmap else self.text_model),
            "messages": build_chat_messages(request),
        }
        for key in ("temperature", "max_tokens", "top_p"):
            value = request.auxiliary.get(key)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                payload[key] = value
        if roadmap:
            payload["response_format"] = {"type": "json_object"}
        return payload

    def _chat(self, credential: str, request: SynthesisRequest, transport: UpstreamTransport) -> str:
        response = transport.post(
            self.chat_url,
            headers={
                "Authorization": f"Bearer {credential}",
                "Content-Type": "application/json",
            },
            json=self._chat_payload(request),
        )
        self._ensure_ok(response, openai_error_message)
        data = self._read_json(response)
        return self._text_result(dig(data, "choices", 0, "message", "content"), request)

    def _synthesize(self, credential: str, request: SynthesisRequest, transport: UpstreamTransport) -> str:
        return self._chat(credential, request, transport)


class OpenAIAdapter(OpenAICompatibleChatAdapter):
    provider = ProviderId.OPENAI
    chat_url = OPENAI_CHAT_URL
    text_model = OPENAI_TEXT_MODEL
    roadmap_model = OPENAI_ROADMAP_MODEL

    def _synthesize(self, credential: str, request: SynthesisRequest, transport: UpstreamTransport) -> str:
        if request.kind is RequestKind.IMAGE:
            return self._image(credential, request, transport)
        return self._chat(credential, request, transport)

    def _image(self, credential: str, request: SynthesisRequest, transport: UpstreamTransport) -> str:
        size = request.auxiliary.get("size")
        payload = {
            "model": request.auxiliary.get("model") or OPENAI_IMAGE_MODEL,
            "prompt": request.prompt,
            "n": 1,
            "size": size if isinstance(size, str) and size else "1024x1024",
            "response_format": "b64_json",
        }
        response = transport.post(
            OPENAI_IMAGES_URL,
            headers={
                "Authorization": f"Bearer {credential}",
                "Content-Type": "application/json",
            },
            json=payload,
        )
        self._ensure_ok(response, openai_error_message)
        data = self._read_json(response)

        encoded = dig(data, "data", 0, "b64_json")
        if isinstance(encoded, str) and encoded:
            return base64_data_uri(encoded, "image/png")
        url = dig(data, "data", 0, "url")
        if isinstance(url, str) and url:
            return url
        raise UpstreamError("image response did not contain image data")


class LlamaAdapter(OpenAICompatibleChatAdapter):
    provider = ProviderId.LLAMA
    chat_url = GROQ_CHAT_URL
    text_model = LLAMA_TEXT_MODEL
    roadmap_model = LLAMA_ROADMAP_MODEL
