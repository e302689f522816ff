"""DeepAI text-to-image adapter.

Upstream protocol (custom `api-key` header):
    `POST https://api.deepai.org/api/text2img`
    request   form {"text": str, "negative_text"?, "width"?, "height"?}
    response  {"id": str, "output_url": str}
    errors    {"status": str} or {"err": str}

The hosted image URL is returned as the result.
"""

from __future__ import annotations

from typing import Any

from gateway.core.contracts import ProviderId, SynthesisRequest
from gateway.providers.base import ProviderAdapter, UpstreamError, UpstreamTransport, dig
from gateway.providers.provider_config import DEEPAI_TEXT2IMG_URL


def deepai_error_message(body: Any) -> Any:
    return dig(body, "err") or dig(body, "status")


class DeepAIAdapter(ProviderAdapter):
    provider = ProviderId.DEEPAI

    def _synthesize(self, credential: str, request: SynthesisRequest, transport: UpstreamTransport) -> str:
        form = {"text": request.prompt}
        negative = request.auxiliary.get("negative_prompt")
        if isinstance(negative, str) and negative.strip():
            form["negative_text"] = negative.strip()
        for key in ("width", "height"):
            if request.auxiliary.get(key) not in (None, ""):
                form[key] = str(request.auxiliary[key])

        response = transport.post(DEEPAI_TEXT2IMG_URL, headers={"api-key": credential}, data=form)
        self._ensure_ok(response, deepai_error_message)
        data = self._read_json(response)

        output_url = dig(data, "output_url")
        if not isinstance(output_url, str) or not output_url:
            raise UpstreamError(str(deepai_error_message(data) or "response did not contain an output_url"))
        return output_url
