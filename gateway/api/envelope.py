"""Wire envelope and cross-origin headers for gateway responses.

Response formatting:
    - success: `{"result": str}` with HTTP 200; demo results also carry
      `"source": "demo"`.
    - failure: `{"error": message, "status": kind-tag, "details"?: str}` with
      the HTTP status of the error envelope.

Every response, including preflight answers, carries `cors_headers(...)`.
"""

from __future__ import annotations

from typing import Any

from gateway.core.contracts import CanonicalResponse
from gateway.core.demo import DEMO_SOURCE


def cors_headers(allow_origin: str = "*") -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
        "Access-Control-Max-Age": "86400",
    }


def build_envelope(response: CanonicalResponse) -> tuple[int, dict[str, Any]]:
    """Map a canonical response onto `(http_status, json_body)`."""
    if response.error is None:
        body: dict[str, Any] = {"result": response.result}
        if response.source == DEMO_SOURCE:
            body["source"] = DEMO_SOURCE
        return 200, body

    error = response.error
    body = {"error": error.message, "status": error.kind.value}
    if error.details:
        body["details"] = error.details
    return error.status, body
