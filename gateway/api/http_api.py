"""
HTTP API adapter for the synthesis gateway.

Architectural role:
- Expose the single synthesis endpoint consumed by the browser client.
- Answer cross-origin preflight requests before any body parsing.
- Delegate all validation, credential and provider work to
  `gateway.core.engine.SynthesisGateway`.
- Shape every outcome into the JSON wire envelope with CORS headers.

Endpoint responsibilities:
- `OPTIONS /api/proxy`: 204, empty body, CORS headers.
- `POST /api/proxy`: run one synthesis request.
- `GET|PUT|PATCH|DELETE /api/proxy`: 405 envelope.
- `GET /health`: liveness plus the demo-mode flag.

API request lifecycle (`POST /api/proxy`):
1. Read the raw body (JSON decoding happens in the pipeline).
2. Run the blocking pipeline in a worker thread with a per-request transport.
3. Watch for client disconnect while the worker runs; on disconnect close the
   transport so the in-flight upstream socket is torn down, and send nothing.
4. Convert the canonical response into `(status, body)` and attach CORS headers.

Error handling strategy:
- Pipeline failures are already canonical responses.
- A catch-all around the endpoint turns anything unexpected into a `fatal`
  JSON envelope so the client never receives an HTML error page.

Side effects:
- Loads process settings from the environment (and `.env`) at import time.
- Emits request-metadata debug logs when `DEBUG=true`; credentials are never
  logged.
"""

import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from gateway.api.envelope import build_envelope, cors_headers
from gateway.core.contracts import CanonicalResponse, ErrorKind
from gateway.core.engine import SynthesisGateway
from gateway.providers.base import UpstreamTransport
from gateway.providers.provider_config import GatewaySettings

logger = logging.getLogger(__name__)

PROXY_PATH = "/api/proxy"
DISCONNECT_POLL_SECONDS = 0.25
# Non-standard "client closed request" status; the client never sees it.
CLIENT_CLOSED_STATUS = 499


async def run_until_disconnect(request: Request, gateway: SynthesisGateway, raw: bytes):
    """Run the pipeline in a worker thread, aborting it if the client leaves.

    On disconnect the transport is closed first, which shuts down the socket
    the worker is blocked on; cancelling the future only detaches it.

    Returns:
        The canonical response, or `None` when the client disconnected first.
    """
    transport = UpstreamTransport(timeout=gateway.timeout)
    work = asyncio.ensure_future(asyncio.to_thread(gateway.handle_body, raw, transport))
    try:
        while True:
            done, _ = await asyncio.wait({work}, timeout=DISCONNECT_POLL_SECONDS)
            if done:
                return work.result()
            if await request.is_disconnected():
                logger.info("Client disconnected; aborting upstream call")
                transport.close()
                work.cancel()
                return None
    finally:
        transport.close()


def create_app(
    gateway: SynthesisGateway | None = None,
    settings: GatewaySettings | None = None,
) -> FastAPI:
    """Build the FastAPI application around one gateway instance.

    Args:
        gateway: Pipeline to serve; built from `settings` when omitted.
        settings: Process settings; read from the environment when omitted.
    """
    settings = settings or GatewaySettings.from_env()
    gateway = gateway or SynthesisGateway.from_settings(settings)
    headers = cors_headers(settings.cors_allow_origin)

    app = FastAPI(title="Synthesis Gateway")
    app.state.gateway = gateway

    def envelope_response(response: CanonicalResponse) -> JSONResponse:
        status, body = build_envelope(response)
        return JSONResponse(status_code=status, content=body, headers=headers)

    @app.options(PROXY_PATH)
    def preflight():
        return Response(status_code=204, headers=headers)

    @app.post(PROXY_PATH)
    async def synthesize(request: Request):
        try:
            raw = await request.body()
            response = await run_until_disconnect(request, gateway, raw)
            if response is None:
                return Response(status_code=CLIENT_CLOSED_STATUS)
            return envelope_response(response)
        except Exception as err:
            logger.error("Proxy fatal error: %s", err.__class__.__name__)
            return envelope_response(
                CanonicalResponse.failure(
                    ErrorKind.FATAL,
                    "Proxy fatal error.",
                    details=err.__class__.__name__,
                )
            )

    @app.api_route(PROXY_PATH, methods=["GET", "PUT", "PATCH", "DELETE"])
    def method_not_allowed():
        return envelope_response(
            CanonicalResponse.failure(ErrorKind.METHOD_NOT_ALLOWED, "Method Not Allowed")
        )

    @app.get("/health")
    def health():
        return {"status": "ok", "demo_mode": gateway.demo_mode}

    return app


app = create_app()
