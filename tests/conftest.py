"""Shared fixtures for gateway tests.

Upstream HTTP is stubbed with `responses` for protocol tests. Transport tests
that need real sockets use `gemini_stub`, a local HTTP server standing in for
the Gemini endpoint; nothing here reaches a real provider.
"""

from __future__ import annotations

import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from gateway.providers import gemini
from gateway.providers.base import UpstreamTransport
from tests.support import GEMINI_STUB_TEXT


@pytest.fixture
def transport() -> UpstreamTransport:
    with UpstreamTransport(timeout=5) as client:
        yield client


class _GeminiStubHandler(BaseHTTPRequestHandler):
    def do_POST(self) -> None:
        self.rfile.read(int(self.headers.get("Content-Length") or 0))
        self.server.received.set()
        if self.server.hold:
            self.server.release.wait(timeout=10)
        body = json.dumps({"candidates": [{"content": {"parts": [{"text": GEMINI_STUB_TEXT}]}}]}).encode()
        try:
            self.send_response(200)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)
        except OSError:
            # Client already went away.
            return

    def log_message(self, format: str, *args) -> None:
        return


@pytest.fixture
def gemini_stub(monkeypatch):
    """Serve Gemini's generateContent locally; set `hold` to stall responses."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _GeminiStubHandler)
    server.daemon_threads = True
    server.hold = False
    server.received = threading.Event()
    server.release = threading.Event()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    base_url = f"http://127.0.0.1:{server.server_port}"
    monkeypatch.setattr(gemini, "GEMINI_GENERATE_URL_TEMPLATE", base_url + "/models/{model}:generateContent")
    for name in ("NO_PROXY", "no_proxy"):
        monkeypatch.setenv(name, "127.0.0.1,localhost")

    yield server

    server.release.set()
    server.shutdown()
    server.server_close()
