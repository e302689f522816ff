"""Adapter base class, HTTP transport and shared parsing helpers.

Architectural role:
    Every provider adapter subclasses `ProviderAdapter` and implements
    `_synthesize`, which builds the upstream request, performs it through the
    supplied `UpstreamTransport` and returns the result string. The base
    `generate` turns the adapter's typed failures into an explicit
    `CanonicalResponse` so callers never need to catch provider errors.

Transport:
    `UpstreamTransport` wraps one `requests.Session` and applies the configured
    timeout to every call. Connections are tracked while checked out, and
    closing the transport shuts their sockets down, which is how the HTTP layer
    aborts an in-flight call when its client disconnects.

Logging:
    `QueryCredentialFilter` is attached to the urllib3 loggers that print
    request URLs, so query-string keys never reach DEBUG output.

Failure handling model:
    - Adapters raise `UpstreamError` for provider error envelopes and
      malformed payloads.
    - `requests` transport errors are converted the same way here.
    - Anything else propagates to the dispatch wrapper in `gateway.core.engine`.
"""

from __future__ import annotations

import base64
import functools
import json
import logging
import re
import socket
import threading
from typing import Any, Callable

import requests
from requests.adapters import HTTPAdapter
from urllib3.connectionpool import HTTPConnectionPool, HTTPSConnectionPool

from gateway.core.contracts import (
    CanonicalResponse,
    ErrorKind,
    ProviderId,
    RequestKind,
    SynthesisRequest,
)
from gateway.providers.provider_config import DEFAULT_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*\})\s*```", re.DOTALL)
_BARE_JSON = re.compile(r"\{.*\}", re.DOTALL)

REDACTED = "[redacted]"

# Loggers that write full request URLs at DEBUG.
URL_LOGGING_LOGGERS = ("urllib3.connectionpool", "urllib3.util.retry")
_QUERY_CREDENTIAL = re.compile(r"([?&](?:key|api_key|apikey|access_token|token)=)[^&\s\"']+", re.IGNORECASE)


class UpstreamError(Exception):
    """Provider-reported or provider-caused failure detected by an adapter."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class QueryCredentialFilter(logging.Filter):
    """Masks credential-bearing query parameters in urllib3 log records.

    urllib3 logs every request line at DEBUG, including the query string,
    and Gemini takes its key as `?key=`.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = _QUERY_CREDENTIAL.sub(rf"\1{REDACTED}", message)
        if masked != message:
            record.msg = masked
            record.args = ()
        return True


_query_credential_filter = QueryCredentialFilter()
for _name in URL_LOGGING_LOGGERS:
    logging.getLogger(_name).addFilter(_query_credential_filter)


class _TrackingPoolMixin:
    """Reports connections to the owning transport while they are checked out."""

    def __init__(self, *args: Any, transport: "UpstreamTransport", **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._transport = transport

    def _get_conn(self, timeout: float | None = None) -> Any:
        conn = super()._get_conn(timeout)
        self._transport._checked_out(conn)
        return conn

    def _put_conn(self, conn: Any) -> None:
        self._transport._returned(conn)
        super()._put_conn(conn)


class _TrackingHTTPConnectionPool(_TrackingPoolMixin, HTTPConnectionPool):
    pass


class _TrackingHTTPSConnectionPool(_TrackingPoolMixin, HTTPSConnectionPool):
    pass


class _TrackingHTTPAdapter(HTTPAdapter):
    def __init__(self, transport: "UpstreamTransport", **kwargs: Any) -> None:
        self._transport = transport
        super().__init__(**kwargs)

    def init_poolmanager(self, *args: Any, **kwargs: Any) -> None:
        super().init_poolmanager(*args, **kwargs)
        self.poolmanager.pool_classes_by_scheme = {
            "http": functools.partial(_TrackingHTTPConnectionPool, transport=self._transport),
            "https": functools.partial(_TrackingHTTPSConnectionPool, transport=self._transport),
        }


class UpstreamTransport:
    """Timeout-bounded HTTP access for adapters.

    Connections are tracked while a request holds them, so `close()` from
    another thread shuts their sockets down and the blocked call fails
    immediately instead of running until the upstream answers.
    """

    def __init__(self, session: requests.Session | None = None, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout
        self._lock = threading.Lock()
        self._live: set = set()
        self._closed = False
        adapter = _TrackingHTTPAdapter(self)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    @property
    def closed(self) -> bool:
        return self._closed

    def post(self, url: str, **kwargs: Any) -> requests.Response:
        self._ensure_open()
        kwargs.setdefault("timeout", self.timeout)
        return self.session.post(url, **kwargs)

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        self._ensure_open()
        kwargs.setdefault("timeout", self.timeout)
        return self.session.get(url, **kwargs)

    def close(self) -> None:
        """Abort in-flight calls and release pooled connections."""
        with self._lock:
            self._closed = True
            live = list(self._live)
            self._live.clear()
        for conn in live:
            _shutdown(getattr(conn, "sock", None))
        self.session.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise requests.exceptions.ConnectionError("transport was closed")

    def _checked_out(self, conn: Any) -> None:
        with self._lock:
            self._live.add(conn)

    def _returned(self, conn: Any) -> None:
        with self._lock:
            self._live.discard(conn)

    def __enter__(self) -> "UpstreamTransport":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def _shutdown(sock: socket.socket | None) -> None:
    if sock is None:
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError as err:
        # Already closed by the peer or by urllib3.
        logger.debug("Socket shutdown skipped: %s", err)


def dig(data: Any, *path: str | int) -> Any:
    """Walk nested dicts/lists and return `None` at the first missing step."""
    current = data
    for step in path:
        if isinstance(step, int):
            if not isinstance(current, list) or not -len(current) <= step < len(current):
                return None
        elif not isinstance(current, dict) or step not in current:
            return None
        current = current[step]
    return current


def to_data_uri(raw: bytes, mime_type: str = "image/png") -> str:
    """Encode binary image content as a self-describing data URI."""
    encoded = base64.b64encode(raw).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def base64_data_uri(encoded: str, mime_type: str = "image/png") -> str:
    """Wrap an already base64-encoded payload in a data URI."""
    return f"data:{mime_type};base64,{encoded}"


def extract_json_object(text: str) -> str:
    """Return the JSON object embedded in model output, or the text unchanged.

    Handles fenced ```json blocks and objects surrounded by prose. The
    candidate is only returned when it actually parses as a JSON object.
    """
    stripped = text.strip()
    for pattern in (_FENCED_JSON, _BARE_JSON):
        match = pattern.search(stripped)
        if not match:
            continue
        candidate = match.group(1) if match.groups() else match.group(0)
        try:
            parsed = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return candidate.strip()
    return stripped


def describe_request_error(err: requests.exceptions.RequestException) -> str:
    """Build a short description of a transport-level failure."""
    if isinstance(err, requests.exceptions.Timeout):
        return "upstream request timed out"
    if isinstance(err, requests.exceptions.ConnectionError):
        return "could not connect to upstream"
    return err.__class__.__name__


class ProviderAdapter:
    """Base class for one upstream provider protocol.

    Subclasses set `provider` and implement `_synthesize`.
    """

    provider: ProviderId

    def generate(
        self,
        credential: str,
        request: SynthesisRequest,
        transport: UpstreamTransport,
    ) -> CanonicalResponse:
        """Run one request against the upstream and return a canonical outcome."""
        try:
            result = self._synthesize(credential, request, transport)
        except UpstreamError as err:
            return self._failure(str(err), err.status_code)
        except requests.exceptions.RequestException as err:
            return self._failure(describe_request_error(err), None)
        return CanonicalResponse.success(result, source=self.provider.value)

    def _synthesize(
        self,
        credential: str,
        request: SynthesisRequest,
        transport: UpstreamTransport,
    ) -> str:
        raise NotImplementedError

    def _failure(self, reason: str, upstream_status: int | None) -> CanonicalResponse:
        details = f"upstream_status={upstream_status}" if upstream_status else None
        # Rejected credentials surface as 401.
        status = 401 if upstream_status in (401, 403) else None
        return CanonicalResponse.failure(
            ErrorKind.UPSTREAM_FAILURE,
            f"{self.provider.value} request failed: {reason}",
            details=details,
            status=status,
        )

    def _read_json(self, response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            raise UpstreamError(
                f"malformed JSON response (HTTP {response.status_code})",
                response.status_code,
            ) from None

    def _ensure_ok(
        self,
        response: requests.Response,
        message_of: Callable[[Any], Any],
    ) -> None:
        """Raise `UpstreamError` when the response carries an HTTP error status.

        Args:
            response: Raw upstream response.
            message_of: Provider-specific extractor applied to the decoded
                error body; falls back to the HTTP reason phrase.
        """
        if response.status_code < 400:
            return
        message = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if body is not None:
            message = message_of(body)
        if not message:
            message = response.reason or "error response"
        logger.debug("%s upstream error status=%s", self.provider.value, response.status_code)
        raise UpstreamError(str(message), response.status_code)

    @staticmethod
    def _text_result(text: Any, request: SynthesisRequest) -> str:
        if not isinstance(text, str) or not text.strip():
            raise UpstreamError("response did not contain any text content")
        if request.kind is RequestKind.ROADMAP:
            return extract_json_object(text)
        return text.strip()
