"""Thin HTTP abstraction for calling the platform's Connect RPC endpoints.

Every RPC is a unary Connect call with the JSON codec: a ``POST`` to
``{base_url}/{service}/{method}`` whose body is the proto3-JSON request
message.  Successful calls return the decoded response message; failures
raise ``ConnectError``.

Key behaviors:
- Automatic 429 Too Many Requests retry with Retry-After header support
- Bearer token authentication via a pluggable token source
- TLS options: skip verification, custom CA bundle
- Proxy support
- ``redact_auth()`` helper for safe logging of headers
"""

import logging
import time
from typing import Any, Dict, Optional

import requests

from .errors import ConnectError

logger = logging.getLogger(__name__)


# Retry policy for 429 Too Many Requests (RFC 6585)
_MAX_RETRIES = 3
_DEFAULT_RETRY_AFTER = 2  # seconds, used when Retry-After header is missing

CONNECT_PROTOCOL_VERSION = "1"

# Connect error codes for responses without a Connect error body
# (https://connectrpc.com/docs/protocol#http-to-error-code)
_HTTP_TO_CONNECT_CODE = {
    400: "internal",
    401: "unauthenticated",
    403: "permission_denied",
    404: "unimplemented",
    429: "unavailable",
    502: "unavailable",
    503: "unavailable",
    504: "unavailable",
}


def transport_kwargs(
    timeout: int = 30,
    tls_no_verify: bool = False,
    ca_bundle: Optional[str] = None,
    proxy: Optional[str] = None,
) -> Dict[str, Any]:
    """Build the ``requests`` keyword arguments for timeout, TLS and proxy settings."""
    kwargs: Dict[str, Any] = {"timeout": timeout}
    if ca_bundle:
        kwargs["verify"] = ca_bundle
    elif tls_no_verify:
        kwargs["verify"] = False
    else:
        kwargs["verify"] = True

    if proxy:
        kwargs["proxies"] = {"http": proxy, "https": proxy}
    return kwargs


class ConnectClient:
    """HTTP client for Connect unary RPCs using the JSON codec.

    Args:
        base_url:       Root URL of the service (e.g. ``https://api.example.com``)
        token_source:   Object with a ``token()`` method returning a bearer token,
                        or None to send unauthenticated requests
        tls_no_verify:  Skip TLS certificate verification (for self-signed certs)
        timeout:        Per-request timeout in seconds
        proxy:          HTTP/HTTPS proxy URL
        ca_bundle:      Path to custom CA certificate bundle file
    """

    def __init__(
        self,
        base_url: str,
        token_source=None,
        tls_no_verify: bool = False,
        timeout: int = 30,
        proxy: Optional[str] = None,
        ca_bundle: Optional[str] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token_source = token_source
        self.tls_no_verify = tls_no_verify
        self.timeout = timeout
        self.proxy = proxy
        self.ca_bundle = ca_bundle

    # -- Public API ----------------------------------------------------------

    def call(self, service: str, method: str, message: Dict[str, Any]) -> Dict[str, Any]:
        """Invoke ``service/method`` with ``message`` and return the response message.

        Raises:
            ConnectError: on a Connect error response, a non-JSON failure, a
                successful response whose body is not a JSON object (code
                ``unknown``), or a transport error (code ``unavailable``).
        """
        url = f"{self.base_url}/{service}/{method}"
        headers = self._build_headers()
        logger.debug("POST %s headers=%s", url, redact_auth(headers))

        resp = self._request(url, headers, message)
        if resp.status_code != 200:
            raise _connect_error(resp)
        if not resp.content:
            return {}
        try:
            body = resp.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            content_type = resp.headers.get("Content-Type", "")
            raise ConnectError(
                "unknown",
                f"invalid JSON response from {method} (content-type {content_type!r})",
                http_status=resp.status_code,
            )
        return body

    # -- Internals -----------------------------------------------------------

    def _build_headers(self) -> Dict[str, str]:
        """Build the default Connect request headers with auth credentials."""
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Connect-Protocol-Version": CONNECT_PROTOCOL_VERSION,
        }
        if self.token_source is not None:
            headers["Authorization"] = f"Bearer {self.token_source.token()}"
        return headers

    def _request(
        self,
        url: str,
        headers: Dict[str, str],
        payload: Dict[str, Any],
    ) -> requests.Response:
        """Execute an HTTP POST with automatic 429 retry.

        Retries up to ``_MAX_RETRIES`` times when the server responds with
        429 Too Many Requests, sleeping for the duration specified by the
        ``Retry-After`` header (or ``_DEFAULT_RETRY_AFTER`` if absent).
        """
        kwargs = transport_kwargs(
            timeout=self.timeout,
            tls_no_verify=self.tls_no_verify,
            ca_bundle=self.ca_bundle,
            proxy=self.proxy,
        )

        for attempt in range(_MAX_RETRIES + 1):
            try:
                resp = requests.post(url, headers=headers, json=payload, **kwargs)
            except requests.RequestException as exc:
                raise ConnectError("unavailable", str(exc)) from exc

            if resp.status_code == 429 and attempt < _MAX_RETRIES:
                retry_after = _parse_retry_after(resp.headers.get("Retry-After"))
                logger.warning(
                    "429 Too Many Requests from %s, retrying in %.1fs (attempt %d/%d)",
                    url, retry_after, attempt + 1, _MAX_RETRIES,
                )
                time.sleep(retry_after)
                continue

            return resp

        return resp  # Return last response if all retries exhausted


def _connect_error(resp: requests.Response) -> ConnectError:
    """Convert a failed HTTP response into a ``ConnectError``.

    Uses the Connect error body (``{"code": ..., "message": ...}``) when the
    server sent one, otherwise derives the code from the HTTP status.
    """
    code = _HTTP_TO_CONNECT_CODE.get(resp.status_code, "unknown")
    message = resp.text.strip()
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("code"):
        code = body["code"]
        message = body.get("message", "")
    return ConnectError(code, message, http_status=resp.status_code)


def _parse_retry_after(value: Optional[str]) -> float:
    """Parse a Retry-After header value into seconds to wait.

    Handles integer-second values per RFC 7231 Section 7.1.3.
    Returns ``_DEFAULT_RETRY_AFTER`` if the header is missing or unparseable.
    Always returns at least 1.0 second to avoid busy-loop retries.
    """
    if not value:
        return _DEFAULT_RETRY_AFTER
    try:
        return max(1.0, float(value))
    except ValueError:
        return _DEFAULT_RETRY_AFTER


def redact_auth(headers: Dict[str, str]) -> Dict[str, str]:
    """Return a copy of headers with Authorization values replaced by ``***REDACTED***``.

    Use this when including headers in logs or error messages to avoid
    leaking bearer tokens.
    """
    redacted = dict(headers)
    for key in list(redacted.keys()):
        if key.lower() == "authorization":
            redacted[key] = "***REDACTED***"
    return redacted
