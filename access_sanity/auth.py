"""OAuth2 client-credentials authentication against the platform's OIDC issuer.

The token endpoint is discovered from ``{issuer}/.well-known/openid-configuration``
and tokens are requested with AuthLib's requests-based ``OAuth2Session``.
The access token is cached and fetched again shortly before it expires.
"""

import logging
import time
from typing import Any, Dict, Optional

import requests
from authlib.integrations.requests_client import OAuth2Session
from authlib.common.errors import AuthlibBaseError

from .errors import AuthError
from .http_client import transport_kwargs

logger = logging.getLogger(__name__)

DISCOVERY_PATH = "/.well-known/openid-configuration"

# Fetch a new token this many seconds before the current one expires
_EXPIRY_LEEWAY = 60
_DEFAULT_EXPIRES_IN = 3600


def discover_token_endpoint(issuer: str, **transport) -> str:
    """Return the ``token_endpoint`` advertised by an OIDC issuer.

    Raises:
        AuthError: if the discovery document cannot be fetched or has no
            ``token_endpoint``.
    """
    url = issuer.rstrip("/") + DISCOVERY_PATH
    logger.debug("fetching OIDC discovery document %s", url)
    try:
        resp = requests.get(url, headers={"Accept": "application/json"},
                            **transport_kwargs(**transport))
    except requests.RequestException as exc:
        raise AuthError(f"error fetching OIDC discovery document {url}: {exc}") from exc

    if resp.status_code != 200:
        raise AuthError(f"OIDC discovery at {url} returned HTTP {resp.status_code}")
    try:
        document = resp.json()
    except ValueError as exc:
        raise AuthError(f"OIDC discovery at {url} did not return JSON") from exc

    endpoint = document.get("token_endpoint") if isinstance(document, dict) else None
    if not endpoint:
        raise AuthError(f"OIDC discovery document at {url} has no token_endpoint")
    return endpoint


class ClientCredentialsTokenSource:
    """Supplies bearer tokens obtained with the client-credentials grant.

    Args:
        client_id:      OAuth2 client id.
        client_secret:  OAuth2 client secret.
        issuer:         OIDC issuer URL used to discover the token endpoint.
        transport:      ``timeout``, ``tls_no_verify``, ``ca_bundle`` and ``proxy``
                        settings applied to discovery and token requests.
    """

    def __init__(self, client_id: str, client_secret: str, issuer: str, **transport):
        self.client_id = client_id
        self.client_secret = client_secret
        self.issuer = issuer
        self.transport = transport
        self.token_endpoint: Optional[str] = None
        self._cached_token: Optional[str] = None
        self._expires_at: float = 0.0

    @classmethod
    def from_config(cls, config) -> "ClientCredentialsTokenSource":
        return cls(
            config.client_id,
            config.client_secret,
            config.oidc_issuer,
            **config.transport_options(),
        )

    def token(self) -> str:
        """Return a valid access token, fetching a new one if needed."""
        now = time.time()
        if self._cached_token and now < self._expires_at - _EXPIRY_LEEWAY:
            return self._cached_token

        if self.token_endpoint is None:
            self.token_endpoint = discover_token_endpoint(self.issuer, **self.transport)

        token = self._fetch_token()
        access_token = token.get("access_token")
        if not access_token:
            raise AuthError(f"token response from {self.token_endpoint} has no access_token")

        expires_in = token.get("expires_in") or _DEFAULT_EXPIRES_IN
        self._cached_token = access_token
        self._expires_at = now + float(expires_in)
        logger.debug("obtained access token from %s (expires in %ss)",
                     self.token_endpoint, expires_in)
        return access_token

    def _fetch_token(self) -> Dict[str, Any]:
        kwargs = transport_kwargs(**self.transport)
        session = OAuth2Session(
            client_id=self.client_id,
            client_secret=self.client_secret,
            token_endpoint=self.token_endpoint,
        )
        session.verify = kwargs["verify"]
        if "proxies" in kwargs:
            session.proxies.update(kwargs["proxies"])
        try:
            with session:
                return session.fetch_token(
                    self.token_endpoint,
                    grant_type="client_credentials",
                    timeout=kwargs["timeout"],
                )
        except (AuthlibBaseError, requests.RequestException, ValueError) as exc:
            raise AuthError(f"error requesting token from {self.token_endpoint}: {exc}") from exc
