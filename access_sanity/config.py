"""Client configuration loaded from the environment.

Values come from process environment variables, optionally seeded from a
``.env`` file in the working directory (variables already set in the
environment take precedence over the file).
"""

import os
from typing import Dict, List, Mapping, Optional

from dotenv import find_dotenv, load_dotenv

from .errors import ConfigError


ENV_CLIENT_ID = "CF_OIDC_CLIENT_ID"
ENV_CLIENT_SECRET = "CF_OIDC_CLIENT_SECRET"
ENV_ISSUER = "CF_OIDC_ISSUER"
ENV_API_URL = "CF_API_URL"
ENV_ACCESS_URL = "CF_ACCESS_URL"
ENV_LOG_LEVEL = "ACCESS_SANITY_LOG_LEVEL"

_REQUIRED = (ENV_CLIENT_ID, ENV_CLIENT_SECRET, ENV_ISSUER, ENV_API_URL)


class ClientConfig:
    """Connection settings shared by the directory and access clients.

    Args:
        client_id:      OAuth2 client id used for the client-credentials grant.
        client_secret:  OAuth2 client secret.
        oidc_issuer:    OIDC issuer URL; the token endpoint is discovered from it.
        api_url:        Base URL of the directory service.
        access_url:     Base URL of the access service (defaults to ``api_url``).
        timeout:        Per-request timeout in seconds.
        tls_no_verify:  Skip TLS certificate verification.
        ca_bundle:      Path to a custom CA bundle file.
        proxy:          HTTP/HTTPS proxy URL.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        oidc_issuer: str,
        api_url: str,
        access_url: Optional[str] = None,
        timeout: int = 30,
        tls_no_verify: bool = False,
        ca_bundle: Optional[str] = None,
        proxy: Optional[str] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.oidc_issuer = oidc_issuer.rstrip("/")
        self.api_url = api_url.rstrip("/")
        self.access_url = (access_url or api_url).rstrip("/")
        self.timeout = timeout
        self.tls_no_verify = tls_no_verify
        self.ca_bundle = ca_bundle
        self.proxy = proxy

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        dotenv: bool = True,
        **overrides,
    ) -> "ClientConfig":
        """Build a config from ``CF_*`` environment variables.

        Raises:
            ConfigError: if any required variable is missing or empty.  The
                message lists every missing variable, not just the first.
        """
        if environ is None:
            if dotenv:
                load_dotenv(find_dotenv(usecwd=True))
            environ = os.environ

        missing: List[str] = [name for name in _REQUIRED if not environ.get(name)]
        if missing:
            raise ConfigError(
                "missing required environment variable(s): " + ", ".join(missing)
            )

        return cls(
            client_id=environ[ENV_CLIENT_ID],
            client_secret=environ[ENV_CLIENT_SECRET],
            oidc_issuer=environ[ENV_ISSUER],
            api_url=environ[ENV_API_URL],
            access_url=environ.get(ENV_ACCESS_URL) or None,
            **overrides,
        )

    def transport_options(self) -> Dict[str, object]:
        """Keyword arguments shared by every HTTP client built from this config."""
        return {
            "timeout": self.timeout,
            "tls_no_verify": self.tls_no_verify,
            "ca_bundle": self.ca_bundle,
            "proxy": self.proxy,
        }

    def __repr__(self):
        return (
            f"ClientConfig(client_id={self.client_id!r}, client_secret='***REDACTED***', "
            f"oidc_issuer={self.oidc_issuer!r}, api_url={self.api_url!r}, "
            f"access_url={self.access_url!r})"
        )
