"""Exception types raised by access-sanity.

Everything derives from ``AccessSanityError`` so the CLI can turn any expected
failure into a one-line ``Error: ...`` message and exit code 1.
"""

from typing import Optional


class AccessSanityError(Exception):
    """Base class for all expected access-sanity failures."""


class ConfigError(AccessSanityError):
    """Required client configuration is missing or invalid."""


class AuthError(AccessSanityError):
    """OIDC discovery or the client-credentials token request failed."""


class SuiteFileError(AccessSanityError):
    """The YAML test file could not be read or has an invalid structure."""


class UserNotFoundError(AccessSanityError):
    """No directory user matched the requested email address."""

    def __init__(self, email: str):
        super().__init__(f'no user found with email "{email}"')
        self.email = email


class ConnectError(AccessSanityError):
    """An RPC returned a Connect error (or a non-JSON failure).

    Attributes:
        code:        Connect error code (e.g. ``not_found``, ``unauthenticated``).
        message:     Server-provided error message.
        http_status: HTTP status code of the failed response.
    """

    def __init__(self, code: str, message: str = "", http_status: Optional[int] = None):
        text = f"{code}: {message}" if message else code
        super().__init__(text)
        self.code = code
        self.message = message
        self.http_status = http_status
