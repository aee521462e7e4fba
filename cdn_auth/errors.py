from __future__ import annotations

__all__ = [
    "CdnAuthError",
    "MalformedTokenError",
    "ConfigurationError",
]


class CdnAuthError(ValueError):
    """Base class for errors raised by the auth library.

    The `code` attribute is a stable machine code callers can map to responses.
    """

    code: str = "cdn_auth_error"


class MalformedTokenError(CdnAuthError):
    """Token string does not have the `expiry-rand-uid-signature` shape."""

    code = "malformed_token"


class ConfigurationError(CdnAuthError):
    code = "invalid_configuration"
