"""Signed, expiring access tokens for CDN-served resource URLs.

The public surface is the collaborator API (resolve_secret, issue_token,
verify_token) plus the URL-signing helpers in `cdn_auth.service.auth_service`.
"""
from importlib.metadata import PackageNotFoundError, version

from .domain.keys import SecretEntry, lookup, parse_domain_keys
from .domain.paths import parse_extensions
from .domain.tokens import AuthToken, parse_token, sign, verify
from .errors import CdnAuthError, ConfigurationError, MalformedTokenError
from .service.auth_service import (
    AuthSettings,
    issue_token,
    load_settings_from_env,
    make_url_rewriter,
    resolve_secret,
    sign_url,
    verify_token,
)

try:
    __version__ = version("cdn-url-auth")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

__all__ = [
    "AuthSettings",
    "AuthToken",
    "CdnAuthError",
    "ConfigurationError",
    "MalformedTokenError",
    "SecretEntry",
    "issue_token",
    "load_settings_from_env",
    "lookup",
    "make_url_rewriter",
    "parse_domain_keys",
    "parse_extensions",
    "parse_token",
    "resolve_secret",
    "sign",
    "sign_url",
    "verify",
    "verify_token",
]
