from __future__ import annotations

import os
from collections.abc import Callable, Mapping
from typing import Literal
from urllib.parse import parse_qsl, urlsplit, urlunsplit

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..domain import tokens
from ..domain.keys import DomainKeys, lookup, parse_domain_keys
from ..domain.paths import (
    absolutize,
    has_allowed_extension,
    parse_extensions,
    parse_resource_suffixes,
    signing_path,
    split_resource_suffix,
    url_host,
)
from ..errors import ConfigurationError
from ..logging_conf import get_logger

__all__ = [
    "DEFAULT_DURATION",
    "DEFAULT_EXTENSIONS",
    "AuthSettings",
    "load_settings_from_env",
    "resolve_secret",
    "issue_token",
    "verify_token",
    "is_signed",
    "needs_auth",
    "sign_url",
    "make_url_rewriter",
]

logger = get_logger("service.auth")

DEFAULT_DURATION = 1800
DEFAULT_EXTENSIONS = ".jpg;.jpeg;.png;.gif;.webp;.css;.js;.mp4;.mp3;.pdf;.zip"


class AuthSettings(BaseModel):
    """Raw signing configuration, as an admin would enter it.

    Text fields keep their on-disk shape; the parsed views are derived on
    demand so a settings object can be built straight from stored options.
    """

    model_config = ConfigDict(frozen=True)

    domain_keys: str = ""  # newline-separated domain:secret pairs
    duration: int = Field(DEFAULT_DURATION, ge=0)  # token lifetime in seconds
    allowed_extensions: str = DEFAULT_EXTENSIONS  # ";"-separated
    auth_param_name: Literal["auth_key", "sign"] = tokens.DEFAULT_PARAM_NAME
    resource_suffixes: str = ""  # newline-separated, e.g. "/thumb"

    def key_map(self) -> DomainKeys:
        return parse_domain_keys(self.domain_keys)

    def extensions(self) -> frozenset[str]:
        return parse_extensions(self.allowed_extensions)

    def suffixes(self) -> tuple[str, ...]:
        return parse_resource_suffixes(self.resource_suffixes)


_ENV_FIELDS = {
    "CDN_AUTH_DOMAIN_KEYS": "domain_keys",
    "CDN_AUTH_DURATION": "duration",
    "CDN_AUTH_ALLOWED_EXTENSIONS": "allowed_extensions",
    "CDN_AUTH_PARAM_NAME": "auth_param_name",
    "CDN_AUTH_RESOURCE_SUFFIXES": "resource_suffixes",
}


def load_settings_from_env(environ: Mapping[str, str] | None = None) -> AuthSettings:
    """Build AuthSettings from CDN_AUTH_* variables; unset ones keep defaults.

    Raises:
        ConfigurationError: if a variable holds an invalid value.
    """
    env = os.environ if environ is None else environ
    values = {field: env[var] for var, field in _ENV_FIELDS.items() if var in env}
    try:
        settings = AuthSettings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid CDN_AUTH_* configuration: {e}") from e

    logger.info(
        "settings.loaded",
        extra={
            "event": "settings_loaded",
            "domains": len(settings.key_map()),
            "duration": settings.duration,
            "auth_param_name": settings.auth_param_name,
        },
    )
    return settings


# ------------------------
# Collaborator API
# ------------------------

def resolve_secret(domain: str | None, domain_keys: DomainKeys) -> str | None:
    """Return the signing secret for `domain`, or None if it is not protected."""
    return lookup(domain_keys, domain)


def issue_token(
    path: str | None,
    secret: str,
    duration_seconds: int,
    param_name: str = tokens.DEFAULT_PARAM_NAME,
    *,
    now: int | None = None,
) -> str:
    """Return `param_name=token` for `path`, ready to append to a query string."""
    token = tokens.sign(path, secret, duration_seconds, now=now)
    return tokens.format_query_param(token, param_name)


def verify_token(path: str | None, token: str, secret: str, *, now: int | None = None) -> bool:
    return tokens.verify(path, token, secret, now=now)


# ------------------------
# URL signing use-cases
# ------------------------

def is_signed(url: str, param_name: str) -> bool:
    """True if `url` already carries the auth parameter."""
    query = urlsplit(url).query
    return any(name == param_name for name, _ in parse_qsl(query, keep_blank_values=True))


def _is_protected_type(url: str, settings: AuthSettings) -> bool:
    base_path, _ = split_resource_suffix(signing_path(url), settings.suffixes())
    return has_allowed_extension(base_path, settings.extensions())


def needs_auth(url: str, settings: AuthSettings, domain_keys: DomainKeys | None = None) -> bool:
    """Decide whether an absolute resource URL should get a token.

    The path must end in an allowed extension, the URL must not be signed yet
    and its host must have a configured secret.
    """
    keys = settings.key_map() if domain_keys is None else domain_keys
    if not _is_protected_type(url, settings):
        return False
    if is_signed(url, settings.auth_param_name):
        return False
    return resolve_secret(url_host(url), keys) is not None


def _with_token(url: str, secret: str, settings: AuthSettings, now: int | None) -> str:
    # A configured suffix is not part of the signed path; it goes back on
    # after the query string.
    parts = urlsplit(url)
    base_path, suffix = split_resource_suffix(signing_path(url), settings.suffixes())
    base_url = urlunsplit(parts._replace(path=base_path, fragment=""))

    token = tokens.sign(base_path, secret, settings.duration, now=now)
    signed = tokens.append_token(base_url, token, settings.auth_param_name) + suffix
    if parts.fragment:
        signed += "#" + parts.fragment
    return signed


def sign_url(
    url: str,
    settings: AuthSettings,
    *,
    domain_keys: DomainKeys | None = None,
    current_host: str | None = None,
    scheme: str = "http",
    now: int | None = None,
) -> str:
    """Return `url` with a token appended, or `url` unchanged if it is not protected.

    Host-less URLs are resolved against `current_host` first; when one gets
    signed, the absolute form is returned.
    """
    keys = settings.key_map() if domain_keys is None else domain_keys

    if not _is_protected_type(url, settings):
        return url
    if is_signed(url, settings.auth_param_name):
        return url

    target = url
    if url_host(url) is None:
        if not current_host:
            return url
        target = absolutize(url, current_host, scheme)

    host = url_host(target)
    secret = resolve_secret(host, keys)
    if secret is None:
        logger.debug("url.skip", extra={"event": "url_skip", "reason": "unknown_domain", "host": host})
        return url

    signed = _with_token(target, secret, settings, now)
    logger.debug("url.signed", extra={"event": "url_signed", "host": host, "path": signing_path(target)})
    return signed


def make_url_rewriter(
    settings: AuthSettings,
    *,
    current_host: str | None = None,
    scheme: str = "http",
) -> Callable[[str], str]:
    """Return a `matched_url -> replacement_url` function for page rewriting.

    Domain keys are parsed once here and reused for every URL the returned
    function sees, so build one rewriter per request.
    """
    keys = settings.key_map()

    def rewrite(url: str) -> str:
        return sign_url(url, settings, domain_keys=keys, current_host=current_host, scheme=scheme)

    return rewrite
