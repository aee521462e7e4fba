from __future__ import annotations

import hashlib
import hmac
import re
import secrets
import string
import time
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field

from ..errors import ConfigurationError, MalformedTokenError
from ..logging_conf import get_logger
from .paths import DEFAULT_PATH, has_query

__all__ = [
    "NONCE_ALPHABET",
    "NONCE_LENGTH",
    "DEFAULT_UID",
    "DEFAULT_PARAM_NAME",
    "AUTH_PARAM_NAMES",
    "AuthToken",
    "generate_nonce",
    "signing_string",
    "compute_signature",
    "issue",
    "sign",
    "parse_token",
    "verify",
    "check_param_name",
    "format_query_param",
    "append_token",
]

logger = get_logger("domain.tokens")

NONCE_ALPHABET = string.digits + string.ascii_lowercase + string.ascii_uppercase
NONCE_LENGTH = 32
# Reserved for per-user scoping; the CDN contract currently always expects 0.
DEFAULT_UID = 0

DEFAULT_PARAM_NAME = "auth_key"
AUTH_PARAM_NAMES = ("auth_key", "sign")

_SEPARATOR = "-"
_DECIMAL_RE = re.compile(r"0|[1-9][0-9]*")


class AuthToken(BaseModel):
    """A parsed or freshly issued `expiry-rand-uid-signature` token."""

    model_config = ConfigDict(frozen=True)

    expiry: int  # unix seconds after which the token is dead
    rand: str  # per-token nonce
    uid: int = Field(DEFAULT_UID, ge=0)
    signature: str  # lowercase md5 hex of the signing string

    def serialize(self) -> str:
        return _SEPARATOR.join((str(self.expiry), self.rand, str(self.uid), self.signature))

    def __str__(self) -> str:
        return self.serialize()


def _now() -> int:
    return int(time.time())


def generate_nonce(length: int = NONCE_LENGTH) -> str:
    """Draw `length` characters uniformly from [0-9a-zA-Z].

    `secrets` is backed by the OS generator, so concurrent callers never share
    mutable RNG state.
    """
    return "".join(secrets.choice(NONCE_ALPHABET) for _ in range(length))


def signing_string(path: str | None, expiry: int, rand: str, uid: int, secret: str) -> str:
    """Return the exact bytes (as text) the CDN hashes: path-expiry-rand-uid-secret."""
    return _SEPARATOR.join((path or DEFAULT_PATH, str(expiry), rand, str(uid), secret))


def compute_signature(path: str | None, expiry: int, rand: str, uid: int, secret: str) -> str:
    data = signing_string(path, expiry, rand, uid, secret).encode("utf-8", "surrogatepass")
    return hashlib.md5(data).hexdigest()


def issue(
    path: str | None,
    secret: str,
    duration_seconds: int,
    *,
    now: int | None = None,
    rand: str | None = None,
    uid: int = DEFAULT_UID,
) -> AuthToken:
    """Build a token for `path` that stays valid for `duration_seconds`.

    `now` and `rand` exist so callers (and tests) can pin the clock and nonce;
    production code leaves both unset.
    """
    expiry = (_now() if now is None else now) + duration_seconds
    nonce = generate_nonce() if rand is None else rand
    signature = compute_signature(path, expiry, nonce, uid, secret)
    return AuthToken(expiry=expiry, rand=nonce, uid=uid, signature=signature)


def sign(
    path: str | None,
    secret: str,
    duration_seconds: int,
    *,
    now: int | None = None,
    rand: str | None = None,
) -> str:
    """Return the serialized token string for `path`."""
    return issue(path, secret, duration_seconds, now=now, rand=rand).serialize()


def parse_token(token: str) -> AuthToken:
    """Parse `expiry-rand-uid-signature` into an AuthToken.

    Everything after the third dash is the signature, so a signature that
    itself contains dashes survives the split.

    Raises:
        MalformedTokenError: fewer than four fields, or non-numeric expiry/uid.
    """
    if not isinstance(token, str):
        raise MalformedTokenError("Token must be a string")

    parts = token.split(_SEPARATOR)
    if len(parts) < 4:
        raise MalformedTokenError(f"Token has {len(parts)} fields, expected at least 4")

    expiry, rand, uid = parts[0], parts[1], parts[2]
    signature = _SEPARATOR.join(parts[3:])

    if not _DECIMAL_RE.fullmatch(expiry):
        raise MalformedTokenError("Token expiry is not a decimal timestamp")
    if not _DECIMAL_RE.fullmatch(uid):
        raise MalformedTokenError("Token uid is not a decimal integer")

    return AuthToken(expiry=int(expiry), rand=rand, uid=int(uid), signature=signature)


def verify(path: str | None, token: str, secret: str, *, now: int | None = None) -> bool:
    """Return True if `token` is unexpired and signed for `path` with `secret`.

    Never raises: malformed, expired and forged tokens all yield False. The
    expiry instant itself is still accepted.
    """
    try:
        parsed = parse_token(token)
    except MalformedTokenError as e:
        logger.debug("token.rejected", extra={"event": "token_rejected", "reason": "malformed", "detail": str(e)})
        return False

    current = _now() if now is None else now
    if current > parsed.expiry:
        logger.debug(
            "token.rejected",
            extra={"event": "token_rejected", "reason": "expired", "expiry": parsed.expiry, "now": current},
        )
        return False

    expected = compute_signature(path, parsed.expiry, parsed.rand, parsed.uid, secret)
    if not hmac.compare_digest(expected.encode("ascii"), parsed.signature.encode("utf-8", "surrogatepass")):
        logger.debug("token.rejected", extra={"event": "token_rejected", "reason": "signature_mismatch"})
        return False

    return True


def check_param_name(param_name: str) -> str:
    if param_name not in AUTH_PARAM_NAMES:
        raise ConfigurationError(
            f"Unsupported auth parameter name {param_name!r}; expected one of {', '.join(AUTH_PARAM_NAMES)}"
        )
    return param_name


def format_query_param(token: str | AuthToken, param_name: str = DEFAULT_PARAM_NAME) -> str:
    """Render `name=value`, URL-encoded, ready to join onto a query string."""
    return urlencode({check_param_name(param_name): str(token)})


def append_token(url: str, token: str | AuthToken, param_name: str = DEFAULT_PARAM_NAME) -> str:
    """Append the token parameter with "&" if `url` has a query, else "?"."""
    separator = "&" if has_query(url) else "?"
    return f"{url}{separator}{format_query_param(token, param_name)}"
