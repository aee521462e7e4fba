from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field

from ..logging_conf import get_logger

__all__ = [
    "SecretEntry",
    "DomainKeys",
    "iter_secret_entries",
    "parse_domain_keys",
    "lookup",
]

logger = get_logger("domain.keys")

DomainKeys = Mapping[str, str]

_EMPTY: DomainKeys = MappingProxyType({})


class SecretEntry(BaseModel):
    """One `domain:secret` line of the key configuration."""

    model_config = ConfigDict(frozen=True)

    domain: str = Field(..., min_length=1)
    secret: str


def iter_secret_entries(raw: str | None) -> Iterator[SecretEntry]:
    """Yield entries from newline-separated `domain:secret` text, in order.

    Lines are trimmed and empty ones skipped. Only the first ":" splits, so
    secrets may contain colons. Domains are lowercased, since hosts compare
    case-insensitively. Lines without ":" (or with an empty domain)
    are dropped with a warning that carries the line number, never the line itself.
    """
    if not raw:
        return
    for lineno, line in enumerate(raw.split("\n"), start=1):
        line = line.strip()
        if not line:
            continue
        domain, sep, secret = line.partition(":")
        domain = domain.strip().lower()
        if not sep or not domain:
            logger.warning("domain_keys.skip_line", extra={"event": "domain_keys_skip_line", "line_number": lineno})
            continue
        yield SecretEntry(domain=domain, secret=secret.strip())


def parse_domain_keys(raw: str | None) -> DomainKeys:
    """Build a read-only `domain -> secret` mapping; later duplicates win."""
    entries = {entry.domain: entry.secret for entry in iter_secret_entries(raw)}
    if not entries:
        return _EMPTY
    return MappingProxyType(entries)


def lookup(keys: DomainKeys, domain: str | None) -> str | None:
    """Return the secret for `domain`, or None if the domain is not protected."""
    if not domain:
        return None
    return keys.get(domain.lower())
