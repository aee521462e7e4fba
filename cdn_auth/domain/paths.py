from __future__ import annotations

from urllib.parse import urlsplit

__all__ = [
    "DEFAULT_PATH",
    "signing_path",
    "url_host",
    "has_query",
    "absolutize",
    "extension",
    "has_allowed_extension",
    "parse_extensions",
    "parse_resource_suffixes",
    "split_resource_suffix",
]

DEFAULT_PATH = "/"


def signing_path(url: str | None) -> str:
    """Return the path component of `url`, or "/" when there is none.

    Query string, fragment, scheme and host are never part of the signed bytes.
    """
    if not url:
        return DEFAULT_PATH
    path = urlsplit(url).path
    return path or DEFAULT_PATH


def url_host(url: str) -> str | None:
    """Return the hostname of `url` (port stripped), or None for relative URLs."""
    return urlsplit(url).hostname


def has_query(url: str) -> bool:
    return bool(urlsplit(url).query)


def absolutize(url: str, host: str, scheme: str = "http") -> str:
    """Resolve a host-less URL against `host`.

    "/a.jpg" and "a.jpg" both become "<scheme>://<host>/a.jpg".
    """
    if url.startswith("/"):
        return f"{scheme}://{host}{url}"
    return f"{scheme}://{host}/{url.lstrip('/')}"


def extension(path: str) -> str:
    """Return the lowercased extension of the last path segment, without the dot."""
    name = path.rsplit("/", 1)[-1]
    _, dot, ext = name.rpartition(".")
    return ext.lower() if dot else ""


def has_allowed_extension(path: str, extensions: frozenset[str]) -> bool:
    ext = extension(path)
    return bool(ext) and ext in extensions


def parse_extensions(raw: str | None) -> frozenset[str]:
    """Parse a ';'-separated allowlist such as ".jpg;.PNG; .css".

    Entries are trimmed, empty ones dropped, the leading dot stripped and the
    result lowercased: {"jpg", "png", "css"}.
    """
    if not raw:
        return frozenset()
    out = set()
    for part in raw.split(";"):
        ext = part.strip().lstrip(".").lower()
        if ext:
            out.add(ext)
    return frozenset(out)


def parse_resource_suffixes(raw: str | None) -> tuple[str, ...]:
    """Parse newline-separated resource suffixes, forcing a leading "/".

    Order is preserved; the first matching suffix wins in split_resource_suffix.
    """
    if not raw:
        return ()
    suffixes: list[str] = []
    for line in raw.split("\n"):
        line = line.strip()
        if not line:
            continue
        if not line.startswith("/"):
            line = "/" + line
        suffixes.append(line)
    return tuple(suffixes)


def split_resource_suffix(path: str, suffixes: tuple[str, ...]) -> tuple[str, str]:
    """Split a configured suffix (e.g. an image-processing style) off `path`.

    Returns (base_path, suffix); suffix is "" when none matches.
    """
    for suffix in suffixes:
        if path.endswith(suffix) and len(path) > len(suffix):
            return path[: -len(suffix)], suffix
    return path, ""
