from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from cdn_auth.domain.keys import SecretEntry, iter_secret_entries, lookup, parse_domain_keys


def test_parse_two_domains():
    keys = parse_domain_keys("cdn.example.com:key1\nstatic.example.com:key2")
    assert dict(keys) == {"cdn.example.com": "key1", "static.example.com": "key2"}


def test_line_without_colon_is_dropped(caplog):
    raw = "cdn.example.com:key1\nbadline\nstatic.example.com:key2"
    with caplog.at_level(logging.WARNING, logger="cdn_auth.domain.keys"):
        keys = parse_domain_keys(raw)

    assert dict(keys) == {"cdn.example.com": "key1", "static.example.com": "key2"}
    assert [r.line_number for r in caplog.records if r.name == "cdn_auth.domain.keys"] == [2]
    assert all("badline" not in r.getMessage() for r in caplog.records)


def test_later_duplicate_overrides():
    keys = parse_domain_keys("cdn.example.com:key1\nstatic.example.com:key2\ncdn.example.com:key3")
    assert keys["cdn.example.com"] == "key3"
    assert keys["static.example.com"] == "key2"


def test_whitespace_blank_lines_and_crlf():
    raw = "\n  cdn.example.com : key1  \r\n\n\t\nstatic.example.com:key2\r\n"
    assert dict(parse_domain_keys(raw)) == {"cdn.example.com": "key1", "static.example.com": "key2"}


def test_only_first_colon_splits():
    keys = parse_domain_keys("cdn.example.com:abc:def")
    assert keys["cdn.example.com"] == "abc:def"


def test_empty_secret_is_kept_and_empty_domain_dropped():
    keys = parse_domain_keys("cdn.example.com:\n:orphan")
    assert dict(keys) == {"cdn.example.com": ""}


@pytest.mark.parametrize("raw", [None, "", "   \n\n  "])
def test_empty_configuration(raw):
    assert dict(parse_domain_keys(raw)) == {}


def test_mapping_is_read_only():
    keys = parse_domain_keys("cdn.example.com:key1")
    with pytest.raises(TypeError):
        keys["cdn.example.com"] = "other"  # type: ignore[index]


def test_entries_preserve_order():
    entries = list(iter_secret_entries("a.com:1\nb.com:2\na.com:3"))
    assert entries == [
        SecretEntry(domain="a.com", secret="1"),
        SecretEntry(domain="b.com", secret="2"),
        SecretEntry(domain="a.com", secret="3"),
    ]


def test_secret_entry_is_frozen():
    entry = SecretEntry(domain="a.com", secret="1")
    with pytest.raises(ValidationError):
        entry.secret = "2"  # type: ignore[misc]


def test_domains_match_case_insensitively():
    keys = parse_domain_keys("CDN.Example.com:key1")
    assert dict(keys) == {"cdn.example.com": "key1"}
    assert lookup(keys, "cdn.example.com") == "key1"
    assert lookup(keys, "Cdn.EXAMPLE.com") == "key1"


def test_lookup():
    keys = parse_domain_keys("cdn.example.com:key1")
    assert lookup(keys, "cdn.example.com") == "key1"
    assert lookup(keys, "other.example.com") is None
    assert lookup(keys, None) is None
    assert lookup(keys, "") is None
