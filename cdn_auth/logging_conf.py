"""Logging configuration for the auth library.

Emits one JSON object per line so signing/verification events can be shipped
straight to a log pipeline. setup_logging() is idempotent.
"""
from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime
from logging import Handler, LogRecord
from typing import Any

_DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Attributes every LogRecord carries; anything else came in through `extra`.
_RESERVED = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
    }
)


def _structured_fields(record: LogRecord) -> dict[str, Any]:
    """Fields a caller attached through `extra=`."""
    return {k: v for k, v in vars(record).items() if k not in _RESERVED and not k.startswith("_")}


class JsonFormatter(logging.Formatter):
    """Render a record as a single JSON line.

    `ts` is the record's creation time in UTC. A dict message is spread into
    the line instead of landing under `message`. Structured fields never
    replace ts, level or logger, and an attached traceback goes under `exc_info`.
    """

    def format(self, record: LogRecord) -> str:  # type: ignore[override]
        created = datetime.fromtimestamp(record.created, UTC)
        line: dict[str, Any] = {
            "ts": created.isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
        }
        body = record.msg if isinstance(record.msg, dict) else {"message": record.getMessage()}

        for source in (body, _structured_fields(record)):
            for key, value in source.items():
                line.setdefault(key, value)

        if record.exc_info:
            line["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(line, ensure_ascii=False, default=str)


def _make_stream_handler(level: int) -> Handler:
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JsonFormatter())
    return handler


def setup_logging(level: str | int = _DEFAULT_LEVEL) -> None:
    """Attach a JSON stdout handler to the root logger.

    Does nothing if the root logger already has handlers, so host applications
    that configure logging themselves keep their setup.
    """
    root = logging.getLogger()

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if root.handlers:
        return

    root.setLevel(level)
    root.addHandler(_make_stream_handler(level))


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger namespaced under `cdn_auth`.

    Usage: logger = get_logger("domain.tokens")
    """
    if not name:
        return logging.getLogger("cdn_auth")
    if name == "cdn_auth" or name.startswith("cdn_auth."):
        return logging.getLogger(name)
    return logging.getLogger(f"cdn_auth.{name}")
