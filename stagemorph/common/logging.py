"""
Structured JSON logging + correlation IDs (stdlib-only).

Every line is one JSON object on stdout carrying service/env/version, the
bound correlation id and a stable `event_type` (e.g. "morph.advance",
"morph.rejected"), plus whatever fields the caller passed to `log_event`.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterator, Optional


_CORRELATION_ID: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Attributes every LogRecord carries; anything else on a record came in via `extra`.
_RECORD_ATTRS: frozenset[str] = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def _one_line(v: Any, *, max_len: int) -> str:
    s = " ".join(str(v).splitlines()).strip()
    return s if len(s) <= max_len else s[: max_len - 3] + "..."


def get_correlation_id() -> Optional[str]:
    return _CORRELATION_ID.get()


@contextmanager
def bind_correlation_id(*, correlation_id: str | None = None) -> Iterator[str]:
    """
    Bind a correlation id for the duration of the block.

    Every log line emitted inside the block carries it, which ties together
    the rejected/accepted lines and emitted events of one replayed operation.
    """
    cid = _one_line(correlation_id or "", max_len=128) or uuid.uuid4().hex
    token = _CORRELATION_ID.set(cid)
    try:
        yield cid
    finally:
        _CORRELATION_ID.reset(token)


class JsonLogFormatter(logging.Formatter):
    def __init__(self, *, service: str | None = None, env: str | None = None, version: str | None = None) -> None:
        super().__init__()
        self._service = service or "stagemorph"
        self._env = env or os.getenv("ENVIRONMENT", "unknown")
        self._version = version or "unknown"

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (format required by logging)
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "severity": record.levelname,
            "service": self._service,
            "env": self._env,
            "version": self._version,
            "correlation_id": get_correlation_id(),
            "event_type": getattr(record, "event_type", None) or "log",
            "message": _one_line(record.getMessage(), max_len=4000),
            "logger": record.name,
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        for k, v in record.__dict__.items():
            if k not in _RECORD_ATTRS and k not in payload and not k.startswith("_"):
                payload[k] = v

        # Holder identities are opaque; anything non-JSON is rendered as text.
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)


def init_structured_logging(
    *,
    service: str | None = None,
    env: str | None = None,
    version: str | None = None,
    level: str | int | None = None,
) -> None:
    """
    Configure stdlib logging to emit JSON lines to stdout.

    Safe to call multiple times (last call wins).
    """
    lvl = level or os.getenv("LOG_LEVEL", "INFO").upper()
    root = logging.getLogger()
    root.setLevel(lvl)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JsonLogFormatter(service=service, env=env, version=version))
    root.handlers = [handler]


def log_event(
    logger: logging.Logger,
    event_type: str,
    *,
    severity: str = "INFO",
    message: str | None = None,
    **fields: Any,
) -> None:
    """
    Convenience wrapper for semantic events with stable `event_type`.
    """
    lvl = getattr(logging, str(severity).upper(), logging.INFO)
    logger.log(lvl, message or event_type, extra={"event_type": event_type, **fields})


__all__ = [
    "JsonLogFormatter",
    "bind_correlation_id",
    "get_correlation_id",
    "init_structured_logging",
    "log_event",
]
