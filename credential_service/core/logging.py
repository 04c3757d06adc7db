"""Logging configuration for the credential anchoring service.

Two output modes:

  _ContainerFormatter: one human-readable line per record, for local dev.
    WARNING and above carry [file:line] so a fallback or rejection can be
    traced back to the guard that produced it.

  _JsonFormatter: JSON Lines for production log pipelines.  Set
    LOG_JSON=true.  Request context (request_id, method, path, ...) and
    anchoring context (hash, transaction_id, balance, ...) passed through
    ``extra=`` become top-level keys, so "every simulated fallback for
    public_key X" is a filter rather than a regex.

The signing secret never reaches a log record.  The only place private key
material is printed is the one-time operator banner in key_manager.py,
which writes straight to stderr and bypasses logging entirely.
"""

from __future__ import annotations

import json
import logging
import sys


class _ContainerFormatter(logging.Formatter):
    """Single-line formatter tuned for container stdout."""

    _BASE_FMT = "%(asctime)s %(levelname)-8s %(name)s  %(message)s"
    _LOC_SUFFIX = "  [%(filename)s:%(lineno)d]"

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        base = super().formatTime(record, datefmt)
        ms = int(record.msecs)
        # .NNN goes before the +0000 offset
        return f"{base[:-5]}.{ms:03d}{base[-5:]}"

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.WARNING:
            self._style._fmt = self._BASE_FMT + self._LOC_SUFFIX
        else:
            self._style._fmt = self._BASE_FMT
        return super().format(record)


class _JsonFormatter(logging.Formatter):
    """JSON formatter: one object per line."""

    _CONTEXT_FIELDS = (
        # request context (RequestContextMiddleware)
        "request_id",
        "method",
        "path",
        "user_id",
        "status_code",
        "duration_ms",
        # anchoring context (issuance / verification / liveness)
        "hash",
        "transaction_id",
        "public_key",
        "balance",
        "reason",
    )

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in self._CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Configure the root logger: one stdout handler, chosen formatter.

    Unknown level names fall back to INFO.  HTTP and RPC client loggers are
    clamped to WARNING so a debug session is not drowned in connection-pool
    chatter from every ledger call.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for name in (
        "uvicorn",
        "uvicorn.access",
        "uvicorn.error",
        "httpcore",
        "httpx",
        "solana",
    ):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
