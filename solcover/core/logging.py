"""Logging configuration.

Provides:
  - JSON lines for CI runs (staging/production)
  - Coloured one-line records for local runs
"""

from __future__ import annotations

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any

# Context fields callers pass through ``extra=``
CONTEXT_FIELDS = ("target", "contract", "node_type", "files")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with any instrumentation context attached."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)
        return json.dumps(log_entry, default=str)


class DevFormatter(logging.Formatter):
    """Coloured human-readable formatter, tagged with the file being processed."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        ts = datetime.now(timezone.utc).strftime("%H:%M:%S")
        msg = record.getMessage()

        target = getattr(record, "target", None)
        if target:
            msg = f"[{target}] {msg}"

        return f"{color}{ts} [{record.levelname:>8s}]{self.RESET} {record.name}: {msg}"


def setup_logging(env: str = "development", log_level: str = "INFO") -> None:
    """Route all records to stderr; stdout carries command output only.

    Args:
        env: Application environment (development/staging/production)
        log_level: Minimum log level
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if env in ("staging", "production") else DevFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for noisy in ("httpcore", "httpx", "solcx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
