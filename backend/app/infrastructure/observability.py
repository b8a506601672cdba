"""Structured Logging — JSON formatter and setup for production observability.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Extra fields (operation, stage, tx_hash, error_code) surfaced when present
    - JSON format in production, human-readable in development
    - Registered secrets (signing key, RPC URL) are replaced in every rendered line,
      including exception tracebacks raised by web3/aiohttp
    - setup_logging is idempotent: a second call replaces the handler, never stacks one

Design Decisions:
    - JSONFormatter over third-party libs: zero dependencies, full control
    - Redaction applied to the rendered line, not the record: catches secrets that
      arrive inside formatted exception text
    - setup_logging called once on startup via lifespan
"""

import logging
import json
from datetime import datetime, timezone

_EXTRA_KEYS = (
    "operation", "stage", "error_code", "tx_hash", "block_number",
    "address", "chain_id", "signer", "path",
)

# Chatty below WARNING: per-request provider traces
_QUIET_LOGGERS = ("web3", "aiohttp", "urllib3")

REDACTED = "[redacted]"


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_KEYS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


class RedactingFormatter(logging.Formatter):
    """Wraps another formatter and masks known secret strings in its output."""

    def __init__(self, inner: logging.Formatter, secrets: tuple[str, ...] = ()):
        super().__init__()
        self._inner = inner
        # Longest first so a secret containing another is masked whole
        self._secrets = sorted({s for s in secrets if s}, key=len, reverse=True)

    def format(self, record: logging.LogRecord) -> str:
        line = self._inner.format(record)
        for secret in self._secrets:
            line = line.replace(secret, REDACTED)
        return line


def setup_logging(
    level: str = "INFO", fmt: str = "json", secrets: tuple[str, ...] = (),
) -> logging.Handler:
    """Configure logging for the application."""
    if fmt == "json":
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s — %(message)s",
        )
    handler = logging.StreamHandler()
    handler.setFormatter(RedactingFormatter(formatter, secrets))
    handler.set_name("token_api")

    for existing in list(logging.root.handlers):
        if existing.get_name() == "token_api":
            logging.root.removeHandler(existing)
    logging.root.addHandler(handler)

    root_level = getattr(logging, level.upper(), logging.INFO)
    logging.root.setLevel(root_level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(root_level, logging.WARNING))
    return handler
