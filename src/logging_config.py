"""Centralized logging configuration for the deployment pipeline."""

import json
import logging
import os
import threading
from datetime import datetime, timezone

MASK = "****"

_secrets_lock = threading.Lock()
_registered_secrets: dict[str, int] = {}


def register_secret(value: str) -> None:
    """Start masking ``value`` in every log record that passes the filter."""
    if not value:
        return
    with _secrets_lock:
        _registered_secrets[value] = _registered_secrets.get(value, 0) + 1


def unregister_secret(value: str) -> None:
    """Stop masking ``value`` once every scope that registered it has closed."""
    if not value:
        return
    with _secrets_lock:
        count = _registered_secrets.get(value, 0)
        if count <= 1:
            _registered_secrets.pop(value, None)
        else:
            _registered_secrets[value] = count - 1


def mask_secrets(text: str) -> str:
    """Replace every registered secret in ``text`` with the mask."""
    with _secrets_lock:
        # Longest first so a secret containing another is masked whole
        secrets = sorted(_registered_secrets, key=len, reverse=True)
    for secret in secrets:
        text = text.replace(secret, MASK)
    return text


class SecretMaskingFilter(logging.Filter):
    """Rewrites log records so registered credential values never reach output.

    Masks the message and any attached traceback. The traceback is rendered
    here into ``exc_text``, which formatters reuse instead of formatting it
    again.
    """

    _traceback_formatter = logging.Formatter()

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = mask_secrets(message)
        if masked != message:
            record.msg = masked
            record.args = None
        if record.exc_info and record.exc_info[0] is not None and not record.exc_text:
            record.exc_text = self._traceback_formatter.formatException(record.exc_info)
        if record.exc_text:
            record.exc_text = mask_secrets(record.exc_text)
        return True


class JSONFormatter(logging.Formatter):
    """JSON log formatter for log aggregator compatibility.

    Produces one JSON object per line (NDJSON) with fields:
    timestamp, level, logger, message, and optionally exception.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = mask_secrets(self.formatException(record.exc_info))
        return json.dumps(log_entry)


def configure_logging(level_override: str | None = None) -> None:
    """Configure logging based on environment variables.

    Args:
        level_override: If set, takes precedence over LOG_LEVEL env var.

    Environment variables:
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR).
            Defaults to INFO.
        LOG_FORMAT: Output format. "json" for JSON lines,
            anything else for human-readable. Defaults to "text".
    """
    level_name = (level_override or os.getenv("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    log_format = os.getenv("LOG_FORMAT", "text").lower()

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.addFilter(SecretMaskingFilter())

    if log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        )

    root_logger.addHandler(handler)

    # Quiet down noisy third-party libraries
    for name in ("urllib3", "requests"):
        logging.getLogger(name).setLevel(logging.WARNING)
