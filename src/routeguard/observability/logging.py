"""
routeguard.observability.logging

Structured logging for the auth pipeline and dispatcher.

Responsibilities:
- Configure `structlog` to emit one JSON object per event, tagged with the service name.
- Keep credentials out of log output: secret-bearing fields are masked and inline
  `Bearer`/`Basic` credentials are scrubbed from every string value.
- Provide `get_logger` and `error_fields` for the uniform failure shape used by
  providers and the dispatcher.
"""

from __future__ import annotations

import logging
import re
import sys
from typing import Any

import structlog

REDACTED = "***"

# Matched case-insensitively against event keys.
_SECRET_KEYS = frozenset({"authorization", "password", "secret", "client_secret", "token", "access_token"})
_INLINE_CREDENTIAL = re.compile(r"\b(Bearer|Basic)\s+[A-Za-z0-9._~+/=-]+", re.IGNORECASE)


def configure_logging(*, service_name: str, level: str) -> None:
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_service_name(service_name),
            redact_credentials,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _add_service_name(service_name: str):
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def scrub(text: str) -> str:
    return _INLINE_CREDENTIAL.sub(lambda m: f"{m.group(1)} {REDACTED}", text)


def redact_credentials(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    structlog processor. Runs before tracebacks are rendered, so only top-level
    values are inspected.
    """
    for key, value in event_dict.items():
        if key.lower() in _SECRET_KEYS:
            event_dict[key] = REDACTED
        elif isinstance(value, str):
            event_dict[key] = scrub(value)
    return event_dict


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def error_fields(exc: BaseException) -> dict[str, str]:
    # Kind + message only; tracebacks are attached explicitly via `exc_info`.
    return {"error_type": type(exc).__name__, "error": scrub(str(exc))}


# --- Module Notes -----------------------------------------------------------
# Request-scoped metadata (request id, method, path) is bound via contextvars in
# `observability.middleware`; authorization headers are never bound there.
