"""structlog setup for the marketplace API.

Request handlers bind ``request_id``/``method``/``path`` through
:func:`bind_request`, so every event logged while serving a request carries
them. Credential-bearing keys are masked before rendering.
"""

import logging
import sys
import uuid
from typing import Any

import structlog

from villagemarket.core.config import get_settings

REDACTED = "***"

# Event keys that may carry credentials
SENSITIVE_KEYS = frozenset(
    {"password", "password_hash", "token", "access_token", "code", "client_secret", "cookie"}
)

_configured = False


def redact_secrets(
    logger: Any, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Processor masking the values of :data:`SENSITIVE_KEYS`."""
    for key in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def configure_logging(force: bool = False) -> None:
    """Install processors and renderer; later calls are no-ops unless *force*."""
    global _configured
    if _configured and not force:
        return

    settings = get_settings()
    level = logging.getLevelName(settings.log_level)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
    ]
    if settings.app_debug:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    else:
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        # stdlib factory: add_logger_name needs loggers with a .name
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    # uvicorn and SQLAlchemy log through stdlib
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=force)
    _configured = True


def bind_request(method: str, path: str, request_id: str | None = None) -> str:
    """Start a fresh log context for one request and return its id."""
    request_id = request_id or uuid.uuid4().hex
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, method=method, path=path)
    return request_id


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    configure_logging()
    return structlog.get_logger(name)
