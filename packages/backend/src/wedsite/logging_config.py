"""structlog configuration.

Every log entry goes through redact_sensitive so credentials never reach
the log sink, however deeply they are nested in the event dict.
"""

import logging
import sys

import structlog

SENSITIVE_FIELDS = frozenset(
    {
        "password",
        "password_hash",
        "current_password",
        "new_password",
        "temp_password",
        "token",
        "access_token",
        "refresh_token",
        "secret",
        "token_secret",
        "master_password",
        "authorization",
    }
)

REDACTED = "[REDACTED]"


def _redact(value):
    if isinstance(value, dict):
        return {
            k: REDACTED if str(k).lower() in SENSITIVE_FIELDS else _redact(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        redacted = [_redact(v) for v in value]
        return redacted if isinstance(value, list) else tuple(redacted)
    return value


def redact_sensitive(logger, method_name, event_dict):
    """structlog processor: replace sensitive values with a marker."""
    return _redact(event_dict)


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Configure structlog (and stdlib logging underneath it)."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_sensitive,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        cache_logger_on_first_use=True,
    )
