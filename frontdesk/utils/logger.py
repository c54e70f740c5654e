"""Structured logging for the front-desk core, built on structlog."""

import logging
import sys
from typing import Any, Literal

import structlog
from structlog.typing import EventDict, Processor

# Event keys whose values never reach the output unmasked
SECRET_KEYS = frozenset({"token", "authorization", "api_token"})

# Guest contact details are kept out of the logs entirely
REDACTED_KEYS = frozenset({"email", "phone"})


def mask_sensitive(value: str | None, visible_chars: int = 4) -> str:
    """
    Mask a secret such as the API token, keeping only its tail.

    Args:
        value: The secret to mask
        visible_chars: Number of trailing characters left readable

    Returns:
        Masked string (e.g., "****oken"), or "" for an empty value
    """
    if not value:
        return ""
    if len(value) <= visible_chars:
        return "*" * len(value)
    return "*" * (len(value) - visible_chars) + value[-visible_chars:]


def redact_secrets(_: Any, __: str, event_dict: EventDict) -> EventDict:
    """structlog processor masking tokens and dropping guest contact details."""
    for key in list(event_dict):
        lowered = key.lower()
        if lowered in SECRET_KEYS and isinstance(event_dict[key], str):
            event_dict[key] = mask_sensitive(event_dict[key])
        elif lowered in REDACTED_KEYS:
            event_dict[key] = "[redacted]"
    return event_dict


def setup_logging(
    level: str = "INFO",
    format_type: Literal["json", "console"] = "console",
) -> None:
    """
    Configure structlog for the CLI and library use.

    Output goes to stderr so command output on stdout stays clean.

    Args:
        level: DEBUG, INFO, WARNING or ERROR
        format_type: 'json' for log shipping, 'console' for an operator terminal
    """
    log_level = getattr(logging, level.upper())

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
    ]

    if format_type == "json":
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.rich_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # httpx reports each request through the standard library; keep it quieter
    logging.basicConfig(format="%(message)s", level=log_level, stream=sys.stderr)
    logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Logger bound to a module name."""
    return structlog.get_logger(name)


def bind_hotel(hotel_id: str | None) -> None:
    """Attach the current hotel to every subsequent log event."""
    if hotel_id:
        structlog.contextvars.bind_contextvars(hotel_id=hotel_id)
    else:
        structlog.contextvars.unbind_contextvars("hotel_id")
