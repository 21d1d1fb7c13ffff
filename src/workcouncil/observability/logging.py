"""structlog setup shared by every workcouncil module.

Two renderers: a plain console renderer for local runs (``dev``) and one
JSON object per line for log shippers (``prod``). Both write to stderr so
stdout stays free for callers. Every entry gets an ISO 8601 UTC timestamp
and its level; fields bound with bind_context() follow the current task
across awaits.

Keys used throughout the council:
- submission_id, stage: bound for the whole session
- evaluator_id, backend_id: per-call entries
- risk_level, threats: security decisions

Event names are dotted and past tense: ``council.vote.cast``,
``security.flow.denied``, ``backend.call.failed``.

Usage:
    configure_logging(LoggingConfig(mode=LogMode.PROD))
    bind_context(submission_id="sub-1")
    get_logger().info("council.session.started", panel_size=4)
"""

from __future__ import annotations

from enum import Enum
import logging
import os
import sys
from typing import Any

from pydantic import BaseModel, Field
import structlog

from workcouncil.core.redaction import (
    REDACTED,
    is_sensitive_field,
    is_sensitive_value,
    mask_api_key,
    redact_mapping,
)

LOG_MODE_ENV_VAR = "WORKCOUNCIL_LOG_MODE"

# Keys structlog itself owns; never rewritten by the masking processor
_RESERVED_KEYS = frozenset({"event", "level", "timestamp"})


class LogMode(str, Enum):
    """Where log entries are meant to be read."""

    DEV = "dev"
    PROD = "prod"


class LoggingConfig(BaseModel):
    """Logging settings.

    Attributes:
        mode: ``dev`` renders for terminals, ``prod`` renders JSON lines.
        log_level: Lowest level emitted, by name.
    """

    mode: LogMode = Field(default=LogMode.DEV)
    log_level: str = Field(default="INFO")

    model_config = {"frozen": True}


_configured: bool = False
_current_config: LoggingConfig | None = None


def _mode_from_env() -> LogMode:
    raw = os.environ.get(LOG_MODE_ENV_VAR, "").strip().lower()
    return LogMode.PROD if raw == LogMode.PROD.value else LogMode.DEV


def _level_number(name: str) -> int:
    name = name.upper()
    if name == "WARN":
        name = "WARNING"
    return logging.getLevelNamesMapping().get(name, logging.INFO)


def _mask_sensitive_data(
    _logger: Any,
    _method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Replace credential-looking fields before anything is rendered."""
    for key in event_dict.keys() - _RESERVED_KEYS:
        value = event_dict[key]
        if is_sensitive_field(key):
            event_dict[key] = REDACTED
        elif is_sensitive_value(value):
            event_dict[key] = mask_api_key(value)
        elif isinstance(value, dict):
            event_dict[key] = redact_mapping(value)
    return event_dict


def _build_processors(mode: LogMode) -> list[Any]:
    renderer: Any = (
        structlog.processors.JSONRenderer()
        if mode == LogMode.PROD
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    return [
        structlog.contextvars.merge_contextvars,
        _mask_sensitive_data,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        renderer,
    ]


def configure_logging(config: LoggingConfig | None = None) -> None:
    """Install the structlog configuration, replacing any earlier one.

    Args:
        config: Settings to apply. When omitted, the mode is read from
            ``WORKCOUNCIL_LOG_MODE`` and the level defaults to INFO.
    """
    global _configured, _current_config

    config = config or LoggingConfig(mode=_mode_from_env())
    structlog.configure(
        processors=_build_processors(config.mode),
        wrapper_class=structlog.make_filtering_bound_logger(_level_number(config.log_level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    _current_config = config
    _configured = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    if not _configured:
        configure_logging()
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Attach fields to every entry logged from the current task.

    Bind identifiers only. Submission notes and credentials stay out.
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


def get_current_config() -> LoggingConfig | None:
    return _current_config


def is_configured() -> bool:
    return _configured


def reset_logging() -> None:
    """Forget the installed configuration and bound context. Used by tests."""
    global _configured, _current_config
    _configured = False
    _current_config = None
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()
