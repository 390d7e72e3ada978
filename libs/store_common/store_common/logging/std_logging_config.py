from __future__ import annotations

import os
import sys
from enum import Enum
from logging import Filter, LogRecord
from typing import Any

import structlog
from pydantic import BaseModel
from structlog.typing import EventDict, Processor, WrappedLogger

from store_common.core.request_context import RequestContext
from store_common.utils import encode_json_str

_EXCLUDED_KEYS = {"client_secret", "access_token", "authorization", "password"}


def _should_use_json_logging() -> bool:
    """JSON logs outside local/dev; locally only when LOG_JSON_FORMAT is set."""
    app_env = os.getenv("APP_ENV", "local").lower()
    if app_env not in ("development", "local", "test", "testing"):
        return True
    return os.getenv("LOG_JSON_FORMAT", "").lower() in {"true", "1", "t", "yes"}


def _add_request_context(_logger: WrappedLogger, _name: str, event_dict: EventDict) -> EventDict:
    request_context = RequestContext.get_or_none()
    if request_context is not None:
        event_dict["request"] = request_context.to_dict(mode="json")
    return event_dict


def _process_values(_logger: WrappedLogger, _name: str, event_dict: EventDict) -> EventDict:
    """Drops secrets and None values, flattens pydantic models and enums into plain JSON values."""
    for key, value in list(event_dict.items()):
        if key in _EXCLUDED_KEYS or value is None:
            event_dict.pop(key, None)
        elif isinstance(value, BaseModel):
            event_dict[key] = value.model_dump(exclude_none=True, by_alias=True, mode="json")
        elif isinstance(value, Enum):
            event_dict[key] = value.value
    return event_dict


def _ensure_event_dict(_logger: WrappedLogger, _name: str, event_dict: Any) -> EventDict:
    """Records coming from plain stdlib loggers carry a string message; wrap it."""
    if isinstance(event_dict, dict):
        return event_dict  # type: ignore[return-value]
    return {"event": "" if event_dict is None else str(event_dict)}


def _console_renderer(_logger: WrappedLogger, _name: str, event_dict: EventDict) -> str:
    """HH:MM:SS [LEVEL] logger event (key=value, ...)"""
    timestamp = str(event_dict.pop("timestamp", ""))
    level = str(event_dict.pop("level", "info")).upper()
    logger_name = str(event_dict.pop("logger", ""))
    event = str(event_dict.pop("event", ""))
    exception = event_dict.pop("exception", None)
    event_dict.pop("request", None)

    short_time = timestamp[11:19] if len(timestamp) >= 19 else timestamp
    line = f"{short_time} [{level:<5}] {logger_name[-20:]:<20} {event}"
    extras = ", ".join(f"{key}={value}" for key, value in event_dict.items())
    if extras:
        line += f" ({extras})"
    if exception:
        line += f"\n{exception}"
    return line


def json_serializer(value: EventDict, **_: Any) -> str:
    return encode_json_str(value)


class NoHealthFilter(Filter):
    def filter(self, record: LogRecord) -> bool:
        return "GET /health" not in record.getMessage()


class SafeProcessorFormatter(structlog.stdlib.ProcessorFormatter):
    """ProcessorFormatter that tolerates stdlib records whose msg is not a dict."""

    def format(self, record: LogRecord) -> str:
        if not isinstance(record.msg, dict):
            record.msg = {"event": str(record.msg)}
        return super().format(record)


class StdLoggingConfig:
    foreign_pre_chain_processors: list[Processor] = [
        _ensure_event_dict,
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.ExtraAdder(),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        _add_request_context,
        _process_values,
    ]

    structlog_processors: list[Processor] = [*foreign_pre_chain_processors[1:], structlog.stdlib.ProcessorFormatter.wrap_for_formatter]

    json_renderer: list[Processor] = [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
        structlog.processors.dict_tracebacks,
        structlog.processors.JSONRenderer(sort_keys=True, default=json_serializer),
    ]

    console_renderer: list[Processor] = [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
        structlog.processors.format_exc_info,
        _console_renderer,
    ]

    formatters = {
        "json": {
            "()": SafeProcessorFormatter,
            "processors": json_renderer,
            "foreign_pre_chain": foreign_pre_chain_processors,
        },
        "plain": {
            "()": SafeProcessorFormatter,
            "processors": console_renderer,
            "foreign_pre_chain": foreign_pre_chain_processors,
        },
    }

    filters = {
        "no_health": {
            "()": NoHealthFilter,
        },
    }

    logger_factory = structlog.stdlib.LoggerFactory()


def build_logger_config(level: str | None = None) -> dict[str, Any]:
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    formatter = "json" if _should_use_json_logging() else "plain"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": StdLoggingConfig.formatters,
        "filters": StdLoggingConfig.filters,
        "handlers": {
            "standard": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "stream": sys.stdout,
                "formatter": formatter,
                "filters": ["no_health"],
            },
        },
        "root": {
            "handlers": ["standard"],
            "level": log_level,
        },
        "loggers": {
            "httpx": {"handlers": ["standard"], "propagate": False, "level": "WARNING"},
            "httpcore": {"handlers": ["standard"], "propagate": False, "level": "WARNING"},
            "sqlalchemy.engine": {"handlers": ["standard"], "propagate": False, "level": "WARNING"},
            "uvicorn": {"handlers": ["standard"], "propagate": False, "level": "INFO"},
            "uvicorn.access": {"handlers": ["standard"], "propagate": False, "level": "WARNING", "filters": ["no_health"]},
        },
    }
