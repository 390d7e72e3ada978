from logging.config import dictConfig
from typing import Any

import structlog

from store_common.logging.std_logging_config import StdLoggingConfig, build_logger_config
from store_common.utils.utils import deep_merge


def setup_logging(logging_config: dict[str, Any] | None = None, level: str | None = None) -> None:
    dictConfig(deep_merge(build_logger_config(level), logging_config or {}))

    structlog.configure(
        processors=StdLoggingConfig.structlog_processors,
        # BoundLogger mirrors the logging.Logger API (info/warning/exception...)
        wrapper_class=structlog.stdlib.BoundLogger,
        # Output goes through stdlib handlers, rendered by the ProcessorFormatter
        logger_factory=StdLoggingConfig.logger_factory,
        cache_logger_on_first_use=True,
    )
