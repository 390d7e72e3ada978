from .setup_logging import setup_logging
from .std_logging_config import StdLoggingConfig, build_logger_config

__all__ = ["StdLoggingConfig", "build_logger_config", "setup_logging"]
