"""
Service Logger Setup

Configures stdlib logging for a service from LoggingConfig.

Usage:
    from core.logger import setup_service_logger

    logger = setup_service_logger("campaign_service")
"""

import logging
import sys
from typing import Optional

from core.config import LoggingConfig

_configured_services = set()


def setup_service_logger(
    service_name: str,
    level: Optional[str] = None,
    config: Optional[LoggingConfig] = None,
) -> logging.Logger:
    """
    Configure logging for a service and return its logger.

    Handlers are attached to the root logger once per process, so module
    loggers obtained with logging.getLogger(__name__) inherit them.

    Args:
        service_name: Name of the service (used as the returned logger name)
        level: Optional log level override (e.g. "INFO")
        config: Optional LoggingConfig, loaded from environment if omitted
    """
    config = config or LoggingConfig.from_env()
    log_level = getattr(logging, (level or config.log_level).upper(), logging.INFO)

    root = logging.getLogger()
    if not _configured_services:
        formatter = logging.Formatter(config.log_format)

        if config.enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(formatter)
            root.addHandler(console_handler)

        if config.log_file:
            file_handler = logging.FileHandler(config.log_file)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    root.setLevel(log_level)
    _configured_services.add(service_name)

    service_logger = logging.getLogger(service_name)
    service_logger.setLevel(log_level)
    return service_logger


__all__ = ["setup_service_logger"]
