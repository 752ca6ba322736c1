"""
Logging Configuration - Shared Layer

Structured logging for the API and the Celery worker. structlog renders
records from both structlog loggers and plain ``logging`` loggers, so
forecast events and third-party client messages end up in the same stream:
a coloured console in development and one JSON object per line elsewhere.
"""

import logging
import os
import sys
from typing import Any, List, Optional

import structlog
from structlog.types import Processor

from src.shared.consts import EnumEnvironment

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Client libraries that log every request at INFO level
NOISY_LOGGERS = ("pymongo", "httpx", "httpcore", "celery.app.trace")


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


def _build_handlers(log_file: Optional[str]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    return handlers


def _select_renderer(environment: str) -> Processor:
    if environment.lower() == EnumEnvironment.PRODUCTION:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def configure_logging(
    level: Optional[str] = None,
    format_string: Optional[str] = None,
    file_path: Optional[str] = None,
    environment: str = "development",
) -> None:
    """
    Install structlog on top of the root logger.

    Called once at import time of the API and worker entry points, using
    ``LOG_LEVEL`` and ``LOG_FILE_PATH`` from the environment, then again by
    :func:`update_logging_from_settings` once the settings are loaded.

    Args:
        level: Log level name; falls back to ``LOG_LEVEL`` then INFO.
        format_string: Accepted for settings compatibility. Records are
            rendered by structlog, so it does not change the output.
        file_path: Optional file that receives a copy of every record.
        environment: ``production`` selects the JSON renderer.
    """
    log_level = level or os.environ.get("LOG_LEVEL") or "INFO"
    log_file = file_path or os.environ.get("LOG_FILE_PATH")
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=_select_renderer(environment),
        foreign_pre_chain=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            timestamper,
        ],
    )

    handlers = _build_handlers(log_file)
    for handler in handlers:
        handler.setFormatter(formatter)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            timestamper,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    root_logger.handlers = handlers
    root_logger.setLevel(numeric_level)

    library_level = max(numeric_level, logging.WARNING)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    logging.info("Logging configured with level: %s", log_level)
    if log_file:
        logging.info("Logging to file: %s", log_file)


def update_logging_from_settings(settings: Any) -> None:
    """
    Reconfigure logging from the loaded application settings and bind the
    environment and service version to every subsequent log record.
    """
    try:
        environment = _enum_value(settings.environment)
        configure_logging(
            level=_enum_value(settings.logging.level),
            format_string=settings.logging.format,
            file_path=settings.logging.file_path,
            environment=environment,
        )

        service = getattr(settings, "service", None)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            environment=environment,
            service_version=getattr(service, "version", "unknown"),
        )

        logging.info("Logging configuration updated from application settings")
    except Exception as e:
        logging.error("Failed to update logging from settings: %s", e)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
