"""Structured Logging for Fluent Annotations

structlog-based logging with:
- Colored, human-readable console output for development
- JSON structured output for log shipping
- Context propagation through contextvars (bind a request id once, every
  registry/executor event carries it)

Library code only ever calls the domain loggers below; nothing is configured
until the host application calls configure_logging().
"""
import logging
import sys

import structlog
from structlog.types import EventDict, Processor


def _add_service_info(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Processor that adds package metadata."""
    event_dict.setdefault("service", "fluent-annotations")
    event_dict.setdefault("version", "0.1.0")
    return event_dict


def _truncate_attempted_values(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Processor that keeps attempted values from flooding log lines."""
    value = event_dict.get("attempted_value")
    if value is not None:
        text = repr(value)
        event_dict["attempted_value"] = text if len(text) <= 120 else text[:117] + "..."
    return event_dict


def get_shared_processors() -> list[Processor]:
    """Processors used in both console and JSON configurations."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        _add_service_info,
        _truncate_attempted_values,
    ]


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Configure the logging system.
    
    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: If True, output JSON format. If False, colored console output.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    
    shared_processors = get_shared_processors()
    
    if json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.plain_traceback,
        )
    
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
    
    structlog.configure(
        processors=[
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    
    package_logger = logging.getLogger("fluent_annotations")
    package_logger.handlers = [handler]
    package_logger.setLevel(log_level)
    package_logger.propagate = False


def configure_from_settings() -> None:
    """Configure logging from LOG_LEVEL / LOG_JSON settings."""
    from fluent_annotations.config import get_settings

    current = get_settings()
    configure_logging(level=current.LOG_LEVEL, json_logs=current.LOG_JSON)


def get_logger(name: str = __name__) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.
    
    Args:
        name: Logger name (typically __name__ from the calling module)
    
    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def bind_context(**kwargs) -> None:
    """Bind key-value pairs to the current logging context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


class LoggerRegistry:
    """Registry of loggers for the package's domains."""
    
    _loggers: dict[str, structlog.stdlib.BoundLogger] = {}
    
    @classmethod
    def get(cls, name: str) -> structlog.stdlib.BoundLogger:
        """Get or create a logger for the given domain."""
        if name not in cls._loggers:
            cls._loggers[name] = get_logger(f"fluent_annotations.{name}")
        return cls._loggers[name]


def registry_logger() -> structlog.stdlib.BoundLogger:
    """Logger for rule registration and removal."""
    return LoggerRegistry.get("registry")


def builder_logger() -> structlog.stdlib.BoundLogger:
    """Logger for fluent configuration."""
    return LoggerRegistry.get("builder")


def resolver_logger() -> structlog.stdlib.BoundLogger:
    """Logger for message and resource resolution."""
    return LoggerRegistry.get("resolver")


def executor_logger() -> structlog.stdlib.BoundLogger:
    """Logger for validation runs."""
    return LoggerRegistry.get("executor")
