# Package exports
from fluent_annotations.config import Settings, ValidationOptions, get_settings, settings
from fluent_annotations.errors import (
    AppError,
    ConfigurationError,
    ErrorCode,
    FluentValidationException,
    UnsupportedMemberError,
)
from fluent_annotations.logging import configure_logging, get_logger
from fluent_annotations.validation import *  # noqa: F401,F403
from fluent_annotations.validation import __all__ as _validation_all

__version__ = "0.1.0"

__all__ = [
    "Settings", "ValidationOptions", "get_settings", "settings",
    "AppError", "ConfigurationError", "ErrorCode", "FluentValidationException", "UnsupportedMemberError",
    "configure_logging", "get_logger",
    *_validation_all,
]
