"""Error Handling

- Result[T, E]: Ok/Err container returned by lookups that may miss
- AppError: error value with code, message and metadata
- ErrorCode: hierarchical error code taxonomy
- Exceptions: ConfigurationError, UnsupportedMemberError, FluentValidationException

Usage:
    from fluent_annotations.errors import Ok, Err, resource_not_found

    def lookup(resource_type, key) -> Result[str, AppError]:
        value = getattr(resource_type, key, None)
        if value is None:
            return resource_not_found(resource_type, key)
        return Ok(value)
"""
from .types import AppError, Err, ErrorCode, Ok, Result
from .builders import (
    configuration_error,
    invalid_rule,
    missing_rule,
    resource_not_found,
    unknown_member,
    unsupported_member,
)
from .exceptions import (
    AppErrorException,
    ConfigurationError,
    FluentValidationException,
    UnsupportedMemberError,
)

__all__ = [
    "AppError", "Err", "ErrorCode", "Ok", "Result",
    "configuration_error", "invalid_rule", "missing_rule",
    "resource_not_found", "unknown_member", "unsupported_member",
    "AppErrorException", "ConfigurationError", "FluentValidationException", "UnsupportedMemberError",
]
