"""Error Builders

Ergonomic constructors for the errors raised or returned by the engine.
Lookup misses come back as Err values; configuration problems are raised.
"""
from typing import Any

from .types import AppError, Err, ErrorCode


def _type_name(target: Any) -> str:
    return getattr(target, "__qualname__", None) or type(target).__name__


# =============================================================================
# Lookup misses (E2xxx)
# =============================================================================

def resource_not_found(resource_type: Any, key: str, culture: str = "", origin: str = "") -> Err[AppError]:
    return Err(AppError(
        code=ErrorCode.E2030_RESOURCE_NOT_FOUND,
        message=f"Resource '{key}' not found on '{_type_name(resource_type)}'",
        metadata={"key": key, "culture": culture},
        origin=origin,
    ))


# =============================================================================
# Configuration errors (E7xxx)
# =============================================================================

def configuration_error(
    message: str,
    *,
    code: ErrorCode = ErrorCode.E7000_CONFIGURATION_GENERIC,
    origin: str = "",
    cause: Exception | None = None,
    **metadata,
) -> AppError:
    """Create a configuration error value (raise it via ConfigurationError)."""
    return AppError(
        code=code,
        message=message,
        metadata={k: v for k, v in metadata.items() if v is not None},
        cause=cause,
        origin=origin,
    )


def invalid_rule(message: str, **metadata) -> AppError:
    return configuration_error(message, code=ErrorCode.E7001_INVALID_RULE_DEFINITION, **metadata)


def unknown_member(declaring_type: type, name: str) -> AppError:
    return configuration_error(
        f"Property '{name}' not found on type '{declaring_type.__name__}'.",
        code=ErrorCode.E7002_UNKNOWN_MEMBER,
        type=_type_name(declaring_type),
        member=name,
    )


def missing_rule(declaring_type: type, name: str) -> AppError:
    return configuration_error(
        f"There is no rule for the {name} property.",
        code=ErrorCode.E7004_MISSING_RULE,
        type=_type_name(declaring_type),
        member=name,
    )


def unsupported_member(name: str, kind: str, operation: str) -> AppError:
    return configuration_error(
        f"Cannot {operation} {kind} member '{name}'.",
        code=ErrorCode.E7010_UNSUPPORTED_MEMBER,
        member=name,
        kind=kind,
    )
