"""Monadic Error Handling Types

Result type used by the lookup paths (resources, members) where a miss is an
expected outcome rather than an exception, plus the error code taxonomy shared
by configuration errors and validation failures.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, Iterator, NoReturn, TypeVar, Union, final

T = TypeVar("T")
E = TypeVar("E", bound="AppError")


class ErrorCode(Enum):
    """Hierarchical error code taxonomy.
    
    E2xxx: Validation failures and lookup misses
    E7xxx: Rule configuration errors
    E9xxx: Internal/Unknown errors
    """
    # Validation (E2xxx)
    E2000_VALIDATION_GENERIC = 2000
    E2001_REQUIRED_FIELD_MISSING = 2001
    E2002_INVALID_FORMAT = 2002
    E2003_OUT_OF_RANGE = 2003
    E2004_INVALID_TYPE = 2004
    E2005_CONSTRAINT_VIOLATION = 2005
    E2006_COMPARISON_FAILED = 2006
    E2010_INVALID_EMAIL = 2010
    E2013_INVALID_URL = 2013
    E2014_INVALID_PHONE = 2014
    E2030_RESOURCE_NOT_FOUND = 2030

    # Configuration (E7xxx)
    E7000_CONFIGURATION_GENERIC = 7000
    E7001_INVALID_RULE_DEFINITION = 7001
    E7002_UNKNOWN_MEMBER = 7002
    E7003_EMPTY_CONDITIONAL_BLOCK = 7003
    E7004_MISSING_RULE = 7004
    E7005_DUPLICATE_VALUE_PROVIDER = 7005
    E7006_RULES_NOT_BUILT = 7006
    E7010_UNSUPPORTED_MEMBER = 7010

    # Internal (E9xxx)
    E9000_INTERNAL_GENERIC = 9000
    E9001_UNEXPECTED_ERROR = 9001

    @property
    def category(self) -> str:
        """Human-readable error category."""
        code = self.value
        if 2000 <= code < 3000:
            return "validation"
        if 7000 <= code < 8000:
            return "configuration"
        return "internal"


@dataclass(frozen=True, slots=True)
class AppError:
    """Base error value.
    
    All errors carry:
    - Typed error code from taxonomy
    - Human-readable message
    - Structured metadata for debugging
    - Optional cause for error chaining
    """
    code: ErrorCode
    message: str
    metadata: dict = field(default_factory=dict)
    cause: Exception | None = None
    origin: str = ""

    def with_metadata(self, **kwargs) -> AppError:
        """Create new error with additional metadata."""
        return AppError(
            code=self.code,
            message=self.message,
            metadata={**self.metadata, **kwargs},
            cause=self.cause,
            origin=self.origin,
        )

    def to_dict(self) -> dict:
        """Serialize error for logs and API responses."""
        return {
            "error": {
                "code": self.code.name,
                "code_num": self.code.value,
                "message": self.message,
                "category": self.code.category,
                "origin": self.origin,
                "metadata": self.metadata,
            }
        }

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message}"


@final
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success variant of Result monad."""
    value: T
    
    def is_ok(self) -> bool:
        return True
    
    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value
    
    def unwrap_or(self, default: T) -> T:
        return self.value

    def __iter__(self) -> Iterator[T]:
        yield self.value


@final
@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failure variant of Result monad."""
    error: E
    
    def is_ok(self) -> bool:
        return False
    
    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        """Raises because Err has no value to unwrap."""
        raise ValueError(f"Called unwrap on Err: {self.error}")
    
    def unwrap_or(self, default: T) -> T:
        return default

    def unwrap_err(self) -> E:
        return self.error

    def __iter__(self) -> Iterator:
        return iter([])


Result = Union[Ok[T], Err[E]]
