"""Exceptions wrapping AppError values.

Raised where the Result monad does not fit: configuration mistakes that must
fail fast, and callers that ask a ValidationResult to raise.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from .types import AppError, ErrorCode

if TYPE_CHECKING:
    from fluent_annotations.validation.results import ValidationResult


class AppErrorException(Exception):
    """Exception wrapper for AppError."""
    
    def __init__(self, error: AppError):
        self.error = error
        super().__init__(str(error))

    @property
    def code(self) -> ErrorCode: return self.error.code


class ConfigurationError(AppErrorException):
    """A rule definition is malformed or references something that does not exist."""


class UnsupportedMemberError(AppErrorException):
    """A member was used in a way its shape does not allow (e.g. assigning a method)."""


class FluentValidationException(AppErrorException):
    """Raised by ValidationResult.raise_if_invalid()."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__(result.to_app_error())

    @property
    def errors(self): return self.result.errors
