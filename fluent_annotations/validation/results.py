"""Validation results.

Failures are first-class output, never exceptions. A result can still be turned
into one (raise_if_invalid) or into an AppError for callers that use the error
system.

Serialized format:
{
    "valid": false,
    "error_count": 2,
    "errors": [
        {
            "property_name": "items[2].name",
            "error_message": "The name field is required.",
            "attempted_value": null,
            "collection_index": 2,
            "error_code": "E2001_REQUIRED_FIELD_MISSING",
            "custom_state": {"origin": "Required", "item_path": "items[2].name"}
        }
    ]
}
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

from fluent_annotations.errors import AppError, ErrorCode, FluentValidationException

from .members import MemberRef


@dataclass(eq=False, slots=True)
class ValidationFailure:
    """One failed check.

    Two failures are equal when they come from the same member and the same
    attribute type, whatever their message or path.
    """
    property_name: str
    error_message: str
    attempted_value: Any = None
    collection_index: int | None = None
    parent_collection_index: int | None = None
    custom_state: dict[str, Any] | None = None
    error_code: str | None = None
    member: MemberRef | None = None
    attribute_type: type | None = None

    @property
    def member_name(self) -> str:
        return self.member.name if self.member is not None else self.property_name.rsplit(".", 1)[-1]

    @property
    def _identity(self) -> tuple[Any, Any]:
        return (self.member.key if self.member is not None else self.property_name, self.attribute_type)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidationFailure):
            return NotImplemented
        return self._identity == other._identity

    def __hash__(self) -> int: return hash(self._identity)

    def __str__(self) -> str: return self.error_message

    def describe(self, separator: str = ": ") -> str:
        text = f"{self.property_name}{separator}{self.error_message}"
        if self.collection_index is not None:
            text += f" (index {self.collection_index})"
        return text

    def to_dict(self) -> dict[str, Any]:
        """Serialize, leaving out fields that are not set."""
        result: dict[str, Any] = {"property_name": self.property_name, "error_message": self.error_message}
        if self.attempted_value is not None: result["attempted_value"] = self.attempted_value
        if self.collection_index is not None: result["collection_index"] = self.collection_index
        if self.parent_collection_index is not None: result["parent_collection_index"] = self.parent_collection_index
        if self.error_code: result["error_code"] = self.error_code
        if self.custom_state: result["custom_state"] = dict(self.custom_state)
        return result


@dataclass(slots=True)
class ValidationResult:
    errors: list[ValidationFailure] = field(default_factory=list)

    @property
    def is_valid(self) -> bool: return not self.errors

    @property
    def first_error(self) -> ValidationFailure | None: return self.errors[0] if self.errors else None

    @property
    def field_errors(self) -> dict[str, list[ValidationFailure]]:
        """Group failures by property path."""
        result: dict[str, list[ValidationFailure]] = {}
        for failure in self.errors: result.setdefault(failure.property_name, []).append(failure)
        return result

    def get_errors_for(self, property_name: str) -> list[ValidationFailure]:
        return [f for f in self.errors if f.property_name == property_name]

    def add(self, failure: ValidationFailure) -> None: self.errors.append(failure)

    def to_app_error(self) -> AppError:
        """Convert to AppError for the error handling system."""
        if len(self.errors) == 1:
            f = self.errors[0]
            return AppError(code=ErrorCode.E2000_VALIDATION_GENERIC, message=f.describe(),
                metadata=f.to_dict(), origin="validation")
        return AppError(code=ErrorCode.E2000_VALIDATION_GENERIC,
            message=f"Validation failed: {len(self.errors)} errors",
            metadata={"error_count": len(self.errors), "errors": [f.to_dict() for f in self.errors]},
            origin="validation")

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.is_valid, "error_count": len(self.errors), "errors": [f.to_dict() for f in self.errors]}

    def raise_if_invalid(self) -> None:
        if self.errors:
            raise FluentValidationException(self)

    @classmethod
    def merge(cls, results: Iterable[ValidationResult]) -> ValidationResult:
        """Combine results, keeping the first of any equal failures at the same path.

        items[0].name and items[1].name are kept apart even though they come
        from the same member and attribute type.
        """
        seen: set[tuple[Any, str]] = set()
        merged: list[ValidationFailure] = []
        for result in results:
            for failure in result.errors:
                key = (failure._identity, failure.property_name)
                if key not in seen:
                    seen.add(key)
                    merged.append(failure)
        return cls(merged)
