"""Validation Attributes

Declarative checks attached to model members through typing.Annotated, or
attached fluently through the rule builders. The set of kinds is closed and
each kind carries:
- a synchronous check (async kinds override check_async)
- a default message template: {0} is the member name, {1}, {2} are the
  kind's format arguments rendered for the resolved culture
- an ErrorCode reported on failures
- configuration-time argument checks (bad bounds raise ConfigurationError)

Usage:
    @dataclass
    class LoginDto:
        email: Annotated[str | None, Required(), EmailAddress()] = None
        password: Annotated[str | None, Required(), StringLength(64, 8)] = None
"""
from __future__ import annotations

import operator
import re
from abc import ABC, abstractmethod
from collections.abc import Sized
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Awaitable, Callable, ClassVar
from urllib.parse import urlparse

from babel import Locale

from fluent_annotations.errors import ConfigurationError, ErrorCode, invalid_rule

from .conditions import run_blocking
from .members import has_member
from .resources import format_template

if TYPE_CHECKING:
    from .registry import RuleRegistry


@dataclass(frozen=True, slots=True)
class AttributeResult:
    """Outcome of a single attribute check."""
    is_valid: bool
    message: str | None = None

    @classmethod
    def valid(cls) -> AttributeResult: return _VALID

    @classmethod
    def invalid(cls, message: str | None = None) -> AttributeResult: return cls(is_valid=False, message=message)


_VALID = AttributeResult(is_valid=True)


@dataclass(frozen=True, slots=True)
class CheckContext:
    """What a check may see besides the member value."""
    instance: Any
    model_type: type
    member_name: str


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


@dataclass(frozen=True, slots=True, kw_only=True)
class ValidationAttribute(ABC):
    """Base class for every validation kind.

    error_message overrides the default template. error_message_resource_name
    and error_message_resource_type bind the message to a resource string.
    """
    error_message: str | None = None
    error_message_resource_name: str | None = None
    error_message_resource_type: Any = None

    default_template: ClassVar[str] = "The field {0} is invalid."
    error_code: ClassVar[ErrorCode] = ErrorCode.E2000_VALIDATION_GENERIC
    is_async: ClassVar[bool] = False

    @abstractmethod
    def is_valid(self, value: Any) -> bool:
        """Check a member value in isolation."""

    def check(self, value: Any, context: CheckContext) -> AttributeResult:
        return AttributeResult.valid() if self.is_valid(value) else AttributeResult.invalid()

    async def check_async(self, value: Any, context: CheckContext) -> AttributeResult:
        return self.check(value, context)

    @property
    def format_args(self) -> tuple[Any, ...]: return ()

    @property
    def short_name(self) -> str: return type(self).__name__.removesuffix("Attribute")

    def message_template(self) -> str: return self.error_message or self.default_template

    def format_error_message(self, name: str, culture: Locale | None = None) -> str:
        """Default message for this attribute, formatted for culture."""
        template = self.message_template()
        try:
            return format_template(template, culture, name, *self.format_args)
        except (IndexError, KeyError, ValueError):
            return template


# ============================================================================
# Presence Validators
# ============================================================================

def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, Sized) and not isinstance(value, (bytes, bytearray)):
        return len(value) == 0
    return False


@dataclass(frozen=True, slots=True)
class Required(ValidationAttribute):
    """Value must be present: not None, not a blank string, not an empty collection."""
    allow_empty_strings: bool = False

    default_template: ClassVar[str] = "The {0} field is required."
    error_code: ClassVar[ErrorCode] = ErrorCode.E2001_REQUIRED_FIELD_MISSING

    def is_valid(self, value: Any) -> bool:
        if isinstance(value, str) and self.allow_empty_strings:
            return True
        return not _is_blank(value)


@dataclass(frozen=True, slots=True)
class NotEmpty(ValidationAttribute):
    """Like Required, and numeric zero also counts as empty."""
    default_template: ClassVar[str] = "The field '{0}' must not be empty."
    error_code: ClassVar[ErrorCode] = ErrorCode.E2001_REQUIRED_FIELD_MISSING

    def is_valid(self, value: Any) -> bool:
        if _is_number(value):
            return value != 0
        return not _is_blank(value)


@dataclass(frozen=True, slots=True)
class Empty(ValidationAttribute):
    default_template: ClassVar[str] = "The field '{0}' must be empty."
    error_code: ClassVar[ErrorCode] = ErrorCode.E2005_CONSTRAINT_VIOLATION

    def is_valid(self, value: Any) -> bool:
        if _is_number(value):
            return value == 0
        return _is_blank(value)


# ============================================================================
# Length Validators
# ============================================================================

def _length(value: Any) -> int | None:
    return len(value) if isinstance(value, Sized) else None


def _require_non_negative(kind: str, **bounds: int) -> None:
    for name, bound in bounds.items():
        if bound is None or bound < 0:
            raise ConfigurationError(invalid_rule(f"{kind}: {name} must be a non-negative integer", **{name: bound}))


@dataclass(frozen=True, slots=True)
class StringLength(ValidationAttribute):
    """String length between minimum_length and maximum_length inclusive."""
    maximum_length: int
    minimum_length: int = 0

    default_template: ClassVar[str] = "The field {0} must be a string with a maximum length of {1}."
    error_code: ClassVar[ErrorCode] = ErrorCode.E2003_OUT_OF_RANGE

    def __post_init__(self) -> None:
        _require_non_negative("StringLength", maximum_length=self.maximum_length, minimum_length=self.minimum_length)
        if self.minimum_length > self.maximum_length:
            raise ConfigurationError(invalid_rule(
                "StringLength: minimum_length cannot exceed maximum_length",
                minimum_length=self.minimum_length, maximum_length=self.maximum_length))

    def message_template(self) -> str:
        if self.error_message:
            return self.error_message
        if self.minimum_length:
            return "The field {0} must be a string with a minimum length of {2} and a maximum length of {1}."
        return self.default_template

    @property
    def format_args(self) -> tuple[Any, ...]: return (self.maximum_length, self.minimum_length)

    def is_valid(self, value: Any) -> bool:
        if value is None:
            return True
        if not isinstance(value, str):
            return False
        return self.minimum_length <= len(value) <= self.maximum_length


@dataclass(frozen=True, slots=True)
class MinLength(ValidationAttribute):
    length: int

    default_template: ClassVar[str] = "The field {0} must be a string or array type with a minimum length of '{1}'."
    error_code: ClassVar[ErrorCode] = ErrorCode.E2003_OUT_OF_RANGE

    def __post_init__(self) -> None: _require_non_negative("MinLength", length=self.length)

    @property
    def format_args(self) -> tuple[Any, ...]: return (self.length,)

    def is_valid(self, value: Any) -> bool:
        if value is None:
            return True
        size = _length(value)
        return size is not None and size >= self.length


@dataclass(frozen=True, slots=True)
class MaxLength(ValidationAttribute):
    length: int

    default_template: ClassVar[str] = "The field '{0}' must not be longer than {1} characters."
    error_code: ClassVar[ErrorCode] = ErrorCode.E2003_OUT_OF_RANGE

    def __post_init__(self) -> None: _require_non_negative("MaxLength", length=self.length)

    @property
    def format_args(self) -> tuple[Any, ...]: return (self.length,)

    def is_valid(self, value: Any) -> bool:
        if value is None:
            return True
        size = _length(value)
        return size is not None and size <= self.length


@dataclass(frozen=True, slots=True)
class Length(ValidationAttribute):
    minimum_length: int
    maximum_length: int

    default_template: ClassVar[str] = (
        "The field {0} must be a string or collection type with a minimum length of '{1}' "
        "and maximum length of '{2}'."
    )
    error_code: ClassVar[ErrorCode] = ErrorCode.E2003_OUT_OF_RANGE

    def __post_init__(self) -> None:
        _require_non_negative("Length", minimum_length=self.minimum_length, maximum_length=self.maximum_length)
        if self.maximum_length < self.minimum_length:
            raise ConfigurationError(invalid_rule(
                "Length: maximum_length must be greater than or equal to minimum_length",
                minimum_length=self.minimum_length, maximum_length=self.maximum_length))

    @property
    def format_args(self) -> tuple[Any, ...]: return (self.minimum_length, self.maximum_length)

    def is_valid(self, value: Any) -> bool:
        if value is None:
            return True
        size = _length(value)
        return size is not None and self.minimum_length <= size <= self.maximum_length


@dataclass(frozen=True, slots=True)
class ExactLength(ValidationAttribute):
    length: int

    default_template: ClassVar[str] = "The field '{0}' must be exactly {1} characters long."
    error_code: ClassVar[ErrorCode] = ErrorCode.E2003_OUT_OF_RANGE

    def __post_init__(self) -> None: _require_non_negative("ExactLength", length=self.length)

    @property
    def format_args(self) -> tuple[Any, ...]: return (self.length,)

    def is_valid(self, value: Any) -> bool:
        if value is None:
            return True
        return _length(value) == self.length


# ============================================================================
# Numeric Validators
# ============================================================================

def _in_bounds(value: Any, minimum: Any, maximum: Any) -> bool:
    if value is None:
        return True
    try:
        return (minimum is None or value >= minimum) and (maximum is None or value <= maximum)
    except TypeError:
        return False


@dataclass(frozen=True, slots=True)
class Range(ValidationAttribute):
    minimum: Any
    maximum: Any

    default_template: ClassVar[str] = "The field {0} must be between {1} and {2}."
    error_code: ClassVar[ErrorCode] = ErrorCode.E2003_OUT_OF_RANGE

    def __post_init__(self) -> None:
        try:
            inverted = self.minimum > self.maximum
        except TypeError as exc:
            raise ConfigurationError(invalid_rule("Range: bounds are not comparable",
                minimum=self.minimum, maximum=self.maximum)) from exc
        if inverted:
            raise ConfigurationError(invalid_rule("Range: minimum cannot exceed maximum",
                minimum=self.minimum, maximum=self.maximum))

    @property
    def format_args(self) -> tuple[Any, ...]: return (self.minimum, self.maximum)

    def is_valid(self, value: Any) -> bool: return _in_bounds(value, self.minimum, self.maximum)


@dataclass(frozen=True, slots=True)
class Minimum(ValidationAttribute):
    value: Any

    default_template: ClassVar[str] = "The field '{0}' must be at least {1}."
    error_code: ClassVar[ErrorCode] = ErrorCode.E2003_OUT_OF_RANGE

    @property
    def format_args(self) -> tuple[Any, ...]: return (self.value,)

    def is_valid(self, value: Any) -> bool: return _in_bounds(value, self.value, None)


@dataclass(frozen=True, slots=True)
class Maximum(ValidationAttribute):
    value: Any

    default_template: ClassVar[str] = "The field '{0}' must be at most {1}."
    error_code: ClassVar[ErrorCode] = ErrorCode.E2003_OUT_OF_RANGE

    @property
    def format_args(self) -> tuple[Any, ...]: return (self.value,)

    def is_valid(self, value: Any) -> bool: return _in_bounds(value, None, self.value)


# ============================================================================
# Format Validators
# ============================================================================

@dataclass(frozen=True, slots=True)
class RegularExpression(ValidationAttribute):
    """Whole-string regex match. None and empty strings are valid."""
    pattern: str

    default_template: ClassVar[str] = "The field {0} must match the regular expression '{1}'."
    error_code: ClassVar[ErrorCode] = ErrorCode.E2002_INVALID_FORMAT

    def __post_init__(self) -> None:
        try:
            _compile(self.pattern)
        except re.error as exc:
            raise ConfigurationError(invalid_rule(f"RegularExpression: invalid pattern: {exc}",
                pattern=self.pattern)) from exc

    @property
    def format_args(self) -> tuple[Any, ...]: return (self.pattern,)

    def is_valid(self, value: Any) -> bool:
        if value is None or value == "":
            return True
        return isinstance(value, str) and _compile(self.pattern).fullmatch(value) is not None


@dataclass(frozen=True, slots=True)
class EmailAddress(ValidationAttribute):
    """E-mail format. A missing value is not a valid address."""
    PATTERN: ClassVar[str] = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'

    default_template: ClassVar[str] = "The {0} field is not a valid e-mail address."
    error_code: ClassVar[ErrorCode] = ErrorCode.E2010_INVALID_EMAIL

    def is_valid(self, value: Any) -> bool:
        return isinstance(value, str) and _compile(self.PATTERN).match(value) is not None


@dataclass(frozen=True, slots=True)
class Url(ValidationAttribute):
    schemes: tuple[str, ...] = ("http", "https", "ftp")

    default_template: ClassVar[str] = "The {0} field is not a valid fully-qualified http, https, or ftp URL."
    error_code: ClassVar[ErrorCode] = ErrorCode.E2013_INVALID_URL

    def is_valid(self, value: Any) -> bool:
        if value is None:
            return True
        if not isinstance(value, str):
            return False
        try:
            parsed = urlparse(value)
        except ValueError:
            return False
        return parsed.scheme.lower() in self.schemes and bool(parsed.netloc)


@dataclass(frozen=True, slots=True)
class Phone(ValidationAttribute):
    PATTERN: ClassVar[str] = r'^\+?[\d\s().\-]+$'

    default_template: ClassVar[str] = "The {0} field is not a valid phone number."
    error_code: ClassVar[ErrorCode] = ErrorCode.E2014_INVALID_PHONE

    def is_valid(self, value: Any) -> bool:
        if value is None:
            return True
        if not isinstance(value, str) or not _compile(self.PATTERN).match(value):
            return False
        return 7 <= sum(ch.isdigit() for ch in value) <= 15


# ============================================================================
# Comparison Validators
# ============================================================================

class ComparisonOperator(str, Enum):
    EQUAL = "Equal"
    NOT_EQUAL = "NotEqual"
    GREATER_THAN = "GreaterThan"
    GREATER_THAN_OR_EQUAL = "GreaterThanOrEqual"
    LESS_THAN = "LessThan"
    LESS_THAN_OR_EQUAL = "LessThanOrEqual"

    def apply(self, left: Any, right: Any) -> bool:
        return bool(_OPERATORS[self](left, right))


_OPERATORS: dict[ComparisonOperator, Callable[[Any, Any], Any]] = {
    ComparisonOperator.EQUAL: operator.eq,
    ComparisonOperator.NOT_EQUAL: operator.ne,
    ComparisonOperator.GREATER_THAN: operator.gt,
    ComparisonOperator.GREATER_THAN_OR_EQUAL: operator.ge,
    ComparisonOperator.LESS_THAN: operator.lt,
    ComparisonOperator.LESS_THAN_OR_EQUAL: operator.le,
}


@dataclass(frozen=True, slots=True)
class Compare(ValidationAttribute):
    """Compare the member with another member of the same instance."""
    other_property: str
    operator: ComparisonOperator = ComparisonOperator.EQUAL

    default_template: ClassVar[str] = "The field '{0}' must satisfy the {2} comparison with '{1}'."
    error_code: ClassVar[ErrorCode] = ErrorCode.E2006_COMPARISON_FAILED

    def __post_init__(self) -> None:
        if not self.other_property:
            raise ConfigurationError(invalid_rule("Compare: other_property is required"))

    def message_template(self) -> str:
        if self.error_message:
            return self.error_message
        if self.operator is ComparisonOperator.EQUAL:
            return "'{0}' and '{1}' do not match."
        return self.default_template

    @property
    def format_args(self) -> tuple[Any, ...]: return (self.other_property, self.operator.value)

    def ensure_resolvable(self, model_type: type) -> None:
        """Fail at configuration time when model_type has no such member."""
        if not has_member(model_type, self.other_property):
            raise ConfigurationError(invalid_rule(
                f"Property '{self.other_property}' not found on type '{model_type.__name__}'.",
                member=self.other_property))

    def is_valid(self, value: Any) -> bool:
        raise TypeError("Compare needs the owning instance; call check()")

    def check(self, value: Any, context: CheckContext) -> AttributeResult:
        instance_type = type(context.instance)
        if not has_member(instance_type, self.other_property):
            return AttributeResult.invalid(
                f"Property '{self.other_property}' not found on type '{instance_type.__name__}'.")
        other = getattr(context.instance, self.other_property)
        try:
            passed = self.operator.apply(value, other)
        except TypeError:
            passed = False
        return AttributeResult.valid() if passed else AttributeResult.invalid()


@dataclass(frozen=True, slots=True)
class Equal(ValidationAttribute):
    expected: Any

    default_template: ClassVar[str] = "The field '{0}' must be equal to '{1}'."
    error_code: ClassVar[ErrorCode] = ErrorCode.E2006_COMPARISON_FAILED

    @property
    def format_args(self) -> tuple[Any, ...]: return (self.expected,)

    def is_valid(self, value: Any) -> bool: return value == self.expected


@dataclass(frozen=True, slots=True)
class NotEqual(ValidationAttribute):
    disallowed: Any

    default_template: ClassVar[str] = "The field '{0}' must not be equal to '{1}'."
    error_code: ClassVar[ErrorCode] = ErrorCode.E2006_COMPARISON_FAILED

    @property
    def format_args(self) -> tuple[Any, ...]: return (self.disallowed,)

    def is_valid(self, value: Any) -> bool: return value != self.disallowed


# ============================================================================
# Custom Validators
# ============================================================================

@dataclass(frozen=True, slots=True)
class Must(ValidationAttribute):
    """Arbitrary predicate over the member value."""
    predicate: Callable[[Any], bool]

    default_template: ClassVar[str] = "The field '{0}' is invalid."
    error_code: ClassVar[ErrorCode] = ErrorCode.E2005_CONSTRAINT_VIOLATION

    def is_valid(self, value: Any) -> bool: return bool(self.predicate(value))


@dataclass(frozen=True, slots=True)
class MustAsync(ValidationAttribute):
    """Async predicate over the member value (uniqueness checks and other I/O).

    Exceptions raised by the predicate propagate to the caller.
    """
    predicate: Callable[[Any], Awaitable[bool]]

    default_template: ClassVar[str] = "The field '{0}' is invalid."
    error_code: ClassVar[ErrorCode] = ErrorCode.E2005_CONSTRAINT_VIOLATION
    is_async: ClassVar[bool] = True

    def is_valid(self, value: Any) -> bool: return bool(run_blocking(self.predicate(value)))

    async def check_async(self, value: Any, context: CheckContext) -> AttributeResult:
        passed = await self.predicate(value)
        return AttributeResult.valid() if passed else AttributeResult.invalid()


@dataclass(frozen=True, slots=True)
class ChildRules(ValidationAttribute):
    """Validate a nested object (or each element) with its own rule set.

    Never fails by itself; the executor recurses into `registry` for the value.
    """
    element_type: type
    registry: RuleRegistry = field(compare=False, hash=False)

    def is_valid(self, value: Any) -> bool: return True

    @property
    def is_async(self) -> bool: return self.registry.has_async_rules(self.element_type)


@dataclass(frozen=True, slots=True)
class ValidateWith(ValidationAttribute):
    """Validate a nested object with the rules registered for model_type.

    model_type need not be the declared type of the member; any type whose
    rules fit the value may be reused. None values are skipped.
    """
    model_type: type

    for_each: ClassVar[bool] = False

    def __post_init__(self) -> None:
        if not isinstance(self.model_type, type):
            raise ConfigurationError(invalid_rule(
                f"{type(self).__name__}: model_type must be a class", model_type=repr(self.model_type)))

    def is_valid(self, value: Any) -> bool: return True


@dataclass(frozen=True, slots=True)
class ValidateEach(ValidateWith):
    """Validate every element of a collection member with model_type's rules.

    Failures carry item paths such as `items[2].name`.
    """
    for_each: ClassVar[bool] = True


# ============================================================================
# Type-level markers
# ============================================================================

class FluentValidatable:
    """Marker base class: every annotated member of a subclass gets a rule
    anchor even when it declares no validation attributes."""
    __slots__ = ()


def validation_resource(resource_type: Any) -> Callable[[type], type]:
    """Class decorator naming the resource type used for conventional message keys."""
    def decorate(cls: type) -> type:
        cls.__validation_resource__ = resource_type
        return cls
    return decorate


def resource_type_of(cls: type) -> Any:
    return getattr(cls, "__validation_resource__", None)


def inherit_rules(*source_types: type) -> Callable[[type], type]:
    """Class decorator: members of cls take the attributes declared on the
    same-named members of each source type, ahead of their own."""
    def decorate(cls: type) -> type:
        cls.__inherit_rules__ = inherited_sources(cls) + source_types
        return cls
    return decorate


def inherited_sources(cls: type) -> tuple[type, ...]:
    return tuple(vars(cls).get("__inherit_rules__", ()))
