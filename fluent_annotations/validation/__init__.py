"""Validation engine.

Attributes declared with typing.Annotated and rules declared fluently resolve
into one registry and one evaluation pass.

Usage:
    from dataclasses import dataclass
    from typing import Annotated
    from fluent_annotations.validation import (
        EmailAddress, FluentValidatorRoot, Required,
    )

    @dataclass
    class LoginDto:
        email: Annotated[str | None, Required(), EmailAddress()] = None
        password: Annotated[str | None, Required()] = None
        role: str = "User"

    root = FluentValidatorRoot()
    root.for_type(LoginDto).when(lambda x: x.email, lambda d: d.role == "Admin").build()
    result = root.validator(LoginDto).validate(LoginDto(role="User"))
"""
from .annotations import (
    AttributeResult,
    CheckContext,
    ChildRules,
    Compare,
    ComparisonOperator,
    EmailAddress,
    Empty,
    Equal,
    ExactLength,
    FluentValidatable,
    Length,
    Maximum,
    MaxLength,
    Minimum,
    MinLength,
    Must,
    MustAsync,
    NotEmpty,
    NotEqual,
    Phone,
    Range,
    RegularExpression,
    Required,
    StringLength,
    Url,
    ValidateEach,
    ValidateWith,
    ValidationAttribute,
    inherit_rules,
    validation_resource,
)
from .adapter import AttributeRuleAdapter
from .builder import FluentTypeConfigurator, RuleBuilder
from .executor import FluentValidator
from .members import MemberKind, MemberRef, select_member
from .messages import MessageResolver
from .metadata import MemberMetadata, MetadataCache, metadata_cache
from .registry import RuleRegistry
from .resources import (
    ResourceCatalog,
    ResourceLookup,
    StaticResourceLookup,
    culture_scope,
    get_current_culture,
    parse_culture,
)
from .results import ValidationFailure, ValidationResult
from .root import FluentValidatorRoot
from .rules import RuleBehavior, RuleSource, ValidationRule

__all__ = [
    # Attributes
    "AttributeResult", "CheckContext", "ChildRules", "Compare", "ComparisonOperator", "EmailAddress",
    "Empty", "Equal", "ExactLength", "FluentValidatable", "Length", "Maximum", "MaxLength", "Minimum",
    "MinLength", "Must", "MustAsync", "NotEmpty", "NotEqual", "Phone", "Range", "RegularExpression",
    "Required", "StringLength", "Url", "ValidateEach", "ValidateWith", "ValidationAttribute", "inherit_rules",
    "validation_resource",
    # Engine
    "AttributeRuleAdapter", "FluentTypeConfigurator", "RuleBuilder", "FluentValidator", "FluentValidatorRoot",
    "MemberKind", "MemberRef", "select_member", "MessageResolver", "MemberMetadata", "MetadataCache",
    "metadata_cache", "RuleRegistry", "RuleBehavior", "RuleSource", "ValidationRule",
    # Resources
    "ResourceCatalog", "ResourceLookup", "StaticResourceLookup", "culture_scope", "get_current_culture",
    "parse_culture",
    # Results
    "ValidationFailure", "ValidationResult",
]
