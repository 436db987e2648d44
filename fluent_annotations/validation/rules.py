"""Rule model.

A ValidationRule binds one check (or none, for condition carriers) to one
member, together with its applicability gate and every input the message
resolver may use.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable
from uuid import uuid4

from babel import Locale

from .annotations import ChildRules, ValidationAttribute
from .conditions import AsyncCondition, Condition, run_blocking
from .members import MemberRef

MessageSource = str | Callable[[Any], str]
ValueProvider = Callable[[Any, MemberRef, Any], Any]


class RuleSource(str, Enum):
    ANNOTATION = "annotation"   # adapted from an Annotated attribute
    FLUENT = "fluent"           # declared through a builder
    CARRIER = "carrier"         # no check; carries a condition or anchors a member


class RuleBehavior(str, Enum):
    """What rule(selector) does with rules already registered for the member."""
    REPLACE = "replace"
    PRESERVE = "preserve"


def make_unique_key(kind: str, token: str | int, model_type: type, member_name: str) -> str:
    """`[{Kind}:{token}]{module}.{qualname}.{member}`; stable for annotation rules."""
    return f"[{kind}:{token}]{model_type.__module__}.{model_type.__qualname__}.{member_name}"


def fluent_key(kind: str, model_type: type, member_name: str) -> str:
    return make_unique_key(kind, uuid4().hex[:12], model_type, member_name)


@dataclass(eq=False, slots=True)
class ValidationRule:
    member: MemberRef
    validator: ValidationAttribute | None = None
    condition: Condition | None = None
    async_condition: AsyncCondition | None = None
    message: MessageSource | None = None
    key: str | None = None
    resource_key: str | None = None
    resource_type: Any = None
    fallback_message: str | None = None
    culture: Locale | None = None
    use_conventional_key_fallback: bool = True
    property_name: str | None = None
    unique_key: str = field(default_factory=lambda: uuid4().hex)
    source: RuleSource = RuleSource.FLUENT
    for_each: bool = False
    value_provider: ValueProvider | None = None

    @property
    def has_validator(self) -> bool: return self.validator is not None

    @property
    def member_name(self) -> str: return self.member.name

    @property
    def display_name(self) -> str: return self.property_name or self.member.name

    @property
    def is_async(self) -> bool:
        return self.async_condition is not None or (self.validator is not None and self.validator.is_async)

    @property
    def is_child_rules(self) -> bool: return isinstance(self.validator, ChildRules)

    def should_apply(self, instance: Any) -> bool:
        """Sync gate. An async-only gate is block-adapted; prefer should_apply_async."""
        if self.async_condition is not None:
            return bool(run_blocking(self.async_condition(instance)))
        return self.condition is None or bool(self.condition(instance))

    async def should_apply_async(self, instance: Any) -> bool:
        """Async gate; an async condition supersedes the sync one."""
        if self.async_condition is not None:
            return bool(await self.async_condition(instance))
        return self.condition is None or bool(self.condition(instance))

    def copy(self, **changes: Any) -> ValidationRule:
        return dataclasses.replace(self, **changes)

    def __repr__(self) -> str:
        kind = self.validator.short_name if self.validator else "carrier"
        return f"ValidationRule({self.member}, {kind}, key={self.unique_key!r})"
