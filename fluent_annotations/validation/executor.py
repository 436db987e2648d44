"""Validation executor.

Evaluates a type's rules against an instance: members in registration order,
every applicable rule of a member (no short-circuit), and recursion into
collection elements and nested objects (ChildRules, ValidateWith, ValidateEach)
with paths such as `orders[1].lines[0].sku`.

The evaluation core is a coroutine. validate() drives it directly when the
rule set is fully synchronous, and through the blocking adapter otherwise;
validate_async() awaits it, so cancellation and timeouts surface as
CancelledError / TimeoutError rather than as failures.
"""
from __future__ import annotations

import asyncio
import re
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from fluent_annotations.errors import ConfigurationError, ErrorCode, configuration_error
from fluent_annotations.logging import executor_logger

from .annotations import ChildRules, CheckContext, ValidateWith
from .conditions import run_blocking, run_sync
from .members import MemberRef, iter_elements
from .registry import RuleRegistry
from .results import ValidationFailure, ValidationResult
from .rules import ValidationRule

if TYPE_CHECKING:
    from .root import FluentValidatorRoot

T = TypeVar("T")

log = executor_logger()

_INDEX = re.compile(r"\[(\d+)\]")


def parse_indices(path: str) -> tuple[int | None, int | None]:
    """(collection_index, parent_collection_index) from the trailing bracketed indices of path."""
    indices = [int(i) for i in _INDEX.findall(path)]
    collection = indices[-1] if indices else None
    parent = indices[-2] if len(indices) > 1 else None
    return collection, parent


def _join(path: str, name: str) -> str:
    return f"{path}.{name}" if path else name


class FluentValidator(Generic[T]):
    def __init__(self, model_type: type[T], root: FluentValidatorRoot | None = None):
        if root is None:
            from .root import FluentValidatorRoot
            root = FluentValidatorRoot()
        self.model_type = model_type
        self.root = root
        root.ensure_rules(model_type)

    @property
    def registry(self) -> RuleRegistry: return self.root.registry

    def can_validate(self, instance_type: type) -> bool: return issubclass(instance_type, self.model_type)

    def validate(self, instance: T) -> ValidationResult:
        rules_type = self._rules_type(instance)
        if self.registry.has_async_rules(rules_type):
            log.debug("blocking_on_async_rules", model_type=rules_type.__qualname__)
            return run_blocking(self._validate(instance, rules_type))
        return run_sync(self._validate(instance, rules_type))

    async def validate_async(self, instance: T, *, timeout: float | None = None) -> ValidationResult:
        rules_type = self._rules_type(instance)
        if timeout is None:
            return await self._validate(instance, rules_type)
        async with asyncio.timeout(timeout):
            return await self._validate(instance, rules_type)

    def _rules_type(self, instance: Any) -> type:
        if instance is None:
            raise ValueError(f"Cannot validate None as {self.model_type.__qualname__}")
        runtime = type(instance)
        return runtime if self.registry.contains_type(runtime) else self.model_type

    async def _validate(self, instance: Any, rules_type: type) -> ValidationResult:
        result = ValidationResult()
        await self._validate_object(instance, rules_type, self.registry, "", result)
        log.debug("validation_completed", model_type=rules_type.__qualname__,
            valid=result.is_valid, errors=len(result.errors))
        return result

    async def _validate_object(self, instance: Any, model_type: type, registry: RuleRegistry,
                               path: str, result: ValidationResult) -> None:
        if registry.contains_type(model_type) and not registry.is_built(model_type):
            raise ConfigurationError(configuration_error(
                f"Rules for {model_type.__qualname__} are not finalized; call build() on its configurator.",
                code=ErrorCode.E7006_RULES_NOT_BUILT, origin="executor"))
        for member, rules in registry.get_rules_by_member(model_type).items():
            await self._validate_member(instance, model_type, registry, member, rules, _join(path, member.name), result)

    async def _validate_member(self, instance: Any, model_type: type, registry: RuleRegistry, member: MemberRef,
                               rules: list[ValidationRule], path: str, result: ValidationResult) -> None:
        if not any(rule.has_validator for rule in rules):
            return
        value = member.get_value(instance)
        provider = next((rule.value_provider for rule in rules if rule.value_provider is not None), None)
        if provider is not None:
            value = provider(instance, member, value)
            member.set_value(instance, value)

        for rule in rules:
            if not rule.has_validator or not await rule.should_apply_async(instance):
                continue
            if rule.for_each:
                for index, element in enumerate(iter_elements(value)):
                    await self._apply(rule, element, instance, model_type, registry, f"{path}[{index}]", result)
            else:
                await self._apply(rule, value, instance, model_type, registry, path, result)

    async def _apply(self, rule: ValidationRule, value: Any, owner: Any, owner_type: type,
                     registry: RuleRegistry, path: str, result: ValidationResult) -> None:
        validator = rule.validator
        if isinstance(validator, ChildRules):
            if value is not None:
                await self._validate_object(value, validator.element_type, validator.registry, path, result)
            return
        if isinstance(validator, ValidateWith):
            if value is not None:
                self.root.ensure_rules(validator.model_type, registry)
                await self._validate_object(value, validator.model_type, registry, path, result)
            return

        context = CheckContext(owner, owner_type, rule.member.name)
        outcome = await validator.check_async(value, context) if validator.is_async else validator.check(value, context)
        if outcome.is_valid:
            return

        message = outcome.message or self.root.resolver.resolve(owner_type, rule.member.name, validator, rule, owner)
        collection_index, parent_index = parse_indices(path)
        custom_state: dict[str, Any] = {"origin": validator.short_name}
        if path != rule.member.name:
            custom_state["item_path"] = path
        result.add(ValidationFailure(
            property_name=path,
            error_message=message,
            attempted_value=value,
            collection_index=collection_index,
            parent_collection_index=parent_index,
            custom_state=custom_state,
            error_code=rule.key or validator.error_code.name,
            member=rule.member,
            attribute_type=type(validator),
        ))
