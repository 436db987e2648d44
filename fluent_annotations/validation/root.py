"""Validator root: owns the registry, options, resolver and metadata.

Usage:
    root = FluentValidatorRoot()
    root.for_type(LoginDto).when(lambda x: x.email, lambda d: d.role == "Admin").build()

    result = root.validator(LoginDto).validate(dto)
    result = await root.validator(LoginDto).validate_async(dto, timeout=2.0)
"""
from __future__ import annotations

import threading
from typing import Any, TypeVar

from fluent_annotations.config import ValidationOptions

from .adapter import AttributeRuleAdapter
from .annotations import ValidateWith
from .builder import FluentTypeConfigurator
from .executor import FluentValidator
from .messages import MessageResolver
from .metadata import MetadataCache, metadata_cache
from .registry import RuleRegistry
from .resources import ResourceLookup
from .results import ValidationResult

T = TypeVar("T")


class FluentValidatorRoot:
    def __init__(
        self,
        options: ValidationOptions | None = None,
        *,
        registry: RuleRegistry | None = None,
        resource_lookup: ResourceLookup | None = None,
        metadata: MetadataCache | None = None,
    ):
        self.options = options or ValidationOptions.from_settings()
        self.registry = registry or RuleRegistry()
        self.metadata = metadata or metadata_cache
        self.adapter = AttributeRuleAdapter(self.metadata)
        self.resolver = MessageResolver(self.options, resource_lookup)
        self._configurators: dict[type, FluentTypeConfigurator] = {}
        self._validators: dict[type, FluentValidator] = {}
        self._lock = threading.Lock()

    def ensure_rules(self, model_type: type, registry: RuleRegistry | None = None) -> None:
        """Adapt model_type's declared attributes into the registry once.

        No-op once the type is built or already known (being configured). Types
        nested through ValidateWith or ValidateEach are adapted along with it.
        """
        registry = registry or self.registry
        if registry.is_built(model_type) or registry.contains_type(model_type):
            return
        rules = self.adapter.adapt(model_type)
        registry.add_rules(model_type, rules)
        for rule in rules:
            if isinstance(rule.validator, ValidateWith):
                self.ensure_rules(rule.validator.model_type, registry)

    def for_type(self, model_type: type[T]) -> FluentTypeConfigurator:
        """Begin (or continue) fluent configuration of model_type."""
        with self._lock:
            configurator = self._configurators.get(model_type)
        if configurator is None:
            configurator = FluentTypeConfigurator(model_type, self)
            with self._lock:
                configurator = self._configurators.setdefault(model_type, configurator)
        return configurator

    def validator(self, model_type: type[T]) -> FluentValidator[T]:
        with self._lock:
            validator = self._validators.get(model_type)
        if validator is None:
            validator = FluentValidator(model_type, self)
            with self._lock:
                validator = self._validators.setdefault(model_type, validator)
        return validator

    def build(self) -> None:
        """Build every configurator created through for_type()."""
        with self._lock:
            configurators = list(self._configurators.values())
        for configurator in configurators:
            configurator.build()

    def validate(self, instance: Any) -> ValidationResult:
        return self.validator(type(instance)).validate(instance)

    async def validate_async(self, instance: Any, *, timeout: float | None = None) -> ValidationResult:
        return await self.validator(type(instance)).validate_async(instance, timeout=timeout)
