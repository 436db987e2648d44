"""Fluent rule configuration.

Two levels of configuration, both buffered until build():

Type level (FluentTypeConfigurator) works on the member's declared attributes
and attaches checks member by member:

    root.for_type(LoginDto) \\
        .when(lambda x: x.email, lambda dto: dto.role == "Admin") \\
        .rule(lambda x: x.password).required().maximum_length(64) \\
        .with_message("Password is mandatory.") \\
        .build()

Member level (RuleBuilder) composes conditional blocks, FluentValidation style:

    cfg = root.for_type(Order)
    cfg.rule_for(lambda o: o.discount) \\
        .when(lambda o: o.is_member, lambda b: b.range(0, 50)) \\
        .otherwise(lambda b: b.equal(0))
    cfg.rule_for_each(lambda o: o.lines).child_rules(
        lambda line: line.rule_for(lambda l: l.sku).required().exact_length(8))
    cfg.build()

Rules registered inside when(...) only run when the predicate holds; rules
inside the paired otherwise(...) only run when it does not.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from babel import Locale

from fluent_annotations.errors import ConfigurationError, ErrorCode, configuration_error, missing_rule
from fluent_annotations.logging import builder_logger

from .annotations import (
    ChildRules,
    Compare,
    ComparisonOperator,
    Empty,
    EmailAddress,
    Equal,
    ExactLength,
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
    ValidationAttribute,
    resource_type_of,
)
from .conditions import AsyncCondition, Condition, all_of, all_of_async, negate, negate_async
from .members import MemberRef, Selector, element_type_of, select_member, value_type_of
from .registry import RuleRegistry
from .resources import parse_culture
from .rules import (
    MessageSource,
    RuleBehavior,
    RuleSource,
    ValidationRule,
    ValueProvider,
    fluent_key,
)

if TYPE_CHECKING:
    from .root import FluentValidatorRoot

log = builder_logger()


def _config_error(message: str, code: ErrorCode = ErrorCode.E7000_CONFIGURATION_GENERIC, **metadata) -> ConfigurationError:
    return ConfigurationError(configuration_error(message, code=code, origin="builder", **metadata))


def _gate(rule: ValidationRule, predicate: Callable[[Any], Any], predicate_is_async: bool) -> None:
    """AND predicate in front of the rule's current gate."""
    if predicate_is_async:
        inner_is_async = rule.async_condition is not None
        rule.async_condition = all_of_async(predicate, rule.async_condition if inner_is_async else rule.condition,
            outer_is_async=True, inner_is_async=inner_is_async)
        return
    if rule.async_condition is not None:
        rule.async_condition = all_of_async(predicate, rule.async_condition, outer_is_async=False, inner_is_async=True)
    rule.condition = all_of(predicate, rule.condition)


class _AttributeShortcuts:
    """Attribute shortcuts shared by both builders; subclasses implement _attach()."""

    model_type: type

    def _attach(self, attribute: ValidationAttribute):
        raise NotImplementedError

    def required(self, *, allow_empty_strings: bool = False): return self._attach(Required(allow_empty_strings))

    def not_empty(self): return self._attach(NotEmpty())

    def empty(self): return self._attach(Empty())

    def email_address(self): return self._attach(EmailAddress())

    def url(self): return self._attach(Url())

    def phone(self): return self._attach(Phone())

    def length(self, minimum: int, maximum: int): return self._attach(Length(minimum, maximum))

    def exact_length(self, length: int): return self._attach(ExactLength(length))

    def minimum_length(self, length: int): return self._attach(MinLength(length))

    def maximum_length(self, length: int): return self._attach(MaxLength(length))

    def string_length(self, maximum: int, minimum: int = 0): return self._attach(StringLength(maximum, minimum))

    def range(self, minimum: Any, maximum: Any): return self._attach(Range(minimum, maximum))

    def minimum(self, value: Any): return self._attach(Minimum(value))

    def maximum(self, value: Any): return self._attach(Maximum(value))

    def matches(self, pattern: str): return self._attach(RegularExpression(pattern))

    def equal(self, expected: Any): return self._attach(Equal(expected))

    def not_equal(self, disallowed: Any): return self._attach(NotEqual(disallowed))

    def compare(self, other: str, operator: ComparisonOperator = ComparisonOperator.EQUAL):
        attribute = Compare(other, operator)
        attribute.ensure_resolvable(self.model_type)
        return self._attach(attribute)

    def must(self, predicate: Callable[[Any], bool]): return self._attach(Must(predicate))

    def must_async(self, predicate: Callable[[Any], Awaitable[bool]]): return self._attach(MustAsync(predicate))


# ============================================================================
# Member level
# ============================================================================

class RuleBuilder(_AttributeShortcuts):
    """Builds the rules of one member; conditions compose into every rule added in a block."""

    def __init__(self, configurator: FluentTypeConfigurator, member: MemberRef, *, for_each: bool = False):
        self._configurator = configurator
        self.member = member
        self.for_each = for_each
        self._rules: list[ValidationRule] = []
        self._last_when: tuple[Callable[[Any], Any], bool] | None = None

    @property
    def model_type(self) -> type: return self._configurator.model_type

    @property
    def rules(self) -> list[ValidationRule]: return list(self._rules)

    def _attach(self, attribute: ValidationAttribute) -> RuleBuilder:
        self._rules.append(self._configurator._new_rule(self.member, attribute, for_each=self.for_each))
        return self

    def _block(self, configure: Callable[[RuleBuilder], Any]) -> list[ValidationRule]:
        start = len(self._rules)
        configure(self)
        return self._rules[start:]

    def when(self, predicate: Condition, configure: Callable[[RuleBuilder], Any]) -> RuleBuilder:
        added = self._block(configure)
        if not added:
            raise _config_error(f"No rules configured within the conditional block for {self.member}.",
                ErrorCode.E7003_EMPTY_CONDITIONAL_BLOCK)
        for rule in added:
            _gate(rule, predicate, predicate_is_async=False)
        self._last_when = (predicate, False)
        return self

    def when_async(self, predicate: AsyncCondition, configure: Callable[[RuleBuilder], Any]) -> RuleBuilder:
        added = self._block(configure)
        if not added:
            raise _config_error(f"No rules configured within the conditional block for {self.member}.",
                ErrorCode.E7003_EMPTY_CONDITIONAL_BLOCK)
        for rule in added:
            _gate(rule, predicate, predicate_is_async=True)
        self._last_when = (predicate, True)
        return self

    def otherwise(self, configure: Callable[[RuleBuilder], Any]) -> RuleBuilder:
        if self._last_when is None:
            raise _config_error("otherwise(...) must follow a call to when(...) or when_async(...).")
        predicate, is_async = self._last_when
        inverse = negate_async(predicate) if is_async else negate(predicate)
        for rule in self._block(configure):
            _gate(rule, inverse, predicate_is_async=is_async)
        self._last_when = None
        return self

    def _last_rule(self, operation: str) -> ValidationRule:
        if not self._rules:
            raise _config_error(f"{operation}(...) must follow a rule for {self.member}.")
        return self._rules[-1]

    def with_message(self, message: MessageSource) -> RuleBuilder:
        self._last_rule("with_message").message = message
        return self

    def with_key(self, key: str) -> RuleBuilder:
        """Error code reported on failures of the last rule, in place of the kind's default."""
        self._last_rule("with_key").key = key
        return self

    def localized(self, resource_key: str) -> RuleBuilder:
        self._last_rule("localized").resource_key = resource_key
        return self

    def child_rules(self, configure: Callable[[FluentTypeConfigurator], Any],
                    element_type: type | None = None) -> RuleBuilder:
        """Validate the member value (or each element for rule_for_each) with nested rules."""
        owner, name = self.model_type, self.member.name
        target = element_type or (element_type_of(owner, name) if self.for_each else value_type_of(owner, name))
        if not isinstance(target, type):
            raise _config_error(f"Cannot infer the element type of {self.member}; pass element_type.",
                ErrorCode.E7001_INVALID_RULE_DEFINITION)
        child = self._configurator._child(target)
        configure(child)
        child.build()
        return self._attach(ChildRules(target, child.registry))

    def before_validation(self, provider: ValueProvider) -> RuleBuilder:
        self._configurator._add_value_provider(self.member, provider)
        return self


# ============================================================================
# Type level
# ============================================================================

@dataclass(slots=True)
class _PendingEntry:
    attribute: ValidationAttribute
    message: MessageSource | None = None
    key: str | None = None
    resource_key: str | None = None


@dataclass(slots=True)
class _PendingRule:
    """Type-level configuration of one member, buffered until build()."""
    member: MemberRef
    entries: list[_PendingEntry] = field(default_factory=list)
    condition: Condition | None = None
    async_condition: AsyncCondition | None = None
    conditioned: bool = False
    excluded: bool = False
    message: MessageSource | None = None
    key: str | None = None
    resource_key: str | None = None


class FluentTypeConfigurator(_AttributeShortcuts):
    """Fluent configuration for one model type; build() commits into the registry."""

    def __init__(self, model_type: type, root: FluentValidatorRoot, *, registry: RuleRegistry | None = None):
        self.model_type = model_type
        self.root = root
        self.registry = registry or root.registry
        self._pending: list[_PendingRule] = []
        self._current: _PendingRule | None = None
        self._builders: list[RuleBuilder] = []
        self._value_providers: dict[tuple[str, str], tuple[MemberRef, ValueProvider]] = {}
        self._resource_type: Any = resource_type_of(model_type)
        self._culture: Locale | None = None
        self._fallback_message: str | None = None
        self._use_conventional_keys = True
        self._settings_changed = False
        self._enforce = root.options.enforce_configuration
        self._last_build: list[ValidationRule] = []
        root.ensure_rules(model_type, self.registry)

    # ------------------------------------------------------------------------
    # Member selection
    # ------------------------------------------------------------------------

    def rule(self, selector: Selector, must: Callable[[Any], bool] | None = None, *,
             message: MessageSource | None = None,
             behavior: RuleBehavior = RuleBehavior.REPLACE) -> FluentTypeConfigurator:
        """Start type-level configuration of a member.

        REPLACE drops the member's registered and pending rules first; PRESERVE
        keeps them and adds to them.
        """
        member = self._begin(selector)
        if behavior is RuleBehavior.REPLACE:
            self.registry.remove_all(self.model_type, member)
            self._pending = [p for p in self._pending if p.member.key != member.key]
        self._current = _PendingRule(member)
        if must is not None:
            self._attach(Must(must))
        if message is not None:
            self.with_message(message)
        return self

    def rule_for(self, selector: Selector) -> RuleBuilder:
        builder = RuleBuilder(self, self._begin(selector))
        self._builders.append(builder)
        return builder

    def rule_for_each(self, selector: Selector) -> RuleBuilder:
        builder = RuleBuilder(self, self._begin(selector), for_each=True)
        self._builders.append(builder)
        return builder

    # ------------------------------------------------------------------------
    # Conditions
    # ------------------------------------------------------------------------

    def when(self, member_or_condition: Selector | Condition,
             condition: Condition | None = None) -> FluentTypeConfigurator:
        """when(selector, condition) gates a member; when(condition) gates the current rule."""
        pending = self._conditioned(member_or_condition, condition)
        pending.condition, pending.async_condition = (condition or member_or_condition), None
        return self

    def when_async(self, member_or_condition: Selector | AsyncCondition,
                   condition: AsyncCondition | None = None) -> FluentTypeConfigurator:
        pending = self._conditioned(member_or_condition, condition)
        pending.async_condition = condition or member_or_condition
        return self

    def and_(self, selector: Selector, condition: Condition) -> FluentTypeConfigurator:
        return self.when(selector, condition)

    def except_(self, selector: Selector) -> FluentTypeConfigurator:
        """Exclude a member: its rules are removed and a never-applicable carrier remains."""
        member = self._begin(selector)
        self.registry.remove_all(self.model_type, member)
        self._pending = [p for p in self._pending if p.member.key != member.key]
        self._builders = [b for b in self._builders if b.member.key != member.key]
        self._current = _PendingRule(member, condition=lambda _: False, conditioned=True, excluded=True)
        return self

    def always_validate(self, selector: Selector) -> FluentTypeConfigurator:
        """Clear any condition on the member's declared attributes."""
        member = self._begin(selector)
        self._current = _PendingRule(member, conditioned=True)
        return self

    def _conditioned(self, member_or_condition: Any, condition: Any) -> _PendingRule:
        if condition is None:
            if self._current is None:
                raise _config_error("when(condition) must follow rule(...); use when(selector, condition).")
            self._current.conditioned = True
            return self._current
        member = self._begin(member_or_condition, commit=False)
        if self._current is not None and self._current.entries and self._current.member.key == member.key:
            # checks already attached to this member take the condition
            self._current.conditioned = True
            return self._current
        self._commit()
        self._current = _PendingRule(member, conditioned=True)
        return self._current

    # ------------------------------------------------------------------------
    # Checks and messages on the current member
    # ------------------------------------------------------------------------

    def _require_current(self, operation: str) -> _PendingRule:
        if self._current is None:
            raise _config_error(f"{operation}(...) must follow rule(...) or when(...).")
        return self._current

    def _attach(self, attribute: ValidationAttribute) -> FluentTypeConfigurator:
        self._require_current(type(attribute).__name__).entries.append(_PendingEntry(attribute))
        return self

    def add_validator(self, attribute: ValidationAttribute) -> FluentTypeConfigurator:
        if isinstance(attribute, Compare):
            attribute.ensure_resolvable(self.model_type)
        return self._attach(attribute)

    def with_message(self, message: MessageSource) -> FluentTypeConfigurator:
        """Message for the last attached check, or for the member's declared attributes."""
        pending = self._require_current("with_message")
        (pending.entries[-1] if pending.entries else pending).message = message
        return self

    def with_key(self, key: str) -> FluentTypeConfigurator:
        """Error code for the last attached check, or for the member's declared attributes."""
        pending = self._require_current("with_key")
        (pending.entries[-1] if pending.entries else pending).key = key
        return self

    def localized(self, resource_key: str) -> FluentTypeConfigurator:
        pending = self._require_current("localized")
        (pending.entries[-1] if pending.entries else pending).resource_key = resource_key
        return self

    def before_validation(self, provider: ValueProvider) -> FluentTypeConfigurator:
        self._add_value_provider(self._require_current("before_validation").member, provider)
        return self

    # ------------------------------------------------------------------------
    # Type-wide settings
    # ------------------------------------------------------------------------

    def with_validation_resource(self, resource_type: Any) -> FluentTypeConfigurator:
        self._resource_type = resource_type
        self._settings_changed = True
        return self

    def with_culture(self, culture: str | Locale | None) -> FluentTypeConfigurator:
        self._culture = parse_culture(culture)
        self._settings_changed = True
        return self

    def use_fallback_message(self, message: str) -> FluentTypeConfigurator:
        self._fallback_message = message
        self._settings_changed = True
        return self

    def disable_conventional_keys(self) -> FluentTypeConfigurator:
        self._use_conventional_keys = False
        self._settings_changed = True
        return self

    def disable_configuration_enforcement(self, disabled: bool = True) -> FluentTypeConfigurator:
        self._enforce = not disabled
        return self

    # ------------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------------

    def remove_rules_for(self, selector: Selector,
                         attribute_type: type[ValidationAttribute] | None = None) -> FluentTypeConfigurator:
        member = self._begin(selector, commit=True)
        self._touch()
        self.registry.remove_all(self.model_type, member, attribute_type=attribute_type)

        def kept(attribute: ValidationAttribute | None) -> bool:
            return attribute_type is not None and not isinstance(attribute, attribute_type)

        for pending in self._pending:
            if pending.member.key == member.key:
                pending.entries = [e for e in pending.entries if kept(e.attribute)]
        for builder in self._builders:
            if builder.member.key == member.key:
                builder._rules = [r for r in builder._rules if kept(r.validator)]
        return self

    def remove_rules_except_for(self, selector: Selector) -> FluentTypeConfigurator:
        member = self._begin(selector, commit=True)
        self._touch()
        self.registry.remove_all(self.model_type, predicate=lambda r: r.member.key != member.key)
        self._pending = [p for p in self._pending if p.member.key == member.key]
        self._builders = [b for b in self._builders if b.member.key == member.key]
        return self

    def clear_rules(self) -> FluentTypeConfigurator:
        self._commit()
        self._touch()
        self.registry.remove_all(self.model_type)
        self._pending, self._builders, self._value_providers = [], [], {}
        return self

    # ------------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------------

    def for_type(self, model_type: type) -> FluentTypeConfigurator:
        """Commit the current member and continue with another type."""
        self._commit()
        return self.root.for_type(model_type)

    def build(self) -> list[ValidationRule]:
        """Register every buffered rule and mark the type built.

        Type-wide settings (resource type, culture, fallback message, conventional
        keys) also reach rules registered earlier, including declared attributes.
        """
        self._commit()
        if not (self._pending or self._builders or self._value_providers or self._settings_changed):
            self.registry.mark_built(self.model_type, True)
            return list(self._last_build)

        rules: list[ValidationRule] = []
        if self._settings_changed:
            rules.extend(self._finalize(rule.copy()) for rule in self.registry.get_rules_for_type(self.model_type)
                if rule.has_validator)
        for pending in self._pending:
            if pending.entries:
                rules.extend(self._finalize(self._rule_from_entry(pending, entry)) for entry in pending.entries)
            else:
                rules.extend(self._apply_to_declared(pending))
        for builder in self._builders:
            rules.extend(self._finalize(rule) for rule in builder.rules)
        for member, provider in self._value_providers.values():
            rules.append(ValidationRule(member=member, value_provider=provider,
                unique_key=fluent_key("ValueProvider", self.model_type, member.name), source=RuleSource.CARRIER))

        self.registry.add_rules(self.model_type, rules)
        log.debug("type_built", model_type=self.model_type.__qualname__, rules=len(rules),
            members=len({r.member.key for r in rules}))
        self._last_build = rules
        self._settings_changed = False
        self._pending, self._builders, self._value_providers = [], [], {}
        return list(rules)

    # ------------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------------

    def _touch(self) -> None:
        self.registry.mark_built(self.model_type, False)

    def _begin(self, selector: Selector, *, commit: bool = True) -> MemberRef:
        if commit:
            self._commit()
        self._touch()
        return select_member(self.model_type, selector)

    def _commit(self) -> None:
        pending, self._current = self._current, None
        if pending is None:
            return
        if not pending.entries and not pending.excluded and self._enforce and not self._has_checks(pending.member):
            raise ConfigurationError(missing_rule(self.model_type, pending.member.name))
        self._pending.append(pending)

    def _has_checks(self, member: MemberRef) -> bool:
        if self.registry.contains_any(self.model_type, member, lambda r: r.has_validator):
            return True
        if any(p.member.key == member.key and p.entries for p in self._pending):
            return True
        return any(b.member.key == member.key and b.rules for b in self._builders)

    def _display_name(self, member: MemberRef) -> str:
        meta = self.root.metadata.find(self.model_type, member.name)
        return meta.display_name if meta is not None else member.name

    def _new_rule(self, member: MemberRef, attribute: ValidationAttribute, *, for_each: bool = False) -> ValidationRule:
        return ValidationRule(
            member=member,
            validator=attribute,
            property_name=self._display_name(member),
            unique_key=fluent_key(attribute.short_name, self.model_type, member.name),
            source=RuleSource.FLUENT,
            for_each=for_each,
        )

    def _rule_from_entry(self, pending: _PendingRule, entry: _PendingEntry) -> ValidationRule:
        rule = self._new_rule(pending.member, entry.attribute)
        rule.condition, rule.async_condition = pending.condition, pending.async_condition
        rule.message = entry.message if entry.message is not None else pending.message
        rule.key = entry.key or pending.key
        rule.resource_key = entry.resource_key or pending.resource_key
        return rule

    def _apply_to_declared(self, pending: _PendingRule) -> list[ValidationRule]:
        """Carry a type-level condition/message onto the member's attribute-derived rules."""
        declared = self.registry.find_rules(self.model_type, pending.member,
            lambda r: r.source is RuleSource.ANNOTATION)
        updated: list[ValidationRule] = []
        for rule in declared:
            changes: dict[str, Any] = {}
            if pending.conditioned:
                changes.update(condition=pending.condition, async_condition=pending.async_condition)
            if pending.message is not None: changes["message"] = pending.message
            if pending.key: changes["key"] = pending.key
            if pending.resource_key: changes["resource_key"] = pending.resource_key
            updated.append(self._finalize(rule.copy(**changes)))
        carrier = ValidationRule(
            member=pending.member,
            condition=pending.condition,
            async_condition=pending.async_condition,
            unique_key=fluent_key("Condition", self.model_type, pending.member.name),
            source=RuleSource.CARRIER,
        )
        return [*updated, carrier]

    def _finalize(self, rule: ValidationRule) -> ValidationRule:
        """Fill type-wide message settings into fields the rule leaves unset."""
        if rule.resource_type is None: rule.resource_type = self._resource_type
        if rule.culture is None: rule.culture = self._culture
        if rule.fallback_message is None: rule.fallback_message = self._fallback_message
        if not self._use_conventional_keys: rule.use_conventional_key_fallback = False
        return rule

    def _add_value_provider(self, member: MemberRef, provider: ValueProvider) -> None:
        if member.key in self._value_providers or self.registry.contains_any(
                self.model_type, member, lambda r: r.value_provider is not None):
            raise _config_error(f"A value provider is already registered for {member}.",
                ErrorCode.E7005_DUPLICATE_VALUE_PROVIDER)
        if not member.is_writable:
            raise _config_error(f"before_validation needs a writable member; {member} is a {member.kind.value}.",
                ErrorCode.E7010_UNSUPPORTED_MEMBER)
        self._value_providers[member.key] = (member, provider)

    def _child(self, element_type: type) -> FluentTypeConfigurator:
        child = FluentTypeConfigurator(element_type, self.root, registry=RuleRegistry())
        child._resource_type = child._resource_type or self._resource_type
        child._culture, child._fallback_message = self._culture, self._fallback_message
        child._use_conventional_keys, child._enforce = self._use_conventional_keys, self._enforce
        child._settings_changed = True
        return child

    def __repr__(self) -> str:
        return f"FluentTypeConfigurator({self.model_type.__qualname__}, pending={len(self._pending)})"
