"""Rule registry - type and member indexed rule store.

model type -> member identity key -> ordered list of rules. Members are kept in
first-registration order and rules within a member in registration order,
which is the order the executor evaluates them in.

Writes are serialized by a lock; readers get copies, so a validation in flight
never observes a list being mutated. Configuration is expected to happen once
per type before validation starts.
"""
from __future__ import annotations

import threading
from typing import Any, Callable, Iterable

from fluent_annotations.errors import ConfigurationError, missing_rule
from fluent_annotations.logging import registry_logger

from .annotations import ValidateWith, ValidationAttribute
from .members import MemberRef, Selector, select_member
from .rules import ValidationRule

log = registry_logger()

MemberKey = tuple[str, str]
RulePredicate = Callable[[ValidationRule], bool]


class RuleRegistry:
    """Explicit rule store owned by a validator root (no module-level state)."""

    def __init__(self) -> None:
        self._rules: dict[type, dict[MemberKey, list[ValidationRule]]] = {}
        self._members: dict[type, dict[MemberKey, MemberRef]] = {}
        self._built: dict[type, bool] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------------

    def add_rule(self, model_type: type, rule: ValidationRule) -> ValidationRule:
        """Append rule to its member group; a rule with the same unique key is replaced in place."""
        with self._lock:
            group = self._rules.setdefault(model_type, {}).setdefault(rule.member.key, [])
            self._members.setdefault(model_type, {}).setdefault(rule.member.key, rule.member)
            for index, existing in enumerate(group):
                if existing.unique_key == rule.unique_key:
                    group[index] = rule
                    break
            else:
                group.append(rule)
        return rule

    def add_rules(self, model_type: type, rules: Iterable[ValidationRule], *, mark_built: bool = True) -> int:
        """Merge rules for a type by unique key, then mark the type built."""
        count = 0
        with self._lock:
            for rule in rules:
                self.add_rule(model_type, rule)
                count += 1
            if mark_built:
                self._built[model_type] = True
        log.debug("rules_added", model_type=model_type.__qualname__, count=count, built=mark_built)
        return count

    def set(self, model_type: type, selector: Selector, rules: Iterable[ValidationRule]) -> None:
        """Replace every rule of one member."""
        member = select_member(model_type, selector)
        with self._lock:
            self._rules.setdefault(model_type, {})[member.key] = list(rules)
            self._members.setdefault(model_type, {})[member.key] = member

    def remove_all(
        self,
        model_type: type,
        selector: Selector | None = None,
        *,
        attribute_type: type[ValidationAttribute] | None = None,
        predicate: RulePredicate | None = None,
    ) -> int:
        """Remove rules of a type, narrowed by member, attribute type and/or predicate.

        Returns the number of rules removed.
        """
        member = select_member(model_type, selector) if selector is not None else None

        def doomed(rule: ValidationRule) -> bool:
            if attribute_type is not None and not isinstance(rule.validator, attribute_type):
                return False
            return predicate is None or predicate(rule)

        removed = 0
        with self._lock:
            groups = self._rules.get(model_type, {})
            keys = [member.key] if member is not None else list(groups)
            for key in keys:
                group = groups.get(key)
                if not group:
                    continue
                kept = [r for r in group if not doomed(r)]
                removed += len(group) - len(kept)
                groups[key] = kept
        if removed:
            log.debug("rules_removed", model_type=model_type.__qualname__,
                member=member.name if member else None, count=removed)
        return removed

    def remove_all_for_type(self, model_type: type) -> int:
        with self._lock:
            groups = self._rules.pop(model_type, {})
            self._members.pop(model_type, None)
            self._built.pop(model_type, None)
        return sum(len(g) for g in groups.values())

    def mark_built(self, model_type: type, built: bool = True) -> None:
        with self._lock:
            self._built[model_type] = built

    def clear(self) -> None:
        with self._lock:
            self._rules.clear()
            self._members.clear()
            self._built.clear()

    # ------------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------------

    def is_built(self, model_type: type) -> bool: return self._built.get(model_type, False)

    def contains_type(self, model_type: type) -> bool:
        return model_type in self._built or model_type in self._rules

    @property
    def registered_types(self) -> list[type]:
        with self._lock:
            return list(self._rules)

    def get_rules_by_member(self, model_type: type) -> dict[MemberRef, list[ValidationRule]]:
        """Grouped snapshot in registration order; members whose rules were all removed are omitted."""
        with self._lock:
            groups = self._rules.get(model_type, {})
            members = self._members.get(model_type, {})
            return {members[key]: list(group) for key, group in groups.items() if group}

    def get_rules_for_type(self, model_type: type) -> list[ValidationRule]:
        return [rule for group in self.get_rules_by_member(model_type).values() for rule in group]

    def get_rules(self, model_type: type, selector: Selector) -> list[ValidationRule]:
        key = self._key(model_type, selector)
        if key is None:
            return []
        with self._lock:
            return list(self._rules.get(model_type, {}).get(key, ()))

    def find_rules(self, model_type: type, selector: Selector | None = None,
                   predicate: RulePredicate | None = None) -> list[ValidationRule]:
        rules = self.get_rules(model_type, selector) if selector is not None else self.get_rules_for_type(model_type)
        return [r for r in rules if predicate is None or predicate(r)]

    def contains_any(self, model_type: type, selector: Selector, predicate: RulePredicate | None = None) -> bool:
        return bool(self.find_rules(model_type, selector, predicate))

    def contains_key(self, model_type: type, selector: Selector) -> bool:
        return bool(self.get_rules(model_type, selector))

    def try_get(self, model_type: type, selector: Selector) -> ValidationRule | None:
        rules = self.get_rules(model_type, selector)
        return rules[0] if rules else None

    def get(self, model_type: type, selector: Selector) -> ValidationRule:
        """First rule of a member; raises ConfigurationError when the member has none."""
        rule = self.try_get(model_type, selector)
        if rule is None:
            try:
                name = select_member(model_type, selector).name
            except ConfigurationError:
                name = str(selector)
            raise ConfigurationError(missing_rule(model_type, name))
        return rule

    def has_async_rules(self, model_type: type, _seen: set[type] | None = None) -> bool:
        """True when any rule of the type, or of a type it nests through ValidateWith, is async."""
        seen = _seen if _seen is not None else set()
        if model_type in seen:
            return False
        seen.add(model_type)
        for rule in self.get_rules_for_type(model_type):
            if rule.is_async:
                return True
            if isinstance(rule.validator, ValidateWith) and self.has_async_rules(rule.validator.model_type, seen):
                return True
        return False

    def __len__(self) -> int:
        with self._lock:
            return sum(len(g) for groups in self._rules.values() for g in groups.values())

    def _key(self, model_type: type, selector: Selector) -> Any:
        """Identity key for a selector, or None when model_type has no such member."""
        if isinstance(selector, MemberRef):
            return selector.key
        try:
            return select_member(model_type, selector).key
        except ConfigurationError:
            return None
