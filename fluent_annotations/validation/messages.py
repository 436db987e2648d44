"""Message resolution.

Picks the final text for a failed rule. Sources are tried in a fixed order and
the first one that produces a string wins:

    1. rule.message            literal template or callable(instance)
    2. rule.resource_key       looked up on the rule's resource type
    3. attribute resource      error_message_resource_name / _type
    4. conventional key        "{member}_{ShortName}" (e.g. "email_Required")
    5. rule.fallback_message   returned verbatim, never formatted
    6. attribute template      error_message or the kind's default template
    7. "Invalid value for {member}"

A resource miss, or a resource string that cannot be formatted, falls through
to the next source. Conventional keys are only tried after the explicit
resource bindings have failed.

Templates are formatted with {0} = member name and {1}, {2}, ... = attribute
arguments; numbers and dates are rendered for the resolved culture.
"""
from __future__ import annotations

import threading
from typing import Any

from babel import Locale

from fluent_annotations.config import ValidationOptions
from fluent_annotations.errors import AppError, Err, Result
from fluent_annotations.logging import resolver_logger

from .annotations import ValidationAttribute, resource_type_of
from .resources import ResourceLookup, StaticResourceLookup, culture_name, format_template, get_current_culture
from .rules import ValidationRule

log = resolver_logger()

_FORMAT_ERRORS = (IndexError, KeyError, ValueError, AttributeError)


def _cache_token(resource_type: Any) -> Any:
    try:
        hash(resource_type)
    except TypeError:
        return id(resource_type)
    return resource_type


class MessageResolver:
    def __init__(self, options: ValidationOptions | None = None, lookup: ResourceLookup | None = None):
        self.options = options or ValidationOptions.from_settings()
        self.lookup = lookup or StaticResourceLookup()
        self._cache: dict[tuple[Any, str, str], Result[str, AppError]] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------------

    def resolve(
        self,
        model_type: type,
        member_name: str,
        attribute: ValidationAttribute | None,
        rule: ValidationRule | None = None,
        instance: Any = None,
        display_name: str | None = None,
    ) -> str:
        name = display_name or (rule.display_name if rule is not None else member_name)
        culture = self.resolve_culture(rule)
        args = attribute.format_args if attribute is not None else ()

        if rule is not None and rule.message is not None:
            if callable(rule.message):
                return str(rule.message(instance))
            return self._format_or_raw(rule.message, culture, name, args)

        if rule is not None and rule.resource_key:
            resource_type = rule.resource_type or resource_type_of(model_type) or self.options.shared_resource_type
            if (text := self._from_resource(resource_type, rule.resource_key, culture, name, args)) is not None:
                return text

        if attribute is not None and attribute.error_message_resource_name and attribute.error_message_resource_type:
            text = self._from_resource(attribute.error_message_resource_type,
                attribute.error_message_resource_name, culture, name, args)
            if text is not None:
                return text

        if attribute is not None and self._conventional_keys_enabled(rule):
            resource_type = ((rule.resource_type if rule is not None else None)
                or resource_type_of(model_type) or self.options.shared_resource_type)
            if resource_type is not None:
                key = self.conventional_key(model_type, member_name, attribute)
                if (text := self._from_resource(resource_type, key, culture, name, args)) is not None:
                    return text

        if rule is not None and rule.fallback_message:
            return rule.fallback_message

        if attribute is not None:
            return attribute.format_error_message(name, culture)

        return f"Invalid value for {member_name}"

    def conventional_key(self, model_type: type, member_name: str, attribute: ValidationAttribute) -> str:
        getter = self.options.conventional_key_getter
        if getter is not None and (custom := getter(model_type, member_name, attribute)):
            return custom
        return f"{member_name}_{attribute.short_name}"

    def resolve_culture(self, rule: ValidationRule | None = None) -> Locale | None:
        if rule is not None and rule.culture is not None:
            return rule.culture
        return self.options.shared_culture or get_current_culture() or self.options.default_culture

    # ------------------------------------------------------------------------
    # Resource lookup (cached, including misses)
    # ------------------------------------------------------------------------

    def lookup_resource(self, resource_type: Any, key: str, culture: Locale | None) -> Result[str, AppError]:
        cache_key = (_cache_token(resource_type), key, culture_name(culture))
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached
        result = self.lookup.get(resource_type, key, culture)
        if isinstance(result, Err):
            log.debug("resource_miss", key=key, culture=cache_key[2], reason=result.error.message)
        with self._lock:
            return self._cache.setdefault(cache_key, result)

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    @property
    def cache_size(self) -> int: return len(self._cache)

    def _from_resource(self, resource_type: Any, key: str, culture: Locale | None,
                       name: str, args: tuple[Any, ...]) -> str | None:
        template = self.lookup_resource(resource_type, key, culture).unwrap_or(None)
        if template is None:
            return None
        try:
            return format_template(template, culture, name, *args)
        except _FORMAT_ERRORS:
            log.debug("resource_format_failed", key=key)
            return None

    def _conventional_keys_enabled(self, rule: ValidationRule | None) -> bool:
        if not self.options.use_conventional_keys:
            return False
        return rule is None or rule.use_conventional_key_fallback

    @staticmethod
    def _format_or_raw(template: str, culture: Locale | None, name: str, args: tuple[Any, ...]) -> str:
        try:
            return format_template(template, culture, name, *args)
        except _FORMAT_ERRORS:
            try:
                return format_template(template, culture, name)
            except _FORMAT_ERRORS:
                return template
