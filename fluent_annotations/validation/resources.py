"""Culture handling and resource string lookup.

The ambient culture lives in a ContextVar so concurrent validations (threads or
tasks) can each run under their own culture:

    with culture_scope("fr-FR"):
        result = validator.validate(dto)

Resource types are either plain classes/modules exposing string members
(attribute, property or zero-argument callable), or objects with a
`get_string(key, culture)` method such as ResourceCatalog.
"""
from __future__ import annotations

import inspect
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator, Mapping, Protocol

from babel import Locale, UnknownLocaleError
from babel import dates, numbers

from fluent_annotations.errors import AppError, ConfigurationError, Ok, Result, invalid_rule, resource_not_found

current_culture: ContextVar[Locale | None] = ContextVar("current_culture", default=None)

_MISSING = object()


# ============================================================================
# Culture
# ============================================================================

def parse_culture(value: str | Locale | None) -> Locale | None:
    """Parse "fr-FR" / "fr_FR" / Locale into a Locale; empty means invariant (None)."""
    if value is None or isinstance(value, Locale):
        return value
    text = value.strip().replace("-", "_")
    if not text:
        return None
    try:
        return Locale.parse(text)
    except (UnknownLocaleError, ValueError) as exc:
        raise ConfigurationError(invalid_rule(f"Unknown culture '{value}'", culture=value)) from exc


def culture_name(culture: Locale | None) -> str:
    return str(culture) if culture is not None else ""


def culture_chain(culture: Locale | None) -> list[str]:
    """Specific to neutral to invariant: fr_FR -> fr -> ""."""
    if culture is None:
        return [""]
    names = [str(culture), culture.language, ""]
    return list(dict.fromkeys(names))


def get_current_culture() -> Locale | None: return current_culture.get()


@contextmanager
def culture_scope(culture: str | Locale | None) -> Iterator[Locale | None]:
    """Run a block under the given ambient culture."""
    token = current_culture.set(parse_culture(culture))
    try:
        yield current_culture.get()
    finally:
        current_culture.reset(token)


# ============================================================================
# Culture-aware formatting
# ============================================================================

def format_value(value: Any, culture: Locale | None) -> str:
    """Render a template argument for the given culture.

    Numbers keep their precision and are not grouped (1000 stays "1000", 1.5 is
    "1,5" under fr). Dates use the culture's short pattern.
    """
    if value is None or isinstance(value, (bool, str)):
        return str(value)
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, type):
        return value.__name__
    if culture is None:
        return str(value)
    if isinstance(value, (int, float, Decimal)):
        return numbers.format_decimal(value, format="0.###", locale=culture, decimal_quantization=False)
    if isinstance(value, datetime):
        return dates.format_datetime(value, format="short", locale=culture)
    if isinstance(value, date):
        return dates.format_date(value, format="short", locale=culture)
    if isinstance(value, time):
        return dates.format_time(value, format="short", locale=culture)
    return str(value)


def format_template(template: str, culture: Locale | None, *args: Any, **named: Any) -> str:
    """str.format with every argument rendered for culture. Raises on malformed templates."""
    rendered = [format_value(arg, culture) for arg in args]
    rendered_named = {key: format_value(value, culture) for key, value in named.items()}
    return template.format(*rendered, **rendered_named)


# ============================================================================
# Resource lookup
# ============================================================================

class ResourceLookup(Protocol):
    def get(self, resource_type: Any, key: str, culture: Locale | None) -> Result[str, AppError]: ...


class ResourceCatalog:
    """Per-culture string tables with neutral and invariant fallback.

    Usage:
        messages = ResourceCatalog("Messages", {
            "": {"password_StringLength": "Password: {1} characters max."},
            "fr": {"password_StringLength": "Mot de passe requis: {1} caractères max."},
        })
    """

    def __init__(self, name: str, strings: Mapping[str, Mapping[str, str]] | None = None):
        self.name = name
        self._strings: dict[str, dict[str, str]] = {}
        for culture, entries in (strings or {}).items():
            self.add(culture, entries)

    def add(self, culture: str | Locale | None, entries: Mapping[str, str]) -> ResourceCatalog:
        self._strings.setdefault(culture_name(parse_culture(culture)), {}).update(entries)
        return self

    def get_string(self, key: str, culture: Locale | None = None) -> str | None:
        for name in culture_chain(culture):
            table = self._strings.get(name)
            if table and key in table:
                return table[key]
        return None

    @property
    def cultures(self) -> list[str]: return sorted(self._strings)

    def __repr__(self) -> str:
        return f"ResourceCatalog({self.name!r}, cultures={self.cultures})"


def _is_zero_arg(func: Any) -> bool:
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return False
    return all(
        p.default is not p.empty or p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD)
        for p in signature.parameters.values()
    )


class StaticResourceLookup:
    """Default lookup: catalogs first, then static string members."""

    def get(self, resource_type: Any, key: str, culture: Locale | None) -> Result[str, AppError]:
        if resource_type is None or not key:
            return resource_not_found(resource_type, key, culture_name(culture), origin="resources")

        getter = getattr(resource_type, "get_string", None)
        if callable(getter):
            value = getter(key, culture)
        else:
            value = self._static_member(resource_type, key)

        if isinstance(value, str):
            return Ok(value)
        return resource_not_found(resource_type, key, culture_name(culture), origin="resources")

    @staticmethod
    def _static_member(resource_type: Any, key: str) -> Any:
        raw = inspect.getattr_static(resource_type, key, _MISSING)
        if raw is _MISSING:
            return None
        if isinstance(raw, property):
            return raw.fget(resource_type) if raw.fget else None
        value = getattr(resource_type, key)
        if callable(value) and not isinstance(value, str):
            return value() if _is_zero_arg(value) else None
        return value
