"""Member references and selectors.

A MemberRef is the structural identity of a validated member: the class that
declares it plus its name. Two refs built from different selectors for the same
logical member compare equal, so registry lookups never depend on which call
site produced the handle.

Selectors accepted everywhere a member is named:
    "email"                      # attribute name
    MemberRef(User, "email")     # an existing ref
    lambda u: u.email            # recorded once against a proxy
    lambda u: u.display_name()   # zero-argument method member
"""
from __future__ import annotations

import inspect
import types
import typing
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property, lru_cache
from typing import Any, Annotated, Callable, Union, get_args, get_origin

from pydantic import BaseModel

from fluent_annotations.errors import (
    ConfigurationError,
    UnsupportedMemberError,
    unknown_member,
    unsupported_member,
)

Selector = Union[str, "MemberRef", Callable[[Any], Any]]


class MemberKind(str, Enum):
    FIELD = "field"
    PROPERTY = "property"
    METHOD = "method"


@dataclass(frozen=True, slots=True)
class MemberRef:
    """Identity plus accessors for one member of a model type."""
    declaring_type: type
    name: str
    kind: MemberKind = field(default=MemberKind.FIELD, compare=False)

    @property
    def key(self) -> tuple[str, str]:
        t = self.declaring_type
        return (f"{t.__module__}.{t.__qualname__}", self.name)

    @property
    def is_writable(self) -> bool:
        if self.kind is MemberKind.METHOD:
            return False
        if self.kind is MemberKind.PROPERTY:
            prop = inspect.getattr_static(self.declaring_type, self.name, None)
            return isinstance(prop, property) and prop.fset is not None
        return True

    def get_value(self, instance: Any) -> Any:
        value = getattr(instance, self.name)
        return value() if self.kind is MemberKind.METHOD else value

    def set_value(self, instance: Any, value: Any) -> None:
        if not self.is_writable:
            raise UnsupportedMemberError(unsupported_member(self.name, self.kind.value, "assign a value to"))
        setattr(instance, self.name, value)

    def __str__(self) -> str:
        return f"{self.declaring_type.__name__}.{self.name}"


# ============================================================================
# Type hint helpers
# ============================================================================

@lru_cache(maxsize=None)
def type_hints(cls: type) -> dict[str, Any]:
    """Resolved annotations of cls including Annotated extras.

    pydantic models are read from model_fields, whose annotations pydantic has
    already resolved. Resolution errors propagate: a model whose annotations
    cannot be evaluated should fail on first use.
    """
    if issubclass(cls, BaseModel):
        return {
            name: Annotated[(info.annotation, *info.metadata)] if info.metadata else info.annotation
            for name, info in cls.model_fields.items()
        }
    return typing.get_type_hints(cls, include_extras=True)


def strip_annotations(hint: Any) -> Any:
    """Peel Annotated and Optional wrappers off a hint."""
    while get_origin(hint) is Annotated:
        hint = get_args(hint)[0]
    args = get_args(hint)
    if args and type(None) in args and get_origin(hint) in (Union, types.UnionType):
        remaining = [a for a in args if a is not type(None)]
        if len(remaining) == 1:
            return strip_annotations(remaining[0])
    return hint


def element_type_of(cls: type, name: str) -> Any:
    """Element type of a collection-typed member (`list[Item]` -> Item), else None."""
    hint = strip_annotations(type_hints(cls).get(name))
    origin = get_origin(hint)
    if origin is None or not isinstance(origin, type):
        return None
    if issubclass(origin, Mapping):
        args = get_args(hint)
        return args[1] if len(args) == 2 else None
    if issubclass(origin, Iterable) and not issubclass(origin, (str, bytes)):
        args = [a for a in get_args(hint) if a is not Ellipsis]
        return args[0] if args else None
    return None


def value_type_of(cls: type, name: str) -> Any:
    """Declared type of a member with Annotated/Optional removed, or None."""
    hint = strip_annotations(type_hints(cls).get(name))
    return hint if isinstance(hint, type) else None


def iter_elements(value: Any) -> Iterable[Any]:
    """Iterate a collection member's elements; None and strings yield nothing."""
    if value is None or isinstance(value, (str, bytes)):
        return ()
    if isinstance(value, Mapping):
        return value.values()
    if isinstance(value, Iterable):
        return value
    return ()


# ============================================================================
# Selector resolution
# ============================================================================

def _declaring_type(cls: type, name: str) -> type | None:
    for klass in cls.__mro__:
        if klass is object:
            continue
        if name in inspect.get_annotations(klass) or name in vars(klass):
            return klass
    if name in (getattr(cls, "model_fields", None) or {}):
        return cls
    return None


def _kind_of(cls: type, name: str) -> MemberKind:
    attr = inspect.getattr_static(cls, name, None)
    if isinstance(attr, (property, cached_property)):
        return MemberKind.PROPERTY
    if inspect.isfunction(attr) or isinstance(attr, (staticmethod, classmethod)):
        return MemberKind.METHOD
    return MemberKind.FIELD


def member_ref(cls: type, name: str) -> MemberRef:
    """Resolve a member by name, raising ConfigurationError when cls has no such member."""
    declaring = _declaring_type(cls, name)
    if declaring is None or name.startswith("__"):
        raise ConfigurationError(unknown_member(cls, name))
    return MemberRef(declaring, name, _kind_of(cls, name))


def has_member(cls: type, name: str) -> bool:
    return _declaring_type(cls, name) is not None


class _Recorded:
    __slots__ = ("name", "called")

    def __init__(self, name: str):
        self.name, self.called = name, False

    def __call__(self, *args, **kwargs) -> _Recorded:
        self.called = True
        return self


class _MemberRecorder:
    """Stand-in instance that records which attribute a selector lambda reads."""
    __slots__ = ("_accessed",)

    def __init__(self):
        object.__setattr__(self, "_accessed", [])

    def __getattr__(self, name: str) -> _Recorded:
        recorded = _Recorded(name)
        self._accessed.append(recorded)
        return recorded


def select_member(cls: type, selector: Selector) -> MemberRef:
    """Turn any supported selector into a MemberRef of cls."""
    if isinstance(selector, MemberRef):
        return selector
    if isinstance(selector, str):
        return member_ref(cls, selector)
    if callable(selector):
        recorder = _MemberRecorder()
        try:
            result = selector(recorder)
        except Exception as exc:
            raise ConfigurationError(unknown_member(cls, repr(selector)).with_metadata(reason=str(exc))) from exc
        if not isinstance(result, _Recorded) or len(recorder._accessed) != 1:
            raise ConfigurationError(unknown_member(cls, repr(selector)).with_metadata(
                reason="selector must read exactly one member, e.g. lambda x: x.email"))
        ref = member_ref(cls, result.name)
        if result.called and ref.kind is not MemberKind.METHOD:
            raise ConfigurationError(unknown_member(cls, f"{result.name}()"))
        return ref
    raise ConfigurationError(unknown_member(cls, repr(selector)))
