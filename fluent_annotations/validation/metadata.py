"""Member metadata cache.

Reflects a model type once and remembers, per member, the validation
attributes declared through typing.Annotated. Works for dataclasses, pydantic
models and any class with annotations; read-only properties whose return hint is
Annotated are picked up as well. Classes decorated with inherit_rules(Source)
take the attributes of same-named members on Source.
"""
from __future__ import annotations

import dataclasses
import inspect
import threading
import typing
from dataclasses import dataclass
from typing import Annotated, Any, ClassVar, get_args, get_origin

from pydantic import BaseModel

from .annotations import ValidationAttribute, inherited_sources
from .members import MemberKind, MemberRef, member_ref, strip_annotations, type_hints


@dataclass(frozen=True, slots=True)
class MemberMetadata:
    member: MemberRef
    attributes: tuple[ValidationAttribute, ...]
    display_name: str
    value_type: Any = None

    @property
    def name(self) -> str: return self.member.name

    @property
    def has_attributes(self) -> bool: return bool(self.attributes)


def _attributes_of(hint: Any) -> tuple[ValidationAttribute, ...]:
    found: list[ValidationAttribute] = []
    while get_origin(hint) is Annotated:
        base, *extras = get_args(hint)
        found.extend(extra for extra in extras if isinstance(extra, ValidationAttribute))
        hint = base
    return tuple(found)


def _is_skipped(name: str, hint: Any) -> bool:
    if name.startswith("_"):
        return True
    return get_origin(hint) is ClassVar or hint is ClassVar or isinstance(hint, dataclasses.InitVar)


class MetadataCache:
    """Process-wide cache of reflected members, keyed by type.

    Entries are computed outside the lock and inserted with setdefault, so two
    racing first accesses agree on one result. Reflection errors (unresolvable
    annotations) propagate to the caller and nothing is cached for that type.
    """

    def __init__(self):
        self._members: dict[type, tuple[MemberMetadata, ...]] = {}
        self._lock = threading.Lock()

    def get_members(self, cls: type) -> tuple[MemberMetadata, ...]:
        """Every annotated member of cls, with or without validation attributes."""
        cached = self._members.get(cls)
        if cached is not None:
            return cached
        reflected = self._reflect(cls)
        with self._lock:
            return self._members.setdefault(cls, reflected)

    def get_metadata(self, cls: type) -> list[MemberMetadata]:
        """Only the members that declare at least one validation attribute."""
        return [m for m in self.get_members(cls) if m.has_attributes]

    def find(self, cls: type, name: str) -> MemberMetadata | None:
        return next((m for m in self.get_members(cls) if m.name == name), None)

    def clear(self) -> None:
        with self._lock:
            self._members.clear()

    def __contains__(self, cls: type) -> bool: return cls in self._members

    def _reflect(self, cls: type) -> tuple[MemberMetadata, ...]:
        pydantic_fields = cls.model_fields if issubclass(cls, BaseModel) else {}
        members: list[MemberMetadata] = []

        for name, hint in type_hints(cls).items():
            if _is_skipped(name, hint):
                continue
            info = pydantic_fields.get(name)
            display = (info.alias or info.title or name) if info is not None else name
            members.append(MemberMetadata(member_ref(cls, name), _attributes_of(hint), display, strip_annotations(hint)))

        seen = {m.name for m in members}
        for klass in cls.__mro__:
            if klass in (object, BaseModel):
                continue
            for name, attr in vars(klass).items():
                if name in seen or name.startswith("_") or not isinstance(attr, property) or attr.fget is None:
                    continue
                seen.add(name)
                raw = inspect.get_annotations(attr.fget).get("return")
                if raw is None or ("Annotated" not in raw if isinstance(raw, str) else get_origin(raw) is not Annotated):
                    continue
                returns = typing.get_type_hints(attr.fget, include_extras=True).get("return")
                attributes = _attributes_of(returns)
                if attributes:
                    ref = MemberRef(klass, name, MemberKind.PROPERTY)
                    members.append(MemberMetadata(ref, attributes, name, strip_annotations(returns)))

        sources = [source for klass in cls.__mro__ for source in inherited_sources(klass)]
        if sources:
            members = [self._inherit(meta, sources) for meta in members]
        return tuple(members)

    def _inherit(self, meta: MemberMetadata, sources: list[type]) -> MemberMetadata:
        """Prepend the attributes declared on same-named members of the source types."""
        inherited = tuple(
            attribute
            for source in sources
            for attribute in getattr(self.find(source, meta.name), "attributes", ())
        )
        return dataclasses.replace(meta, attributes=inherited + meta.attributes) if inherited else meta


metadata_cache = MetadataCache()
