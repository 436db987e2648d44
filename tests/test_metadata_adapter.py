from dataclasses import dataclass
from typing import Annotated, ClassVar

import pytest

from fluent_annotations.errors import ConfigurationError
from fluent_annotations.validation import (
    AttributeRuleAdapter,
    Compare,
    EmailAddress,
    MemberKind,
    MetadataCache,
    Range,
    Required,
    RuleRegistry,
    RuleSource,
)

from .models import LoginDto, Profile, SignupModel


@dataclass
class Invoice:
    total: Annotated[int, Range(0, 100)] = 0
    note: str = ""
    VERSION: ClassVar[int] = 1
    _internal: int = 0

    @property
    def doubled(self) -> Annotated[int, Range(0, 10)]:
        return self.total * 2

    @property
    def plain(self) -> int:
        return 1


@dataclass
class Broken:
    value: "UndefinedType" = None  # noqa: F821


@dataclass
class BadCompare:
    confirm: Annotated[str | None, Compare("missing")] = None


class TestMetadataCache:
    def test_members_include_unannotated_fields(self) -> None:
        cache = MetadataCache()
        names = [m.name for m in cache.get_members(Invoice)]
        assert names == ["total", "note", "doubled"]

    def test_metadata_only_returns_members_with_attributes(self) -> None:
        cache = MetadataCache()
        metadata = {m.name: m for m in cache.get_metadata(Invoice)}
        assert set(metadata) == {"total", "doubled"}
        assert metadata["total"].attributes == (Range(0, 100),)
        assert metadata["doubled"].member.kind is MemberKind.PROPERTY
        assert metadata["total"].value_type is int

    def test_results_are_cached_per_type(self) -> None:
        cache = MetadataCache()
        first = cache.get_members(LoginDto)
        assert Invoice not in cache
        assert cache.get_members(LoginDto) is first
        cache.clear()
        assert LoginDto not in cache

    def test_reflection_errors_propagate(self) -> None:
        cache = MetadataCache()
        with pytest.raises(NameError):
            cache.get_members(Broken)
        assert Broken not in cache

    def test_pydantic_model_fields(self) -> None:
        cache = MetadataCache()
        metadata = {m.name: m for m in cache.get_metadata(SignupModel)}
        assert [type(a) for a in metadata["email"].attributes] == [Required, EmailAddress]
        assert metadata["age"].display_name == "Age in years"


class TestAttributeRuleAdapter:
    def test_one_rule_per_member_attribute_pair(self) -> None:
        rules = AttributeRuleAdapter(MetadataCache()).adapt(LoginDto)
        assert [(r.member.name, r.validator.short_name) for r in rules] == [
            ("email", "Required"), ("email", "EmailAddress"), ("password", "Required"),
        ]
        assert all(r.source is RuleSource.ANNOTATION for r in rules)

    def test_unique_keys_are_stable(self) -> None:
        adapter = AttributeRuleAdapter(MetadataCache())
        first = [r.unique_key for r in adapter.adapt(LoginDto)]
        second = [r.unique_key for r in adapter.adapt(LoginDto)]
        assert first == second
        assert first[0] == f"[Required:0]{LoginDto.__module__}.LoginDto.email"

    def test_adapting_twice_leaves_one_rule_per_pair(self) -> None:
        adapter = AttributeRuleAdapter(MetadataCache())
        registry = RuleRegistry()
        registry.add_rules(LoginDto, adapter.adapt(LoginDto))
        registry.add_rules(LoginDto, adapter.adapt(LoginDto))
        assert len(registry.get_rules_for_type(LoginDto)) == 3

    def test_validatable_marker_anchors_every_member(self) -> None:
        rules = AttributeRuleAdapter(MetadataCache()).adapt(Profile)
        anchors = [r for r in rules if r.source is RuleSource.CARRIER]
        assert [r.member.name for r in anchors] == ["nickname"]
        assert not anchors[0].has_validator
        assert [r.member.name for r in rules if r.has_validator] == ["bio"]

    def test_compare_against_unknown_member_fails_at_adaptation(self) -> None:
        with pytest.raises(ConfigurationError) as exc:
            AttributeRuleAdapter(MetadataCache()).adapt(BadCompare)
        assert "Property 'missing' not found on type 'BadCompare'." in str(exc.value)
