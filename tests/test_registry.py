import pytest

from fluent_annotations.errors import ConfigurationError, ErrorCode
from fluent_annotations.validation import (
    EmailAddress,
    FluentValidatorRoot,
    MemberRef,
    Required,
    RuleRegistry,
    RuleSource,
    ValidationRule,
    select_member,
)
from fluent_annotations.validation.rules import make_unique_key

from .models import AccountDto, LoginDto


def _rule(member: str, attribute=None, token: int = 0) -> ValidationRule:
    kind = type(attribute).__name__ if attribute is not None else "Anchor"
    return ValidationRule(
        member=select_member(LoginDto, member),
        validator=attribute,
        unique_key=make_unique_key(kind, token, LoginDto, member),
        source=RuleSource.ANNOTATION,
    )


class TestRuleRegistry:
    def test_rules_grouped_by_member_in_registration_order(self) -> None:
        registry = RuleRegistry()
        registry.add_rules(LoginDto, [_rule("password", Required()), _rule("email", Required()),
                                      _rule("email", EmailAddress(), 1)])
        grouped = registry.get_rules_by_member(LoginDto)
        assert [m.name for m in grouped] == ["password", "email"]
        assert [r.validator.short_name for r in grouped[MemberRef(LoginDto, "email")]] == ["Required", "EmailAddress"]

    def test_same_unique_key_replaces_in_place(self) -> None:
        registry = RuleRegistry()
        registry.add_rule(LoginDto, _rule("email", Required()))
        registry.add_rule(LoginDto, _rule("email", EmailAddress(), 1))
        registry.add_rule(LoginDto, _rule("email", Required(allow_empty_strings=True)))
        rules = registry.get_rules(LoginDto, "email")
        assert len(rules) == 2
        assert rules[0].validator == Required(allow_empty_strings=True)

    def test_selectors_address_the_same_group(self) -> None:
        registry = RuleRegistry()
        registry.add_rule(LoginDto, _rule("email", Required()))
        by_name = registry.get_rules(LoginDto, "email")
        by_lambda = registry.get_rules(LoginDto, lambda x: x.email)
        by_ref = registry.get_rules(LoginDto, MemberRef(LoginDto, "email"))
        assert by_name == by_lambda == by_ref
        assert registry.contains_key(LoginDto, lambda x: x.email)

    def test_unknown_member_lookups(self) -> None:
        registry = RuleRegistry()
        assert registry.get_rules(LoginDto, "nickname") == []
        assert registry.try_get(LoginDto, "password") is None
        with pytest.raises(ConfigurationError) as exc:
            registry.get(LoginDto, "password")
        assert exc.value.code is ErrorCode.E7004_MISSING_RULE
        assert "There is no rule for the password property." in str(exc.value)

    def test_remove_by_attribute_type_and_predicate(self) -> None:
        registry = RuleRegistry()
        registry.add_rules(LoginDto, [_rule("email", Required()), _rule("email", EmailAddress(), 1),
                                      _rule("password", Required())])
        assert registry.remove_all(LoginDto, "email", attribute_type=EmailAddress) == 1
        assert [r.validator.short_name for r in registry.get_rules(LoginDto, "email")] == ["Required"]
        assert registry.remove_all(LoginDto, predicate=lambda r: r.member.name == "password") == 1
        assert [m.name for m in registry.get_rules_by_member(LoginDto)] == ["email"]

    def test_built_state(self) -> None:
        registry = RuleRegistry()
        assert not registry.contains_type(LoginDto)
        registry.add_rules(LoginDto, [_rule("email", Required())], mark_built=False)
        assert registry.contains_type(LoginDto)
        assert not registry.is_built(LoginDto)
        registry.mark_built(LoginDto)
        assert registry.is_built(LoginDto)
        assert registry.remove_all_for_type(LoginDto) == 1
        assert not registry.contains_type(LoginDto)

    def test_async_rules_detected(self) -> None:
        registry = RuleRegistry()
        registry.add_rule(LoginDto, _rule("email", Required()))
        assert not registry.has_async_rules(LoginDto)

        async def allowed(_: object) -> bool:
            return True

        registry.add_rule(LoginDto, ValidationRule(member=select_member(LoginDto, "email"),
            validator=Required(), async_condition=allowed))
        assert registry.has_async_rules(LoginDto)
        assert len(registry) == 2


class TestRootRegistration:
    def test_declared_attributes_are_registered_once(self, root: FluentValidatorRoot) -> None:
        root.ensure_rules(LoginDto)
        root.ensure_rules(LoginDto)
        assert len(root.registry.get_rules_for_type(LoginDto)) == 3
        assert root.registry.is_built(LoginDto)

    def test_fluent_replacement_is_not_undone_by_adaptation(self, root: FluentValidatorRoot) -> None:
        root.for_type(LoginDto).rule(lambda x: x.email).required().build()
        root.ensure_rules(LoginDto)
        rules = root.registry.get_rules(LoginDto, "email")
        assert [(r.source, r.validator.short_name) for r in rules] == [(RuleSource.FLUENT, "Required")]

    def test_type_without_declarations_is_known_but_empty(self, root: FluentValidatorRoot) -> None:
        root.ensure_rules(AccountDto)
        assert root.registry.is_built(AccountDto)
        assert root.registry.get_rules_for_type(AccountDto) == []
