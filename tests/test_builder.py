import pytest

from fluent_annotations.config import ValidationOptions
from fluent_annotations.errors import ConfigurationError, ErrorCode
from fluent_annotations.validation import (
    EmailAddress,
    FluentValidatorRoot,
    Required,
    RuleBehavior,
    RuleSource,
)

from .models import AccountDto, LoginDto, RegisterDto


def _messages(result) -> list[str]:
    return [f.error_message for f in result.errors]


class TestWhenOtherwise:
    @pytest.fixture
    def configured(self, root: FluentValidatorRoot) -> FluentValidatorRoot:
        cfg = root.for_type(AccountDto)
        cfg.rule_for(lambda a: a.nickname) \
            .when(lambda a: a.age >= 18, lambda b: b.must(lambda v: v == "adult").with_message("Adult branch")) \
            .otherwise(lambda b: b.must(lambda v: v == "minor").with_message("Minor branch"))
        cfg.build()
        return root

    def test_only_when_branch_runs_when_predicate_holds(self, configured: FluentValidatorRoot) -> None:
        assert _messages(configured.validate(AccountDto(age=20, nickname="x"))) == ["Adult branch"]

    def test_only_otherwise_branch_runs_when_predicate_fails(self, configured: FluentValidatorRoot) -> None:
        assert _messages(configured.validate(AccountDto(age=10, nickname="x"))) == ["Minor branch"]

    def test_passing_values(self, configured: FluentValidatorRoot) -> None:
        assert configured.validate(AccountDto(age=20, nickname="adult")).is_valid
        assert configured.validate(AccountDto(age=10, nickname="minor")).is_valid

    def test_async_predicate_with_sync_validate(self, root: FluentValidatorRoot) -> None:
        async def is_adult(account: AccountDto) -> bool:
            return account.age >= 18

        cfg = root.for_type(AccountDto)
        cfg.rule_for(lambda a: a.nickname) \
            .when_async(is_adult, lambda b: b.not_empty().with_message("Adult branch")) \
            .otherwise(lambda b: b.empty().with_message("Minor branch"))
        cfg.build()

        assert _messages(root.validate(AccountDto(age=30))) == ["Adult branch"]
        assert _messages(root.validate(AccountDto(age=12, nickname="kid"))) == ["Minor branch"]
        assert root.validate(AccountDto(age=12)).is_valid

    @pytest.mark.asyncio
    async def test_async_predicate_with_async_validate(self, root: FluentValidatorRoot) -> None:
        async def is_adult(account: AccountDto) -> bool:
            return account.age >= 18

        cfg = root.for_type(AccountDto)
        cfg.rule_for(lambda a: a.nickname) \
            .when_async(is_adult, lambda b: b.not_empty().with_message("Adult branch")) \
            .otherwise(lambda b: b.empty().with_message("Minor branch"))
        cfg.build()

        adult = await root.validate_async(AccountDto(age=30))
        minor = await root.validate_async(AccountDto(age=12, nickname="kid"))
        assert _messages(adult) == ["Adult branch"]
        assert _messages(minor) == ["Minor branch"]

    def test_nested_conditions_compose(self, root: FluentValidatorRoot) -> None:
        cfg = root.for_type(AccountDto)
        cfg.rule_for(lambda a: a.nickname).when(
            lambda a: a.age >= 18,
            lambda b: b.when(lambda a: a.age >= 65, lambda inner: inner.required().with_message("Senior")))
        cfg.build()
        assert root.validate(AccountDto(age=10)).is_valid
        assert root.validate(AccountDto(age=30)).is_valid
        assert _messages(root.validate(AccountDto(age=70))) == ["Senior"]

    def test_empty_block_is_rejected(self, root: FluentValidatorRoot) -> None:
        builder = root.for_type(AccountDto).rule_for(lambda a: a.nickname)
        with pytest.raises(ConfigurationError) as exc:
            builder.when(lambda a: True, lambda b: None)
        assert exc.value.code is ErrorCode.E7003_EMPTY_CONDITIONAL_BLOCK

    def test_otherwise_requires_when(self, root: FluentValidatorRoot) -> None:
        builder = root.for_type(AccountDto).rule_for(lambda a: a.nickname)
        with pytest.raises(ConfigurationError):
            builder.otherwise(lambda b: b.required())


class TestTypeLevelConfiguration:
    def test_when_gates_declared_attributes(self, root: FluentValidatorRoot) -> None:
        root.for_type(LoginDto).when(lambda x: x.email, lambda dto: dto.role == "Admin").build()

        user = root.validate(LoginDto(email=None, password="secret", role="User"))
        admin = root.validate(LoginDto(email=None, password="secret", role="Admin"))
        assert user.is_valid
        assert [f.property_name for f in admin.errors] == ["email", "email"]

    def test_conditioned_rules_replace_declared_rules_in_place(self, root: FluentValidatorRoot) -> None:
        root.for_type(LoginDto).when(lambda x: x.email, lambda dto: dto.role == "Admin").build()
        rules = root.registry.get_rules(LoginDto, "email")
        assert [r.source for r in rules] == [RuleSource.ANNOTATION, RuleSource.ANNOTATION, RuleSource.CARRIER]
        assert all(r.condition is not None for r in rules)

    def test_when_with_message_overrides_declared_messages(self, root: FluentValidatorRoot) -> None:
        root.for_type(LoginDto) \
            .when(lambda x: x.password, lambda dto: True).with_message("Password please.") \
            .build()
        result = root.validate(LoginDto(email="a@b.co"))
        assert _messages(result) == ["Password please."]

    def test_rule_replace_and_preserve(self, root: FluentValidatorRoot) -> None:
        cfg = root.for_type(LoginDto)
        cfg.rule(lambda x: x.email).maximum_length(5)
        cfg.rule(lambda x: x.password, behavior=RuleBehavior.PRESERVE).minimum_length(8)
        cfg.build()

        email_kinds = [r.validator.short_name for r in root.registry.get_rules(LoginDto, "email")]
        password_kinds = [r.validator.short_name for r in root.registry.get_rules(LoginDto, "password")]
        assert email_kinds == ["MaxLength"]
        assert password_kinds == ["Required", "MinLength"]

    def test_rule_with_predicate_and_message(self, root: FluentValidatorRoot) -> None:
        root.for_type(LoginDto) \
            .rule(lambda x: x.role, lambda role: role in ("User", "Admin"), message="{0} must be User or Admin.") \
            .build()
        result = root.validate(LoginDto(email="a@b.co", password="pw", role="Guest"))
        assert _messages(result) == ["role must be User or Admin."]

    def test_when_on_same_member_gates_attached_checks(self, root: FluentValidatorRoot) -> None:
        cfg = root.for_type(AccountDto)
        cfg.rule(lambda a: a.nickname).required().when(lambda a: a.nickname, lambda a: a.age >= 18)
        cfg.build()

        assert root.validate(AccountDto(age=10, nickname=None)).is_valid
        assert _messages(root.validate(AccountDto(age=30, nickname=None))) == ["The nickname field is required."]
        assert [r.source for r in root.registry.get_rules(AccountDto, "nickname")] == [RuleSource.FLUENT]

    def test_when_async_on_same_member_gates_attached_checks(self, root: FluentValidatorRoot) -> None:
        async def is_adult(account: AccountDto) -> bool:
            return account.age >= 18

        root.for_type(AccountDto).rule(lambda a: a.nickname).required() \
            .when_async(lambda a: a.nickname, is_adult) \
            .build()
        assert root.validate(AccountDto(age=10)).is_valid
        assert len(root.validate(AccountDto(age=30)).errors) == 1

    def test_condition_on_member_without_rules_fails(self, root: FluentValidatorRoot) -> None:
        cfg = root.for_type(LoginDto).when(lambda x: x.role, lambda dto: True)
        with pytest.raises(ConfigurationError) as exc:
            cfg.build()
        assert exc.value.code is ErrorCode.E7004_MISSING_RULE
        assert "There is no rule for the role property." in str(exc.value)

    def test_enforcement_can_be_disabled(self) -> None:
        root = FluentValidatorRoot(ValidationOptions(enforce_configuration=False))
        root.for_type(LoginDto).when(lambda x: x.role, lambda dto: True).build()
        assert root.validate(LoginDto(email="a@b.co", password="pw")).is_valid

    def test_except_excludes_member(self, root: FluentValidatorRoot) -> None:
        root.for_type(LoginDto).except_(lambda x: x.email).build()
        result = root.validate(LoginDto(email=None, password=None))
        assert [f.property_name for f in result.errors] == ["password"]

    def test_remove_rules_for_attribute_type(self, root: FluentValidatorRoot) -> None:
        root.for_type(LoginDto).remove_rules_for(lambda x: x.email, EmailAddress).build()
        kinds = [type(r.validator) for r in root.registry.get_rules(LoginDto, "email")]
        assert kinds == [Required]

    def test_remove_rules_except_for(self, root: FluentValidatorRoot) -> None:
        root.for_type(LoginDto).remove_rules_except_for(lambda x: x.password).build()
        result = root.validate(LoginDto())
        assert [f.property_name for f in result.errors] == ["password"]

    def test_unknown_member_fails_at_configuration(self, root: FluentValidatorRoot) -> None:
        with pytest.raises(ConfigurationError) as exc:
            root.for_type(LoginDto).rule_for(lambda x: x.nickname)
        assert exc.value.code is ErrorCode.E7002_UNKNOWN_MEMBER

    def test_compare_against_unknown_member_fails_at_configuration(self, root: FluentValidatorRoot) -> None:
        with pytest.raises(ConfigurationError):
            root.for_type(RegisterDto).rule_for(lambda x: x.confirm).compare("missing")

    def test_bad_bounds_fail_at_configuration(self, root: FluentValidatorRoot) -> None:
        builder = root.for_type(RegisterDto).rule_for(lambda x: x.amount)
        with pytest.raises(ConfigurationError):
            builder.range(10, 1)
        with pytest.raises(ConfigurationError):
            builder.length(5, 2)

    def test_unbuilt_type_cannot_be_validated(self, root: FluentValidatorRoot) -> None:
        root.for_type(LoginDto).rule_for(lambda x: x.role).required()
        with pytest.raises(ConfigurationError) as exc:
            root.validate(LoginDto())
        assert exc.value.code is ErrorCode.E7006_RULES_NOT_BUILT


class TestBeforeValidation:
    def test_value_is_transformed_and_written_back(self, root: FluentValidatorRoot) -> None:
        cfg = root.for_type(AccountDto)
        cfg.rule_for(lambda a: a.nickname) \
            .before_validation(lambda account, member, value: value.strip() if value else value) \
            .required()
        cfg.build()

        account = AccountDto(nickname="   ")
        result = root.validate(account)
        assert account.nickname == ""
        assert [f.property_name for f in result.errors] == ["nickname"]

    def test_second_provider_is_rejected(self, root: FluentValidatorRoot) -> None:
        builder = root.for_type(AccountDto).rule_for(lambda a: a.nickname).before_validation(lambda a, m, v: v)
        with pytest.raises(ConfigurationError) as exc:
            builder.before_validation(lambda a, m, v: v)
        assert exc.value.code is ErrorCode.E7005_DUPLICATE_VALUE_PROVIDER


class Texts:
    NicknameMissing = "Choose a nickname, {0}."


class TestMoreConfiguration:
    def test_always_validate_clears_condition(self, root: FluentValidatorRoot) -> None:
        cfg = root.for_type(LoginDto)
        cfg.when(lambda x: x.email, lambda dto: False).build()
        assert root.validate(LoginDto(password="pw")).is_valid

        cfg.always_validate(lambda x: x.email).build()
        assert len(root.validate(LoginDto(password="pw")).errors) == 2

    def test_and_gates_another_member(self, root: FluentValidatorRoot) -> None:
        root.for_type(LoginDto) \
            .when(lambda x: x.email, lambda dto: dto.role == "Admin") \
            .and_(lambda x: x.password, lambda dto: dto.role == "Admin") \
            .build()
        assert root.validate(LoginDto()).is_valid
        assert len(root.validate(LoginDto(role="Admin")).errors) == 3

    def test_localized_rule(self, root: FluentValidatorRoot) -> None:
        cfg = root.for_type(AccountDto).with_validation_resource(Texts)
        cfg.rule_for(lambda a: a.nickname).required().localized("NicknameMissing")
        cfg.build()
        assert _messages(root.validate(AccountDto())) == ["Choose a nickname, nickname."]

    def test_with_key_sets_error_code(self, root: FluentValidatorRoot) -> None:
        cfg = root.for_type(AccountDto)
        cfg.rule_for(lambda a: a.age).minimum(18).with_key("Account.TooYoung")
        cfg.build()
        failure = root.validate(AccountDto(age=3)).first_error
        assert failure.error_code == "Account.TooYoung"
        assert failure.error_message == "The field 'age' must be at least 18."

    def test_clear_rules_then_switch_type(self, root: FluentValidatorRoot) -> None:
        account_cfg = root.for_type(LoginDto).clear_rules().for_type(AccountDto)
        account_cfg.rule_for(lambda a: a.age).minimum(18)
        root.build()
        assert root.validate(LoginDto()).is_valid
        assert [f.property_name for f in root.validate(AccountDto(age=3)).errors] == ["age"]

    def test_use_fallback_message(self, root: FluentValidatorRoot) -> None:
        root.for_type(LoginDto).use_fallback_message("Please check {0}.").build()
        assert _messages(root.validate(LoginDto(email="a@b.co"))) == ["Please check {0}."]
