from dataclasses import dataclass, field
from typing import Annotated

import pytest

from fluent_annotations.errors import ConfigurationError, UnsupportedMemberError
from fluent_annotations.validation import MemberKind, MemberRef, Required, select_member
from fluent_annotations.validation.members import element_type_of, iter_elements, value_type_of

from .models import Basket, LineItem, LoginDto


@dataclass
class Person:
    first: str = ""
    last: str = ""
    tags: list[str] = field(default_factory=list)
    scores: dict[str, int] = field(default_factory=dict)
    manager: Annotated["Person | None", Required()] = None

    @property
    def initials(self) -> str:
        return f"{self.first[:1]}{self.last[:1]}"

    def full_name(self) -> str:
        return f"{self.first} {self.last}"


class TestSelectMember:
    def test_name_lambda_and_ref_resolve_to_equal_members(self) -> None:
        by_name = select_member(LoginDto, "email")
        by_lambda = select_member(LoginDto, lambda x: x.email)
        by_ref = select_member(LoginDto, MemberRef(LoginDto, "email"))
        assert by_name == by_lambda == by_ref
        assert hash(by_name) == hash(by_lambda)
        assert by_name.key == (f"{LoginDto.__module__}.LoginDto", "email")

    def test_kinds(self) -> None:
        assert select_member(Person, "first").kind is MemberKind.FIELD
        assert select_member(Person, lambda p: p.initials).kind is MemberKind.PROPERTY
        assert select_member(Person, lambda p: p.full_name()).kind is MemberKind.METHOD

    def test_unknown_member_fails_at_configuration(self) -> None:
        with pytest.raises(ConfigurationError) as exc:
            select_member(LoginDto, "nickname")
        assert "nickname" in str(exc.value)

    def test_selector_must_read_exactly_one_member(self) -> None:
        with pytest.raises(ConfigurationError):
            select_member(LoginDto, lambda x: (x.email, x.password))
        with pytest.raises(ConfigurationError):
            select_member(LoginDto, lambda x: 42)


class TestAccessors:
    def test_get_and_set_field(self) -> None:
        person = Person(first="Ada", last="Lovelace")
        ref = select_member(Person, "first")
        assert ref.get_value(person) == "Ada"
        ref.set_value(person, "Augusta")
        assert person.first == "Augusta"

    def test_method_member_is_called_on_read(self) -> None:
        ref = select_member(Person, lambda p: p.full_name())
        assert ref.get_value(Person(first="Ada", last="Lovelace")) == "Ada Lovelace"

    def test_assigning_method_or_read_only_property_raises(self) -> None:
        person = Person()
        with pytest.raises(UnsupportedMemberError):
            select_member(Person, lambda p: p.full_name()).set_value(person, "x")
        with pytest.raises(UnsupportedMemberError):
            select_member(Person, "initials").set_value(person, "x")


class TestTypeHelpers:
    def test_element_types(self) -> None:
        assert element_type_of(Basket, "items") is LineItem
        assert element_type_of(Person, "tags") is str
        assert element_type_of(Person, "scores") is int
        assert element_type_of(Person, "first") is None

    def test_value_type_strips_annotated_and_optional(self) -> None:
        assert value_type_of(Person, "manager") is Person

    def test_iter_elements(self) -> None:
        assert list(iter_elements([1, 2])) == [1, 2]
        assert list(iter_elements({"a": 1})) == [1]
        assert list(iter_elements(None)) == []
        assert list(iter_elements("abc")) == []
