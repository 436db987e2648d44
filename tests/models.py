"""Models shared by the test modules."""
from dataclasses import dataclass, field
from typing import Annotated

from pydantic import BaseModel, Field

from fluent_annotations.validation import (
    Compare,
    EmailAddress,
    FluentValidatable,
    Range,
    Required,
    StringLength,
    ValidateEach,
    ValidateWith,
    inherit_rules,
)


@dataclass
class LoginDto:
    email: Annotated[str | None, Required(), EmailAddress()] = None
    password: Annotated[str | None, Required()] = None
    role: str = "User"


@dataclass
class RegisterDto:
    password: Annotated[str | None, Required(), StringLength(5)] = None
    confirm: Annotated[str | None, Compare("password")] = None
    amount: Annotated[float, Range(0.5, 2.5)] = 1.0


@dataclass
class AccountDto:
    age: int = 0
    nickname: str | None = None


@dataclass
class LineItem:
    name: str | None = None
    quantity: int = 0


@dataclass
class Basket:
    items: list[LineItem] = field(default_factory=list)
    strict: bool = True


@dataclass
class Order:
    order_id: str | None = None


@dataclass
class Product:
    orders: list[Order] = field(default_factory=list)


@dataclass
class CartLine:
    products: list[Product] = field(default_factory=list)


@dataclass
class Cart:
    items: list[CartLine] = field(default_factory=list)


@dataclass
class Profile(FluentValidatable):
    nickname: str | None = None
    bio: Annotated[str | None, StringLength(10)] = None


class SignupModel(BaseModel):
    email: Annotated[str | None, Required(), EmailAddress()] = None
    age: Annotated[int, Range(18, 130)] = Field(default=18, title="Age in years")


@dataclass
class Contact:
    email: Annotated[str | None, Required(), EmailAddress()] = None


@dataclass
class Team:
    members: Annotated[list[Contact], ValidateEach(Contact)] = field(default_factory=list)
    lead: Annotated[Contact | None, ValidateWith(Contact)] = None


@dataclass
class Department:
    teams: Annotated[list[Team], ValidateEach(Team)] = field(default_factory=list)


@inherit_rules(LoginDto)
@dataclass
class AdminLoginDto:
    email: str | None = None
    password: Annotated[str | None, StringLength(20)] = None
    token: str | None = None
