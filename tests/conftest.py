"""Shared fixtures."""
import pytest
from babel import Locale

from fluent_annotations.config import ValidationOptions
from fluent_annotations.logging import configure_logging
from fluent_annotations.validation import FluentValidatorRoot


@pytest.fixture
def options() -> ValidationOptions:
    return ValidationOptions(default_culture=Locale.parse("en_US"))


@pytest.fixture
def root(options: ValidationOptions) -> FluentValidatorRoot:
    return FluentValidatorRoot(options)


@pytest.fixture(scope="session", autouse=True)
def quiet_logging() -> None:
    configure_logging(level="WARNING")
