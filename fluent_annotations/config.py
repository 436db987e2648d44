from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Callable

from babel import Locale
from pydantic_settings import BaseSettings

if TYPE_CHECKING:
    from fluent_annotations.validation.annotations import ValidationAttribute

ConventionalKeyGetter = Callable[[type, str, "ValidationAttribute"], "str | None"]


class Settings(BaseSettings):
    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False  # True for structured JSON, False for colored console

    # Localization
    DEFAULT_CULTURE: str = "en_US"

    # Rule configuration
    USE_CONVENTIONAL_KEYS: bool = True
    ENFORCE_CONFIGURATION: bool = True

    @property
    def default_locale(self) -> Locale:
        return Locale.parse(self.DEFAULT_CULTURE, sep="_" if "_" in self.DEFAULT_CULTURE else "-")

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()


@dataclass(slots=True)
class ValidationOptions:
    """Runtime options shared by a validator root.

    shared_resource_type: resource type consulted for conventional keys when
        neither the rule nor the model type names one.
    shared_culture: culture used for lookups and formatting when a rule sets none.
    conventional_key_getter: overrides the `{member}_{ShortName}` key scheme;
        returning None falls back to the default key.
    """
    shared_resource_type: Any = None
    shared_culture: Locale | None = None
    use_conventional_keys: bool = True
    conventional_key_getter: ConventionalKeyGetter | None = None
    enforce_configuration: bool = True
    default_culture: Locale | None = None

    @classmethod
    def from_settings(cls, source: Settings | None = None, **overrides) -> ValidationOptions:
        source = source or get_settings()
        values = {
            "use_conventional_keys": source.USE_CONVENTIONAL_KEYS,
            "enforce_configuration": source.ENFORCE_CONFIGURATION,
            "default_culture": source.default_locale,
        }
        values.update(overrides)
        return cls(**values)
