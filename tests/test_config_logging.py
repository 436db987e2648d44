import logging

from babel import Locale

from fluent_annotations.config import Settings, ValidationOptions
from fluent_annotations.logging import (
    LoggerRegistry,
    _add_service_info,
    _truncate_attempted_values,
    configure_logging,
    registry_logger,
)


class TestSettings:
    def test_default_locale_accepts_both_separators(self) -> None:
        assert Settings(DEFAULT_CULTURE="fr_FR").default_locale == Locale("fr", "FR")
        assert Settings(DEFAULT_CULTURE="de-CH").default_locale == Locale("de", "CH")

    def test_options_from_settings(self) -> None:
        source = Settings(USE_CONVENTIONAL_KEYS=False, ENFORCE_CONFIGURATION=False, DEFAULT_CULTURE="fr")
        options = ValidationOptions.from_settings(source, shared_culture=Locale("de"))
        assert not options.use_conventional_keys
        assert not options.enforce_configuration
        assert options.default_culture == Locale("fr")
        assert options.shared_culture == Locale("de")


class TestLogging:
    def test_attempted_values_are_truncated(self) -> None:
        event = _truncate_attempted_values(None, "info", {"attempted_value": "x" * 500})
        assert len(event["attempted_value"]) == 120
        assert event["attempted_value"].endswith("...")
        assert _truncate_attempted_values(None, "info", {"attempted_value": 5})["attempted_value"] == "5"

    def test_service_info(self) -> None:
        assert _add_service_info(None, "info", {})["service"] == "fluent-annotations"

    def test_domain_loggers_are_shared(self) -> None:
        assert registry_logger() is LoggerRegistry.get("registry")

    def test_configure_logging_sets_package_level(self) -> None:
        try:
            configure_logging(level="DEBUG", json_logs=True)
            package_logger = logging.getLogger("fluent_annotations")
            assert package_logger.level == logging.DEBUG
            assert not package_logger.propagate
        finally:
            configure_logging(level="WARNING")
