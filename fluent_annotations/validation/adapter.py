"""Attribute-to-rule adapter.

Turns every (member, attribute) pair found by the metadata cache into a
ValidationRule. Unique keys are derived from the attribute kind, its position
in the member's Annotated metadata, the model type and the member name, so
adapting a type twice and merging into a registry leaves one rule per pair.
ValidateEach attributes become for-each rules over the member's elements.
"""
from __future__ import annotations

from fluent_annotations.logging import registry_logger

from .annotations import Compare, FluentValidatable, ValidateWith
from .metadata import MetadataCache, metadata_cache
from .rules import RuleSource, ValidationRule, make_unique_key

log = registry_logger()


class AttributeRuleAdapter:
    def __init__(self, metadata: MetadataCache | None = None):
        self.metadata = metadata or metadata_cache

    def adapt(self, model_type: type) -> list[ValidationRule]:
        anchor_all = isinstance(model_type, type) and issubclass(model_type, FluentValidatable)
        rules: list[ValidationRule] = []

        for meta in self.metadata.get_members(model_type):
            if not meta.attributes:
                if anchor_all:
                    rules.append(ValidationRule(
                        member=meta.member,
                        property_name=meta.display_name,
                        unique_key=make_unique_key("Anchor", 0, model_type, meta.name),
                        source=RuleSource.CARRIER,
                    ))
                continue

            for ordinal, attribute in enumerate(meta.attributes):
                if isinstance(attribute, Compare):
                    attribute.ensure_resolvable(model_type)
                rules.append(ValidationRule(
                    member=meta.member,
                    validator=attribute,
                    property_name=meta.display_name,
                    unique_key=make_unique_key(type(attribute).__name__, ordinal, model_type, meta.name),
                    source=RuleSource.ANNOTATION,
                    for_each=isinstance(attribute, ValidateWith) and attribute.for_each,
                ))

        log.debug("attributes_adapted", model_type=model_type.__qualname__, rules=len(rules))
        return rules
