"""Activation conditions and the reasons they report."""
from __future__ import annotations

import logging

import pytest

from promptstack.core.composition import (
    AssembledContext,
    ResolvedSpecs,
    SectionDefinition,
    evaluate_activation,
    register_condition,
    unregister_condition,
)
from promptstack.core.composition.activation import (
    Always,
    Custom,
    DataFound,
    DataMissing,
    FirstOccurrence,
    NoSpec,
    NotFirstOccurrence,
    RelationMissing,
    RelationPresent,
    SpecResolved,
    UnknownCondition,
    is_known_condition,
)


def _section(condition: str, data_source="memories", **activate) -> SectionDefinition:
    return SectionDefinition.from_dict(
        {
            "id": "s",
            "dataSource": data_source,
            "outputKey": "s",
            "activateWhen": {"condition": condition, **activate},
        }
    )


class TestBuiltInConditions:
    def test_always(self):
        result = evaluate_activation(_section("always"), AssembledContext({}))
        assert result.activated
        assert result.reason == Always()
        assert result.describe() == "Always active"

    def test_data_exists_with_non_empty_list(self):
        ctx = AssembledContext({"memories": [{"key": "pet"}]})
        result = evaluate_activation(_section("dataExists"), ctx)
        assert result.activated
        assert result.reason == DataFound(("memories",))
        assert result.describe() == "Data found: memories"

    def test_data_exists_with_empty_list_is_inactive(self):
        """An empty array counts as no data."""
        result = evaluate_activation(_section("dataExists"), AssembledContext({"memories": []}))
        assert not result.activated
        assert result.reason == DataMissing(("memories",))
        assert result.describe() == "No data for: memories"

    def test_data_exists_with_absent_source(self):
        result = evaluate_activation(_section("dataExists"), AssembledContext({}))
        assert not result.activated

    def test_data_exists_with_null_source(self):
        result = evaluate_activation(_section("dataExists", data_source="personality"), AssembledContext({"personality": None}))
        assert not result.activated

    def test_data_exists_scalar_and_mapping_count(self):
        """Any non-None non-list value counts as present, even zero."""
        assert evaluate_activation(_section("dataExists", data_source="callCount"), AssembledContext({"callCount": 0})).activated
        assert evaluate_activation(_section("dataExists", data_source="personality"), AssembledContext({"personality": {}})).activated

    def test_data_exists_any_of_several_sources(self):
        section = _section("dataExists", data_source=["behaviorTargets", "callerTargets"])
        ctx = AssembledContext({"behaviorTargets": [], "callerTargets": [{"parameterId": "p"}]})
        result = evaluate_activation(section, ctx)
        assert result.activated
        assert result.describe() == "Data found: callerTargets"

    def test_data_exists_all_sources_missing(self):
        section = _section("dataExists", data_source=["a", "b"])
        result = evaluate_activation(section, AssembledContext({"a": []}))
        assert not result.activated
        assert result.describe() == "No data for: a, b"

    def test_data_exists_explicit_sources_override_data_source(self):
        """activateWhen.sources decides activation independently of dataSource."""
        section = _section("dataExists", data_source="_assembled", sources=["curriculumAssertions"])
        assert not evaluate_activation(section, AssembledContext({})).activated
        ctx = AssembledContext({"curriculumAssertions": [{"assertion": "x"}]})
        assert evaluate_activation(section, ctx).activated

    def test_data_exists_on_assembled_context_always_counts(self):
        result = evaluate_activation(_section("dataExists", data_source="_assembled"), AssembledContext({}))
        assert result.activated

    def test_spec_resolved(self):
        ctx = AssembledContext({}, resolved_specs=ResolvedSpecs(content={"name": "Food Safety"}))
        result = evaluate_activation(_section("specResolved", spec="content"), ctx)
        assert result.activated
        assert result.reason == SpecResolved("content", "Food Safety")
        assert result.describe() == "Content spec resolved: Food Safety"

    def test_spec_resolved_defaults_to_content(self):
        result = evaluate_activation(_section("specResolved"), AssembledContext({}))
        assert not result.activated
        assert result.reason == NoSpec("content")
        assert result.describe() == "No content spec in playbook (none)"

    def test_spec_resolved_for_identity(self):
        ctx = AssembledContext({}, resolved_specs=ResolvedSpecs(identity={"name": "Tutor"}))
        assert evaluate_activation(_section("specResolved", spec="identity"), ctx).activated
        assert not evaluate_activation(_section("specResolved", spec="voice"), ctx).activated

    def test_entity_has_relation(self):
        ctx = AssembledContext({"caller": {"id": "c1", "domain": {"name": "Food Safety"}}})
        result = evaluate_activation(_section("entityHasRelation", relation="domain"), ctx)
        assert result.activated
        assert result.reason == RelationPresent("domain", "Food Safety")
        assert result.describe() == "Domain: Food Safety"

    def test_entity_without_relation(self):
        ctx = AssembledContext({"caller": {"id": "c1", "domain": None}})
        result = evaluate_activation(_section("entityHasRelation"), ctx)
        assert not result.activated
        assert result.reason == RelationMissing("domain")
        assert result.describe() == "Caller has no domain assigned"

    def test_first_occurrence(self):
        first = AssembledContext({}, shared_state={"is_first_call": True})
        later = AssembledContext({}, shared_state={"is_first_call": False})
        assert evaluate_activation(_section("isFirstOccurrence"), first).reason == FirstOccurrence()
        result = evaluate_activation(_section("isFirstOccurrence"), later)
        assert not result.activated
        assert result.reason == NotFirstOccurrence()
        assert result.describe() == "Not first call"

    def test_first_occurrence_in_scope(self):
        ctx = AssembledContext({}, shared_state={"is_first_call_in_domain": True})
        result = evaluate_activation(_section("isFirstOccurrenceInScope"), ctx)
        assert result.activated
        assert result.describe() == "First call in current domain"


class TestLegacyAliases:
    @pytest.mark.parametrize(
        "tag, state, expected",
        [
            ("callCount == 0", {"is_first_call": True}, True),
            ("callCount == 0", {"is_first_call": False}, False),
            ("firstCallInDomain", {"is_first_call_in_domain": True}, True),
        ],
    )
    def test_first_call_aliases(self, tag, state, expected):
        ctx = AssembledContext({}, shared_state=state)
        assert evaluate_activation(_section(tag), ctx).activated is expected

    def test_content_spec_exists_alias(self):
        ctx = AssembledContext({}, resolved_specs=ResolvedSpecs(content={"name": "C"}))
        assert evaluate_activation(_section("contentSpecExists"), ctx).activated

    def test_caller_has_domain_alias(self):
        ctx = AssembledContext({"caller": {"domain": {"name": "D"}}})
        assert evaluate_activation(_section("callerHasDomain"), ctx).activated

    def test_aliases_are_known(self):
        for tag in ("contentSpecExists", "callerHasDomain", "callCount == 0", "firstCallInDomain"):
            assert is_known_condition(tag)


class TestUnknownConditions:
    def test_activates_by_default(self):
        """An unrecognised tag still runs the section; the reason names the tag."""
        result = evaluate_activation(_section("typoedTag"), AssembledContext({}))
        assert result.activated
        assert result.reason == UnknownCondition("typoedTag")
        assert result.describe() == "Unknown condition: typoedTag"

    def test_closed_policy_deactivates_and_warns(self, caplog):
        with caplog.at_level(logging.WARNING, logger="promptstack.core.composition.activation"):
            result = evaluate_activation(_section("typoedTag"), AssembledContext({}), unknown_policy="closed")
        assert not result.activated
        assert result.reason == UnknownCondition("typoedTag")
        assert result.describe() == "Unknown condition: typoedTag"
        assert any("typoedTag" in r.getMessage() for r in caplog.records)


class TestCustomConditions:
    def test_registered_condition(self):
        @register_condition("hasOnboarding")
        def has_onboarding(context, section):
            return bool(context.loaded_data.get("onboardingSession"))

        try:
            assert is_known_condition("hasOnboarding")
            active = evaluate_activation(_section("hasOnboarding"), AssembledContext({"onboardingSession": {"id": 1}}))
            inactive = evaluate_activation(_section("hasOnboarding"), AssembledContext({}))
            assert active.activated
            assert active.reason == Custom("hasOnboarding")
            assert active.describe() == "Custom condition: hasOnboarding"
            assert not inactive.activated
        finally:
            unregister_condition("hasOnboarding")

        assert not is_known_condition("hasOnboarding")

    def test_custom_detail_in_description(self):
        assert Custom("x", "extra").describe() == "Custom condition: x (extra)"
