from __future__ import annotations

from promptstack.core.composition import AssembledContext, ResolvedSpecs, SectionDefinition
from promptstack.core.composition.transforms import get_transform

SECTION = SectionDefinition.from_dict({"id": "identity"})


class TestIdentitySpec:
    def test_extracts_role_and_goal(self, identity_spec):
        ctx = AssembledContext({}, resolved_specs=ResolvedSpecs(identity=identity_spec))
        result = get_transform("extractIdentitySpec")(None, ctx, SECTION)
        assert result["specName"] == "Patient Tutor"
        assert result["role"] == "You are a patient tutor who explains things clearly."
        assert result["primaryGoal"] == "Build understanding"
        assert result["boundaries"] == {"does": [], "doesNot": []}
        assert result["sessionStructure"] is None
        assert result["assessmentApproach"] is None

    def test_generic_name_is_replaced_with_domain(self):
        identity = {"name": "Generic Tutor", "config": {"tutor_role": {"roleStatement": "Nested role"}}}
        ctx = AssembledContext(
            {"caller": {"id": "c", "domain": {"name": "Food Safety"}}},
            resolved_specs=ResolvedSpecs(identity=identity),
        )
        result = get_transform("extractIdentitySpec")(None, ctx, SECTION)
        assert result["specName"] == "Food Safety Tutor Identity"
        assert result["domain"] == "Food Safety"
        assert result["role"] == "Nested role"

    def test_generic_name_kept_without_domain(self):
        ctx = AssembledContext({}, resolved_specs=ResolvedSpecs(identity={"name": "Generic Tutor"}))
        assert get_transform("extractIdentitySpec")(None, ctx, SECTION)["specName"] == "Generic Tutor"

    def test_structure_and_assessment(self):
        identity = {
            "name": "Tutor",
            "config": {
                "opening": "Greet",
                "principles": ["Check understanding"],
                "techniques": [{"name": "Socratic", "description": "Ask", "when": "Always", "extra": 1}],
            },
        }
        ctx = AssembledContext({}, resolved_specs=ResolvedSpecs(identity=identity))
        result = get_transform("extractIdentitySpec")(None, ctx, SECTION)
        assert result["sessionStructure"] == {"opening": "Greet", "main": None, "closing": None}
        assert result["assessmentApproach"] == {"principles": ["Check understanding"], "methods": []}
        assert result["techniques"] == [{"name": "Socratic", "description": "Ask", "when": "Always"}]

    def test_no_identity(self):
        assert get_transform("extractIdentitySpec")(None, AssembledContext({}), SECTION) is None


class TestContentSpec:
    def test_modules_and_names(self, content_spec):
        ctx = AssembledContext({}, resolved_specs=ResolvedSpecs(content=content_spec))
        result = get_transform("extractContentSpec")(None, ctx, SECTION)
        assert result["specName"] == "Food Safety Curriculum"
        assert result["curriculumName"] == "Food Safety L2"
        assert result["totalModules"] == 2
        assert [m["slug"] for m in result["modules"]] == ["m1", "m2"]
        assert result["assessmentCriteria"] == {"comprehension": [], "application": [], "mastery": []}

    def test_no_content(self):
        assert get_transform("extractContentSpec")(None, AssembledContext({}), SECTION) is None
