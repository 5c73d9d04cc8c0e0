"""Session plans: first call, lesson-plan sessions and returning callers."""
from __future__ import annotations

import pytest

from promptstack.core.composition import AssembledContext, SectionDefinition
from promptstack.core.composition.transforms import get_transform
from promptstack.core.composition.transforms.pedagogy import PRINCIPLES, phase_step

SECTION = SectionDefinition.from_dict({"id": "instructions_pedagogy"})

MODULES = [
    {"id": "m1", "name": "Hygiene", "description": "handwashing basics"},
    {"id": "m2", "name": "Temperature", "description": "the danger zone"},
]


def _run(loaded=None, **state):
    ctx = AssembledContext(loaded or {}, shared_state=state)
    return get_transform("computeSessionPedagogy")(None, ctx, SECTION)


class TestFirstCall:
    def test_default_flow_introduces_first_module(self):
        plan = _run(is_first_call=True, modules=MODULES)
        assert plan["sessionType"] == "FIRST_CALL"
        assert plan["flow"][2] == "3. Introduce foundation: Hygiene"
        assert len(plan["flow"]) == 5
        assert plan["newMaterial"] == {
            "module": "Hygiene",
            "approach": "Start with handwashing basics. Use concrete examples before abstractions.",
        }
        assert plan["principles"] == PRINCIPLES

    def test_default_flow_without_modules(self):
        plan = _run(is_first_call=True)
        assert plan["flow"][2] == "3. Introduce foundation: first concept"
        assert "newMaterial" not in plan

    def test_domain_onboarding_phases_win(self):
        loaded = {
            "caller": {"domain": {"onboardingFlowPhases": {"phases": [{"phase": "welcome", "duration": "2 min"}]}}},
            "onboardingSpec": {"config": {"firstCallFlow": {"phases": [{"phase": "spec phase"}]}}},
        }
        plan = _run(loaded, is_first_call=True)
        assert plan["flow"] == ["1. Welcome (2 min)"]

    def test_onboarding_spec_flow(self):
        flow = {
            "phases": [
                {
                    "phase": "discover",
                    "goals": ["Find prior knowledge", "Build rapport"],
                    "avoid": ["Jargon"],
                    "content": [{"instruction": "Ask about their job"}, {"note": "no instruction"}],
                }
            ],
            "successMetrics": ["Learner speaks first"],
        }
        plan = _run({"onboardingSpec": {"config": {"firstCallFlow": flow}}}, is_first_call=True)
        assert plan["flow"] == ["1. Discover: Find prior knowledge; Build rapport [Content: Ask about their job]"]
        assert plan["firstCallPhases"][0]["avoid"] == ["Jargon"]
        assert plan["successMetrics"] == ["Learner speaks first"]

    def test_phase_step_without_name(self):
        assert phase_step(2, {}) == "2. Phase"


class TestReturningCaller:
    def test_review_then_new_material(self):
        plan = _run(
            is_first_call=False,
            module_to_review=MODULES[0],
            next_module=MODULES[1],
            review_type="application",
            review_reason="4 days gap - application question to check retention",
        )
        assert plan["sessionType"] == "RETURNING_CALLER"
        assert len(plan["flow"]) == 7
        assert plan["flow"][1] == "2. Spaced retrieval (application) - recall question on Hygiene"
        assert plan["flow"][3] == "4. Bridge - connect Hygiene to Temperature"
        assert plan["reviewFirst"] == {
            "module": "Hygiene",
            "reason": "4 days gap - application question to check retention",
            "technique": "Give a scenario requiring them to apply the concept",
        }
        assert plan["newMaterial"]["approach"] == "After confirming Hygiene understanding, introduce the danger zone"

    def test_deep_review_uses_default_technique(self):
        plan = _run(is_first_call=False, module_to_review=MODULES[0], review_type="deep_review")
        assert plan["reviewFirst"]["technique"] == "Walk through the concept again with a fresh example"
        assert "newMaterial" not in plan

    def test_nothing_known(self):
        plan = _run(is_first_call=False)
        assert plan["flow"][1] == "2. Spaced retrieval (quick_recall) - recall question on previous concept"
        assert "reviewFirst" not in plan


class TestLessonPlanSessions:
    @pytest.mark.parametrize(
        "session_type, first_step",
        [
            ("introduce", "1. Reconnect - brief check-in on how they're doing"),
            ("deepen", "1. Quick recall of Temperature basics"),
            ("review", "1. Reconnect - reference recent sessions"),
            ("assess", "1. Set expectations - this session checks understanding, NO new material"),
            ("consolidate", "1. Big picture - how the modules fit together"),
            ("workshop", "1. Reconnect - reference last session"),
        ],
    )
    def test_flow_per_session_type(self, session_type, first_step):
        plan = _run(
            is_first_call=False,
            next_module=MODULES[1],
            lesson_plan_session_type=session_type,
            lesson_plan_entry={"session": 3, "type": session_type, "label": "Session 3"},
            current_session_number=3,
        )
        assert plan["sessionType"] == session_type.upper()
        assert plan["flow"][0] == first_step
        assert plan["lessonPlanSession"] == {"number": 3, "type": session_type, "label": "Session 3"}

    def test_new_material_only_for_teaching_sessions(self):
        intro = _run(lesson_plan_session_type="introduce", lesson_plan_entry={"moduleLabel": "Allergens"})
        assess = _run(lesson_plan_session_type="assess", lesson_plan_entry={})
        assert intro["newMaterial"] == {
            "module": "Allergens",
            "approach": "Introduce Allergens from scratch. Use concrete examples before abstractions.",
        }
        assert "newMaterial" not in assess
