from __future__ import annotations

import pytest

from promptstack.core.composition import AssembledContext, SectionDefinition
from promptstack.core.composition.transforms import get_transform
from promptstack.core.composition.transforms.activities import (
    find_activity_spec,
    mastery_level,
    personality_adaptations,
    score_activity,
    session_phases,
)

SECTION = SectionDefinition.from_dict({"id": "activity_toolkit", "outputKey": "activityToolkit"})

STRATEGY = {
    "session_phase_recommendations": {
        "new_material": ["explain_back", "scenario"],
        "spaced_retrieval": ["quiz"],
    },
    "mastery_level_recommendations": {"novice": ["explain_back", "quiz"]},
    "max_activities_per_session": 2,
    "principles": ["One activity at a time"],
}

ACTIVITIES = [
    {
        "id": "quiz",
        "name": "Quick Quiz",
        "channel": "voice",
        "category": "assessment",
        "personality_adaptations": {"high_neuroticism": "Frame as practice, not a test"},
    },
    {
        "id": "explain_back",
        "name": "Explain It Back",
        "channel": "voice",
        "category": "recall",
        "format": {"steps": ["Ask", "Listen"], "duration": "2 min"},
    },
    {
        "id": "scenario",
        "name": "Scenario Card",
        "channel": "text",
        "category": "application",
        "format": {"text_template": "Imagine {{scenario}}"},
    },
    {"id": "unused", "name": "Unused", "channel": "voice", "category": "recall"},
]


def _activity_spec():
    return {"slug": "ACTIVITY-TOOLKIT-001", "config": {"activity_catalog": {"activities": ACTIVITIES}, "selection_strategy": STRATEGY}}


class TestScoring:
    @pytest.mark.parametrize(
        "completed, total, expected",
        [(0, 5, "novice"), (1, 0, "novice"), (2, 5, "developing"), (3, 5, "proficient"), (9, 10, "mastered")],
    )
    def test_mastery_level(self, completed, total, expected):
        assert mastery_level(completed, total) == expected

    def test_session_phases(self):
        assert session_phases({"is_first_call": True}) == ["new_material"]
        assert session_phases({"next_module": {"id": "m2"}}) == ["spaced_retrieval", "new_material"]
        assert session_phases({}) == ["spaced_retrieval"]

    def test_first_call_assessment_penalty(self):
        quiz = ACTIVITIES[0]
        assert score_activity(quiz, STRATEGY, phases=["spaced_retrieval"], mastery="novice", is_first_call=False) == 4
        assert score_activity(quiz, STRATEGY, phases=["new_material"], mastery="novice", is_first_call=True) == -1

    def test_personality_adaptations(self):
        personality = {"traits": {"neuroticism": {"level": "HIGH"}, "openness": {"level": "MODERATE"}}}
        assert personality_adaptations(ACTIVITIES[0], personality) == ["Frame as practice, not a test"]
        assert personality_adaptations(ACTIVITIES[0], None) == []

    def test_find_activity_spec(self):
        assert find_activity_spec([{"slug": "X", "config": {}}, _activity_spec()])["slug"] == "ACTIVITY-TOOLKIT-001"
        assert find_activity_spec([{"slug": "OTHER", "config": {"activities": []}}])["slug"] == "OTHER"
        assert find_activity_spec([{"slug": "X"}]) is None


class TestActivityToolkit:
    def test_first_call_recommendations(self):
        ctx = AssembledContext(
            {"systemSpecs": [_activity_spec()]},
            shared_state={"is_first_call": True, "modules": [{"id": "m1"}], "completed_modules": set()},
        )
        result = get_transform("computeActivityToolkit")(None, ctx, SECTION)

        assert result["hasActivities"] is True
        assert [r["id"] for r in result["recommended"]] == ["explain_back", "scenario"]
        explain = result["recommended"][0]
        assert explain["score"] == 4
        assert explain["reason"] == "Fits new_material phase for a novice learner"
        assert explain["format_steps"] == ["Ask", "Listen"]
        assert "text_template" not in explain
        assert result["recommended"][1]["text_template"] == "Imagine {{scenario}}"
        assert len(result["all_available"]) == 4
        assert result["principles"] == ["One activity at a time"]
        assert result["limits"]["max_per_session"] == 2
        assert result["context_signals"]["session_phase"] == "new_material"

    def test_returning_caller_gets_adapted_quiz(self):
        ctx = AssembledContext(
            {"systemSpecs": [_activity_spec()]},
            shared_state={"is_first_call": False, "modules": [{"id": "m1"}], "days_since_last_call": 4},
        )
        ctx.store("personality", {"traits": {"neuroticism": {"level": "HIGH"}}})
        ctx.store("instructions_pedagogy", {"sessionType": "RETURNING_CALLER"})
        result = get_transform("computeActivityToolkit")(None, ctx, SECTION)

        quiz = result["recommended"][0]
        assert quiz["id"] == "quiz"
        assert quiz["adaptations"] == ["Frame as practice, not a test"]
        assert result["context_signals"]["session_type"] == "RETURNING_CALLER"
        assert result["context_signals"]["days_since_last_call"] == 4

    def test_no_activity_spec(self):
        result = get_transform("computeActivityToolkit")(None, AssembledContext({}), SECTION)
        assert result == {
            "hasActivities": False,
            "recommended": [],
            "all_available": [],
            "principles": [],
            "limits": None,
            "context_signals": None,
        }
