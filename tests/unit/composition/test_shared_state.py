"""Run-level state: modules, first-call flags, progress and review plan."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from promptstack.core.composition import ResolvedSpecs
from promptstack.core.composition.shared_state import (
    compute_shared_state,
    extract_modules,
    find_completed_modules,
    parse_timestamp,
    review_for_gap,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _calls(count: int, days_ago: int = 1):
    created = (NOW - timedelta(days=days_ago)).isoformat()
    return [{"id": f"call-{i}", "createdAt": created} for i in range(count)]


def _content(modules, **config):
    return {"slug": "CURR", "name": "Curriculum", "specRole": "CONTENT", "config": {"modules": modules, **config}}


MODULES = [
    {"id": "m1", "name": "One", "sortOrder": 0},
    {"id": "m2", "name": "Two", "sortOrder": 1},
    {"id": "m3", "name": "Three", "sortOrder": 2},
]


class TestModuleExtraction:
    def test_parameter_selector(self):
        spec = {
            "slug": "CURR",
            "config": {
                "metadata": {"curriculum": {"moduleSelector": "section=content", "masteryThreshold": 0.8}},
                "parameters": [
                    {"id": "p2", "section": "content", "name": "Second", "sequence": 2},
                    {"id": "meta", "section": "meta", "name": "Ignored"},
                    {"id": "p1", "section": "content", "config": {"chapterTitle": "First", "sequence": 1}},
                ],
            },
        }
        modules, metadata = extract_modules(spec)
        assert [m["id"] for m in modules] == ["p1", "p2"]
        assert modules[0]["name"] == "First"
        assert metadata["masteryThreshold"] == 0.8

    def test_legacy_modules_list(self):
        modules, metadata = extract_modules(_content(MODULES))
        assert [m["slug"] for m in modules] == ["m1", "m2", "m3"]
        assert metadata is None

    def test_nested_curriculum_modules(self):
        spec = {"config": {"curriculum": {"modules": [{"slug": "a", "title": "A"}]}}}
        modules, _ = extract_modules(spec)
        assert modules[0]["id"] == "a"
        assert modules[0]["name"] == "A"

    def test_subject_curriculum_fallback(self, subject_curriculum):
        state = compute_shared_state({"subjectSources": subject_curriculum}, ResolvedSpecs(), now=NOW)
        assert [m["id"] for m in state["modules"]] == ["MOD-1", "MOD-2", "MOD-3"]
        assert state["modules"][1]["learningOutcomes"] == ["LO2: Explain danger zone"]
        assert state["curriculum_spec_slug"] == "food-safety-l2"
        assert state["curriculum_metadata"]["moduleSelector"] == "subject-curriculum"

    def test_no_modules(self):
        state = compute_shared_state({}, ResolvedSpecs(), now=NOW)
        assert state["modules"] == []
        assert state["module_to_review"] is None
        assert state["next_module"] is None


class TestFlags:
    def test_first_call_without_recent_calls(self):
        state = compute_shared_state({"recentCalls": []}, ResolvedSpecs(), now=NOW)
        assert state["is_first_call"] is True
        assert state["days_since_last_call"] == 0

    def test_first_call_in_domain_follows_onboarding(self):
        incomplete = compute_shared_state({"onboardingSession": {"isComplete": False}}, ResolvedSpecs(), now=NOW)
        complete = compute_shared_state({"onboardingSession": {"isComplete": True}}, ResolvedSpecs(), now=NOW)
        assert incomplete["is_first_call_in_domain"] is True
        assert complete["is_first_call_in_domain"] is False

    def test_days_since_last_call(self):
        state = compute_shared_state({"recentCalls": _calls(1, days_ago=9)}, ResolvedSpecs(), now=NOW)
        assert state["is_first_call"] is False
        assert state["days_since_last_call"] == 9
        assert state["review_type"] == "deep_review"

    def test_thresholds_come_from_spec_config(self):
        state = compute_shared_state({}, ResolvedSpecs(), {"thresholds": {"high": 0.8, "low": 0.2}}, now=NOW)
        assert state["thresholds"] == {"high": 0.8, "low": 0.2}


class TestProgress:
    def test_estimated_from_call_count(self):
        """Without mastery records progress is half the number of calls."""
        specs = ResolvedSpecs(content=_content(MODULES))
        state = compute_shared_state({"recentCalls": _calls(4)}, specs, now=NOW)
        assert state["estimated_progress"] == 2
        assert state["last_completed_index"] == 1
        assert state["module_to_review"]["id"] == "m2"
        assert state["next_module"]["id"] == "m3"

    def test_estimate_is_capped(self):
        specs = ResolvedSpecs(content=_content(MODULES))
        state = compute_shared_state({"recentCalls": _calls(20)}, specs, now=NOW)
        assert state["estimated_progress"] == 2

    def test_completed_modules_from_attributes(self):
        specs = ResolvedSpecs(content=_content(MODULES))
        attributes = [
            {"key": "mastery_m1", "valueType": "NUMBER", "numberValue": 0.9},
            {"key": "mastery_m2", "valueType": "NUMBER", "numberValue": 0.4},
            {"key": "completed_m3", "valueType": "BOOLEAN", "booleanValue": False},
        ]
        state = compute_shared_state({"recentCalls": _calls(2), "callerAttributes": attributes}, specs, now=NOW)
        assert state["completed_modules"] == {"m1"}
        assert state["estimated_progress"] == 1
        assert state["module_to_review"]["id"] == "m1"
        assert state["next_module"]["id"] == "m2"

    def test_all_complete_has_no_next_module(self):
        specs = ResolvedSpecs(content=_content(MODULES))
        attributes = [{"key": f"completed_{m['id']}", "valueType": "BOOLEAN", "booleanValue": True} for m in MODULES]
        state = compute_shared_state({"recentCalls": _calls(6), "callerAttributes": attributes}, specs, now=NOW)
        assert state["completed_modules"] == {"m1", "m2", "m3"}
        assert state["next_module"] is None

    def test_find_completed_with_progress_key_prefix(self):
        attributes = [{"key": "curriculum:CURR:mastery:m2", "valueType": "NUMBER", "numberValue": 0.75}]
        completed = find_completed_modules(
            attributes, spec_slug="CURR", metadata={"progressKey": "current_module"}, mastery_threshold=0.7
        )
        assert completed == {"m2"}


class TestLessonPlan:
    def _bag(self, subject_curriculum, session: int):
        curriculum = subject_curriculum["subjects"][0]["curriculum"]
        curriculum["deliveryConfig"] = {
            "lessonPlan": {
                "entries": [
                    {"session": 1, "type": "introduce", "moduleId": "MOD-1", "label": "Intro"},
                    {"session": 2, "type": "assess", "moduleId": "MOD-3", "label": "Check"},
                ]
            }
        }
        return {
            "subjectSources": subject_curriculum,
            "recentCalls": _calls(2),
            "onboardingSession": {"isComplete": True},
            "callerAttributes": [
                {"key": "curriculum:food-safety-l2:current_session", "valueType": "NUMBER", "numberValue": session}
            ],
        }

    def test_plan_entry_selects_next_module(self, subject_curriculum):
        state = compute_shared_state(self._bag(subject_curriculum, 2), ResolvedSpecs(), now=NOW)
        assert state["lesson_plan_session_type"] == "assess"
        assert state["current_session_number"] == 2
        assert state["next_module"]["id"] == "MOD-3"

    def test_no_entry_for_session(self, subject_curriculum):
        state = compute_shared_state(self._bag(subject_curriculum, 7), ResolvedSpecs(), now=NOW)
        assert state["lesson_plan_entry"] is None
        assert state["current_session_number"] is None

    def test_ignored_while_onboarding(self, subject_curriculum):
        bag = self._bag(subject_curriculum, 1)
        bag["onboardingSession"] = {"isComplete": False}
        assert compute_shared_state(bag, ResolvedSpecs(), now=NOW)["lesson_plan_entry"] is None


class TestHelpers:
    @pytest.mark.parametrize(
        "days, expected",
        [(0, "quick_recall"), (3, "application"), (7, "deep_review"), (14, "reintroduce"), (30, "reintroduce")],
    )
    def test_review_for_gap(self, days, expected):
        review_type, reason = review_for_gap(days, {"reintroduce": 14, "deepReview": 7, "application": 3})
        assert review_type == expected
        assert reason

    def test_parse_timestamp(self):
        assert parse_timestamp("2026-01-02T03:04:05Z") == datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert parse_timestamp("2026-01-02").tzinfo is timezone.utc
        assert parse_timestamp("not a date") is None
        assert parse_timestamp(None) is None
