from __future__ import annotations

from promptstack.core.composition import AssembledContext, ResolvedSpecs, SectionDefinition
from promptstack.core.composition.transforms import get_transform
from promptstack.core.composition.transforms.voice import (
    DEFAULT_PACE,
    EXTROVERT_PACE,
    INTROVERT_PACE,
    build_voice_guidance,
    pace_match,
    voice_adaptations,
)

SECTION = SectionDefinition.from_dict({"id": "instructions_voice"})
THRESHOLDS = {"high": 0.65, "low": 0.35}


class TestPace:
    def test_pace_follows_extraversion(self):
        assert pace_match({}, {"extraversion": 0.2}, THRESHOLDS) == INTROVERT_PACE
        assert pace_match({}, {"extraversion": 0.9}, THRESHOLDS) == EXTROVERT_PACE
        assert pace_match({}, {"extraversion": 0.5}, THRESHOLDS) == DEFAULT_PACE
        assert pace_match({}, None, THRESHOLDS) == DEFAULT_PACE

    def test_configured_pace_text(self):
        pacing = {"paceAdaptation": {"introvert": "Go slow"}}
        assert pace_match(pacing, {"extraversion": 0.1}, THRESHOLDS) == "Go slow"


class TestAdaptations:
    def test_default_notes(self):
        notes = voice_adaptations({}, {"extraversion": 0.1, "neuroticism": 0.8, "openness": 0.5}, THRESHOLDS)
        assert notes == [
            "INTROVERT: Shorter turns, more pauses, don't fill silence",
            "ANXIOUS: Extra warmth, slower pace, more reassurance",
        ]

    def test_configured_labels(self):
        config = {"adaptations": {"highOpenness": {"label": "EXPLORER", "guidance": "Follow tangents"}}}
        assert voice_adaptations(config, {"openness": 0.9}, THRESHOLDS) == ["EXPLORER: Follow tangents"]

    def test_nothing_to_adapt(self):
        assert voice_adaptations({}, None, THRESHOLDS) == ["No special voice adaptations needed"]


class TestVoiceGuidance:
    def test_defaults_without_voice_spec(self):
        guidance = build_voice_guidance(None, None, THRESHOLDS)
        assert guidance["_source"] == "hardcoded defaults"
        assert guidance["response_length"]["max_seconds"] == 15
        assert guidance["interruptions"]["allow"] is True
        assert guidance["voice_rules"] == "_preamble.voiceRules"

    def test_voice_spec_overrides_keys(self):
        spec = {
            "name": "Calm Voice",
            "config": {
                "response_length": {"target": "1-2 sentences", "maxSeconds": 10},
                "interruptions": {"allow": False},
            },
        }
        guidance = build_voice_guidance(spec, None, THRESHOLDS)
        assert guidance["_source"] == "Calm Voice"
        assert guidance["response_length"]["target"] == "1-2 sentences"
        assert guidance["response_length"]["max_seconds"] == 10
        assert guidance["response_length"]["rule"].startswith("If you're about to say more than 3 sentences")
        assert guidance["interruptions"]["allow"] is False

    def test_transform_reads_loaded_personality(self):
        ctx = AssembledContext(
            {"personality": {"extraversion": 0.9}},
            resolved_specs=ResolvedSpecs(voice={"name": "Voice", "config": {}}),
        )
        guidance = get_transform("computeVoiceGuidance")(None, ctx, SECTION)
        assert guidance["pacing"]["pace_match"] == EXTROVERT_PACE
        assert guidance["_source"] == "Voice"
