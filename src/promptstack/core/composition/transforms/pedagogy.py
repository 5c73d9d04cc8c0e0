"""Session plan: review-before-new-material flow for this call.

Three flavours:

* first call: onboarding phases from the domain (or the onboarding spec),
  else a default five-step flow introducing the first module;
* lesson-plan session: the planned session type drives the flow;
* returning caller: spaced retrieval, bridge, new material.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from .common import as_records, spec_config
from .registry import register_transform

PRINCIPLES = [
    "Review BEFORE new material - never skip unless learner explicitly confirms mastery",
    "One main new concept per session - depth over breadth",
    "If review reveals gaps, stay on review - don't accumulate confusion",
    "Connection questions ('How does X relate to Y?') are more valuable than isolated recall",
]

REVIEW_TECHNIQUES = {
    "quick_recall": "Ask one recall question, wait for their attempt before proceeding",
    "application": "Give a scenario requiring them to apply the concept",
}
DEFAULT_REVIEW_TECHNIQUE = "Walk through the concept again with a fresh example"


def onboarding_flow(context: Any) -> Optional[Mapping[str, Any]]:
    """Domain onboarding phases win over the onboarding spec's first-call flow."""
    domain_flow = (context.caller_domain or {}).get("onboardingFlowPhases")
    if domain_flow and domain_flow.get("phases"):
        return domain_flow
    spec_flow = spec_config(context.loaded_data.get("onboardingSpec")).get("firstCallFlow")
    if spec_flow and spec_flow.get("phases"):
        return spec_flow
    return None


def phase_step(index: int, phase: Mapping[str, Any]) -> str:
    name = str(phase.get("phase") or "phase")
    step = f"{index}. {name[:1].upper()}{name[1:]}"
    if phase.get("duration"):
        step += f" ({phase['duration']})"
    goals = phase.get("goals") or []
    if goals:
        step += f": {'; '.join(str(g) for g in goals)}"
    instructions = [c.get("instruction") for c in as_records(phase.get("content")) if c.get("instruction")]
    if instructions:
        step += f" [Content: {'; '.join(instructions)}]"
    return step


def first_call_plan(context: Any) -> Dict[str, Any]:
    modules = context.shared_state.get("modules") or []
    first = modules[0] if modules else None
    plan: Dict[str, Any] = {"sessionType": "FIRST_CALL"}

    flow = onboarding_flow(context)
    if flow:
        phases = as_records(flow.get("phases"))
        plan["flow"] = [phase_step(i, p) for i, p in enumerate(phases, 1)]
        plan["firstCallPhases"] = [
            {
                "phase": p.get("phase"),
                "duration": p.get("duration"),
                "priority": p.get("priority"),
                "goals": p.get("goals") or [],
                "avoid": p.get("avoid") or [],
                "content": as_records(p.get("content")),
            }
            for p in phases
        ]
        plan["successMetrics"] = list(flow.get("successMetrics") or [])
    else:
        plan["flow"] = [
            "1. Welcome & set expectations",
            "2. Probe existing knowledge with open questions",
            f"3. Introduce foundation: {(first or {}).get('name') or 'first concept'}",
            "4. Check understanding with application question",
            "5. Summarize & preview next session",
        ]

    if first:
        plan["newMaterial"] = {
            "module": first.get("name"),
            "approach": f"Start with {first.get('description') or 'foundational concepts'}. "
                        "Use concrete examples before abstractions.",
        }
    return plan


def returning_plan(state: Mapping[str, Any]) -> Dict[str, Any]:
    review = state.get("module_to_review")
    upcoming = state.get("next_module")
    review_type = state.get("review_type") or "quick_recall"
    review_name = (review or {}).get("name")
    next_name = (upcoming or {}).get("name")

    plan: Dict[str, Any] = {
        "sessionType": "RETURNING_CALLER",
        "flow": [
            "1. Reconnect - reference last session specifically",
            f"2. Spaced retrieval ({review_type}) - recall question on {review_name or 'previous concept'}",
            "3. Reinforce or correct based on their recall",
            f"4. Bridge - connect {review_name or 'old'} to {next_name or 'new material'}",
            f"5. New material - introduce {next_name or 'next concept'}",
            "6. Integrate - question using both old and new",
            "7. Close with summary and preview",
        ],
    }
    if review:
        plan["reviewFirst"] = {
            "module": review_name,
            "reason": state.get("review_reason"),
            "technique": REVIEW_TECHNIQUES.get(review_type, DEFAULT_REVIEW_TECHNIQUE),
        }
    if upcoming:
        plan["newMaterial"] = {
            "module": next_name,
            "approach": f"After confirming {review_name or 'previous'} understanding, "
                        f"introduce {upcoming.get('description') or 'new concepts'}",
        }
    return plan


def _introduce_flow(label: str) -> List[str]:
    return [
        "1. Reconnect - brief check-in on how they're doing",
        f"2. Preview - explain why {label} matters and where it fits",
        f"3. Introduce {label} with one concrete example",
        "4. Check understanding with an open question",
        "5. Close with summary and preview of next session",
    ]


def _deepen_flow(label: str) -> List[str]:
    return [
        f"1. Quick recall of {label} basics",
        f"2. Deepen - work through edge cases and exceptions in {label}",
        "3. Practice - scenario questions with increasing difficulty",
        "4. Correct misconceptions as they surface",
        "5. Close with what they can now do that they couldn't before",
    ]


def _review_flow(label: str) -> List[str]:
    return [
        "1. Reconnect - reference recent sessions",
        "2. Spaced retrieval - recall questions across covered modules",
        "3. Identify gaps from their answers",
        "4. Re-teach weak spots with fresh examples",
        "5. Close with confidence check",
    ]


def _assess_flow(label: str) -> List[str]:
    return [
        "1. Set expectations - this session checks understanding, NO new material",
        "2. Diagnostic questions covering each module so far",
        "3. Note strengths and gaps without correcting mid-assessment",
        "4. Debrief - share what went well and what to revisit",
        "5. Close with plan for next session",
    ]


def _consolidate_flow(label: str) -> List[str]:
    return [
        "1. Big picture - how the modules fit together",
        "2. Synthesize - questions connecting two or more modules",
        "3. Apply to a realistic end-to-end scenario",
        "4. Fill any remaining gaps",
        "5. Close with summary of the whole journey",
    ]


LESSON_FLOWS = {
    "introduce": _introduce_flow,
    "deepen": _deepen_flow,
    "review": _review_flow,
    "assess": _assess_flow,
    "consolidate": _consolidate_flow,
}

NEW_MATERIAL_APPROACHES = {
    "introduce": "Introduce {label} from scratch. Use concrete examples before abstractions.",
    "deepen": "Build on what they know about {label}. Push into harder cases and application.",
}


def lesson_plan(state: Mapping[str, Any]) -> Dict[str, Any]:
    entry = state.get("lesson_plan_entry") or {}
    session_type = str(state.get("lesson_plan_session_type") or entry.get("type") or "")
    label = entry.get("moduleLabel") or (state.get("next_module") or {}).get("name") or "this module"

    builder = LESSON_FLOWS.get(session_type)
    if builder is not None:
        flow = builder(label)
    else:
        flow = [
            "1. Reconnect - reference last session",
            f"2. Work through {label}",
            "3. Check understanding",
            "4. Close with summary and preview",
        ]

    plan: Dict[str, Any] = {"sessionType": session_type.upper(), "flow": flow}
    approach = NEW_MATERIAL_APPROACHES.get(session_type)
    if approach:
        plan["newMaterial"] = {"module": label, "approach": approach.format(label=label)}
    plan["lessonPlanSession"] = {
        "number": state.get("current_session_number"),
        "type": session_type,
        "label": entry.get("label"),
    }
    return plan


@register_transform("computeSessionPedagogy")
def compute_session_pedagogy(raw: Any, context: Any, section: Any) -> Dict[str, Any]:
    state = context.shared_state
    if state.get("is_first_call"):
        plan = first_call_plan(context)
    elif state.get("lesson_plan_session_type"):
        plan = lesson_plan(state)
    else:
        plan = returning_plan(state)
    plan["principles"] = list(PRINCIPLES)
    return plan


__all__ = [
    "PRINCIPLES",
    "compute_session_pedagogy",
    "first_call_plan",
    "lesson_plan",
    "onboarding_flow",
    "returning_plan",
]
