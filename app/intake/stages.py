# app/intake/stages.py
from __future__ import annotations

from enum import Enum
from typing import Dict, Mapping, Type, TypeVar

E = TypeVar("E", bound=Enum)
V = TypeVar("V")


def exhaustive(enum_cls: Type[E], mapping: Mapping[E, V], name: str) -> Dict[E, V]:
    """
    Return ``mapping`` as a dict after checking it has exactly one entry per
    member of ``enum_cls``. Raises at import time instead of silently falling
    through to a default at lookup time.
    """
    missing = [m.value for m in enum_cls if m not in mapping]
    extra = [k for k in mapping if not isinstance(k, enum_cls)]
    if missing or extra:
        raise ValueError(
            f"{name} must cover every {enum_cls.__name__}: "
            f"missing={missing} unexpected={extra}"
        )
    return dict(mapping)


class Language(str, Enum):
    EN = "en"
    UR = "ur"


class IntakePhase(str, Enum):
    EMERGENCY = "emergency"
    COMPLAINT_SELECTION = "complaint_selection"
    BODY_MAP = "body_map"
    BASELINE = "baseline"
    COMPLAINT_TREE = "complaint_tree"
    SUMMARY = "summary"
    COMPLETE = "complete"


class StepType(str, Enum):
    EMERGENCY = "emergency"
    COMPLAINT = "complaint"
    BODY_MAP = "bodyMap"
    BASELINE = "baseline"
    QUESTION = "question"


class ComplaintType(str, Enum):
    CHEST_PAIN = "chest_pain"
    HEADACHE = "headache"
    ABDOMINAL_PAIN = "abdominal_pain"
    FEVER = "fever"
    COUGH = "cough"
    SHORTNESS_OF_BREATH = "shortness_of_breath"
    DIZZINESS = "dizziness"
    RASH = "rash"
    INJURY = "injury"
    BACK_PAIN = "back_pain"
    JOINT_PAIN = "joint_pain"
    NAUSEA_VOMITING = "nausea_vomiting"
    DIARRHEA = "diarrhea"
    URINARY_SYMPTOMS = "urinary_symptoms"
    GENERAL_WEAKNESS = "general_weakness"
    OTHER = "other"


class TreeKey(str, Enum):
    CHEST_PAIN = "CHEST_PAIN"
    ABDOMINAL_PAIN = "ABDOMINAL_PAIN"
    HEADACHE = "HEADACHE"
    BACK_PAIN = "BACK_PAIN"
    PELVIC_PAIN = "PELVIC_PAIN"
    LIMB_PAIN = "LIMB_PAIN"
    RESPIRATORY = "RESPIRATORY"
    GENERAL = "GENERAL"


# Display progress per phase. Monotonic, display only.
PHASE_PROGRESS: Dict[IntakePhase, int] = exhaustive(
    IntakePhase,
    {
        IntakePhase.EMERGENCY: 16,
        IntakePhase.COMPLAINT_SELECTION: 32,
        IntakePhase.BODY_MAP: 48,
        IntakePhase.BASELINE: 64,
        IntakePhase.COMPLAINT_TREE: 80,
        IntakePhase.SUMMARY: 95,
        IntakePhase.COMPLETE: 100,
    },
    "PHASE_PROGRESS",
)

# Step record pushed onto the navigation stack when a phase is left.
# SUMMARY and COMPLETE push nothing: finalisation clears the session.
STEP_FOR_PHASE: Dict[IntakePhase, tuple[str, StepType]] = {
    IntakePhase.EMERGENCY: ("emergency_check", StepType.EMERGENCY),
    IntakePhase.COMPLAINT_SELECTION: ("complaint_selection", StepType.COMPLAINT),
    IntakePhase.BODY_MAP: ("body_mapping", StepType.BODY_MAP),
    IntakePhase.BASELINE: ("baseline_history", StepType.BASELINE),
    IntakePhase.COMPLAINT_TREE: ("complaint_tree", StepType.QUESTION),
}


def phase_order(is_first_time: bool) -> list[IntakePhase]:
    """Mandatory phase order. Returning patients skip BASELINE."""
    return [
        phase
        for phase in IntakePhase
        if is_first_time or phase is not IntakePhase.BASELINE
    ]


def phase_after_step(step_type: StepType | None, is_first_time: bool) -> IntakePhase:
    """
    Phase the user is in when ``step_type`` is the top of the navigation
    stack (``None`` meaning the stack is empty).
    """
    if step_type is None:
        return IntakePhase.EMERGENCY
    return _PHASE_AFTER_STEP[step_type](is_first_time)


_PHASE_AFTER_STEP = exhaustive(
    StepType,
    {
        StepType.EMERGENCY: lambda first: IntakePhase.COMPLAINT_SELECTION,
        StepType.COMPLAINT: lambda first: IntakePhase.BODY_MAP,
        StepType.BODY_MAP: lambda first: (
            IntakePhase.BASELINE if first else IntakePhase.COMPLAINT_TREE
        ),
        StepType.BASELINE: lambda first: IntakePhase.COMPLAINT_TREE,
        StepType.QUESTION: lambda first: IntakePhase.SUMMARY,
    },
    "_PHASE_AFTER_STEP",
)
