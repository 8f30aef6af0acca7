# app/decision/schema.py
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple

from pydantic import Field

from app.records import Record


class UrgencyLevel(str, Enum):
    EMERGENCY = "emergency"
    URGENT = "urgent"
    SEMI_URGENT = "semi-urgent"
    ROUTINE = "routine"

    @property
    def rank(self) -> int:
        return _URGENCY_RANK[self]


class Probability(str, Enum):
    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"
    CONSIDER = "consider"

    @property
    def rank(self) -> float:
        return _PROBABILITY_RANK[self]


class StepPriority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MODERATE = "moderate"


_URGENCY_RANK = {
    UrgencyLevel.EMERGENCY: 4,
    UrgencyLevel.URGENT: 3,
    UrgencyLevel.SEMI_URGENT: 2,
    UrgencyLevel.ROUTINE: 1,
}

_PROBABILITY_RANK = {
    Probability.HIGH: 3,
    Probability.MODERATE: 2,
    Probability.LOW: 1,
    Probability.CONSIDER: 0.5,
}


def urgency_rank(level: Optional[UrgencyLevel]) -> int:
    """Rank used for ordering; an entry without urgency ranks 0."""
    return level.rank if level is not None else 0


# ----------------------------------------------------------------------
# Engine input
# ----------------------------------------------------------------------


class PatientDemographics(Record):
    age: Optional[int] = Field(None, ge=0, le=130)
    sex: Optional[str] = None


class HistorySnapshot(Record):
    conditions: Tuple[str, ...] = ()
    medications: Tuple[str, ...] = ()
    allergies: Tuple[str, ...] = ()


class PainSymptom(Record):
    """
    Structured pain description.

    ``location`` is the coarse body area used by the rule tables:
    head, chest, abdomen, lower-back, upper-back, pelvis, limb,
    respiratory or general.
    """

    location: str
    subzone: Optional[str] = None
    intensity: int = Field(..., ge=1, le=10)
    onset: Optional[str] = None
    duration: Optional[str] = None
    quality: Tuple[str, ...] = ()
    radiation: Tuple[str, ...] = ()
    timing: Optional[str] = None
    worsened_by: Tuple[str, ...] = ()
    relieved_by: Tuple[str, ...] = ()


class ClinicalInput(Record):
    demographics: PatientDemographics = Field(default_factory=PatientDemographics)
    medical_history: Optional[HistorySnapshot] = None
    pain: Optional[PainSymptom] = None
    associated: Tuple[str, ...] = ()
    emergency_flags: Tuple[str, ...] = ()
    # Red-flag checks answered YES with an ESCALATE action.
    escalations: Tuple[str, ...] = ()


# ----------------------------------------------------------------------
# Engine output
# ----------------------------------------------------------------------


class UrgencyAssessment(Record):
    level: UrgencyLevel
    score: int
    factors: Tuple[str, ...] = ()
    message: str
    timeframe: str


class DifferentialEntry(Record):
    condition: str
    probability: Probability
    supporting_features: Tuple[str, ...] = ()
    contra_features: Tuple[str, ...] = ()
    urgency: Optional[UrgencyLevel] = None

    @property
    def sort_key(self) -> tuple[int, float]:
        return (urgency_rank(self.urgency), self.probability.rank)


class RedFlag(Record):
    flag: str
    significance: str
    action: str


class Recommendation(Record):
    priority: int = Field(..., ge=1, le=4)
    recommendation: str
    rationale: str
    timeframe: Optional[str] = None
    details: Optional[str] = None


class NextStep(Record):
    step: str
    description: str
    priority: StepPriority


class TriageResult(Record):
    urgency: UrgencyAssessment
    possible_conditions: Tuple[DifferentialEntry, ...] = ()
    red_flags: Tuple[RedFlag, ...] = ()
    recommendations: Tuple[Recommendation, ...] = ()
    next_steps: Tuple[NextStep, ...] = ()
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    disclaimer: str = (
        "Decision support only. Not a diagnosis; a clinician must review "
        "this assessment."
    )
