# app/decision/__init__.py
from .engine import ClinicalDecisionEngine
from .schema import (
    ClinicalInput,
    DifferentialEntry,
    HistorySnapshot,
    NextStep,
    PainSymptom,
    PatientDemographics,
    Probability,
    Recommendation,
    RedFlag,
    TriageResult,
    UrgencyAssessment,
    UrgencyLevel,
)

__all__ = [
    "ClinicalDecisionEngine",
    "ClinicalInput",
    "DifferentialEntry",
    "HistorySnapshot",
    "NextStep",
    "PainSymptom",
    "PatientDemographics",
    "Probability",
    "Recommendation",
    "RedFlag",
    "TriageResult",
    "UrgencyAssessment",
    "UrgencyLevel",
]
