# app/decision/recommendations.py
from __future__ import annotations

from typing import List, Sequence

from app.decision.schema import (
    ClinicalInput,
    DifferentialEntry,
    NextStep,
    Recommendation,
    StepPriority,
    UrgencyAssessment,
    UrgencyLevel,
)


def generate_recommendations(
    data: ClinicalInput,
    urgency: UrgencyAssessment,
    emergency_number: str = "1122",
) -> List[Recommendation]:
    """
    Priority 1: primary action for the urgency level (always first).
    Priority 2: specialty referrals, gated on location and level.
    Priority 3: self-care guidance.
    Priority 4: return-if-worse safety net (always last).
    """
    level = urgency.level
    location = data.pain.location if data.pain is not None else None
    recs: List[Recommendation] = []

    if level is UrgencyLevel.EMERGENCY:
        recs.append(
            Recommendation(
                priority=1,
                recommendation=f"Call Emergency Services ({emergency_number}) immediately",
                rationale=", ".join(urgency.factors),
                timeframe="NOW",
            )
        )
    elif level is UrgencyLevel.URGENT:
        recs.append(
            Recommendation(
                priority=1,
                recommendation="Visit Emergency Department or Urgent Care",
                rationale="Symptoms require prompt medical evaluation",
                timeframe=urgency.timeframe,
            )
        )
    elif level is UrgencyLevel.SEMI_URGENT:
        recs.append(
            Recommendation(
                priority=1,
                recommendation="Schedule appointment with primary care physician",
                rationale="Medical evaluation recommended for proper diagnosis",
                timeframe=urgency.timeframe,
            )
        )
    else:
        recs.append(
            Recommendation(
                priority=1,
                recommendation="Schedule routine appointment with primary care physician",
                rationale="Evaluation recommended for symptom management",
                timeframe=urgency.timeframe,
            )
        )

    if location == "head" and level is not UrgencyLevel.EMERGENCY:
        recs.append(
            Recommendation(
                priority=2,
                recommendation="Consider Neurology consultation",
                rationale="For specialized headache evaluation and management",
                details="Particularly if headaches are recurrent or refractory to treatment",
            )
        )

    if location == "chest" and level is not UrgencyLevel.EMERGENCY:
        recs.append(
            Recommendation(
                priority=2,
                recommendation="Cardiac workup recommended",
                rationale="To rule out cardiac causes of chest pain",
                details="Should include ECG, possibly stress test or cardiac imaging",
            )
        )

    if location == "abdomen" and level is UrgencyLevel.URGENT:
        recs.append(
            Recommendation(
                priority=2,
                recommendation="Surgical consultation may be needed",
                rationale="To evaluate for surgical causes of abdominal pain",
                details="Imaging (ultrasound/CT) typically performed first",
            )
        )

    recs.append(
        Recommendation(
            priority=3,
            recommendation="Keep a symptom diary",
            rationale="Track patterns, triggers, and effectiveness of treatments",
            details=(
                "Note: date/time, intensity (1-10), duration, triggers, "
                "relieving factors, associated symptoms"
            ),
        )
    )

    if data.pain is not None and data.pain.intensity <= 5:
        recs.append(
            Recommendation(
                priority=3,
                recommendation="Over-the-counter pain management",
                rationale="May provide symptomatic relief while awaiting medical evaluation",
                details=(
                    "Acetaminophen or ibuprofen as directed. Consult pharmacist "
                    "or doctor if on other medications."
                ),
            )
        )

    recs.append(
        Recommendation(
            priority=4,
            recommendation="Return immediately if symptoms worsen",
            rationale="Certain changes require urgent re-evaluation",
            details=(
                "Seek immediate care if: pain becomes severe, new neurological "
                "symptoms, fever, vomiting, bleeding"
            ),
        )
    )
    return recs


def determine_next_steps(
    urgency: UrgencyAssessment,
    conditions: Sequence[DifferentialEntry],
    emergency_number: str = "1122",
) -> List[NextStep]:
    steps: List[NextStep] = []

    if urgency.level is UrgencyLevel.EMERGENCY:
        steps.append(
            NextStep(
                step="Immediate Emergency Care",
                description=(
                    f"Call {emergency_number} or go to nearest Emergency "
                    "Department immediately"
                ),
                priority=StepPriority.CRITICAL,
            )
        )
    elif urgency.level is UrgencyLevel.URGENT:
        steps.append(
            NextStep(
                step="Urgent Medical Evaluation",
                description="Visit Urgent Care or Emergency Department within 2-6 hours",
                priority=StepPriority.HIGH,
            )
        )
    else:
        steps.append(
            NextStep(
                step="Schedule Medical Appointment",
                description=(
                    "Book appointment with appropriate physician within "
                    f"{urgency.timeframe}"
                ),
                priority=StepPriority.MODERATE,
            )
        )

    pressing = [
        c.condition.lower()
        for c in conditions
        if c.urgency in (UrgencyLevel.EMERGENCY, UrgencyLevel.URGENT)
    ]

    if any("cardiac" in name or "coronary" in name for name in pressing):
        steps.append(
            NextStep(
                step="Cardiac Workup",
                description="ECG, troponin, chest X-ray at minimum",
                priority=StepPriority.HIGH,
            )
        )

    if any("hemorrhage" in name or "stroke" in name for name in pressing):
        steps.append(
            NextStep(
                step="Neuroimaging",
                description="CT head without contrast (emergent)",
                priority=StepPriority.CRITICAL,
            )
        )

    if conditions and "surgical" in conditions[0].condition.lower():
        steps.append(
            NextStep(
                step="Surgical Consultation",
                description="Evaluation by general surgeon",
                priority=StepPriority.HIGH,
            )
        )

    return steps
