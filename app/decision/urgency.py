# app/decision/urgency.py
from __future__ import annotations

from typing import Dict, List, Tuple

from app.decision.schema import ClinicalInput, UrgencyAssessment, UrgencyLevel

# Rule-based scores never reach 100; that value is reserved for an
# explicit emergency flag from forced-choice screening.
MAX_RULE_SCORE = 95

HIGH_RISK_SYMPTOMS: Dict[str, int] = {
    "difficulty-breathing": 20,
    "confusion": 25,
    "severe-bleeding": 30,
    "chest-pressure": 20,
    "weakness": 15,
    "numbness": 15,
    "speech-problems": 25,
    "loss-of-consciousness": 35,
    "severe-allergic-reaction": 30,
    "fever-with-neck-stiffness": 30,
    "sudden-vision-loss": 25,
    "seizure": 30,
}

ANTICOAGULANTS = ("warfarin", "apixaban", "rivaroxaban")
IMMUNOCOMPROMISED_CONDITIONS = ("immunocompromised", "hiv", "chemotherapy", "transplant")

# (threshold, level, message, timeframe), checked top-down.
BANDS: List[Tuple[int, UrgencyLevel, str, str]] = [
    (
        90,
        UrgencyLevel.EMERGENCY,
        "Immediate medical attention required",
        "NOW - Go to the nearest Emergency Department",
    ),
    (
        70,
        UrgencyLevel.URGENT,
        "Urgent medical attention needed",
        "Within 2-6 hours - Visit Emergency Department or Urgent Care",
    ),
    (
        40,
        UrgencyLevel.SEMI_URGENT,
        "Medical evaluation recommended soon",
        "Within 24-48 hours",
    ),
    (
        0,
        UrgencyLevel.ROUTINE,
        "Routine medical evaluation",
        "Within 1-2 weeks",
    ),
]


class UrgencyScorer:
    """
    Additive urgency score over pain, associated symptoms, history and age.

    Every rule that fires appends a named factor so a clinician can see
    exactly why a level was chosen.
    """

    def __init__(self, emergency_number: str = "1122"):
        self.emergency_number = emergency_number

    def assess(self, data: ClinicalInput) -> UrgencyAssessment:
        if data.emergency_flags:
            return UrgencyAssessment(
                level=UrgencyLevel.EMERGENCY,
                score=100,
                factors=data.emergency_flags,
                message="Immediate medical attention required",
                timeframe=f"NOW - Call Emergency Services ({self.emergency_number})",
            )

        score = 0
        factors: List[str] = []

        def add(points: int, factor: str) -> None:
            nonlocal score
            score += points
            factors.append(factor)

        associated = set(data.associated)
        pain = data.pain

        if pain is not None:
            quality = set(pain.quality)
            radiation = set(pain.radiation)

            if pain.intensity >= 8:
                add(30, "severe-pain-intensity")
            elif pain.intensity >= 6:
                add(15, "moderate-pain-intensity")

            if pain.location == "chest":
                add(25, "chest-pain")
                if radiation & {"left-arm", "jaw"}:
                    add(20, "cardiac-pattern-radiation")
                if quality & {"crushing", "pressure"}:
                    add(15, "crushing-chest-pain")

            if pain.location == "head":
                if pain.onset == "suddenly" and pain.intensity >= 8:
                    add(40, "thunderclap-headache")
                if "worst-of-life" in quality:
                    add(35, "worst-headache-ever")

            if pain.location == "abdomen":
                if pain.intensity >= 7:
                    add(20, "severe-abdominal-pain")
                if associated & {"vomiting-blood", "blood-in-stool"}:
                    add(30, "GI-bleeding")

            if pain.onset == "suddenly":
                add(10, "sudden-onset")

        # Table order, not answer order, so factor lists are reproducible.
        for symptom, points in HIGH_RISK_SYMPTOMS.items():
            if symptom in associated:
                add(points, symptom)

        history = data.medical_history
        if history is not None:
            conditions = {c.lower() for c in history.conditions}
            medications = [m.lower() for m in history.medications]
            location = pain.location if pain is not None else None

            if conditions & {"heart-disease", "heart_disease"} and location == "chest":
                add(20, "known-cardiac-history-with-chest-pain")

            if "diabetes" in conditions and "confusion" in associated:
                add(15, "diabetic-with-altered-mental-status")

            immunocompromised = bool(conditions & set(IMMUNOCOMPROMISED_CONDITIONS)) or any(
                "immunosuppressant" in m for m in medications
            )
            if immunocompromised and "fever" in associated:
                add(15, "immunocompromised-with-fever")

            anticoagulated = any(drug in m for m in medications for drug in ANTICOAGULANTS)
            if anticoagulated and associated & {"bleeding", "severe-bleeding"}:
                add(20, "anticoagulated-with-bleeding")

        age = data.demographics.age
        if age is not None:
            if age > 65:
                add(10, "elderly-patient")
            elif age < 2:
                add(15, "infant-patient")
            elif age < 12:
                add(5, "pediatric-patient")

        score = min(score, MAX_RULE_SCORE)

        if data.escalations:
            factors.append("red-flag-escalation")
            score = max(score, 70)

        return self._band(score, factors)

    def _band(self, score: int, factors: List[str]) -> UrgencyAssessment:
        for threshold, level, message, timeframe in BANDS:
            if score >= threshold:
                return UrgencyAssessment(
                    level=level,
                    score=score,
                    factors=tuple(factors),
                    message=message,
                    timeframe=timeframe,
                )
        raise AssertionError("BANDS must end with a zero threshold")
