# app/decision/engine.py
from __future__ import annotations

from typing import TYPE_CHECKING, List

from app.decision.differential import generate_differential
from app.decision.recommendations import determine_next_steps, generate_recommendations
from app.decision.red_flags import identify_red_flags
from app.decision.schema import ClinicalInput, HistorySnapshot, TriageResult
from app.decision.urgency import UrgencyScorer
from app.logging_config import get_logger

if TYPE_CHECKING:
    from app.intake.schema import Encounter

logger = get_logger(__name__)


class ClinicalDecisionEngine:
    """
    Rule-based clinical decision support.

    Produces, in order:
      - urgency assessment (level, score, factors)
      - ranked differential diagnosis
      - red flags (independent rule table)
      - prioritised recommendations and next steps

    Stateless: one instance can be shared by every request. Output is
    decision support for a clinician, never a diagnosis.
    """

    def __init__(self, emergency_number: str = "1122"):
        self.emergency_number = emergency_number
        self.scorer = UrgencyScorer(emergency_number=emergency_number)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def analyze(self, encounter: "Encounter") -> TriageResult:
        return self.analyze_input(self.input_from_encounter(encounter))

    def analyze_input(self, data: ClinicalInput) -> TriageResult:
        urgency = self.scorer.assess(data)
        conditions = generate_differential(data)
        red_flags = identify_red_flags(data)
        recommendations = generate_recommendations(
            data, urgency, emergency_number=self.emergency_number
        )
        next_steps = determine_next_steps(
            urgency, conditions, emergency_number=self.emergency_number
        )

        logger.info(
            "Triage computed: level=%s score=%s conditions=%d red_flags=%d",
            urgency.level.value,
            urgency.score,
            len(conditions),
            len(red_flags),
        )

        return TriageResult(
            urgency=urgency,
            possible_conditions=tuple(conditions),
            red_flags=tuple(red_flags),
            recommendations=tuple(recommendations),
            next_steps=tuple(next_steps),
        )

    # ------------------------------------------------------------------
    # Encounter adapter
    # ------------------------------------------------------------------

    @staticmethod
    def input_from_encounter(encounter: "Encounter") -> ClinicalInput:
        """
        Project an Encounter onto the engine's input.

        A positive emergency screening or a STOP_INTAKE red flag becomes an
        emergency flag; ESCALATE red flags become escalations.
        """
        emergency_flags: List[str] = []
        escalations: List[str] = []

        screening = encounter.emergency_screening
        if screening is not None and screening.any_positive:
            emergency_flags.append(screening.emergency_type or "emergency-screening-positive")

        for detected in encounter.red_flags_detected:
            if detected.action == "STOP_INTAKE":
                emergency_flags.append(detected.symptom or detected.check_id)
            elif detected.action == "ESCALATE":
                escalations.append(detected.check_id)

        history = encounter.medical_history
        return ClinicalInput(
            demographics=encounter.demographics,
            medical_history=HistorySnapshot(
                conditions=history.conditions,
                medications=history.medications,
                allergies=history.allergies,
            ),
            pain=encounter.pain,
            associated=encounter.associated_symptoms,
            emergency_flags=tuple(emergency_flags),
            escalations=tuple(escalations),
        )
