# app/intake/summarizer.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from app.decision.schema import TriageResult
from app.intake.schema import ClinicalNote, Encounter, MedicalHistory
from app.llm import LLMClient
from app.logging_config import get_logger

logger = get_logger(__name__)

RULE_ENGINE = "rule-engine"
RULE_ENGINE_EMERGENCY = "rule-engine-emergency"


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        items = [str(v).replace("-", " ") for v in value if v != "none"]
        return ", ".join(items) if items else None
    return str(value).replace("-", " ")


# ----------------------------------------------------------------------
# Section formatters
# ----------------------------------------------------------------------


def format_chief_complaint(encounter: Encounter) -> str:
    if encounter.complaint_text:
        return encounter.complaint_text.strip()

    complaint = (
        encounter.complaint_type.value.replace("_", " ")
        if encounter.complaint_type
        else "unspecified complaint"
    )
    age = encounter.demographics.age
    sex = encounter.demographics.sex
    who = " ".join(p for p in (f"{age} year old" if age is not None else None, sex) if p)
    return f"{who} with {complaint}" if who else complaint.capitalize()


def format_hpi(encounter: Encounter, location_label: Optional[str] = None) -> str:
    answers = encounter.answers
    location = location_label or encounter.body_location
    if location is None and encounter.primary_pain_point is not None:
        location = encounter.primary_pain_point.zone_id
    location = location or "unspecified location"

    quality = _text(answers.get("quality")) or "unspecified"
    onset = _text(answers.get("onset")) or "unknown"
    duration = _text(answers.get("duration")) or "unknown"
    severity = answers.get("severity")
    if severity is None and encounter.primary_pain_point is not None:
        severity = encounter.primary_pain_point.intensity

    parts = [
        f"Patient presents with {quality} pain located in the {location}.",
        f"Onset was {onset}, duration {duration}.",
        f"Severity rated {severity if severity is not None else '?'}/10.",
    ]
    radiation = _text(answers.get("radiation"))
    if radiation:
        parts.append(f"Radiates to {radiation}.")
    timing = _text(answers.get("timing"))
    if timing:
        parts.append(f"Timing: {timing}.")
    worse = _text(answers.get("worsened_by"))
    if worse:
        parts.append(f"Worse with {worse}.")
    better = _text(answers.get("relieved_by"))
    if better:
        parts.append(f"Relieved by {better}.")
    return " ".join(parts)


def format_review_of_systems(encounter: Encounter) -> Tuple[str, ...]:
    return tuple(
        symptom.replace("-", " ").capitalize() + " present"
        for symptom in encounter.associated_symptoms
    )


def format_history(history: MedicalHistory) -> Dict[str, Tuple[str, ...]]:
    return {
        "past_medical_history": tuple(c.replace("_", " ") for c in history.conditions)
        or ("No significant past medical history",),
        "medications": history.medications or ("No current medications",),
        "allergies": history.allergies or ("No known allergies",),
        "family_history": tuple(
            f"{entry.condition.replace('_', ' ')} ({entry.relative})"
            for entry in history.family_history
        ),
        "social_history": (f"Smoking: {history.smoking_status or 'not recorded'}",),
    }


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------


def build_clinical_note(
    encounter: Encounter,
    triage: TriageResult,
    location_label: Optional[str] = None,
    baseline_changes: Optional[str] = None,
) -> ClinicalNote:
    """
    Deterministic SOAP-style note for a completed intake.
    """
    urgency = triage.urgency
    alerts: List[str] = [f"{flag.flag}: {flag.action}" for flag in triage.red_flags]
    if baseline_changes:
        alerts.append(f"Patient reports baseline changes since last visit: {baseline_changes}")

    assessment = f"{urgency.level.value.upper()} (score {urgency.score}) - {urgency.timeframe}"
    if triage.possible_conditions:
        top = triage.possible_conditions[0]
        assessment += f". Leading consideration: {top.condition} ({top.probability.value})"

    return ClinicalNote(
        chief_complaint=format_chief_complaint(encounter),
        hpi=format_hpi(encounter, location_label),
        review_of_systems=format_review_of_systems(encounter),
        red_flags=tuple(f.description for f in encounter.red_flags_detected),
        alerts=tuple(alerts),
        assessment=assessment,
        generated_by=RULE_ENGINE,
        confidence=0.85,
        **format_history(encounter.medical_history),
    )


def build_emergency_note(
    encounter: Encounter,
    protocol: Optional[str],
    finding: str,
    emergency_number: str = "1122",
) -> ClinicalNote:
    """Note for an intake that was stopped and routed to emergency care."""
    return ClinicalNote(
        chief_complaint=f"EMERGENCY: {finding}",
        hpi=(
            "Intake stopped at emergency screening. "
            f"Patient answered YES to: {finding}"
        ),
        review_of_systems=(f"Emergency protocol: {protocol or 'UNKNOWN'}",),
        red_flags=(f"CRITICAL: {finding}",),
        alerts=(f"EMERGENCY - {emergency_number} recommended",),
        assessment="IMMEDIATE - Life-threatening emergency",
        generated_by=RULE_ENGINE_EMERGENCY,
        confidence=1.0,
        **format_history(encounter.medical_history),
    )


def rewrite_hpi_with_llm(
    note: ClinicalNote,
    encounter: Encounter,
    llm_client: LLMClient,
) -> ClinicalNote:
    """
    Ask the LLM to turn the rule-built HPI into a fluent paragraph.

    Raises whatever the client raises; callers decide how to degrade.
    The LLM only rewrites prose: structured fields stay rule-built.
    """
    facts = "\n".join(
        f"- {key}: {_text(value)}" for key, value in sorted(encounter.answers.items())
    )
    messages = [
        {
            "role": "system",
            "content": (
                "You are an AI clinical intake assistant. Rewrite the history of "
                "present illness as one concise paragraph for a physician.\n\n"
                "Do NOT invent details that are not in the facts. "
                "Do NOT give a diagnosis."
            ),
        },
        {
            "role": "user",
            "content": (
                f"Chief complaint: {note.chief_complaint}\n"
                f"Draft HPI: {note.hpi}\n\n"
                f"Structured answers:\n{facts}\n\n"
                "Return ONLY the paragraph, with no additional commentary."
            ),
        },
    ]

    raw = llm_client.chat(messages, temperature=0.1).strip()
    if not raw:
        raise ValueError("AI service returned an empty HPI")

    logger.info("HPI rewritten by LLM for encounter %s", encounter.id)
    return note.model_copy(update={"hpi": raw, "generated_by": "rule-engine+llm"})
