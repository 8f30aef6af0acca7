# app/intake/schema.py
from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple
import uuid

from pydantic import Field

from app.decision.schema import (
    PainSymptom,
    PatientDemographics,
    TriageResult,
    UrgencyLevel,
)
from app.intake.stages import ComplaintType, Language, TreeKey
from app.records import Record


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


# ----------------------------------------------------------------------
# Emergency screening
# ----------------------------------------------------------------------


class EmergencyResponse(str, Enum):
    YES = "yes"
    NO = "no"


class RecommendedAction(str, Enum):
    CONTINUE = "continue"
    CALL_EMERGENCY = "call_1122"


class CheckpointResult(Record):
    id: str
    response: EmergencyResponse
    severity: str
    timestamp: datetime = Field(default_factory=utcnow)


class EmergencyScreeningResult(Record):
    screening_completed: bool
    screening_date: datetime = Field(default_factory=utcnow)
    checkpoints: Tuple[CheckpointResult, ...] = ()
    any_positive: bool = False
    emergency_type: Optional[str] = None
    recommended_action: RecommendedAction = RecommendedAction.CONTINUE

    @property
    def cleared(self) -> bool:
        """Finished with every checkpoint answered NO."""
        return self.screening_completed and not self.any_positive


# ----------------------------------------------------------------------
# Encounter
# ----------------------------------------------------------------------


class EncounterStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    EMERGENCY = "emergency"


class RedFlagSeverity(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MODERATE = "MODERATE"


class RedFlagAction(str, Enum):
    STOP_INTAKE = "STOP_INTAKE"
    ESCALATE = "ESCALATE"


class PainPoint(Record):
    zone_id: str
    intensity: int = Field(..., ge=1, le=10)
    radiates_to: Tuple[str, ...] = ()
    is_primary: bool = True


class DetectedRedFlag(Record):
    check_id: str
    tree_key: TreeKey
    severity: RedFlagSeverity
    action: RedFlagAction
    symptom: Optional[str] = None
    description: str
    detected_at: datetime = Field(default_factory=utcnow)


class FamilyHistoryEntry(Record):
    condition: str
    relative: str = "unspecified"
    age_of_onset: Optional[int] = None
    notes: Optional[str] = None


class MedicalHistory(Record):
    conditions: Tuple[str, ...] = ()
    medications: Tuple[str, ...] = ()
    allergies: Tuple[str, ...] = ()
    surgeries: Tuple[str, ...] = ()
    family_history: Tuple[FamilyHistoryEntry, ...] = ()
    smoking_status: Optional[str] = None


class ClinicalNote(Record):
    """
    SOAP-style note for clinician review. Never final: every note is
    marked as requiring doctor review.
    """

    chief_complaint: str
    hpi: str
    review_of_systems: Tuple[str, ...] = ()
    past_medical_history: Tuple[str, ...] = ()
    medications: Tuple[str, ...] = ()
    allergies: Tuple[str, ...] = ()
    family_history: Tuple[str, ...] = ()
    social_history: Tuple[str, ...] = ()
    red_flags: Tuple[str, ...] = ()
    alerts: Tuple[str, ...] = ()
    assessment: str = ""
    generated_by: str = "rule-engine"
    confidence: float = Field(0.7, ge=0.0, le=1.0)
    requires_doctor_review: bool = True
    generated_at: datetime = Field(default_factory=utcnow)


class Encounter(Record):
    id: str = Field(default_factory=new_id)
    patient_id: str
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    status: EncounterStatus = EncounterStatus.IN_PROGRESS
    language: Language = Language.EN

    complaint_type: Optional[ComplaintType] = None
    complaint_text: Optional[str] = None
    body_location: Optional[str] = None
    pain_points: Tuple[PainPoint, ...] = ()
    tree_key: Optional[TreeKey] = None

    emergency_screening: Optional[EmergencyScreeningResult] = None
    red_flags_detected: Tuple[DetectedRedFlag, ...] = ()
    answers: Dict[str, Any] = Field(default_factory=dict)
    baseline_answers: Dict[str, Any] = Field(default_factory=dict)
    baseline_committed: bool = False

    demographics: PatientDemographics = Field(default_factory=PatientDemographics)
    medical_history: MedicalHistory = Field(default_factory=MedicalHistory)

    # Derived when the complaint tree completes.
    pain: Optional[PainSymptom] = None
    associated_symptoms: Tuple[str, ...] = ()
    triage_override: Optional[UrgencyLevel] = None

    triage_result: Optional[TriageResult] = None
    clinical_note: Optional[ClinicalNote] = None

    @property
    def has_location(self) -> bool:
        return bool(self.pain_points) or bool(self.body_location)

    @property
    def primary_pain_point(self) -> Optional[PainPoint]:
        for point in self.pain_points:
            if point.is_primary:
                return point
        return self.pain_points[0] if self.pain_points else None

    def updated(self, **changes: Any) -> "Encounter":
        """Return a copy with ``changes`` applied and ``updated_at`` bumped."""
        changes.setdefault("updated_at", utcnow())
        return self.model_copy(update=changes)


# ----------------------------------------------------------------------
# Patient account (long-lived baseline)
# ----------------------------------------------------------------------


class AccountDemographics(Record):
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    primary_language: Language = Language.EN

    def age_on(self, today: date) -> Optional[int]:
        dob = self.date_of_birth
        if dob is None:
            return None
        before_birthday = (today.month, today.day) < (dob.month, dob.day)
        return today.year - dob.year - int(before_birthday)


class BaselineProfile(Record):
    chronic_conditions: Tuple[str, ...] = ()
    allergies: Tuple[str, ...] = ()
    long_term_medications: Tuple[str, ...] = ()
    family_history: Tuple[FamilyHistoryEntry, ...] = ()
    past_surgeries: Tuple[str, ...] = ()


class RiskProfile(Record):
    smoking_status: Optional[str] = None
    alcohol_use: Optional[str] = None


class PatientAccount(Record):
    patient_id: str
    display_name: Optional[str] = None
    demographics: AccountDemographics = Field(default_factory=AccountDemographics)
    baseline: BaselineProfile = Field(default_factory=BaselineProfile)
    risk_profile: RiskProfile = Field(default_factory=RiskProfile)
    has_completed_baseline: bool = False
    baseline_confirmed_by: Optional[str] = None
    baseline_updated_at: Optional[datetime] = None

    @property
    def is_first_time(self) -> bool:
        return not self.has_completed_baseline

    def history_snapshot(self) -> MedicalHistory:
        return MedicalHistory(
            conditions=self.baseline.chronic_conditions,
            medications=self.baseline.long_term_medications,
            allergies=self.baseline.allergies,
            surgeries=self.baseline.past_surgeries,
            family_history=self.baseline.family_history,
            smoking_status=self.risk_profile.smoking_status,
        )

    def demographics_snapshot(self, today: Optional[date] = None) -> PatientDemographics:
        today = today or utcnow().date()
        return PatientDemographics(
            age=self.demographics.age_on(today),
            sex=self.demographics.gender,
        )
