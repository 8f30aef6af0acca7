# app/services/persistence.py
from __future__ import annotations

from datetime import datetime
from typing import Callable, Dict, List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from app.intake.errors import IntakeValidationError
from app.intake.schema import (
    AccountDemographics,
    BaselineProfile,
    Encounter,
    MedicalHistory,
    PatientAccount,
    utcnow,
)
from app.logging_config import get_logger
from app.models import Encounter as EncounterRow
from app.models import Patient

logger = get_logger(__name__)

CONFIRMERS = ("patient", "doctor")


class ClinicianSink(Protocol):
    """Receives finalised encounters for human review."""

    def submit(self, encounter: Encounter) -> None: ...


class InMemoryClinicianSink:
    def __init__(self):
        self.encounters: List[Encounter] = []

    def submit(self, encounter: Encounter) -> None:
        self.encounters.append(encounter)


class SqlClinicianSink:
    """Writes the encounter and its triage result into ``encounters``."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def submit(self, encounter: Encounter) -> None:
        with self._session_factory() as db:
            if db.get(Patient, encounter.patient_id) is None:
                db.add(Patient(id=encounter.patient_id, account={}))

            triage = encounter.triage_result
            note = encounter.clinical_note
            row = db.get(EncounterRow, encounter.id) or EncounterRow(id=encounter.id)
            row.patient_id = encounter.patient_id
            row.started_at = encounter.created_at
            row.completed_at = encounter.completed_at
            row.status = encounter.status.value
            row.chief_complaint = note.chief_complaint if note else encounter.complaint_text
            row.urgency_level = triage.urgency.level.value if triage else None
            row.data = encounter.to_wire()
            row.triage = triage.to_wire() if triage else None
            db.add(row)
            db.commit()

        logger.info(
            "Encounter submitted for review: encounter=%s patient=%s status=%s",
            encounter.id,
            encounter.patient_id,
            encounter.status.value,
        )

    def get(self, encounter_id: str) -> Optional[Encounter]:
        with self._session_factory() as db:
            row = db.get(EncounterRow, encounter_id)
            return Encounter.model_validate(row.data) if row else None

    def list_for_patient(self, patient_id: str) -> List[Encounter]:
        with self._session_factory() as db:
            rows = db.scalars(
                select(EncounterRow)
                .where(EncounterRow.patient_id == patient_id)
                .order_by(EncounterRow.started_at.asc())
            )
            return [Encounter.model_validate(r.data) for r in rows]


class PatientAccountRepository:
    """
    Long-lived patient accounts in ``patients``.

    Baseline history changes only through ``confirm_baseline_update``,
    which records who confirmed it. Encounter answers are never merged in
    automatically.
    """

    def __init__(self, session_factory: sessionmaker, clock: Callable[[], datetime] = utcnow):
        self._session_factory = session_factory
        self._clock = clock

    def get(self, patient_id: str) -> Optional[PatientAccount]:
        with self._session_factory() as db:
            row = db.get(Patient, patient_id)
            return self._to_account(row) if row else None

    def get_or_create(self, patient_id: str, display_name: Optional[str] = None) -> PatientAccount:
        with self._session_factory() as db:
            row = db.get(Patient, patient_id)
            if row is None:
                account = PatientAccount(patient_id=patient_id, display_name=display_name)
                row = Patient(id=patient_id, display_name=display_name, account=account.to_wire())
                db.add(row)
                db.commit()
                logger.info("Patient account created: %s", patient_id)
            return self._to_account(row)

    def update_demographics(self, patient_id: str, demographics: AccountDemographics) -> PatientAccount:
        account = self.get_or_create(patient_id)
        return self._save(account.model_copy(update={"demographics": demographics}))

    def confirm_baseline_update(
        self,
        patient_id: str,
        history: MedicalHistory,
        confirmed_by: str,
    ) -> PatientAccount:
        if confirmed_by not in CONFIRMERS:
            raise IntakeValidationError(
                f"Baseline updates must be confirmed by the patient or a doctor (got {confirmed_by!r}).",
                "طبی تاریخ کی تبدیلی کی تصدیق مریض یا ڈاکٹر کو کرنی چاہیے۔",
                field="confirmedBy",
            )

        account = self.get_or_create(patient_id)
        updated = account.model_copy(
            update={
                "baseline": BaselineProfile(
                    chronic_conditions=history.conditions,
                    allergies=history.allergies,
                    long_term_medications=history.medications,
                    family_history=history.family_history,
                    past_surgeries=history.surgeries,
                ),
                "risk_profile": account.risk_profile.model_copy(
                    update={"smoking_status": history.smoking_status}
                ),
                "has_completed_baseline": True,
                "baseline_confirmed_by": confirmed_by,
                "baseline_updated_at": self._clock(),
            }
        )
        logger.info("Baseline confirmed: patient=%s by=%s", patient_id, confirmed_by)
        return self._save(updated, bump_version=True)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _save(self, account: PatientAccount, bump_version: bool = False) -> PatientAccount:
        with self._session_factory() as db:
            row = db.get(Patient, account.patient_id)
            if row is None:
                row = Patient(id=account.patient_id, baseline_version=0)
                db.add(row)
            row.display_name = account.display_name
            row.account = account.to_wire()
            if bump_version:
                row.baseline_version = (row.baseline_version or 0) + 1
            db.commit()
        return account

    @staticmethod
    def _to_account(row: Patient) -> PatientAccount:
        data: Dict = dict(row.account or {})
        data.setdefault("patientId", row.id)
        data.setdefault("displayName", row.display_name)
        return PatientAccount.model_validate(data)
